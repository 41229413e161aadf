"""
Tests for the migrator on a real (temp) SQLite database.

Covers:
    - Ordered apply and the resulting watermark
    - Idempotence: a second run opens no transaction
    - Nothing at or below the watermark is re-applied
    - Compensating revert after a failed migration
    - Revert failure surfacing both faults
    - Validation failures leaving the database untouched
    - Cancellation
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from conftest import write_migration, write_table_migration


async def _tables(db):
    rows = await db.fetch_all(
        "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
    )
    return [r["name"] for r in rows]


class TestMigratorApply:

    @pytest.mark.asyncio
    async def test_applies_in_version_order(self, db_url, migrations_dir):
        """{1.create, 2.addcol} on an empty ledger apply 1 then 2."""
        from schemashift import Database, run
        from schemashift.migrations import SchemaLedger

        write_migration(
            migrations_dir, 1, "create",
            up="CREATE TABLE users (id INTEGER PRIMARY KEY);",
            down="DROP TABLE users;",
        )
        write_migration(
            migrations_dir, 2, "addcol",
            up="ALTER TABLE users ADD COLUMN email TEXT;",
            down="ALTER TABLE users DROP COLUMN email;",
        )

        db = Database(db_url)
        await db.connect()
        try:
            applied = await run(db, migrations_dir)

            assert [m.version for m in applied] == [1, 2]
            ledger = SchemaLedger(db)
            assert await ledger.watermark() == 2
            entries = await ledger.entries()
            assert [(e.version, e.name) for e in entries] == [(1, "create"), (2, "addcol")]
            assert entries[0].id < entries[1].id
            cols = await db.fetch_all("PRAGMA table_info(users)")
            assert [c["name"] for c in cols] == ["id", "email"]
        finally:
            await db.disconnect()

    @pytest.mark.asyncio
    async def test_sorted_numerically_not_lexically(self, db_url, migrations_dir):
        from schemashift import Database, run

        for version in (10, 9, 2):
            write_table_migration(migrations_dir, version, f"t{version}")

        db = Database(db_url)
        await db.connect()
        try:
            applied = await run(db, migrations_dir)
            assert [m.version for m in applied] == [2, 9, 10]
        finally:
            await db.disconnect()

    @pytest.mark.asyncio
    async def test_second_run_is_noop(self, db_url, migrations_dir):
        from schemashift import Database, Migrator, MigratorState

        write_table_migration(migrations_dir, 1, "a")
        write_table_migration(migrations_dir, 2, "b")

        db = Database(db_url)
        await db.connect()
        try:
            assert len(await Migrator(db, migrations_dir).run()) == 2

            migrator = Migrator(db, migrations_dir)
            with patch.object(db.adapter, "begin", wraps=db.adapter.begin) as begin:
                assert await migrator.run() == []
            assert begin.call_count == 0
            assert migrator.state == MigratorState.SUCCEEDED
            assert await migrator.ledger.watermark() == 2
        finally:
            await db.disconnect()

    @pytest.mark.asyncio
    async def test_applied_scripts_never_rerun(self, db_url, migrations_dir):
        from schemashift import Database, run

        write_table_migration(migrations_dir, 1, "a")

        db = Database(db_url)
        await db.connect()
        try:
            await run(db, migrations_dir)
            # Editing an applied script has no effect.
            (migrations_dir / "1.create_a.up.sql").write_text("THIS IS NOT SQL;")
            write_table_migration(migrations_dir, 2, "b")

            applied = await run(db, migrations_dir)
            assert [m.version for m in applied] == [2]
        finally:
            await db.disconnect()

    @pytest.mark.asyncio
    async def test_versions_below_watermark_skipped(self, db_url, migrations_dir):
        from schemashift import Database, run
        from schemashift.migrations import SchemaLedger

        db = Database(db_url)
        await db.connect()
        try:
            ledger = SchemaLedger(db)
            await ledger.ensure_schema()
            await db.execute("INSERT INTO schema_migration (name, version) VALUES ('old', 5)")

            write_table_migration(migrations_dir, 3, "gap")
            write_table_migration(migrations_dir, 6, "next")

            applied = await run(db, migrations_dir)
            assert [m.version for m in applied] == [6]
            assert "gap" not in await _tables(db)
        finally:
            await db.disconnect()

    @pytest.mark.asyncio
    async def test_multi_statement_script(self, db_url, migrations_dir):
        from schemashift import Database, run

        write_migration(
            migrations_dir, 1, "seed",
            up=(
                "CREATE TABLE colors (name TEXT);\n"
                "INSERT INTO colors VALUES ('red;ish');\n"
                "INSERT INTO colors VALUES ('blue');\n"
            ),
            down="DROP TABLE colors;",
        )

        db = Database(db_url)
        await db.connect()
        try:
            await run(db, migrations_dir)
            assert await db.fetch_val("SELECT count(*) FROM colors") == 2
        finally:
            await db.disconnect()

    @pytest.mark.asyncio
    async def test_custom_ledger_table(self, db_url, migrations_dir):
        from schemashift import Database, run

        write_table_migration(migrations_dir, 1, "a")

        db = Database(db_url)
        await db.connect()
        try:
            await run(db, migrations_dir, ledger_table="app_migrations")
            assert await db.fetch_val('SELECT max(version) FROM app_migrations') == 1
            assert not await db.table_exists("schema_migration")
        finally:
            await db.disconnect()


class TestMigratorEmptyAndInvalid:

    @pytest.mark.asyncio
    async def test_empty_directory_touches_nothing(self, db_url, migrations_dir):
        from schemashift import Database, Migrator, MigratorState

        db = Database(db_url)
        await db.connect()
        try:
            migrator = Migrator(db, migrations_dir)
            assert await migrator.run() == []
            assert migrator.state == MigratorState.SUCCEEDED
            assert await _tables(db) == []
        finally:
            await db.disconnect()

    @pytest.mark.asyncio
    async def test_foreign_files_only_bootstraps_ledger(self, db_url, migrations_dir):
        from schemashift import Database, Migrator, MigratorState

        (migrations_dir / "readme.txt").write_text("docs")
        (migrations_dir / "archive").mkdir()

        db = Database(db_url)
        await db.connect()
        try:
            migrator = Migrator(db, migrations_dir)
            assert await migrator.run() == []
            assert migrator.state == MigratorState.SUCCEEDED
            assert await db.table_exists("schema_migration")
            assert await migrator.ledger.watermark() == 0
        finally:
            await db.disconnect()

    @pytest.mark.asyncio
    async def test_foreign_files_only_surfaces_ledger_failure(self, db_url, migrations_dir):
        from schemashift import Database, run
        from schemashift.faults import LedgerFault, QueryFault

        (migrations_dir / "readme.txt").write_text("docs")

        db = Database(db_url)
        await db.connect()
        try:
            with patch.object(
                db.adapter, "table_exists",
                new=AsyncMock(side_effect=QueryFault("table_exists", "catalog locked")),
            ):
                with pytest.raises(LedgerFault):
                    await run(db, migrations_dir)
        finally:
            await db.disconnect()

    @pytest.mark.asyncio
    async def test_incomplete_pair_fails_before_database(self, db_url, migrations_dir):
        """5.init.up.sql without its down script fails validation naming 'init'."""
        from schemashift import Database, Migrator, MigratorState
        from schemashift.faults import MigrationSetInvalidFault

        write_migration(migrations_dir, 5, "init", up="CREATE TABLE t (id INTEGER);")

        db = Database(db_url)
        await db.connect()
        try:
            migrator = Migrator(db, migrations_dir)
            with pytest.raises(MigrationSetInvalidFault) as exc_info:
                await migrator.run()

            (fault,) = exc_info.value.faults
            assert fault.metadata["name"] == "init"
            assert fault.metadata["direction"] == "down"
            assert migrator.state == MigratorState.VALIDATING
            assert await _tables(db) == []
        finally:
            await db.disconnect()

    @pytest.mark.asyncio
    async def test_missing_directory(self, db_url, tmp_path):
        from schemashift import Database, run
        from schemashift.faults import ScriptDirectoryFault

        db = Database(db_url)
        await db.connect()
        try:
            with pytest.raises(ScriptDirectoryFault):
                await run(db, tmp_path / "absent")
            assert await _tables(db) == []
        finally:
            await db.disconnect()


class TestMigratorRevert:

    @pytest.mark.asyncio
    async def test_failure_reverts_this_run(self, db_url, migrations_dir):
        """{1,2,3} with 2 failing restores the pre-run watermark."""
        from schemashift import Database, Migrator, MigratorState
        from schemashift.faults import MigrationApplyFault, QueryFault

        write_table_migration(migrations_dir, 1, "a")
        write_migration(
            migrations_dir, 2, "broken",
            up="CREATE TABLE b (id INTEGER);\nINSERT INTO nowhere VALUES (1);",
            down="DROP TABLE b;",
        )
        write_table_migration(migrations_dir, 3, "c")

        db = Database(db_url)
        await db.connect()
        try:
            migrator = Migrator(db, migrations_dir)
            with pytest.raises(MigrationApplyFault) as exc_info:
                await migrator.run()

            fault = exc_info.value
            assert fault.version == 2
            assert fault.name == "broken"
            assert isinstance(fault.__cause__, QueryFault)
            assert migrator.state == MigratorState.REVERTED
            assert migrator.applied == []
            assert await migrator.ledger.watermark() == 0
            assert await _tables(db) == ["schema_migration"]
        finally:
            await db.disconnect()

    @pytest.mark.asyncio
    async def test_revert_keeps_earlier_runs(self, db_url, migrations_dir):
        from schemashift import Database, run
        from schemashift.faults import MigrationApplyFault

        write_table_migration(migrations_dir, 1, "a")

        db = Database(db_url)
        await db.connect()
        try:
            await run(db, migrations_dir)

            write_table_migration(migrations_dir, 2, "b")
            write_migration(migrations_dir, 3, "broken", up="NOT SQL;", down="SELECT 1;")

            with pytest.raises(MigrationApplyFault) as exc_info:
                await run(db, migrations_dir)
            assert exc_info.value.version == 3
            # Watermark goes back to where this run started, not to zero.
            assert await db.fetch_val("SELECT max(version) FROM schema_migration") == 1
            assert await _tables(db) == ["a", "schema_migration"]
        finally:
            await db.disconnect()

    @pytest.mark.asyncio
    async def test_first_migration_failing_needs_no_revert(self, db_url, migrations_dir):
        from schemashift import Database, Migrator, MigratorState
        from schemashift.faults import MigrationApplyFault

        write_migration(migrations_dir, 1, "broken", up="NOT SQL;", down="SELECT 1;")

        db = Database(db_url)
        await db.connect()
        try:
            migrator = Migrator(db, migrations_dir)
            with pytest.raises(MigrationApplyFault):
                await migrator.run()
            assert migrator.state == MigratorState.REVERTED
            assert await migrator.ledger.watermark() == 0
        finally:
            await db.disconnect()

    @pytest.mark.asyncio
    async def test_revert_failure_reports_both(self, db_url, migrations_dir):
        """{1,2} with 2 failing and 1's down failing yields both faults."""
        from schemashift import Database, Migrator, MigratorState
        from schemashift.faults import (
            FaultGroup,
            MigrationApplyFault,
            MigrationRecoveryFault,
            MigrationRevertFault,
            Severity,
        )

        write_migration(
            migrations_dir, 1, "create",
            up="CREATE TABLE a (id INTEGER);",
            down="DROP TABLE does_not_exist;",
        )
        write_migration(migrations_dir, 2, "broken", up="NOT SQL;", down="SELECT 1;")

        db = Database(db_url)
        await db.connect()
        try:
            migrator = Migrator(db, migrations_dir)
            with pytest.raises(MigrationRecoveryFault) as exc_info:
                await migrator.run()

            fault = exc_info.value
            assert isinstance(fault, FaultGroup)
            assert fault.severity == Severity.FATAL
            assert isinstance(fault.apply_fault, MigrationApplyFault)
            assert isinstance(fault.revert_fault, MigrationRevertFault)
            assert fault.apply_fault.version == 2
            assert fault.revert_fault.version == 1
            assert fault.faults == (fault.apply_fault, fault.revert_fault)
            assert migrator.state == MigratorState.REVERT_FAILED
            # Migration 1 stays applied; its revert rolled back as a whole.
            assert await migrator.ledger.watermark() == 1
            assert "a" in await _tables(db)
        finally:
            await db.disconnect()

    @pytest.mark.asyncio
    async def test_revert_failure_keeps_applied_in_step_with_ledger(self, db_url, migrations_dir):
        """{1,2,3,4} with 4 failing: 3 reverts, 2's down fails, 1 is never reached."""
        from schemashift import Database, Migrator
        from schemashift.faults import MigrationRecoveryFault

        write_table_migration(migrations_dir, 1, "a")
        write_migration(
            migrations_dir, 2, "create_b",
            up="CREATE TABLE b (id INTEGER);",
            down="DROP TABLE does_not_exist;",
        )
        write_table_migration(migrations_dir, 3, "c")
        write_migration(migrations_dir, 4, "broken", up="NOT SQL;", down="SELECT 1;")

        db = Database(db_url)
        await db.connect()
        try:
            migrator = Migrator(db, migrations_dir)
            with pytest.raises(MigrationRecoveryFault) as exc_info:
                await migrator.run()

            assert exc_info.value.revert_fault.version == 2
            assert [m.version for m in migrator.applied] == [1, 2]
            entries = await migrator.ledger.entries()
            assert [e.version for e in entries] == [1, 2]
            assert await _tables(db) == ["a", "b", "schema_migration"]
        finally:
            await db.disconnect()

    @pytest.mark.asyncio
    async def test_ledger_insert_failure_triggers_revert(self, db_url, migrations_dir):
        from schemashift import Database, Migrator
        from schemashift.faults import LedgerFault, MigrationApplyFault

        write_table_migration(migrations_dir, 1, "a")
        write_table_migration(migrations_dir, 2, "b")

        db = Database(db_url)
        await db.connect()
        try:
            migrator = Migrator(db, migrations_dir)
            original = migrator.ledger.record

            async def record(txn, version, name):
                if version == 2:
                    raise LedgerFault(migrator.ledger.table, "insert", "constraint failed")
                await original(txn, version, name)

            with patch.object(migrator.ledger, "record", new=record):
                with pytest.raises(MigrationApplyFault) as exc_info:
                    await migrator.run()

            assert isinstance(exc_info.value.__cause__, LedgerFault)
            assert await migrator.ledger.watermark() == 0
            assert await _tables(db) == ["schema_migration"]
        finally:
            await db.disconnect()


class TestMigratorCancellation:

    @pytest.mark.asyncio
    async def test_cancel_rolls_back_step_without_revert(self, db_url, migrations_dir):
        from schemashift import Database, Migrator

        write_table_migration(migrations_dir, 1, "a")
        write_table_migration(migrations_dir, 2, "b")

        db = Database(db_url)
        await db.connect()
        try:
            migrator = Migrator(db, migrations_dir)
            original = migrator.ledger.record

            async def record(txn, version, name):
                if version == 2:
                    raise asyncio.CancelledError()
                await original(txn, version, name)

            with patch.object(migrator.ledger, "record", new=record):
                with pytest.raises(asyncio.CancelledError):
                    await migrator.run()

            assert not db.in_transaction
            assert await migrator.ledger.watermark() == 1
            assert await _tables(db) == ["a", "schema_migration"]
        finally:
            await db.disconnect()


class TestMigratorStatus:

    @pytest.mark.asyncio
    async def test_status_does_not_create_ledger(self, db_url, migrations_dir):
        from schemashift import Database, Migrator

        write_table_migration(migrations_dir, 1, "a")

        db = Database(db_url)
        await db.connect()
        try:
            status = await Migrator(db, migrations_dir).status()
            assert status["ledger_exists"] is False
            assert status["watermark"] == 0
            assert [m.version for m in status["pending"]] == [1]
            assert await _tables(db) == []
        finally:
            await db.disconnect()

    @pytest.mark.asyncio
    async def test_status_after_run(self, db_url, migrations_dir):
        from schemashift import Database, Migrator, run

        write_table_migration(migrations_dir, 1, "a")

        db = Database(db_url)
        await db.connect()
        try:
            await run(db, migrations_dir)
            write_table_migration(migrations_dir, 2, "b")

            status = await Migrator(db, migrations_dir).status()
            assert status["ledger_exists"] is True
            assert status["watermark"] == 1
            assert [e.version for e in status["applied"]] == [1]
            assert [m.version for m in status["pending"]] == [2]
            assert status["total"] == 2
        finally:
            await db.disconnect()
