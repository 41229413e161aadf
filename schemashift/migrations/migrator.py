"""
schemashift Migrator — applies pending migrations with compensating revert.

A run scans the migrations directory, validates the set, bootstraps the
ledger, and applies every migration above the watermark in ascending
version order. Each migration runs in its own SERIALIZABLE transaction
together with its ledger insert.

When a migration fails, the migrations this run already committed are
reverted newest-first, each in its own transaction together with its
ledger delete, bringing the ledger back to its pre-run watermark.

Usage:
    from schemashift import Database, run

    db = Database("sqlite:///app.db")
    applied = await run(db, "migrations/")

    # Or with a custom ledger table:
    migrator = Migrator(db, "migrations/", ledger_table="app_migrations")
    applied = await migrator.run()
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Union

from ..db.backends.base import IsolationLevel
from ..faults.domains import (
    MigrationApplyFault,
    MigrationRecoveryFault,
    MigrationRevertFault,
)
from ..transactions import transaction_scope
from .ledger import LEDGER_TABLE, SchemaLedger
from .models import Migration
from .scanner import is_empty_directory, scan_directory
from .validator import validate_migrations

if TYPE_CHECKING:
    from ..db.engine import Database

logger = logging.getLogger("schemashift.migrations.migrator")

__all__ = ["Migrator", "MigratorState", "run"]


class MigratorState(str, Enum):
    """Where a ``Migrator`` is in its run."""

    IDLE = "idle"
    SCANNING = "scanning"
    VALIDATING = "validating"
    BOOTSTRAPPING = "bootstrapping"
    DIFFING = "diffing"
    APPLYING = "applying"
    SUCCEEDED = "succeeded"
    REVERTING = "reverting"
    REVERTED = "reverted"
    REVERT_FAILED = "revert_failed"


class Migrator:
    """
    Brings a database up to date with a directory of migration scripts.

    Running it again once everything is applied is a no-op: nothing is
    above the watermark, so no transaction is opened.
    """

    def __init__(
        self,
        db: Database,
        migrations_dir: Union[str, Path] = "migrations",
        *,
        ledger_table: str = LEDGER_TABLE,
    ):
        self.db = db
        self.migrations_dir = Path(migrations_dir)
        self.ledger = SchemaLedger(db, ledger_table)
        self.state = MigratorState.IDLE
        self.applied: List[Migration] = []

    def _transition(self, state: MigratorState) -> None:
        logger.debug(f"Migrator: {self.state.value} -> {state.value}")
        self.state = state

    def load(self) -> Dict[int, Migration]:
        """Scan and validate the migrations directory."""
        self._transition(MigratorState.SCANNING)
        migrations = scan_directory(self.migrations_dir)
        self._transition(MigratorState.VALIDATING)
        validate_migrations(migrations)
        return migrations

    @staticmethod
    def pending(migrations: Mapping[int, Migration], watermark: int) -> List[Migration]:
        """Migrations above ``watermark``, in ascending version order."""
        return [migrations[v] for v in sorted(migrations) if v > watermark]

    async def run(self) -> List[Migration]:
        """
        Apply every pending migration.

        Returns:
            The migrations applied by this run, in order

        Raises:
            ScriptFault: Directory or filename problems
            MigrationSetInvalidFault: Some migrations lack a script
            LedgerFault: The ledger could not be created or read
            MigrationApplyFault: A migration failed and this run's
                migrations were reverted
            MigrationRecoveryFault: A migration failed and reverting
                also failed; the database needs manual inspection
        """
        self.applied = []
        migrations = self.load()
        if not migrations and is_empty_directory(self.migrations_dir):
            logger.info(f"Migrations directory {self.migrations_dir} is empty")
            self._transition(MigratorState.SUCCEEDED)
            return []

        self._transition(MigratorState.BOOTSTRAPPING)
        await self.ledger.ensure_schema()

        self._transition(MigratorState.DIFFING)
        watermark = await self.ledger.watermark()
        pending = self.pending(migrations, watermark)
        if not pending:
            logger.info(f"No pending migrations (watermark {watermark})")
            self._transition(MigratorState.SUCCEEDED)
            return []

        logger.info(
            f"Applying {len(pending)} migration(s) above watermark {watermark}"
        )
        self._transition(MigratorState.APPLYING)
        for migration in pending:
            try:
                await self._apply(migration)
            except Exception as exc:
                apply_fault = _as_apply_fault(migration, exc)
                logger.error(f"Migration {migration.label} failed: {exc}")
                break
            self.applied.append(migration)
        else:
            self._transition(MigratorState.SUCCEEDED)
            return list(self.applied)

        await self._revert_applied(apply_fault)
        raise apply_fault

    async def _apply(self, migration: Migration) -> None:
        async with transaction_scope(self.db, isolation=IsolationLevel.SERIALIZABLE) as txn:
            await txn.execute_script(migration.up_script)
            await self.ledger.record(txn, migration.version, migration.name)
        logger.info(f"Applied migration: {migration.label}")

    async def _revert(self, migration: Migration) -> None:
        async with transaction_scope(self.db) as txn:
            await txn.execute_script(migration.down_script)
            await self.ledger.remove(txn, migration.version)
        logger.info(f"Reverted migration: {migration.label}")

    async def _revert_applied(self, apply_fault: MigrationApplyFault) -> None:
        """Revert this run's migrations newest-first."""
        self._transition(MigratorState.REVERTING)
        reverted = 0
        for migration in reversed(list(self.applied)):
            try:
                await self._revert(migration)
            except Exception as exc:
                revert_fault = MigrationRevertFault(migration.version, migration.name, str(exc))
                revert_fault.__cause__ = exc
                logger.error(
                    f"Reverting {migration.label} failed; database needs manual inspection: {exc}"
                )
                self._transition(MigratorState.REVERT_FAILED)
                raise MigrationRecoveryFault(apply_fault, revert_fault) from apply_fault
            self.applied.pop()
            reverted += 1

        self._transition(MigratorState.REVERTED)
        logger.warning(f"Reverted {reverted} migration(s) after failure")

    async def status(self) -> Dict[str, Any]:
        """
        Read-only view of the migration state.

        Does not create the ledger table when it is missing.
        """
        migrations = self.load()
        ledger_exists = await self.ledger.exists()
        if ledger_exists:
            entries = await self.ledger.entries()
            watermark = await self.ledger.watermark()
        else:
            entries = []
            watermark = 0
        self.state = MigratorState.IDLE
        return {
            "watermark": watermark,
            "ledger_exists": ledger_exists,
            "applied": entries,
            "pending": self.pending(migrations, watermark),
            "total": len(migrations),
        }


def _as_apply_fault(migration: Migration, exc: Exception) -> MigrationApplyFault:
    if isinstance(exc, MigrationApplyFault):
        return exc
    fault = MigrationApplyFault(migration.version, migration.name, str(exc))
    fault.__cause__ = exc
    return fault


async def run(
    db: Database,
    migrations_dir: Union[str, Path],
    *,
    ledger_table: str = LEDGER_TABLE,
) -> List[Migration]:
    """
    Bring ``db`` up to date with the scripts in ``migrations_dir``.

    Shortcut for ``Migrator(db, migrations_dir).run()``.
    """
    return await Migrator(db, migrations_dir, ledger_table=ledger_table).run()
