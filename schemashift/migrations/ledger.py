"""
schemashift Schema Ledger — the table recording applied migrations.

The ledger is the single source of truth for what has been applied.
It is created lazily the first time a run needs it and never re-created.
Its highest recorded version is the watermark: migrations at or below it
are never applied again.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, List

from ..faults.core import Fault
from ..faults.domains import ConfigInvalidFault, LedgerFault
from .models import LedgerEntry

if TYPE_CHECKING:
    from ..db.engine import Database, Transaction

logger = logging.getLogger("schemashift.migrations.ledger")

__all__ = ["SchemaLedger", "LEDGER_TABLE"]

LEDGER_TABLE = "schema_migration"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SchemaLedger:
    """
    Reads and writes the migration ledger table.

    Writes (``record`` / ``remove``) go through a caller-supplied open
    transaction so a ledger row commits or rolls back together with the
    script it describes.

    Usage:
        ledger = SchemaLedger(db)
        await ledger.ensure_schema()
        current = await ledger.watermark()

        async with transaction_scope(db) as txn:
            await txn.execute_script(migration.up_script)
            await ledger.record(txn, migration.version, migration.name)
    """

    def __init__(self, db: Database, table: str = LEDGER_TABLE):
        if not isinstance(table, str) or not _IDENTIFIER.match(table):
            raise ConfigInvalidFault(
                "ledger_table",
                f"{table!r} is not a plain SQL identifier",
            )
        self.db = db
        self.table = table

    @property
    def _quoted(self) -> str:
        return f'"{self.table}"'

    async def exists(self) -> bool:
        """Check the catalog for the ledger table without creating it."""
        try:
            return await self.db.table_exists(self.table)
        except Fault as exc:
            raise LedgerFault(self.table, "lookup", str(exc)) from exc

    async def ensure_schema(self) -> None:
        """Create the ledger table if the catalog does not list it yet."""
        if await self.exists():
            logger.debug(f"Ledger table {self.table} already exists")
            return

        pk = self.db.capabilities.auto_pk_ddl
        sql = (
            f"CREATE TABLE {self._quoted} ("
            f'"id" {pk}, '
            f'"name" TEXT NOT NULL, '
            f'"version" INTEGER NOT NULL'
            f")"
        )
        try:
            await self.db.execute(sql)
        except Fault as exc:
            raise LedgerFault(self.table, "create", str(exc)) from exc
        logger.info(f"Created ledger table {self.table}")

    async def watermark(self) -> int:
        """Return the highest recorded version, or 0 for an empty ledger."""
        try:
            version = await self.db.fetch_val(
                f'SELECT "version" FROM {self._quoted} ORDER BY "version" DESC LIMIT 1',
                default=0,
            )
        except Fault as exc:
            raise LedgerFault(self.table, "read", str(exc)) from exc
        return int(version)

    async def record(self, txn: Transaction, version: int, name: str) -> None:
        """Insert the entry for an applied migration inside ``txn``."""
        try:
            await txn.execute(
                f'INSERT INTO {self._quoted} ("name", "version") VALUES (?, ?)',
                [name, version],
            )
        except Fault as exc:
            raise LedgerFault(self.table, "insert", str(exc)) from exc

    async def remove(self, txn: Transaction, version: int) -> None:
        """Delete the entry for a reverted migration inside ``txn``."""
        try:
            await txn.execute(
                f'DELETE FROM {self._quoted} WHERE "version" = ?',
                [version],
            )
        except Fault as exc:
            raise LedgerFault(self.table, "delete", str(exc)) from exc

    async def entries(self) -> List[LedgerEntry]:
        """Return every ledger entry ordered by version."""
        try:
            rows = await self.db.fetch_all(
                f'SELECT "id", "version", "name" FROM {self._quoted} ORDER BY "version"'
            )
        except Fault as exc:
            raise LedgerFault(self.table, "read", str(exc)) from exc
        return [
            LedgerEntry(id=row["id"], version=row["version"], name=row["name"])
            for row in rows
        ]
