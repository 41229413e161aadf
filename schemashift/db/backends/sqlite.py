"""
schemashift DB Backend — SQLite adapter via aiosqlite.

This is the default backend. It wraps aiosqlite and implements
the full DatabaseAdapter interface. The connection runs with
``isolation_level=None`` so transactions are only ever opened by
``begin()``; the sqlite3 module never starts or commits one implicitly.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from typing import Any, Dict, List, Optional, Sequence

from .base import (
    DatabaseAdapter,
    AdapterCapabilities,
    IsolationLevel,
)

try:
    import aiosqlite
except ImportError:
    aiosqlite = None  # type: ignore[assignment]

logger = logging.getLogger("schemashift.db.backends.sqlite")

__all__ = ["SQLiteAdapter", "split_statements"]


def split_statements(script: str) -> List[str]:
    """
    Split script text into complete SQL statements.

    Semicolons inside string literals, comments and trigger bodies do
    not end a statement; ``sqlite3.complete_statement`` decides where
    each one finishes. A trailing statement without a semicolon is kept,
    a trailing run of ``--`` comments is dropped.
    """
    statements: List[str] = []
    buffer = ""
    pieces = script.split(";")
    for index, piece in enumerate(pieces):
        buffer += piece
        if index < len(pieces) - 1:
            buffer += ";"
        if sqlite3.complete_statement(buffer):
            statement = buffer.strip()
            if statement != ";":
                statements.append(statement)
            buffer = ""

    leftover = buffer.strip()
    if leftover and not all(
        line.strip().startswith("--") for line in leftover.splitlines() if line.strip()
    ):
        statements.append(leftover)
    return statements


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite adapter using aiosqlite.

    Features:
    - WAL journal mode for concurrent reads
    - Foreign key enforcement
    - Transactional DDL (CREATE/ALTER/DROP roll back with the transaction)
    - ``BEGIN IMMEDIATE`` for serializable transactions
    """

    capabilities = AdapterCapabilities(
        auto_pk_ddl="INTEGER PRIMARY KEY AUTOINCREMENT",
        name="sqlite",
    )

    def __init__(self):
        self._connection: Any = None
        self._connected = False
        self._lock = asyncio.Lock()
        self._in_transaction = False

    async def connect(self, url: str, **options) -> None:
        if self._connected:
            return
        if aiosqlite is None:
            raise ImportError(
                "aiosqlite is required for SQLite backend. "
                "Install: pip install aiosqlite"
            )
        async with self._lock:
            if self._connected:
                return
            db_path = self._parse_url(url)
            self._connection = await aiosqlite.connect(db_path, isolation_level=None, **options)
            await self._connection.execute("PRAGMA journal_mode=WAL")
            await self._connection.execute("PRAGMA foreign_keys=ON")
            self._connection.row_factory = aiosqlite.Row
            self._connected = True
            logger.info(f"SQLite connected: {db_path}")

    async def disconnect(self) -> None:
        if not self._connected:
            return
        async with self._lock:
            if self._connection:
                if self._in_transaction:
                    await self._connection.rollback()
                    self._in_transaction = False
                await self._connection.close()
                self._connection = None
            self._connected = False
            logger.info("SQLite disconnected")

    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        if not self._connected:
            raise RuntimeError("Not connected")
        params = params or []
        return await self._connection.execute(sql, params)

    async def execute_script(self, script: str) -> None:
        # executescript() would COMMIT the open transaction first, so run
        # the statements one at a time instead.
        if not self._connected:
            raise RuntimeError("Not connected")
        for statement in split_statements(script):
            await self._connection.execute(statement)

    async def fetch_all(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        if not self._connected:
            raise RuntimeError("Not connected")
        params = params or []
        cursor = await self._connection.execute(sql, params)
        rows = await cursor.fetchall()
        if rows and hasattr(rows[0], "keys"):
            return [dict(row) for row in rows]
        if cursor.description and rows:
            cols = [d[0] for d in cursor.description]
            return [dict(zip(cols, row)) for row in rows]
        return []

    async def fetch_val(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        if not self._connected:
            raise RuntimeError("Not connected")
        params = params or []
        cursor = await self._connection.execute(sql, params)
        row = await cursor.fetchone()
        if row is None:
            return None
        return row[0]

    # ── Transactions ─────────────────────────────────────────────────

    async def begin(self, isolation: Optional[IsolationLevel] = None) -> None:
        # SQLite transactions are always serializable; IMMEDIATE takes the
        # write lock up front instead of on the first write.
        if isolation == IsolationLevel.SERIALIZABLE:
            await self._connection.execute("BEGIN IMMEDIATE")
        else:
            await self._connection.execute("BEGIN")
        self._in_transaction = True

    async def commit(self) -> None:
        await self._connection.commit()
        self._in_transaction = False

    async def rollback(self) -> None:
        try:
            await self._connection.rollback()
        finally:
            self._in_transaction = False

    # ── Catalog ──────────────────────────────────────────────────────

    async def table_exists(self, table_name: str) -> bool:
        count = await self.fetch_val(
            "SELECT count(name) FROM sqlite_master WHERE type='table' AND name=?",
            [table_name],
        )
        return bool(count)

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def dialect(self) -> str:
        return "sqlite"

    @staticmethod
    def _parse_url(url: str) -> str:
        """Extract file path from sqlite URL."""
        for prefix in ("sqlite:///", "sqlite://"):
            if url.startswith(prefix):
                path = url[len(prefix):]
                return path or ":memory:"
        return url.replace("sqlite:", "").lstrip("/") or ":memory:"
