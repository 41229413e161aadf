"""
schemashift DB Backend — PostgreSQL adapter via asyncpg.

Provides async PostgreSQL support with connection pooling, transactions
on a dedicated connection with a requested isolation level, and catalog
lookups through information_schema.

Requires asyncpg:
    pip install asyncpg
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from .base import (
    DatabaseAdapter,
    AdapterCapabilities,
    IsolationLevel,
)

logger = logging.getLogger("schemashift.db.backends.postgres")

__all__ = ["PostgresAdapter"]

# Try importing async postgres driver
try:
    import asyncpg
    _HAS_ASYNCPG = True
except ImportError:
    asyncpg = None  # type: ignore
    _HAS_ASYNCPG = False


class PostgresAdapter(DatabaseAdapter):
    """
    PostgreSQL adapter using asyncpg with connection pooling.

    Features:
    - Connection pool via asyncpg.create_pool
    - Transactions on a dedicated connection, with isolation level
    - Multi-statement scripts through the simple query protocol
    - Automatic ``?`` → ``$N`` placeholder conversion (string-literal safe)

    Requires:
        pip install asyncpg
    """

    capabilities = AdapterCapabilities(
        auto_pk_ddl="SERIAL PRIMARY KEY",
        name="postgresql",
    )

    def __init__(self):
        self._pool: Any = None
        self._txn_conn: Any = None  # Dedicated connection for active transaction
        self._txn_obj: Any = None   # asyncpg Transaction object
        self._connected = False
        self._in_transaction = False

    async def connect(self, url: str, **options) -> None:
        if self._connected:
            return

        if not _HAS_ASYNCPG:
            raise ImportError(
                "asyncpg is required for PostgreSQL support.\n"
                "Install: pip install asyncpg"
            )

        min_size = options.pop("pool_min_size", 1)
        max_size = options.pop("pool_max_size", 4)
        self._pool = await asyncpg.create_pool(
            url, min_size=min_size, max_size=max_size, **options
        )
        self._connected = True
        logger.info(f"PostgreSQL connected via asyncpg: {mask_url(url)}")

    async def disconnect(self) -> None:
        if not self._connected:
            return
        if self._txn_conn is not None:
            try:
                await self.rollback()
            except Exception as exc:
                logger.warning(f"Rollback during disconnect failed: {exc}")
        if self._pool:
            await self._pool.close()
            self._pool = None
        self._connected = False
        logger.info("PostgreSQL disconnected")

    def adapt_sql(self, sql: str) -> str:
        """
        Convert ``?`` placeholders to ``$1, $2, ...`` for asyncpg.

        String-literal safe — skips ``?`` inside single-quoted strings.
        """
        result: list[str] = []
        param_idx = 0
        in_string = False
        i = 0
        while i < len(sql):
            ch = sql[i]
            if ch == "'" and not in_string:
                in_string = True
                result.append(ch)
            elif ch == "'" and in_string:
                # Check for escaped quote ''
                if i + 1 < len(sql) and sql[i + 1] == "'":
                    result.append("''")
                    i += 2
                    continue
                in_string = False
                result.append(ch)
            elif ch == "?" and not in_string:
                param_idx += 1
                result.append(f"${param_idx}")
            else:
                result.append(ch)
            i += 1
        return "".join(result)

    def _get_conn(self) -> Any:
        """Return the transaction connection if in txn, else None."""
        if self._in_transaction and self._txn_conn is not None:
            return self._txn_conn
        return None

    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        if not self._connected:
            raise RuntimeError("Not connected to PostgreSQL")
        adapted_sql = self.adapt_sql(sql)
        conn = self._get_conn()
        if conn is not None:
            return await conn.execute(adapted_sql, *(params or []))
        async with self._pool.acquire() as c:
            return await c.execute(adapted_sql, *(params or []))

    async def execute_script(self, script: str) -> None:
        # Without arguments asyncpg uses the simple query protocol, which
        # accepts several statements in one call.
        if not self._connected:
            raise RuntimeError("Not connected to PostgreSQL")
        conn = self._get_conn()
        if conn is not None:
            await conn.execute(script)
            return
        async with self._pool.acquire() as c:
            await c.execute(script)

    async def fetch_all(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        if not self._connected:
            raise RuntimeError("Not connected to PostgreSQL")
        adapted_sql = self.adapt_sql(sql)
        conn = self._get_conn()
        if conn is not None:
            rows = await conn.fetch(adapted_sql, *(params or []))
        else:
            async with self._pool.acquire() as c:
                rows = await c.fetch(adapted_sql, *(params or []))
        return [dict(row) for row in rows]

    async def fetch_val(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        if not self._connected:
            raise RuntimeError("Not connected to PostgreSQL")
        adapted_sql = self.adapt_sql(sql)
        conn = self._get_conn()
        if conn is not None:
            return await conn.fetchval(adapted_sql, *(params or []))
        async with self._pool.acquire() as c:
            return await c.fetchval(adapted_sql, *(params or []))

    # ── Transactions ─────────────────────────────────────────────────

    async def begin(self, isolation: Optional[IsolationLevel] = None) -> None:
        """Acquire a dedicated connection and start a transaction."""
        if self._in_transaction:
            raise RuntimeError("A transaction is already open on this adapter")
        conn = await self._pool.acquire()
        try:
            txn = conn.transaction(isolation=isolation.value if isolation else None)
            await txn.start()
        except BaseException:
            await self._pool.release(conn)
            raise
        self._txn_conn = conn
        self._txn_obj = txn
        self._in_transaction = True

    async def commit(self) -> None:
        """Commit the transaction and release the connection on success."""
        if not self._in_transaction or self._txn_obj is None:
            return
        await self._txn_obj.commit()
        await self._release()

    async def rollback(self) -> None:
        """Rollback the transaction and release the connection."""
        if self._txn_conn is None:
            return
        try:
            # asyncpg refuses to roll back a transaction whose commit
            # already went through; only roll back one still pending.
            if self._txn_obj is not None and not self._txn_conn.is_closed():
                if self._txn_conn.is_in_transaction():
                    await self._txn_obj.rollback()
        finally:
            await self._release()

    async def _release(self) -> None:
        conn = self._txn_conn
        self._in_transaction = False
        self._txn_conn = None
        self._txn_obj = None
        if conn is not None:
            await self._pool.release(conn)

    # ── Catalog ──────────────────────────────────────────────────────

    async def table_exists(self, table_name: str) -> bool:
        count = await self.fetch_val(
            "SELECT count(table_name) FROM information_schema.tables "
            "WHERE table_schema = current_schema() AND table_name = ?",
            [table_name],
        )
        return bool(count)

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    @property
    def is_connected(self) -> bool:
        return self._connected and self._pool is not None

    @property
    def dialect(self) -> str:
        return "postgresql"


def mask_url(url: str) -> str:
    """Mask password in URL for logging."""
    if "@" in url:
        parts = url.split("@", 1)
        pre = parts[0]
        if ":" in pre and pre.count(":") > 1:
            scheme_user = pre.rsplit(":", 1)[0]
            return f"{scheme_user}:***@{parts[1]}"
    return url
