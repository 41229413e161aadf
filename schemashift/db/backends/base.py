"""
schemashift DB Backend — Base Adapter Interface.

All database backends must implement this interface. The ``Database``
engine delegates to the appropriate adapter based on the connection URL.

This interface abstracts differences between SQLite and PostgreSQL:
- Parameter placeholder style (?, $1)
- Transaction semantics and isolation levels
- Multi-statement script execution
- Catalog lookups
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger("schemashift.db.backends")

__all__ = [
    "DatabaseAdapter",
    "AdapterCapabilities",
    "IsolationLevel",
]


class IsolationLevel(str, Enum):
    """Transaction isolation levels a caller may request."""

    READ_COMMITTED = "read_committed"
    REPEATABLE_READ = "repeatable_read"
    SERIALIZABLE = "serializable"


@dataclass
class AdapterCapabilities:
    """Describes what a specific backend supports."""

    auto_pk_ddl: str = "INTEGER PRIMARY KEY"
    name: str = "base"


class DatabaseAdapter(ABC):
    """
    Abstract database adapter interface.

    All backends must implement these methods. The ``Database``
    engine uses this interface to execute statements, manage
    transactions, and look up tables in the catalog.

    At most one transaction is open per adapter; while it is open every
    statement runs on the transaction's connection.
    """

    capabilities: AdapterCapabilities = AdapterCapabilities()

    @abstractmethod
    async def connect(self, url: str, **options) -> None:
        """Open a connection to the database."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the database connection."""
        ...

    @abstractmethod
    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        """Execute a single SQL statement. Returns a cursor-like object."""
        ...

    @abstractmethod
    async def execute_script(self, script: str) -> None:
        """Execute raw script text that may hold several statements."""
        ...

    @abstractmethod
    async def fetch_all(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Execute and return all rows as dicts."""
        ...

    @abstractmethod
    async def fetch_val(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        """Execute and return the first column of the first row, or None."""
        ...

    # ── Transaction management ───────────────────────────────────────

    @abstractmethod
    async def begin(self, isolation: Optional[IsolationLevel] = None) -> None:
        """Start a transaction."""
        ...

    @abstractmethod
    async def commit(self) -> None:
        """Commit the current transaction."""
        ...

    @abstractmethod
    async def rollback(self) -> None:
        """Rollback the current transaction."""
        ...

    # ── Catalog ──────────────────────────────────────────────────────

    @abstractmethod
    async def table_exists(self, table_name: str) -> bool:
        """Check if a table exists."""
        ...

    # ── SQL adaptation ───────────────────────────────────────────────

    def adapt_sql(self, sql: str) -> str:
        """
        Adapt SQL placeholders from qmark (?) to the backend's param style.

        Override this in backends that use a different param style.
        """
        return sql

    @property
    def in_transaction(self) -> bool:
        return False

    @property
    def is_connected(self) -> bool:
        """Check if the adapter is connected."""
        return False

    @property
    def dialect(self) -> str:
        """Return the SQL dialect name."""
        return self.capabilities.name
