"""
schemashift DB Package — async database engine and backend adapters.

Usage:
    from schemashift.db import Database, IsolationLevel

    db = Database("sqlite:///app.db")
    await db.connect()
"""

from .engine import Database, Transaction
from .backends.base import DatabaseAdapter, AdapterCapabilities, IsolationLevel

__all__ = [
    "Database",
    "Transaction",
    "DatabaseAdapter",
    "AdapterCapabilities",
    "IsolationLevel",
]
