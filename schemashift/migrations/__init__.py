"""
schemashift Migrations — discovery, validation, ledger and orchestration.

Pipeline:
    scan_directory() -> validate_migrations() -> SchemaLedger -> Migrator
"""

from .models import Migration, LedgerEntry
from .scanner import is_empty_directory, scan_directory
from .validator import validate_migrations
from .ledger import SchemaLedger, LEDGER_TABLE
from .migrator import Migrator, MigratorState, run

__all__ = [
    "Migration",
    "LedgerEntry",
    "scan_directory",
    "is_empty_directory",
    "validate_migrations",
    "SchemaLedger",
    "LEDGER_TABLE",
    "Migrator",
    "MigratorState",
    "run",
]
