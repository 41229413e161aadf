"""
schemashift - Async SQL schema migrations

Applies versioned pairs of ``up``/``down`` SQL scripts to a database:
- Migrations: directory scanning, set validation, ledger, ordered apply
- Transactions: one transaction per migration, compensating revert
- DB: async SQLite (aiosqlite) and PostgreSQL (asyncpg) engine
- Faults: Structured error handling with fault domains
- Config: defaults, YAML file, .env and environment variables

Running a migration directory against a database is idempotent.
"""

__version__ = "0.1.0"

from .config import ConfigLoader, MigrateConfig
from .db import Database, IsolationLevel, Transaction
from .faults import (
    Fault,
    FaultDomain,
    FaultGroup,
    Severity,
    join_faults,
    MigrationApplyFault,
    MigrationRecoveryFault,
    MigrationRevertFault,
    MigrationSetInvalidFault,
)
from .migrations import (
    LedgerEntry,
    Migration,
    Migrator,
    MigratorState,
    SchemaLedger,
    run,
    scan_directory,
    validate_migrations,
)
from .transactions import transaction_scope

__all__ = [
    "__version__",
    # Config
    "ConfigLoader",
    "MigrateConfig",
    # DB
    "Database",
    "IsolationLevel",
    "Transaction",
    "transaction_scope",
    # Faults
    "Fault",
    "FaultDomain",
    "FaultGroup",
    "Severity",
    "join_faults",
    "MigrationApplyFault",
    "MigrationRecoveryFault",
    "MigrationRevertFault",
    "MigrationSetInvalidFault",
    # Migrations
    "LedgerEntry",
    "Migration",
    "Migrator",
    "MigratorState",
    "SchemaLedger",
    "run",
    "scan_directory",
    "validate_migrations",
]
