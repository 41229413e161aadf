"""
schemashift faults - Structured fault handling.

Errors in schemashift are typed fault signals carrying a stable code,
a domain and a severity, so callers and the CLI can tell input errors,
validation errors, database errors and migration errors apart.

Core exports:
- Fault: Base fault class
- FaultGroup: Multi-fault aggregate with inspectable constituents
- FaultDomain: Domain enumeration
- Severity: Severity levels
- join_faults: Combine optional faults into one
"""

from .core import (
    Fault,
    FaultDomain,
    FaultGroup,
    Severity,
    join_faults,
)

from .domains import (
    ConfigFault,
    ConfigMissingFault,
    ConfigInvalidFault,
    ScriptFault,
    ScriptDirectoryFault,
    ScriptVersionFault,
    ScriptDirectionFault,
    ScriptReadFault,
    DuplicateScriptFault,
    IncompleteMigrationFault,
    MigrationSetInvalidFault,
    DatabaseFault,
    DatabaseConnectionFault,
    QueryFault,
    TransactionFault,
    LedgerFault,
    MigrationFault,
    MigrationApplyFault,
    MigrationRevertFault,
    MigrationRecoveryFault,
)

__all__ = [
    # Core types
    "Fault",
    "FaultDomain",
    "FaultGroup",
    "Severity",
    "join_faults",

    # Config
    "ConfigFault",
    "ConfigMissingFault",
    "ConfigInvalidFault",

    # Discovery
    "ScriptFault",
    "ScriptDirectoryFault",
    "ScriptVersionFault",
    "ScriptDirectionFault",
    "ScriptReadFault",
    "DuplicateScriptFault",

    # Validation
    "IncompleteMigrationFault",
    "MigrationSetInvalidFault",

    # Database
    "DatabaseFault",
    "DatabaseConnectionFault",
    "QueryFault",
    "TransactionFault",
    "LedgerFault",

    # Migration
    "MigrationFault",
    "MigrationApplyFault",
    "MigrationRevertFault",
    "MigrationRecoveryFault",
]
