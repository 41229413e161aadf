"""
schemashift faults - Domain-specific fault types.

Provides concrete fault classes for each domain:
- CONFIG faults
- IO faults (script discovery)
- VALIDATION faults
- DATABASE faults
- MIGRATION faults (apply / revert / recovery)
"""

from typing import Any, Optional, Sequence

from .core import Fault, FaultDomain, FaultGroup, Severity


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigFault(Fault):
    """Base class for configuration faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.FATAL,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.CONFIG,
            severity=severity,
            retryable=False,
            metadata=metadata,
        )


class ConfigMissingFault(ConfigFault):
    """Required configuration is missing."""

    def __init__(self, key: str, **kwargs):
        super().__init__(
            code="CONFIG_MISSING",
            message=f"Required configuration key '{key}' is missing",
            metadata={"key": key, **kwargs.get("metadata", {})},
        )


class ConfigInvalidFault(ConfigFault):
    """Configuration value is invalid."""

    def __init__(self, key: str, reason: str, **kwargs):
        super().__init__(
            code="CONFIG_INVALID",
            message=f"Configuration key '{key}' is invalid: {reason}",
            metadata={"key": key, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# IO Faults (script discovery)
# ============================================================================

class ScriptFault(Fault):
    """Base class for migration script discovery faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.IO,
            retryable=False,
            metadata=metadata,
        )


class ScriptDirectoryFault(ScriptFault):
    """Migrations directory is missing or cannot be read."""

    def __init__(self, path: str, reason: str, **kwargs):
        super().__init__(
            code="SCRIPT_DIRECTORY_UNREADABLE",
            message=f"Cannot read migrations directory '{path}': {reason}",
            metadata={"path": path, "reason": reason, **kwargs.get("metadata", {})},
        )


class ScriptVersionFault(ScriptFault):
    """Version segment of a script filename is not a non-negative integer."""

    def __init__(self, filename: str, segment: str, **kwargs):
        super().__init__(
            code="SCRIPT_VERSION_INVALID",
            message=f"Invalid version '{segment}' in migration script '{filename}'",
            metadata={"filename": filename, "segment": segment, **kwargs.get("metadata", {})},
        )


class ScriptDirectionFault(ScriptFault):
    """Direction segment of a script filename is not 'up' or 'down'."""

    def __init__(self, filename: str, direction: str, **kwargs):
        super().__init__(
            code="SCRIPT_DIRECTION_INVALID",
            message=f"Unrecognized script type '{direction}' in '{filename}' (expected 'up' or 'down')",
            metadata={"filename": filename, "direction": direction, **kwargs.get("metadata", {})},
        )


class ScriptReadFault(ScriptFault):
    """A migration script file could not be read."""

    def __init__(self, filename: str, reason: str, **kwargs):
        super().__init__(
            code="SCRIPT_UNREADABLE",
            message=f"Cannot read migration script '{filename}': {reason}",
            metadata={"filename": filename, "reason": reason, **kwargs.get("metadata", {})},
        )


class DuplicateScriptFault(ScriptFault):
    """Two files provide the same direction for the same version."""

    def __init__(self, version: int, direction: str, files: Sequence[str], **kwargs):
        super().__init__(
            code="SCRIPT_DUPLICATE",
            message=(
                f"Migration version {version} has more than one '{direction}' script: "
                f"{', '.join(files)}"
            ),
            metadata={
                "version": version,
                "direction": direction,
                "files": list(files),
                **kwargs.get("metadata", {}),
            },
        )


# ============================================================================
# VALIDATION Faults
# ============================================================================

class IncompleteMigrationFault(Fault):
    """A migration is missing its 'up' or 'down' script."""

    def __init__(self, name: str, version: int, direction: str, **kwargs):
        super().__init__(
            code="MIGRATION_INCOMPLETE",
            message=f"Failed to find '{direction}' script for '{name}' (version {version})",
            domain=FaultDomain.VALIDATION,
            metadata={
                "name": name,
                "version": version,
                "direction": direction,
                **kwargs.get("metadata", {}),
            },
        )


class MigrationSetInvalidFault(FaultGroup):
    """Every incomplete migration found while validating a migration set."""

    def __init__(self, faults: Sequence[IncompleteMigrationFault]):
        super().__init__(
            faults,
            code="MIGRATION_SET_INVALID",
            message=f"{len(faults)} migration script(s) missing",
            domain=FaultDomain.VALIDATION,
        )


# ============================================================================
# DATABASE Faults
# ============================================================================

class DatabaseFault(Fault):
    """Base class for database faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        retryable: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.DATABASE,
            severity=severity,
            retryable=retryable,
            metadata=metadata,
        )


class DatabaseConnectionFault(DatabaseFault):
    """Database connection failed."""

    def __init__(self, url: str, reason: str, **kwargs):
        super().__init__(
            code="DB_CONNECTION_FAILED",
            message=f"Database connection failed ({url}): {reason}",
            severity=Severity.FATAL,
            retryable=True,
            metadata={"url": url, "reason": reason, **kwargs.get("metadata", {})},
        )


class QueryFault(DatabaseFault):
    """Statement execution failed."""

    def __init__(self, operation: str, reason: str, **kwargs):
        super().__init__(
            code="QUERY_FAILED",
            message=f"Query ({operation}) failed: {reason}",
            retryable=True,
            metadata={"operation": operation, "reason": reason, **kwargs.get("metadata", {})},
        )


class TransactionFault(DatabaseFault):
    """Begin, commit or rollback failed, or a transaction body crashed."""

    def __init__(self, operation: str, reason: str, **kwargs):
        super().__init__(
            code="TRANSACTION_FAILED",
            message=f"Transaction {operation} failed: {reason}",
            metadata={"operation": operation, "reason": reason, **kwargs.get("metadata", {})},
        )


class LedgerFault(DatabaseFault):
    """Reading, creating or writing the migration ledger failed."""

    def __init__(self, table: str, operation: str, reason: str, **kwargs):
        super().__init__(
            code="LEDGER_FAILED",
            message=f"Ledger '{table}' {operation} failed: {reason}",
            severity=Severity.FATAL,
            metadata={
                "table": table,
                "operation": operation,
                "reason": reason,
                **kwargs.get("metadata", {}),
            },
        )


# ============================================================================
# MIGRATION Faults
# ============================================================================

class MigrationFault(Fault):
    """Base class for migration apply/revert faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.MIGRATION,
            severity=severity,
            retryable=False,
            metadata=metadata,
        )


class MigrationApplyFault(MigrationFault):
    """A forward script or its ledger insert failed."""

    def __init__(self, version: int, name: str, reason: str, **kwargs):
        super().__init__(
            code="MIGRATION_APPLY_FAILED",
            message=f"Failed running migration '{name}' (version {version}) up script: {reason}",
            metadata={
                "version": version,
                "name": name,
                "reason": reason,
                **kwargs.get("metadata", {}),
            },
        )
        self.version = version
        self.name = name


class MigrationRevertFault(MigrationFault):
    """A backward script or its ledger delete failed."""

    def __init__(self, version: int, name: str, reason: str, **kwargs):
        super().__init__(
            code="MIGRATION_REVERT_FAILED",
            message=f"Failed reverting migration '{name}' (version {version}): {reason}",
            severity=Severity.FATAL,
            metadata={
                "version": version,
                "name": name,
                "reason": reason,
                **kwargs.get("metadata", {}),
            },
        )
        self.version = version
        self.name = name


class MigrationRecoveryFault(FaultGroup):
    """
    An apply failure whose compensating revert also failed.

    The database may hold a subset of this run's migrations; an operator
    has to inspect it before migrating again.
    """

    def __init__(self, apply_fault: BaseException, revert_fault: BaseException):
        super().__init__(
            [apply_fault, revert_fault],
            code="MIGRATION_RECOVERY_FAILED",
            message="Migration failed and compensating revert failed; manual inspection required",
            domain=FaultDomain.MIGRATION,
            severity=Severity.FATAL,
        )
        self.apply_fault = apply_fault
        self.revert_fault = revert_fault
