"""
schemashift faults - Core types and fault taxonomy.

Defines:
- Fault base class (structured fault objects)
- FaultDomain (explicit fault domains)
- Severity levels
- FaultGroup (multi-fault aggregate) and join_faults()
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterator, List, Optional, Sequence


# ============================================================================
# Severity & Domain Enums
# ============================================================================

class Severity(str, Enum):
    """
    Fault severity levels.

    Determines logging level and how the CLI reports the fault.
    """
    INFO = "info"       # Informational, no action needed
    WARN = "warn"       # Warning, should be reviewed
    ERROR = "error"     # Error, immediate attention
    FATAL = "fatal"     # Fatal, database may need manual inspection


class FaultDomain:
    """
    Fault domains (taxonomy).

    Identifies the functional area where a fault occurred.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.value = name  # For compatibility with Enum consumers
        self.description = description

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain(name='{self.name}')"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return self.name == other.name
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(self.name)


# Standard Domains
FaultDomain.CONFIG = FaultDomain("config", "Configuration errors")
FaultDomain.IO = FaultDomain("io", "Migration script discovery")
FaultDomain.VALIDATION = FaultDomain("validation", "Incomplete migration sets")
FaultDomain.DATABASE = FaultDomain("database", "Connection, query and transaction errors")
FaultDomain.MIGRATION = FaultDomain("migration", "Apply and revert errors")
FaultDomain.SYSTEM = FaultDomain("system", "System level faults")


# Domain defaults
DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: {"severity": Severity.FATAL, "retryable": False},
    FaultDomain.IO: {"severity": Severity.ERROR, "retryable": False},
    FaultDomain.VALIDATION: {"severity": Severity.ERROR, "retryable": False},
    FaultDomain.DATABASE: {"severity": Severity.ERROR, "retryable": True},
    FaultDomain.MIGRATION: {"severity": Severity.ERROR, "retryable": False},
    FaultDomain.SYSTEM: {"severity": Severity.FATAL, "retryable": False},
}


# ============================================================================
# Fault - Base Class
# ============================================================================

class Fault(Exception):
    """
    Base fault class - structured, typed fault object.

    A fault is NOT a bare exception. It is a first-class value with:
    - Stable machine-readable code
    - Human-readable message
    - Severity level
    - Domain classification
    - Retry semantics

    Attributes:
        code: Stable machine-readable identifier (e.g., "MIGRATION_APPLY_FAILED")
        message: Human-readable summary
        severity: Fault severity (INFO, WARN, ERROR, FATAL)
        domain: Fault domain (CONFIG, IO, DATABASE, etc.)
        retryable: Whether the operation can simply be run again
        metadata: Additional context data

    Example:
        ```python
        raise Fault(
            code="LEDGER_FAILED",
            message="Could not read schema_migration",
            domain=FaultDomain.DATABASE,
        )
        ```
    """

    def __init__(
        self,
        code: str | None = None,
        message: str | None = None,
        *,
        domain: FaultDomain | None = None,
        severity: Optional[Severity] = None,
        retryable: Optional[bool] = None,
        metadata: Optional[dict[str, Any]] = None,
    ):
        # Fallback to class attributes if not provided
        self.code = code if code is not None else getattr(self, "code", None)
        self.message = message if message is not None else getattr(self, "message", None)
        self.domain = domain if domain is not None else getattr(self, "domain", None)

        if self.code is None or self.message is None or self.domain is None:
            raise TypeError(f"{self.__class__.__name__} missing required code, message, or domain")

        super().__init__(self.message)

        # Default to ERROR/non-retryable for custom domains
        defaults = DOMAIN_DEFAULTS.get(self.domain, {"severity": Severity.ERROR, "retryable": False})
        self.severity = severity or defaults["severity"]
        self.retryable = retryable if retryable is not None else defaults["retryable"]

        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(code={self.code!r}, domain={self.domain.value}, "
            f"severity={self.severity.value})"
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize fault to dictionary.

        Returns:
            Dictionary representation suitable for logging/serialization
        """
        data = {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "metadata": self.metadata,
        }
        if self.__cause__ is not None:
            data["cause"] = str(self.__cause__)
        return data


# ============================================================================
# FaultGroup - Multi-fault aggregate
# ============================================================================

class FaultGroup(Fault):
    """
    Several independent faults surfaced together.

    Used wherever more than one thing can go wrong at once: validation
    of a migration set, a failed commit whose rollback also failed, an
    apply failure whose compensating revert failed. Each constituent
    stays inspectable through ``faults``.

    Example:
        ```python
        try:
            await run(db, "migrations")
        except FaultGroup as group:
            for fault in group:
                print(fault.code)
        ```
    """

    def __init__(
        self,
        faults: Sequence[BaseException],
        *,
        code: str = "MULTIPLE_FAULTS",
        message: Optional[str] = None,
        domain: FaultDomain = FaultDomain.SYSTEM,
        severity: Optional[Severity] = None,
        metadata: Optional[dict[str, Any]] = None,
    ):
        if not faults:
            raise ValueError("FaultGroup requires at least one fault")
        self.faults: tuple[BaseException, ...] = tuple(faults)
        if message is None:
            message = f"{len(self.faults)} fault(s) occurred"
        super().__init__(
            code=code,
            message=message,
            domain=domain,
            severity=severity or _highest_severity(self.faults),
            retryable=False,
            metadata=metadata,
        )

    def __iter__(self) -> Iterator[BaseException]:
        return iter(self.faults)

    def __len__(self) -> int:
        return len(self.faults)

    def __str__(self) -> str:
        details = "; ".join(f"({i}) {fault}" for i, fault in enumerate(self.faults, 1))
        return f"[{self.code}] {self.message}: {details}"

    def flatten(self) -> List[BaseException]:
        """Return every leaf fault, expanding nested groups depth-first."""
        leaves: List[BaseException] = []
        for fault in self.faults:
            if isinstance(fault, FaultGroup):
                leaves.extend(fault.flatten())
            else:
                leaves.append(fault)
        return leaves

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["faults"] = [
            f.to_dict() if isinstance(f, Fault) else {"error": repr(f)}
            for f in self.faults
        ]
        return data


def _highest_severity(faults: Sequence[BaseException]) -> Severity:
    order = [Severity.INFO, Severity.WARN, Severity.ERROR, Severity.FATAL]
    highest = Severity.ERROR
    for fault in faults:
        severity = getattr(fault, "severity", None)
        if severity in order and order.index(severity) > order.index(highest):
            highest = severity
    return highest


def join_faults(*faults: Optional[BaseException]) -> Optional[BaseException]:
    """
    Combine faults, ignoring ``None``.

    Returns ``None`` when nothing is left, the fault itself when exactly
    one remains, and a ``FaultGroup`` preserving order otherwise.
    """
    present = [f for f in faults if f is not None]
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    return FaultGroup(present)
