"""
schemashift Migration records — in-memory migration and ledger rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

__all__ = ["Migration", "LedgerEntry", "UP", "DOWN"]

UP = "up"
DOWN = "down"


@dataclass
class Migration:
    """
    One versioned pair of forward (``up``) and backward (``down``) scripts.

    Filled in while scanning; a migration is only complete once both
    scripts hold SQL.
    """

    version: int
    name: str
    up_script: str = ""
    down_script: str = ""
    up_path: Optional[Path] = field(default=None, compare=False)
    down_path: Optional[Path] = field(default=None, compare=False)

    def script(self, direction: str) -> str:
        return self.up_script if direction == UP else self.down_script

    def has_script(self, direction: str) -> bool:
        """True when the script for ``direction`` is non-empty."""
        return bool(self.script(direction))

    @property
    def is_complete(self) -> bool:
        return self.has_script(UP) and self.has_script(DOWN)

    @property
    def label(self) -> str:
        return f"{self.version}.{self.name}"


@dataclass(frozen=True)
class LedgerEntry:
    """A row of the migration ledger table."""

    id: int
    version: int
    name: str
