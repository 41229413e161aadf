"""
schemashift Migration Set Validator.
"""

from __future__ import annotations

import logging
from typing import List, Mapping

from ..faults.domains import IncompleteMigrationFault, MigrationSetInvalidFault
from .models import DOWN, UP, Migration

logger = logging.getLogger("schemashift.migrations.validator")

__all__ = ["validate_migrations"]


def validate_migrations(migrations: Mapping[int, Migration]) -> None:
    """
    Check that every migration has both an ``up`` and a ``down`` script.

    All migrations are checked; every missing script is reported.

    Raises:
        MigrationSetInvalidFault: One ``IncompleteMigrationFault`` per
            missing script, in ascending version order
    """
    faults: List[IncompleteMigrationFault] = []
    for version in sorted(migrations):
        migration = migrations[version]
        for direction in (UP, DOWN):
            if not migration.has_script(direction):
                faults.append(IncompleteMigrationFault(migration.name, version, direction))

    if faults:
        logger.error(f"Migration set is invalid: {len(faults)} script(s) missing")
        raise MigrationSetInvalidFault(faults)
