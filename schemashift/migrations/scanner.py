"""
schemashift Script Scanner — discovers migration scripts on disk.

Script files are named ``<version>.<name>.<direction>.sql``:

    migrations/
        1.create_users.up.sql
        1.create_users.down.sql
        2.add_email.up.sql
        2.add_email.down.sql
        readme.txt              <- ignored

Files without the ``.sql`` extension, and ``.sql`` files that do not
split into exactly four dot-separated segments, are not part of the
migration set and are skipped silently.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Union

from ..faults.domains import (
    DuplicateScriptFault,
    ScriptDirectionFault,
    ScriptDirectoryFault,
    ScriptReadFault,
    ScriptVersionFault,
)
from .models import DOWN, UP, Migration

logger = logging.getLogger("schemashift.migrations.scanner")

__all__ = ["scan_directory", "is_empty_directory", "SCRIPT_EXTENSION"]

SCRIPT_EXTENSION = ".sql"
_DIRECTIONS = (UP, DOWN)


def _list_entries(directory: Path) -> List[os.DirEntry]:
    if not directory.exists():
        raise ScriptDirectoryFault(str(directory), "directory does not exist")
    if not directory.is_dir():
        raise ScriptDirectoryFault(str(directory), "not a directory")
    try:
        with os.scandir(directory) as it:
            entries = list(it)
    except OSError as exc:
        raise ScriptDirectoryFault(str(directory), exc.strerror or str(exc)) from exc
    return sorted(entries, key=lambda entry: entry.name)


def _parse_version(filename: str, segment: str) -> int:
    # int() alone would also accept "+3", " 3" and non-ASCII digits.
    if not (segment.isascii() and segment.isdigit()):
        raise ScriptVersionFault(filename, segment)
    return int(segment)


def _read_script(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ScriptReadFault(path.name, str(exc)) from exc


def is_empty_directory(path: Union[str, Path]) -> bool:
    """
    True when ``path`` holds no entries at all.

    A directory holding only files outside the migration set (a readme,
    subdirectories) is not empty.

    Raises:
        ScriptDirectoryFault: Directory missing or unreadable
    """
    return not _list_entries(Path(path))


def scan_directory(path: Union[str, Path]) -> Dict[int, Migration]:
    """
    Build the migration set found in ``path``.

    Returns:
        Mapping of version -> Migration. Migrations may be incomplete
        (missing a script); validation is a separate step.

    Raises:
        ScriptDirectoryFault: Directory missing or unreadable
        ScriptVersionFault: Version segment is not a non-negative integer
        ScriptDirectionFault: Direction segment is not ``up`` or ``down``
        ScriptReadFault: A script file cannot be read
        DuplicateScriptFault: Two files give the same version and direction
    """
    directory = Path(path)
    entries = _list_entries(directory)

    if not entries:
        logger.debug(f"Migrations directory {directory} is empty")
        return {}

    migrations: Dict[int, Migration] = {}

    for entry in entries:
        filename = entry.name
        if not entry.is_file():
            logger.debug(f"Skipping {filename}: not a regular file")
            continue
        if os.path.splitext(filename)[1] != SCRIPT_EXTENSION:
            logger.debug(f"Skipping {filename}: not a {SCRIPT_EXTENSION} file")
            continue

        parts = filename.split(".")
        if len(parts) != 4:
            logger.debug(f"Skipping {filename}: expected <version>.<name>.<direction>{SCRIPT_EXTENSION}")
            continue

        version = _parse_version(filename, parts[0])
        name, direction = parts[1], parts[2]
        if direction not in _DIRECTIONS:
            raise ScriptDirectionFault(filename, direction)

        script_path = directory / filename
        script = _read_script(script_path)

        migration = migrations.get(version)
        if migration is None:
            if version == 0:
                logger.warning(
                    f"{filename}: version 0 is never above the empty-ledger watermark "
                    f"and will not be applied"
                )
            migration = Migration(version=version, name=name)
            migrations[version] = migration

        existing = migration.up_path if direction == UP else migration.down_path
        if existing is not None:
            raise DuplicateScriptFault(version, direction, [existing.name, filename])

        if name != migration.name:
            kept = name if direction == UP else migration.name
            logger.warning(
                f"Migration version {version} has scripts named '{migration.name}' "
                f"and '{name}'; using '{kept}'"
            )
            migration.name = kept

        if direction == UP:
            migration.up_script = script
            migration.up_path = script_path
        else:
            migration.down_script = script
            migration.down_path = script_path

    logger.debug(f"Found {len(migrations)} migration(s) in {directory}")
    return migrations
