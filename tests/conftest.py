"""
Shared test fixtures and helpers for the schemashift test suite.
"""

from pathlib import Path
from typing import Optional

import pytest


# ============================================================================
# Migration script helpers
# ============================================================================


def write_migration(
    migrations_dir: Path,
    version: int,
    name: str,
    up: Optional[str] = None,
    down: Optional[str] = None,
) -> None:
    """Write ``<version>.<name>.up.sql`` / ``.down.sql`` (skipped when None)."""
    if up is not None:
        (migrations_dir / f"{version}.{name}.up.sql").write_text(up, encoding="utf-8")
    if down is not None:
        (migrations_dir / f"{version}.{name}.down.sql").write_text(down, encoding="utf-8")


def write_table_migration(migrations_dir: Path, version: int, table: str) -> None:
    """Migration creating ``table`` on the way up and dropping it on the way down."""
    write_migration(
        migrations_dir,
        version,
        f"create_{table}",
        up=f"CREATE TABLE {table} (id INTEGER PRIMARY KEY, label TEXT);",
        down=f"DROP TABLE {table};",
    )


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def migrations_dir(tmp_path) -> Path:
    """Empty migrations directory."""
    path = tmp_path / "migrations"
    path.mkdir()
    return path


@pytest.fixture
def db_url(tmp_path) -> str:
    """URL of a fresh temp SQLite database file."""
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Run in an empty working directory with no SHIFT_* variables set."""
    import os

    for key in list(os.environ):
        if key.startswith("SHIFT_"):
            monkeypatch.delenv(key, raising=False)
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    return workdir
