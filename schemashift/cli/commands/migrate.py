"""
Migration CLI Commands — shift migrate, shift status.

Both commands resolve settings through ``ConfigLoader`` (YAML file,
.env, SHIFT_* environment, then flags) and drive a ``Migrator`` on a
fresh ``Database`` connection.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import click

from ...config import ConfigLoader, MigrateConfig
from ...db import Database
from ...db.backends.postgres import mask_url
from ...migrations import Migration, Migrator
from ..utils.colors import _CHECK, _CIRCLE, bold, bullet, dim, info, kv, success, table, warning

logger = logging.getLogger("schemashift.cli.commands.migrate")


def resolve_config(
    *,
    config_path: Optional[str] = None,
    env_file: Optional[str] = None,
    database_url: Optional[str] = None,
    migrations_dir: Optional[str] = None,
    ledger_table: Optional[str] = None,
) -> MigrateConfig:
    """Merge config sources, with explicit flags taking precedence."""
    loader = ConfigLoader.load(
        path=config_path,
        env_file=env_file,
        overrides={
            "database_url": database_url,
            "migrations_dir": migrations_dir,
            "ledger_table": ledger_table,
        },
    )
    config = loader.to_config()
    logger.debug(
        f"Resolved config: database_url={mask_url(config.database_url)}, "
        f"migrations_dir={config.migrations_dir}, ledger_table={config.ledger_table}"
    )
    return config


def cmd_migrate(
    config: MigrateConfig,
    verbose: bool = False,
    quiet: bool = False,
) -> List[Migration]:
    """
    Apply pending migrations to the database.

    Returns:
        Migrations applied by this run
    """

    async def _run() -> List[Migration]:
        db = Database(config.database_url, **config.database_options())
        await db.connect()
        try:
            migrator = Migrator(db, config.migrations_dir, ledger_table=config.ledger_table)
            return await migrator.run()
        finally:
            await db.disconnect()

    if verbose and not quiet:
        info(f"Database: {mask_url(config.database_url)}")
        info(f"Migrations: {config.migrations_dir} (ledger {config.ledger_table})")

    applied = asyncio.run(_run())

    if not quiet:
        if applied:
            success(f"{_CHECK} Applied {len(applied)} migration(s)")
            for migration in applied:
                bullet(f"{migration.version}  {migration.name}")
                if verbose and migration.up_path is not None:
                    dim(f"      {migration.up_path}")
        else:
            warning("No pending migrations.")
    return applied


def cmd_status(
    config: MigrateConfig,
    verbose: bool = False,
    quiet: bool = False,
) -> Dict[str, Any]:
    """
    Show watermark, applied ledger entries and pending migrations.

    Read-only: the ledger table is not created when missing.
    """

    async def _run() -> Dict[str, Any]:
        db = Database(config.database_url, **config.database_options())
        await db.connect()
        try:
            migrator = Migrator(db, config.migrations_dir, ledger_table=config.ledger_table)
            return await migrator.status()
        finally:
            await db.disconnect()

    status = asyncio.run(_run())

    if not quiet:
        click.echo(bold(f"Migration Status ({config.migrations_dir})"))
        kv("Database", mask_url(config.database_url))
        ledger_label = config.ledger_table
        if not status["ledger_exists"]:
            ledger_label += " (not created yet)"
        kv("Ledger table", ledger_label)
        kv("Watermark", status["watermark"])
        kv("Applied", len(status["applied"]))
        kv("Pending", len(status["pending"]))

        rows = [
            [str(entry.version), entry.name, f"{_CHECK} applied"]
            for entry in status["applied"]
        ]
        rows.extend(
            [str(migration.version), migration.name, f"{_CIRCLE} pending"]
            for migration in status["pending"]
        )
        if rows:
            click.echo()
            table(["Version", "Name", "State"], rows)
        if verbose:
            for migration in status["pending"]:
                dim(f"  {migration.version}: {migration.up_path} / {migration.down_path}")
    return status
