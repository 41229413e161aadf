"""
schemashift configuration loader.

Settings come from, later overriding earlier:
1. Defaults (``MigrateConfig`` field defaults)
2. YAML file (``schemashift.yaml`` in the working directory, or an explicit path)
3. ``.env`` file (only ``SHIFT_*`` keys)
4. Environment variables (``SHIFT_*``)
5. Explicit overrides (CLI flags)
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from .faults.domains import ConfigInvalidFault, ConfigMissingFault

logger = logging.getLogger("schemashift.config")

__all__ = ["MigrateConfig", "ConfigLoader", "DEFAULT_CONFIG_FILE"]

DEFAULT_CONFIG_FILE = "schemashift.yaml"


@dataclass
class MigrateConfig:
    """Settings for a migration run."""

    database_url: str = "sqlite:///db.sqlite3"
    migrations_dir: str = "migrations"
    ledger_table: str = "schema_migration"
    connect_retries: int = 3
    connect_retry_delay: float = 0.5

    def validate(self) -> None:
        """
        Raises:
            ConfigMissingFault: A required setting is empty
            ConfigInvalidFault: A setting is out of range
        """
        if not self.database_url:
            raise ConfigMissingFault("database_url")
        if not self.migrations_dir:
            raise ConfigMissingFault("migrations_dir")
        if not self.ledger_table:
            raise ConfigMissingFault("ledger_table")
        if self.connect_retries < 1:
            raise ConfigInvalidFault("connect_retries", "must be at least 1")
        if self.connect_retry_delay < 0:
            raise ConfigInvalidFault("connect_retry_delay", "must not be negative")

    def database_options(self) -> Dict[str, Any]:
        """Keyword options for ``Database(url, **options)``."""
        return {
            "connect_retries": self.connect_retries,
            "connect_retry_delay": self.connect_retry_delay,
        }

    def to_dict(self) -> dict:
        return asdict(self)


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources with precedence:
    overrides > Environment variables > .env file > YAML file > defaults
    """

    def __init__(self, env_prefix: str = "SHIFT_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        path: Optional[Union[str, Path]] = None,
        env_prefix: str = "SHIFT_",
        env_file: Optional[Union[str, Path]] = None,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> "ConfigLoader":
        """
        Load configuration from every source.

        Args:
            path: YAML config file; ``schemashift.yaml`` is used when it
                exists and no path is given
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Highest-precedence values; ``None`` values are ignored

        Returns:
            Configured ConfigLoader instance

        Raises:
            ConfigInvalidFault: Explicit config file missing or malformed
        """
        loader = cls(env_prefix=env_prefix)

        # Step 1: YAML file
        if path is not None:
            config_path = Path(path)
            if not config_path.exists():
                raise ConfigInvalidFault("config", f"file not found: {config_path}")
            loader._load_yaml_file(config_path)
        elif Path(DEFAULT_CONFIG_FILE).exists():
            loader._load_yaml_file(Path(DEFAULT_CONFIG_FILE))

        # Step 2: .env file
        if env_file:
            loader._load_env_file(env_file)

        # Step 3: environment variables
        loader._load_from_env()

        # Step 4: overrides
        if overrides:
            loader._merge_dict(
                loader.config_data,
                {k: v for k, v in overrides.items() if v is not None},
            )

        return loader

    def _load_yaml_file(self, path: Path):
        """Load config from YAML file."""
        import yaml

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigInvalidFault("config", f"{path} is not valid YAML: {exc}") from exc
        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigInvalidFault("config", f"{path} must hold a mapping")
        logger.debug(f"Loaded config file {path}")
        self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: Union[str, Path]):
        """Load config from .env file."""
        from dotenv import dotenv_values

        env_path = Path(path)
        if not env_path.exists():
            logger.debug(f"No .env file at {env_path}")
            return

        for key, value in dotenv_values(env_path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_key(key, value)

    def _load_from_env(self):
        """Load config from environment variables."""
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_key(key, value)

    def _set_key(self, key: str, value: str):
        """Convert SHIFT_DATABASE_URL to database_url."""
        name = key[len(self.env_prefix):].lower()
        # Kept as text; to_config() converts by field type.
        self.config_data[name] = value

    def _merge_dict(self, target: dict, source: Mapping[str, Any]):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self.config_data.get(key, default)

    def to_config(self) -> MigrateConfig:
        """
        Build a validated ``MigrateConfig`` from the merged data.

        Unknown keys are ignored.

        Raises:
            ConfigInvalidFault: A value has the wrong type or range
            ConfigMissingFault: A required value is empty
        """
        known = {f.name: f for f in fields(MigrateConfig)}
        kwargs: Dict[str, Any] = {}

        for key, value in self.config_data.items():
            field_info = known.get(key)
            if field_info is None:
                logger.debug(f"Ignoring unknown config key '{key}'")
                continue
            kwargs[key] = _coerce(key, value, field_info.type)

        config = MigrateConfig(**kwargs)
        config.validate()
        return config

    def to_dict(self) -> dict:
        return dict(self.config_data)


def _coerce(key: str, value: Any, expected: Any) -> Any:
    """Convert ``value`` to the field type named by ``expected``."""
    # Annotations are strings under ``from __future__ import annotations``.
    type_name = expected if isinstance(expected, str) else expected.__name__

    if type_name == "int":
        if isinstance(value, bool):
            raise ConfigInvalidFault(key, f"expected an integer, got {value!r}")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigInvalidFault(key, f"expected an integer, got {value!r}") from None

    if type_name == "float":
        if isinstance(value, bool):
            raise ConfigInvalidFault(key, f"expected a number, got {value!r}")
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ConfigInvalidFault(key, f"expected a number, got {value!r}") from None

    if isinstance(value, (dict, list, bool)) or value is None:
        raise ConfigInvalidFault(key, f"expected a string, got {value!r}")
    return str(value)
