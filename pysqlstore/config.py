"""
pysqlstore configuration system.

Configuration is loaded in this priority order:
1. Values set via pysqlstore.configure() (highest priority)
2. Values from pysqlstore.config.yaml in current directory
3. Default values

Usage:
    >>> import pysqlstore
    >>> pysqlstore.configure(
    ...     database={"type": "postgres", "dsn": "postgresql://localhost/keys"},
    ...     upgrade_on_connect=True,
    ... )

Example pysqlstore.config.yaml:

    database:
      type: sqlite
      path: ./data/keys.db
    upgrade_on_connect: true
    version_table: sqlstore_version
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional

import yaml

from pysqlstore.core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from pysqlstore.storage.container import Container

CONFIG_FILE_NAME = "pysqlstore.config.yaml"


def _load_yaml_config(config_path: Path | None = None) -> Dict[str, Any]:
    """
    Load configuration from pysqlstore.config.yaml.

    Returns:
        Configuration dictionary, empty dict if file not found

    Raises:
        ConfigurationError: If the file is not valid YAML or not a mapping
    """
    config_path = config_path or Path.cwd() / CONFIG_FILE_NAME
    if not config_path.exists():
        return {}

    try:
        with open(config_path) as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping")
    return config


@dataclass
class PySqlStoreConfig:
    """
    Global configuration for pysqlstore.

    Attributes:
        database: Database config dict (see storage.config.config_to_database)
        upgrade_on_connect: Whether containers upgrade the schema on connect
        version_table: Name of the schema version table
    """

    database: Dict[str, Any] = field(default_factory=lambda: {"type": "sqlite"})
    upgrade_on_connect: bool = True
    version_table: str = "sqlstore_version"


def _config_from_yaml(config_path: Path | None = None) -> PySqlStoreConfig:
    """Create a PySqlStoreConfig from YAML file settings."""
    yaml_config = _load_yaml_config(config_path)
    if not yaml_config:
        return PySqlStoreConfig()

    unknown = set(yaml_config) - set(PySqlStoreConfig.__dataclass_fields__)
    if unknown:
        raise ConfigurationError(f"Unknown config option(s) in YAML: {', '.join(sorted(unknown))}")
    return PySqlStoreConfig(**yaml_config)


# Global singleton
_config: Optional[PySqlStoreConfig] = None


def configure(**kwargs: Any) -> None:
    """
    Configure pysqlstore defaults.

    Args:
        database: Database config dict
        upgrade_on_connect: Whether containers upgrade the schema on connect
        version_table: Name of the schema version table

    Raises:
        ConfigurationError: If an unknown option is passed
    """
    global _config
    if _config is None:
        _config = PySqlStoreConfig()

    for key, value in kwargs.items():
        if hasattr(_config, key):
            setattr(_config, key, value)
        else:
            valid_keys = list(PySqlStoreConfig.__dataclass_fields__.keys())
            raise ConfigurationError(
                f"Unknown config option: {key}. Valid options: {', '.join(valid_keys)}"
            )


def get_config() -> PySqlStoreConfig:
    """
    Get the current configuration.

    If not yet configured, loads from pysqlstore.config.yaml if present,
    otherwise creates default configuration.
    """
    global _config
    if _config is None:
        _config = _config_from_yaml()
    return _config


def reset_config() -> None:
    """
    Reset configuration to defaults.

    Primarily used for testing.
    """
    global _config
    _config = None


def get_container() -> "Container":
    """Build a Container from the current configuration (not yet connected)."""
    from pysqlstore.storage.container import Container

    config = get_config()
    return Container.from_config(
        config.database,
        upgrade_on_connect=config.upgrade_on_connect,
        version_table=config.version_table,
    )
