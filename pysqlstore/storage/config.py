"""
Database adapter configuration utilities.

Serializes database adapters to plain configuration dicts and recreates them,
so settings can come from YAML files, environment-driven CLI options or other
processes.
"""

from typing import Any

from pysqlstore.core.exceptions import ConfigurationError
from pysqlstore.storage.base import Database
from pysqlstore.storage.migrations.dialect import Dialect

DEFAULT_SQLITE_PATH = "./pysqlstore.db"


def database_to_config(database: Database | None) -> dict[str, Any] | None:
    """
    Serialize a database adapter to a configuration dict.

    Example:
        >>> from pysqlstore.storage.sqlite import SQLiteDatabase
        >>> database_to_config(SQLiteDatabase(db_path="./keys.db"))
        {'type': 'sqlite', 'path': './keys.db'}
    """
    if database is None:
        return None

    if database.dialect is Dialect.SQLITE:
        return {"type": "sqlite", "path": str(getattr(database, "db_path", DEFAULT_SQLITE_PATH))}

    config: dict[str, Any] = {"type": "postgres"}
    dsn = getattr(database, "dsn", None)
    if dsn:
        config["dsn"] = dsn
    else:
        for key in ("host", "port", "user", "password", "database"):
            config[key] = getattr(database, key)
    return config


def config_to_database(config: dict[str, Any] | None = None) -> Database:
    """
    Create a database adapter from a configuration dict.

    Args:
        config: Dict with ``type`` ("sqlite", "postgres" or a driver alias
            such as "pgx") and adapter parameters. None gives the default
            SQLite database.

    Raises:
        ConfigurationError: If the type is unknown or parameters are invalid
    """
    if not config:
        from pysqlstore.storage.sqlite import SQLiteDatabase

        return SQLiteDatabase(db_path=DEFAULT_SQLITE_PATH)

    dialect = Dialect.from_name(str(config.get("type", "sqlite")))

    if dialect is Dialect.SQLITE:
        from pysqlstore.storage.sqlite import SQLiteDatabase

        return SQLiteDatabase(db_path=config.get("path") or DEFAULT_SQLITE_PATH)

    from pysqlstore.storage.postgres import PostgresDatabase

    params = {
        key: config[key]
        for key in ("host", "port", "user", "password", "database", "min_pool_size", "max_pool_size")
        if key in config
    }
    if "port" in params:
        try:
            params["port"] = int(params["port"])
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid PostgreSQL port: {params['port']}") from e
    return PostgresDatabase(dsn=config.get("dsn"), **params)
