"""Database adapter factory for the CLI."""

from typing import Any, Dict, Optional

from loguru import logger

from pysqlstore.storage.base import Database
from pysqlstore.storage.config import config_to_database
from pysqlstore.storage.migrations.dialect import Dialect


def create_database(
    db_type: Optional[str] = None,
    path: Optional[str] = None,
    dsn: Optional[str] = None,
    config: Optional[Dict[str, Any]] = None,
) -> Database:
    """
    Create a database adapter from CLI options and configuration.

    Configuration priority:
    1. CLI flags (db_type, path, dsn arguments)
    2. Environment variables (handled by Click)
    3. Config file (config dict, the ``database`` section)
    4. Default (SQLite at ./pysqlstore.db)

    Examples:
        database = create_database(db_type="sqlite", path="./keys.db")
        database = create_database(dsn="postgresql://localhost/keys")
    """
    database_config: Dict[str, Any] = dict(config or {})

    if db_type:
        if db_type != database_config.get("type"):
            database_config = {}
        database_config["type"] = db_type
    elif dsn and Dialect.from_name(str(database_config.get("type", "sqlite"))) is not Dialect.POSTGRES:
        database_config = {"type": "postgres"}

    if path:
        database_config["path"] = path
    if dsn:
        database_config["dsn"] = dsn

    logger.debug(f"Creating database adapter: {database_config.get('type', 'sqlite')}")
    return config_to_database(database_config or None)
