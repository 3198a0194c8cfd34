"""
pysqlstore - SQL-backed key store with a self-upgrading schema

Persists device key material and protocol state in SQLite or PostgreSQL and
brings the schema up to the latest version on startup, one atomic step at a
time.

Quick Start:
    >>> from pysqlstore import Container, SQLiteDatabase
    >>>
    >>> container = Container(SQLiteDatabase("./keys.db"))
    >>> await container.connect()  # applies pending migrations
    >>> await container.get_version()
    4
"""

__version__ = "0.1.0"

# Configuration
from pysqlstore.config import configure, get_config, get_container, reset_config

# Exceptions
from pysqlstore.core.exceptions import (
    ConfigurationError,
    DatabaseError,
    InitializationError,
    MigrationError,
    PySqlStoreError,
    StepExecutionError,
    TransactionError,
    UnsupportedDialectError,
    VersionPersistError,
)

# Storage
from pysqlstore.storage import (
    Container,
    Database,
    SQLiteDatabase,
    Transaction,
    config_to_database,
    database_to_config,
)

# Upgrade engine
from pysqlstore.storage.migrations import (
    AppliedMigration,
    Dialect,
    DialectSQL,
    Migration,
    MigrationRegistry,
    StoreContext,
    UpgradeRunner,
    VersionStore,
    build_default_registry,
)

# Logging
from pysqlstore.observability import configure_logging, configure_logging_from_env, get_logger

__all__ = [
    "__version__",
    # Configuration
    "configure",
    "get_config",
    "get_container",
    "reset_config",
    # Exceptions
    "PySqlStoreError",
    "ConfigurationError",
    "DatabaseError",
    "MigrationError",
    "InitializationError",
    "StepExecutionError",
    "UnsupportedDialectError",
    "VersionPersistError",
    "TransactionError",
    # Storage
    "Database",
    "Transaction",
    "SQLiteDatabase",
    "Container",
    "config_to_database",
    "database_to_config",
    # Upgrade engine
    "AppliedMigration",
    "Dialect",
    "DialectSQL",
    "Migration",
    "MigrationRegistry",
    "StoreContext",
    "UpgradeRunner",
    "VersionStore",
    "build_default_registry",
    # Logging
    "configure_logging",
    "configure_logging_from_env",
    "get_logger",
]
