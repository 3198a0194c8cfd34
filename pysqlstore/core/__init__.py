"""Core types shared across pysqlstore."""

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

__all__ = [
    "PySqlStoreError",
    "ConfigurationError",
    "DatabaseError",
    "MigrationError",
    "InitializationError",
    "StepExecutionError",
    "UnsupportedDialectError",
    "VersionPersistError",
    "TransactionError",
]
