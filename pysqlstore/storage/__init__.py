"""
Storage for pysqlstore.

Database adapters (SQLite built in, PostgreSQL with the ``postgres`` extra),
the store container and the schema upgrade engine.
"""

from pysqlstore.storage.base import Database, Transaction
from pysqlstore.storage.config import config_to_database, database_to_config
from pysqlstore.storage.container import Container
from pysqlstore.storage.sqlite import SQLiteDatabase

__all__ = [
    "Database",
    "Transaction",
    "SQLiteDatabase",
    "Container",
    # Config utilities
    "database_to_config",
    "config_to_database",
]
