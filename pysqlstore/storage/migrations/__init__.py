"""
Versioned schema upgrade engine for pysqlstore databases.

A MigrationRegistry holds the ordered steps; the UpgradeRunner applies the
ones the database has not recorded yet, each in its own transaction together
with the version bump tracked by the VersionStore.
"""

from pysqlstore.storage.migrations.base import (
    AppliedMigration,
    Migration,
    MigrationRegistry,
    StepFunc,
    StoreContext,
)
from pysqlstore.storage.migrations.dialect import Dialect, DialectSQL
from pysqlstore.storage.migrations.runner import UpgradeRunner
from pysqlstore.storage.migrations.schema import AddColumn, Column, ColumnType, ForeignKey, Table
from pysqlstore.storage.migrations.steps import build_default_registry
from pysqlstore.storage.migrations.version import DEFAULT_VERSION_TABLE, VersionStore

__all__ = [
    "AppliedMigration",
    "Migration",
    "MigrationRegistry",
    "StepFunc",
    "StoreContext",
    "Dialect",
    "DialectSQL",
    "UpgradeRunner",
    "VersionStore",
    "DEFAULT_VERSION_TABLE",
    "Table",
    "Column",
    "ColumnType",
    "ForeignKey",
    "AddColumn",
    "build_default_registry",
]
