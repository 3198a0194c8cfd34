"""
Store container: owns the database handle and keeps its schema current.
"""

from types import TracebackType
from typing import Any

from loguru import logger

from pysqlstore.storage.base import Database
from pysqlstore.storage.config import config_to_database
from pysqlstore.storage.migrations.base import AppliedMigration, MigrationRegistry, StoreContext
from pysqlstore.storage.migrations.dialect import Dialect
from pysqlstore.storage.migrations.runner import UpgradeRunner
from pysqlstore.storage.migrations.steps import build_default_registry
from pysqlstore.storage.migrations.version import DEFAULT_VERSION_TABLE


class Container:
    """
    Wraps a database adapter together with the migration registry for it.

    By default ``connect()`` upgrades the schema, so a store is always at the
    latest version once connected.

    Example:
        >>> from pysqlstore.storage.sqlite import SQLiteDatabase
        >>> async with Container(SQLiteDatabase("./keys.db")) as container:
        ...     await container.get_version()
        4
    """

    def __init__(
        self,
        database: Database,
        registry: MigrationRegistry | None = None,
        upgrade_on_connect: bool = True,
        version_table: str = DEFAULT_VERSION_TABLE,
    ) -> None:
        self.database = database
        self.registry = registry if registry is not None else build_default_registry()
        self.upgrade_on_connect = upgrade_on_connect
        self.context = StoreContext(dialect=database.dialect)
        self._runner = UpgradeRunner(
            database,
            self.registry,
            context=self.context,
            version_table=version_table,
        )

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any] | None,
        registry: MigrationRegistry | None = None,
        upgrade_on_connect: bool = True,
        version_table: str = DEFAULT_VERSION_TABLE,
    ) -> "Container":
        """Build a container from a database configuration dict."""
        return cls(
            config_to_database(config),
            registry=registry,
            upgrade_on_connect=upgrade_on_connect,
            version_table=version_table,
        )

    @property
    def dialect(self) -> Dialect:
        return self.database.dialect

    async def connect(self) -> None:
        await self.database.connect()
        if self.upgrade_on_connect:
            try:
                await self.upgrade()
            except BaseException:
                await self.database.disconnect()
                raise

    async def disconnect(self) -> None:
        await self.database.disconnect()

    async def upgrade(self) -> list[AppliedMigration]:
        """Upgrade the database from its current to the latest version."""
        applied = await self._runner.upgrade()
        if applied:
            logger.info(
                f"Upgraded {self.dialect.value} database to v{applied[-1].version} "
                f"({len(applied)} migration(s) applied)"
            )
        return applied

    async def get_version(self) -> int:
        return await self._runner.get_version()

    def get_latest_version(self) -> int:
        return self.registry.get_latest_version()

    async def __aenter__(self) -> "Container":
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.disconnect()
