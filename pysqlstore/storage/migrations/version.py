"""
Schema version tracking.

The version table holds a single integer row: the number of migration steps
that have been committed. It is created lazily on first read.
"""

from loguru import logger

from pysqlstore.core.exceptions import DatabaseError, InitializationError, VersionPersistError
from pysqlstore.storage.base import Database, Transaction

DEFAULT_VERSION_TABLE = "sqlstore_version"


class VersionStore:
    """Reads and records the current schema version."""

    def __init__(self, database: Database, table_name: str = DEFAULT_VERSION_TABLE) -> None:
        self.database = database
        self.table_name = table_name

    @property
    def _table(self) -> str:
        return self.database.dialect.quote(self.table_name)

    async def ensure_table(self) -> None:
        """Create the version table if it does not exist."""
        try:
            await self.database.execute(f"CREATE TABLE IF NOT EXISTS {self._table} (version INTEGER)")
        except DatabaseError as e:
            raise InitializationError(f"Failed to create version table {self.table_name}: {e}") from e

    async def get_version(self) -> int:
        """
        Get the current schema version.

        Returns:
            Stored version, or 0 if the table holds no row yet

        Raises:
            InitializationError: If the table cannot be created or read
        """
        await self.ensure_table()
        try:
            version = await self.database.fetchval(f"SELECT version FROM {self._table} LIMIT 1")
        except DatabaseError as e:
            raise InitializationError(f"Failed to read schema version: {e}") from e

        if version is None:
            logger.debug(f"No schema version recorded in {self.table_name}, assuming 0")
            return 0
        try:
            return int(version)
        except (TypeError, ValueError) as e:
            raise InitializationError(
                f"Stored schema version {version!r} in {self.table_name} is not an integer"
            ) from e

    async def set_version(self, tx: Transaction, version: int) -> None:
        """
        Replace the stored version inside ``tx``.

        The row is deleted and re-inserted, which handles the empty and
        one-row table the same way.

        Raises:
            VersionPersistError: If either statement fails
        """
        if version < 0:
            raise VersionPersistError(f"Schema version cannot be negative: {version}")
        placeholder = self.database.dialect.placeholder(1)
        try:
            await tx.execute(f"DELETE FROM {self._table}")
            await tx.execute(f"INSERT INTO {self._table} (version) VALUES ({placeholder})", version)
        except DatabaseError as e:
            raise VersionPersistError(
                f"Failed to record schema version {version}: {e}", step=version - 1
            ) from e
