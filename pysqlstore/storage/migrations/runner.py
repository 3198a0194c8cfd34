"""
Upgrade runner: brings a database from its stored version to the latest one.

Each step runs in its own transaction together with the version bump that
records it, so durable storage never holds a step's effect without its
version or a version without its effect. The stored version is the only
progress marker, which makes a failed upgrade resumable by calling
``upgrade()`` again.
"""

from datetime import UTC, datetime

from loguru import logger

from pysqlstore.core.exceptions import (
    DatabaseError,
    MigrationError,
    StepExecutionError,
    TransactionError,
)
from pysqlstore.observability.logging import migration_logging_context
from pysqlstore.storage.base import Database, Transaction
from pysqlstore.storage.migrations.base import (
    AppliedMigration,
    Migration,
    MigrationRegistry,
    StoreContext,
)
from pysqlstore.storage.migrations.version import DEFAULT_VERSION_TABLE, VersionStore


class UpgradeRunner:
    """
    Applies pending migration steps in registry order.

    The runner is not safe to call concurrently from several processes
    against one database; callers that share a database must serialize
    ``upgrade()`` themselves.
    """

    def __init__(
        self,
        database: Database,
        registry: MigrationRegistry,
        context: StoreContext | None = None,
        version_store: VersionStore | None = None,
        version_table: str = DEFAULT_VERSION_TABLE,
    ) -> None:
        """
        Initialize the upgrade runner.

        Args:
            database: Connected database adapter
            registry: Steps defining every known version
            context: Context handed to steps (defaults to the database dialect)
            version_store: Version tracking (defaults to a VersionStore on
                ``version_table``)
            version_table: Name of the version table
        """
        self.database = database
        self.registry = registry
        self.context = context or StoreContext(dialect=database.dialect)
        self.version_store = version_store or VersionStore(database, version_table)

    async def get_version(self) -> int:
        return await self.version_store.get_version()

    async def upgrade(self) -> list[AppliedMigration]:
        """
        Upgrade the database to the latest registered version.

        Returns:
            Steps applied by this call, in order (empty if already up to date)

        Raises:
            InitializationError: If the stored version cannot be read
            StepExecutionError: If a step fails (its transaction is rolled back)
            VersionPersistError: If the new version cannot be written
            TransactionError: If a transaction cannot be started, committed or
                rolled back
        """
        version = await self.version_store.get_version()
        latest = self.registry.get_latest_version()

        if version > latest:
            logger.warning(
                f"Database schema is at v{version}, newer than the latest known v{latest}"
            )
            return []
        if version == latest:
            logger.debug(f"Database schema is up to date (v{version})")
            return []

        applied: list[AppliedMigration] = []
        for step, migration in self.registry.get_pending(version):
            with migration_logging_context(
                self.database.dialect.value, step + 1, migration.description
            ):
                await self._apply(step, migration)
            applied.append(
                AppliedMigration(
                    version=step + 1,
                    applied_at=datetime.now(UTC),
                    description=migration.description,
                )
            )
        return applied

    async def _apply(self, step: int, migration: Migration) -> None:
        """Apply one step and its version bump atomically."""
        try:
            tx = await self.database.begin()
        except DatabaseError as e:
            raise TransactionError(
                f"Failed to begin transaction for v{step + 1}: {e}", step=step
            ) from e

        logger.info(f"Upgrading database to v{step + 1}: {migration.description}")
        try:
            await self._run_step(tx, step, migration)
            await self.version_store.set_version(tx, step + 1)
        except BaseException:
            await self._rollback(tx, step)
            raise

        try:
            await tx.commit()
        except DatabaseError as e:
            await self._rollback(tx, step, after_commit_failure=True)
            raise TransactionError(f"Failed to commit v{step + 1}: {e}", step=step) from e

    async def _run_step(self, tx: Transaction, step: int, migration: Migration) -> None:
        try:
            await migration.apply(tx, self.context)
        except StepExecutionError as e:
            e.step = step
            raise
        except MigrationError as e:
            if e.step is None:
                e.step = step
            raise
        except Exception as e:
            raise StepExecutionError(
                f"Migration to v{step + 1} ({migration.description}) failed: {e}", step=step
            ) from e

    async def _rollback(
        self, tx: Transaction, step: int, after_commit_failure: bool = False
    ) -> None:
        if tx.is_finished:
            return
        logger.warning(f"Rolling back migration to v{step + 1}")
        try:
            await tx.rollback()
        except DatabaseError as e:
            if after_commit_failure:
                logger.critical(
                    f"Commit of v{step + 1} failed and rollback failed too; "
                    f"database state may not match the recorded version: {e}"
                )
            raise TransactionError(
                f"Failed to roll back migration to v{step + 1}: {e}", step=step
            ) from e
