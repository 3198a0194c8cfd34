"""
Exception classes for pysqlstore.

Migration errors carry the registry position of the step that was running
(``step``), so a failed upgrade can always be traced back to the exact
transition that did not complete. Driver errors are never raised directly;
they are translated into ``DatabaseError`` by the database adapters and
chained (``raise ... from exc``) into the migration errors below.
"""


class PySqlStoreError(Exception):
    """Base exception for all pysqlstore errors."""

    pass


class ConfigurationError(PySqlStoreError):
    """Raised for invalid configuration (unknown options, dialects, backends)."""

    pass


class DatabaseError(PySqlStoreError):
    """
    Error raised by a database adapter.

    Wraps the underlying driver exception (sqlite3/aiosqlite or asyncpg),
    which remains available as ``__cause__``.
    """

    pass


class MigrationError(PySqlStoreError):
    """
    Base exception for failures during a schema upgrade.

    Attributes:
        step: 0-indexed registry position of the step being applied, or None
            if the failure happened before any step was selected.
    """

    def __init__(self, message: str, step: int | None = None) -> None:
        super().__init__(message)
        self.step = step

    @property
    def target_version(self) -> int | None:
        """Version the failed step would have produced."""
        return None if self.step is None else self.step + 1


class InitializationError(MigrationError):
    """Failure creating or reading the version-tracking table."""

    pass


class StepExecutionError(MigrationError):
    """A migration step's SQL or Python logic failed."""

    pass


class UnsupportedDialectError(StepExecutionError):
    """
    A step has no SQL variant for the connected dialect.

    Steps fail closed: no compatible syntax is guessed.
    """

    def __init__(self, dialect: object, step: int | None = None) -> None:
        super().__init__(f"Dialect '{dialect}' is not supported by this migration step", step=step)
        self.dialect = dialect


class VersionPersistError(MigrationError):
    """Failure writing the new schema version."""

    pass


class TransactionError(MigrationError):
    """Failure beginning, committing or rolling back a step's transaction."""

    pass
