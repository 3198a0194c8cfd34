"""
Base classes for the schema upgrade engine.

Provides the Migration step type, the StoreContext handed to every step, the
AppliedMigration record and the ordered MigrationRegistry.
"""

from collections.abc import Awaitable, Callable, Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, overload

from pysqlstore.storage.migrations.dialect import Dialect, DialectSQL
from pysqlstore.storage.migrations.schema import SchemaChange

if TYPE_CHECKING:
    from pysqlstore.storage.base import Transaction


@dataclass
class StoreContext:
    """
    Store-level context passed to every migration step.

    Attributes:
        dialect: SQL dialect of the connected database
        data: Scratch space for values one step hands to a later one during
            the same upgrade
    """

    dialect: Dialect
    data: dict[str, Any] = field(default_factory=dict)


StepFunc = Callable[["Transaction", StoreContext], Awaitable[None]]


@dataclass(frozen=True)
class Migration:
    """
    One schema change, moving the database from version ``i`` to ``i + 1``.

    The version is not stored on the step: it is the step's position in the
    registry. A step runs its parts in this order: declarative schema
    changes, then ``up_sql``, then ``up_func``.

    Attributes:
        description: Human-readable description of what the step does
        schema: Tables and columns to create, rendered for the dialect
        up_sql: Plain SQL (same for every dialect) or per-dialect DialectSQL
        up_func: Async function for steps that need Python logic; receives
            the transaction and the StoreContext
    """

    description: str
    schema: tuple[SchemaChange, ...] = ()
    up_sql: str | DialectSQL | None = None
    up_func: StepFunc | None = None

    def __post_init__(self) -> None:
        if not self.schema and not self.up_sql and self.up_func is None:
            raise ValueError("Migration must have schema, up_sql or up_func")

    def statements(self, dialect: Dialect) -> list[str]:
        """
        SQL this step executes for ``dialect``, excluding ``up_func``.

        Raises:
            UnsupportedDialectError: If ``up_sql`` has no variant for the dialect
        """
        statements = [change.render(dialect) for change in self.schema]
        if isinstance(self.up_sql, DialectSQL):
            statements.extend(self.up_sql.for_dialect(dialect))
        elif self.up_sql:
            statements.append(self.up_sql)
        return statements

    async def apply(self, tx: "Transaction", context: StoreContext) -> None:
        """Run the step inside ``tx``. Committing is the caller's job."""
        for sql in self.statements(context.dialect):
            await tx.execute(sql)
        if self.up_func is not None:
            await self.up_func(tx, context)


@dataclass
class AppliedMigration:
    """
    Record of a step applied during an upgrade.

    Attributes:
        version: Version the database reached by applying the step
        applied_at: When the step's transaction committed
        description: Description of the step
    """

    version: int
    applied_at: datetime
    description: str


class MigrationRegistry:
    """
    Ordered, immutable sequence of migration steps.

    Index ``i`` holds the step from version ``i`` to ``i + 1``, so the latest
    version is the registry length. Registries only grow by appending, which
    returns a new registry.
    """

    def __init__(self, migrations: Iterable[Migration] = ()) -> None:
        self._migrations: tuple[Migration, ...] = tuple(migrations)

    def __len__(self) -> int:
        return len(self._migrations)

    def __iter__(self) -> Iterator[Migration]:
        return iter(self._migrations)

    @overload
    def __getitem__(self, index: int) -> Migration: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[Migration, ...]: ...

    def __getitem__(self, index: int | slice) -> Migration | tuple[Migration, ...]:
        return self._migrations[index]

    def __repr__(self) -> str:
        return f"MigrationRegistry(latest_version={len(self)})"

    def extended(self, *migrations: Migration) -> "MigrationRegistry":
        """Return a new registry with ``migrations`` appended."""
        return MigrationRegistry(self._migrations + migrations)

    def get_all(self) -> tuple[Migration, ...]:
        """All steps in application order."""
        return self._migrations

    def get_pending(self, current_version: int) -> list[tuple[int, Migration]]:
        """
        Get the steps that still need to be applied.

        Args:
            current_version: Current schema version (0 if fresh database)

        Returns:
            ``(step_index, migration)`` pairs from ``current_version`` onward
        """
        if current_version < 0:
            raise ValueError("Schema version cannot be negative")
        return list(enumerate(self._migrations))[current_version:]

    def get_latest_version(self) -> int:
        """Version reached once every step has been applied."""
        return len(self._migrations)

    def get(self, version: int) -> Migration | None:
        """
        Get the step that produces ``version``.

        Returns:
            Migration if 1 <= version <= latest, None otherwise
        """
        if 1 <= version <= len(self._migrations):
            return self._migrations[version - 1]
        return None
