"""
Abstract base classes for database adapters.

All adapters implement this interface so the upgrade engine can run unchanged
against SQLite and PostgreSQL. Driver exceptions are translated into
``DatabaseError`` at this boundary.
"""

from abc import ABC, abstractmethod
from types import TracebackType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pysqlstore.storage.migrations.dialect import Dialect


class Transaction(ABC):
    """
    A single unit of atomicity acquired from a ``Database``.

    A transaction is finished exactly once, by ``commit()`` or ``rollback()``.
    When used as an async context manager it commits on a clean exit and
    rolls back when the block raises.
    """

    @abstractmethod
    async def execute(self, sql: str, *args: Any) -> None:
        """Execute one statement inside the transaction."""
        pass

    @abstractmethod
    async def fetchval(self, sql: str, *args: Any) -> Any:
        """Return the first column of the first row, or None."""
        pass

    @abstractmethod
    async def fetchall(self, sql: str, *args: Any) -> list[tuple[Any, ...]]:
        """Return all rows as tuples."""
        pass

    @abstractmethod
    async def commit(self) -> None:
        pass

    @abstractmethod
    async def rollback(self) -> None:
        pass

    @property
    @abstractmethod
    def is_finished(self) -> bool:
        """True once the transaction was committed or rolled back."""
        pass

    async def __aenter__(self) -> "Transaction":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self.is_finished:
            return
        if exc_type is None:
            await self.commit()
        else:
            await self.rollback()


class Database(ABC):
    """
    Abstract base class for database adapters.

    Adapters own the connection (or pool) and report the SQL dialect their
    engine speaks. Statements passed to them must already use the dialect's
    placeholder style (see ``Dialect.placeholder``).
    """

    dialect: "Dialect"

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        pass

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection or pool."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection or pool. Safe to call when not connected."""
        pass

    @abstractmethod
    async def execute(self, sql: str, *args: Any) -> None:
        """Execute one statement outside any explicit transaction."""
        pass

    @abstractmethod
    async def fetchval(self, sql: str, *args: Any) -> Any:
        """Return the first column of the first row, or None."""
        pass

    @abstractmethod
    async def fetchall(self, sql: str, *args: Any) -> list[tuple[Any, ...]]:
        """Return all rows as tuples."""
        pass

    @abstractmethod
    async def begin(self) -> Transaction:
        """
        Start a new transaction.

        Raises:
            DatabaseError: If the transaction could not be started
        """
        pass
