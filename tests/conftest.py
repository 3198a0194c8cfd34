"""Shared fixtures and test doubles for pysqlstore tests."""

from typing import Any

import pytest

from pysqlstore.core.exceptions import DatabaseError
from pysqlstore.storage.base import Database, Transaction
from pysqlstore.storage.migrations.dialect import Dialect
from pysqlstore.storage.sqlite import SQLiteDatabase


class FakeTransaction(Transaction):
    """Records statements; applies them to the fake database only on commit."""

    def __init__(self, database: "FakeDatabase") -> None:
        self.database = database
        self.statements: list[tuple[str, tuple[Any, ...]]] = []
        self.committed = False
        self.rolled_back = False

    @property
    def is_finished(self) -> bool:
        return self.committed or self.rolled_back

    async def execute(self, sql: str, *args: Any) -> None:
        if self.database.fail_on and self.database.fail_on in sql:
            raise DatabaseError(f"fake failure on: {sql}")
        self.statements.append((sql, args))

    async def fetchval(self, sql: str, *args: Any) -> Any:
        return None

    async def fetchall(self, sql: str, *args: Any) -> list[tuple[Any, ...]]:
        return []

    async def commit(self) -> None:
        if self.database.fail_commit:
            raise DatabaseError("fake commit failure")
        self.committed = True
        self.database.committed.extend(sql for sql, _ in self.statements)
        for sql, args in self.statements:
            if sql.startswith("INSERT INTO") and "version" in sql:
                self.database.version = args[0]

    async def rollback(self) -> None:
        if self.database.fail_rollback:
            raise DatabaseError("fake rollback failure")
        self.rolled_back = True


class FakeDatabase(Database):
    """In-memory stand-in for a database adapter."""

    def __init__(self, dialect: Dialect = Dialect.SQLITE) -> None:
        self.dialect = dialect
        self.version: int | None = None
        self.executed: list[str] = []
        self.committed: list[str] = []
        self.transactions: list[FakeTransaction] = []
        self.fail_on: str | None = None
        self.fail_begin = False
        self.fail_commit = False
        self.fail_rollback = False
        self.fail_read = False
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    async def execute(self, sql: str, *args: Any) -> None:
        if self.fail_on and self.fail_on in sql:
            raise DatabaseError(f"fake failure on: {sql}")
        self.executed.append(sql)

    async def fetchval(self, sql: str, *args: Any) -> Any:
        if self.fail_read:
            raise DatabaseError("fake read failure")
        return self.version

    async def fetchall(self, sql: str, *args: Any) -> list[tuple[Any, ...]]:
        return []

    async def begin(self) -> FakeTransaction:
        if self.fail_begin:
            raise DatabaseError("fake begin failure")
        tx = FakeTransaction(self)
        self.transactions.append(tx)
        return tx


@pytest.fixture
def fake_database():
    """Fake SQLite-dialect database."""
    return FakeDatabase()


@pytest.fixture
def fake_postgres_database():
    """Fake Postgres-dialect database."""
    return FakeDatabase(Dialect.POSTGRES)


@pytest.fixture
async def sqlite_database(tmp_path):
    """Connected SQLite database in a temporary directory."""
    database = SQLiteDatabase(db_path=str(tmp_path / "store.db"))
    await database.connect()
    yield database
    await database.disconnect()
