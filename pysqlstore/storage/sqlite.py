"""
SQLite database adapter using aiosqlite.

The connection is opened in autocommit mode (``isolation_level=None``) so that
transactions are started and finished with explicit BEGIN/COMMIT/ROLLBACK.
This keeps DDL inside the step's transaction; the sqlite3 module's implicit
transaction handling would otherwise only wrap DML statements.
"""

from pathlib import Path
from typing import Any

import aiosqlite
from loguru import logger

from pysqlstore.core.exceptions import DatabaseError
from pysqlstore.storage.base import Database, Transaction
from pysqlstore.storage.migrations.dialect import Dialect

MEMORY_PATH = ":memory:"


class SQLiteTransaction(Transaction):
    """Explicit transaction on the adapter's single connection."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db
        self._finished = False

    @property
    def is_finished(self) -> bool:
        return self._finished

    def _ensure_open(self) -> None:
        if self._finished:
            raise DatabaseError("Transaction already finished")

    async def execute(self, sql: str, *args: Any) -> None:
        self._ensure_open()
        try:
            await self._db.execute(sql, args)
        except aiosqlite.Error as e:
            raise DatabaseError(f"SQLite statement failed: {e}") from e

    async def fetchval(self, sql: str, *args: Any) -> Any:
        self._ensure_open()
        try:
            async with self._db.execute(sql, args) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise DatabaseError(f"SQLite query failed: {e}") from e
        return row[0] if row is not None else None

    async def fetchall(self, sql: str, *args: Any) -> list[tuple[Any, ...]]:
        self._ensure_open()
        try:
            async with self._db.execute(sql, args) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise DatabaseError(f"SQLite query failed: {e}") from e
        return [tuple(row) for row in rows]

    async def commit(self) -> None:
        self._ensure_open()
        try:
            await self._db.execute("COMMIT")
        except aiosqlite.Error as e:
            raise DatabaseError(f"SQLite commit failed: {e}") from e
        self._finished = True

    async def rollback(self) -> None:
        self._ensure_open()
        # A failed COMMIT may already have ended the transaction
        if not self._db.in_transaction:
            self._finished = True
            return
        try:
            await self._db.execute("ROLLBACK")
        except aiosqlite.Error as e:
            raise DatabaseError(f"SQLite rollback failed: {e}") from e
        self._finished = True


class SQLiteDatabase(Database):
    """
    SQLite adapter for embedded, file-based stores.

    Foreign keys are enabled on every connection so cascading deletes of
    device rows are enforced by the engine.
    """

    dialect = Dialect.SQLITE

    def __init__(self, db_path: str = "./pysqlstore.db", timeout: float = 5.0) -> None:
        """
        Initialize SQLite database adapter.

        Args:
            db_path: Path to SQLite database file (":memory:" for a private
                in-memory database)
            timeout: Seconds to wait on a locked database
        """
        self.db_path = db_path
        self.timeout = timeout
        self._db: aiosqlite.Connection | None = None

    @property
    def is_connected(self) -> bool:
        return self._db is not None

    async def connect(self) -> None:
        if self._db is not None:
            return

        if self.db_path != MEMORY_PATH:
            path = Path(self.db_path)
            if path.is_dir():
                raise DatabaseError(f"Failed to open SQLite database {self.db_path}: path is a directory")
            path.parent.mkdir(parents=True, exist_ok=True)

        try:
            db = await aiosqlite.connect(self.db_path, timeout=self.timeout, isolation_level=None)
        except aiosqlite.Error as e:
            raise DatabaseError(f"Failed to open SQLite database {self.db_path}: {e}") from e

        try:
            await db.execute("PRAGMA foreign_keys = ON")
        except aiosqlite.Error as e:
            await db.close()
            raise DatabaseError(f"Failed to open SQLite database {self.db_path}: {e}") from e
        self._db = db

        logger.debug(f"Connected to SQLite database: {self.db_path}")

    async def disconnect(self) -> None:
        if self._db is None:
            return
        await self._db.close()
        self._db = None
        logger.debug(f"Disconnected from SQLite database: {self.db_path}")

    def _ensure_connected(self) -> aiosqlite.Connection:
        if self._db is None:
            raise DatabaseError("Database not connected")
        return self._db

    async def execute(self, sql: str, *args: Any) -> None:
        db = self._ensure_connected()
        try:
            await db.execute(sql, args)
        except aiosqlite.Error as e:
            raise DatabaseError(f"SQLite statement failed: {e}") from e

    async def fetchval(self, sql: str, *args: Any) -> Any:
        db = self._ensure_connected()
        try:
            async with db.execute(sql, args) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise DatabaseError(f"SQLite query failed: {e}") from e
        return row[0] if row is not None else None

    async def fetchall(self, sql: str, *args: Any) -> list[tuple[Any, ...]]:
        db = self._ensure_connected()
        try:
            async with db.execute(sql, args) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise DatabaseError(f"SQLite query failed: {e}") from e
        return [tuple(row) for row in rows]

    async def begin(self) -> SQLiteTransaction:
        db = self._ensure_connected()
        try:
            await db.execute("BEGIN")
        except aiosqlite.Error as e:
            raise DatabaseError(f"SQLite BEGIN failed: {e}") from e
        return SQLiteTransaction(db)
