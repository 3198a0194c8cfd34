"""
Integration tests for the schema upgrade engine.

Runs registries against real SQLite databases and checks which effects are
durable after successful and failed upgrades.
"""

import pytest

from pysqlstore.core.exceptions import DatabaseError, StepExecutionError
from pysqlstore.storage.container import Container
from pysqlstore.storage.migrations.base import Migration, MigrationRegistry
from pysqlstore.storage.migrations.dialect import Dialect, DialectSQL
from pysqlstore.storage.migrations.runner import UpgradeRunner
from pysqlstore.storage.migrations.schema import AddColumn, Column, ColumnType, Table
from pysqlstore.storage.migrations.steps import (
    DEVICE_TABLE,
    IDENTITY_KEYS_TABLE,
    SESSIONS_TABLE,
    build_default_registry,
)
from pysqlstore.storage.sqlite import SQLiteDatabase


async def _table_exists(database, name: str) -> bool:
    return (
        await database.fetchval(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?", name
        )
        is not None
    )


async def _columns(database, table: str) -> list[str]:
    rows = await database.fetchall(f'PRAGMA table_info("{table}")')
    return [row[1] for row in rows]


# A two-step registry: create a table, then add a derived column and backfill
# it from existing rows with dialect-specific string functions.
CREATE_PEOPLE = Migration(
    description="Create people",
    schema=(
        Table(
            name="people",
            columns=(
                Column("id", ColumnType.INTEGER),
                Column("first", ColumnType.TEXT, nullable=False),
                Column("last", ColumnType.TEXT, nullable=False),
            ),
            primary_key=("id",),
        ),
    ),
    up_sql="INSERT INTO people (id, first, last) VALUES (1, 'Ada', 'Lovelace'), (2, 'Alan', 'Turing')",
)

ADD_FULL_NAME = Migration(
    description="Add full_name",
    schema=(AddColumn(table="people", column=Column("full_name", ColumnType.TEXT)),),
    up_sql=DialectSQL.of(
        sqlite="UPDATE people SET full_name = first || ' ' || last",
        postgres="UPDATE people SET full_name = concat(first, ' ', last)",
    ),
)


async def _always_fails(tx, context):
    await tx.execute("CREATE TABLE half_done (a INTEGER)")
    await tx.execute("ALTER TABLE people ADD COLUMN nickname TEXT")
    raise RuntimeError("step B is broken")


FAILING_STEP = Migration(description="Always fails", up_func=_always_fails)


class TestUpgradeScenarios:
    """End-to-end scenarios on SQLite."""

    @pytest.mark.asyncio
    async def test_create_then_backfill(self, sqlite_database):
        """Test create table + add column with backfill reaches v2 with populated column."""
        runner = UpgradeRunner(sqlite_database, MigrationRegistry([CREATE_PEOPLE, ADD_FULL_NAME]))

        applied = await runner.upgrade()

        assert [a.version for a in applied] == [1, 2]
        assert await runner.get_version() == 2
        assert "full_name" in await _columns(sqlite_database, "people")
        rows = await sqlite_database.fetchall("SELECT id, full_name FROM people ORDER BY id")
        assert rows == [(1, "Ada Lovelace"), (2, "Alan Turing")]

    @pytest.mark.asyncio
    async def test_failed_step_leaves_previous_version(self, sqlite_database):
        """Test that a failing second step keeps v1 durable and drops its own effects."""
        runner = UpgradeRunner(sqlite_database, MigrationRegistry([CREATE_PEOPLE, FAILING_STEP]))

        with pytest.raises(StepExecutionError, match="step B is broken") as exc_info:
            await runner.upgrade()

        assert exc_info.value.step == 1
        assert await runner.get_version() == 1
        assert await _table_exists(sqlite_database, "people")
        assert not await _table_exists(sqlite_database, "half_done")
        assert "nickname" not in await _columns(sqlite_database, "people")

    @pytest.mark.asyncio
    async def test_failure_is_idempotent(self, sqlite_database):
        """Test that retrying with the step still broken fails the same way."""
        runner = UpgradeRunner(sqlite_database, MigrationRegistry([CREATE_PEOPLE, FAILING_STEP]))
        with pytest.raises(StepExecutionError):
            await runner.upgrade()

        with pytest.raises(StepExecutionError, match="step B is broken") as exc_info:
            await runner.upgrade()

        assert exc_info.value.step == 1
        assert await runner.get_version() == 1
        assert await sqlite_database.fetchval("SELECT COUNT(*) FROM people") == 2

    @pytest.mark.asyncio
    async def test_fix_and_resume(self, sqlite_database):
        """Test that a fixed registry resumes at the failed step."""
        broken = MigrationRegistry([CREATE_PEOPLE, FAILING_STEP])
        with pytest.raises(StepExecutionError):
            await UpgradeRunner(sqlite_database, broken).upgrade()

        fixed = MigrationRegistry([CREATE_PEOPLE, ADD_FULL_NAME])
        applied = await UpgradeRunner(sqlite_database, fixed).upgrade()

        assert [a.version for a in applied] == [2]
        assert await sqlite_database.fetchval("SELECT COUNT(*) FROM people") == 2

    @pytest.mark.asyncio
    async def test_second_upgrade_is_noop(self, sqlite_database):
        calls = []

        async def counting(tx, context):
            calls.append(1)

        registry = MigrationRegistry([CREATE_PEOPLE, Migration(description="count", up_func=counting)])
        runner = UpgradeRunner(sqlite_database, registry)

        await runner.upgrade()
        assert await runner.upgrade() == []

        assert calls == [1]
        assert await runner.get_version() == 2

    @pytest.mark.asyncio
    async def test_unsupported_dialect_rolls_back(self, sqlite_database):
        postgres_only = Migration(
            description="Postgres only",
            schema=(Table(name="pg_stuff", columns=(Column("a", ColumnType.INTEGER),)),),
            up_sql=DialectSQL.of(postgres="SELECT 1"),
        )
        runner = UpgradeRunner(sqlite_database, MigrationRegistry([postgres_only]))

        with pytest.raises(StepExecutionError):
            await runner.upgrade()

        assert await runner.get_version() == 0
        assert not await _table_exists(sqlite_database, "pg_stuff")

    @pytest.mark.asyncio
    async def test_version_table_holds_single_row(self, sqlite_database):
        runner = UpgradeRunner(sqlite_database, MigrationRegistry([CREATE_PEOPLE, ADD_FULL_NAME]))

        await runner.upgrade()

        assert await sqlite_database.fetchall('SELECT version FROM "sqlstore_version"') == [(2,)]


class TestDefaultSchema:
    """The built-in key store schema on SQLite."""

    @pytest.fixture
    async def container(self, tmp_path):
        container = Container(SQLiteDatabase(db_path=str(tmp_path / "keys.db")))
        await container.connect()
        yield container
        await container.disconnect()

    async def _insert_device(self, database, jid: str, sig_key: bytes | None = b"\x05" * 32) -> None:
        await database.execute(
            f'INSERT INTO "{DEVICE_TABLE}" '
            "(jid, registration_id, noise_key, identity_key, signed_pre_key, signed_pre_key_id, "
            "signed_pre_key_sig, adv_key, adv_details, adv_account_sig, adv_device_sig, "
            "platform, business_name, push_name, adv_account_sig_key) "
            "VALUES (?, 1, ?, ?, ?, 1, ?, ?, ?, ?, ?, 'android', '', 'me', ?)",
            jid,
            b"\x01" * 32,
            b"\x02" * 32,
            b"\x03" * 32,
            b"\x04" * 64,
            b"adv",
            b"details",
            b"\x06" * 64,
            b"\x07" * 64,
            sig_key,
        )

    @pytest.mark.asyncio
    async def test_connect_upgrades_to_latest(self, container):
        assert await container.get_version() == 4
        assert container.get_latest_version() == 4
        for table in ("device", "identity_keys", "sessions", "message_secrets", "privacy_tokens"):
            assert await _table_exists(container.database, f"sqlstore_{table}")

    @pytest.mark.asyncio
    async def test_reconnect_is_noop(self, tmp_path):
        path = str(tmp_path / "keys.db")
        async with Container(SQLiteDatabase(db_path=path)):
            pass

        async with Container(SQLiteDatabase(db_path=path)) as container:
            assert await container.upgrade() == []
            assert await container.get_version() == 4

    @pytest.mark.asyncio
    async def test_key_length_is_enforced(self, container):
        with pytest.raises(DatabaseError, match="CHECK"):
            await self._insert_device(container.database, "1.0:1@s.example", sig_key=b"short")

    @pytest.mark.asyncio
    async def test_deleting_device_cascades(self, container):
        database = container.database
        jid = "1.0:1@s.example"
        await self._insert_device(database, jid)
        await database.execute(
            f'INSERT INTO "{SESSIONS_TABLE}" (our_jid, their_id, session) VALUES (?, ?, ?)',
            jid,
            "peer",
            b"session",
        )
        await database.execute(
            f'INSERT INTO "{IDENTITY_KEYS_TABLE}" (our_jid, their_id, identity) VALUES (?, ?, ?)',
            jid,
            "peer",
            b"\x09" * 32,
        )

        await database.execute(f'DELETE FROM "{DEVICE_TABLE}" WHERE jid = ?', jid)

        assert await database.fetchval(f'SELECT COUNT(*) FROM "{SESSIONS_TABLE}"') == 0
        assert await database.fetchval(f'SELECT COUNT(*) FROM "{IDENTITY_KEYS_TABLE}"') == 0

    @pytest.mark.asyncio
    async def test_child_row_requires_device(self, container):
        with pytest.raises(DatabaseError, match="FOREIGN KEY"):
            await container.database.execute(
                f'INSERT INTO "{SESSIONS_TABLE}" (our_jid, their_id, session) VALUES (?, ?, ?)',
                "nobody",
                "peer",
                b"session",
            )


class TestSignatureKeyBackfill:
    """The v2 backfill against data written at v1."""

    @pytest.mark.asyncio
    async def test_backfill_from_identity_keys(self, sqlite_database):
        """Test that adv_account_sig_key is copied from the device's own identity key."""
        registry = build_default_registry()
        await UpgradeRunner(sqlite_database, MigrationRegistry(registry[:1])).upgrade()

        # their_id of the device's own identity key: JID up to the first "." plus "0"
        devices = {
            "12345.0:7@s.example": "123450",
            "nodot:1@server": "nodot:1@server0",
        }
        for index, (jid, own_id) in enumerate(devices.items()):
            await sqlite_database.execute(
                f'INSERT INTO "{DEVICE_TABLE}" '
                "(jid, registration_id, noise_key, identity_key, signed_pre_key, "
                "signed_pre_key_id, signed_pre_key_sig, adv_key, adv_details, "
                "adv_account_sig, adv_device_sig, platform, business_name, push_name) "
                "VALUES (?, 1, ?, ?, ?, 1, ?, x'00', x'00', ?, ?, 'android', '', 'me')",
                jid,
                b"\x01" * 32,
                b"\x02" * 32,
                b"\x03" * 32,
                b"\x04" * 64,
                b"\x06" * 64,
                b"\x07" * 64,
            )
            await sqlite_database.execute(
                f'INSERT INTO "{IDENTITY_KEYS_TABLE}" (our_jid, their_id, identity) VALUES (?, ?, ?)',
                jid,
                own_id,
                bytes([index]) * 32,
            )
            await sqlite_database.execute(
                f'INSERT INTO "{IDENTITY_KEYS_TABLE}" (our_jid, their_id, identity) VALUES (?, ?, ?)',
                jid,
                "someone-else",
                b"\xff" * 32,
            )

        applied = await UpgradeRunner(sqlite_database, registry).upgrade()

        assert [a.version for a in applied] == [2, 3, 4]
        rows = dict(
            await sqlite_database.fetchall(f'SELECT jid, adv_account_sig_key FROM "{DEVICE_TABLE}"')
        )
        for index, jid in enumerate(devices):
            assert rows[jid] == bytes([index]) * 32
        assert rows["nodot:1@server"] == bytes([1]) * 32

    @pytest.mark.asyncio
    async def test_device_without_identity_key_keeps_null_on_sqlite(self, sqlite_database):
        registry = build_default_registry()
        await UpgradeRunner(sqlite_database, MigrationRegistry(registry[:1])).upgrade()
        await sqlite_database.execute(
            f'INSERT INTO "{DEVICE_TABLE}" '
            "(jid, registration_id, noise_key, identity_key, signed_pre_key, "
            "signed_pre_key_id, signed_pre_key_sig, adv_key, adv_details, "
            "adv_account_sig, adv_device_sig, platform, business_name, push_name) "
            "VALUES ('1.0:1@s.example', 1, ?, ?, ?, 1, ?, x'00', x'00', ?, ?, 'android', '', 'me')",
            b"\x01" * 32,
            b"\x02" * 32,
            b"\x03" * 32,
            b"\x04" * 64,
            b"\x06" * 64,
            b"\x07" * 64,
        )

        await UpgradeRunner(sqlite_database, registry).upgrade()

        assert sqlite_database.dialect is Dialect.SQLITE
        assert await sqlite_database.fetchval(
            f'SELECT adv_account_sig_key FROM "{DEVICE_TABLE}"'
        ) is None
