"""
Unit tests for the migration building blocks.

Tests for Migration, DialectSQL, Dialect and MigrationRegistry.
"""

from datetime import UTC, datetime

import pytest

from pysqlstore.core.exceptions import ConfigurationError, UnsupportedDialectError
from pysqlstore.storage.migrations.base import (
    AppliedMigration,
    Migration,
    MigrationRegistry,
    StoreContext,
)
from pysqlstore.storage.migrations.dialect import Dialect, DialectSQL
from pysqlstore.storage.migrations.schema import Column, ColumnType, Table


class TestMigration:
    """Test Migration dataclass."""

    def test_create_migration_with_sql(self):
        """Test creating a migration with SQL."""
        migration = Migration(description="Create users table", up_sql="CREATE TABLE users (id INT)")

        assert migration.description == "Create users table"
        assert migration.up_sql == "CREATE TABLE users (id INT)"
        assert migration.schema == ()
        assert migration.up_func is None

    def test_create_migration_with_function(self):
        """Test creating a migration with a Python function."""

        async def migrate(tx, context):
            pass

        migration = Migration(description="Complex migration", up_func=migrate)

        assert migration.up_sql is None
        assert migration.up_func is migrate

    def test_migration_requires_something_to_do(self):
        """Test that an empty migration is rejected."""
        with pytest.raises(ValueError, match="must have schema, up_sql or up_func"):
            Migration(description="Invalid migration")

    def test_statements_render_schema_then_sql(self):
        """Test statement order: declarative schema first, then up_sql."""
        table = Table(name="t", columns=(Column("id", ColumnType.INTEGER),))
        migration = Migration(description="T", schema=(table,), up_sql="INSERT INTO t VALUES (1)")

        statements = migration.statements(Dialect.SQLITE)

        assert len(statements) == 2
        assert statements[0].startswith('CREATE TABLE "t"')
        assert statements[1] == "INSERT INTO t VALUES (1)"

    def test_statements_select_dialect_variant(self):
        """Test that DialectSQL picks the variant for the dialect."""
        migration = Migration(
            description="Backfill",
            up_sql=DialectSQL.of(sqlite="UPDATE t SET c = a || b", postgres="UPDATE t SET c = concat(a, b)"),
        )

        assert migration.statements(Dialect.SQLITE) == ["UPDATE t SET c = a || b"]
        assert migration.statements(Dialect.POSTGRES) == ["UPDATE t SET c = concat(a, b)"]

    def test_statements_fail_closed_for_missing_dialect(self):
        """Test that a step without a variant for the dialect is an error."""
        migration = Migration(description="Postgres only", up_sql=DialectSQL.of(postgres="SELECT 1"))

        with pytest.raises(UnsupportedDialectError, match="sqlite"):
            migration.statements(Dialect.SQLITE)

    @pytest.mark.asyncio
    async def test_apply_runs_statements_then_function(self, fake_database):
        """Test that apply executes SQL and then calls up_func with the context."""
        calls = []

        async def migrate(tx, context):
            calls.append((tx, context.dialect))
            await tx.execute("UPDATE t SET x = 1")

        migration = Migration(description="Both", up_sql="ALTER TABLE t ADD COLUMN x INTEGER", up_func=migrate)
        tx = await fake_database.begin()

        await migration.apply(tx, StoreContext(dialect=Dialect.SQLITE))

        assert [sql for sql, _ in tx.statements] == [
            "ALTER TABLE t ADD COLUMN x INTEGER",
            "UPDATE t SET x = 1",
        ]
        assert calls == [(tx, Dialect.SQLITE)]


class TestDialect:
    """Test Dialect resolution and helpers."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("sqlite", Dialect.SQLITE),
            ("sqlite3", Dialect.SQLITE),
            ("postgres", Dialect.POSTGRES),
            ("PostgreSQL", Dialect.POSTGRES),
            ("pgx", Dialect.POSTGRES),
            ("asyncpg", Dialect.POSTGRES),
        ],
    )
    def test_from_name(self, name, expected):
        assert Dialect.from_name(name) is expected

    def test_from_name_accepts_member(self):
        assert Dialect.from_name(Dialect.POSTGRES) is Dialect.POSTGRES

    def test_from_name_unknown(self):
        with pytest.raises(ConfigurationError, match="Unknown SQL dialect: mysql"):
            Dialect.from_name("mysql")

    def test_placeholders(self):
        assert Dialect.SQLITE.placeholder(1) == "?"
        assert Dialect.POSTGRES.placeholder(1) == "$1"
        assert Dialect.POSTGRES.placeholder(3) == "$3"

    def test_placeholder_without_entry_fails_closed(self, monkeypatch):
        from pysqlstore.storage.migrations import dialect as dialect_module

        monkeypatch.delitem(dialect_module._PLACEHOLDERS, Dialect.SQLITE)

        with pytest.raises(UnsupportedDialectError, match="sqlite"):
            Dialect.SQLITE.placeholder(1)

    def test_quote_escapes_double_quotes(self):
        assert Dialect.SQLITE.quote("key") == '"key"'
        assert Dialect.POSTGRES.quote('we"ird') == '"we""ird"'


class TestDialectSQL:
    """Test DialectSQL."""

    def test_of_accepts_lists(self):
        sql = DialectSQL.of(postgres=["UPDATE t SET a = 1", "ALTER TABLE t ALTER COLUMN a SET NOT NULL"])

        assert sql.for_dialect(Dialect.POSTGRES) == (
            "UPDATE t SET a = 1",
            "ALTER TABLE t ALTER COLUMN a SET NOT NULL",
        )
        assert sql.dialects == frozenset({Dialect.POSTGRES})

    def test_of_rejects_unknown_dialect_name(self):
        with pytest.raises(ValueError):
            DialectSQL.of(mysql="SELECT 1")


class TestMigrationRegistry:
    """Test MigrationRegistry."""

    def _registry(self, count: int) -> MigrationRegistry:
        return MigrationRegistry(
            Migration(description=f"V{i + 1}", up_sql=f"SELECT {i + 1}") for i in range(count)
        )

    def test_registry_is_ordered_by_position(self):
        """Test that position i is the step from version i to i + 1."""
        registry = self._registry(3)

        assert len(registry) == 3
        assert [m.description for m in registry] == ["V1", "V2", "V3"]
        assert registry[0].description == "V1"
        assert registry.get(1).description == "V1"
        assert registry.get(3).description == "V3"

    def test_get_pending_returns_newer_migrations(self):
        """Test that get_pending returns steps from the current version onward."""
        registry = self._registry(3)

        pending = registry.get_pending(1)

        assert [(i, m.description) for i, m in pending] == [(1, "V2"), (2, "V3")]

    def test_get_pending_with_fresh_database(self):
        registry = self._registry(2)

        assert [i for i, _ in registry.get_pending(0)] == [0, 1]

    def test_get_pending_with_fully_migrated_database(self):
        registry = self._registry(2)

        assert registry.get_pending(2) == []
        assert registry.get_pending(5) == []

    def test_get_pending_rejects_negative_version(self):
        with pytest.raises(ValueError, match="cannot be negative"):
            self._registry(1).get_pending(-1)

    def test_get_latest_version(self):
        assert MigrationRegistry().get_latest_version() == 0
        assert self._registry(4).get_latest_version() == 4

    def test_get_out_of_range(self):
        registry = self._registry(2)

        assert registry.get(0) is None
        assert registry.get(3) is None

    def test_extended_appends_without_mutating(self):
        """Test that extending returns a new registry and leaves the original intact."""
        registry = self._registry(2)
        extra = Migration(description="V3", up_sql="SELECT 3")

        extended = registry.extended(extra)

        assert len(registry) == 2
        assert len(extended) == 3
        assert extended[2] is extra
        assert extended.get_all()[:2] == registry.get_all()

    def test_registry_has_no_mutators(self):
        registry = self._registry(1)

        assert not hasattr(registry, "register")
        with pytest.raises(TypeError):
            registry[0] = Migration(description="X", up_sql="SELECT 1")  # type: ignore[index]


class TestAppliedMigration:
    """Test AppliedMigration dataclass."""

    def test_create_applied_migration(self):
        now = datetime.now(UTC)
        applied = AppliedMigration(version=1, applied_at=now, description="Test migration")

        assert applied.version == 1
        assert applied.applied_at == now
        assert applied.description == "Test migration"
