"""
Declarative schema metadata consumed by migration steps.

Tables and added columns are described as data and rendered to DDL for the
connected dialect when the step runs. The structural rules of the key store
live here as constraints enforced by the database itself:

- binary columns holding keys, signatures and hashes are CHECKed to their
  exact byte length
- child tables reference the device row with ON DELETE/UPDATE CASCADE, so
  removing a device removes its keys, sessions and state in the same
  statement
"""

from dataclasses import dataclass
from enum import Enum

from pysqlstore.core.exceptions import UnsupportedDialectError
from pysqlstore.storage.migrations.dialect import Dialect


class ColumnType(Enum):
    """Portable column types."""

    TEXT = "text"
    VARCHAR = "varchar"
    INTEGER = "integer"
    BIGINT = "bigint"
    BLOB = "blob"
    BOOLEAN = "boolean"


_TYPE_NAMES: dict[Dialect, dict[ColumnType, str]] = {
    Dialect.SQLITE: {
        ColumnType.TEXT: "TEXT",
        ColumnType.VARCHAR: "VARCHAR(255)",
        ColumnType.INTEGER: "INTEGER",
        ColumnType.BIGINT: "BIGINT",
        ColumnType.BLOB: "BLOB",
        ColumnType.BOOLEAN: "BOOLEAN",
    },
    Dialect.POSTGRES: {
        ColumnType.TEXT: "TEXT",
        ColumnType.VARCHAR: "VARCHAR(255)",
        ColumnType.INTEGER: "INTEGER",
        ColumnType.BIGINT: "BIGINT",
        ColumnType.BLOB: "BYTEA",
        ColumnType.BOOLEAN: "BOOLEAN",
    },
}


def type_name(column_type: ColumnType, dialect: Dialect) -> str:
    """Dialect-specific SQL name of a column type."""
    names = _TYPE_NAMES.get(dialect)
    if names is None or column_type not in names:
        raise UnsupportedDialectError(dialect.value)
    return names[column_type]


@dataclass(frozen=True)
class Column:
    """
    A column definition.

    Attributes:
        name: Column name (always quoted when rendered)
        type: Portable column type
        nullable: Whether NULL is allowed
        byte_length: Exact length required for binary values
        value_range: Half-open ``(low, high)`` range for integer values
        default: SQL literal used as DEFAULT
    """

    name: str
    type: ColumnType
    nullable: bool = True
    byte_length: int | None = None
    value_range: tuple[int, int] | None = None
    default: str | None = None

    def render(self, dialect: Dialect) -> str:
        name = dialect.quote(self.name)
        parts = [name, type_name(self.type, dialect)]
        if not self.nullable:
            parts.append("NOT NULL")
        if self.default is not None:
            parts.append(f"DEFAULT {self.default}")
        if self.byte_length is not None:
            parts.append(f"CHECK ( length({name}) = {self.byte_length} )")
        if self.value_range is not None:
            low, high = self.value_range
            parts.append(f"CHECK ( {name} >= {low} AND {name} < {high} )")
        return " ".join(parts)


@dataclass(frozen=True)
class ForeignKey:
    """A named foreign key constraint; cascades by default."""

    name: str
    columns: tuple[str, ...]
    ref_table: str
    ref_columns: tuple[str, ...]
    on_delete: str = "CASCADE"
    on_update: str = "CASCADE"

    def render(self, dialect: Dialect) -> str:
        columns = ", ".join(dialect.quote(c) for c in self.columns)
        ref_columns = ", ".join(dialect.quote(c) for c in self.ref_columns)
        return (
            f"CONSTRAINT {dialect.quote(self.name)} "
            f"FOREIGN KEY ({columns}) "
            f"REFERENCES {dialect.quote(self.ref_table)} ({ref_columns}) "
            f"ON DELETE {self.on_delete} ON UPDATE {self.on_update}"
        )


@dataclass(frozen=True)
class Table:
    """A table created by a migration step."""

    name: str
    columns: tuple[Column, ...]
    primary_key: tuple[str, ...] = ()
    foreign_keys: tuple[ForeignKey, ...] = ()

    def __post_init__(self) -> None:
        known = {c.name for c in self.columns}
        referenced = set(self.primary_key)
        for fk in self.foreign_keys:
            referenced.update(fk.columns)
        missing = referenced - known
        if missing:
            raise ValueError(f"Table {self.name} references unknown columns: {sorted(missing)}")

    def column(self, name: str) -> Column:
        for column in self.columns:
            if column.name == name:
                return column
        raise KeyError(name)

    def render(self, dialect: Dialect) -> str:
        """CREATE TABLE statement for ``dialect``."""
        lines = [column.render(dialect) for column in self.columns]
        if self.primary_key:
            pk = ", ".join(dialect.quote(c) for c in self.primary_key)
            lines.append(f"PRIMARY KEY ({pk})")
        lines.extend(fk.render(dialect) for fk in self.foreign_keys)
        body = ",\n    ".join(lines)
        return f"CREATE TABLE {dialect.quote(self.name)} (\n    {body}\n)"


@dataclass(frozen=True)
class AddColumn:
    """A column added to an existing table."""

    table: str
    column: Column

    def render(self, dialect: Dialect) -> str:
        return f"ALTER TABLE {dialect.quote(self.table)} ADD COLUMN {self.column.render(dialect)}"


SchemaChange = Table | AddColumn
