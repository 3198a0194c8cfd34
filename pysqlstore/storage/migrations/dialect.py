"""
SQL dialect handling for migrations.

Migration steps never compare driver names as strings. The connected database
reports a ``Dialect`` member, and anything that differs between engines
(placeholders, type names, step SQL) is looked up by that member. A missing
entry is an error rather than a fallback.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum

from pysqlstore.core.exceptions import ConfigurationError, UnsupportedDialectError


class Dialect(Enum):
    """SQL variant spoken by the underlying database engine."""

    SQLITE = "sqlite"
    POSTGRES = "postgres"

    @classmethod
    def from_name(cls, name: "str | Dialect") -> "Dialect":
        """
        Resolve a dialect from a dialect or driver name.

        Args:
            name: Dialect value ("sqlite", "postgres") or a driver alias
                ("sqlite3", "pgx", "postgresql", "asyncpg")

        Returns:
            Matching Dialect member

        Raises:
            ConfigurationError: If the name is not a known dialect or alias
        """
        if isinstance(name, Dialect):
            return name
        dialect = _ALIASES.get(name.strip().lower())
        if dialect is None:
            raise ConfigurationError(f"Unknown SQL dialect: {name}")
        return dialect

    def placeholder(self, position: int) -> str:
        """Bind parameter marker for the 1-indexed parameter ``position``."""
        try:
            marker = _PLACEHOLDERS[self]
        except KeyError:
            raise UnsupportedDialectError(self.value) from None
        return marker.format(position=position)

    def quote(self, identifier: str) -> str:
        """Quote an identifier so reserved words (key, timestamp) are safe as column names."""
        escaped = identifier.replace('"', '""')
        return f'"{escaped}"'


_ALIASES: dict[str, Dialect] = {
    "sqlite": Dialect.SQLITE,
    "sqlite3": Dialect.SQLITE,
    "postgres": Dialect.POSTGRES,
    "postgresql": Dialect.POSTGRES,
    "pgx": Dialect.POSTGRES,
    "asyncpg": Dialect.POSTGRES,
}

_PLACEHOLDERS: dict[Dialect, str] = {
    Dialect.SQLITE: "?",
    Dialect.POSTGRES: "${position}",
}


@dataclass(frozen=True)
class DialectSQL:
    """
    Per-dialect SQL for one migration step.

    Each dialect maps to an ordered list of statements, executed one at a time
    inside the step's transaction. Dialects without an entry are unsupported.

    Example:
        >>> backfill = DialectSQL.of(
        ...     sqlite="UPDATE t SET c = a || b",
        ...     postgres="UPDATE t SET c = concat(a, b)",
        ... )
        >>> backfill.for_dialect(Dialect.POSTGRES)
        ('UPDATE t SET c = concat(a, b)',)
    """

    statements: Mapping[Dialect, tuple[str, ...]]

    @classmethod
    def of(cls, **variants: "str | Iterable[str]") -> "DialectSQL":
        """Build from keyword arguments named after dialect values."""
        statements: dict[Dialect, tuple[str, ...]] = {}
        for name, sql in variants.items():
            dialect = Dialect(name)
            statements[dialect] = (sql,) if isinstance(sql, str) else tuple(sql)
        return cls(statements=statements)

    @property
    def dialects(self) -> frozenset[Dialect]:
        return frozenset(self.statements)

    def for_dialect(self, dialect: Dialect) -> tuple[str, ...]:
        """
        Select the statements for a dialect.

        Raises:
            UnsupportedDialectError: If no variant exists for ``dialect``
        """
        try:
            return self.statements[dialect]
        except KeyError:
            raise UnsupportedDialectError(dialect.value) from None
