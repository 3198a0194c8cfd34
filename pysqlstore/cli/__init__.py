"""pysqlstore CLI - Inspect and upgrade key store schemas."""

from typing import Optional

import click
from loguru import logger

from pysqlstore import __version__
from pysqlstore.config import get_config
from pysqlstore.core.exceptions import ConfigurationError


@click.group()
@click.version_option(version=__version__, prog_name="pysqlstore")
@click.option(
    "--db-type",
    type=click.Choice(["sqlite", "postgres", "postgresql", "pgx"], case_sensitive=False),
    envvar="PYSQLSTORE_DB_TYPE",
    help="Database type (default: sqlite)",
)
@click.option(
    "--db-path",
    envvar="PYSQLSTORE_DB_PATH",
    help="SQLite database file (default: ./pysqlstore.db)",
)
@click.option(
    "--dsn",
    envvar="PYSQLSTORE_DSN",
    help="PostgreSQL connection string",
)
@click.option(
    "--output",
    type=click.Choice(["table", "json", "plain"], case_sensitive=False),
    default="table",
    help="Output format (default: table)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging",
)
@click.pass_context
def main(
    ctx: click.Context,
    db_type: Optional[str],
    db_path: Optional[str],
    dsn: Optional[str],
    output: str,
    verbose: bool,
) -> None:
    """
    pysqlstore CLI - Inspect and upgrade key store schemas.

    Examples:

        # Upgrade a SQLite store to the latest schema
        pysqlstore --db-path ./keys.db upgrade

        # Show the current schema version of a PostgreSQL store
        pysqlstore --dsn postgresql://localhost/keys version

        # List migrations and their status
        pysqlstore migrations

    Configuration:

        - CLI flags (highest priority)
        - Environment variables (PYSQLSTORE_DB_TYPE, PYSQLSTORE_DB_PATH, PYSQLSTORE_DSN)
        - Config file (pysqlstore.config.yaml)
    """
    if verbose:
        logger.enable("pysqlstore")
        logger.info("Verbose logging enabled")
    else:
        logger.disable("pysqlstore")

    try:
        config = get_config()
    except ConfigurationError as e:
        raise click.UsageError(str(e)) from e

    ctx.ensure_object(dict)
    ctx.obj["db_type"] = db_type.lower() if db_type else None
    ctx.obj["db_path"] = db_path
    ctx.obj["dsn"] = dsn
    ctx.obj["output"] = output.lower()
    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose


from pysqlstore.cli.commands.db import migrations, upgrade, version

main.add_command(upgrade)
main.add_command(version)
main.add_command(migrations)


__all__ = ["main"]
