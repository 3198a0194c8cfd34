"""Schema upgrade commands."""

from typing import Any, Dict, List, NoReturn

import click

from pysqlstore.cli.output.formatters import (
    format_json,
    format_key_value,
    format_plain,
    format_table,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from pysqlstore.cli.utils.async_helpers import async_command
from pysqlstore.cli.utils.database import create_database
from pysqlstore.core.exceptions import PySqlStoreError
from pysqlstore.storage.container import Container


def _create_container(ctx: click.Context) -> Container:
    config = ctx.obj["config"]
    database = create_database(
        ctx.obj["db_type"],
        ctx.obj["db_path"],
        ctx.obj["dsn"],
        config.database,
    )
    return Container(database, upgrade_on_connect=False, version_table=config.version_table)


def _fail(ctx: click.Context, message: str, error: Exception) -> NoReturn:
    print_error(message)
    if ctx.obj["verbose"]:
        raise error
    raise click.Abort()


@click.command(name="upgrade")
@click.pass_context
@async_command
async def upgrade(ctx: click.Context) -> None:
    """
    Apply all pending schema migrations.

    Examples:

        pysqlstore --db-path ./keys.db upgrade

        pysqlstore --dsn postgresql://localhost/keys upgrade
    """
    output = ctx.obj["output"]
    try:
        container = _create_container(ctx)
        await container.connect()
        try:
            applied = await container.upgrade()
            version = await container.get_version()
        finally:
            await container.disconnect()
    except PySqlStoreError as e:
        _fail(ctx, f"Upgrade failed: {e}", e)

    if output == "json":
        format_json(
            {
                "version": version,
                "applied": [
                    {
                        "version": m.version,
                        "description": m.description,
                        "applied_at": m.applied_at.isoformat(),
                    }
                    for m in applied
                ],
            }
        )
    elif output == "plain":
        format_plain([str(m.version) for m in applied])
    elif not applied:
        print_info(f"Database is already at the latest version (v{version})")
    else:
        format_table(
            [{"Version": m.version, "Description": m.description} for m in applied],
            ["Version", "Description"],
            title="Applied Migrations",
        )
        print_success(f"Database upgraded to v{version}")


@click.command(name="version")
@click.pass_context
@async_command
async def version(ctx: click.Context) -> None:
    """
    Show the current and latest schema version.

    Creates the version table if it is missing, but never applies migrations.
    """
    output = ctx.obj["output"]
    try:
        container = _create_container(ctx)
        await container.connect()
        try:
            current = await container.get_version()
        finally:
            await container.disconnect()
    except PySqlStoreError as e:
        _fail(ctx, f"Failed to read schema version: {e}", e)

    latest = container.get_latest_version()
    data = {
        "dialect": container.dialect.value,
        "current": current,
        "latest": latest,
        "pending": max(latest - current, 0),
    }

    if output == "json":
        format_json(data)
    elif output == "plain":
        format_plain([str(current)])
    else:
        format_key_value(data, title="Schema Version")
        if current > latest:
            print_warning("Database is newer than this version of pysqlstore")


@click.command(name="migrations")
@click.pass_context
@async_command
async def migrations(ctx: click.Context) -> None:
    """List known migrations and whether each has been applied."""
    output = ctx.obj["output"]
    try:
        container = _create_container(ctx)
        await container.connect()
        try:
            current = await container.get_version()
        finally:
            await container.disconnect()
    except PySqlStoreError as e:
        _fail(ctx, f"Failed to read schema version: {e}", e)

    rows: List[Dict[str, Any]] = [
        {
            "version": index + 1,
            "description": migration.description,
            "status": "applied" if index < current else "pending",
        }
        for index, migration in enumerate(container.registry)
    ]

    if output == "json":
        format_json(rows)
    elif output == "plain":
        format_plain([f"{row['version']} {row['status']}" for row in rows])
    else:
        format_table(
            [
                {"Version": row["version"], "Description": row["description"], "Status": row["status"]}
                for row in rows
            ],
            ["Version", "Description", "Status"],
            title="Migrations",
        )
