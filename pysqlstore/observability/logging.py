"""
Loguru logging configuration for pysqlstore.

The library itself only emits records through ``loguru.logger``. Applications
decide where they go with ``configure_logging()``, or by setting the
``PYSQLSTORE_LOG_*`` environment variables before import.

Records emitted while a migration step runs carry the step's dialect, target
version and description (see ``migration_logging_context``).
"""

import json
import os
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Generator

from loguru import logger

_CONTEXT_KEYS = ("dialect", "version", "migration")

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>{extra[_context]}"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{line} | {message}{extra[_context]}"


@dataclass
class LogContext:
    """Upgrade context attached to log records."""

    dialect: str | None = None
    version: int | None = None
    migration: str | None = None


def configure_logging(
    level: str = "INFO",
    log_file: str | None = None,
    json_logs: bool = False,
    show_context: bool = True,
) -> None:
    """
    Replace all loguru handlers with pysqlstore's console (and file) sinks.

    Args:
        level: Minimum level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Also write to this file, rotated at 10 MB
        json_logs: Emit one JSON object per line instead of text
        show_context: Append dialect/version to each record emitted during
            an upgrade

    Examples:
        configure_logging()
        configure_logging(level="DEBUG", log_file="logs/upgrade.log")
        configure_logging(json_logs=True)
    """
    logger.remove()

    text_filter = _create_context_filter(show_context)
    if json_logs:
        logger.add(
            sys.stderr,
            format=_create_json_format(show_context),  # type: ignore[arg-type]
            level=level,
            colorize=False,
        )
    else:
        logger.add(
            sys.stderr,
            format=CONSOLE_FORMAT,
            level=level,
            colorize=True,
            filter=text_filter,  # type: ignore[arg-type]
        )

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=_create_json_format(show_context) if json_logs else FILE_FORMAT,  # type: ignore[arg-type]
            level=level,
            rotation="10 MB",
            retention=5,
            filter=None if json_logs else text_filter,  # type: ignore[arg-type]
        )

    logger.debug(f"pysqlstore logging configured at level {level}")


def _create_context_filter(show_context: bool) -> Callable[[dict[str, Any]], bool]:
    def context_filter(record: dict[str, Any]) -> bool:
        suffix = ""
        if show_context and "version" in record["extra"]:
            extra = record["extra"]
            suffix = f" | {extra.get('dialect')} v{extra['version']}"
        record["extra"]["_context"] = suffix
        return True

    return context_filter


def _create_json_format(show_context: bool) -> Callable[[dict[str, Any]], str]:
    # Rendered into extra so every sink formats the untouched record
    def json_format(record: dict[str, Any]) -> str:
        record["extra"]["_json"] = _format_for_json(record, show_context)
        return "{extra[_json]}\n"

    return json_format


def _format_for_json(record: dict[str, Any], show_context: bool = True) -> str:
    """Render a loguru record as a single JSON line."""
    extra = {k: v for k, v in record["extra"].items() if not k.startswith("_")}
    context = {k: extra.pop(k) for k in _CONTEXT_KEYS if k in extra}

    payload: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
    }
    if show_context and context:
        payload["context"] = context
    if extra:
        payload["extra"] = {k: _safe_serialize(v) for k, v in extra.items()}

    exception = record["exception"]
    if exception is not None:
        payload["exception"] = {
            "type": exception.type.__name__ if exception.type else None,
            "value": str(exception.value) if exception.value else None,
        }

    return json.dumps(payload, default=str)


def _safe_serialize(value: Any) -> Any:
    """Make an extra value JSON-safe. Binary values (keys, hashes) become hex."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _safe_serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_safe_serialize(v) for v in value]
    return str(value)


def configure_logging_from_env() -> None:
    """
    Configure logging from environment variables.

    Environment variables:
        PYSQLSTORE_LOG_LEVEL: Minimum level (default INFO)
        PYSQLSTORE_LOG_FORMAT: "json" or "console" (default console)
        PYSQLSTORE_LOG_FILE: Optional log file path
        PYSQLSTORE_LOG_CONTEXT: "false", "0" or "no" hides upgrade context
    """
    configure_logging(
        level=os.getenv("PYSQLSTORE_LOG_LEVEL", "INFO").upper(),
        log_file=os.getenv("PYSQLSTORE_LOG_FILE"),
        json_logs=os.getenv("PYSQLSTORE_LOG_FORMAT", "console").lower() == "json",
        show_context=os.getenv("PYSQLSTORE_LOG_CONTEXT", "true").lower() not in ("false", "0", "no"),
    )


def get_logger(name: str | None = None) -> Any:
    """Return the loguru logger, bound to ``module=name`` when given."""
    return logger.bind(module=name) if name else logger


@contextmanager
def migration_logging_context(
    dialect: str, version: int, migration: str | None = None
) -> Generator[None, None, None]:
    """
    Attach upgrade context to every record emitted within the block.

    Args:
        dialect: Dialect of the database being upgraded
        version: Version the running step produces
        migration: Description of the running step

    Example:
        with migration_logging_context("sqlite", 2, "Add adv_account_sig_key"):
            logger.info("Executing step")  # record carries dialect and version
    """
    context = LogContext(dialect=dialect, version=version, migration=migration)
    with logger.contextualize(**vars(context)):
        yield


if os.getenv("PYSQLSTORE_LOG_LEVEL") or os.getenv("PYSQLSTORE_LOG_FORMAT"):
    configure_logging_from_env()
