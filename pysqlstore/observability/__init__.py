"""
Observability for pysqlstore.

Logging:
    - configure_logging(): Configure loguru-based logging
    - configure_logging_from_env(): Configure from environment variables
    - get_logger(): Get a logger instance
    - migration_logging_context(): Context manager binding upgrade context
"""

from pysqlstore.observability.logging import (
    LogContext,
    configure_logging,
    configure_logging_from_env,
    get_logger,
    migration_logging_context,
)

__all__ = [
    "configure_logging",
    "configure_logging_from_env",
    "get_logger",
    "migration_logging_context",
    "LogContext",
]
