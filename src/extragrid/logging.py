"""Logging configuration using loguru."""

import sys

from loguru import logger

from extragrid.config import get_settings


def format_record(record: dict) -> str:
    """Format log record, prefixing the grid operation when one is bound."""
    operation = record["extra"].get("operation")
    context_str = f"[op={operation}] " if operation else ""

    return (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        f"{context_str}"
        "<level>{message}</level>\n"
        "{exception}"
    )


def setup_logging(json_logs: bool | None = None, log_level: str | None = None) -> None:
    """Configure loguru for applications embedding extragrid.

    Args:
        json_logs: If True, output logs as JSON (useful for production).
            Defaults to ``EXTRAGRID_JSON_LOGS``.
        log_level: Minimum log level to output. Defaults to
            ``EXTRAGRID_LOG_LEVEL``.
    """
    settings = get_settings()
    if json_logs is None:
        json_logs = settings.json_logs
    if log_level is None:
        log_level = settings.log_level

    # Remove default handler
    logger.remove()

    if json_logs:
        logger.add(
            sys.stdout,
            format="{message}",
            level=log_level,
            serialize=True,
        )
    else:
        logger.add(
            sys.stdout,
            format=format_record,
            level=log_level,
            colorize=True,
        )


__all__ = [
    "logger",
    "setup_logging",
]
