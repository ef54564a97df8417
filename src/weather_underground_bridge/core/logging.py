"""Loguru configuration shared by the application and the CLI."""

import sys

from loguru import logger

from .config import settings


def setup_logging(level: str | None = None, colorize: bool = True):
    """Configure loguru for structured logging.

    Logs are written to stderr; keyword context appears in ``{extra}``.

    Args:
        level: Log level, LOG_LEVEL from settings when omitted
        colorize: Whether to emit ANSI colors
    """
    level = level or settings.LOG_LEVEL

    # Remove default handler
    logger.remove()

    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level> | {extra}",
        level=level,
        serialize=False,
        colorize=colorize,
        backtrace=True,
        diagnose=settings.ENVIRONMENT == "development",
    )

    logger.debug("Logging configured", level=level)
