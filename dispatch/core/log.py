"""Logging setup (loguru sinks driven by Settings)."""

from __future__ import annotations

import sys

from loguru import logger

from .config import Settings, get_settings

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level:<8} | {name}:{line} - {message}"


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level, format=LOG_FORMAT)
    if settings.log_file:
        logger.add(settings.log_file, level=settings.log_level, rotation="1 day", retention="7 days")
