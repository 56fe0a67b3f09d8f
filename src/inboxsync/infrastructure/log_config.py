"""Loguru sink setup driven by Settings."""

import sys

from loguru import logger

from inboxsync.infrastructure.settings import Settings, get_settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def configure_logging(settings: Settings | None = None) -> int:
    """Replace loguru's default sink with a stderr sink at `settings.log_level`.

    Returns the sink id so callers can remove it again.
    """
    settings = settings or get_settings()
    logger.remove()
    sink_id = logger.add(sys.stderr, format=LOG_FORMAT, level=settings.log_level.upper())
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    return sink_id
