"""Logging configuration."""
import logging
import sys
from typing import Optional, Union

# Chatty libraries: only their warnings are interesting
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "sqlalchemy.engine", "aiosqlite")


def setup_logging(level: Optional[Union[int, str]] = None) -> None:
    """Configure root logging once at startup; ``level`` defaults to LOG_LEVEL."""
    if level is None:
        from brewchat.core.config import settings

        level = settings.log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger(__name__).debug(f"[LOGGING] Configured at {logging.getLevelName(level)}")
