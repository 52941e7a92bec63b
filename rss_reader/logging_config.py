"""Logging setup for rss_reader.

Everything logs through ``logging.getLogger(__name__)`` under the
``rss_reader`` namespace. While the terminal UI owns the screen, records go
to a file instead of stderr.
"""

import logging
import sys
from typing import Optional

from rss_reader.config import Settings

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

logger = logging.getLogger("rss_reader")


def setup_logging(settings: Optional[Settings] = None, to_file: bool = False) -> logging.Logger:
    """Configure the ``rss_reader`` logger.

    Args:
        settings: Process settings (log level and log file location)
        to_file: Log to the settings' log file instead of stderr

    Returns:
        The configured package logger
    """
    level_name = settings.log_level.upper() if settings else "INFO"
    level = getattr(logging, level_name, logging.INFO)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if to_file and settings is not None:
        log_path = settings.effective_log_file
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_path, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)

    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger
