"""Shared logger configuration for WALI services."""
from __future__ import annotations

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(name: str = "wali", level: str | None = None) -> logging.Logger:
    """Configure and return the application logger.

    The level comes from ``LOG_LEVEL`` unless given explicitly. Calling this
    more than once does not stack handlers.
    """
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()

    app_logger = logging.getLogger(name)
    app_logger.setLevel(getattr(logging, log_level, logging.INFO))

    if not app_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        app_logger.addHandler(handler)

    # Quiet noisy third-party loggers
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
    logging.getLogger("psycopg.pool").setLevel(logging.WARNING)

    return app_logger


logger = setup_logging()
