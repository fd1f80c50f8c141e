"""
Logging setup for the shortlink service.

Every module logs through ``logging.getLogger(__name__)``; this installs a
single stream handler on the package logger so uvicorn's own handlers are
left alone.
"""

import logging

PACKAGE_LOGGER = "shortlink_app"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure the package logger once (safe to call repeatedly)."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level.upper())
    return logger
