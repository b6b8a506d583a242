"""
Logging setup.

All modules log through children of the "levelup" logger, e.g.
get_logger("pomodoro") -> "levelup.pomodoro". configure_logging() is safe to
call on every Streamlit rerun: the handler is only installed once.
"""

from __future__ import annotations

import logging
import sys

LOGGER_NAME = "levelup"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s]: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(LOGGER_NAME)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def configure_logging(level: str = "INFO") -> logging.Logger:
    if not any(getattr(h, "_levelup_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        handler._levelup_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    return logger
