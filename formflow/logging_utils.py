"""Logger factory shared by the form engine modules."""

from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s (file: %(filename)s, line: %(lineno)d)"


def env_log_level() -> int:
    """Return the level named by ``LOGGER_LEVEL``, defaulting to ``INFO``."""

    level_name = os.getenv("LOGGER_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    return level if isinstance(level, int) else logging.INFO


def create_logger(name: str, level: Optional[int] = None, propagate: bool = False) -> logging.Logger:
    """Return a configured logger for ``name``.

    Streamlit re-executes page modules on every rerun, so the handler is only
    attached the first time a logger is requested.
    """

    logger = logging.getLogger(name)
    logger.setLevel(level if level is not None else env_log_level())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.propagate = propagate
    return logger


__all__ = ["LOG_FORMAT", "create_logger", "env_log_level"]
