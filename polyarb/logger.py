"""Logging setup driven by environment variables."""

from __future__ import annotations

import logging
import os
from typing import Mapping, Optional

_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "off": logging.CRITICAL + 10,
}

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def init_logger(environ: Optional[Mapping[str, str]] = None) -> logging.Logger:
    """Configure the package logger.

    ``LOG_LEVEL`` selects the level (default info); ``LOG_FILE`` sends output
    to a freshly created file instead of standard error.
    """
    env = os.environ if environ is None else environ
    level = _LEVELS.get(env.get("LOG_LEVEL", "info").strip().lower(), logging.INFO)

    logger = logging.getLogger("polyarb")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    path = env.get("LOG_FILE")
    if path is not None:
        handler: logging.Handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))

    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger