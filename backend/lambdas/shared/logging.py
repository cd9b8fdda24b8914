"""Logging helper that standardises Lambda logger configuration."""

from __future__ import annotations

import logging

from .config import get_env

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def _level_from_env() -> int:
    name = get_env("LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level if level is not None else _level_from_env())

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=_LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%SZ"))
        logger.addHandler(handler)

    # Lambda already forwards the root logger; keep a single copy of each line.
    logger.propagate = False
    return logger
