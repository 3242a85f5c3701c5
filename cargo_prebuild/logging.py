"""Centralised logging helpers for cargo-prebuild."""

from __future__ import annotations

import logging
import sys
from typing import Dict

_LOGGER_CACHE: Dict[str, logging.Logger] = {}

ROOT_LOGGER = "cargo_prebuild"
_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Return a cached :class:`logging.Logger` instance."""

    if name not in _LOGGER_CACHE:
        _LOGGER_CACHE[name] = logging.getLogger(name)
    return _LOGGER_CACHE[name]


def configure_logging(*, verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """Attach a stderr handler to the package logger, once."""

    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING

    logger = get_logger(ROOT_LOGGER)
    logger.setLevel(level)
    for handler in logger.handlers:
        if getattr(handler, "_cargo_prebuild", False):
            # stderr may have been swapped since the last call (tests, embedding)
            handler.setStream(sys.stderr)
            break
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        handler._cargo_prebuild = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
