"""
Eurotir Assist - Logging
========================
Logger factory shared by every ``eurotir`` module.

Level resolution, first match wins:
  1. explicit ``level`` argument to ``get_logger``
  2. ``settings.LOG_LEVEL`` (e.g. ``LOG_LEVEL=INFO`` in ``.env``)
  3. ``settings.ENV``: ``"dev"`` → DEBUG, ``"prod"`` → WARNING

Usage:
    from eurotir.src.utils.logger import get_logger, set_level
    logger = get_logger(__name__)
    logger.info("[STORE] Loaded %d items", n)
    set_level("DEBUG")      # e.g. from a CLI --verbose flag
"""

import logging
import sys

from eurotir.config.settings import settings

_ENV_LEVEL_MAP = {
    "dev": logging.DEBUG,
    "prod": logging.WARNING,
}

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Every logger handed out here, so ``set_level`` can retune them together
_MANAGED: dict[str, logging.Logger] = {}


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        level = settings.LOG_LEVEL
    if level is None:
        return _ENV_LEVEL_MAP.get(settings.ENV, logging.INFO)
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        return resolved if isinstance(resolved, int) else logging.INFO
    return level


def get_logger(name: str, level: int | str | None = None) -> logging.Logger:
    """
    Return the named logger, attaching the stdout handler on first use.

    Args:
        name:  Typically ``__name__`` of the calling module.
        level: Explicit level (``int`` or name such as ``"INFO"``).

    Returns:
        A configured ``logging.Logger``.  Records do not propagate to
        the root logger.
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        resolved_level = _resolve_level(level)
        logger.setLevel(resolved_level)

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(resolved_level)
        handler.setFormatter(logging.Formatter(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False

    _MANAGED[name] = logger
    return logger


def set_level(level: int | str) -> int:
    """Apply *level* to every logger created through ``get_logger``.  Returns the numeric level."""
    resolved = _resolve_level(level)
    for logger in _MANAGED.values():
        logger.setLevel(resolved)
        for handler in logger.handlers:
            handler.setLevel(resolved)
    return resolved
