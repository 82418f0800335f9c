"""Lightweight logging helpers for cpstress.

Centralizes acquisition and one-time configuration of the package logger.
Modules log under child names (``cpstress.executor``, ``cpstress.store``...)
so host applications can tune each area independently.
"""

from __future__ import annotations

import logging

from cpstress.settings import get_settings

LOGGER_NAME = "cpstress"
_DATEFMT = "%H:%M:%S"
_configured = False


def get_logger(area: str | None = None) -> logging.Logger:
    """Return the shared package logger, or one of its children."""
    if area:
        return logging.getLogger(f"{LOGGER_NAME}.{area}")
    return logging.getLogger(LOGGER_NAME)


def configure_logging(
    level: str | None = None, *, fmt: str | None = None, force: bool = False
) -> logging.Logger:
    """Attach one stream handler to the ``cpstress`` logger.

    `level` and `fmt` default to ``CPSTRESS_LOG_LEVEL`` / ``CPSTRESS_LOG_FORMAT``.
    Later calls only change the level unless ``force`` replaces the handler,
    so an embedding application that already configured logging keeps its
    handlers.
    """
    global _configured

    settings = get_settings()
    logger = get_logger()
    logger.setLevel((level or settings.log_level).upper())
    if _configured and not force:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=fmt or settings.log_format, datefmt=_DATEFMT))
    if force:
        for old in list(logger.handlers):
            logger.removeHandler(old)
    if force or not logger.handlers:
        logger.addHandler(handler)
    # records stay out of the root logger's handlers
    logger.propagate = False
    _configured = True
    return logger
