"""Logging helpers for AudioTricks."""

from __future__ import annotations

import logging
from typing import Optional, Union

_LOGGER_CONFIGURED = False

# HTTP client libraries log every request at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore", "openai")


def configure_logging(level: Union[int, str] = logging.INFO, *, force: bool = False) -> None:
    """Configure the root handler once per process.

    ``force`` replaces an earlier configuration, which the CLI uses to apply
    ``--verbose`` after modules have already requested their loggers.
    """

    global _LOGGER_CONFIGURED
    if _LOGGER_CONFIGURED and not force:
        return

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        force=force,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    _LOGGER_CONFIGURED = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name or "audiotricks")


__all__ = ["configure_logging", "get_logger"]
