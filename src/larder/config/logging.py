"""Logging setup for larder entry points."""

from __future__ import annotations

import logging
import os
from typing import Final

from .errors import ConfigurationError

LOG_LEVEL_ENV: Final[str] = "LARDER_LOG_LEVEL"
LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def resolve_log_level(level: int | str | None = None) -> int:
    """Numeric level for ``level``, or for ``LARDER_LOG_LEVEL`` when not given (INFO)."""

    if level is None:
        level = os.getenv(LOG_LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level
    resolved = logging.getLevelNamesMapping().get(level.strip().upper())
    if resolved is None:
        raise ConfigurationError(f"Unknown log level {level!r}", setting=LOG_LEVEL_ENV)
    return resolved


def configure_logging(*, level: int | str | None = None, force: bool = False) -> None:
    """Initialise the root logger once; pass ``force=True`` to reconfigure."""

    logging.basicConfig(
        level=resolve_log_level(level),
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        force=force,
    )
