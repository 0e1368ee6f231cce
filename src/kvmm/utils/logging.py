from __future__ import annotations

import logging
import os
from typing import Literal

import coloredlogs  # type: ignore[import]

LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"

# Held at WARNING unless the CLI runs at DEBUG.
NOISY_LOGGERS = ("httpx", "httpcore", "PIL")


def level_for_verbosity(verbose: int) -> LogLevel | None:
    """Map a repeated ``-V`` count to a level; 0 defers to ``LOGLEVEL``."""
    if verbose >= 2:
        return "DEBUG"
    if verbose == 1:
        return "INFO"
    return None


def setup_logging(level: LogLevel | None = None) -> str:
    """Install colored stderr logging and return the level in effect.

    The CLI prints tables on stdout, so the default stays at WARNING and
    registry activity only shows up when asked for.
    """
    resolved = (level or os.environ.get("LOGLEVEL", "WARNING")).upper()

    coloredlogs.install(level=resolved, fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    noisy_level = logging.DEBUG if resolved == "DEBUG" else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)
    return resolved
