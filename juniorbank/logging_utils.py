"""Mini README: Logging setup for the camp ledger entry points.

Structure:
    * resolve_level - turn a settings value such as ``"debug"`` into a level.
    * configure_root_logger - attach the single ledger handler to the root logger.
    * get_logger - module logger handed to ``LedgerService`` by entry points.

Usage:
    The CLI reads ``JUNIORBANK_LOG_LEVEL`` from settings, calls
    ``configure_root_logger`` with it and injects ``get_logger(...)`` into the
    ledger service. Ledger entities never log, and the service only logs to
    the logger it was given, so library callers stay in control of handlers.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

LEDGER_LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s"

_LOGGER_INITIALISED = False


def resolve_level(level: Union[int, str]) -> int:
    """Map a numeric level or level name to a logging level, defaulting to INFO."""

    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_root_logger(level: Union[int, str] = logging.INFO) -> None:
    """Install the ledger handler once; later calls leave the root logger untouched."""

    global _LOGGER_INITIALISED
    if _LOGGER_INITIALISED:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LEDGER_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root_logger = logging.getLogger()
    root_logger.setLevel(resolve_level(level))
    root_logger.addHandler(handler)
    _LOGGER_INITIALISED = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a named logger after making sure the ledger handler is installed."""

    configure_root_logger()
    return logging.getLogger(name)
