"""Mini README: Core package initializer for the JuniorBank camp ledger.

This module exposes the logging helper so entry points can obtain
configured loggers without knowing the module layout. Ledger entities and
services live in the `ledger` subpackage, currency configuration in
`currency`.
"""

from .logging_utils import get_logger

__all__ = ["get_logger"]
