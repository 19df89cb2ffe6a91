"""Mini README: Currency configuration helpers for the camp ledger.

The `catalog` module exposes the immutable rate and symbol table that
balances and transactions consult for conversion and display.
"""

from .catalog import CurrencyCatalog, get_catalog

__all__ = ["CurrencyCatalog", "get_catalog"]
