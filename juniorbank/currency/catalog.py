"""Mini README: Static currency catalog used for display and conversion.

Structure:
    * CurrencyCatalog - immutable mapping of code to symbol and base rate.
    * get_catalog - cached catalog built from the process settings.

The catalog is loaded once and never changes while the process runs. Rate
lookups for unknown codes fail loudly, symbol lookups fall back to the code.
"""

from __future__ import annotations

from functools import lru_cache
import math
from types import MappingProxyType
from typing import Iterable, Mapping, Tuple

from ..configuration import JuniorBankSettings, get_settings
from ..errors import UnknownCurrency


class CurrencyCatalog:
    """Lookup table of conversion rates and display symbols."""

    def __init__(
        self,
        rates: Mapping[str, float],
        symbols: Mapping[str, str],
        *,
        base_currency: str,
        symbol_currencies: Iterable[str] = (),
    ) -> None:
        for code, rate in rates.items():
            if not (math.isfinite(rate) and rate > 0):
                raise ValueError(f"Conversion rate for {code} must be positive, got {rate}")
        if base_currency not in rates:
            raise UnknownCurrency(base_currency)
        if rates[base_currency] != 1.0:
            raise ValueError(
                f"Base currency {base_currency} must convert at 1.0, got {rates[base_currency]}"
            )
        self._rates = MappingProxyType(dict(rates))
        self._symbols = MappingProxyType(dict(symbols))
        self._base_currency = base_currency
        self._symbol_currencies = frozenset(symbol_currencies)

    @classmethod
    def from_settings(cls, settings: JuniorBankSettings) -> "CurrencyCatalog":
        """Build a catalog from validated settings."""

        return cls(
            settings.currency_rates,
            settings.currency_symbols,
            base_currency=settings.base_currency,
            symbol_currencies=settings.symbol_currencies,
        )

    @property
    def base_currency(self) -> str:
        return self._base_currency

    @property
    def codes(self) -> Tuple[str, ...]:
        """Configured currency codes in configuration order."""

        return tuple(self._rates)

    def symbol_for(self, code: str) -> str:
        """Return the display symbol, or the code itself when none is configured."""

        return self._symbols.get(code, code)

    def rate_to_base(self, code: str) -> float:
        """Return the fixed rate converting one unit of ``code`` into the base currency."""

        try:
            return self._rates[code]
        except KeyError as error:
            raise UnknownCurrency(code) from error

    def is_base_currency(self, code: str) -> bool:
        return code == self._base_currency

    def uses_symbol(self, code: str) -> bool:
        """Whether amounts in ``code`` render with the symbol rather than the code."""

        return code in self._symbol_currencies

    def convert_to_base(self, amount: float, code: str) -> float:
        """Project ``amount`` into the base currency using the live rate."""

        if self.is_base_currency(code):
            return amount
        return amount * self.rate_to_base(code)

    def format_amount(self, amount: float, code: str) -> str:
        """Render ``amount`` with zero decimals, e.g. ``150€`` or ``59 GEL``."""

        rendered = f"{amount:.0f}"
        if self.uses_symbol(code):
            return f"{rendered}{self.symbol_for(code)}"
        return f"{rendered} {code}"


@lru_cache()
def get_catalog() -> CurrencyCatalog:
    """Return the process-wide catalog built from cached settings."""

    return CurrencyCatalog.from_settings(get_settings())
