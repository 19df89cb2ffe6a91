"""Mini README: Centralised configuration for the camp ledger.

Structure:
    * JuniorBankSettings - Pydantic settings model holding the currency table.
    * get_settings - cached accessor so configuration is validated once.

Usage:
    Conversion rates, display symbols and the base currency are static for
    the lifetime of the process. Override them with ``JUNIORBANK_`` prefixed
    environment variables (JSON for the mapping fields) or a ``.env`` file.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class JuniorBankSettings(BaseSettings):
    """Runtime configuration for the camp-finance tracker."""

    model_config = SettingsConfigDict(
        env_prefix="JUNIORBANK_",
        env_file=".env",
        case_sensitive=False,
    )

    environment: str = Field(
        "development",
        description="Environment label shown in logs.",
    )
    log_level: str = Field(
        "INFO",
        description="Root logging level used by command-line entry points.",
    )
    base_currency: str = Field(
        "GEL",
        description="Currency every balance is converted into for ranking.",
    )
    currency_rates: Dict[str, float] = Field(
        default_factory=lambda: {"GEL": 1.0, "EUR": 2.65, "USD": 2.45, "RUB": 0.027},
        description="Fixed conversion rate from each currency into the base currency.",
    )
    currency_symbols: Dict[str, str] = Field(
        default_factory=lambda: {"GEL": "₾", "EUR": "€", "USD": "$", "RUB": "₽"},
        description="Display symbol per currency code.",
    )
    symbol_currencies: List[str] = Field(
        default_factory=lambda: ["EUR", "USD"],
        description="Currencies displayed with their symbol instead of the trailing code.",
    )

    @field_validator("base_currency", mode="before")
    @classmethod
    def _normalise_base(cls, value: str) -> str:
        """Upper-case the base currency code."""

        return str(value).strip().upper()

    @field_validator("currency_rates")
    @classmethod
    def _validate_rates(cls, value: Dict[str, float]) -> Dict[str, float]:
        """Reject non-positive rates and normalise codes."""

        normalised: Dict[str, float] = {}
        for code, rate in value.items():
            if rate <= 0:
                raise ValueError(f"Conversion rate for {code} must be positive, got {rate}")
            normalised[code.strip().upper()] = float(rate)
        return normalised

    @field_validator("currency_symbols")
    @classmethod
    def _normalise_symbols(cls, value: Dict[str, str]) -> Dict[str, str]:
        return {code.strip().upper(): symbol for code, symbol in value.items()}

    @field_validator("symbol_currencies")
    @classmethod
    def _normalise_symbol_currencies(cls, value: List[str]) -> List[str]:
        return [code.strip().upper() for code in value]

    @model_validator(mode="after")
    def _check_currency_table(self) -> "JuniorBankSettings":
        """Ensure the base currency is configured at parity and symbols exist."""

        rate = self.currency_rates.get(self.base_currency)
        if rate is None:
            raise ValueError(f"Base currency {self.base_currency} has no conversion rate")
        if rate != 1.0:
            raise ValueError(f"Base currency {self.base_currency} must convert at 1.0, got {rate}")
        missing = [code for code in self.symbol_currencies if code not in self.currency_symbols]
        if missing:
            raise ValueError(f"Symbol currencies without a symbol: {', '.join(missing)}")
        return self


@lru_cache()
def get_settings() -> JuniorBankSettings:
    """Return cached settings, ensuring consistent configuration across modules."""

    return JuniorBankSettings()
