from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from .transactions import Money


class RateProvider(Protocol):
    """Lookup interface for currency→currency rates."""

    def rate(self, base_id: str, quote_id: str, timestamp: datetime) -> Decimal: ...


class CurrencyConverter(Protocol):
    """Historical conversion into a single home currency.

    ``rate`` returns home-currency units per one unit of ``currency_code`` on the
    date of ``timestamp``. Implementations raise ``ConversionUnavailableError``
    when no rate is known for that date.
    """

    home_currency: str

    def rate(self, timestamp: datetime, currency_code: str) -> Decimal: ...

    def convert(self, timestamp: datetime, money: Money) -> Money: ...
