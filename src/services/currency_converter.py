from __future__ import annotations

import logging
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal

from domain.errors import ConversionUnavailableError
from domain.pricing import CurrencyConverter, RateProvider
from domain.transactions import DEFAULT_HOME_CURRENCY, Money

from .rate_types import RateSourceError

logger = logging.getLogger(__name__)


class HistoricalCurrencyConverter(CurrencyConverter):
    """Convert amounts into the home currency at the rate of their calendar date.

    Rates are memoized per (date, currency), so every lookup for the same pair
    within one converter returns the same value.
    """

    def __init__(self, rate_provider: RateProvider, *, home_currency: str = DEFAULT_HOME_CURRENCY) -> None:
        self.home_currency = home_currency.upper()
        self._rate_provider = rate_provider
        self._rates: dict[tuple[date, str], Decimal] = {}

    def rate(self, timestamp: datetime, currency_code: str) -> Decimal:
        currency = currency_code.upper()
        if currency == self.home_currency:
            return Decimal("1")

        key = (timestamp.date(), currency)
        cached = self._rates.get(key)
        if cached is not None:
            return cached

        # All timestamps of one day share the rate fixed at the start of that day.
        day_start = datetime.combine(key[0], time.min, tzinfo=timestamp.tzinfo)
        try:
            rate = self._rate_provider.rate(currency, self.home_currency, day_start)
        except RateSourceError as exc:
            msg = f"No {currency}/{self.home_currency} rate available for {key[0].isoformat()}: {exc}"
            raise ConversionUnavailableError(msg, timestamp=timestamp, currency=currency) from exc

        logger.debug("Rate %s/%s on %s: %s", currency, self.home_currency, key[0].isoformat(), rate)
        self._rates[key] = rate
        return rate

    def convert(self, timestamp: datetime, money: Money) -> Money:
        if money.currency == self.home_currency:
            return money

        rate = self.rate(timestamp, money.currency)
        converted = (Decimal(money.amount) * rate).to_integral_value(rounding=ROUND_HALF_UP)
        return Money(amount=int(converted), currency=self.home_currency)


__all__ = ["HistoricalCurrencyConverter"]
