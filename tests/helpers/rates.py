from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal

from domain.pricing import RateProvider
from services.rate_types import RateQuote, RateSourceError


class StaticRateProvider(RateProvider):
    """Rates keyed by (date, base currency), quoted in ``home_currency``."""

    def __init__(self, rates: dict[tuple[date, str], Decimal], *, home_currency: str = "EUR") -> None:
        self.rates = rates
        self.home_currency = home_currency
        self.calls: list[tuple[str, str, datetime]] = []

    def rate(self, base_id: str, quote_id: str, timestamp: datetime) -> Decimal:
        self.calls.append((base_id, quote_id, timestamp))
        if quote_id != self.home_currency:
            raise RateSourceError(f"Only {self.home_currency} quotes are available")
        try:
            return self.rates[(timestamp.date(), base_id)]
        except KeyError as exc:
            raise RateSourceError(f"No {base_id} rate on {timestamp.date()}") from exc


class StubRateSource:
    def __init__(self, *, rate: Decimal, source_name: str = "stub") -> None:
        self.rate = rate
        self.source_name = source_name
        self.calls: list[tuple[str, str, datetime]] = []

    def fetch_snapshot(self, base_id: str, quote_id: str, timestamp: datetime) -> RateQuote:
        self.calls.append((base_id, quote_id, timestamp))
        return RateQuote(
            timestamp=timestamp,
            base_id=base_id,
            quote_id=quote_id,
            rate=self.rate,
            source=self.source_name,
            valid_from=timestamp,
            valid_to=timestamp + timedelta(hours=1),
        )
