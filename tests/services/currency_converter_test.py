from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from domain.errors import ConversionUnavailableError
from domain.transactions import Money
from services.currency_converter import HistoricalCurrencyConverter
from tests.helpers.constants import MARCH, TRANSFER_DAY
from tests.helpers.rates import StaticRateProvider
from tests.helpers.transactions import at


def test_convert_uses_rate_of_the_day(converter: HistoricalCurrencyConverter) -> None:
    converted = converter.convert(at(MARCH), Money(amount=500000, currency="USD"))

    assert converted == Money(amount=470000, currency="EUR")
    assert converter.rate(at(MARCH), "usd") == Decimal("0.94")


def test_convert_rounds_half_up_to_minor_units(converter: HistoricalCurrencyConverter) -> None:
    # 1.00 USD * 0.935 = 0.935 EUR
    assert converter.convert(at(TRANSFER_DAY), Money(amount=100, currency="USD")).amount == 94
    # 0.10 USD * 0.935 = 0.0935 EUR
    assert converter.convert(at(TRANSFER_DAY), Money(amount=10, currency="USD")).amount == 9


def test_home_currency_is_identity(converter: HistoricalCurrencyConverter, rate_provider: StaticRateProvider) -> None:
    amount = Money(amount=123456, currency="EUR")

    assert converter.convert(at(date(1999, 1, 1)), amount) == amount
    assert converter.rate(at(date(1999, 1, 1)), "EUR") == Decimal("1")
    assert rate_provider.calls == []


def test_rates_are_memoized_per_day(converter: HistoricalCurrencyConverter, rate_provider: StaticRateProvider) -> None:
    morning = datetime(2023, 3, 1, 8, tzinfo=timezone.utc)
    evening = datetime(2023, 3, 1, 20, tzinfo=timezone.utc)

    first = converter.rate(morning, "USD")
    second = converter.rate(evening, "USD")

    assert first == second
    assert len(rate_provider.calls) == 1
    base, quote, requested = rate_provider.calls[0]
    assert (base, quote) == ("USD", "EUR")
    assert requested == datetime(2023, 3, 1, tzinfo=timezone.utc)


def test_missing_rate_raises_conversion_unavailable(converter: HistoricalCurrencyConverter) -> None:
    timestamp = at(date(2020, 1, 1))

    with pytest.raises(ConversionUnavailableError) as exc_info:
        converter.convert(timestamp, Money(amount=100, currency="USD"))

    assert exc_info.value.currency == "USD"
    assert exc_info.value.timestamp == timestamp
