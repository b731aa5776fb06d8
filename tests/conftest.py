from __future__ import annotations

from decimal import Decimal

import pytest

from services.currency_converter import HistoricalCurrencyConverter
from tests.helpers.constants import JUNE, MARCH, SALE_DAY, TRANSFER_DAY
from tests.helpers.rates import StaticRateProvider


@pytest.fixture(scope="function")
def rate_provider() -> StaticRateProvider:
    return StaticRateProvider(
        {
            (MARCH, "USD"): Decimal("0.94"),
            (JUNE, "USD"): Decimal("0.92"),
            (SALE_DAY, "USD"): Decimal("0.93"),
            (TRANSFER_DAY, "USD"): Decimal("0.935"),
        }
    )


@pytest.fixture(scope="function")
def converter(rate_provider: StaticRateProvider) -> HistoricalCurrencyConverter:
    return HistoricalCurrencyConverter(rate_provider, home_currency="EUR")
