from __future__ import annotations

from datetime import date

import pytest

from domain.errors import (
    DuplicateSaleError,
    InconsistentSettlementError,
    MissingDeliveriesError,
    UnmatchedSharesError,
    UnterminatedEventError,
)
from domain.event_builder import TaxEventBuilder, create_tax_events
from domain.transactions import Money, Transaction
from services.currency_converter import HistoricalCurrencyConverter
from tests.helpers.constants import JUNE, MARCH, SALE_DAY, TRANSFER_DAY
from tests.helpers.transactions import delivery, sale, transfer


@pytest.fixture(scope="function")
def builder() -> TaxEventBuilder:
    return TaxEventBuilder(home_currency="EUR")


def _mixed_ledger() -> list[Transaction]:
    return [
        delivery(MARCH, "5000.00"),
        delivery(JUNE, "5500.00"),
        sale(SALE_DAY, "11000.00"),
        transfer(TRANSFER_DAY, "10200.00"),
        delivery(date(2023, 12, 1), "2400.00", shares="20"),
        sale(date(2024, 2, 1), "2600.00", shares="20", currency="EUR"),
        delivery(date(2024, 3, 1), "1000.00", shares="10"),
        delivery(date(2024, 4, 1), "1100.00", shares="10"),
        delivery(date(2024, 5, 1), "1200.00", shares="10"),
        sale(date(2024, 6, 3), "3600.00", shares="30"),
        transfer(date(2024, 6, 5), "3300.00"),
    ]


def test_groups_deliveries_sale_and_transfer(
    builder: TaxEventBuilder, converter: HistoricalCurrencyConverter
) -> None:
    ledger = _mixed_ledger()[:4]

    events = builder.build(ledger)

    assert len(events) == 1
    event = events[0]
    assert list(event.deliveries) == ledger[:2]
    assert event.sale == ledger[2]
    assert event.transfer == ledger[3]
    assert event.total_delivery_cost(converter) == Money(amount=976000, currency="EUR")
    assert event.profit(converter) == Money(amount=1020000 - 976000, currency="EUR")


def test_home_currency_sale_closes_event_immediately(builder: TaxEventBuilder) -> None:
    ledger = [
        delivery(MARCH, "5000.00", shares="100"),
        sale(SALE_DAY, "10300.00", currency="EUR"),
        delivery(date(2023, 10, 2), "800.00", shares="8"),
        sale(date(2023, 10, 9), "850.00", shares="8", currency="EUR"),
    ]

    events = builder.build(ledger)

    assert len(events) == 2
    assert all(event.transfer is None for event in events)
    assert [event.sale for event in events] == [ledger[1], ledger[3]]


def test_events_partition_the_input(builder: TaxEventBuilder) -> None:
    ledger = _mixed_ledger()

    events = builder.build(ledger)

    assert len(events) == 3
    regrouped = sorted(
        (transaction for event in events for transaction in event.transactions()),
        key=lambda transaction: transaction.timestamp,
    )
    assert regrouped == ledger
    assert [event.settlement_date for event in events] == sorted(event.settlement_date for event in events)


def test_every_event_satisfies_invariants(builder: TaxEventBuilder) -> None:
    for event in builder.build(_mixed_ledger()):
        assert sum(d.share_count for d in event.deliveries) == event.sale.share_count
        assert (event.transfer is not None) == (event.sale.currency_code != "EUR")


def test_build_is_deterministic(builder: TaxEventBuilder, converter: HistoricalCurrencyConverter) -> None:
    ledger = _mixed_ledger()[:4]

    first = builder.build(ledger)
    second = create_tax_events(ledger, home_currency="EUR")

    assert first == second
    assert [event.profit(converter) for event in first] == [event.profit(converter) for event in second]


def test_duplicate_sale_raised_at_second_sale(builder: TaxEventBuilder) -> None:
    first_sale = sale(SALE_DAY, "11000.00")
    second_sale = sale(date(2023, 9, 16), "11000.00")
    ledger = [delivery(MARCH, "5000.00", shares="100"), first_sale, second_sale, transfer(TRANSFER_DAY, "10200.00")]

    with pytest.raises(DuplicateSaleError) as exc_info:
        builder.build(ledger)

    assert exc_info.value.sale == first_sale
    assert "2023-09-16" in str(exc_info.value)


def test_unmatched_shares_produce_no_event(builder: TaxEventBuilder) -> None:
    ledger = [
        delivery(MARCH, "2000.00", shares="40"),
        sale(SALE_DAY, "11000.00", shares="100"),
        transfer(TRANSFER_DAY, "10200.00"),
    ]

    with pytest.raises(UnmatchedSharesError):
        builder.build(ledger)


def test_sale_without_deliveries(builder: TaxEventBuilder) -> None:
    with pytest.raises(MissingDeliveriesError):
        builder.build([sale(SALE_DAY, "10300.00", currency="EUR")])


def test_transfer_without_sale(builder: TaxEventBuilder) -> None:
    with pytest.raises(InconsistentSettlementError):
        builder.build([delivery(MARCH, "5000.00", shares="100"), transfer(TRANSFER_DAY, "10200.00")])


@pytest.mark.parametrize(
    "ledger",
    [
        [delivery(MARCH, "5000.00", shares="100")],
        [delivery(MARCH, "5000.00", shares="100"), sale(SALE_DAY, "11000.00")],
    ],
    ids=["open-deliveries", "unsettled-sale"],
)
def test_leftover_state_is_reported(builder: TaxEventBuilder, ledger: list[Transaction]) -> None:
    with pytest.raises(UnterminatedEventError) as exc_info:
        builder.build(ledger)

    assert len(exc_info.value.deliveries) == 1


def test_empty_input_yields_no_events(builder: TaxEventBuilder) -> None:
    assert builder.build([]) == []
