from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from functools import reduce
from operator import add
from typing import Iterable

from domain.pricing import CurrencyConverter
from domain.tax_event import TaxEvent
from domain.transactions import Money, Transaction

from .formatting import format_money, format_shares


def group_events_by_year(events: Iterable[TaxEvent]) -> dict[int, list[TaxEvent]]:
    """Group events by settlement year, keeping their original order."""
    grouped: dict[int, list[TaxEvent]] = {}
    for event in events:
        grouped.setdefault(event.year, []).append(event)
    return grouped


def profit_by_year(events: Iterable[TaxEvent], converter: CurrencyConverter) -> dict[int, Money]:
    """Sum event profits per year; every profit is already in the home currency."""
    return {
        year: reduce(add, (event.profit(converter) for event in year_events))
        for year, year_events in group_events_by_year(events).items()
    }


@dataclass
class DeliveryValuation:
    delivery: Transaction
    rate: Decimal
    value: Money


@dataclass
class TaxEventValuation:
    event: TaxEvent
    deliveries: list[DeliveryValuation]
    total_cost: Money
    proceeds: Money
    profit: Money


@dataclass
class YearlyTaxSummary:
    year: int
    events: list[TaxEventValuation]
    total_profit: Money


def value_tax_event(event: TaxEvent, converter: CurrencyConverter) -> TaxEventValuation:
    deliveries = [
        DeliveryValuation(
            delivery=delivery,
            rate=converter.rate(delivery.timestamp, delivery.currency_code),
            value=converter.convert(delivery.timestamp, delivery.amount),
        )
        for delivery in event.deliveries
    ]
    return TaxEventValuation(
        event=event,
        deliveries=deliveries,
        total_cost=event.total_delivery_cost(converter),
        proceeds=event.proceeds(converter),
        profit=event.profit(converter),
    )


def compute_yearly_tax_summary(events: Iterable[TaxEvent], converter: CurrencyConverter) -> list[YearlyTaxSummary]:
    summaries: list[YearlyTaxSummary] = []
    for year, year_events in sorted(group_events_by_year(events).items()):
        valuations = [value_tax_event(event, converter) for event in year_events]
        summaries.append(
            YearlyTaxSummary(
                year=year,
                events=valuations,
                total_profit=reduce(add, (valuation.profit for valuation in valuations)),
            )
        )
    return summaries


def _day(timestamp: datetime) -> str:
    return timestamp.date().isoformat()


def render_yearly_tax_summary(summaries: Iterable[YearlyTaxSummary]) -> None:
    summaries_list = list(summaries)
    if not summaries_list:
        print("(no tax events)")
        return

    label_width = len("Total delivery cost:")
    for summary in summaries_list:
        print()
        print(f"================== {summary.year}")
        print()

        for valuation in summary.events:
            for row in valuation.deliveries:
                delivery = row.delivery
                print(
                    f"{'Delivery:':<{label_width}} {_day(delivery.timestamp)} "
                    f"{format_shares(delivery.shares):>10} {format_money(row.value):>16} "
                    f"({format_money(delivery.amount)}, {row.rate:.4f} {valuation.event.home_currency}/{delivery.currency_code})"
                )
            print(f"{'Total delivery cost:':<{label_width}} {format_money(valuation.total_cost)}")

            sale = valuation.event.sale
            print(
                f"{'Sale:':<{label_width}} {_day(sale.timestamp)} "
                f"{format_shares(sale.shares):>10} {format_money(valuation.event.settlement_amount):>16}"
            )
            print(f"{'Profit/Loss:':<{label_width}} {format_money(valuation.profit)}")
            print()

        print(f"Total {summary.year}: {format_money(summary.total_profit)}")
