from __future__ import annotations

from decimal import Decimal

from domain.transactions import Money


def format_currency(value: Decimal) -> str:
    cents = value.quantize(Decimal("0.01"))
    return f"{cents:.2f}"


def format_money(money: Money) -> str:
    return f"{format_currency(money.as_decimal())} {money.currency}"


def format_shares(shares: Decimal) -> str:
    return f"{shares.quantize(Decimal('0.0001')):.4f}"
