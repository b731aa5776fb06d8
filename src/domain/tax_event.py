from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from functools import reduce
from operator import add
from typing import Sequence

from .errors import InconsistentSettlementError, MissingDeliveriesError, UnmatchedSharesError
from .pricing import CurrencyConverter
from .transactions import DEFAULT_HOME_CURRENCY, Money, Transaction, TransactionKind


@dataclass(frozen=True)
class SaleOnly:
    """Sale already denominated in the home currency."""

    sale: Transaction

    @property
    def transfer(self) -> None:
        return None

    @property
    def settling_transaction(self) -> Transaction:
        return self.sale


@dataclass(frozen=True)
class SaleWithTransfer:
    """Foreign-currency sale settled by a cash transfer into the home account."""

    sale: Transaction
    transfer: Transaction

    @property
    def settling_transaction(self) -> Transaction:
        return self.transfer


Settlement = SaleOnly | SaleWithTransfer


@dataclass(frozen=True)
class TaxEvent:
    """One sale together with the deliveries it disposes of and its settlement.

    Instances are validated on construction and never change afterwards. Profit
    figures are computed on demand against a ``CurrencyConverter``.
    """

    deliveries: tuple[Transaction, ...]
    settlement: Settlement
    home_currency: str = DEFAULT_HOME_CURRENCY

    def __post_init__(self) -> None:
        object.__setattr__(self, "home_currency", self.home_currency.upper())
        self._validate_kinds()

        if not self.deliveries:
            raise MissingDeliveriesError(
                "Didn't find deliveries for sale", sale=self.sale, transfer=self.transfer
            )

        delivered = sum(delivery.share_count for delivery in self.deliveries)
        if delivered != self.sale.share_count:
            raise UnmatchedSharesError(
                f"Sale of {self.sale.share_count} share units doesn't match {delivered} delivered",
                expected_share_count=self.sale.share_count,
                actual_share_count=delivered,
                deliveries=self.deliveries,
                sale=self.sale,
                transfer=self.transfer,
            )

        home_sale = self.sale.currency_code == self.home_currency
        if isinstance(self.settlement, SaleWithTransfer) and home_sale:
            raise InconsistentSettlementError(
                f"Transfer of {self.home_currency} sale",
                deliveries=self.deliveries,
                sale=self.sale,
                transfer=self.transfer,
            )
        if isinstance(self.settlement, SaleOnly) and not home_sale:
            raise InconsistentSettlementError(
                f"Missing transfer of {self.sale.currency_code} sale",
                deliveries=self.deliveries,
                sale=self.sale,
            )

    @classmethod
    def create(
        cls,
        deliveries: Sequence[Transaction],
        sale: Transaction,
        transfer: Transaction | None = None,
        *,
        home_currency: str = DEFAULT_HOME_CURRENCY,
    ) -> TaxEvent:
        settlement: Settlement
        if transfer is None:
            settlement = SaleOnly(sale=sale)
        else:
            settlement = SaleWithTransfer(sale=sale, transfer=transfer)
        return cls(deliveries=tuple(deliveries), settlement=settlement, home_currency=home_currency)

    @property
    def sale(self) -> Transaction:
        return self.settlement.sale

    @property
    def transfer(self) -> Transaction | None:
        return self.settlement.transfer

    @property
    def settlement_amount(self) -> Money:
        return self.settlement.settling_transaction.amount

    @property
    def settlement_date(self) -> datetime:
        return self.settlement.settling_transaction.timestamp

    @property
    def year(self) -> int:
        return self.settlement_date.year

    def transactions(self) -> list[Transaction]:
        """All transactions of the event: deliveries, then sale, then transfer."""
        result = [*self.deliveries, self.sale]
        if self.transfer is not None:
            result.append(self.transfer)
        return result

    def total_delivery_cost(self, converter: CurrencyConverter) -> Money:
        # Each delivery is converted at its own date before summing.
        converted = (converter.convert(delivery.timestamp, delivery.amount) for delivery in self.deliveries)
        return reduce(add, converted)

    def proceeds(self, converter: CurrencyConverter) -> Money:
        return converter.convert(self.settlement_date, self.settlement_amount)

    def profit(self, converter: CurrencyConverter) -> Money:
        return self.proceeds(converter) - self.total_delivery_cost(converter)

    def _validate_kinds(self) -> None:
        for delivery in self.deliveries:
            if delivery.kind != TransactionKind.DELIVERY_INBOUND:
                raise ValueError(f"Expected a delivery, got {delivery}")
        if self.sale.kind != TransactionKind.SALE_OUTBOUND:
            raise ValueError(f"Expected a sale, got {self.sale}")
        if self.transfer is not None and self.transfer.kind != TransactionKind.CASH_TRANSFER:
            raise ValueError(f"Expected a cash transfer, got {self.transfer}")

    def __str__(self) -> str:
        return "\n".join(str(transaction) for transaction in self.transactions())
