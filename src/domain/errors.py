from __future__ import annotations

from datetime import datetime
from typing import Sequence

from .transactions import Transaction


class TaxEventError(Exception):
    """Fatal inconsistency found while grouping transactions into tax events."""

    def __init__(
        self,
        message: str,
        *,
        deliveries: Sequence[Transaction] = (),
        sale: Transaction | None = None,
        transfer: Transaction | None = None,
    ) -> None:
        self.deliveries = tuple(deliveries)
        self.sale = sale
        self.transfer = transfer
        super().__init__(f"{message}\n{self.describe()}")

    def describe(self) -> str:
        lines = [f"  delivery: {delivery}" for delivery in self.deliveries]
        lines.append(f"  sale: {self.sale if self.sale is not None else '-'}")
        lines.append(f"  transfer: {self.transfer if self.transfer is not None else '-'}")
        return "\n".join(lines)


class DuplicateSaleError(TaxEventError):
    pass


class UnmatchedSharesError(TaxEventError):
    def __init__(
        self,
        message: str,
        *,
        expected_share_count: int,
        actual_share_count: int,
        deliveries: Sequence[Transaction] = (),
        sale: Transaction | None = None,
        transfer: Transaction | None = None,
    ) -> None:
        self.expected_share_count = expected_share_count
        self.actual_share_count = actual_share_count
        super().__init__(message, deliveries=deliveries, sale=sale, transfer=transfer)


class MissingDeliveriesError(TaxEventError):
    pass


class InconsistentSettlementError(TaxEventError):
    pass


class UnterminatedEventError(TaxEventError):
    pass


class ConversionUnavailableError(Exception):
    def __init__(self, message: str, *, timestamp: datetime, currency: str) -> None:
        super().__init__(message)
        self.timestamp = timestamp
        self.currency = currency
