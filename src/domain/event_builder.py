from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from .errors import DuplicateSaleError, InconsistentSettlementError, UnterminatedEventError
from .tax_event import TaxEvent
from .transactions import DEFAULT_HOME_CURRENCY, Transaction, TransactionKind

logger = logging.getLogger(__name__)


@dataclass
class _PendingEvent:
    deliveries: list[Transaction] = field(default_factory=list)
    sale: Transaction | None = None
    transfer: Transaction | None = None

    def is_empty(self) -> bool:
        return not self.deliveries and self.sale is None and self.transfer is None

    def is_settled(self, home_currency: str) -> bool:
        if self.transfer is not None:
            return True
        return self.sale is not None and self.sale.currency_code == home_currency


class TaxEventBuilder:
    """Group a chronologically sorted transaction stream into tax events.

    Deliveries accumulate until a sale arrives. The event closes on the cash
    transfer settling the sale, or immediately on the sale itself when it is
    already in the home currency. Any inconsistency aborts the whole run.
    """

    def __init__(self, *, home_currency: str = DEFAULT_HOME_CURRENCY) -> None:
        self.home_currency = home_currency.upper()

    def build(self, transactions: Iterable[Transaction]) -> list[TaxEvent]:
        """Caller must provide transactions in chronological order."""
        events: list[TaxEvent] = []
        pending = _PendingEvent()

        for transaction in transactions:
            self._absorb(pending, transaction)

            if pending.is_settled(self.home_currency):
                events.append(self._flush(pending))
                pending = _PendingEvent()

        if not pending.is_empty():
            raise UnterminatedEventError(
                "Transactions left without a settled sale",
                deliveries=pending.deliveries,
                sale=pending.sale,
                transfer=pending.transfer,
            )

        logger.info("Built %d tax events", len(events))
        return events

    def _absorb(self, pending: _PendingEvent, transaction: Transaction) -> None:
        if transaction.kind == TransactionKind.DELIVERY_INBOUND:
            pending.deliveries.append(transaction)
        elif transaction.kind == TransactionKind.SALE_OUTBOUND:
            if pending.sale is not None:
                raise DuplicateSaleError(
                    f"Found duplicate sale on {transaction.timestamp.date().isoformat()}: {transaction}",
                    deliveries=pending.deliveries,
                    sale=pending.sale,
                    transfer=pending.transfer,
                )
            pending.sale = transaction
        else:
            pending.transfer = transaction

    def _flush(self, pending: _PendingEvent) -> TaxEvent:
        if pending.sale is None:
            raise InconsistentSettlementError(
                "Found transfer without a pending sale",
                deliveries=pending.deliveries,
                transfer=pending.transfer,
            )

        event = TaxEvent.create(
            pending.deliveries,
            pending.sale,
            pending.transfer,
            home_currency=self.home_currency,
        )
        logger.debug(
            "Closed tax event: %d deliveries, sale %s, settled %s",
            len(event.deliveries),
            event.sale.timestamp.date().isoformat(),
            event.settlement_date.date().isoformat(),
        )
        return event


def create_tax_events(
    transactions: Iterable[Transaction], *, home_currency: str = DEFAULT_HOME_CURRENCY
) -> list[TaxEvent]:
    return TaxEventBuilder(home_currency=home_currency).build(transactions)
