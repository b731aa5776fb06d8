from __future__ import annotations

import logging
from collections import Counter
from csv import DictReader
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path

from pydantic import BaseModel, ValidationError, field_validator

from domain.transactions import SHARE_SCALE, Money, Transaction, TransactionKind
from utils.units import decimal_to_int

logger = logging.getLogger(__name__)

TYPE_ALIASES = {
    "DELIVERY_INBOUND": TransactionKind.DELIVERY_INBOUND,
    "DELIVERY": TransactionKind.DELIVERY_INBOUND,
    "SALE_OUTBOUND": TransactionKind.SALE_OUTBOUND,
    "SALE": TransactionKind.SALE_OUTBOUND,
    "SELL": TransactionKind.SALE_OUTBOUND,
    "CASH_TRANSFER": TransactionKind.CASH_TRANSFER,
    "TRANSFER": TransactionKind.CASH_TRANSFER,
    "TRANSFER_IN": TransactionKind.CASH_TRANSFER,
}

# log10 of SHARE_SCALE
_SHARE_PRECISION = len(str(SHARE_SCALE)) - 1


class LedgerRow(BaseModel):
    date: datetime
    account: str
    type: str
    currency: str
    amount: Decimal
    shares: Decimal = Decimal("0")
    note: str | None = None

    @field_validator("date", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: str | datetime) -> datetime:
        if isinstance(value, str):
            value = datetime.fromisoformat(value.strip())
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("account", "type", "currency", mode="before")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip() if isinstance(value, str) else value

    @field_validator("shares", mode="before")
    @classmethod
    def _empty_shares(cls, value: str | Decimal | None) -> str | Decimal:
        if value is None or value == "":
            return "0"
        return value

    @field_validator("note", mode="before")
    @classmethod
    def _empty_note(cls, value: str | None) -> str | None:
        if value == "":
            return None
        return value


class LedgerImporter:
    """Load the securities and cash account movements from a CSV ledger export.

    Only rows of ``securities_account`` and ``cash_account`` are kept; securities
    rows dated before ``since`` are dropped. The result is sorted by date, which
    is the order ``TaxEventBuilder`` expects.
    """

    def __init__(
        self,
        source_path: Path,
        *,
        securities_account: str,
        cash_account: str,
        since: date | None = None,
    ) -> None:
        self._source_path = source_path
        self.securities_account = securities_account
        self.cash_account = cash_account
        self.since = since

    def load_transactions(self) -> list[Transaction]:
        transactions: list[Transaction] = []
        skipped: Counter[str] = Counter()

        for line_no, row in self._read_rows():
            if row.account == self.securities_account:
                if self.since is not None and row.date.date() < self.since:
                    skipped["before cutoff"] += 1
                    continue
            elif row.account != self.cash_account:
                skipped[f"account {row.account}"] += 1
                continue
            transactions.append(self._to_transaction(line_no, row))

        for reason, count in sorted(skipped.items()):
            logger.info("Skipped %d ledger rows: %s", count, reason)

        transactions.sort(key=lambda transaction: transaction.timestamp)
        logger.info("Loaded %d transactions from %s", len(transactions), self._source_path)
        return transactions

    def _read_rows(self) -> list[tuple[int, LedgerRow]]:
        rows: list[tuple[int, LedgerRow]] = []
        with self._source_path.open(encoding="utf-8") as handle:
            for line_no, raw in enumerate(DictReader(handle), start=2):
                try:
                    rows.append((line_no, LedgerRow.model_validate(raw)))
                except ValidationError as exc:
                    msg = f"Invalid ledger row {line_no} in {self._source_path}: {exc}"
                    raise ValueError(msg) from exc
        return rows

    def _to_transaction(self, line_no: int, row: LedgerRow) -> Transaction:
        kind = TYPE_ALIASES.get(row.type.upper())
        if kind is None:
            msg = f"Unknown transaction type {row.type!r} in ledger row {line_no}"
            raise ValueError(msg)

        share_count = 0
        if kind != TransactionKind.CASH_TRANSFER:
            share_count = decimal_to_int(abs(row.shares), precision=_SHARE_PRECISION)

        try:
            return Transaction(
                kind=kind,
                timestamp=row.date,
                amount=Money(amount=decimal_to_int(abs(row.amount)), currency=row.currency),
                share_count=share_count,
                note=row.note,
            )
        except ValidationError as exc:
            msg = f"Invalid transaction in ledger row {line_no}: {exc}"
            raise ValueError(msg) from exc
