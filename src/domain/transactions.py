from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

DEFAULT_HOME_CURRENCY = "EUR"

# 1e8 share units make one share.
SHARE_SCALE = 10**8
MINOR_UNIT_EXPONENT = 2


class TransactionKind(StrEnum):
    DELIVERY_INBOUND = "DELIVERY_INBOUND"
    SALE_OUTBOUND = "SALE_OUTBOUND"
    CASH_TRANSFER = "CASH_TRANSFER"


class Money(BaseModel):
    """Monetary amount in integer minor units (cents) of ``currency``."""

    model_config = ConfigDict(frozen=True)

    amount: int
    currency: str

    @field_validator("currency")
    @classmethod
    def _normalize_currency(cls, value: str) -> str:
        code = value.strip().upper()
        if not code:
            raise ValueError("currency must be non-empty")
        return code

    @classmethod
    def zero(cls, currency: str) -> Money:
        return cls(amount=0, currency=currency)

    def as_decimal(self) -> Decimal:
        return Decimal(self.amount).scaleb(-MINOR_UNIT_EXPONENT)

    def __add__(self, other: Money) -> Money:
        self._check_same_currency(other)
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __sub__(self, other: Money) -> Money:
        self._check_same_currency(other)
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def __neg__(self) -> Money:
        return Money(amount=-self.amount, currency=self.currency)

    def __str__(self) -> str:
        return f"{self.as_decimal():.2f} {self.currency}"

    def _check_same_currency(self, other: Money) -> None:
        if other.currency != self.currency:
            msg = f"Cannot combine {self.currency} with {other.currency}"
            raise ValueError(msg)


class Transaction(BaseModel):
    """A single movement on the securities or cash account.

    ``share_count`` is scaled by ``SHARE_SCALE`` and only carries meaning for
    deliveries and sales; cash transfers must leave it at zero.
    """

    model_config = ConfigDict(frozen=True)

    kind: TransactionKind
    timestamp: datetime
    amount: Money
    share_count: int = 0
    note: str | None = None

    @field_validator("timestamp")
    @classmethod
    def _ensure_timezone(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _validate_share_count(self) -> Transaction:
        if self.kind == TransactionKind.CASH_TRANSFER:
            if self.share_count != 0:
                raise ValueError("Cash transfers must not carry shares")
        elif self.share_count <= 0:
            raise ValueError(f"{self.kind} must carry a positive share count")
        return self

    @property
    def currency_code(self) -> str:
        return self.amount.currency

    @property
    def shares(self) -> Decimal:
        return Decimal(self.share_count) / SHARE_SCALE

    def __str__(self) -> str:
        line = f"{self.kind} {self.timestamp.date().isoformat()} {self.amount}"
        if self.kind != TransactionKind.CASH_TRANSFER:
            line += f" shares={self.shares}"
        return line
