from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


class RateSourceError(Exception):
    """Raised when a rate source cannot provide a quote."""


@dataclass(frozen=True)
class RateQuote:
    """Exchange rate quote: one unit of ``base_id`` buys ``rate`` units of ``quote_id``."""

    timestamp: datetime
    base_id: str
    quote_id: str
    rate: Decimal
    source: str
    valid_from: datetime
    valid_to: datetime

    def covers(self, timestamp: datetime) -> bool:
        return self.valid_from <= timestamp < self.valid_to


__all__ = ["RateQuote", "RateSourceError"]
