from __future__ import annotations

import logging
from csv import DictReader
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Protocol

from .rate_types import RateQuote, RateSourceError

logger = logging.getLogger(__name__)


class RateSnapshotSource(Protocol):
    def fetch_snapshot(self, base_id: str, quote_id: str, timestamp: datetime) -> RateQuote: ...


class RateTableSource(RateSnapshotSource):
    """Historical rates read from a CSV table in ECB reference format.

    Each row ``date,currency,rate`` states how many units of ``currency`` one
    unit of the home currency buys on that date. Dates without publication
    (weekends, holidays) fall back to the latest earlier date within
    ``max_lookback_days``.
    """

    def __init__(
        self,
        path: Path,
        *,
        home_currency: str = "EUR",
        max_lookback_days: int = 7,
        source_name: str = "rate-table",
    ) -> None:
        if max_lookback_days < 0:
            msg = "max_lookback_days must be >= 0"
            raise ValueError(msg)

        self.path = path
        self.home_currency = home_currency.upper()
        self.max_lookback_days = max_lookback_days
        self.source_name = source_name
        self._table: dict[date, dict[str, Decimal]] | None = None

    def fetch_snapshot(self, base_id: str, quote_id: str, timestamp: datetime) -> RateQuote:
        base = base_id.upper()
        quote = quote_id.upper()
        requested = timestamp.date()

        if base == quote:
            published, rate = requested, Decimal("1")
        else:
            published, units = self._published_units(requested, {base, quote} - {self.home_currency})
            rate = self._units(units, quote) / self._units(units, base)
        if published != requested:
            logger.debug("No %s/%s rate published on %s, using %s", base, quote, requested, published)

        tz = timestamp.tzinfo or timezone.utc
        valid_from = datetime.combine(requested, time.min, tzinfo=tz)
        return RateQuote(
            timestamp=datetime.combine(published, time.min, tzinfo=tz),
            base_id=base,
            quote_id=quote,
            rate=rate,
            source=self.source_name,
            valid_from=valid_from,
            valid_to=valid_from + timedelta(days=1),
        )

    def _published_units(self, requested: date, currencies: set[str]) -> tuple[date, dict[str, Decimal]]:
        table = self._load()
        for days_back in range(self.max_lookback_days + 1):
            candidate = requested - timedelta(days=days_back)
            units = table.get(candidate)
            if units is not None and currencies <= units.keys():
                return candidate, units

        missing = ", ".join(sorted(currencies))
        msg = f"No rate for {missing} within {self.max_lookback_days} days before {requested.isoformat()}"
        raise RateSourceError(msg)

    def _units(self, units: dict[str, Decimal], currency: str) -> Decimal:
        if currency == self.home_currency:
            return Decimal("1")
        return units[currency]

    def _load(self) -> dict[date, dict[str, Decimal]]:
        if self._table is not None:
            return self._table

        table: dict[date, dict[str, Decimal]] = {}
        try:
            handle = self.path.open(encoding="utf-8")
        except OSError as exc:
            msg = f"Cannot read rate table {self.path}: {exc}"
            raise RateSourceError(msg) from exc

        with handle:
            for line_no, row in enumerate(DictReader(handle), start=2):
                try:
                    day = date.fromisoformat(row["date"].strip())
                    currency = row["currency"].strip().upper()
                    rate = Decimal(row["rate"].strip())
                except (KeyError, AttributeError, ValueError, InvalidOperation) as exc:
                    msg = f"Invalid rate table row {line_no} in {self.path}: {row}"
                    raise RateSourceError(msg) from exc
                if rate <= 0:
                    msg = f"Rate must be positive in row {line_no} of {self.path}"
                    raise RateSourceError(msg)
                table.setdefault(day, {})[currency] = rate

        logger.info("Loaded %d rate table dates from %s", len(table), self.path)
        self._table = table
        return table


__all__ = [
    "RateSnapshotSource",
    "RateTableSource",
]
