from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Protocol

from .rate_types import RateQuote


class RateStore(Protocol):
    def write(self, quote: RateQuote) -> None: ...

    def read(self, base_id: str, quote_id: str, timestamp: datetime) -> RateQuote | None: ...


class JsonlRateStore(RateStore):
    """Append-only cache of fetched quotes, one JSONL file per currency pair."""

    def __init__(self, *, root_dir: Path) -> None:
        self.root_dir = root_dir

    def write(self, quote: RateQuote) -> None:
        path = self._file_path(quote.base_id, quote.quote_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        record = {
            "timestamp": quote.timestamp.isoformat(),
            "base_id": quote.base_id,
            "quote_id": quote.quote_id,
            "rate": str(quote.rate),
            "source": quote.source,
            "valid_from": quote.valid_from.isoformat(),
            "valid_to": quote.valid_to.isoformat(),
        }
        with path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record))
            handle.write("\n")

    def read(self, base_id: str, quote_id: str, timestamp: datetime) -> RateQuote | None:
        """Return the most recent stored quote whose validity window covers ``timestamp``."""
        path = self._file_path(base_id, quote_id)
        if not path.exists():
            return None

        best: RateQuote | None = None
        with path.open("r", encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if not line:
                    continue
                quote = self._parse_record(json.loads(line))
                if not quote.covers(timestamp):
                    continue
                if best is None or quote.timestamp > best.timestamp:
                    best = quote
        return best

    @staticmethod
    def _parse_record(record: dict[str, Any]) -> RateQuote:
        timestamp = datetime.fromisoformat(record["timestamp"])
        valid_from = datetime.fromisoformat(record.get("valid_from", record["timestamp"]))
        return RateQuote(
            timestamp=timestamp,
            base_id=record["base_id"],
            quote_id=record["quote_id"],
            rate=Decimal(record["rate"]),
            source=record["source"],
            valid_from=valid_from,
            valid_to=datetime.fromisoformat(record["valid_to"]),
        )

    def _file_path(self, base_id: str, quote_id: str) -> Path:
        return self.root_dir / "rates" / f"{base_id.upper()}-{quote_id.upper()}.jsonl"


__all__ = ["JsonlRateStore", "RateStore"]
