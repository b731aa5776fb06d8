from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from domain.pricing import RateProvider

from .rate_sources import RateSnapshotSource
from .rate_store import RateStore

logger = logging.getLogger(__name__)


class RateService(RateProvider):
    def __init__(
        self,
        source: RateSnapshotSource,
        store: RateStore,
    ) -> None:
        self.source = source
        self.store = store

    def rate(self, base_id: str, quote_id: str, timestamp: datetime) -> Decimal:
        existing = self.store.read(base_id=base_id, quote_id=quote_id, timestamp=timestamp)
        if existing is not None:
            return existing.rate

        fetched = self.source.fetch_snapshot(base_id=base_id, quote_id=quote_id, timestamp=timestamp)
        logger.debug(
            "Fetched %s/%s=%s for %s from %s", fetched.base_id, fetched.quote_id, fetched.rate, timestamp, fetched.source
        )
        self.store.write(fetched)
        return fetched.rate


__all__ = ["RateService"]
