from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any

import requests
from requests import Response
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from .rate_sources import RateSnapshotSource
from .rate_types import RateQuote, RateSourceError

logger = logging.getLogger(__name__)


# API docs: https://docs.openexchangerates.org/reference/api-introduction
class OpenExchangeRatesAPIError(RateSourceError):
    def __init__(self, message: str, *, status_code: int | None = None, payload: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


@dataclass(frozen=True)
class HistoricalRates:
    date: date
    timestamp: datetime
    base: str
    rates: dict[str, Decimal]


class OpenExchangeRatesClient:
    def __init__(
        self,
        *,
        app_id: str,
        base_url: str = "https://openexchangerates.org/api",
        timeout: float = 10.0,
        session: requests.Session | None = None,
        retry_attempts: int = 5,
        retry_backoff_seconds: float = 1,
    ) -> None:
        if not app_id:
            msg = "app_id must be provided"
            raise ValueError(msg)

        self.app_id = app_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        if session is None:
            session = requests.Session()
            retries = Retry(
                total=retry_attempts,
                backoff_factor=retry_backoff_seconds,
                status_forcelist=[429],
                allowed_methods=frozenset({"GET"}),
                raise_on_status=False,
            )
            adapter = HTTPAdapter(max_retries=retries)
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        self._session = session

    def get_historical_rates(self, *, target_date: date) -> HistoricalRates:
        path = f"/historical/{target_date.isoformat()}.json"
        payload = self._request("GET", path)

        timestamp_raw = payload.get("timestamp")
        base_currency = payload.get("base")
        rates_raw = payload.get("rates")
        if timestamp_raw is None or base_currency is None or not isinstance(rates_raw, dict):
            raise OpenExchangeRatesAPIError("Open Exchange Rates payload missing required fields", payload=payload)

        return HistoricalRates(
            date=target_date,
            timestamp=datetime.fromtimestamp(int(timestamp_raw), tz=timezone.utc),
            base=str(base_currency).upper(),
            rates={code.upper(): Decimal(str(rate)) for code, rate in rates_raw.items()},
        )

    def _request(self, method: str, path: str) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.debug("Requesting %s", url)
        try:
            response = self._session.request(method, url, params={"app_id": self.app_id}, timeout=self.timeout)
            response.raise_for_status()
        except requests.HTTPError as exc:
            message, payload = self._extract_error(exc.response)
            status_code = getattr(exc.response, "status_code", None)
            raise OpenExchangeRatesAPIError(message, status_code=status_code, payload=payload) from exc
        except requests.RequestException as exc:
            status_code = getattr(getattr(exc, "response", None), "status_code", None)
            raise OpenExchangeRatesAPIError("Open Exchange Rates request failed", status_code=status_code) from exc

        try:
            payload_raw = response.json()
        except ValueError as exc:
            raise OpenExchangeRatesAPIError("Open Exchange Rates returned invalid JSON", payload=response.text) from exc

        if not isinstance(payload_raw, dict):
            raise OpenExchangeRatesAPIError("Open Exchange Rates returned unexpected payload type", payload=payload_raw)

        if payload_raw.get("error"):
            message = payload_raw.get("description") or payload_raw.get("message") or "Open Exchange Rates error"
            raise OpenExchangeRatesAPIError(message, payload=payload_raw)

        return payload_raw

    @staticmethod
    def _extract_error(response: Response | None) -> tuple[str, Any | None]:
        message = "Open Exchange Rates request failed"
        if response is None:
            return message, None

        try:
            payload = response.json()
        except ValueError:
            return message, response.text
        if isinstance(payload, dict):
            message = payload.get("description") or payload.get("message") or message
        return message, payload


class OpenExchangeRatesSource(RateSnapshotSource):
    """Daily historical rates; every quote is valid for the whole requested day."""

    def __init__(
        self,
        *,
        client: OpenExchangeRatesClient,
        source_name: str = "open-exchange-rates-historical",
    ) -> None:
        self.client = client
        self.source_name = source_name

    def fetch_snapshot(self, base_id: str, quote_id: str, timestamp: datetime) -> RateQuote:
        snapshot = self.client.get_historical_rates(target_date=timestamp.date())

        base = base_id.upper()
        quote = quote_id.upper()
        valid_from = datetime.combine(snapshot.date, time.min, tzinfo=timezone.utc)

        return RateQuote(
            timestamp=snapshot.timestamp,
            base_id=base,
            quote_id=quote,
            rate=self._compute_rate(snapshot=snapshot, base=base, quote=quote),
            source=self.source_name,
            valid_from=valid_from,
            valid_to=valid_from + timedelta(days=1),
        )

    def _compute_rate(self, *, snapshot: HistoricalRates, base: str, quote: str) -> Decimal:
        if base == quote:
            return Decimal("1")
        return self._resolve_rate(snapshot=snapshot, currency=quote) / self._resolve_rate(
            snapshot=snapshot, currency=base
        )

    @staticmethod
    def _resolve_rate(*, snapshot: HistoricalRates, currency: str) -> Decimal:
        if currency == snapshot.base:
            return Decimal("1")
        try:
            return snapshot.rates[currency]
        except KeyError as exc:
            msg = f"Currency {currency} not available in Open Exchange Rates data for {snapshot.date.isoformat()}"
            raise RateSourceError(msg) from exc


__all__ = [
    "HistoricalRates",
    "OpenExchangeRatesAPIError",
    "OpenExchangeRatesClient",
    "OpenExchangeRatesSource",
]
