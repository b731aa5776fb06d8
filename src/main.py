from __future__ import annotations

import argparse
import logging
from datetime import date
from pathlib import Path
from typing import Sequence

from config import config
from domain.errors import ConversionUnavailableError, TaxEventError
from domain.event_builder import TaxEventBuilder
from domain.pricing import CurrencyConverter
from importers.ledger_importer import LedgerImporter
from services.currency_converter import HistoricalCurrencyConverter
from services.open_exchange_rates_source import OpenExchangeRatesClient, OpenExchangeRatesSource
from services.rate_service import RateService
from services.rate_sources import RateSnapshotSource, RateTableSource
from services.rate_store import JsonlRateStore
from utils.tax_summary import compute_yearly_tax_summary, render_yearly_tax_summary

logger = logging.getLogger(__name__)


def build_converter(
    cache_dir: Path,
    *,
    home_currency: str,
    rates_csv: Path | None = None,
    app_id: str | None = None,
) -> CurrencyConverter:
    source: RateSnapshotSource
    if rates_csv is not None:
        source = RateTableSource(rates_csv, home_currency=home_currency)
    elif app_id:
        source = OpenExchangeRatesSource(client=OpenExchangeRatesClient(app_id=app_id))
    else:
        msg = "Either a rate table (--rates-csv) or OPEN_EXCHANGE_RATES_APP_ID is required"
        raise ValueError(msg)

    cache_dir.mkdir(parents=True, exist_ok=True)
    service = RateService(source=source, store=JsonlRateStore(root_dir=cache_dir))
    return HistoricalCurrencyConverter(service, home_currency=home_currency)


def run(
    ledger_csv: Path,
    cache_dir: Path,
    *,
    home_currency: str,
    since: date | None,
    rates_csv: Path | None = None,
) -> None:
    settings = config()
    importer = LedgerImporter(
        ledger_csv,
        securities_account=settings.securities_account,
        cash_account=settings.cash_account,
        since=since,
    )
    transactions = importer.load_transactions()
    events = TaxEventBuilder(home_currency=home_currency).build(transactions)

    converter = build_converter(
        cache_dir,
        home_currency=home_currency,
        rates_csv=rates_csv,
        app_id=settings.open_exchange_rates_app_id,
    )
    render_yearly_tax_summary(compute_yearly_tax_summary(events, converter))


def main(argv: Sequence[str] | None = None) -> int:
    settings = config()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    parser = argparse.ArgumentParser(description="Compute realized gains of vested share sales per tax year.")
    parser.add_argument("--ledger", type=Path, required=True)
    parser.add_argument("--rates-csv", type=Path, default=None)
    parser.add_argument("--rate-cache-dir", type=Path, default=settings.rate_cache_dir)
    parser.add_argument("--home-currency", default=settings.home_currency)
    parser.add_argument("--since", type=date.fromisoformat, default=settings.ledger_since)
    args = parser.parse_args(argv)

    try:
        run(
            args.ledger,
            args.rate_cache_dir,
            home_currency=args.home_currency.upper(),
            since=args.since,
            rates_csv=args.rates_csv,
        )
    except (TaxEventError, ConversionUnavailableError) as err:
        logger.error("Aborting: %s", err)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
