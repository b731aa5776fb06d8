from __future__ import annotations

from datetime import date
from functools import cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[1]


class AppSettings(BaseSettings):
    home_currency: str = "EUR"
    securities_account: str = "Morgan Stanley"
    cash_account: str = "OFX"
    ledger_since: date | None = date(2018, 12, 1)
    open_exchange_rates_app_id: str | None = None
    rate_cache_dir: Path = PROJECT_ROOT / ".cache" / "rates"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@cache
def config() -> AppSettings:
    return AppSettings()
