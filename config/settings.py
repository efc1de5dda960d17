# config/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "") -> bool:
    return (os.getenv(name, default) or "").lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./portfolio.db"
    credentials_encryption_key: str = ""  # 64 hex chars (AES-256)

    fallback_usd_ars_rate: float = 1250.0
    exchange_rate_url: str = "https://dolarapi.com/v1/dolares/blue"
    exchange_rate_ttl_sec: float = 300.0

    quote_batch_size: int = 8
    period_batch_size: int = 5
    provider_timeout_sec: float = 15.0
    dust_threshold_usd: float = 1.0

    iol_api_url: str = "https://api.invertironline.com"
    ppi_api_url: str = "https://clientapi_sandbox.portfoliopersonal.com"
    binance_api_url: str = "https://api.binance.com"

    rate_limit_default: str = "120/minute"
    rate_limit_quote: str = "60/minute"
    rate_limit_insights: str = "5/minute"
    rate_limit_storage_uri: str = "memory://"

    log_level: str = "INFO"
    log_json: bool = False

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            database_url=os.getenv("DATABASE_URL") or "sqlite:///./portfolio.db",
            credentials_encryption_key=os.getenv("CREDENTIALS_ENCRYPTION_KEY", ""),

            fallback_usd_ars_rate=float(os.getenv("FALLBACK_USD_ARS_RATE", "1250")),
            exchange_rate_url=os.getenv("EXCHANGE_RATE_URL") or "https://dolarapi.com/v1/dolares/blue",
            exchange_rate_ttl_sec=float(os.getenv("EXCHANGE_RATE_TTL_SEC", "300")),

            quote_batch_size=int(os.getenv("QUOTE_BATCH_SIZE", "8")),
            period_batch_size=int(os.getenv("PERIOD_BATCH_SIZE", "5")),
            provider_timeout_sec=float(os.getenv("PROVIDER_TIMEOUT_SEC", "15")),
            dust_threshold_usd=float(os.getenv("DUST_THRESHOLD_USD", "1.0")),

            iol_api_url=os.getenv("IOL_API_URL") or "https://api.invertironline.com",
            ppi_api_url=os.getenv("PPI_API_URL") or "https://clientapi_sandbox.portfoliopersonal.com",
            binance_api_url=os.getenv("BINANCE_API_URL") or "https://api.binance.com",

            rate_limit_default=os.getenv("RATE_LIMIT_DEFAULT", "120/minute"),
            rate_limit_quote=os.getenv("RATE_LIMIT_QUOTE", "60/minute"),
            rate_limit_insights=os.getenv("RATE_LIMIT_INSIGHTS", "5/minute"),
            rate_limit_storage_uri=os.getenv("REDIS_URL", "memory://"),

            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
            log_json=_env_bool("LOG_JSON") or bool(os.getenv("RAILWAY_ENVIRONMENT")),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
