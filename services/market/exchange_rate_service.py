# services/market/exchange_rate_service.py
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from config.settings import get_settings
from services.cache.ttl_cache import TTLCache
from utils.common_helpers import safe_json

logger = logging.getLogger(__name__)

DOLAR_API_BLUE_URL = "https://dolarapi.com/v1/dolares/blue"
FALLBACK_USD_ARS_RATE = 1250.0
_CACHE_KEY = "usd_ars_blue"


class ExchangeRateError(Exception):
    """Upstream rate source failed or returned an unusable payload."""


@dataclass(frozen=True)
class ExchangeRate:
    rate: float  # ARS per 1 USD (sell side)
    updated_at: Optional[str] = None
    is_live: bool = True


class ExchangeRateService:
    def __init__(
        self,
        *,
        url: str = DOLAR_API_BLUE_URL,
        ttl_sec: float = 300.0,
        fallback_rate: float = FALLBACK_USD_ARS_RATE,
        timeout: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.fallback_rate = fallback_rate
        self.timeout = timeout
        self._cache: TTLCache[ExchangeRate] = TTLCache(ttl_sec, clock=clock)
        self._http = http

    @asynccontextmanager
    async def _client(self):
        if self._http is not None:
            yield self._http
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as c:
                yield c

    async def _fetch(self) -> ExchangeRate:
        async with self._client() as client:
            try:
                r = await client.get(self.url)
                r.raise_for_status()
            except httpx.HTTPError as e:
                raise ExchangeRateError(f"dolarapi request failed: {type(e).__name__}") from e

        data = safe_json(r) or {}
        try:
            rate = float(data.get("venta"))
        except (TypeError, ValueError) as e:
            raise ExchangeRateError("dolarapi payload missing 'venta'") from e
        if rate <= 0:
            raise ExchangeRateError(f"dolarapi returned non-positive rate {rate}")
        return ExchangeRate(rate=rate, updated_at=data.get("fechaActualizacion"))

    async def get_exchange_rate(self) -> Optional[ExchangeRate]:
        """Fresh cached value, else upstream, else a stale cached value, else None."""
        cached = self._cache.get(_CACHE_KEY)
        if cached is not None:
            return cached

        try:
            fresh = await self._fetch()
        except ExchangeRateError as e:
            stale = self._cache.get_stale(_CACHE_KEY)
            logger.warning("exchange_rate_fetch_failed stale=%s error=%s", stale is not None, e)
            return stale

        self._cache.set(_CACHE_KEY, fresh)
        return fresh

    async def resolve_rate(self) -> ExchangeRate:
        """Never fails; falls back to the fixed rate with is_live=False."""
        rate = await self.get_exchange_rate()
        if rate is None:
            return ExchangeRate(rate=self.fallback_rate, updated_at=None, is_live=False)
        return rate


_exchange_rate_service: Optional[ExchangeRateService] = None


def get_exchange_rate_service() -> ExchangeRateService:
    global _exchange_rate_service
    if _exchange_rate_service is None:
        s = get_settings()
        _exchange_rate_service = ExchangeRateService(
            url=s.exchange_rate_url,
            ttl_sec=s.exchange_rate_ttl_sec,
            fallback_rate=s.fallback_usd_ars_rate,
        )
    return _exchange_rate_service
