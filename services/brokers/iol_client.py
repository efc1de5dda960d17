# services/brokers/iol_client.py
from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, Literal, Optional, Tuple

import httpx

from schemas.providers import IOLPortfolio, IOLQuote, IOLToken
from services.brokers.errors import (
    BrokerAuthError,
    BrokerError,
    IOLTokenExpiredError,
    broker_retrying,
    raise_for_broker_status,
    transient_from_httpx,
)

logger = logging.getLogger(__name__)

IOL_API_BASE = "https://api.invertironline.com"
EXPIRY_BUFFER_SEC = 5 * 60

IOLCountry = Literal["argentina", "estados_unidos"]

# Tickers quoted on IOL's NYSE board when held as plain stock
US_TICKERS = {
    "AAPL", "MSFT", "GOOGL", "GOOG", "AMZN", "META", "NVDA", "TSLA",
    "SPY", "QQQ", "IWM", "VOO", "VTI", "BRK.A", "BRK.B", "JPM", "V",
}


def market_for_ticker(ticker: str, category: Optional[str] = None) -> str:
    if category == "stock" and ticker.upper() in US_TICKERS:
        return "nYSE"
    # CEDEARs and local shares trade on BCBA
    return "bCBA"


class IOLClient:
    def __init__(
        self,
        token: Optional[IOLToken] = None,
        *,
        base_url: str = IOL_API_BASE,
        timeout: float = 15.0,
        http: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
        max_attempts: int = 3,
        retry_base_s: float = 0.5,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http = http
        self._clock = clock
        self.max_attempts = max_attempts
        self.retry_base_s = retry_base_s
        self._refresh_lock = asyncio.Lock()

    @asynccontextmanager
    async def _client(self):
        if self._http is not None:
            yield self._http
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as c:
                yield c

    # ---------- auth ----------
    async def _token_request(self, form: Dict[str, str]) -> httpx.Response:
        async with self._client() as client:
            try:
                return await client.post(
                    f"{self.base_url}/token",
                    data=form,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
            except httpx.HTTPError as e:
                raise transient_from_httpx(e, "iol") from e

    async def authenticate(self, username: str, password: str) -> IOLToken:
        resp = await self._token_request(
            {"username": username, "password": password, "grant_type": "password"}
        )
        if resp.status_code in (400, 401, 403):
            raise BrokerAuthError("IOL authentication failed", provider="iol", status_code=resp.status_code)
        raise_for_broker_status(resp, "iol")

        token = IOLToken.model_validate(resp.json()).model_copy(update={"issued_at": self._clock()})
        self.token = token
        logger.info("iol_authenticated expires_in=%s", token.expires_in)
        return token

    async def refresh_token(self) -> IOLToken:
        if self.token is None or not self.token.refresh_token:
            raise IOLTokenExpiredError()

        resp = await self._token_request(
            {"refresh_token": self.token.refresh_token, "grant_type": "refresh_token"}
        )
        if not resp.is_success:
            logger.info("iol_refresh_failed status=%s", resp.status_code)
            raise IOLTokenExpiredError()

        self.token = IOLToken.model_validate(resp.json()).model_copy(update={"issued_at": self._clock()})
        logger.debug("iol_token_refreshed")
        return self.token

    def is_token_expired(self) -> bool:
        if self.token is None or self.token.issued_at is None:
            return True
        expires_at = self.token.issued_at + self.token.expires_in
        return self._clock() > expires_at - EXPIRY_BUFFER_SEC

    async def _refresh_shared(self, rejected_access_token: Optional[str] = None) -> None:
        """
        Refresh under a lock so concurrent requests spend the refresh token
        once. A waiter skips the refresh when the token it saw already changed.
        """
        async with self._refresh_lock:
            if rejected_access_token is None:
                if self.is_token_expired():
                    await self.refresh_token()
            elif self.token is not None and self.token.access_token == rejected_access_token:
                await self.refresh_token()

    # ---------- requests ----------
    async def _request(self, endpoint: str) -> Any:
        async for attempt in broker_retrying(self.max_attempts, self.retry_base_s):
            with attempt:
                return await self._request_once(endpoint)

    async def _request_once(self, endpoint: str, *, retried: bool = False) -> Any:
        if self.token is None:
            raise BrokerError("Not authenticated with IOL", provider="iol")

        if self.is_token_expired():
            await self._refresh_shared()

        token = self.token
        if token is None:
            raise IOLTokenExpiredError()
        async with self._client() as client:
            try:
                resp = await client.get(
                    f"{self.base_url}{endpoint}",
                    headers={"Authorization": f"Bearer {token.access_token}"},
                )
            except httpx.HTTPError as e:
                raise transient_from_httpx(e, "iol") from e

        if resp.status_code == 401 and not retried:
            await self._refresh_shared(token.access_token)
            return await self._request_once(endpoint, retried=True)
        if resp.status_code == 401:
            raise IOLTokenExpiredError()

        raise_for_broker_status(resp, "iol")
        return resp.json()

    async def get_portfolio(self, country: IOLCountry = "argentina") -> IOLPortfolio:
        data = await self._request(f"/api/v2/portafolio/{country}")
        return IOLPortfolio.model_validate(data or {})

    async def get_all_portfolios(self) -> Tuple[IOLPortfolio, IOLPortfolio]:
        if self.token is not None and self.is_token_expired():
            await self._refresh_shared()
        argentina, us = await asyncio.gather(
            self.get_portfolio("argentina"),
            self.get_portfolio("estados_unidos"),
        )
        return argentina, us

    async def get_quote(self, market: str, symbol: str) -> IOLQuote:
        data = await self._request(f"/api/v2/{market}/Titulos/{symbol.upper()}/Cotizacion")
        return IOLQuote.model_validate(data or {})
