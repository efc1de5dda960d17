# services/brokers/binance_client.py
from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from schemas.providers import BinanceAccountInfo, BinanceAsset, BinanceCredentials, BinanceTickerPrice
from services.brokers.errors import (
    BinanceAuthError,
    BrokerError,
    TRANSIENT_STATUS_CODES,
    BrokerTransientError,
    broker_retrying,
    transient_from_httpx,
)
from utils.common_helpers import safe_json

logger = logging.getLogger(__name__)

BINANCE_API_BASE = "https://api.binance.com"

# valued 1:1 with USD
STABLECOINS = {"USDT", "USDC", "BUSD", "DAI", "TUSD", "FDUSD"}

# -2014 bad API key format, -2015 invalid key / IP / permissions
AUTH_ERROR_CODES = {-2014, -2015}


class BinanceClient:
    def __init__(
        self,
        credentials: BinanceCredentials,
        *,
        base_url: str = BINANCE_API_BASE,
        timeout: float = 15.0,
        http: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
        max_attempts: int = 3,
        retry_base_s: float = 0.5,
    ):
        self.credentials = credentials
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http = http
        self._clock = clock
        self.max_attempts = max_attempts
        self.retry_base_s = retry_base_s

    @asynccontextmanager
    async def _client(self):
        if self._http is not None:
            yield self._http
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as c:
                yield c

    def sign(self, query_string: str) -> str:
        return hmac.new(
            self.credentials.api_secret.encode("utf-8"),
            query_string.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def _raise_for_error(self, resp: httpx.Response) -> None:
        if resp.is_success:
            return
        body = safe_json(resp) or {}
        code = body.get("code")
        msg = body.get("msg") or f"Binance API error: {resp.status_code}"
        if code in AUTH_ERROR_CODES or "Invalid API" in str(msg):
            raise BinanceAuthError(str(msg))
        if resp.status_code in TRANSIENT_STATUS_CODES:
            raise BrokerTransientError(str(msg), provider="binance", status_code=resp.status_code)
        raise BrokerError(str(msg), provider="binance", status_code=resp.status_code)

    async def _signed_request(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        async for attempt in broker_retrying(self.max_attempts, self.retry_base_s):
            with attempt:
                return await self._signed_request_once(endpoint, params)

    async def _signed_request_once(self, endpoint: str, params: Optional[Dict[str, Any]]) -> Any:
        # fresh timestamp per attempt
        query = dict(params or {})
        query["timestamp"] = int(self._clock() * 1000)
        qs = urlencode(query)
        url = f"{self.base_url}{endpoint}?{qs}&signature={self.sign(qs)}"

        async with self._client() as client:
            try:
                resp = await client.get(url, headers={"X-MBX-APIKEY": self.credentials.api_key})
            except httpx.HTTPError as e:
                raise transient_from_httpx(e, "binance") from e
        self._raise_for_error(resp)
        return resp.json()

    async def _public_request(self, endpoint: str) -> Any:
        async for attempt in broker_retrying(self.max_attempts, self.retry_base_s):
            with attempt:
                return await self._public_request_once(endpoint)

    async def _public_request_once(self, endpoint: str) -> Any:
        async with self._client() as client:
            try:
                resp = await client.get(f"{self.base_url}{endpoint}")
            except httpx.HTTPError as e:
                raise transient_from_httpx(e, "binance") from e
        self._raise_for_error(resp)
        return resp.json()

    async def get_account(self) -> BinanceAccountInfo:
        return BinanceAccountInfo.model_validate(await self._signed_request("/api/v3/account"))

    async def get_all_prices(self) -> List[BinanceTickerPrice]:
        data = await self._public_request("/api/v3/ticker/price")
        return [BinanceTickerPrice.model_validate(p) for p in (data or []) if isinstance(p, dict)]

    async def test_connection(self) -> bool:
        """True when the keys are accepted. Auth failures return False; other errors propagate."""
        try:
            await self.get_account()
        except BinanceAuthError:
            return False
        return True

    async def get_portfolio(self) -> List[BinanceAsset]:
        """Non-zero balances priced in USD via their <ASSET>USDT pair, largest first."""
        account, prices = await asyncio.gather(self.get_account(), self.get_all_prices())

        price_map: Dict[str, float] = {}
        for t in prices:
            if t.symbol.endswith("USDT") and len(t.symbol) > 4:
                price_map[t.symbol[:-4]] = t.price

        assets: List[BinanceAsset] = []
        for bal in account.balances:
            total = bal.free + bal.locked
            if total <= 0:
                continue
            price = 1.0 if bal.asset in STABLECOINS else price_map.get(bal.asset, 0.0)
            assets.append(
                BinanceAsset(
                    asset=bal.asset,
                    free=bal.free,
                    locked=bal.locked,
                    total=total,
                    price=price,
                    usd_value=total * price,
                )
            )

        assets.sort(key=lambda a: a.usd_value, reverse=True)
        return assets
