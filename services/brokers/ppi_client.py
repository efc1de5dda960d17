# services/brokers/ppi_client.py
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import httpx

from schemas.providers import PPIBalancesAndPositions, PPICredentials, PPILoginResponse, PPIQuote
from services.brokers.errors import (
    BrokerAuthError,
    BrokerError,
    PPITokenExpiredError,
    broker_retrying,
    raise_for_broker_status,
    transient_from_httpx,
)

logger = logging.getLogger(__name__)

PPI_API_BASE = "https://clientapi_sandbox.portfoliopersonal.com"
DEFAULT_SETTLEMENT = "A-48HS"


def build_ppi_headers(creds: PPICredentials) -> Dict[str, str]:
    headers = {
        "AuthorizedClient": creds.authorized_client,
        "ClientKey": creds.client_key,
        "ApiKey": creds.api_key,
    }
    if creds.api_secret:
        headers["ApiSecret"] = creds.api_secret
    return headers


class PPIClient:
    def __init__(
        self,
        credentials: PPICredentials,
        *,
        base_url: Optional[str] = None,
        timeout: float = 15.0,
        http: Optional[httpx.AsyncClient] = None,
        max_attempts: int = 3,
        retry_base_s: float = 0.5,
    ):
        self.credentials = credentials
        self.base_url = (base_url or PPI_API_BASE).rstrip("/")
        self.timeout = timeout
        self._http = http
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

    async def _post(self, endpoint: str, headers: Dict[str, str], body: Optional[dict] = None) -> httpx.Response:
        async with self._client() as client:
            try:
                return await client.post(f"{self.base_url}{endpoint}", headers=headers, json=body)
            except httpx.HTTPError as e:
                raise transient_from_httpx(e, "ppi") from e

    # ---------- auth ----------
    async def authenticate(self) -> PPICredentials:
        """Log in with the static API keys; stores and returns credentials with tokens."""
        resp = await self._post("/api/1.0/Account/LoginApi", build_ppi_headers(self.credentials))
        if resp.status_code in (400, 401, 403):
            raise BrokerAuthError("PPI authentication failed", provider="ppi", status_code=resp.status_code)
        raise_for_broker_status(resp, "ppi")

        login = PPILoginResponse.model_validate(resp.json())
        self.credentials = self.credentials.model_copy(
            update={"access_token": login.access_token, "refresh_token": login.refresh_token}
        )
        logger.info("ppi_authenticated")
        return self.credentials

    async def refresh_token(self) -> PPICredentials:
        if not self.credentials.refresh_token:
            raise PPITokenExpiredError()

        resp = await self._post(
            "/api/1.0/Account/RefreshToken",
            build_ppi_headers(self.credentials),
            {"refreshToken": self.credentials.refresh_token},
        )
        if not resp.is_success:
            logger.info("ppi_refresh_failed status=%s", resp.status_code)
            raise PPITokenExpiredError()

        login = PPILoginResponse.model_validate(resp.json())
        self.credentials = self.credentials.model_copy(
            update={"access_token": login.access_token, "refresh_token": login.refresh_token}
        )
        logger.debug("ppi_token_refreshed")
        return self.credentials

    # ---------- requests ----------
    async def _request(self, endpoint: str, params: Optional[Dict[str, str]] = None) -> Any:
        async for attempt in broker_retrying(self.max_attempts, self.retry_base_s):
            with attempt:
                return await self._request_once(endpoint, params)

    async def _request_once(self, endpoint: str, params: Optional[Dict[str, str]] = None, *, retried: bool = False) -> Any:
        if not self.credentials.access_token:
            raise BrokerError("Not authenticated with PPI", provider="ppi")

        access_token = self.credentials.access_token
        headers = {
            **build_ppi_headers(self.credentials),
            "Authorization": f"Bearer {access_token}",
        }
        async with self._client() as client:
            try:
                resp = await client.get(f"{self.base_url}{endpoint}", params=params, headers=headers)
            except httpx.HTTPError as e:
                raise transient_from_httpx(e, "ppi") from e

        if resp.status_code == 401 and not retried:
            async with self._refresh_lock:
                # a concurrent request may already have refreshed
                if self.credentials.access_token == access_token:
                    await self.refresh_token()
            return await self._request_once(endpoint, params, retried=True)
        if resp.status_code == 401:
            raise PPITokenExpiredError()

        raise_for_broker_status(resp, "ppi")
        return resp.json()

    async def get_balances_and_positions(self) -> PPIBalancesAndPositions:
        data = await self._request("/api/1.0/Account/BalancesAndPositions")
        return PPIBalancesAndPositions.model_validate(data or {})

    async def get_quote(self, ticker: str, instrument_type: str, settlement: str = DEFAULT_SETTLEMENT) -> PPIQuote:
        data = await self._request(
            "/api/1.0/MarketData/Current",
            {"ticker": ticker.upper(), "type": instrument_type, "settlement": settlement},
        )
        return PPIQuote.model_validate(data or {})
