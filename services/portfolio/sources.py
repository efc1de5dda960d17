# services/portfolio/sources.py
"""
Provider sources: one adapter per broker that pairs its HTTP client with
its mapper. The portfolio service only sees this interface.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from config.settings import Settings, get_settings
from schemas.portfolio import LiveQuote, PortfolioAsset, Provider
from schemas.providers import BinanceCredentials, IOLQuote, IOLToken, PPICredentials, PPIQuote
from services.brokers.binance_client import BinanceClient
from services.brokers.errors import BinanceAuthError
from services.brokers.iol_client import IOLClient, market_for_ticker
from services.brokers.ppi_client import PPIClient
from services.portfolio.mappers import (
    map_binance_assets,
    map_iol_currency,
    map_iol_positions,
    map_ppi_positions,
)

logger = logging.getLogger(__name__)


class PortfolioSource(Protocol):
    provider: Provider
    supports_live_quotes: bool

    async def fetch_assets(self) -> List[PortfolioAsset]: ...

    async def get_quote(self, ticker: str, category: str) -> Optional[LiveQuote]: ...

    def export_credentials(self) -> Dict[str, Any]: ...


# ---------------------------------------------------------------------------
# Connect payloads (PUT /api/connections/{provider})
# ---------------------------------------------------------------------------

class _ConnectIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class IOLConnectIn(_ConnectIn):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class PPIConnectIn(_ConnectIn):
    authorized_client: str = Field(min_length=1)
    client_key: str = Field(min_length=1)
    api_key: str = Field(min_length=1)
    api_secret: Optional[str] = None


class BinanceConnectIn(_ConnectIn):
    api_key: str = Field(min_length=1)
    api_secret: str = Field(min_length=1)


CONNECT_SCHEMAS = {
    "iol": IOLConnectIn,
    "ppi": PPIConnectIn,
    "binance": BinanceConnectIn,
}


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------

def iol_quote_to_live(q: IOLQuote) -> Optional[LiveQuote]:
    if q.ultimo_precio <= 0:
        return None
    return LiveQuote(
        price=q.ultimo_precio,
        change_percent=q.variacion_porcentual,
        previous_close=q.cierre_anterior or None,
        currency=map_iol_currency(q.moneda) if q.moneda else None,
    )


def ppi_quote_to_live(q: PPIQuote) -> Optional[LiveQuote]:
    if q.last <= 0:
        return None
    return LiveQuote(price=q.last, change_percent=q.change, previous_close=q.close or None)


class IOLSource:
    provider: Provider = "iol"
    supports_live_quotes = True

    def __init__(self, client: IOLClient):
        self.client = client

    async def fetch_assets(self) -> List[PortfolioAsset]:
        argentina, us = await self.client.get_all_portfolios()
        return map_iol_positions([*argentina.activos, *us.activos])

    async def get_quote(self, ticker: str, category: str) -> Optional[LiveQuote]:
        quote = await self.client.get_quote(market_for_ticker(ticker, category), ticker)
        return iol_quote_to_live(quote)

    def export_credentials(self) -> Dict[str, Any]:
        return self.client.token.model_dump() if self.client.token else {}


class PPISource:
    provider: Provider = "ppi"
    supports_live_quotes = True

    def __init__(self, client: PPIClient):
        self.client = client
        # ticker -> PPI instrument type, filled by fetch_assets for quote lookups
        self._instrument_types: Dict[str, str] = {}

    async def fetch_assets(self) -> List[PortfolioAsset]:
        data = await self.client.get_balances_and_positions()
        for p in data.positions:
            if p.ticker.strip():
                self._instrument_types[p.ticker.strip().upper()] = p.instrument_type
        return map_ppi_positions(data.positions)

    async def get_quote(self, ticker: str, category: str) -> Optional[LiveQuote]:
        instrument_type = self._instrument_types.get(ticker.upper()) or (
            "CEDEARS" if category == "cedear" else "ACCIONES"
        )
        quote = await self.client.get_quote(ticker, instrument_type)
        return ppi_quote_to_live(quote)

    def export_credentials(self) -> Dict[str, Any]:
        return self.client.credentials.model_dump(by_alias=True)


class BinanceSource:
    provider: Provider = "binance"
    supports_live_quotes = False

    def __init__(self, client: BinanceClient, dust_threshold_usd: float = 1.0):
        self.client = client
        self.dust_threshold_usd = dust_threshold_usd

    async def fetch_assets(self) -> List[PortfolioAsset]:
        return map_binance_assets(await self.client.get_portfolio(), self.dust_threshold_usd)

    async def get_quote(self, ticker: str, category: str) -> Optional[LiveQuote]:
        return None

    def export_credentials(self) -> Dict[str, Any]:
        return self.client.credentials.model_dump(by_alias=True)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def build_source(
    provider: str,
    credentials: Dict[str, Any],
    settings: Optional[Settings] = None,
    http: Optional[httpx.AsyncClient] = None,
) -> PortfolioSource:
    """Stored credentials -> source. Raises pydantic.ValidationError on malformed credentials."""
    s = settings or get_settings()
    timeout = s.provider_timeout_sec
    if provider == "iol":
        token = IOLToken.model_validate(credentials)
        return IOLSource(IOLClient(token, base_url=s.iol_api_url, timeout=timeout, http=http))
    if provider == "ppi":
        creds = PPICredentials.model_validate(credentials)
        return PPISource(PPIClient(creds, base_url=s.ppi_api_url, timeout=timeout, http=http))
    if provider == "binance":
        creds = BinanceCredentials.model_validate(credentials)
        return BinanceSource(
            BinanceClient(creds, base_url=s.binance_api_url, timeout=timeout, http=http),
            s.dust_threshold_usd,
        )
    raise ValueError(f"Unknown provider: {provider}")


async def authenticate_provider(
    provider: str,
    payload: Dict[str, Any],
    settings: Optional[Settings] = None,
    http: Optional[httpx.AsyncClient] = None,
) -> Dict[str, Any]:
    """
    Validate a connect payload against the broker and return the credentials
    to persist. Broker rejections raise BrokerAuthError.
    """
    s = settings or get_settings()
    schema = CONNECT_SCHEMAS.get(provider)
    if schema is None:
        raise ValueError(f"Unknown provider: {provider}")
    body = schema.model_validate(payload)

    if isinstance(body, IOLConnectIn):
        client = IOLClient(base_url=s.iol_api_url, timeout=s.provider_timeout_sec, http=http)
        token = await client.authenticate(body.username, body.password)
        return token.model_dump()

    if isinstance(body, PPIConnectIn):
        ppi = PPIClient(
            PPICredentials(
                authorized_client=body.authorized_client,
                client_key=body.client_key,
                api_key=body.api_key,
                api_secret=body.api_secret,
            ),
            base_url=s.ppi_api_url,
            timeout=s.provider_timeout_sec,
            http=http,
        )
        creds = await ppi.authenticate()
        return creds.model_dump(by_alias=True)

    if not isinstance(body, BinanceConnectIn):
        raise ValueError(f"Unknown provider: {provider}")
    creds = BinanceCredentials(api_key=body.api_key, api_secret=body.api_secret)
    binance = BinanceClient(creds, base_url=s.binance_api_url, timeout=s.provider_timeout_sec, http=http)
    if not await binance.test_connection():
        raise BinanceAuthError()
    return creds.model_dump(by_alias=True)
