# routers/portfolio_routes.py
import logging
from typing import List, Optional, Sequence, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError

from config.settings import get_settings
from schemas.portfolio import (
    AggregatedPortfolio,
    CorrelationMetrics,
    Currency,
    GroupingRequest,
    Provider,
    ProviderStatus,
    TimePeriod,
)
from services.connection_service import ConnectionStore, get_connection_store
from services.current_user import get_current_user_id
from services.market.exchange_rate_service import ExchangeRateService, get_exchange_rate_service
from services.market.yahoo_quote_service import YahooQuoteService, get_yahoo_service
from services.portfolio.correlation_service import group_portfolio
from services.portfolio.portfolio_service import build_portfolio
from services.portfolio.sources import PortfolioSource, build_source
from utils.crypto import CredentialsError

logger = logging.getLogger(__name__)

router = APIRouter()


def load_sources(
    store: ConnectionStore,
    user_id: str,
    providers: Sequence[str],
) -> Tuple[List[PortfolioSource], List[ProviderStatus]]:
    """Sources for the stored connections; unreadable credentials become expired statuses."""
    sources: List[PortfolioSource] = []
    broken: List[ProviderStatus] = []
    for provider in providers:
        try:
            creds = store.get_credentials(user_id, provider)
            if creds is None:
                continue
            sources.append(build_source(provider, creds))
        except (CredentialsError, ValidationError, ValueError) as e:
            logger.warning("stored_credentials_unusable provider=%s error=%s", provider, type(e).__name__)
            broken.append(
                ProviderStatus(
                    provider=provider,
                    connected=False,
                    expired=True,
                    error="Stored credentials could not be read. Please reconnect your account.",
                )
            )
    return sources, broken


async def _build(
    store: ConnectionStore,
    user_id: str,
    providers: Sequence[str],
    currency: Currency,
    period: Optional[TimePeriod],
    rates: ExchangeRateService,
    yahoo: YahooQuoteService,
) -> AggregatedPortfolio:
    s = get_settings()
    sources, broken = load_sources(store, user_id, providers)
    portfolio = await build_portfolio(
        sources,
        currency,
        rates,
        period=period,
        yahoo=yahoo,
        timeout=s.provider_timeout_sec,
        batch_size=s.quote_batch_size,
        period_batch_size=s.period_batch_size,
        on_credentials=lambda provider, creds: store.save_credentials(user_id, provider, creds),
    )
    if broken:
        portfolio = portfolio.model_copy(update={"providers": [*portfolio.providers, *broken]})
    return portfolio


@router.get("", response_model=AggregatedPortfolio)
async def get_portfolio(
    currency: Currency = Query("USD"),
    period: Optional[TimePeriod] = Query(None),
    user_id: str = Depends(get_current_user_id),
    store: ConnectionStore = Depends(get_connection_store),
    rates: ExchangeRateService = Depends(get_exchange_rate_service),
    yahoo: YahooQuoteService = Depends(get_yahoo_service),
):
    """Every connected provider merged into one portfolio in the display currency."""
    providers = store.list_providers(user_id)
    return await _build(store, user_id, providers, currency, period, rates, yahoo)


@router.post("/groups", response_model=CorrelationMetrics)
async def get_portfolio_groups(
    body: GroupingRequest,
    user_id: str = Depends(get_current_user_id),
):
    return group_portfolio(body.portfolio)


@router.get("/{provider}", response_model=AggregatedPortfolio)
async def get_provider_portfolio(
    provider: Provider,
    currency: Currency = Query("USD"),
    period: Optional[TimePeriod] = Query(None),
    user_id: str = Depends(get_current_user_id),
    store: ConnectionStore = Depends(get_connection_store),
    rates: ExchangeRateService = Depends(get_exchange_rate_service),
    yahoo: YahooQuoteService = Depends(get_yahoo_service),
):
    if store.get_connection(user_id, provider) is None:
        raise HTTPException(status_code=404, detail=f"{provider.upper()} account not connected")
    return await _build(store, user_id, [provider], currency, period, rates, yahoo)
