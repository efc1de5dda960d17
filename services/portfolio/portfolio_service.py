# services/portfolio/portfolio_service.py
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from prometheus_client import Counter, Histogram

from schemas.portfolio import (
    AggregatedPortfolio,
    Currency,
    LiveQuote,
    PortfolioAsset,
    ProviderStatus,
    TimePeriod,
)
from services.brokers.errors import BrokerAuthError, BrokerError
from services.market.exchange_rate_service import ExchangeRateService
from services.market.yahoo_quote_service import YahooQuoteService
from services.portfolio.portfolio_aggregator import aggregate, total_display_value
from services.portfolio.quote_overlay import QUOTE_BATCH_SIZE, fetch_quotes_batched
from services.portfolio.sources import PortfolioSource

logger = logging.getLogger(__name__)

CredentialsWriter = Callable[[str, Dict[str, Any]], None]

# Metrics
PROVIDER_FETCH_DURATION = Histogram(
    "provider_fetch_duration_seconds",
    "Time spent fetching one provider portfolio",
    ["provider"],
)
PROVIDER_FAILURES = Counter(
    "provider_fetch_failures_total",
    "Provider portfolio fetches that failed",
    ["provider", "kind"],
)


@dataclass
class ProviderResult:
    status: ProviderStatus
    assets: List[PortfolioAsset] = field(default_factory=list)


def _result_from_outcome(provider: str, outcome: Any) -> ProviderResult:
    if isinstance(outcome, list):
        return ProviderResult(
            ProviderStatus(provider=provider, connected=True, asset_count=len(outcome)),
            outcome,
        )

    kind = "unexpected"
    if isinstance(outcome, BrokerAuthError):
        kind = "expired"
        logger.info("provider_expired provider=%s", provider)
        status = ProviderStatus(provider=provider, connected=False, expired=True, error=str(outcome))
    elif isinstance(outcome, asyncio.TimeoutError):
        kind = "timeout"
        logger.warning("provider_timeout provider=%s", provider)
        status = ProviderStatus(provider=provider, connected=False, error="Provider timed out")
    elif isinstance(outcome, BrokerError):
        kind = "broker"
        logger.warning("provider_failed provider=%s error=%s", provider, outcome)
        status = ProviderStatus(provider=provider, connected=False, error=str(outcome))
    else:
        logger.error(
            "provider_failed_unexpected provider=%s error=%s",
            provider, type(outcome).__name__, exc_info=outcome,
        )
        status = ProviderStatus(provider=provider, connected=False, error="Unexpected provider error")
    PROVIDER_FAILURES.labels(provider=provider, kind=kind).inc()
    return ProviderResult(status, [])


async def _timed_fetch(source: PortfolioSource, timeout: float) -> List[PortfolioAsset]:
    with PROVIDER_FETCH_DURATION.labels(provider=source.provider).time():
        return await asyncio.wait_for(source.fetch_assets(), timeout)


async def collect_provider_portfolios(
    sources: Sequence[PortfolioSource],
    timeout: float = 15.0,
) -> List[ProviderResult]:
    """
    Fetch every provider concurrently. A failure or timeout in one provider
    becomes an empty asset list plus a disconnected status; it never
    cancels the others. Result order follows `sources`.
    """
    outcomes = await asyncio.gather(
        *(_timed_fetch(s, timeout) for s in sources),
        return_exceptions=True,
    )
    results = []
    for source, outcome in zip(sources, outcomes):
        if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
            raise outcome
        results.append(_result_from_outcome(source.provider, outcome))
    return results


async def fetch_live_quotes(
    sources: Sequence[PortfolioSource],
    results: Sequence[ProviderResult],
    batch_size: int = QUOTE_BATCH_SIZE,
) -> Dict[str, Dict[str, Optional[LiveQuote]]]:
    """Quotes per quote-capable provider, keyed by provider then ticker."""
    targets = [
        (src, res.assets)
        for src, res in zip(sources, results)
        if src.supports_live_quotes and res.assets
    ]
    fetched = await asyncio.gather(
        *(
            fetch_quotes_batched(((a.ticker, a.category) for a in assets), src.get_quote, batch_size)
            for src, assets in targets
        )
    )
    out: Dict[str, Dict[str, Optional[LiveQuote]]] = {}
    for (src, _), quotes in zip(targets, fetched):
        live = sum(1 for q in quotes.values() if q is not None)
        logger.debug("quotes_fetched provider=%s requested=%d live=%d", src.provider, len(quotes), live)
        out[src.provider] = quotes
    return out


def _write_back_credentials(
    sources: Sequence[PortfolioSource],
    before: Mapping[str, Dict[str, Any]],
    writer: Optional[CredentialsWriter],
) -> None:
    if writer is None:
        return
    for src in sources:
        current = src.export_credentials()
        if current and current != before.get(src.provider):
            logger.info("credentials_refreshed provider=%s", src.provider)
            try:
                writer(src.provider, current)
            except Exception:
                logger.exception("credentials_writeback_failed provider=%s", src.provider)


async def build_portfolio(
    sources: Sequence[PortfolioSource],
    display_currency: Currency,
    rate_service: ExchangeRateService,
    *,
    period: Optional[TimePeriod] = None,
    yahoo: Optional[YahooQuoteService] = None,
    timeout: float = 15.0,
    batch_size: int = QUOTE_BATCH_SIZE,
    period_batch_size: int = 5,
    on_credentials: Optional[CredentialsWriter] = None,
) -> AggregatedPortfolio:
    before = {s.provider: s.export_credentials() for s in sources}

    results = await collect_provider_portfolios(sources, timeout)
    quotes = await fetch_live_quotes(sources, results, batch_size)
    rate = await rate_service.resolve_rate()

    rows = aggregate([r.assets for r in results], display_currency, rate.rate, quotes)

    if period and period != "ALL" and yahoo is not None and rows:
        changes = await yahoo.get_period_changes(
            ((r.ticker, r.category) for r in rows), period, period_batch_size
        )
        rows = [r.model_copy(update={"period_change_percent": changes.get(r.ticker.upper())}) for r in rows]

    _write_back_credentials(sources, before, on_credentials)

    return AggregatedPortfolio(
        assets=rows,
        providers=[r.status for r in results],
        display_currency=display_currency,
        exchange_rate=rate.rate,
        rate_is_live=rate.is_live,
        total_value=total_display_value(rows),
        as_of=int(time.time() * 1000),
    )
