# services/portfolio/quote_overlay.py
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from schemas.portfolio import LiveQuote, PortfolioAsset, PortfolioRow
from services.portfolio.mappers import calculate_pnl

logger = logging.getLogger(__name__)

QUOTE_BATCH_SIZE = 8

QuoteFetcher = Callable[[str, str], Awaitable[Optional[LiveQuote]]]


def _usable(quote: LiveQuote, asset: PortfolioAsset) -> bool:
    if quote.price <= 0:
        return False
    # A USD quote for an ARS-listed CEDEAR is not a fresher price for it.
    if quote.currency is not None and quote.currency != asset.currency:
        return False
    return True


def overlay_quote(asset: PortfolioAsset, quote: Optional[LiveQuote]) -> PortfolioRow:
    base = asset.model_dump(exclude={"allocation"})
    if quote is None or not _usable(quote, asset):
        return PortfolioRow(**base, daily_change=None, has_live_quote=False)

    price = quote.price
    pnl, pnl_percent = calculate_pnl(price, asset.average_price, asset.quantity, asset.has_cost_basis)
    base.update(
        current_price=price,
        current_value=asset.quantity * price,
        pnl=pnl,
        pnl_percent=pnl_percent,
    )
    return PortfolioRow(**base, daily_change=quote.change_percent, has_live_quote=True)


def overlay_quotes(
    assets: Iterable[PortfolioAsset],
    quotes: Mapping[str, Optional[LiveQuote]],
) -> List[PortfolioRow]:
    """
    Apply live quotes by ticker. Order follows `assets`; positions without a
    usable quote keep their provider price and get daily_change=None.
    """
    return [overlay_quote(a, quotes.get(a.ticker.upper())) for a in assets]


def _batches(items: Sequence[Tuple[str, str]], size: int) -> Iterable[Sequence[Tuple[str, str]]]:
    for i in range(0, len(items), size):
        yield items[i:i + size]


async def fetch_quotes_batched(
    items: Iterable[Tuple[str, str]],
    get_quote: QuoteFetcher,
    batch_size: int = QUOTE_BATCH_SIZE,
) -> Dict[str, Optional[LiveQuote]]:
    """
    Fetch quotes for (ticker, category) pairs, at most `batch_size` in flight.
    Each batch settles fully before the next one starts; a failing lookup
    yields None for that ticker only.
    """
    seen: Dict[str, str] = {}
    for ticker, category in items:
        t = (ticker or "").strip().upper()
        if t and t not in seen:
            seen[t] = category
    pairs = list(seen.items())

    results: Dict[str, Optional[LiveQuote]] = {}
    size = max(1, batch_size)
    for batch in _batches(pairs, size):
        settled = await asyncio.gather(
            *(get_quote(t, c) for t, c in batch),
            return_exceptions=True,
        )
        for (ticker, _), res in zip(batch, settled):
            if isinstance(res, BaseException):
                logger.debug("quote_fetch_failed ticker=%s error=%s", ticker, type(res).__name__)
                results[ticker] = None
            else:
                results[ticker] = res
    return results
