# services/portfolio/portfolio_aggregator.py
from __future__ import annotations

from math import fsum
from typing import Iterable, List, Mapping, Optional, Sequence

from schemas.portfolio import Currency, LiveQuote, PortfolioAsset, PortfolioRow
from services.portfolio.currency_converter import convert
from services.portfolio.quote_overlay import overlay_quote

QuotesBySource = Mapping[str, Mapping[str, Optional[LiveQuote]]]


def _to_display(row: PortfolioRow, display_currency: Currency, rate: float) -> PortfolioRow:
    ccy = row.currency
    return row.model_copy(
        update={
            "display_price": convert(row.current_price, ccy, display_currency, rate),
            "display_avg_price": convert(row.average_price, ccy, display_currency, rate),
            "display_value": convert(row.current_value, ccy, display_currency, rate),
            "display_pnl": convert(row.pnl, ccy, display_currency, rate),
        }
    )


def apply_allocations(rows: Sequence[PortfolioRow]) -> List[PortfolioRow]:
    """allocation_i = display_value_i / total * 100, or 0 for every row when total <= 0."""
    total = fsum(r.display_value for r in rows)
    if total <= 0:
        return [r.model_copy(update={"allocation": 0.0}) for r in rows]
    return [r.model_copy(update={"allocation": r.display_value / total * 100.0}) for r in rows]


def aggregate(
    provider_lists: Iterable[Iterable[PortfolioAsset]],
    display_currency: Currency,
    rate: float,
    quotes: Optional[QuotesBySource] = None,
) -> List[PortfolioRow]:
    """
    Merge provider-mapped positions into display rows.

    1. concatenate in input order (ids are provider scoped, no dedup)
    2. overlay live quotes for sources present in `quotes`
    3. convert monetary fields into `display_currency`; original-currency
       fields are left as reported
    4. compute allocation over the merged set
    """
    quotes = quotes or {}
    rows: List[PortfolioRow] = []

    for assets in provider_lists:
        for asset in assets:
            source_quotes = quotes.get(asset.source or "")
            quote = source_quotes.get(asset.ticker.upper()) if source_quotes else None
            rows.append(_to_display(overlay_quote(asset, quote), display_currency, rate))

    return apply_allocations(rows)


def total_display_value(rows: Iterable[PortfolioRow]) -> float:
    return fsum(r.display_value for r in rows)
