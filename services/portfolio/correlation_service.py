# services/portfolio/correlation_service.py
from __future__ import annotations

from math import fsum
from typing import Callable, Dict, Iterable, List, Protocol

from schemas.portfolio import CorrelationMetrics, GroupAllocation
from services.portfolio.ticker_metadata import TickerMeta, get_ticker_meta

CONCENTRATION_THRESHOLD = 30.0


class _Holding(Protocol):
    ticker: str
    current_value: float


def _round2(x: float) -> float:
    return round(x * 100) / 100


def _allocation(value: float, total: float) -> float:
    # scaled rounding to 2 decimals
    return round(value / total * 10000) / 100


def _group_by(
    holdings: Iterable[_Holding],
    metas: Dict[str, TickerMeta],
    key: Callable[[TickerMeta], str],
    total: float,
) -> List[GroupAllocation]:
    # dicts keep first-seen order, which is the tie-break for the sort below
    tickers: Dict[str, List[str]] = {}
    values: Dict[str, float] = {}
    for h in holdings:
        name = key(metas[h.ticker])
        tickers.setdefault(name, []).append(h.ticker.upper())
        values[name] = values.get(name, 0.0) + h.current_value

    groups = []
    for name, value in values.items():
        allocation = _allocation(value, total)
        groups.append(
            GroupAllocation(
                name=name,
                tickers=tickers[name],
                total_value=_round2(value),
                allocation=allocation,
                is_concentrated=allocation > CONCENTRATION_THRESHOLD,
            )
        )
    # sorted() is stable
    return sorted(groups, key=lambda g: g.allocation, reverse=True)


def group_portfolio(portfolio: Iterable[_Holding]) -> CorrelationMetrics:
    """
    Bucket holdings by sector, country and correlation group using the static
    ticker table. A zero-value portfolio yields three empty lists.
    """
    holdings = list(portfolio)
    total = fsum(h.current_value for h in holdings)
    if total <= 0:
        return CorrelationMetrics(
            by_sector=[],
            by_country=[],
            by_correlation_group=[],
            total_value=0.0,
            concentrated_groups=0,
        )

    metas = {h.ticker: get_ticker_meta(h.ticker) for h in holdings}
    by_sector = _group_by(holdings, metas, lambda m: m.sector, total)
    by_country = _group_by(holdings, metas, lambda m: m.country, total)
    by_group = _group_by(holdings, metas, lambda m: m.correlation_group, total)

    concentrated = sum(1 for g in by_sector if g.is_concentrated) + sum(
        1 for g in by_group if g.is_concentrated
    )
    return CorrelationMetrics(
        by_sector=by_sector,
        by_country=by_country,
        by_correlation_group=by_group,
        total_value=_round2(total),
        concentrated_groups=concentrated,
    )
