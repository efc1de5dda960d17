# services/market/yahoo_quote_service.py
from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import pandas as pd
from yahooquery import Ticker

from schemas.portfolio import LiveQuote, TimePeriod
from services.portfolio.quote_overlay import QUOTE_BATCH_SIZE, fetch_quotes_batched

logger = logging.getLogger(__name__)

Number = Optional[float]

PERIOD_BATCH_SIZE = 5

# period -> (history lookback, interval, reference offset); ALL has no reference
PERIOD_PARAMS: Dict[str, Tuple[timedelta, str, timedelta]] = {
    "1D": (timedelta(days=5), "1d", timedelta(days=1)),
    "1W": (timedelta(days=10), "1d", timedelta(days=7)),
    "1M": (timedelta(days=35), "1d", timedelta(days=30)),
    "1Y": (timedelta(days=372), "1d", timedelta(days=365)),
    "5Y": (timedelta(days=5 * 365 + 7), "1wk", timedelta(days=5 * 365)),
}


def yahoo_symbols(ticker: str, category: str) -> List[str]:
    """
    Candidate Yahoo symbols, first hit wins.
    CEDEARs try the US listing first; local shares try .BA first and fall
    back to the raw ticker for NYSE ADRs.
    """
    t = (ticker or "").strip().upper()
    if "." in t or "-" in t:
        return [t]
    if category == "crypto":
        return [f"{t}-USD"]
    if category == "cedear":
        return [t, f"{t}.BA"]
    if category == "stock":
        return [f"{t}.BA", t]
    return [t]


def currency_for_symbol(symbol: str) -> str:
    return "ARS" if symbol.endswith(".BA") else "USD"


def _ensure_symbol_dict(obj: Any, sym: str) -> Dict[str, Any]:
    # yahooquery returns an error string instead of a dict for unknown symbols
    if isinstance(obj, dict):
        if sym in obj and isinstance(obj[sym], dict):
            return obj[sym]
        if sym in obj:
            return {}
        return obj
    return {}


def _fnum(x: Any) -> Number:
    try:
        if x is None:
            return None
        f = float(x)
        return None if math.isnan(f) else f
    except (TypeError, ValueError):
        return None


def _close_series(df: Any) -> Optional[pd.DataFrame]:
    """yahooquery history frame -> DataFrame[date, close] sorted by date (UTC)."""
    if df is None or not isinstance(df, pd.DataFrame) or df.empty:
        return None
    df = df.reset_index()
    if "date" not in df.columns or "close" not in df.columns:
        return None
    df["date"] = pd.to_datetime(df["date"], utc=True, errors="coerce")
    df = df.dropna(subset=["date", "close"]).sort_values("date")
    if df.empty:
        return None
    return df[["date", "close"]]


class YahooQuoteService:
    def __init__(
        self,
        ticker_factory: Optional[Callable[[str], Any]] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._ticker_factory = ticker_factory or (
            lambda sym: Ticker(sym, asynchronous=False, formatted=False, validate=False)
        )
        self._now = now

    # ---------- quotes ----------
    def _quote_sync(self, symbol: str) -> Optional[LiveQuote]:
        tq = self._ticker_factory(symbol)
        data = _ensure_symbol_dict(tq.price, symbol)
        price = _fnum(data.get("regularMarketPrice"))
        if price is None or price <= 0:
            return None

        change_pct = _fnum(data.get("regularMarketChangePercent"))
        # the price module reports the change as a fraction
        if change_pct is not None:
            change_pct *= 100.0
        currency = (data.get("currency") or currency_for_symbol(symbol)).upper()
        return LiveQuote(
            price=price,
            change_percent=change_pct,
            previous_close=_fnum(data.get("regularMarketPreviousClose")),
            currency=currency if currency in ("USD", "ARS") else None,
        )

    async def get_quote(self, ticker: str, category: str) -> Optional[LiveQuote]:
        for symbol in yahoo_symbols(ticker, category):
            try:
                quote = await asyncio.to_thread(self._quote_sync, symbol)
            except Exception as e:
                logger.debug("yahoo_quote_failed symbol=%s error=%s", symbol, type(e).__name__)
                continue
            if quote is not None:
                return quote
        return None

    async def get_quotes_batched(
        self,
        items: Iterable[Tuple[str, str]],
        batch_size: int = QUOTE_BATCH_SIZE,
    ) -> Dict[str, Optional[LiveQuote]]:
        return await fetch_quotes_batched(items, self.get_quote, batch_size)

    # ---------- period change ----------
    def _period_change_sync(self, symbol: str, period: str) -> Number:
        lookback, interval, ref_offset = PERIOD_PARAMS[period]
        now = self._now()
        tq = self._ticker_factory(symbol)
        df = tq.history(start=(now - lookback).strftime("%Y-%m-%d"), interval=interval)
        closes = _close_series(df)
        if closes is None:
            return None

        reference = pd.Timestamp(now - ref_offset)
        idx = (closes["date"] - reference).abs().idxmin()
        ref_close = _fnum(closes.loc[idx, "close"])
        last_close = _fnum(closes["close"].iloc[-1])
        if ref_close is None or last_close is None or ref_close == 0:
            return None
        return (last_close / ref_close - 1.0) * 100.0

    async def get_period_change(self, ticker: str, category: str, period: TimePeriod) -> Number:
        """% change from the close nearest the period's reference date to the latest close."""
        if period not in PERIOD_PARAMS:
            return None
        for symbol in yahoo_symbols(ticker, category):
            try:
                pct = await asyncio.to_thread(self._period_change_sync, symbol, period)
            except Exception as e:
                logger.debug("yahoo_history_failed symbol=%s error=%s", symbol, type(e).__name__)
                continue
            if pct is not None:
                return pct
        return None

    async def get_period_changes(
        self,
        items: Iterable[Tuple[str, str]],
        period: TimePeriod,
        batch_size: int = PERIOD_BATCH_SIZE,
    ) -> Dict[str, Number]:
        pairs = list(dict.fromkeys((t.strip().upper(), c) for t, c in items if t and t.strip()))
        out: Dict[str, Number] = {}
        size = max(1, batch_size)
        for i in range(0, len(pairs), size):
            batch = pairs[i:i + size]
            settled = await asyncio.gather(
                *(self.get_period_change(t, c, period) for t, c in batch),
                return_exceptions=True,
            )
            for (ticker, _), res in zip(batch, settled):
                out[ticker] = None if isinstance(res, BaseException) else res
        return out


_yahoo_service: Optional[YahooQuoteService] = None


def get_yahoo_service() -> YahooQuoteService:
    global _yahoo_service
    if _yahoo_service is None:
        _yahoo_service = YahooQuoteService()
    return _yahoo_service
