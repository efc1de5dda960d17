import asyncio
import unittest
from datetime import datetime, timedelta, timezone

import pandas as pd

from services.market.yahoo_quote_service import YahooQuoteService, currency_for_symbol, yahoo_symbols

NOW = datetime(2026, 10, 16, 20, 0, tzinfo=timezone.utc)


class _FakeTicker:
    def __init__(self, symbol, prices, histories):
        self.symbol = symbol
        self._prices = prices
        self._histories = histories

    @property
    def price(self):
        if self.symbol in self._prices:
            return {self.symbol: self._prices[self.symbol]}
        return {self.symbol: "Quote not found for symbol: " + self.symbol}

    def history(self, start=None, interval=None):
        return self._histories.get(self.symbol, pd.DataFrame())


def _service(prices=None, histories=None):
    prices = prices or {}
    histories = histories or {}
    return YahooQuoteService(
        ticker_factory=lambda sym: _FakeTicker(sym, prices, histories),
        now=lambda: NOW,
    )


def _history(symbol, closes):
    dates = [NOW - timedelta(days=len(closes) - 1 - i) for i in range(len(closes))]
    index = pd.MultiIndex.from_arrays([[symbol] * len(closes), dates], names=["symbol", "date"])
    return pd.DataFrame({"close": closes}, index=index)


class SymbolTests(unittest.TestCase):
    def test_candidates(self):
        self.assertEqual(yahoo_symbols("btc", "crypto"), ["BTC-USD"])
        self.assertEqual(yahoo_symbols("AAPL", "cedear"), ["AAPL", "AAPL.BA"])
        self.assertEqual(yahoo_symbols("GGAL", "stock"), ["GGAL.BA", "GGAL"])
        self.assertEqual(yahoo_symbols("BRK.B", "stock"), ["BRK.B"])

    def test_currency(self):
        self.assertEqual(currency_for_symbol("GGAL.BA"), "ARS")
        self.assertEqual(currency_for_symbol("AAPL"), "USD")


class QuoteTests(unittest.TestCase):
    def test_falls_back_to_second_symbol(self):
        svc = _service(
            prices={
                "GGAL": {
                    "regularMarketPrice": 45.2,
                    "regularMarketChangePercent": 0.0125,
                    "regularMarketPreviousClose": 44.6,
                    "currency": "USD",
                }
            }
        )
        quote = asyncio.run(svc.get_quote("GGAL", "stock"))
        self.assertEqual(quote.price, 45.2)
        self.assertAlmostEqual(quote.change_percent, 1.25)
        self.assertEqual(quote.currency, "USD")

    def test_unknown_symbol(self):
        self.assertIsNone(asyncio.run(_service().get_quote("NOPE", "cedear")))

    def test_batched(self):
        svc = _service(prices={"BTC-USD": {"regularMarketPrice": 60000}})
        quotes = asyncio.run(svc.get_quotes_batched([("BTC", "crypto"), ("NOPE", "crypto")], 8))
        self.assertEqual(quotes["BTC"].price, 60000)
        self.assertIsNone(quotes["NOPE"])


class PeriodChangeTests(unittest.TestCase):
    def test_one_week_change(self):
        closes = [100.0, 101.0, 102.0, 103.0, 104.0, 105.0, 106.0, 110.0]
        svc = _service(histories={"AAPL": _history("AAPL", closes)})
        pct = asyncio.run(svc.get_period_change("AAPL", "cedear", "1W"))
        # reference is the close 7 days back (100), latest 110
        self.assertAlmostEqual(pct, 10.0)

    def test_all_period_has_no_change(self):
        svc = _service(histories={"AAPL": _history("AAPL", [1.0, 2.0])})
        self.assertIsNone(asyncio.run(svc.get_period_change("AAPL", "cedear", "ALL")))

    def test_period_changes_keyed_by_ticker(self):
        svc = _service(histories={"BTC-USD": _history("BTC-USD", [50.0, 55.0])})
        out = asyncio.run(svc.get_period_changes([("btc", "crypto"), ("ETH", "crypto")], "1D", 5))
        self.assertAlmostEqual(out["BTC"], 10.0)
        self.assertIsNone(out["ETH"])


if __name__ == "__main__":
    unittest.main()
