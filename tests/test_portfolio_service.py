import asyncio
import unittest

from schemas.portfolio import LiveQuote, PortfolioAsset
from services.brokers.errors import BrokerTransientError, IOLTokenExpiredError
from services.market.exchange_rate_service import ExchangeRate
from services.portfolio.portfolio_service import build_portfolio, collect_provider_portfolios


def _asset(source, ticker, currency="USD", price=100.0, category="stock"):
    return PortfolioAsset(
        id=f"{source}-{ticker}",
        ticker=ticker,
        name=ticker,
        category=category,
        currency=currency,
        quantity=1.0,
        current_price=price,
        current_value=price,
        source=source,
    )


class _FakeSource:
    def __init__(self, provider, assets=None, error=None, delay=0.0, quotes=None, live=True):
        self.provider = provider
        self.supports_live_quotes = live
        self._assets = assets or []
        self._error = error
        self._delay = delay
        self._quotes = quotes or {}
        self.credentials = {"token": "old"}

    async def fetch_assets(self):
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return list(self._assets)

    async def get_quote(self, ticker, category):
        return self._quotes.get(ticker)

    def export_credentials(self):
        return dict(self.credentials)


class _FixedRates:
    def __init__(self, rate=1000.0, is_live=True):
        self.rate = ExchangeRate(rate=rate, is_live=is_live)

    async def resolve_rate(self):
        return self.rate


class CollectProvidersTests(unittest.TestCase):
    def test_failures_are_isolated(self):
        sources = [
            _FakeSource("iol", error=IOLTokenExpiredError()),
            _FakeSource("ppi", error=BrokerTransientError("PPI API error: 503", provider="ppi")),
            _FakeSource("binance", assets=[_asset("binance", "BTC", category="crypto")]),
        ]
        results = asyncio.run(collect_provider_portfolios(sources, timeout=1.0))

        iol, ppi, binance = results
        self.assertFalse(iol.status.connected)
        self.assertTrue(iol.status.expired)
        self.assertEqual(iol.assets, [])
        self.assertFalse(ppi.status.connected)
        self.assertFalse(ppi.status.expired)
        self.assertIn("503", ppi.status.error)
        self.assertTrue(binance.status.connected)
        self.assertEqual(binance.status.asset_count, 1)

    def test_timeout_becomes_status(self):
        sources = [
            _FakeSource("iol", assets=[_asset("iol", "GGAL")], delay=0.5),
            _FakeSource("binance", assets=[_asset("binance", "ETH")]),
        ]
        results = asyncio.run(collect_provider_portfolios(sources, timeout=0.05))
        self.assertEqual(results[0].status.error, "Provider timed out")
        self.assertEqual(len(results[1].assets), 1)

    def test_unexpected_error_is_generic(self):
        results = asyncio.run(collect_provider_portfolios([_FakeSource("ppi", error=KeyError("x"))]))
        self.assertEqual(results[0].status.error, "Unexpected provider error")


class BuildPortfolioTests(unittest.TestCase):
    def test_end_to_end_with_partial_failure(self):
        iol = _FakeSource(
            "iol",
            assets=[_asset("iol", "GGAL", currency="ARS", price=700.0)],
            quotes={"GGAL": LiveQuote(price=800.0, change_percent=2.0, currency="ARS")},
        )
        broken = _FakeSource("ppi", error=IOLTokenExpiredError())
        binance = _FakeSource("binance", assets=[_asset("binance", "BTC", price=200.0, category="crypto")], live=False)

        portfolio = asyncio.run(build_portfolio([iol, broken, binance], "USD", _FixedRates(1000.0)))

        self.assertEqual([a.ticker for a in portfolio.assets], ["GGAL", "BTC"])
        ggal = portfolio.assets[0]
        self.assertTrue(ggal.has_live_quote)
        self.assertAlmostEqual(ggal.display_value, 0.8)
        self.assertAlmostEqual(portfolio.total_value, 200.8)
        self.assertAlmostEqual(sum(a.allocation for a in portfolio.assets), 100.0)
        self.assertEqual([p.provider for p in portfolio.providers], ["iol", "ppi", "binance"])
        self.assertTrue(portfolio.providers[1].expired)
        self.assertTrue(portfolio.rate_is_live)
        self.assertGreater(portfolio.as_of, 0)

    def test_fallback_rate_flag_propagates(self):
        portfolio = asyncio.run(build_portfolio([], "ARS", _FixedRates(1250.0, is_live=False)))
        self.assertEqual(portfolio.assets, [])
        self.assertEqual(portfolio.exchange_rate, 1250.0)
        self.assertFalse(portfolio.rate_is_live)
        self.assertEqual(portfolio.total_value, 0.0)

    def test_refreshed_credentials_are_written_back(self):
        source = _FakeSource("iol", assets=[_asset("iol", "AAPL")])
        written = []

        async def run():
            async def fetch_and_refresh():
                source.credentials = {"token": "new"}
                return [_asset("iol", "AAPL")]

            source.fetch_assets = fetch_and_refresh
            return await build_portfolio(
                [source], "USD", _FixedRates(), on_credentials=lambda p, c: written.append((p, c))
            )

        asyncio.run(run())
        self.assertEqual(written, [("iol", {"token": "new"})])

    def test_failed_write_back_keeps_portfolio(self):
        iol = _FakeSource("iol", assets=[_asset("iol", "AAPL")])
        ppi = _FakeSource("ppi", assets=[_asset("ppi", "GGAL", currency="ARS")])
        written = []

        async def fetch_and_refresh():
            iol.credentials = {"token": "new"}
            ppi.credentials = {"token": "new"}
            return [_asset(iol.provider, "AAPL")]

        iol.fetch_assets = fetch_and_refresh

        def writer(provider, creds):
            if provider == "iol":
                raise RuntimeError("db down")
            written.append(provider)

        with self.assertLogs("services.portfolio.portfolio_service", level="ERROR") as logs:
            portfolio = asyncio.run(build_portfolio([iol, ppi], "USD", _FixedRates(), on_credentials=writer))

        self.assertEqual([a.ticker for a in portfolio.assets], ["AAPL", "GGAL"])
        self.assertTrue(all(p.connected for p in portfolio.providers))
        # the second provider is still written after the first fails
        self.assertEqual(written, ["ppi"])
        self.assertTrue(any("credentials_writeback_failed provider=iol" in line for line in logs.output))

    def test_period_change_attached(self):
        class _Yahoo:
            async def get_period_changes(self, items, period, batch_size):
                self.period = period
                return {t.upper(): 12.5 for t, _ in items}

        yahoo = _Yahoo()
        source = _FakeSource("iol", assets=[_asset("iol", "AAPL")])
        portfolio = asyncio.run(build_portfolio([source], "USD", _FixedRates(), period="1M", yahoo=yahoo))
        self.assertEqual(yahoo.period, "1M")
        self.assertEqual(portfolio.assets[0].period_change_percent, 12.5)


if __name__ == "__main__":
    unittest.main()
