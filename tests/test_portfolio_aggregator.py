import unittest

from schemas.portfolio import LiveQuote, PortfolioAsset
from services.portfolio.portfolio_aggregator import aggregate, total_display_value


def _asset(source, ticker, currency, price, qty=1.0, category="stock"):
    return PortfolioAsset(
        id=f"{source}-{ticker}",
        ticker=ticker,
        name=ticker,
        category=category,
        currency=currency,
        quantity=qty,
        average_price=0.0,
        current_price=price,
        current_value=price * qty,
        source=source,
    )


class AggregatorTests(unittest.TestCase):
    def test_mixed_currency_allocation(self):
        ggal = _asset("iol", "GGAL", "ARS", 700.0)
        aapl = _asset("binance", "AAPL", "USD", 300.0)
        rows = aggregate([[ggal], [aapl]], "USD", 1000.0)

        self.assertEqual([r.ticker for r in rows], ["GGAL", "AAPL"])
        self.assertAlmostEqual(rows[0].display_value, 0.7)
        self.assertAlmostEqual(rows[1].display_value, 300.0)
        self.assertAlmostEqual(rows[0].allocation, 0.23, places=2)
        self.assertAlmostEqual(rows[1].allocation, 99.77, places=2)
        self.assertAlmostEqual(sum(r.allocation for r in rows), 100.0)
        # original-currency fields untouched
        self.assertEqual(rows[0].current_value, 700.0)
        self.assertEqual(rows[0].currency, "ARS")

    def test_display_in_ars(self):
        rows = aggregate([[_asset("binance", "BTC", "USD", 2.0, category="crypto")]], "ARS", 1000.0)
        self.assertAlmostEqual(rows[0].display_price, 2000.0)
        self.assertAlmostEqual(total_display_value(rows), 2000.0)
        self.assertAlmostEqual(rows[0].allocation, 100.0)

    def test_zero_total_gives_zero_allocations(self):
        rows = aggregate([[_asset("iol", "X", "USD", 0.0)], []], "USD", 1000.0)
        self.assertEqual([r.allocation for r in rows], [0.0])
        self.assertEqual(aggregate([], "USD", 1000.0), [])

    def test_quotes_apply_per_source(self):
        iol = _asset("iol", "AAPL", "USD", 100.0)
        ppi = _asset("ppi", "AAPL", "USD", 100.0)
        quotes = {"iol": {"AAPL": LiveQuote(price=150.0)}}
        rows = aggregate([[iol], [ppi]], "USD", 1000.0, quotes)
        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[0].current_price, 150.0)
        self.assertTrue(rows[0].has_live_quote)
        self.assertEqual(rows[1].current_price, 100.0)
        self.assertFalse(rows[1].has_live_quote)

    def test_pnl_follows_average_price_when_flag_omitted(self):
        asset = PortfolioAsset(
            id="iol-AAPL",
            ticker="AAPL",
            name="Apple",
            category="stock",
            currency="USD",
            quantity=10.0,
            average_price=100.0,
            current_price=100.0,
            current_value=1000.0,
            source="iol",
        )
        self.assertTrue(asset.has_cost_basis)
        rows = aggregate([[asset]], "USD", 1000.0, {"iol": {"AAPL": LiveQuote(price=120.0)}})
        self.assertAlmostEqual(rows[0].pnl, 200.0)
        self.assertAlmostEqual(rows[0].pnl_percent, 20.0)

        self.assertFalse(_asset("binance", "BTC", "USD", 10.0).has_cost_basis)
        explicit = PortfolioAsset.model_validate(
            {"id": "b", "ticker": "ETH", "name": "ETH", "category": "crypto", "currency": "USD",
             "quantity": 1.0, "averagePrice": 50.0, "hasCostBasis": False}
        )
        self.assertFalse(explicit.has_cost_basis)

    def test_allocations_sum_to_100_across_providers(self):
        cases = [
            (1000.0, "USD"),
            (1250.0, "ARS"),
            (0.75, "USD"),
        ]
        for rate, display in cases:
            with self.subTest(rate=rate, display=display):
                portfolios = [
                    [_asset("iol", "GGAL", "ARS", 1500.0, qty=40.0), _asset("iol", "YPFD", "ARS", 0.01)],
                    [_asset("ppi", "AAPL", "USD", 180.25, qty=3.0), _asset("ppi", "AL30", "ARS", 71000.0, qty=0.5)],
                    [],
                    [_asset("binance", "BTC", "USD", 61000.0, qty=0.013, category="crypto"),
                     _asset("binance", "DOGE", "USD", 0.12, qty=17.0, category="crypto")],
                ]
                rows = aggregate(portfolios, display, rate)
                self.assertEqual(len(rows), 6)
                self.assertAlmostEqual(sum(r.allocation for r in rows), 100.0, places=9)
                self.assertTrue(all(r.allocation >= 0 for r in rows))


if __name__ == "__main__":
    unittest.main()
