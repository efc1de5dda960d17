import unittest

from schemas.portfolio import GroupingAssetIn
from services.portfolio.correlation_service import group_portfolio
from services.portfolio.ticker_metadata import UNKNOWN_META, get_ticker_meta, get_ticker_meta_map


def _holding(ticker, value):
    return GroupingAssetIn(ticker=ticker, quantity=1, current_value=value, current_price=value)


class TickerMetadataTests(unittest.TestCase):
    def test_lookup_is_case_insensitive(self):
        self.assertEqual(get_ticker_meta("ggal").correlation_group, "ar-banks")
        self.assertEqual(get_ticker_meta(" aapl ").sector, "Technology")

    def test_unknown_ticker(self):
        self.assertEqual(get_ticker_meta("NOPE"), UNKNOWN_META)
        self.assertEqual(get_ticker_meta_map(["nope"]), {"NOPE": UNKNOWN_META})


class GroupPortfolioTests(unittest.TestCase):
    def test_us_banks_fully_concentrated(self):
        metrics = group_portfolio(
            [_holding("JPM", 40), _holding("GS", 40), _holding("MS", 10), _holding("BAC", 10)]
        )
        [banks] = metrics.by_correlation_group
        self.assertEqual(banks.name, "us-banks")
        self.assertEqual(banks.tickers, ["JPM", "GS", "MS", "BAC"])
        self.assertEqual(banks.allocation, 100.0)
        self.assertTrue(banks.is_concentrated)
        # Financials sector + us-banks group; countries are not counted
        self.assertEqual(metrics.concentrated_groups, 2)
        self.assertEqual(metrics.total_value, 100.0)

    def test_threshold_is_strictly_greater(self):
        at = group_portfolio([_holding("AAPL", 30), _holding("JPM", 70)])
        tech = next(g for g in at.by_sector if g.name == "Technology")
        self.assertEqual(tech.allocation, 30.0)
        self.assertFalse(tech.is_concentrated)

        above = group_portfolio([_holding("AAPL", 3001), _holding("JPM", 6999)])
        tech = next(g for g in above.by_sector if g.name == "Technology")
        self.assertEqual(tech.allocation, 30.01)
        self.assertTrue(tech.is_concentrated)

    def test_groups_sorted_descending_with_stable_ties(self):
        metrics = group_portfolio([_holding("AAPL", 50), _holding("JPM", 50), _holding("GGAL", 100)])
        self.assertEqual([g.name for g in metrics.by_sector], ["Financials", "Technology"])
        self.assertEqual([g.name for g in metrics.by_country], ["US", "Argentina"])
        self.assertEqual(
            [g.name for g in metrics.by_correlation_group],
            ["ar-banks", "us-megacap-tech", "us-banks"],
        )

    def test_unknown_tickers_fall_into_other(self):
        metrics = group_portfolio([_holding("zzz", 10)])
        self.assertEqual(metrics.by_sector[0].name, "Other")
        self.assertEqual(metrics.by_sector[0].tickers, ["ZZZ"])
        self.assertEqual(metrics.by_correlation_group[0].name, "ungrouped")

    def test_zero_value_portfolio(self):
        metrics = group_portfolio([_holding("AAPL", 0)])
        self.assertEqual(metrics.by_sector, [])
        self.assertEqual(metrics.by_country, [])
        self.assertEqual(metrics.by_correlation_group, [])
        self.assertEqual(metrics.total_value, 0.0)
        self.assertEqual(metrics.concentrated_groups, 0)


if __name__ == "__main__":
    unittest.main()
