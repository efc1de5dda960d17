import unittest

from services.portfolio.currency_converter import convert


class CurrencyConverterTests(unittest.TestCase):
    def test_same_currency_is_identity(self):
        self.assertEqual(convert(123.45, "USD", "USD", 1000.0), 123.45)
        self.assertEqual(convert(123.45, "ARS", "ARS", 1000.0), 123.45)

    def test_ars_to_usd_divides_by_rate(self):
        self.assertAlmostEqual(convert(700.0, "ARS", "USD", 1000.0), 0.7)

    def test_usd_to_ars_multiplies_by_rate(self):
        self.assertAlmostEqual(convert(2.5, "USD", "ARS", 1000.0), 2500.0)

    def test_labels_are_case_insensitive(self):
        self.assertAlmostEqual(convert(10.0, "usd", "ars", 100.0), 1000.0)

    def test_unknown_pair_passes_through(self):
        self.assertEqual(convert(42.0, "EUR", "USD", 1000.0), 42.0)
        self.assertEqual(convert(42.0, None, "USD", 1000.0), 42.0)

    def test_non_positive_rate_rejected(self):
        with self.assertRaises(ValueError):
            convert(1.0, "ARS", "USD", 0.0)
        with self.assertRaises(ValueError):
            convert(1.0, "USD", "ARS", -5.0)
        # identity and pass-through pairs never look at the rate
        self.assertEqual(convert(1.0, "USD", "USD", 0.0), 1.0)
        self.assertEqual(convert(42.0, "EUR", "USD", 0.0), 42.0)
        self.assertEqual(convert(42.0, None, "ARS", -1.0), 42.0)

    def test_round_trip_recovers_value(self):
        for rate in (0.5, 1.0, 350.0, 1250.0, 1475.25):
            for value in (0.0, 0.01, 1.0, 123.45, 9_876_543.21):
                with self.subTest(rate=rate, value=value):
                    there = convert(value, "USD", "ARS", rate)
                    self.assertAlmostEqual(convert(there, "ARS", "USD", rate), value, places=6)
                    back = convert(value, "ARS", "USD", rate)
                    self.assertAlmostEqual(convert(back, "USD", "ARS", rate), value, places=6)


if __name__ == "__main__":
    unittest.main()
