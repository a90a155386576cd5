import math
import unittest

from parlay_risk.odds import (
    american_to_decimal,
    american_to_prob,
    decimal_to_prob,
    expected_value,
    prob_to_american,
    validate_american_odds,
)


class TestOdds(unittest.TestCase):
    def test_american_to_prob(self) -> None:
        self.assertAlmostEqual(american_to_prob(150), 0.4)
        self.assertAlmostEqual(american_to_prob(-200), 2 / 3)
        self.assertAlmostEqual(american_to_prob(100), 0.5)
        self.assertAlmostEqual(american_to_prob(-100), 0.5)

    def test_american_to_decimal(self) -> None:
        self.assertAlmostEqual(american_to_decimal(150), 2.5)
        self.assertAlmostEqual(american_to_decimal(-200), 1.5)

    def test_decimal_to_prob(self) -> None:
        self.assertAlmostEqual(decimal_to_prob(2.5), 0.4)
        with self.assertRaises(ValueError):
            decimal_to_prob(1.0)

    def test_prob_to_american_inverts_implied_probability(self) -> None:
        self.assertAlmostEqual(prob_to_american(0.4), 150)
        self.assertAlmostEqual(prob_to_american(2 / 3), -200)
        for odds in (-450, -110, 120, 900):
            self.assertAlmostEqual(prob_to_american(american_to_prob(odds)), odds)
        with self.assertRaises(ValueError):
            prob_to_american(1.0)

    def test_expected_value(self) -> None:
        self.assertAlmostEqual(expected_value(0.5, 100), 0.0)
        self.assertAlmostEqual(expected_value(0.5, 150), 0.25)
        self.assertLess(expected_value(0.5, -110), 0)

    def test_validate_rejects_invalid_odds(self) -> None:
        for bad in (50, -99, 0, math.nan, math.inf, True, "150", None):
            with self.assertRaises(ValueError):
                validate_american_odds(bad)
        self.assertEqual(validate_american_odds(-110), -110.0)


if __name__ == "__main__":
    unittest.main()
