import unittest

import numpy as np

from parlay_risk.bankroll import SimulationParams, run_what_if_comparison, simulate_bankroll_growth


class TestBankroll(unittest.TestCase):
    def test_zero_multiplier_is_flat(self) -> None:
        params = SimulationParams(1000, 0.55, 2.0, kelly_multiplier=0.0, days_to_simulate=10, iterations=200)
        result = simulate_bankroll_growth(params, rng=np.random.default_rng(0))
        np.testing.assert_allclose(result.daily_percentiles.to_numpy(), 1000.0)
        self.assertEqual(result.stake_fraction, 0.0)
        self.assertEqual(result.growth_percent, 0.0)
        self.assertEqual(result.probability_of_ruin, 0.0)
        self.assertEqual(result.average_max_drawdown, 0.0)
        self.assertEqual(result.sharpe_ratio, 0.0)

    def test_over_betting_increases_ruin(self) -> None:
        full = simulate_bankroll_growth(
            SimulationParams(1000, 0.55, 2.0, kelly_multiplier=1.0, days_to_simulate=30, bets_per_day=3),
            rng=np.random.default_rng(1),
        )
        double = simulate_bankroll_growth(
            SimulationParams(1000, 0.55, 2.0, kelly_multiplier=2.0, days_to_simulate=30, bets_per_day=3),
            rng=np.random.default_rng(1),
        )
        self.assertAlmostEqual(full.kelly_fraction, 0.1)
        self.assertAlmostEqual(double.stake_fraction, 0.2)
        self.assertLess(full.probability_of_ruin, double.probability_of_ruin)
        self.assertGreater(double.probability_of_ruin - full.probability_of_ruin, 0.05)
        self.assertGreater(double.average_max_drawdown, full.average_max_drawdown)

    def test_daily_percentiles_shape(self) -> None:
        params = SimulationParams(500, 0.55, 2.0, days_to_simulate=12, iterations=300)
        result = simulate_bankroll_growth(params, rng=np.random.default_rng(2))
        daily = result.daily_percentiles
        self.assertEqual(daily.shape, (13, 5))
        self.assertEqual(list(daily.columns), ["p5", "p25", "p50", "p75", "p95"])
        self.assertEqual(daily.index.name, "day")
        np.testing.assert_allclose(daily.iloc[0].to_numpy(), 500.0)
        self.assertTrue((daily["p5"] <= daily["p50"]).all())
        self.assertTrue((daily["p50"] <= daily["p95"]).all())
        self.assertEqual(result.final_percentiles.p50, daily["p50"].iloc[-1])

    def test_bankroll_never_negative(self) -> None:
        params = SimulationParams(100, 0.55, 2.0, kelly_multiplier=20.0, days_to_simulate=5, iterations=200)
        result = simulate_bankroll_growth(params, rng=np.random.default_rng(3))
        self.assertTrue((result.daily_percentiles.to_numpy() >= 0).all())
        self.assertGreater(result.probability_of_ruin, 0.5)

    def test_no_edge_means_no_bets(self) -> None:
        params = SimulationParams(1000, 0.45, 2.0, days_to_simulate=5, iterations=100)
        result = simulate_bankroll_growth(params, rng=np.random.default_rng(4))
        self.assertEqual(result.kelly_fraction, 0.0)
        np.testing.assert_allclose(result.daily_percentiles.to_numpy(), 1000.0)

    def test_zero_paths(self) -> None:
        result = simulate_bankroll_growth(SimulationParams(1000, 0.55, 2.0, days_to_simulate=3, iterations=0))
        self.assertEqual(result.daily_percentiles.shape, (4, 5))
        self.assertEqual(result.final_percentiles.p50, 1000.0)

    def test_reproducible_with_seed(self) -> None:
        params = SimulationParams(1000, 0.55, 2.0, days_to_simulate=5, iterations=100)
        first = simulate_bankroll_growth(params, rng=np.random.default_rng(5))
        second = simulate_bankroll_growth(params, rng=np.random.default_rng(5))
        self.assertEqual(first.final_percentiles, second.final_percentiles)
        self.assertEqual(first.probability_of_profit, second.probability_of_profit)

    def test_seeded_projections_compare_equal(self) -> None:
        params = SimulationParams(1000, 0.55, 2.0, days_to_simulate=5, iterations=100)
        first = simulate_bankroll_growth(params, rng=np.random.default_rng(8))
        second = simulate_bankroll_growth(params, rng=np.random.default_rng(8))
        self.assertEqual(first, second)
        self.assertEqual(hash(first), hash(second))
        other = simulate_bankroll_growth(params, rng=np.random.default_rng(9))
        self.assertNotEqual(first, other)

    def test_params_validation(self) -> None:
        with self.assertRaises(ValueError):
            SimulationParams(0, 0.55, 2.0)
        with self.assertRaises(ValueError):
            SimulationParams(1000, 1.5, 2.0)
        with self.assertRaises(ValueError):
            SimulationParams(1000, 0.55, 1.0)
        with self.assertRaises(ValueError):
            SimulationParams(1000, 0.55, 2.0, kelly_multiplier=-0.5)
        with self.assertRaises(ValueError):
            SimulationParams(1000, 0.55, 2.0, days_to_simulate=-1)


class TestWhatIf(unittest.TestCase):
    def test_what_if_comparison(self) -> None:
        result = run_what_if_comparison(
            1000, 0.55, 2.0, days=10, bets_per_day=2, iterations=300, rng=np.random.default_rng(6)
        )
        self.assertEqual(result.full_kelly.kelly_multiplier, 1.0)
        self.assertEqual(result.half_kelly.kelly_multiplier, 0.5)
        self.assertEqual(result.quarter_kelly.kelly_multiplier, 0.25)
        self.assertAlmostEqual(result.half_kelly.stake_fraction, 0.05)
        combined = result.combined_daily_data
        self.assertEqual(len(combined), 11)
        for name in ("full_kelly", "half_kelly", "quarter_kelly"):
            self.assertIn(name, combined.columns)
            self.assertIn(f"{name}_p5", combined.columns)
            self.assertIn(f"{name}_p95", combined.columns)
        self.assertGreater(result.full_kelly.average_max_drawdown, result.quarter_kelly.average_max_drawdown)

    def test_what_if_reproducible(self) -> None:
        first = run_what_if_comparison(1000, 0.55, 2.0, days=5, iterations=100, rng=np.random.default_rng(7))
        second = run_what_if_comparison(1000, 0.55, 2.0, days=5, iterations=100, rng=np.random.default_rng(7))
        self.assertTrue(first.combined_daily_data.equals(second.combined_daily_data))
        self.assertEqual(first, second)


if __name__ == "__main__":
    unittest.main()
