import math
import unittest

from parlay_risk.ensemble import (
    DEFAULT_ENSEMBLE_CONFIG,
    EngineName,
    EngineSignal,
    EngineWeight,
    EnsembleConfig,
    aggregate_parlay_ensemble,
    calculate_engine_weight,
    extract_best_bet_signals,
    extract_hit_rate_signals,
    extract_signals_from_analysis,
    run_ensemble,
)


class TestEngineWeights(unittest.TestCase):
    def test_missing_data_penalty(self) -> None:
        self.assertAlmostEqual(calculate_engine_weight(1.0, 1.2, None, None, 20), 0.7)
        self.assertAlmostEqual(calculate_engine_weight(1.0, 1.2, 0.6, 0, 20), 0.7)
        self.assertAlmostEqual(calculate_engine_weight(0.9, 1.1, 0.0, 50, 20), 0.63)

    def test_accuracy_and_sample_size(self) -> None:
        # full sample confidence, accuracy 0.7 saturates the accuracy factor at 1.5
        self.assertAlmostEqual(calculate_engine_weight(1.0, 1.2, 0.7, 40, 20), 1.8)
        # half the threshold gives 0.75 sample confidence, accuracy 0.4 gives factor 0.5
        self.assertAlmostEqual(calculate_engine_weight(1.0, 1.0, 0.4, 10, 20), 0.375)

    def test_engine_name_parsing(self) -> None:
        self.assertIs(EngineName.parse("sharp_money"), EngineName.SHARP_MONEY)
        self.assertIs(EngineName.parse(" HitRate "), EngineName.HITRATE)
        self.assertIs(EngineName.parse("sharp_mony"), EngineName.UNKNOWN)
        self.assertIs(EngineName.parse(EngineName.FATIGUE), EngineName.FATIGUE)

    def test_unknown_source_gets_fallback_weight(self) -> None:
        weight = DEFAULT_ENSEMBLE_CONFIG.weight_for("my_custom_model")
        self.assertEqual(weight.name, EngineName.UNKNOWN)
        self.assertGreater(weight.base_weight, 0)

    def test_signal_validation(self) -> None:
        with self.assertRaises(ValueError):
            EngineSignal("hitrate", "buy", 0.5)
        with self.assertRaises(ValueError):
            EngineSignal("hitrate", "pick", 1.2)
        with self.assertRaises(ValueError):
            EngineSignal("hitrate", "pick", math.nan)


class TestRunEnsemble(unittest.TestCase):
    def test_empty_signals(self) -> None:
        result = run_ensemble([])
        self.assertEqual(result.consensus, "neutral")
        self.assertEqual(result.consensus_score, 0.0)
        self.assertEqual(result.weighted_confidence, 0.0)
        self.assertEqual(result.risk_level, "high")
        self.assertEqual(result.recommendation, "Insufficient data for consensus")

    def test_unanimous_picks(self) -> None:
        signals = [EngineSignal("hitrate", "pick", 0.8) for _ in range(3)]
        result = run_ensemble(signals)
        self.assertGreater(result.consensus_score, 0)
        self.assertIn(result.consensus, ("strong_pick", "lean_pick"))
        self.assertAlmostEqual(result.consensus_score, 80.0)
        self.assertAlmostEqual(result.weighted_confidence, 0.8)
        self.assertEqual(result.agreement_percent, 100.0)
        self.assertEqual(result.conflicting_signals, ())
        self.assertEqual(result.risk_level, "low")

    def test_accurate_confident_pick_outweighs_weak_fade(self) -> None:
        signals = [
            EngineSignal("sharp_money", "pick", 0.9, historical_accuracy=0.65, sample_size=200),
            EngineSignal("trap_scanner", "fade", 0.3),
        ]
        result = run_ensemble(signals)
        self.assertGreater(result.consensus_score, 15)
        self.assertIn(result.consensus, ("strong_pick", "lean_pick"))
        self.assertEqual(result.top_contributors[0], "sharp_money")
        self.assertEqual(result.conflicting_signals, ("trap_scanner",))
        self.assertEqual(result.agreement_percent, 50.0)

    def test_fades_and_neutral(self) -> None:
        fade = run_ensemble([EngineSignal("fatigue", "fade", 0.9), EngineSignal("hitrate", "fade", 0.7)])
        self.assertEqual(fade.consensus, "strong_fade")
        self.assertLess(fade.consensus_score, -40)
        neutral = run_ensemble([EngineSignal("fatigue", "neutral", 0.9)])
        self.assertEqual(neutral.consensus, "neutral")
        self.assertEqual(neutral.consensus_score, 0.0)
        self.assertEqual(neutral.risk_level, "high")

    def test_score_stays_in_range(self) -> None:
        result = run_ensemble([EngineSignal("god_mode", "pick", 1.0, historical_accuracy=0.9, sample_size=500)])
        self.assertLessEqual(result.consensus_score, 100.0)
        self.assertGreaterEqual(result.consensus_score, -100.0)

    def test_custom_config_weights(self) -> None:
        config = EnsembleConfig(
            weights={
                EngineName.HITRATE: EngineWeight(EngineName.HITRATE, "Hit Rate", 5.0, 1.0, 10),
                EngineName.FATIGUE: EngineWeight(EngineName.FATIGUE, "Fatigue", 0.1, 1.0, 10),
            }
        )
        signals = [EngineSignal("hitrate", "pick", 0.6), EngineSignal("fatigue", "fade", 0.6)]
        self.assertGreater(run_ensemble(signals, config).consensus_score, 0)

    def test_top_contributor_count(self) -> None:
        signals = [EngineSignal(name.value, "pick", 0.5) for name in list(EngineName)[:5]]
        self.assertEqual(len(run_ensemble(signals).top_contributors), 3)


class TestParlayAggregation(unittest.TestCase):
    def test_empty(self) -> None:
        result = aggregate_parlay_ensemble([])
        self.assertEqual(result.parlay_risk, "extreme")
        self.assertEqual(result.weakest_leg, -1)

    def test_strong_legs(self) -> None:
        legs = [
            run_ensemble([EngineSignal("hitrate", "pick", 0.8)]),
            run_ensemble([EngineSignal("sharp_money", "pick", 0.6)]),
        ]
        result = aggregate_parlay_ensemble(legs)
        self.assertEqual(result.overall_consensus, "strong_pick")
        self.assertEqual(result.parlay_risk, "low")
        self.assertEqual(result.strongest_leg, 0)
        self.assertEqual(result.weakest_leg, 1)

    def test_two_fades_is_extreme(self) -> None:
        legs = [
            run_ensemble([EngineSignal("hitrate", "pick", 0.8)]),
            run_ensemble([EngineSignal("fatigue", "fade", 0.5)]),
            run_ensemble([EngineSignal("trap_scanner", "fade", 0.4)]),
        ]
        result = aggregate_parlay_ensemble(legs)
        self.assertEqual(result.parlay_risk, "extreme")
        self.assertEqual(result.weakest_leg, 1)

    def test_zero_confidence_uses_plain_mean(self) -> None:
        legs = [run_ensemble([EngineSignal("hitrate", "neutral", 0.0)]) for _ in range(2)]
        result = aggregate_parlay_ensemble(legs)
        self.assertEqual(result.overall_score, 0.0)
        self.assertEqual(result.overall_consensus, "neutral")
        self.assertEqual(result.parlay_risk, "high")


class TestSignalExtraction(unittest.TestCase):
    def test_extract_from_analysis(self) -> None:
        signals = extract_signals_from_analysis(
            {
                "sharp_indicator": "Sharp action on home side",
                "trap_score": 80,
                "fatigue_score": 70,
                "recommendation": "Pick",
                "confidence_level": "high",
                "adjusted_probability": 0.62,
            }
        )
        by_engine = {signal.engine_name: signal for signal in signals}
        self.assertEqual(by_engine["sharp_money"].recommendation, "pick")
        self.assertEqual(by_engine["trap_scanner"].recommendation, "fade")
        self.assertAlmostEqual(by_engine["trap_scanner"].confidence, 0.6)
        self.assertEqual(by_engine["fatigue"].recommendation, "fade")
        self.assertAlmostEqual(by_engine["correlation"].confidence, 0.85)
        self.assertEqual(by_engine["monte_carlo"].recommendation, "pick")
        self.assertAlmostEqual(by_engine["monte_carlo"].confidence, 0.24)

    def test_extract_from_empty_analysis(self) -> None:
        self.assertEqual(extract_signals_from_analysis({}), [])
        self.assertEqual(extract_signals_from_analysis({"trap_score": float("nan")}), [])

    def test_extract_best_bet_signals(self) -> None:
        signals = extract_best_bet_signals({"sharp_indicator": "steam move", "confidence": 0.8}, "nhl_sharp")
        self.assertEqual(len(signals), 1)
        self.assertEqual(signals[0].engine_name, "sharp_money")
        self.assertEqual(signals[0].sample_size, 150)

        signals = extract_best_bet_signals({"trap_score": 75, "confidence": 0.7}, "other")
        self.assertEqual([s.engine_name for s in signals], ["trap_scanner", "hitrate"])
        self.assertEqual(signals[0].recommendation, "fade")

    def test_extract_hit_rate_signals(self) -> None:
        signals = extract_hit_rate_signals(
            {
                "recommended_side": "over",
                "hit_rate_over": 0.8,
                "consistency_score": 65,
                "line_value_label": "good",
                "trend_direction": "cold",
                "season_avg": 27.0,
                "current_line": 24.5,
            }
        )
        by_engine = {signal.engine_name: signal for signal in signals}
        self.assertEqual(by_engine["hitrate"].recommendation, "pick")
        self.assertEqual(by_engine["correlation"].recommendation, "pick")
        self.assertEqual(by_engine["trap_scanner"].confidence, 0.65)
        self.assertEqual(by_engine["fatigue"].recommendation, "fade")
        self.assertEqual(by_engine["monte_carlo"].recommendation, "pick")
        self.assertAlmostEqual(by_engine["monte_carlo"].confidence, 0.65)


if __name__ == "__main__":
    unittest.main()
