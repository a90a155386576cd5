"""Risk engine for multi-leg parlays: correlation, Monte Carlo, signal ensembles and Kelly growth."""

from .bankroll import (
    ProjectionResult,
    SimulationParams,
    WhatIfResults,
    run_what_if_comparison,
    simulate_bankroll_growth,
)
from .correlation import (
    CorrelationConfig,
    CorrelationMatrix,
    DEFAULT_CORRELATION_CONFIG,
    LegCorrelation,
    build_correlation_matrix,
    calculate_correlated_probability,
    cholesky_factor,
    generate_correlated_uniform,
    quick_correlation_analysis,
)
from .ensemble import (
    DEFAULT_ENGINE_WEIGHTS,
    DEFAULT_ENSEMBLE_CONFIG,
    EngineName,
    EngineSignal,
    EngineWeight,
    EnsembleConfig,
    EnsembleResult,
    ParlayEnsembleResult,
    aggregate_parlay_ensemble,
    calculate_engine_weight,
    extract_best_bet_signals,
    extract_hit_rate_signals,
    extract_signals_from_analysis,
    run_ensemble,
)
from .kelly import (
    KellyResult,
    TiltAnalysis,
    analyze_tilt,
    calculate_kelly,
    calculate_parlay_kelly,
    calculate_variance,
    compare_to_kelly,
    kelly_fraction,
    validate_kelly_inputs,
)
from .odds import american_to_decimal, american_to_prob, expected_value, prob_to_american
from .parlay import Leg, ParlaySimulation
from .settings import EngineSettings, load_dotenv, make_rng
from .simulation import (
    ComparativeResult,
    CorrelatedComparativeResult,
    CorrelatedMonteCarloResult,
    MonteCarloResult,
    Percentiles,
    UpsetStats,
    run_comparative_simulation,
    run_correlated_comparative_simulation,
    run_correlated_monte_carlo_simulation,
    run_monte_carlo_simulation,
)
from .upsets import DEFAULT_UPSET_FACTORS, NO_UPSET_FACTORS, UpsetFactors, adjusted_probability

__all__ = [
    "Leg",
    "ParlaySimulation",
    "american_to_prob",
    "american_to_decimal",
    "prob_to_american",
    "expected_value",
    "CorrelationConfig",
    "CorrelationMatrix",
    "DEFAULT_CORRELATION_CONFIG",
    "LegCorrelation",
    "build_correlation_matrix",
    "cholesky_factor",
    "generate_correlated_uniform",
    "calculate_correlated_probability",
    "quick_correlation_analysis",
    "UpsetFactors",
    "DEFAULT_UPSET_FACTORS",
    "NO_UPSET_FACTORS",
    "adjusted_probability",
    "MonteCarloResult",
    "CorrelatedMonteCarloResult",
    "ComparativeResult",
    "CorrelatedComparativeResult",
    "Percentiles",
    "UpsetStats",
    "run_monte_carlo_simulation",
    "run_correlated_monte_carlo_simulation",
    "run_comparative_simulation",
    "run_correlated_comparative_simulation",
    "EngineName",
    "EngineSignal",
    "EngineWeight",
    "EnsembleConfig",
    "EnsembleResult",
    "ParlayEnsembleResult",
    "DEFAULT_ENGINE_WEIGHTS",
    "DEFAULT_ENSEMBLE_CONFIG",
    "calculate_engine_weight",
    "run_ensemble",
    "aggregate_parlay_ensemble",
    "extract_signals_from_analysis",
    "extract_best_bet_signals",
    "extract_hit_rate_signals",
    "KellyResult",
    "TiltAnalysis",
    "analyze_tilt",
    "kelly_fraction",
    "calculate_kelly",
    "calculate_parlay_kelly",
    "calculate_variance",
    "compare_to_kelly",
    "validate_kelly_inputs",
    "SimulationParams",
    "ProjectionResult",
    "WhatIfResults",
    "simulate_bankroll_growth",
    "run_what_if_comparison",
    "EngineSettings",
    "load_dotenv",
    "make_rng",
]
