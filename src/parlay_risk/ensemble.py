"""Weighted consensus across independently produced pick/fade signals."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Literal, Mapping, Sequence

logger = logging.getLogger(__name__)

Recommendation = Literal["pick", "fade", "neutral"]
Consensus = Literal["strong_pick", "lean_pick", "neutral", "lean_fade", "strong_fade"]
RiskLevel = Literal["low", "medium", "high"]
ParlayRisk = Literal["low", "medium", "high", "extreme"]

_RECOMMENDATIONS = ("pick", "fade", "neutral")


class EngineName(str, Enum):
    SHARP_MONEY = "sharp_money"
    HITRATE = "hitrate"
    JUICED_PROPS = "juiced_props"
    FATIGUE = "fatigue"
    GOD_MODE = "god_mode"
    TRAP_SCANNER = "trap_scanner"
    CORRELATION = "correlation"
    MONTE_CARLO = "monte_carlo"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, name: str | EngineName) -> EngineName:
        """Map a source name to a known engine, or ``UNKNOWN``."""
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class EngineWeight:
    name: EngineName
    display_name: str
    base_weight: float
    accuracy_multiplier: float
    sample_size_threshold: int


DEFAULT_ENGINE_WEIGHTS: tuple[EngineWeight, ...] = (
    EngineWeight(EngineName.SHARP_MONEY, "Sharp Money", 1.0, 1.2, 20),
    EngineWeight(EngineName.HITRATE, "Hit Rate", 0.9, 1.1, 30),
    EngineWeight(EngineName.JUICED_PROPS, "Juiced Props", 0.85, 1.0, 25),
    EngineWeight(EngineName.FATIGUE, "Fatigue Edge", 0.8, 1.15, 15),
    EngineWeight(EngineName.GOD_MODE, "God Mode", 0.75, 1.3, 10),
    EngineWeight(EngineName.TRAP_SCANNER, "Trap Scanner", 0.9, 1.1, 20),
    EngineWeight(EngineName.CORRELATION, "Correlation Model", 0.7, 1.0, 50),
    EngineWeight(EngineName.MONTE_CARLO, "Monte Carlo", 0.85, 1.0, 100),
)
UNKNOWN_ENGINE_WEIGHT = EngineWeight(EngineName.UNKNOWN, "Unknown Source", 0.5, 1.0, 20)


@dataclass(frozen=True)
class EnsembleConfig:
    """Engine weights and scoring thresholds for :func:`run_ensemble`."""

    weights: Mapping[EngineName, EngineWeight] = field(
        default_factory=lambda: MappingProxyType({weight.name: weight for weight in DEFAULT_ENGINE_WEIGHTS})
    )
    unknown_weight: EngineWeight = UNKNOWN_ENGINE_WEIGHT
    missing_data_penalty: float = 0.7
    top_contributor_count: int = 3

    def weight_for(self, engine_name: str | EngineName) -> EngineWeight:
        engine = EngineName.parse(engine_name)
        weight = self.weights.get(engine)
        if weight is None:
            logger.debug("No weight configured for source %r; using unknown-source weight", engine_name)
            return self.unknown_weight
        return weight


DEFAULT_ENSEMBLE_CONFIG = EnsembleConfig()


@dataclass(frozen=True)
class EngineSignal:
    engine_name: str
    recommendation: Recommendation
    confidence: float
    reasoning: str | None = None
    historical_accuracy: float | None = None
    sample_size: int | None = None

    def __post_init__(self) -> None:
        if self.recommendation not in _RECOMMENDATIONS:
            raise ValueError(f"recommendation must be one of {_RECOMMENDATIONS}, got {self.recommendation!r}")
        if not isinstance(self.confidence, (int, float)) or math.isnan(self.confidence):
            raise ValueError(f"confidence must be numeric, got {self.confidence!r}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be in [0, 1], got {self.confidence}")

    @property
    def score(self) -> float:
        if self.recommendation == "pick":
            return float(self.confidence)
        if self.recommendation == "fade":
            return -float(self.confidence)
        return 0.0


@dataclass(frozen=True)
class EnsembleResult:
    consensus: Consensus
    consensus_score: float
    weighted_confidence: float
    agreement_percent: float
    signals: tuple[EngineSignal, ...]
    top_contributors: tuple[str, ...]
    conflicting_signals: tuple[str, ...]
    recommendation: str
    risk_level: RiskLevel


@dataclass(frozen=True)
class ParlayEnsembleResult:
    overall_consensus: Consensus
    overall_score: float
    weakest_leg: int
    strongest_leg: int
    parlay_risk: ParlayRisk
    recommendation: str


def calculate_engine_weight(
    base_weight: float,
    accuracy_multiplier: float,
    historical_accuracy: float | None,
    sample_size: int | None,
    sample_size_threshold: int,
    missing_data_penalty: float = 0.7,
) -> float:
    """Weight a source by base importance, sample confidence and observed accuracy."""
    if not historical_accuracy or not sample_size:
        return base_weight * missing_data_penalty

    sample_confidence = min(1.0, (sample_size / sample_size_threshold) * 0.5 + 0.5)
    normalized_accuracy = max(0.0, min(1.0, (historical_accuracy - 0.4) / 0.3))
    accuracy_factor = 0.5 + normalized_accuracy
    return base_weight * accuracy_multiplier * sample_confidence * accuracy_factor


def _consensus_bucket(score: float) -> Consensus:
    if score >= 40:
        return "strong_pick"
    if score >= 15:
        return "lean_pick"
    if score <= -40:
        return "strong_fade"
    if score <= -15:
        return "lean_fade"
    return "neutral"


def _risk_level(agreement_percent: float, score: float) -> RiskLevel:
    if agreement_percent >= 70 and abs(score) >= 30:
        return "low"
    if agreement_percent >= 50 or abs(score) >= 20:
        return "medium"
    return "high"


def _recommendation_text(consensus: Consensus, top_count: int, agreement_percent: float) -> str:
    if consensus == "strong_pick":
        return f"Strong consensus to PICK. {top_count} engines agree with {agreement_percent:.0f}% alignment."
    if consensus == "lean_pick":
        return "Lean PICK with moderate confidence. Some engines disagree."
    if consensus == "strong_fade":
        return f"Strong consensus to FADE. {top_count} engines see trap signals."
    if consensus == "lean_fade":
        return "Lean FADE. Proceed with caution."
    return "Mixed signals - no clear consensus. Consider passing or reducing stake."


def run_ensemble(
    signals: Sequence[EngineSignal],
    config: EnsembleConfig = DEFAULT_ENSEMBLE_CONFIG,
) -> EnsembleResult:
    """Fuse signals into a consensus bucket, score, agreement and risk level."""
    signals = tuple(signals)
    if not signals:
        return EnsembleResult(
            consensus="neutral",
            consensus_score=0.0,
            weighted_confidence=0.0,
            agreement_percent=0.0,
            signals=(),
            top_contributors=(),
            conflicting_signals=(),
            recommendation="Insufficient data for consensus",
            risk_level="high",
        )

    weights = []
    contributions = []
    for signal in signals:
        engine = config.weight_for(signal.engine_name)
        weight = calculate_engine_weight(
            engine.base_weight,
            engine.accuracy_multiplier,
            signal.historical_accuracy,
            signal.sample_size,
            engine.sample_size_threshold,
            missing_data_penalty=config.missing_data_penalty,
        )
        weights.append(weight)
        contributions.append(signal.score * weight)

    total_weight = sum(weights)
    if total_weight > 0:
        score = sum(contributions) / total_weight * 100
        weighted_confidence = sum(s.confidence * w for s, w in zip(signals, weights)) / total_weight
    else:
        score = 0.0
        weighted_confidence = 0.0
    score = max(-100.0, min(100.0, score))

    consensus = _consensus_bucket(score)

    pick_count = sum(1 for s in signals if s.recommendation == "pick")
    fade_count = sum(1 for s in signals if s.recommendation == "fade")
    agreement_percent = max(pick_count, fade_count) / len(signals) * 100

    ranked = sorted(range(len(signals)), key=lambda idx: abs(contributions[idx]), reverse=True)
    top_contributors = tuple(signals[idx].engine_name for idx in ranked[: config.top_contributor_count])
    conflicting = tuple(
        s.engine_name
        for s in signals
        if (score > 0 and s.recommendation == "fade") or (score < 0 and s.recommendation == "pick")
    )

    return EnsembleResult(
        consensus=consensus,
        consensus_score=score,
        weighted_confidence=weighted_confidence,
        agreement_percent=agreement_percent,
        signals=signals,
        top_contributors=top_contributors,
        conflicting_signals=conflicting,
        recommendation=_recommendation_text(consensus, len(top_contributors), agreement_percent),
        risk_level=_risk_level(agreement_percent, score),
    )


def aggregate_parlay_ensemble(leg_results: Sequence[EnsembleResult]) -> ParlayEnsembleResult:
    """Combine per-leg ensemble results into one parlay-level verdict."""
    if not leg_results:
        return ParlayEnsembleResult(
            overall_consensus="neutral",
            overall_score=0.0,
            weakest_leg=-1,
            strongest_leg=-1,
            parlay_risk="extreme",
            recommendation="No legs to analyze",
        )

    scores = [result.consensus_score for result in leg_results]
    weakest_idx = min(range(len(scores)), key=scores.__getitem__)
    strongest_idx = max(range(len(scores)), key=scores.__getitem__)
    weakest_score = scores[weakest_idx]

    total_confidence = sum(result.weighted_confidence for result in leg_results)
    if total_confidence > 0:
        overall = sum(r.consensus_score * r.weighted_confidence for r in leg_results) / total_confidence
    else:
        overall = sum(scores) / len(scores)

    if overall >= 30 and weakest_score >= 0:
        consensus: Consensus = "strong_pick"
    elif overall >= 10:
        consensus = "lean_pick"
    elif overall <= -30 or weakest_score <= -30:
        consensus = "strong_fade"
    elif overall <= -10:
        consensus = "lean_fade"
    else:
        consensus = "neutral"

    fade_legs = sum(1 for score in scores if score < -15)
    neutral_legs = sum(1 for score in scores if abs(score) < 15)
    if fade_legs >= 2 or weakest_score < -40:
        risk: ParlayRisk = "extreme"
        recommendation = f"EXTREME RISK: {fade_legs} leg(s) flagged as fades. Consider removing weak legs."
    elif fade_legs >= 1 or neutral_legs >= len(scores) / 2:
        risk = "high"
        recommendation = f"HIGH RISK: Leg {weakest_idx + 1} is the weak link. Parlay success depends on it."
    elif neutral_legs >= 1 or weakest_score < 15:
        risk = "medium"
        recommendation = f"MODERATE RISK: Solid parlay with some uncertainty. Monitor leg {weakest_idx + 1}."
    else:
        risk = "low"
        recommendation = "LOW RISK: Strong consensus across all legs. Good parlay structure."

    return ParlayEnsembleResult(
        overall_consensus=consensus,
        overall_score=overall,
        weakest_leg=weakest_idx,
        strongest_leg=strongest_idx,
        parlay_risk=risk,
        recommendation=recommendation,
    )


def _get(record: Mapping[str, Any], key: str) -> Any:
    value = record.get(key)
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def extract_signals_from_analysis(leg_analysis: Mapping[str, Any]) -> list[EngineSignal]:
    """Turn a per-leg analysis record into ensemble signals.

    Recognized keys: ``sharp_indicator``, ``trap_score`` (0-100),
    ``fatigue_score`` (0-100), ``recommendation`` with ``confidence_level``,
    and ``adjusted_probability``.
    """
    signals: list[EngineSignal] = []

    sharp_indicator = _get(leg_analysis, "sharp_indicator")
    if sharp_indicator:
        is_sharp = "sharp" in str(sharp_indicator).lower()
        signals.append(
            EngineSignal(
                engine_name=EngineName.SHARP_MONEY.value,
                recommendation="pick" if is_sharp else "neutral",
                confidence=0.75 if is_sharp else 0.5,
                reasoning=str(sharp_indicator),
            )
        )

    trap_score = _get(leg_analysis, "trap_score")
    if trap_score is not None:
        is_trap = trap_score > 50
        signals.append(
            EngineSignal(
                engine_name=EngineName.TRAP_SCANNER.value,
                recommendation="fade" if is_trap else "pick",
                confidence=min(abs(trap_score - 50) / 50, 1.0),
                reasoning="High trap probability detected" if is_trap else "Low trap risk",
            )
        )

    fatigue_score = _get(leg_analysis, "fatigue_score")
    if fatigue_score is not None:
        signals.append(
            EngineSignal(
                engine_name=EngineName.FATIGUE.value,
                recommendation="fade" if fatigue_score > 60 else "neutral",
                confidence=max(0.0, min(fatigue_score / 100, 1.0)),
                reasoning=f"Fatigue score: {fatigue_score}",
            )
        )

    recommendation = _get(leg_analysis, "recommendation")
    if recommendation:
        rec = str(recommendation).lower()
        confidence_map = {"high": 0.85, "medium": 0.65, "low": 0.45}
        level = _get(leg_analysis, "confidence_level") or "medium"
        signals.append(
            EngineSignal(
                engine_name=EngineName.CORRELATION.value,
                recommendation="pick" if "pick" in rec else "fade" if "fade" in rec else "neutral",
                confidence=confidence_map.get(str(level).lower(), 0.5),
                reasoning=f"AI recommendation: {recommendation}",
            )
        )

    adjusted = _get(leg_analysis, "adjusted_probability")
    if adjusted is not None:
        signals.append(
            EngineSignal(
                engine_name=EngineName.MONTE_CARLO.value,
                recommendation="pick" if adjusted > 0.55 else "fade" if adjusted < 0.45 else "neutral",
                confidence=min(abs(adjusted - 0.5) * 2, 1.0),
                reasoning=f"Adjusted probability: {adjusted * 100:.1f}%",
            )
        )

    return signals


_BEST_BET_ENGINES = {
    "nhl_sharp": EngineName.SHARP_MONEY,
    "ncaab_steam": EngineName.SHARP_MONEY,
    "fade_signal": EngineName.TRAP_SCANNER,
    "nba_fatigue": EngineName.FATIGUE,
}


def extract_best_bet_signals(event: Mapping[str, Any], bet_type: str) -> list[EngineSignal]:
    """Signals for a best-bet event record, with fixed historical accuracy priors."""
    signals: list[EngineSignal] = []

    sharp_indicator = _get(event, "sharp_indicator")
    if sharp_indicator:
        lowered = str(sharp_indicator).lower()
        signals.append(
            EngineSignal(
                engine_name=EngineName.SHARP_MONEY.value,
                recommendation="pick" if "sharp" in lowered or "steam" in lowered else "fade",
                confidence=0.7,
                historical_accuracy=0.58,
                sample_size=150,
            )
        )

    trap_score = _get(event, "trap_score")
    if trap_score is not None and trap_score > 0:
        signals.append(
            EngineSignal(
                engine_name=EngineName.TRAP_SCANNER.value,
                recommendation="fade" if trap_score >= 60 else "pick",
                confidence=min(trap_score / 100, 0.9),
                historical_accuracy=0.54,
                sample_size=80,
            )
        )

    fatigue_differential = _get(event, "fatigue_differential")
    if fatigue_differential is not None and fatigue_differential > 0:
        signals.append(
            EngineSignal(
                engine_name=EngineName.FATIGUE.value,
                recommendation="pick",
                confidence=min(0.5 + fatigue_differential / 20, 0.85),
                historical_accuracy=0.56,
                sample_size=60,
            )
        )

    confidence = _get(event, "confidence")
    if confidence is not None:
        engine = _BEST_BET_ENGINES.get(bet_type, EngineName.HITRATE)
        if all(signal.engine_name != engine.value for signal in signals):
            signals.append(
                EngineSignal(
                    engine_name=engine.value,
                    recommendation="fade" if _get(event, "recommendation") == "fade" else "pick",
                    confidence=max(0.0, min(float(confidence), 1.0)),
                    historical_accuracy=0.55,
                    sample_size=100,
                )
            )

    return signals


_LINE_VALUE = {
    "excellent": ("pick", 0.8),
    "good": ("pick", 0.65),
    "neutral": ("neutral", 0.5),
    "poor": ("fade", 0.6),
}
_TREND = {
    "hot": ("pick", 0.7),
    "stable": ("neutral", 0.5),
    "cold": ("fade", 0.65),
}


def extract_hit_rate_signals(prop: Mapping[str, Any]) -> list[EngineSignal]:
    """Signals for a player-prop hit-rate record."""
    signals: list[EngineSignal] = []
    side = _get(prop, "recommended_side") or "over"
    hit_rate = (_get(prop, "hit_rate_over") if side == "over" else _get(prop, "hit_rate_under")) or 0

    if hit_rate > 0:
        signals.append(
            EngineSignal(
                engine_name=EngineName.HITRATE.value,
                recommendation="pick" if hit_rate >= 0.7 else "neutral" if hit_rate >= 0.5 else "fade",
                confidence=min(float(hit_rate), 1.0),
                reasoning=f"{hit_rate * 100:.0f}% hit rate on {side}",
                historical_accuracy=0.62,
                sample_size=100,
            )
        )

    consistency = _get(prop, "consistency_score")
    if consistency is not None:
        signals.append(
            EngineSignal(
                engine_name=EngineName.CORRELATION.value,
                recommendation="pick" if consistency >= 60 else "fade" if consistency < 40 else "neutral",
                confidence=max(0.0, min(consistency / 100, 1.0)),
                reasoning=f"Consistency score: {consistency}%",
                historical_accuracy=0.55,
                sample_size=80,
            )
        )

    line_value = _get(prop, "line_value_label")
    if line_value:
        rec, conf = _LINE_VALUE.get(str(line_value), ("neutral", 0.5))
        signals.append(
            EngineSignal(
                engine_name=EngineName.TRAP_SCANNER.value,
                recommendation=rec,
                confidence=conf,
                reasoning=f"Line value: {line_value}",
                historical_accuracy=0.54,
                sample_size=60,
            )
        )

    trend = _get(prop, "trend_direction")
    if trend:
        rec, conf = _TREND.get(str(trend), ("neutral", 0.5))
        signals.append(
            EngineSignal(
                engine_name=EngineName.FATIGUE.value,
                recommendation=rec,
                confidence=conf,
                reasoning=f"Player trend: {trend}",
                historical_accuracy=0.56,
                sample_size=50,
            )
        )

    season_avg = _get(prop, "season_avg")
    current_line = _get(prop, "current_line")
    if season_avg is not None and current_line is not None:
        diff = season_avg - current_line
        favors_over = diff > 0
        magnitude = min(abs(diff) / 5, 1.0)
        aligned = (favors_over and side == "over") or (not favors_over and side == "under")
        signals.append(
            EngineSignal(
                engine_name=EngineName.MONTE_CARLO.value,
                recommendation="pick" if aligned else "fade",
                confidence=0.5 + magnitude * 0.3,
                reasoning=f"Season avg {season_avg} vs line {current_line}",
                historical_accuracy=0.52,
                sample_size=120,
            )
        )

    return signals
