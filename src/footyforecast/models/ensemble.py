# path: src/footyforecast/models/ensemble.py
"""
Ensemble combiner for footyforecast.

Merges the three StrategyEstimates into one outcome distribution:

1. Each estimate's probability goes to its chosen outcome, scaled by the
   strategy weight.
2. The home bucket gets a league home-advantage adjustment.
3. The triple is normalized, the outcome picked (ties -> draw) and the
   feature importance, reasoning and key factors attached.

The result is a pure function of its inputs: no timestamps, no shared state.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

from footyforecast.config import (
    AWAY_WIN,
    DRAW,
    HIGH_CONFIDENCE_THRESHOLD,
    HOME_ADVANTAGE_ADJUSTMENT,
    HOME_WIN,
    STRATEGY_WEIGHTS,
)
from footyforecast.features.feature_vector import FeatureVector
from footyforecast.models.explain import (
    FeatureImportance,
    compute_feature_importance,
    generate_reasoning,
    identify_key_factors,
)
from footyforecast.models.strategies import (
    StrategyEstimate,
    outcome_index,
    pick_outcome,
)
from footyforecast.utils.logging_utils import get_logger

logger = get_logger(__name__)

WEIGHT_SUM_TOLERANCE = 1e-9


@dataclass
class EnsembleConfig:
    """
    Configuration for combining strategy estimates.

    Attributes
    ----------
    weights : dict
        Strategy name -> weight; must sum to 1.0.
    home_advantage_adjustment : float
        Scale of the league home advantage added to the home bucket.
    """

    weights: Dict[str, float] = field(default_factory=lambda: dict(STRATEGY_WEIGHTS))
    home_advantage_adjustment: float = HOME_ADVANTAGE_ADJUSTMENT

    def __post_init__(self) -> None:
        total = sum(self.weights.values())
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise ValueError(f"Strategy weights must sum to 1.0, got {total}")
        if any(w < 0 for w in self.weights.values()):
            raise ValueError(f"Strategy weights must be non-negative: {self.weights}")


@dataclass(frozen=True)
class EnsembleResult:
    outcome: str
    probabilities: Tuple[float, float, float]  # (home_win, draw, away_win)
    confidence: float
    feature_importance: Tuple[FeatureImportance, ...]
    reasoning: Tuple[str, ...]
    key_factors: Tuple[str, ...]
    model_predictions: Tuple[StrategyEstimate, ...]
    weights: Tuple[Tuple[str, float], ...]
    degraded_strategies: Tuple[str, ...] = ()
    degraded_inputs: Tuple[str, ...] = ()

    @property
    def is_degraded(self) -> bool:
        return bool(self.degraded_strategies or self.degraded_inputs)

    @property
    def contributing_strategies(self) -> Tuple[str, ...]:
        return tuple(
            est.strategy for est in self.model_predictions if not est.degraded
        )

    @property
    def is_high_confidence(self) -> bool:
        return self.confidence > HIGH_CONFIDENCE_THRESHOLD

    @property
    def home_win_probability(self) -> float:
        return self.probabilities[0]

    @property
    def draw_probability(self) -> float:
        return self.probabilities[1]

    @property
    def away_win_probability(self) -> float:
        return self.probabilities[2]

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation."""
        return {
            "predicted_outcome": self.outcome,
            "confidence_score": self.confidence,
            "probabilities": dict(zip((HOME_WIN, DRAW, AWAY_WIN), self.probabilities)),
            "is_high_confidence": self.is_high_confidence,
            "feature_importance": [fi.to_dict() for fi in self.feature_importance],
            "reasoning": list(self.reasoning),
            "key_factors": list(self.key_factors),
            "model_predictions": [est.as_dict() for est in self.model_predictions],
            "weights": dict(self.weights),
            "degraded_strategies": list(self.degraded_strategies),
            "degraded_inputs": list(self.degraded_inputs),
            "contributing_strategies": list(self.contributing_strategies),
        }


def _normalize(buckets: Sequence[float]) -> Tuple[float, float, float]:
    total = math.fsum(buckets)
    if total <= 0:
        return (1.0 / 3.0, 1.0 / 3.0, 1.0 / 3.0)
    home, draw, away = (b / total for b in buckets)
    return home, draw, away


def combine(
    estimate_a: StrategyEstimate,
    estimate_b: StrategyEstimate,
    estimate_c: StrategyEstimate,
    fv: FeatureVector,
    config: Optional[EnsembleConfig] = None,
    degraded_inputs: Sequence[str] = (),
) -> EnsembleResult:
    """
    Combine the three strategy estimates into an EnsembleResult.

    Parameters
    ----------
    estimate_a, estimate_b, estimate_c : StrategyEstimate
        One estimate per strategy; weights are looked up by strategy name.
    fv : FeatureVector
        Feature vector the estimates were computed from.
    config : EnsembleConfig | None
        Weights and home-advantage adjustment; defaults if None.
    degraded_inputs : Sequence[str]
        Inputs that fell back to defaults while building `fv`.
    """
    if config is None:
        config = EnsembleConfig()

    estimates = (estimate_a, estimate_b, estimate_c)
    buckets = [0.0, 0.0, 0.0]
    for est in estimates:
        if est.strategy not in config.weights:
            raise ValueError(f"No ensemble weight for strategy {est.strategy!r}")
        buckets[outcome_index(est.outcome)] += est.probability * config.weights[est.strategy]

    buckets[0] = max(
        0.0,
        buckets[0]
        + config.home_advantage_adjustment * fv.match.league_avg_home_advantage,
    )

    probabilities = _normalize(buckets)
    outcome = pick_outcome(probabilities)
    confidence = max(probabilities)

    degraded_strategies = tuple(est.strategy for est in estimates if est.degraded)
    if degraded_strategies:
        logger.warning("Ensemble built with degraded strategies: %s", degraded_strategies)

    return EnsembleResult(
        outcome=outcome,
        probabilities=probabilities,
        confidence=confidence,
        feature_importance=tuple(compute_feature_importance()),
        reasoning=tuple(generate_reasoning(fv, confidence)),
        key_factors=tuple(identify_key_factors(fv, confidence)),
        model_predictions=estimates,
        weights=tuple((est.strategy, config.weights[est.strategy]) for est in estimates),
        degraded_strategies=degraded_strategies,
        degraded_inputs=tuple(degraded_inputs),
    )
