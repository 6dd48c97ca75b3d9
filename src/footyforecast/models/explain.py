"""
Explainability utilities for footyforecast.

Provides:
- A static feature-importance table over the top features, broken down by
  strategy. These are documented transparency weights, not statistical
  attributions of a particular prediction.
- An ordered list of reasoning rules producing human-readable sentences.
- Short key-factor labels summarizing what drives a prediction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence

from footyforecast.config import (
    DEFAULT_FEATURE_BASE_WEIGHT,
    DEFAULT_FEATURE_DESCRIPTION,
    FEATURE_BASE_WEIGHTS,
    FEATURE_DESCRIPTIONS,
    FORM_GAP_THRESHOLD,
    GOAL_DIFFERENCE_GAP_THRESHOLD,
    H2H_DOMINANCE_THRESHOLD,
    H2H_WEAK_RECORD_THRESHOLD,
    HOME_ADVANTAGE_THRESHOLD,
    KEY_FACTOR_HIGH_CONFIDENCE,
    KEY_FACTOR_LOW_CONFIDENCE,
    RANK_GAP_THRESHOLD,
    REASONING_HIGH_CONFIDENCE,
    REASONING_LOW_CONFIDENCE,
    STRATEGY_IMPORTANCE_MULTIPLIERS,
    TOP_FEATURES,
)
from footyforecast.features.feature_vector import FeatureVector


@dataclass(frozen=True)
class FeatureImportance:
    feature_name: str
    importance_score: float
    model_contribution: Dict[str, float]
    impact_description: str

    def to_dict(self) -> Dict[str, object]:
        return {
            "feature_name": self.feature_name,
            "importance_score": self.importance_score,
            "model_contribution": dict(self.model_contribution),
            "impact_description": self.impact_description,
        }


def describe_feature(feature_name: str) -> str:
    return FEATURE_DESCRIPTIONS.get(feature_name, DEFAULT_FEATURE_DESCRIPTION)


def compute_feature_importance(
    top_features: Sequence[str] = TOP_FEATURES,
) -> List[FeatureImportance]:
    """
    Build the ranked feature-importance table.

    Each feature gets its base weight from FEATURE_BASE_WEIGHTS (default
    0.01) and a per-strategy contribution of base weight times the strategy
    multiplier. Sorted by importance, descending; ties keep list order.
    """
    table = []
    for name in top_features:
        base = FEATURE_BASE_WEIGHTS.get(name, DEFAULT_FEATURE_BASE_WEIGHT)
        table.append(
            FeatureImportance(
                feature_name=name,
                importance_score=base,
                model_contribution={
                    strategy: base * multiplier
                    for strategy, multiplier in STRATEGY_IMPORTANCE_MULTIPLIERS.items()
                },
                impact_description=describe_feature(name),
            )
        )
    return sorted(table, key=lambda item: item.importance_score, reverse=True)


# ---------------------------------------------------------------------------
# Reasoning
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReasoningRule:
    """A named check and the sentence it contributes when it holds."""

    name: str
    predicate: Callable[[FeatureVector, float], bool]
    message: Callable[[FeatureVector, float], str]


def _form_gap(fv: FeatureVector) -> float:
    return fv.home_team.form_points_last_5 - fv.away_team.form_points_last_5


def _rank_gap(fv: FeatureVector) -> int:
    # Positive when the home side sits higher in the table.
    return fv.away_team.league_position - fv.home_team.league_position


def _gd_gap(fv: FeatureVector) -> float:
    return fv.home_team.goal_difference_per_game - fv.away_team.goal_difference_per_game


def _has_meetings(fv: FeatureVector) -> bool:
    return fv.head_to_head.h2h_matches_played > 0


REASONING_RULES: List[ReasoningRule] = [
    ReasoningRule(
        "home_form_edge",
        lambda fv, conf: _form_gap(fv) > FORM_GAP_THRESHOLD,
        lambda fv, conf: (
            "Home team is in much better form "
            f"({fv.home_team.form_points_last_5} vs "
            f"{fv.away_team.form_points_last_5} points in last 5 games)"
        ),
    ),
    ReasoningRule(
        "away_form_edge",
        lambda fv, conf: _form_gap(fv) < -FORM_GAP_THRESHOLD,
        lambda fv, conf: (
            "Away team is in much better form "
            f"({fv.away_team.form_points_last_5} vs "
            f"{fv.home_team.form_points_last_5} points in last 5 games)"
        ),
    ),
    ReasoningRule(
        "home_rank_edge",
        lambda fv, conf: _rank_gap(fv) > RANK_GAP_THRESHOLD,
        lambda fv, conf: (
            "Significant league position advantage for home team "
            f"(+{_rank_gap(fv)} positions)"
        ),
    ),
    ReasoningRule(
        "away_rank_edge",
        lambda fv, conf: _rank_gap(fv) < -RANK_GAP_THRESHOLD,
        lambda fv, conf: (
            "Significant league position advantage for away team "
            f"(+{abs(_rank_gap(fv))} positions)"
        ),
    ),
    ReasoningRule(
        "strong_home_advantage",
        lambda fv, conf: fv.match.league_avg_home_advantage > HOME_ADVANTAGE_THRESHOLD,
        lambda fv, conf: (
            "Strong home advantage in this league "
            f"({fv.match.league_avg_home_advantage * 100:.1f}% win rate boost)"
        ),
    ),
    ReasoningRule(
        "home_goal_difference_edge",
        lambda fv, conf: _gd_gap(fv) > GOAL_DIFFERENCE_GAP_THRESHOLD,
        lambda fv, conf: (
            "Home team has superior goal difference "
            f"({fv.home_team.goal_difference_per_game:+.2f} vs "
            f"{fv.away_team.goal_difference_per_game:+.2f} per game)"
        ),
    ),
    ReasoningRule(
        "away_goal_difference_edge",
        lambda fv, conf: _gd_gap(fv) < -GOAL_DIFFERENCE_GAP_THRESHOLD,
        lambda fv, conf: (
            "Away team has superior goal difference "
            f"({fv.away_team.goal_difference_per_game:+.2f} vs "
            f"{fv.home_team.goal_difference_per_game:+.2f} per game)"
        ),
    ),
    ReasoningRule(
        "home_h2h_dominance",
        lambda fv, conf: _has_meetings(fv)
        and fv.head_to_head.h2h_home_win_ratio > H2H_DOMINANCE_THRESHOLD,
        lambda fv, conf: (
            "Home team historically dominant in head-to-head meetings "
            f"({fv.head_to_head.h2h_home_win_ratio * 100:.0f}% wins)"
        ),
    ),
    ReasoningRule(
        "away_h2h_record",
        lambda fv, conf: _has_meetings(fv)
        and fv.head_to_head.h2h_home_win_ratio < H2H_WEAK_RECORD_THRESHOLD,
        lambda fv, conf: "Away team has good head-to-head record against home team",
    ),
    ReasoningRule(
        "high_confidence",
        lambda fv, conf: conf > REASONING_HIGH_CONFIDENCE,
        lambda fv, conf: "High confidence prediction based on multiple strong indicators",
    ),
    ReasoningRule(
        "low_confidence",
        lambda fv, conf: conf < REASONING_LOW_CONFIDENCE,
        lambda fv, conf: "Low confidence prediction - teams are closely matched",
    ),
]


def generate_reasoning(
    fv: FeatureVector,
    confidence: float,
    rules: Sequence[ReasoningRule] = REASONING_RULES,
) -> List[str]:
    """Evaluate the rules in order and collect the sentences of those that hold."""
    return [rule.message(fv, confidence) for rule in rules if rule.predicate(fv, confidence)]


def identify_key_factors(fv: FeatureVector, confidence: float) -> List[str]:
    """Short labels for the dominant drivers of a prediction."""
    factors = []
    if abs(_form_gap(fv)) > FORM_GAP_THRESHOLD:
        factors.append("Significant form difference between teams")
    if abs(_rank_gap(fv)) > RANK_GAP_THRESHOLD:
        factors.append("Large league position gap")
    if abs(_gd_gap(fv)) > GOAL_DIFFERENCE_GAP_THRESHOLD:
        factors.append("Divergent goal-scoring records")

    if confidence > KEY_FACTOR_HIGH_CONFIDENCE:
        factors.append("High prediction confidence")
    elif confidence < KEY_FACTOR_LOW_CONFIDENCE:
        factors.append("Close match - difficult to predict")
    return factors
