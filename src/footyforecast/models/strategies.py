# path: src/footyforecast/models/strategies.py
"""
Heuristic scoring strategies for footyforecast.

Three independent scorers map a FeatureVector to a StrategyEstimate:

- RuleCascadeStrategy ("XGBoost-like"): additive signal checks into
  home/draw/away buckets.
- MajorityVoteStrategy ("Random-Forest-like"): five decision rules, one vote each.
- LayeredWeightsStrategy ("Neural-Network-like"): two logistic hidden layers and
  a softmax output over fixed weights.

None of them is a trained model. They share no mutable state, and a numeric
fault inside any of them degrades to a neutral estimate instead of aborting
the prediction.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import joblib
import numpy as np

from footyforecast.config import (
    AWAY_WIN,
    BUCKET_CEILING,
    BUCKET_FLOOR,
    DRAW,
    HOME_WIN,
    LAYERED_HIDDEN_SIZES,
    LAYERED_INPUT_FEATURES,
    LAYERED_INVERTED_FEATURES,
    LAYERED_OUTPUT_SIZE,
    LAYERED_WEIGHTS,
    MAJORITY_VOTE,
    MAJORITY_VOTE_STRONG_HOME_ADVANTAGE,
    MAJORITY_VOTE_WEAK_HOME_ADVANTAGE,
    NEUTRAL_PROBABILITY,
    RULE_CASCADE,
    RULE_CASCADE_BASE_DRAW,
    RULE_CASCADE_HOME_ADVANTAGE_SCALE,
)
from footyforecast.features.feature_vector import FeatureVector
from footyforecast.features.team_stats import TeamFeatures
from footyforecast.utils.logging_utils import get_logger

logger = get_logger(__name__)

Triple = Tuple[float, float, float]


def pick_outcome(probabilities: Sequence[float]) -> str:
    """
    Pick the outcome with the strictly largest probability.

    Any tie at the maximum resolves to a draw.
    """
    home, draw, away = probabilities
    if home > draw and home > away:
        return HOME_WIN
    if away > home and away > draw:
        return AWAY_WIN
    return DRAW


def outcome_index(outcome: str) -> int:
    return (HOME_WIN, DRAW, AWAY_WIN).index(outcome)


@dataclass(frozen=True)
class StrategyEstimate:
    """One strategy's verdict on a fixture."""

    strategy: str
    outcome: str
    probability: float  # probability of `outcome`
    probabilities: Triple  # (home_win, draw, away_win)
    degraded: bool = False

    @property
    def confidence(self) -> float:
        return self.probability

    def as_dict(self) -> Dict[str, object]:
        return {
            "strategy": self.strategy,
            "prediction": self.outcome,
            "confidence": self.probability,
            "probabilities": dict(zip((HOME_WIN, DRAW, AWAY_WIN), self.probabilities)),
            "degraded": self.degraded,
        }


def estimate_from_probabilities(strategy: str, probabilities: Sequence[float]) -> StrategyEstimate:
    triple = tuple(float(p) for p in probabilities)
    outcome = pick_outcome(triple)
    return StrategyEstimate(
        strategy=strategy,
        outcome=outcome,
        probability=triple[outcome_index(outcome)],
        probabilities=triple,
    )


class Strategy(ABC):
    """
    Base class of a scorer.

    Subclasses implement `_score`; `score` wraps it so that numeric faults
    return the neutral estimate (probability 1/3, fixed outcome, degraded=True).
    """

    name: str = "strategy"
    fallback_outcome: str = HOME_WIN

    def score(self, features: FeatureVector) -> StrategyEstimate:
        try:
            with np.errstate(all="raise"):
                return self._score(features)
        except (ArithmeticError, ValueError, TypeError, KeyError) as exc:
            logger.error(
                "Error in %s scoring, falling back to neutral estimate: %s",
                self.name,
                exc,
            )
            return self.neutral_estimate()

    def neutral_estimate(self) -> StrategyEstimate:
        return StrategyEstimate(
            strategy=self.name,
            outcome=self.fallback_outcome,
            probability=NEUTRAL_PROBABILITY,
            probabilities=(NEUTRAL_PROBABILITY,) * 3,
            degraded=True,
        )

    @abstractmethod
    def _score(self, features: FeatureVector) -> StrategyEstimate:
        """Score the feature vector."""


# ---------------------------------------------------------------------------
# Rule cascade
# ---------------------------------------------------------------------------


class RuleCascadeStrategy(Strategy):
    """
    Fixed sequence of signal checks, each adding to one bucket.

    Buckets are divided by their total, clamped to [BUCKET_FLOOR,
    BUCKET_CEILING] and renormalized.
    """

    name = RULE_CASCADE
    fallback_outcome = HOME_WIN

    def _score(self, features: FeatureVector) -> StrategyEstimate:
        home, away = features.home_team, features.away_team
        home_score = draw_score = away_score = 0.0

        # Form
        form_gap = home.form_points_last_5 - away.form_points_last_5
        if form_gap > 3:
            home_score += 0.3
        elif form_gap < -3:
            away_score += 0.3
        else:
            draw_score += 0.1

        # Goal difference
        gd_gap = home.goal_difference_per_game - away.goal_difference_per_game
        if gd_gap > 0.5:
            home_score += 0.25
        elif gd_gap < -0.5:
            away_score += 0.25

        # League position (lower is better)
        rank_gap = away.league_position - home.league_position
        if rank_gap > 3:
            home_score += 0.2
        elif rank_gap < -3:
            away_score += 0.2

        # Home advantage
        home_score += (
            RULE_CASCADE_HOME_ADVANTAGE_SCALE
            * features.match.league_avg_home_advantage
        )

        # Trend
        trend_gap = home.performance_trend_5 - away.performance_trend_5
        if trend_gap > 1:
            home_score += 0.15
        elif trend_gap < -1:
            away_score += 0.15

        buckets = np.array(
            [max(home_score, 0.0), draw_score + RULE_CASCADE_BASE_DRAW, away_score]
        )
        probs = np.clip(buckets / buckets.sum(), BUCKET_FLOOR, BUCKET_CEILING)
        probs = probs / probs.sum()
        return estimate_from_probabilities(self.name, probs)


# ---------------------------------------------------------------------------
# Majority vote
# ---------------------------------------------------------------------------


def _compare(home_value: float, away_value: float, margin: float) -> str:
    if home_value > away_value + margin:
        return HOME_WIN
    if away_value > home_value + margin:
        return AWAY_WIN
    return DRAW


def _streak_momentum(team: TeamFeatures) -> int:
    if team.current_streak_type == "win":
        return team.current_streak_length
    if team.current_streak_type == "loss":
        return -team.current_streak_length
    return 0


def vote_form(features: FeatureVector) -> str:
    return _compare(
        features.home_team.form_points_last_5,
        features.away_team.form_points_last_5,
        2,
    )


def vote_league_position(features: FeatureVector) -> str:
    # Negated so that a better (lower) position is the larger value.
    return _compare(
        -features.home_team.league_position,
        -features.away_team.league_position,
        3,
    )


def vote_scoring_rate(features: FeatureVector) -> str:
    return _compare(
        features.home_team.goals_per_game,
        features.away_team.goals_per_game,
        0.5,
    )


def vote_home_advantage(features: FeatureVector) -> str:
    advantage = features.match.league_avg_home_advantage
    if advantage > MAJORITY_VOTE_STRONG_HOME_ADVANTAGE:
        return HOME_WIN
    if advantage < MAJORITY_VOTE_WEAK_HOME_ADVANTAGE:
        return AWAY_WIN
    return DRAW


def vote_momentum(features: FeatureVector) -> str:
    return _compare(
        _streak_momentum(features.home_team),
        _streak_momentum(features.away_team),
        3,
    )


DEFAULT_VOTERS = (
    vote_form,
    vote_league_position,
    vote_scoring_rate,
    vote_home_advantage,
    vote_momentum,
)


class MajorityVoteStrategy(Strategy):
    """Each rule casts one vote; probabilities are vote shares."""

    name = MAJORITY_VOTE
    fallback_outcome = DRAW

    def __init__(self, voters=DEFAULT_VOTERS) -> None:
        self.voters = tuple(voters)

    def votes(self, features: FeatureVector) -> List[str]:
        return [voter(features) for voter in self.voters]

    def _score(self, features: FeatureVector) -> StrategyEstimate:
        votes = self.votes(features)
        total = len(votes)
        probs = [votes.count(label) / total for label in (HOME_WIN, DRAW, AWAY_WIN)]
        return estimate_from_probabilities(self.name, probs)


# ---------------------------------------------------------------------------
# Layered weights
# ---------------------------------------------------------------------------

# Hidden layer 1 (8 x 10). Paired neurons fire on a home or away edge in form,
# points per game, goal difference, and table position combined with home
# advantage and head-to-head record.
DEFAULT_W1 = np.array(
    [
        [6, -6, 0, 0, 0, 0, 0, 0, 0, 0],
        [-6, 6, 0, 0, 0, 0, 0, 0, 0, 0],
        [0, 0, 6, -6, 0, 0, 0, 0, 0, 0],
        [0, 0, -6, 6, 0, 0, 0, 0, 0, 0],
        [0, 0, 0, 0, 6, -6, 0, 0, 0, 0],
        [0, 0, 0, 0, -6, 6, 0, 0, 0, 0],
        [0, 0, 0, 0, 0, 0, 6, -6, 2, 4],
        [0, 0, 0, 0, 0, 0, -6, 6, -2, -4],
    ],
    dtype=float,
)
DEFAULT_B1 = np.array([-2, -2, -2, -2, -2, -2, -4, 0], dtype=float)

# Hidden layer 2 (4 x 8): home edge, away edge, balance, venue edge.
DEFAULT_W2 = np.array(
    [
        [2, -2, 2, -2, 2, -2, 2, -2],
        [-2, 2, -2, 2, -2, 2, -2, 2],
        [-2, -2, -2, -2, -2, -2, -2, -2],
        [0, 0, 0, 0, 0, 0, 3, -3],
    ],
    dtype=float,
)
DEFAULT_B2 = np.array([0, 0, 2, 0], dtype=float)

# Output layer (3 x 4): home_win, draw, away_win.
DEFAULT_W3 = np.array(
    [
        [3, 0, 0, 0.5],
        [0, 0, 3, 0],
        [0, 3, 0, -0.5],
    ],
    dtype=float,
)
DEFAULT_B3 = np.array([0, 0.3, 0], dtype=float)

WEIGHT_KEYS = ("w1", "b1", "w2", "b2", "w3", "b3")


def _sigmoid(z: np.ndarray) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-z))


def _softmax(z: np.ndarray) -> np.ndarray:
    exp = np.exp(z - np.max(z))
    return exp / exp.sum()


def scale_inputs(features: FeatureVector) -> np.ndarray:
    """
    Build the fixed-size [0, 1] input of the layered network.

    Layout and bounds come from LAYERED_INPUT_FEATURES; league positions are
    inverted so 1.0 is top of the table, and the head-to-head ratio is 0.5 when
    the teams have never met.
    """
    flat = features.as_flat_dict()
    if features.head_to_head.h2h_matches_played == 0:
        flat["head_to_head_features.h2h_home_win_ratio"] = 0.5

    values = []
    for name, lower, upper in LAYERED_INPUT_FEATURES:
        scaled = (float(flat[name]) - lower) / (upper - lower)
        scaled = min(1.0, max(0.0, scaled))
        if name in LAYERED_INVERTED_FEATURES:
            scaled = 1.0 - scaled
        values.append(scaled)
    return np.array(values, dtype=float)


class LayeredWeightsStrategy(Strategy):
    """
    Two logistic hidden layers and a softmax output over fixed weights.

    The input has len(LAYERED_INPUT_FEATURES) = 10 fields; hidden widths are
    LAYERED_HIDDEN_SIZES = (8, 4). Any replacement weights (fixed or learned)
    must match these shapes; they are checked here rather than truncated or
    padded.
    """

    name = LAYERED_WEIGHTS
    fallback_outcome = HOME_WIN

    def __init__(
        self,
        w1: np.ndarray = DEFAULT_W1,
        b1: np.ndarray = DEFAULT_B1,
        w2: np.ndarray = DEFAULT_W2,
        b2: np.ndarray = DEFAULT_B2,
        w3: np.ndarray = DEFAULT_W3,
        b3: np.ndarray = DEFAULT_B3,
    ) -> None:
        n_in = len(LAYERED_INPUT_FEATURES)
        h1, h2 = LAYERED_HIDDEN_SIZES
        expected = {
            "w1": (h1, n_in),
            "b1": (h1,),
            "w2": (h2, h1),
            "b2": (h2,),
            "w3": (LAYERED_OUTPUT_SIZE, h2),
            "b3": (LAYERED_OUTPUT_SIZE,),
        }
        given = {"w1": w1, "b1": b1, "w2": w2, "b2": b2, "w3": w3, "b3": b3}
        weights: Dict[str, np.ndarray] = {}
        for key, shape in expected.items():
            arr = np.asarray(given[key], dtype=float)
            if arr.shape != shape:
                raise ValueError(
                    f"Layered weight {key} has shape {arr.shape}, expected {shape}"
                )
            weights[key] = arr.copy()
            weights[key].setflags(write=False)
        self.weights = weights

    @classmethod
    def from_artifact(cls, path: Path | str) -> "LayeredWeightsStrategy":
        """Load weights saved with `save_artifact` (a joblib dict)."""
        artifact = joblib.load(path)
        missing = [k for k in WEIGHT_KEYS if k not in artifact]
        if missing:
            raise ValueError(f"Layered weights artifact missing keys: {missing}")
        logger.info("Loaded layered weights from %s", path)
        return cls(**{k: artifact[k] for k in WEIGHT_KEYS})

    def save_artifact(self, path: Path | str) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump({k: np.array(v) for k, v in self.weights.items()}, path)
        logger.info("Saved layered weights to %s", path)
        return path

    def forward(self, inputs: np.ndarray) -> np.ndarray:
        w = self.weights
        hidden1 = _sigmoid(w["w1"] @ inputs + w["b1"])
        hidden2 = _sigmoid(w["w2"] @ hidden1 + w["b2"])
        return _softmax(w["w3"] @ hidden2 + w["b3"])

    def _score(self, features: FeatureVector) -> StrategyEstimate:
        outputs = self.forward(scale_inputs(features))
        return estimate_from_probabilities(self.name, outputs)


def default_strategies() -> Tuple[Strategy, Strategy, Strategy]:
    """Return fresh instances of the three strategies in ensemble order."""
    return RuleCascadeStrategy(), MajorityVoteStrategy(), LayeredWeightsStrategy()
