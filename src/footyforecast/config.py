"""
Global configuration for the footyforecast engine.

This module centralizes paths, default collaborator values, strategy weights,
reasoning thresholds and the layered-weights network layout, so you can tweak
them in one place. Everything here is read-only after import.
"""

from pathlib import Path
from typing import Dict, List, Tuple

# Project root = folder that contains "src", "data", etc.
PROJECT_ROOT: Path = Path(__file__).resolve().parents[2]

# Data directories
DATA_DIR: Path = PROJECT_ROOT / "data"
RAW_DATA_DIR: Path = DATA_DIR / "raw"
PREDICTIONS_DIR: Path = DATA_DIR / "predictions"

# Default files
RAW_MATCHES_FILENAME: str = "sample_matches.csv"
PREDICTIONS_FILENAME: str = "predictions.csv"

# Plot output directory (accuracy reports)
PLOTS_DIR: Path = PROJECT_ROOT / "plots"

# Outcome labels, always from the home (entity A) perspective
HOME_WIN: str = "home_win"
DRAW: str = "draw"
AWAY_WIN: str = "away_win"
CLASS_LABELS: List[str] = [HOME_WIN, DRAW, AWAY_WIN]

# ---------------------------------------------------------------------------
# Statistic aggregation
# ---------------------------------------------------------------------------

MAX_FORM_LENGTH: int = 10
DEFAULT_HISTORY_WINDOW: int = 10
SHORT_FORM_WINDOW: int = 5

RESULT_POINTS: Dict[str, int] = {"W": 3, "D": 1, "L": 0}

# Recent-history lookups only return outcome symbols, so form goals use a
# fixed per-result scoreline: (goals_for, goals_against).
FORM_GOALS_APPROXIMATION: Dict[str, Tuple[int, int]] = {
    "W": (2, 1),
    "D": (1, 1),
    "L": (1, 2),
}

MAX_POINTS_PER_GAME: float = 3.0
MAX_STRENGTH_RATING: float = 10.0

# ---------------------------------------------------------------------------
# Contextual features
# ---------------------------------------------------------------------------

DEFAULT_REST_DAYS: int = 14
CONGESTION_WINDOW_DAYS: int = 14
SEASON_START_MONTH: int = 8
SEASON_START_DAY: int = 1
DAYS_PER_SEASON_YEAR: int = 365
SEASON_WEEK_DIVISOR: float = 2.6  # ~38 weeks per season
MATCHES_PER_SEASON_WEEK: int = 2
DEFAULT_MATCH_IMPORTANCE: int = 3  # 1-5 scale

H2H_MAX_MEETINGS: int = 20
H2H_RECENT_MEETINGS: int = 5

DEFAULT_LEAGUE_AVG_GOALS_PER_GAME: float = 2.5
DEFAULT_LEAGUE_AVG_HOME_ADVANTAGE: float = 0.15
DEFAULT_LEAGUE_AVG_POINTS_PER_GAME: float = 1.37

# Neutral placeholder values for auxiliary signals (no live feeds yet).
PLACEHOLDER_EXTERNAL_FACTORS: Dict[str, float] = {
    "weather_condition": 7.0,  # 1-10 scale
    "temperature": 20.0,
    "expected_attendance": 50000.0,
    "attendance_percentage": 85.0,
    "referee_home_favor_bias": 0.0,
    "referee_avg_cards_per_game": 3.5,
    "referee_avg_penalties_per_game": 0.8,
    "home_team_motivation": 7.0,  # 1-10 scale
    "away_team_motivation": 7.0,
    "home_team_key_players_missing": 0.0,  # percentage
    "away_team_key_players_missing": 0.0,
}

# ---------------------------------------------------------------------------
# Strategies and ensemble
# ---------------------------------------------------------------------------

RULE_CASCADE: str = "rule_cascade"
MAJORITY_VOTE: str = "majority_vote"
LAYERED_WEIGHTS: str = "layered_weights"

STRATEGY_WEIGHTS: Dict[str, float] = {
    RULE_CASCADE: 0.4,
    MAJORITY_VOTE: 0.3,
    LAYERED_WEIGHTS: 0.3,
}

NEUTRAL_PROBABILITY: float = 1.0 / 3.0

RULE_CASCADE_BASE_DRAW: float = 0.2
RULE_CASCADE_HOME_ADVANTAGE_SCALE: float = 0.15
BUCKET_FLOOR: float = 0.05
BUCKET_CEILING: float = 0.9

MAJORITY_VOTE_STRONG_HOME_ADVANTAGE: float = 0.15
MAJORITY_VOTE_WEAK_HOME_ADVANTAGE: float = 0.05

HOME_ADVANTAGE_ADJUSTMENT: float = 0.1
HIGH_CONFIDENCE_THRESHOLD: float = 0.75

# Reasoning thresholds, evaluated in a fixed order.
FORM_GAP_THRESHOLD: float = 3.0
RANK_GAP_THRESHOLD: int = 5
HOME_ADVANTAGE_THRESHOLD: float = 0.1
GOAL_DIFFERENCE_GAP_THRESHOLD: float = 0.5
H2H_DOMINANCE_THRESHOLD: float = 0.6
H2H_WEAK_RECORD_THRESHOLD: float = 0.4
REASONING_HIGH_CONFIDENCE: float = 0.7
REASONING_LOW_CONFIDENCE: float = 0.4

KEY_FACTOR_HIGH_CONFIDENCE: float = 0.8
KEY_FACTOR_LOW_CONFIDENCE: float = 0.5

# Static feature-importance table. These are hand-set transparency weights,
# not values derived from any particular prediction.
FEATURE_BASE_WEIGHTS: Dict[str, float] = {
    "home_team_features.form_points_last_5": 0.15,
    "home_team_features.goals_per_game": 0.12,
    "away_team_features.form_points_last_5": 0.12,
    "away_team_features.goals_per_game": 0.10,
    "home_team_features.league_position": 0.08,
    "away_team_features.league_position": 0.08,
    "match_features.league_avg_home_advantage": 0.06,
    "head_to_head_features.h2h_home_wins": 0.04,
    "head_to_head_features.h2h_total_goals_avg": 0.03,
    "match_features.days_since_last_match": 0.03,
    "match_features.matches_in_last_14_days": 0.02,
}
DEFAULT_FEATURE_BASE_WEIGHT: float = 0.01

TOP_FEATURES: List[str] = [
    "home_team_features.form_points_last_5",
    "away_team_features.form_points_last_5",
    "home_team_features.goals_per_game",
    "away_team_features.goals_per_game",
    "home_team_features.league_position",
    "away_team_features.league_position",
    "head_to_head_features.h2h_home_wins",
    "match_features.league_avg_home_advantage",
]

STRATEGY_IMPORTANCE_MULTIPLIERS: Dict[str, float] = {
    RULE_CASCADE: 1.2,
    MAJORITY_VOTE: 1.0,
    LAYERED_WEIGHTS: 0.8,
}

FEATURE_DESCRIPTIONS: Dict[str, str] = {
    "home_team_features.form_points_last_5": "Home team recent form (last 5 games)",
    "away_team_features.form_points_last_5": "Away team recent form (last 5 games)",
    "home_team_features.goals_per_game": "Home team scoring rate",
    "away_team_features.goals_per_game": "Away team scoring rate",
    "home_team_features.league_position": "Home team current league position",
    "away_team_features.league_position": "Away team current league position",
    "head_to_head_features.h2h_home_wins": "Historical head-to-head record",
    "match_features.league_avg_home_advantage": "League-specific home advantage factor",
}
DEFAULT_FEATURE_DESCRIPTION: str = "Statistical feature impacting prediction"

# ---------------------------------------------------------------------------
# Layered-weights network
# ---------------------------------------------------------------------------

# Fixed input layout: (flat feature name, lower bound, upper bound). Values are
# min-max scaled with these bounds and clipped to [0, 1]. League positions are
# inverted after scaling so that 1.0 means top of the table. The h2h ratio is
# derived (0.5 when the teams have never met).
LEAGUE_SIZE: int = 20
LAYERED_INPUT_FEATURES: List[Tuple[str, float, float]] = [
    ("home_team_features.form_points_last_5", 0.0, 15.0),
    ("away_team_features.form_points_last_5", 0.0, 15.0),
    ("home_team_features.points_per_game", 0.0, 3.0),
    ("away_team_features.points_per_game", 0.0, 3.0),
    ("home_team_features.goal_difference_per_game", -3.0, 3.0),
    ("away_team_features.goal_difference_per_game", -3.0, 3.0),
    ("home_team_features.league_position", 1.0, float(LEAGUE_SIZE)),
    ("away_team_features.league_position", 1.0, float(LEAGUE_SIZE)),
    ("match_features.league_avg_home_advantage", 0.0, 0.5),
    ("head_to_head_features.h2h_home_win_ratio", 0.0, 1.0),
]
LAYERED_INVERTED_FEATURES: Tuple[str, ...] = (
    "home_team_features.league_position",
    "away_team_features.league_position",
)
LAYERED_HIDDEN_SIZES: Tuple[int, int] = (8, 4)
LAYERED_OUTPUT_SIZE: int = 3

# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

MAX_BATCH_SIZE: int = 20
BATCH_CONCURRENCY: int = 5
BATCH_PAUSE_SECONDS: float = 0.1
LOOKUP_TIMEOUT_SECONDS: float = 5.0
PREDICTION_HISTORY_LIMIT: int = 50
MODEL_VERSION: str = "v2.0"
MODEL_NAME: str = "Ensemble heuristics"
