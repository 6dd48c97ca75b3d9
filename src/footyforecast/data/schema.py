"""
Snapshot types and raw data schema validation for footyforecast.

The engine only reads immutable snapshots supplied by collaborators; the types
below are that read-shape. The raw matches schema describes the CSV consumed by
the pandas-backed repository.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Hashable, List, Optional, Sequence

import pandas as pd

from footyforecast.config import (
    DEFAULT_LEAGUE_AVG_GOALS_PER_GAME,
    DEFAULT_LEAGUE_AVG_HOME_ADVANTAGE,
    DEFAULT_LEAGUE_AVG_POINTS_PER_GAME,
    MAX_FORM_LENGTH,
)
from footyforecast.errors import ValidationError
from footyforecast.utils.logging_utils import get_logger

logger = get_logger(__name__)

TeamId = Hashable

_OUTCOME_SYMBOLS: Dict[str, str] = {
    "w": "W",
    "win": "W",
    "d": "D",
    "draw": "D",
    "l": "L",
    "loss": "L",
}


def normalize_outcome_symbol(symbol: str) -> str:
    """
    Normalize an outcome symbol to one of 'W', 'D', 'L'.

    Accepts the single-letter form or the long form ('win', 'draw', 'loss'),
    case-insensitively.
    """
    key = str(symbol).strip().lower()
    if key not in _OUTCOME_SYMBOLS:
        raise ValidationError(f"Unknown outcome symbol: {symbol!r}")
    return _OUTCOME_SYMBOLS[key]


def normalize_outcomes(symbols: Sequence[str]) -> List[str]:
    """Normalize a most-recent-first sequence of outcome symbols."""
    return [normalize_outcome_symbol(s) for s in symbols]


@dataclass(frozen=True)
class EntitySnapshot:
    """Current-season statistics of one team, read once per prediction."""

    team_id: TeamId
    name: str
    league: Optional[str] = None
    league_position: int = 1
    points: int = 0
    matches_played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    goals_for: int = 0
    goals_against: int = 0
    form: str = ""  # most recent first, e.g. "WDLWW"

    def __post_init__(self) -> None:
        if self.league_position < 1:
            raise ValidationError(
                f"league_position must be >= 1 for team {self.team_id!r}, "
                f"got {self.league_position}"
            )
        if self.wins + self.draws + self.losses != self.matches_played:
            raise ValidationError(
                f"wins + draws + losses != matches_played for team "
                f"{self.team_id!r}"
            )
        if len(self.form) > MAX_FORM_LENGTH:
            raise ValidationError(
                f"form for team {self.team_id!r} is longer than "
                f"{MAX_FORM_LENGTH} results"
            )
        normalize_outcomes(list(self.form))


@dataclass(frozen=True)
class MatchContext:
    """The fixture being predicted."""

    home_team_id: TeamId
    away_team_id: TeamId
    league: Optional[str]
    match_date: datetime
    venue: Optional[str] = None

    def __post_init__(self) -> None:
        if self.home_team_id == self.away_team_id:
            raise ValidationError(
                "home and away team must be different "
                f"(got {self.home_team_id!r} twice)"
            )


@dataclass(frozen=True)
class MeetingRecord:
    """A completed meeting between two teams."""

    home_team_id: TeamId
    away_team_id: TeamId
    home_score: int
    away_score: int
    match_date: datetime


@dataclass(frozen=True)
class LeagueAverages:
    """League-wide averages used as match context."""

    avg_goals_per_game: float = DEFAULT_LEAGUE_AVG_GOALS_PER_GAME
    avg_home_advantage: float = DEFAULT_LEAGUE_AVG_HOME_ADVANTAGE
    avg_points_per_game: float = DEFAULT_LEAGUE_AVG_POINTS_PER_GAME


# ---------------------------------------------------------------------------
# Raw match history CSV
# ---------------------------------------------------------------------------

RAW_MATCHES_COLUMNS: List[str] = [
    "date",
    "league",
    "home_team",
    "away_team",
    "home_goals",
    "away_goals",
]


def validate_raw_matches_df(df: pd.DataFrame) -> pd.DataFrame:
    """
    Validate that a DataFrame conforms to the expected raw matches schema.

    Checks:
    - All required columns are present.
    - Coerces date column to datetime and goal columns to numbers.
    - Rejects rows where a team plays itself.
    - No duplicate rows (based on all columns).

    Rows with missing goals are kept: they are scheduled, not completed,
    fixtures.

    Raises
    ------
    ValueError
        If required columns are missing or a row has home == away.
    """
    missing = [col for col in RAW_MATCHES_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"Missing required raw match columns: {missing}")

    df = df.copy()
    df["date"] = pd.to_datetime(df["date"], errors="coerce")
    if df["date"].isna().any():
        logger.warning(
            "Dropping %d rows with invalid 'date' values.",
            int(df["date"].isna().sum()),
        )
        df = df[df["date"].notna()]

    for col in ("home_goals", "away_goals"):
        df[col] = pd.to_numeric(df[col], errors="coerce")

    self_matches = df["home_team"] == df["away_team"]
    if self_matches.any():
        raise ValueError(
            f"{int(self_matches.sum())} rows have the same home and away team"
        )

    before = len(df)
    df = df.drop_duplicates()
    after = len(df)
    if after < before:
        logger.info("Dropped %d duplicate raw rows.", before - after)

    return df.reset_index(drop=True)
