"""
Match-level, head-to-head and external features for footyforecast.

Head-to-head counts are always taken from the perspective of the team that is
at home in the fixture being predicted (entity A), whichever side was at home
in each historical meeting.

The head-to-head, schedule, league-average and external-factor lookups are not
critical: if one of them is temporarily unavailable the builder falls back to
defaults and names the input in `degraded_inputs`.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional, Sequence, Tuple

from footyforecast.config import (
    CONGESTION_WINDOW_DAYS,
    DAYS_PER_SEASON_YEAR,
    DEFAULT_MATCH_IMPORTANCE,
    DEFAULT_REST_DAYS,
    H2H_MAX_MEETINGS,
    H2H_RECENT_MEETINGS,
    MATCHES_PER_SEASON_WEEK,
    PLACEHOLDER_EXTERNAL_FACTORS,
    SEASON_START_DAY,
    SEASON_START_MONTH,
    SEASON_WEEK_DIVISOR,
)
from footyforecast.data.repository import MatchRepository
from footyforecast.data.schema import LeagueAverages, MatchContext, MeetingRecord, TeamId
from footyforecast.errors import TransientFailureError
from footyforecast.utils.logging_utils import get_logger

logger = get_logger(__name__)

Lookup = Callable[..., Any]


def direct_lookup(collaborator: str, fn: Callable[..., Any], *args: Any) -> Any:
    """
    Call a collaborator in the current thread.

    Timeouts and connection errors raised by the collaborator surface as
    TransientFailureError.
    """
    try:
        return fn(*args)
    except (TimeoutError, ConnectionError) as exc:
        raise TransientFailureError(collaborator, str(exc)) from exc


@dataclass(frozen=True)
class MatchFeatures:
    """Schedule, league and season context of the fixture."""

    home_days_since_last_match: int
    away_days_since_last_match: int
    days_since_last_match: int
    matches_in_last_14_days: int
    is_weekend_match: bool
    is_even_week: bool
    match_importance: int
    league_avg_goals_per_game: float
    league_avg_home_advantage: float
    season_week: int
    season_matches_played: int
    season_progress_percentage: float


@dataclass(frozen=True)
class HeadToHeadFeatures:
    """Record of previous meetings, counted for the home side of this fixture."""

    h2h_matches_played: int = 0
    h2h_home_wins: int = 0
    h2h_draws: int = 0
    h2h_away_wins: int = 0
    h2h_home_goals_avg: float = 0.0
    h2h_away_goals_avg: float = 0.0
    h2h_total_goals_avg: float = 0.0
    recent_h2h_home_wins: int = 0
    recent_h2h_draws: int = 0
    recent_h2h_away_wins: int = 0
    h2h_trend: float = 0.0  # positive = home side improving
    venue_h2h_home_wins: int = 0
    venue_h2h_matches: int = 0
    last_meeting_date: Optional[datetime] = None

    @property
    def h2h_home_win_ratio(self) -> float:
        if self.h2h_matches_played == 0:
            return 0.0
        return self.h2h_home_wins / self.h2h_matches_played


@dataclass(frozen=True)
class ExternalFactors:
    """
    Auxiliary signals (weather, crowd, referee, motivation, absences).

    Without live feeds these are neutral placeholders: `is_placeholder` is True
    and `source` is "placeholder", so consumers can treat them as low-confidence.
    """

    weather_condition: float
    temperature: float
    expected_attendance: float
    attendance_percentage: float
    referee_home_favor_bias: float
    referee_avg_cards_per_game: float
    referee_avg_penalties_per_game: float
    home_team_motivation: float
    away_team_motivation: float
    home_team_key_players_missing: float
    away_team_key_players_missing: float
    source: str = "placeholder"
    is_placeholder: bool = True


@dataclass(frozen=True)
class ContextualFeatures:
    match: MatchFeatures
    head_to_head: HeadToHeadFeatures
    external: ExternalFactors
    degraded_inputs: Tuple[str, ...] = field(default_factory=tuple)


class ExternalFactorsProvider(ABC):
    """Source of auxiliary match signals."""

    @abstractmethod
    def get_external_factors(self, context: MatchContext) -> ExternalFactors:
        """Return external factors for the fixture."""


class PlaceholderExternalFactorsProvider(ExternalFactorsProvider):
    """Neutral, side-symmetric constants until live feeds are wired in."""

    def get_external_factors(self, context: MatchContext) -> ExternalFactors:
        return placeholder_external_factors()


def placeholder_external_factors() -> ExternalFactors:
    return ExternalFactors(
        **PLACEHOLDER_EXTERNAL_FACTORS, source="placeholder", is_placeholder=True
    )


# ---------------------------------------------------------------------------
# Pure computations
# ---------------------------------------------------------------------------


def season_start_for(match_date: datetime) -> datetime:
    """Return the August 1 that opens the season containing `match_date`."""
    start = match_date.replace(
        month=SEASON_START_MONTH,
        day=SEASON_START_DAY,
        hour=0,
        minute=0,
        second=0,
        microsecond=0,
    )
    if match_date < start:
        start = start.replace(year=start.year - 1)
    return start


def _days_between(later: datetime, earlier: datetime) -> int:
    return math.floor((later - earlier).total_seconds() / 86400)


def compute_match_features(
    match_date: datetime,
    home_match_dates: Sequence[datetime],
    away_match_dates: Sequence[datetime],
    league_averages: LeagueAverages,
) -> MatchFeatures:
    """
    Compute schedule and season features for a fixture.

    Parameters
    ----------
    match_date : datetime
        Scheduled kick-off.
    home_match_dates, away_match_dates : Sequence[datetime]
        Dates of each side's completed matches before the fixture, most recent
        first.
    league_averages : LeagueAverages
        League-wide averages.
    """
    home_rest = (
        _days_between(match_date, home_match_dates[0])
        if home_match_dates
        else DEFAULT_REST_DAYS
    )
    away_rest = (
        _days_between(match_date, away_match_dates[0])
        if away_match_dates
        else DEFAULT_REST_DAYS
    )

    # A date on which both sides played counts once (their meeting).
    window_start = match_date - timedelta(days=CONGESTION_WINDOW_DAYS)
    recent_home = {d for d in home_match_dates if window_start <= d < match_date}
    recent_away = {d for d in away_match_dates if window_start <= d < match_date}
    congestion = len(recent_home | recent_away)

    season_start = season_start_for(match_date)
    elapsed = (match_date - season_start).total_seconds()
    progress = elapsed / (DAYS_PER_SEASON_YEAR * 86400) * 100
    progress = min(100.0, max(0.0, progress))
    season_week = math.ceil(progress / SEASON_WEEK_DIVISOR)

    return MatchFeatures(
        home_days_since_last_match=home_rest,
        away_days_since_last_match=away_rest,
        days_since_last_match=min(home_rest, away_rest),
        matches_in_last_14_days=congestion,
        is_weekend_match=match_date.weekday() >= 5,
        is_even_week=season_week % 2 == 0,
        match_importance=DEFAULT_MATCH_IMPORTANCE,
        league_avg_goals_per_game=league_averages.avg_goals_per_game,
        league_avg_home_advantage=league_averages.avg_home_advantage,
        season_week=season_week,
        season_matches_played=season_week * MATCHES_PER_SEASON_WEEK,
        season_progress_percentage=progress,
    )


def _tally(meetings: Sequence[MeetingRecord], team_a: TeamId) -> Tuple[int, int, int]:
    wins = draws = losses = 0
    for m in meetings:
        a_goals, b_goals = (
            (m.home_score, m.away_score)
            if m.home_team_id == team_a
            else (m.away_score, m.home_score)
        )
        if a_goals > b_goals:
            wins += 1
        elif a_goals == b_goals:
            draws += 1
        else:
            losses += 1
    return wins, draws, losses


def compute_head_to_head_features(
    team_a: TeamId,
    meetings: Sequence[MeetingRecord],
) -> HeadToHeadFeatures:
    """
    Summarize meetings (most recent first) from team_a's perspective.

    Only the H2H_MAX_MEETINGS most recent meetings are used. No meetings gives
    the all-zero default.
    """
    meetings = list(meetings)[:H2H_MAX_MEETINGS]
    n = len(meetings)
    if n == 0:
        return HeadToHeadFeatures()

    wins, draws, losses = _tally(meetings, team_a)
    recent = meetings[:H2H_RECENT_MEETINGS]
    recent_wins, recent_draws, recent_losses = _tally(recent, team_a)

    a_goals = sum(m.home_score if m.home_team_id == team_a else m.away_score for m in meetings)
    b_goals = sum(m.away_score if m.home_team_id == team_a else m.home_score for m in meetings)

    venue = [m for m in meetings if m.home_team_id == team_a]
    venue_wins, _, _ = _tally(venue, team_a)

    trend = (recent_wins - recent_losses) / len(recent) - (wins - losses) / n

    return HeadToHeadFeatures(
        h2h_matches_played=n,
        h2h_home_wins=wins,
        h2h_draws=draws,
        h2h_away_wins=losses,
        h2h_home_goals_avg=a_goals / n,
        h2h_away_goals_avg=b_goals / n,
        h2h_total_goals_avg=(a_goals + b_goals) / n,
        recent_h2h_home_wins=recent_wins,
        recent_h2h_draws=recent_draws,
        recent_h2h_away_wins=recent_losses,
        h2h_trend=trend,
        venue_h2h_home_wins=venue_wins,
        venue_h2h_matches=len(venue),
        last_meeting_date=meetings[0].match_date,
    )


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class ContextualFeatureBuilder:
    """Builds match, head-to-head and external features for a MatchContext."""

    def __init__(
        self,
        repository: MatchRepository,
        external_provider: ExternalFactorsProvider | None = None,
        lookup: Lookup = direct_lookup,
    ) -> None:
        self.repository = repository
        self.external_provider = external_provider or PlaceholderExternalFactorsProvider()
        self.lookup = lookup

    def _degradable(self, name: str, fn, default, degraded: List[str], *args):
        try:
            return self.lookup(name, fn, *args)
        except TransientFailureError as exc:
            logger.warning("Using defaults for %s: %s", name, exc)
            degraded.append(name)
            return default

    def league_averages(self, league: Optional[str]) -> Tuple[LeagueAverages, List[str]]:
        """Fetch league averages, falling back to defaults when unavailable."""
        degraded: List[str] = []
        averages = self._degradable(
            "league_averages",
            self.repository.get_league_averages,
            LeagueAverages(),
            degraded,
            league,
        )
        return averages, degraded

    def build(
        self,
        context: MatchContext,
        league_averages: LeagueAverages | None = None,
    ) -> ContextualFeatures:
        """
        Build {MatchFeatures, HeadToHeadFeatures, ExternalFactors}.

        Never fails because of missing head-to-head history.
        """
        degraded: List[str] = []
        if league_averages is None:
            league_averages, degraded = self.league_averages(context.league)

        home_dates = self._degradable(
            "schedule",
            self.repository.get_match_dates,
            [],
            degraded,
            context.home_team_id,
            context.match_date,
        )
        away_dates = self._degradable(
            "schedule",
            self.repository.get_match_dates,
            [],
            degraded,
            context.away_team_id,
            context.match_date,
        )
        match = compute_match_features(
            context.match_date, home_dates, away_dates, league_averages
        )

        meetings = self._degradable(
            "head_to_head",
            self.repository.get_head_to_head,
            [],
            degraded,
            context.home_team_id,
            context.away_team_id,
            H2H_MAX_MEETINGS,
        )
        head_to_head = compute_head_to_head_features(context.home_team_id, meetings)

        external = self._degradable(
            "external_factors",
            self.external_provider.get_external_factors,
            placeholder_external_factors(),
            degraded,
            context,
        )

        return ContextualFeatures(
            match=match,
            head_to_head=head_to_head,
            external=external,
            degraded_inputs=tuple(dict.fromkeys(degraded)),
        )
