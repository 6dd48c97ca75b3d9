# path: src/footyforecast/features/team_stats.py
"""
Per-team statistic aggregation for footyforecast.

Turns a team snapshot and its recent results into TeamFeatures:

- Season rates (points per game, win/draw/loss percentages, goal rates).
- Form over the last 5 and last 10 results.
- Current streak and longest win/loss streaks.
- Short- and long-window performance trend.
- A league-relative strength rating.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Sequence

from footyforecast.config import (
    DEFAULT_HISTORY_WINDOW,
    DEFAULT_LEAGUE_AVG_POINTS_PER_GAME,
    FORM_GOALS_APPROXIMATION,
    MAX_POINTS_PER_GAME,
    MAX_STRENGTH_RATING,
    RESULT_POINTS,
    SHORT_FORM_WINDOW,
)
from footyforecast.data.repository import MatchRepository
from footyforecast.data.schema import EntitySnapshot, TeamId, normalize_outcomes
from footyforecast.features.match_context import Lookup, direct_lookup
from footyforecast.utils.logging_utils import get_logger

logger = get_logger(__name__)

STREAK_TYPES: Dict[str, str] = {"W": "win", "D": "draw", "L": "loss"}


@dataclass(frozen=True)
class FormStats:
    wins: int
    draws: int
    losses: int
    points: int
    goals_for: int
    goals_against: int


@dataclass(frozen=True)
class StreakInfo:
    type: str  # 'win' | 'draw' | 'loss' | 'none'
    length: int
    longest_win: int
    longest_loss: int


@dataclass(frozen=True)
class TeamFeatures:
    """Derived statistics of one side of the fixture."""

    team_id: TeamId

    # Current season statistics
    league_position: int
    points_per_game: float
    wins_percentage: float
    draws_percentage: float
    losses_percentage: float
    goals_per_game: float
    goals_conceded_per_game: float
    goal_difference_per_game: float

    # Form (last 5)
    form_wins_last_5: int
    form_draws_last_5: int
    form_losses_last_5: int
    form_points_last_5: int
    form_goals_for_last_5: int
    form_goals_against_last_5: int

    # Form (last 10)
    form_wins_last_10: int
    form_draws_last_10: int
    form_losses_last_10: int
    form_points_last_10: int
    form_goals_for_last_10: int
    form_goals_against_last_10: int

    # Streaks
    current_streak_type: str
    current_streak_length: int
    longest_win_streak: int
    longest_loss_streak: int

    # Trends
    performance_trend_5: float
    performance_trend_10: float

    # League strength
    league_strength_rating: float
    relative_strength_vs_league_average: float


def _rate(value: float, matches_played: int) -> float:
    return value / max(matches_played, 1)


def compute_form_stats(outcomes: Sequence[str]) -> FormStats:
    """
    Count results, points and approximate goals over a window of outcomes.

    Goals use the fixed per-result scoreline in FORM_GOALS_APPROXIMATION
    because only outcome symbols are available for recent matches.
    """
    wins = draws = losses = goals_for = goals_against = 0
    for result in outcomes:
        if result == "W":
            wins += 1
        elif result == "D":
            draws += 1
        else:
            losses += 1
        gf, ga = FORM_GOALS_APPROXIMATION[result]
        goals_for += gf
        goals_against += ga

    return FormStats(
        wins=wins,
        draws=draws,
        losses=losses,
        points=wins * RESULT_POINTS["W"] + draws * RESULT_POINTS["D"],
        goals_for=goals_for,
        goals_against=goals_against,
    )


def compute_streaks(outcomes: Sequence[str]) -> StreakInfo:
    """
    Detect streaks in a most-recent-first sequence of outcomes.

    The current streak is the maximal run of the most recent symbol. Longest
    win/loss streaks are maxima over the whole window, whichever run is current.
    """
    if not outcomes:
        return StreakInfo(type="none", length=0, longest_win=0, longest_loss=0)

    current_symbol = outcomes[0]
    current_length = 0
    for result in outcomes:
        if result != current_symbol:
            break
        current_length += 1

    longest = {"W": 0, "L": 0}
    run_symbol, run_length = None, 0
    for result in outcomes:
        run_length = run_length + 1 if result == run_symbol else 1
        run_symbol = result
        if result in longest:
            longest[result] = max(longest[result], run_length)

    return StreakInfo(
        type=STREAK_TYPES[current_symbol],
        length=current_length,
        longest_win=longest["W"],
        longest_loss=longest["L"],
    )


def compute_performance_trend(outcomes: Sequence[str]) -> float:
    """
    Compare consecutive results of a most-recent-first window.

    For each pair (current, next): a win not preceded by a loss scores +1, a
    loss next to a win scores +1, an unchanged result scores +0.5 and anything
    else scores -1. The sum is divided by (len - 1). Windows shorter than two
    results have trend 0.
    """
    if len(outcomes) < 2:
        return 0.0

    trend = 0.0
    for current, following in zip(outcomes[:-1], outcomes[1:]):
        if current == "W" and following != "L":
            trend += 1.0
        elif current == "L" and following == "W":
            trend += 1.0
        elif current == following:
            trend += 0.5
        else:
            trend -= 1.0

    return trend / (len(outcomes) - 1)


def compute_team_features(
    snapshot: EntitySnapshot,
    outcomes: Sequence[str],
    league_avg_points_per_game: float = DEFAULT_LEAGUE_AVG_POINTS_PER_GAME,
) -> TeamFeatures:
    """
    Compute TeamFeatures from a snapshot and its recent outcomes.

    Parameters
    ----------
    snapshot : EntitySnapshot
        Season statistics of the team.
    outcomes : Sequence[str]
        Recent outcome symbols, most recent first (any accepted spelling).
    league_avg_points_per_game : float
        League average used for the relative strength.

    Returns
    -------
    TeamFeatures
        With zero matches played every rate is 0.
    """
    results = normalize_outcomes(outcomes)
    played = snapshot.matches_played

    points_per_game = _rate(snapshot.points, played)
    goals_per_game = _rate(snapshot.goals_for, played)
    goals_conceded_per_game = _rate(snapshot.goals_against, played)

    last_5 = results[:SHORT_FORM_WINDOW]
    form_5 = compute_form_stats(last_5)
    form_10 = compute_form_stats(results)
    streaks = compute_streaks(results)

    rating = MAX_STRENGTH_RATING * points_per_game / MAX_POINTS_PER_GAME
    rating = min(MAX_STRENGTH_RATING, max(0.0, rating))
    if league_avg_points_per_game > 0:
        relative_strength = points_per_game / league_avg_points_per_game
    else:
        relative_strength = 0.0

    return TeamFeatures(
        team_id=snapshot.team_id,
        league_position=snapshot.league_position,
        points_per_game=points_per_game,
        wins_percentage=_rate(snapshot.wins, played) * 100,
        draws_percentage=_rate(snapshot.draws, played) * 100,
        losses_percentage=_rate(snapshot.losses, played) * 100,
        goals_per_game=goals_per_game,
        goals_conceded_per_game=goals_conceded_per_game,
        goal_difference_per_game=goals_per_game - goals_conceded_per_game,
        form_wins_last_5=form_5.wins,
        form_draws_last_5=form_5.draws,
        form_losses_last_5=form_5.losses,
        form_points_last_5=form_5.points,
        form_goals_for_last_5=form_5.goals_for,
        form_goals_against_last_5=form_5.goals_against,
        form_wins_last_10=form_10.wins,
        form_draws_last_10=form_10.draws,
        form_losses_last_10=form_10.losses,
        form_points_last_10=form_10.points,
        form_goals_for_last_10=form_10.goals_for,
        form_goals_against_last_10=form_10.goals_against,
        current_streak_type=streaks.type,
        current_streak_length=streaks.length,
        longest_win_streak=streaks.longest_win,
        longest_loss_streak=streaks.longest_loss,
        performance_trend_5=compute_performance_trend(last_5),
        performance_trend_10=compute_performance_trend(results),
        league_strength_rating=rating,
        relative_strength_vs_league_average=relative_strength,
    )


class StatisticAggregator:
    """Reads a team's snapshot and recent results and aggregates them."""

    def __init__(self, repository: MatchRepository, lookup: Lookup = direct_lookup) -> None:
        self.repository = repository
        self.lookup = lookup

    def aggregate(
        self,
        entity_id: TeamId,
        history_window: int = DEFAULT_HISTORY_WINDOW,
        snapshot: EntitySnapshot | None = None,
        league_avg_points_per_game: float = DEFAULT_LEAGUE_AVG_POINTS_PER_GAME,
    ) -> TeamFeatures:
        """
        Aggregate features for `entity_id` over its last `history_window` results.

        Raises EntityNotFoundError if the team is unknown.
        """
        if snapshot is None:
            snapshot = self.lookup("entity", self.repository.get_entity, entity_id)
        outcomes = self.lookup(
            "recent_outcomes",
            self.repository.get_recent_outcomes,
            entity_id,
            history_window,
        )
        features = compute_team_features(
            snapshot,
            list(outcomes)[:history_window],
            league_avg_points_per_game=league_avg_points_per_game,
        )
        logger.debug(
            "Aggregated team %s: ppg=%.2f form5=%d streak=%s(%d)",
            entity_id,
            features.points_per_game,
            features.form_points_last_5,
            features.current_streak_type,
            features.current_streak_length,
        )
        return features
