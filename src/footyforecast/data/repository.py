"""
Collaborator contracts and repositories for footyforecast.

The engine reads everything it needs through `MatchRepository`. Two
implementations are provided:

- `InMemoryMatchRepository`: explicit snapshots and meetings, handy for
  embedding the engine and for tests.
- `DataFrameMatchRepository`: derives standings, form, head-to-head meetings,
  schedules and league averages from a raw matches DataFrame.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from footyforecast.config import H2H_MAX_MEETINGS, MAX_FORM_LENGTH
from footyforecast.data.schema import (
    EntitySnapshot,
    LeagueAverages,
    MeetingRecord,
    TeamId,
    normalize_outcomes,
    validate_raw_matches_df,
)
from footyforecast.errors import EntityNotFoundError
from footyforecast.utils.logging_utils import get_logger

logger = get_logger(__name__)

UNKNOWN_LEAGUE = "unknown"


class MatchRepository(ABC):
    """Read-only lookups the engine needs from the match data store."""

    @abstractmethod
    def get_entity(self, team_id: TeamId) -> EntitySnapshot:
        """Return the team's snapshot or raise EntityNotFoundError."""

    @abstractmethod
    def get_recent_outcomes(self, team_id: TeamId, count: int) -> List[str]:
        """Return up to `count` outcome symbols, most recent first."""

    @abstractmethod
    def get_head_to_head(
        self,
        team_a: TeamId,
        team_b: TeamId,
        max_count: int = H2H_MAX_MEETINGS,
    ) -> List[MeetingRecord]:
        """Return completed meetings between the two teams, most recent first."""

    @abstractmethod
    def get_league_averages(self, league: Optional[str]) -> LeagueAverages:
        """Return league-wide averages (defaults if the league is unknown)."""

    @abstractmethod
    def get_match_dates(self, team_id: TeamId, before: datetime) -> List[datetime]:
        """Return dates of the team's completed matches before `before`."""


def _sorted_meetings(
    meetings: Iterable[MeetingRecord],
    team_a: TeamId,
    team_b: TeamId,
    max_count: int,
) -> List[MeetingRecord]:
    pair = {team_a, team_b}
    selected = [m for m in meetings if {m.home_team_id, m.away_team_id} == pair]
    selected.sort(key=lambda m: m.match_date, reverse=True)
    return selected[:max_count]


class InMemoryMatchRepository(MatchRepository):
    """
    Repository over explicit in-memory snapshots.

    Recent outcomes default to each snapshot's form string unless an explicit
    sequence is supplied in `outcomes`.
    """

    def __init__(
        self,
        snapshots: Iterable[EntitySnapshot],
        outcomes: Optional[Mapping[TeamId, Sequence[str]]] = None,
        meetings: Optional[Iterable[MeetingRecord]] = None,
        league_averages: Optional[Mapping[str, LeagueAverages]] = None,
        match_dates: Optional[Mapping[TeamId, Sequence[datetime]]] = None,
    ) -> None:
        self._snapshots: Dict[TeamId, EntitySnapshot] = {
            s.team_id: s for s in snapshots
        }
        self._outcomes = dict(outcomes or {})
        self._meetings = list(meetings or [])
        self._league_averages = dict(league_averages or {})
        self._match_dates = {k: list(v) for k, v in (match_dates or {}).items()}

    def get_entity(self, team_id: TeamId) -> EntitySnapshot:
        try:
            return self._snapshots[team_id]
        except KeyError:
            raise EntityNotFoundError(team_id) from None

    def get_recent_outcomes(self, team_id: TeamId, count: int) -> List[str]:
        snapshot = self.get_entity(team_id)
        symbols = self._outcomes.get(team_id, list(snapshot.form))
        return normalize_outcomes(list(symbols)[:count])

    def get_head_to_head(
        self,
        team_a: TeamId,
        team_b: TeamId,
        max_count: int = H2H_MAX_MEETINGS,
    ) -> List[MeetingRecord]:
        return _sorted_meetings(self._meetings, team_a, team_b, max_count)

    def get_league_averages(self, league: Optional[str]) -> LeagueAverages:
        return self._league_averages.get(league, LeagueAverages())

    def get_match_dates(self, team_id: TeamId, before: datetime) -> List[datetime]:
        dates = [d for d in self._match_dates.get(team_id, []) if d < before]
        return sorted(dates, reverse=True)


def _build_long_team_view(df_completed: pd.DataFrame) -> pd.DataFrame:
    """
    Construct a long-format DataFrame with one row per team per completed match.

    Columns: match_id, date, league, team, opponent, is_home, goals_for,
    goals_against, result ('W'/'D'/'L'), points (3/1/0).
    """
    common_cols = ["match_id", "date", "league"]

    df_home = df_completed[common_cols + ["home_team", "away_team", "home_goals", "away_goals"]].rename(
        columns={
            "home_team": "team",
            "away_team": "opponent",
            "home_goals": "goals_for",
            "away_goals": "goals_against",
        }
    )
    df_home["is_home"] = 1

    df_away = df_completed[common_cols + ["home_team", "away_team", "home_goals", "away_goals"]].rename(
        columns={
            "away_team": "team",
            "home_team": "opponent",
            "away_goals": "goals_for",
            "home_goals": "goals_against",
        }
    )
    df_away["is_home"] = 0

    df_long = pd.concat([df_home, df_away], ignore_index=True)

    diff = df_long["goals_for"] - df_long["goals_against"]
    df_long["result"] = "D"
    df_long.loc[diff > 0, "result"] = "W"
    df_long.loc[diff < 0, "result"] = "L"
    df_long["points"] = df_long["result"].map({"W": 3, "D": 1, "L": 0})

    return df_long


class DataFrameMatchRepository(MatchRepository):
    """
    Repository derived from a raw matches DataFrame.

    Snapshots (standings and form) are computed once at construction from the
    completed matches; rows without goals are treated as scheduled fixtures.
    A team's league is the league of its most recent row. Standings count every
    completed match of the team and rank teams within a league by points, goal
    difference, goals scored and name.

    With `as_of` set, only matches played before that instant count as
    completed, so standings, form and meetings match what was known then.
    Use it when back-testing predictions of past fixtures.
    """

    def __init__(self, df_matches: pd.DataFrame, as_of: datetime | None = None) -> None:
        df = validate_raw_matches_df(df_matches)
        df["league"] = df["league"].fillna(UNKNOWN_LEAGUE).astype(str)
        df = df.sort_values("date", kind="mergesort").reset_index(drop=True)
        df["match_id"] = df.index

        completed_mask = df["home_goals"].notna() & df["away_goals"].notna()
        if as_of is not None:
            cutoff = pd.Timestamp(as_of)
            if cutoff.tzinfo is not None:
                cutoff = cutoff.tz_convert("UTC").tz_localize(None)
            completed_mask &= df["date"] < cutoff
        self._all = df
        self._completed = df[completed_mask].copy()
        self._completed["home_goals"] = self._completed["home_goals"].astype(int)
        self._completed["away_goals"] = self._completed["away_goals"].astype(int)
        self._long = _build_long_team_view(self._completed)
        self._snapshots = self._build_snapshots()

        logger.info(
            "Built repository with %d teams from %d completed matches "
            "(%d scheduled).",
            len(self._snapshots),
            len(self._completed),
            len(df) - len(self._completed),
        )

    # -- construction -------------------------------------------------------

    def _team_leagues(self) -> pd.Series:
        rows = pd.concat(
            [
                self._all[["date", "match_id", "league", "home_team"]].rename(
                    columns={"home_team": "team"}
                ),
                self._all[["date", "match_id", "league", "away_team"]].rename(
                    columns={"away_team": "team"}
                ),
            ],
            ignore_index=True,
        )
        rows = rows.sort_values(["date", "match_id"], kind="mergesort")
        return rows.groupby("team")["league"].last()

    def _build_snapshots(self) -> Dict[TeamId, EntitySnapshot]:
        leagues = self._team_leagues()

        long = self._long.copy()
        long["win"] = (long["result"] == "W").astype(int)
        long["draw"] = (long["result"] == "D").astype(int)
        long["loss"] = (long["result"] == "L").astype(int)
        sums = long.groupby("team")[
            ["win", "draw", "loss", "goals_for", "goals_against", "points"]
        ].sum()

        table = sums.reindex(leagues.index, fill_value=0).rename_axis(None)
        table["league"] = leagues.rename_axis(None)
        table["goal_diff"] = table["goals_for"] - table["goals_against"]
        table["team"] = table.index
        table = table.sort_values(
            ["league", "points", "goal_diff", "goals_for", "team"],
            ascending=[True, False, False, False, True],
            kind="mergesort",
        )
        table["position"] = table.groupby("league").cumcount() + 1

        recent = long.sort_values(["date", "match_id"], ascending=False, kind="mergesort")
        forms = recent.groupby("team")["result"].apply(
            lambda r: "".join(r.head(MAX_FORM_LENGTH))
        )

        snapshots: Dict[TeamId, EntitySnapshot] = {}
        for team, row in table.iterrows():
            wins, draws, losses = int(row["win"]), int(row["draw"]), int(row["loss"])
            snapshots[team] = EntitySnapshot(
                team_id=team,
                name=str(team),
                league=row["league"],
                league_position=int(row["position"]),
                points=int(row["points"]),
                matches_played=wins + draws + losses,
                wins=wins,
                draws=draws,
                losses=losses,
                goals_for=int(row["goals_for"]),
                goals_against=int(row["goals_against"]),
                form=forms.get(team, ""),
            )
        return snapshots

    # -- MatchRepository ----------------------------------------------------

    def get_entity(self, team_id: TeamId) -> EntitySnapshot:
        try:
            return self._snapshots[team_id]
        except KeyError:
            raise EntityNotFoundError(team_id) from None

    def get_recent_outcomes(self, team_id: TeamId, count: int) -> List[str]:
        return list(self.get_entity(team_id).form[:count])

    def get_head_to_head(
        self,
        team_a: TeamId,
        team_b: TeamId,
        max_count: int = H2H_MAX_MEETINGS,
    ) -> List[MeetingRecord]:
        df = self._completed
        mask = ((df["home_team"] == team_a) & (df["away_team"] == team_b)) | (
            (df["home_team"] == team_b) & (df["away_team"] == team_a)
        )
        meetings = df[mask].sort_values(
            ["date", "match_id"], ascending=False, kind="mergesort"
        ).head(max_count)
        return [
            MeetingRecord(
                home_team_id=row.home_team,
                away_team_id=row.away_team,
                home_score=int(row.home_goals),
                away_score=int(row.away_goals),
                match_date=row.date.to_pydatetime(),
            )
            for row in meetings.itertuples(index=False)
        ]

    def get_league_averages(self, league: Optional[str]) -> LeagueAverages:
        df = self._completed
        if league is not None:
            df = df[df["league"] == league]
        if df.empty:
            return LeagueAverages()

        n = len(df)
        home_wins = int((df["home_goals"] > df["away_goals"]).sum())
        away_wins = int((df["home_goals"] < df["away_goals"]).sum())
        long = self._long if league is None else self._long[self._long["league"] == league]

        return LeagueAverages(
            avg_goals_per_game=float((df["home_goals"] + df["away_goals"]).mean()),
            avg_home_advantage=(home_wins - away_wins) / n,
            avg_points_per_game=float(long["points"].mean()),
        )

    def get_match_dates(self, team_id: TeamId, before: datetime) -> List[datetime]:
        rows = self._long[
            (self._long["team"] == team_id) & (self._long["date"] < pd.Timestamp(before))
        ]
        dates = rows["date"].sort_values(ascending=False, kind="mergesort")
        return [d.to_pydatetime() for d in dates]

    # -- extras -------------------------------------------------------------

    def completed_matches(self) -> pd.DataFrame:
        """Return a copy of the completed matches (for accuracy tracking)."""
        return self._completed.drop(columns=["match_id"]).copy()

    def team_ids(self) -> List[TeamId]:
        """Return all known team ids."""
        return sorted(self._snapshots)
