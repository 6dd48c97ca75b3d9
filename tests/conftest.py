from datetime import datetime

import pytest

from footyforecast.data.repository import InMemoryMatchRepository
from footyforecast.data.schema import (
    EntitySnapshot,
    LeagueAverages,
    MatchContext,
    MeetingRecord,
)
from footyforecast.features.feature_vector import assemble_feature_vector
from footyforecast.features.match_context import ContextualFeatureBuilder
from footyforecast.features.team_stats import StatisticAggregator

MATCH_DATE = datetime(2024, 3, 2, 15, 0)


def make_snapshot(team_id, form="", **overrides):
    """Mid-table snapshot: 10 played, 4W 2D 4L, 14 points, 12-12 goals."""
    values = dict(
        team_id=team_id,
        name=str(team_id).title(),
        league="EPL",
        league_position=5,
        points=14,
        matches_played=10,
        wins=4,
        draws=2,
        losses=4,
        goals_for=12,
        goals_against=12,
        form=form,
    )
    values.update(overrides)
    return EntitySnapshot(**values)


def dominant_meetings(n=5):
    """`dominant` beats `rival` in every meeting, alternating venues."""
    meetings = []
    for i in range(n):
        date = datetime(2023 - i, 2, 1)
        if i % 2 == 0:
            meetings.append(MeetingRecord("dominant", "rival", 2, 0, date))
        else:
            meetings.append(MeetingRecord("rival", "dominant", 0, 1, date))
    return meetings


@pytest.fixture
def snapshots():
    return [
        make_snapshot("home_side", form="WDLWD"),
        make_snapshot("away_side", form="WDLWD"),
        make_snapshot("in_form", form="WWWWW"),
        make_snapshot("out_of_form", form="LLLLL"),
        make_snapshot("dominant", form="WDLWD"),
        make_snapshot("rival", form="WDLWD"),
        make_snapshot(
            "newcomer",
            points=0,
            matches_played=0,
            wins=0,
            draws=0,
            losses=0,
            goals_for=0,
            goals_against=0,
            league_position=20,
        ),
    ]


@pytest.fixture
def repository(snapshots):
    return InMemoryMatchRepository(
        snapshots,
        meetings=dominant_meetings(),
        league_averages={"EPL": LeagueAverages()},
    )


@pytest.fixture
def build_vector(repository):
    """Build the FeatureVector of a fixture directly from the repository."""

    def _build(home, away, league="EPL", match_date=MATCH_DATE):
        aggregator = StatisticAggregator(repository)
        builder = ContextualFeatureBuilder(repository)
        contextual = builder.build(MatchContext(home, away, league, match_date))
        return assemble_feature_vector(
            aggregator.aggregate(home),
            aggregator.aggregate(away),
            contextual.match,
            contextual.head_to_head,
            contextual.external,
        )

    return _build
