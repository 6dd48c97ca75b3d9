from datetime import datetime

import pytest

from footyforecast.data.repository import InMemoryMatchRepository
from footyforecast.data.schema import LeagueAverages, MatchContext, MeetingRecord
from footyforecast.errors import EntityNotFoundError, TransientFailureError, ValidationError
from footyforecast.features.match_context import (
    ContextualFeatureBuilder,
    HeadToHeadFeatures,
    compute_head_to_head_features,
    compute_match_features,
    direct_lookup,
    season_start_for,
)

from conftest import MATCH_DATE, make_snapshot


def test_season_start_before_and_after_august():
    assert season_start_for(datetime(2024, 3, 2)) == datetime(2023, 8, 1)
    assert season_start_for(datetime(2023, 9, 1, 20, 0)) == datetime(2023, 8, 1)
    assert season_start_for(datetime(2023, 8, 1)) == datetime(2023, 8, 1)


def test_match_features_rest_days_and_congestion():
    home_dates = [datetime(2024, 2, 25), datetime(2024, 2, 20), datetime(2024, 1, 1)]
    away_dates = [datetime(2024, 2, 24), datetime(2024, 2, 17)]

    features = compute_match_features(
        datetime(2024, 3, 2), home_dates, away_dates, LeagueAverages()
    )

    assert features.home_days_since_last_match == 6
    assert features.away_days_since_last_match == 7
    assert features.days_since_last_match == 6
    assert features.matches_in_last_14_days == 4
    assert features.is_weekend_match is True
    assert features.season_week == 23
    assert features.is_even_week is False
    assert features.season_matches_played == 46
    assert features.match_importance == 3
    assert 0 <= features.season_progress_percentage <= 100


def test_shared_match_date_counts_once():
    shared = datetime(2024, 2, 25)
    features = compute_match_features(datetime(2024, 3, 2), [shared], [shared], LeagueAverages())
    assert features.matches_in_last_14_days == 1


def test_match_features_default_rest_days_without_history():
    features = compute_match_features(datetime(2024, 3, 6), [], [], LeagueAverages())
    assert features.home_days_since_last_match == 14
    assert features.away_days_since_last_match == 14
    assert features.matches_in_last_14_days == 0
    assert features.is_weekend_match is False
    assert features.league_avg_home_advantage == pytest.approx(0.15)


def test_head_to_head_counts_from_home_side_perspective():
    meetings = [
        MeetingRecord("A", "B", 2, 0, datetime(2024, 1, 10)),
        MeetingRecord("B", "A", 1, 1, datetime(2023, 10, 1)),
        MeetingRecord("B", "A", 3, 1, datetime(2023, 4, 1)),
    ]
    h2h = compute_head_to_head_features("A", meetings)

    assert h2h.h2h_matches_played == 3
    assert (h2h.h2h_home_wins, h2h.h2h_draws, h2h.h2h_away_wins) == (1, 1, 1)
    assert h2h.h2h_home_goals_avg == pytest.approx(4 / 3)
    assert h2h.h2h_away_goals_avg == pytest.approx(4 / 3)
    assert h2h.h2h_total_goals_avg == pytest.approx(8 / 3)
    assert h2h.venue_h2h_matches == 1
    assert h2h.venue_h2h_home_wins == 1
    assert h2h.h2h_trend == pytest.approx(0.0)
    assert h2h.last_meeting_date == datetime(2024, 1, 10)


def test_head_to_head_trend_compares_recent_with_overall():
    meetings = [MeetingRecord("A", "B", 1, 0, datetime(2024, 1, 10 - i)) for i in range(5)]
    meetings.append(MeetingRecord("A", "B", 0, 2, datetime(2020, 1, 1)))

    h2h = compute_head_to_head_features("A", meetings)

    assert h2h.recent_h2h_home_wins == 5
    assert h2h.h2h_trend == pytest.approx(1.0 - 4 / 6)


def test_no_meetings_gives_defaults():
    h2h = compute_head_to_head_features("A", [])
    assert h2h == HeadToHeadFeatures()
    assert h2h.h2h_home_win_ratio == 0.0
    assert h2h.last_meeting_date is None


def test_builder_uses_league_averages_and_placeholder_externals(repository):
    builder = ContextualFeatureBuilder(repository)
    contextual = builder.build(MatchContext("dominant", "rival", "EPL", MATCH_DATE))

    assert contextual.head_to_head.h2h_matches_played == 5
    assert contextual.head_to_head.h2h_home_win_ratio == 1.0
    assert contextual.external.is_placeholder
    assert contextual.external.source == "placeholder"
    assert (
        contextual.external.home_team_key_players_missing
        == contextual.external.away_team_key_players_missing
    )
    assert contextual.degraded_inputs == ()


class FlakyRepository(InMemoryMatchRepository):
    def get_head_to_head(self, team_a, team_b, max_count=20):
        raise ConnectionError("h2h service down")

    def get_league_averages(self, league):
        raise TimeoutError("averages timed out")


def test_builder_degrades_non_critical_inputs():
    repo = FlakyRepository([make_snapshot("a"), make_snapshot("b")])
    contextual = ContextualFeatureBuilder(repo).build(MatchContext("a", "b", "EPL", MATCH_DATE))

    assert contextual.head_to_head == HeadToHeadFeatures()
    assert contextual.match.league_avg_goals_per_game == pytest.approx(2.5)
    assert set(contextual.degraded_inputs) == {"league_averages", "head_to_head"}


def test_direct_lookup_maps_connection_errors():
    def failing():
        raise ConnectionError("refused")

    with pytest.raises(TransientFailureError) as excinfo:
        direct_lookup("entity", failing)
    assert excinfo.value.collaborator == "entity"


def test_direct_lookup_propagates_not_found(repository):
    with pytest.raises(EntityNotFoundError):
        direct_lookup("entity", repository.get_entity, "nobody")


def test_match_context_rejects_self_match():
    with pytest.raises(ValidationError):
        MatchContext("a", "a", "EPL", MATCH_DATE)
