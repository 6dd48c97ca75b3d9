import time
from datetime import datetime, timedelta, timezone

import pytest

from footyforecast.config import DRAW, HOME_WIN
from footyforecast.data.data_loader import load_raw_matches
from footyforecast.data.repository import DataFrameMatchRepository, InMemoryMatchRepository
from footyforecast.errors import EntityNotFoundError, TransientFailureError, ValidationError
from footyforecast.prediction.service import (
    PredictionRequest,
    PredictionService,
    ServiceConfig,
    summarize_batch,
)
from footyforecast.prediction.store import InMemoryPredictionStore

from conftest import MATCH_DATE, dominant_meetings

FAST = ServiceConfig(batch_pause_seconds=0.0)


@pytest.fixture
def service(repository):
    return PredictionService(repository, store=InMemoryPredictionStore(), config=FAST)


def test_predict_self_match_is_rejected_before_lookup(service):
    with pytest.raises(ValidationError):
        service.predict("nobody", "nobody")


def test_predict_unknown_team_raises_not_found(service):
    with pytest.raises(EntityNotFoundError):
        service.predict("home_side", "nobody", match_date=MATCH_DATE)


def test_predict_in_form_home_side(service):
    response = service.predict("in_form", "out_of_form", match_date=MATCH_DATE)
    result = response.result

    assert result.outcome == HOME_WIN
    assert result.confidence > 0.5
    assert sum(result.probabilities) == pytest.approx(1.0, abs=1e-9)
    assert response.league == "EPL"
    assert response.match_info["home_team"]["form"] == "WWWWW"
    assert response.historical_context["recent_form_comparison"]["home_team"]["points"] == 15


def test_predict_identical_teams(service):
    result = service.predict("home_side", "away_side", match_date=MATCH_DATE).result
    assert result.outcome == DRAW or all(p < 0.45 for p in result.probabilities)


def test_predict_head_to_head_dominance(service):
    response = service.predict("dominant", "rival", match_date=MATCH_DATE)

    assert response.historical_context["head_to_head_record"]["home_team_wins"] == 5
    assert any("historically dominant" in r for r in response.result.reasoning)


def test_repeated_predictions_are_identical(service):
    first = service.predict("dominant", "rival", match_date=MATCH_DATE)
    second = service.predict("dominant", "rival", match_date=MATCH_DATE)
    assert first.result == second.result


def test_prediction_is_stored(service):
    response = service.predict("in_form", "out_of_form", match_date=MATCH_DATE)

    history = service.store.list_predictions()
    assert len(history) == 1
    assert history[0]["prediction_id"] == response.prediction_id
    assert history[0]["predicted_outcome"] == response.result.outcome


class BrokenStore(InMemoryPredictionStore):
    def store_prediction(self, context, result):
        raise RuntimeError("disk full")


def test_store_failure_does_not_fail_prediction(repository):
    service = PredictionService(repository, store=BrokenStore(), config=FAST)
    response = service.predict("in_form", "out_of_form", match_date=MATCH_DATE)

    assert response.prediction_id is None
    assert response.result.outcome == HOME_WIN


class SlowRepository(InMemoryMatchRepository):
    def get_entity(self, team_id):
        time.sleep(0.3)
        return super().get_entity(team_id)


def test_lookup_timeout_is_transient_failure(snapshots):
    service = PredictionService(
        SlowRepository(snapshots),
        config=ServiceConfig(lookup_timeout_seconds=0.05),
    )
    with pytest.raises(TransientFailureError):
        service.predict("home_side", "away_side", match_date=MATCH_DATE)


class OfflineHistoryRepository(InMemoryMatchRepository):
    def get_recent_outcomes(self, team_id, count):
        raise ConnectionError("results feed offline")


def test_critical_collaborator_failure_propagates(snapshots):
    service = PredictionService(OfflineHistoryRepository(snapshots))
    with pytest.raises(TransientFailureError) as excinfo:
        service.predict("home_side", "away_side", match_date=MATCH_DATE)
    assert excinfo.value.collaborator == "recent_outcomes"


class OfflineHeadToHeadRepository(InMemoryMatchRepository):
    def get_head_to_head(self, team_a, team_b, max_count=20):
        raise TimeoutError("h2h query timed out")


def test_non_critical_failure_degrades_result(snapshots):
    service = PredictionService(
        OfflineHeadToHeadRepository(snapshots, meetings=dominant_meetings())
    )
    result = service.predict("dominant", "rival", match_date=MATCH_DATE).result

    assert result.degraded_inputs == ("head_to_head",)
    assert result.is_degraded
    assert not any("historically dominant" in r for r in result.reasoning)


def test_batch_of_twenty_keeps_input_order(service):
    pairs = [("in_form", "out_of_form"), ("out_of_form", "in_form")] * 10
    requests = [PredictionRequest(h, a, match_date=MATCH_DATE) for h, a in pairs]

    responses = service.predict_batch(requests)

    assert len(responses) == 20
    assert [r.match_info["home_team"]["id"] for r in responses] == [h for h, _ in pairs]
    assert len(service.store) == 20


def test_batch_of_twenty_one_is_rejected(service):
    requests = [PredictionRequest("in_form", "out_of_form")] * 21
    with pytest.raises(ValidationError):
        service.predict_batch(requests)
    assert len(service.store) == 0


def test_empty_batch_returns_empty_list(service):
    assert service.predict_batch([]) == []


def test_batch_propagates_first_failure_in_input_order(service):
    requests = [
        PredictionRequest("in_form", "out_of_form", match_date=MATCH_DATE),
        PredictionRequest("in_form", "ghost", match_date=MATCH_DATE),
        PredictionRequest("dominant", "dominant", match_date=MATCH_DATE),
    ]
    with pytest.raises(EntityNotFoundError):
        service.predict_batch(requests)


def test_request_from_dict_accepts_camel_case():
    request = PredictionRequest.from_dict(
        {"homeTeamId": 1, "awayTeamId": 2, "matchDate": "2024-03-02T15:00:00"}
    )
    assert request.home_team_id == 1
    assert request.match_date == MATCH_DATE

    with pytest.raises(ValidationError):
        PredictionRequest.from_dict({"home_team_id": 1})


def test_summarize_batch(service):
    responses = service.predict_batch(
        [
            PredictionRequest("in_form", "out_of_form", match_date=MATCH_DATE),
            PredictionRequest("home_side", "away_side", match_date=MATCH_DATE),
        ]
    )
    summary = summarize_batch(responses)

    assert summary["total_predictions"] == 2
    assert summary["average_confidence"] == pytest.approx(
        sum(r.result.confidence for r in responses) / 2
    )
    assert summary["high_confidence_predictions"] == sum(
        r.result.is_high_confidence for r in responses
    )


def test_response_to_dict(service):
    data = service.predict("in_form", "out_of_form", match_date=MATCH_DATE).to_dict()

    assert data["match_info"]["match_date"] == MATCH_DATE.isoformat()
    assert data["prediction"]["predicted_outcome"] == HOME_WIN
    assert data["model"]["version"] == "v2.0"
    assert data["processing_time_ms"] >= 0


def test_timezone_aware_match_date_is_normalized_to_utc():
    service = PredictionService(DataFrameMatchRepository(load_raw_matches()), config=FAST)
    kickoff = datetime(2023, 10, 7, 17, 0, tzinfo=timezone(timedelta(hours=2)))

    response = service.predict("Fulham", "Arsenal", match_date=kickoff)

    assert response.match_date == datetime(2023, 10, 7, 15, 0)
    assert response.result.outcome in {"home_win", "draw", "away_win"}
    assert response.result.degraded_inputs == ()


def test_naive_and_aware_dates_give_same_result():
    service = PredictionService(DataFrameMatchRepository(load_raw_matches()), config=FAST)

    naive = service.predict("Fulham", "Arsenal", match_date=datetime(2023, 10, 7, 15, 0))
    aware = service.predict(
        "Fulham", "Arsenal", match_date=datetime(2023, 10, 7, 15, 0, tzinfo=timezone.utc)
    )

    assert naive.result == aware.result
