import pytest
from fastapi.testclient import TestClient

import footyforecast.api.main as api_main
from footyforecast.prediction.service import PredictionService, ServiceConfig
from footyforecast.prediction.store import InMemoryPredictionStore


@pytest.fixture
def client(repository, monkeypatch):
    service = PredictionService(
        repository,
        store=InMemoryPredictionStore(),
        config=ServiceConfig(batch_pause_seconds=0.0),
    )
    monkeypatch.setattr(api_main, "SERVICE", service)
    return TestClient(api_main.app)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_predict_endpoint(client):
    response = client.post(
        "/predictions",
        json={
            "home_team_id": "in_form",
            "away_team_id": "out_of_form",
            "match_date": "2024-03-02T15:00:00",
        },
    )
    assert response.status_code == 200
    data = response.json()
    assert data["prediction"]["predicted_outcome"] == "home_win"
    assert data["match_info"]["league"] == "EPL"


def test_predict_unknown_team_is_404(client):
    response = client.post(
        "/predictions", json={"home_team_id": "in_form", "away_team_id": "ghost"}
    )
    assert response.status_code == 404


def test_predict_self_match_is_400(client):
    response = client.post(
        "/predictions", json={"home_team_id": "in_form", "away_team_id": "in_form"}
    )
    assert response.status_code == 400


def test_batch_endpoint_and_history(client):
    payload = {
        "requests": [
            {"home_team_id": "in_form", "away_team_id": "out_of_form"},
            {"home_team_id": "dominant", "away_team_id": "rival"},
        ]
    }
    response = client.post("/predictions/batch", json=payload)
    assert response.status_code == 200
    data = response.json()
    assert len(data["predictions"]) == 2
    assert data["summary"]["total_predictions"] == 2

    history = client.get("/predictions/history").json()
    assert {h["home_team"] for h in history} == {"in_form", "dominant"}
    assert len(client.get("/predictions/history", params={"limit": 1}).json()) == 1


def test_batch_too_large_is_400(client):
    payload = {"requests": [{"home_team_id": "in_form", "away_team_id": "out_of_form"}] * 21}
    assert client.post("/predictions/batch", json=payload).status_code == 400


def test_transient_failure_is_503(client, monkeypatch):
    def offline(team_id):
        raise ConnectionError("database unreachable")

    monkeypatch.setattr(api_main.SERVICE.repository, "get_entity", offline)
    response = client.post(
        "/predictions", json={"home_team_id": "in_form", "away_team_id": "out_of_form"}
    )
    assert response.status_code == 503


def test_predict_accepts_utc_designator_in_match_date(client):
    response = client.post(
        "/predictions",
        json={
            "home_team_id": "in_form",
            "away_team_id": "out_of_form",
            "match_date": "2024-03-02T15:00:00Z",
        },
    )
    assert response.status_code == 200
    assert response.json()["match_info"]["match_date"] == "2024-03-02T15:00:00"
