# path: src/footyforecast/api/main.py
"""
FastAPI app exposing footyforecast prediction endpoints.

Endpoints:
- GET  /health               -> simple health check
- POST /predictions          -> predict one fixture
- POST /predictions/batch    -> predict up to 20 fixtures
- GET  /predictions/history  -> most recent stored predictions

Engine errors map to HTTP statuses: unknown team -> 404, invalid request ->
400, collaborator temporarily unavailable -> 503.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from footyforecast.config import MODEL_VERSION, PREDICTION_HISTORY_LIMIT
from footyforecast.errors import (
    EntityNotFoundError,
    ForecastError,
    TransientFailureError,
    ValidationError,
)
from footyforecast.prediction.run_prediction import build_service
from footyforecast.prediction.service import (
    PredictionRequest,
    PredictionService,
    summarize_batch,
)
from footyforecast.utils.logging_utils import get_logger

logger = get_logger(__name__)

app = FastAPI(
    title="footyforecast API",
    version="0.1.0",
    description="Match outcome forecasts from an ensemble of heuristic strategies",
)

# Global state populated at startup
SERVICE: PredictionService | None = None

TeamIdField = Union[int, str]


class PredictionRequestModel(BaseModel):
    home_team_id: TeamIdField
    away_team_id: TeamIdField
    league: Optional[str] = None
    match_date: Optional[datetime] = None

    def to_request(self) -> PredictionRequest:
        return PredictionRequest(
            home_team_id=self.home_team_id,
            away_team_id=self.away_team_id,
            league=self.league,
            match_date=self.match_date,
        )


class BatchPredictionRequestModel(BaseModel):
    requests: List[PredictionRequestModel]


def _load_service() -> PredictionService:
    """Build the prediction service over the default raw matches CSV."""
    global SERVICE
    if SERVICE is not None:
        return SERVICE

    SERVICE = build_service()
    logger.info("Prediction service ready (model %s)", MODEL_VERSION)
    return SERVICE


def _get_service() -> PredictionService:
    try:
        return _load_service()
    except (FileNotFoundError, ValueError) as exc:
        raise HTTPException(
            status_code=503,
            detail=f"Prediction service unavailable: {exc}",
        ) from exc


def _status_code_for(exc: ForecastError) -> int:
    if isinstance(exc, EntityNotFoundError):
        return 404
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, TransientFailureError):
        return 503
    return 500


def _http_error(exc: ForecastError) -> HTTPException:
    status = _status_code_for(exc)
    if status >= 500:
        logger.error("Prediction failed: %s", exc)
    else:
        logger.info("Rejected prediction request: %s", exc)
    return HTTPException(status_code=status, detail=str(exc))


@app.on_event("startup")
def startup_event() -> None:
    """Load match data and build the service at application startup."""
    try:
        _load_service()
    except Exception as exc:  # noqa: BLE001
        logger.error("Failed to build prediction service on startup: %s", exc)


@app.get("/health")
def health() -> Dict[str, str]:
    """Health check endpoint."""
    return {
        "status": "ok" if SERVICE is not None else "degraded",
        "model_version": MODEL_VERSION,
    }


@app.post("/predictions")
def create_prediction(payload: PredictionRequestModel) -> Dict[str, Any]:
    """
    Predict one fixture.

    Request:
        { "home_team_id": "Arsenal", "away_team_id": "Chelsea",
          "league": "EPL", "match_date": "2024-03-02T15:00:00" }
    """
    service = _get_service()
    try:
        response = service.predict_request(payload.to_request())
    except ForecastError as exc:
        raise _http_error(exc) from exc
    return response.to_dict()


@app.post("/predictions/batch")
def create_batch_predictions(payload: BatchPredictionRequestModel) -> Dict[str, Any]:
    """Predict up to 20 fixtures; results keep the request order."""
    service = _get_service()
    try:
        responses = service.predict_batch([r.to_request() for r in payload.requests])
    except ForecastError as exc:
        raise _http_error(exc) from exc
    return {
        "predictions": [r.to_dict() for r in responses],
        "summary": summarize_batch(responses),
    }


@app.get("/predictions/history")
def prediction_history(
    limit: int = Query(PREDICTION_HISTORY_LIMIT, ge=1, le=500),
) -> List[Dict[str, Any]]:
    """Return the most recent stored predictions, newest first."""
    service = _get_service()
    if service.store is None:
        return []
    return service.store.list_predictions(limit)
