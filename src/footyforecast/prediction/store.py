"""
Prediction persistence for footyforecast.

The orchestrator hands every finished prediction to a PredictionStore. Storage
is best effort: the orchestrator logs and ignores store failures, so stores
may raise freely.

Each stored record is a flat dict with the PREDICTION_COLUMNS keys, which is
also the CSV layout used by `CsvPredictionStore` and read back by the accuracy
evaluation.
"""

from __future__ import annotations

import itertools
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd

from footyforecast.config import MODEL_VERSION, PREDICTION_HISTORY_LIMIT
from footyforecast.data.schema import MatchContext
from footyforecast.models.ensemble import EnsembleResult
from footyforecast.utils.logging_utils import get_logger
from footyforecast.utils.paths import get_predictions_path

logger = get_logger(__name__)

PREDICTION_COLUMNS: List[str] = [
    "prediction_id",
    "created_at",
    "home_team",
    "away_team",
    "league",
    "match_date",
    "predicted_outcome",
    "confidence",
    "home_win_probability",
    "draw_probability",
    "away_win_probability",
    "is_degraded",
    "model_version",
]


def prediction_record(
    prediction_id: str,
    context: MatchContext,
    result: EnsembleResult,
) -> Dict[str, Any]:
    """Flatten a prediction into a storable record."""
    home, draw, away = result.probabilities
    return {
        "prediction_id": prediction_id,
        "created_at": datetime.now(timezone.utc).isoformat(),
        "home_team": context.home_team_id,
        "away_team": context.away_team_id,
        "league": context.league,
        "match_date": context.match_date.isoformat(),
        "predicted_outcome": result.outcome,
        "confidence": result.confidence,
        "home_win_probability": home,
        "draw_probability": draw,
        "away_win_probability": away,
        "is_degraded": result.is_degraded,
        "model_version": MODEL_VERSION,
    }


class PredictionStore(ABC):
    """Sink for finished predictions."""

    @abstractmethod
    def store_prediction(self, context: MatchContext, result: EnsembleResult) -> str:
        """Persist a prediction and return its id."""

    @abstractmethod
    def list_predictions(self, limit: int = PREDICTION_HISTORY_LIMIT) -> List[Dict[str, Any]]:
        """Return up to `limit` stored records, most recent first."""


class InMemoryPredictionStore(PredictionStore):
    """Append-only list of records with an id index."""

    def __init__(self) -> None:
        self._records: List[Dict[str, Any]] = []
        self._index: Dict[str, int] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def store_prediction(self, context: MatchContext, result: EnsembleResult) -> str:
        with self._lock:
            prediction_id = f"pred-{next(self._ids)}"
            self._index[prediction_id] = len(self._records)
            self._records.append(prediction_record(prediction_id, context, result))
        return prediction_id

    def get_prediction(self, prediction_id: str) -> Dict[str, Any]:
        with self._lock:
            return dict(self._records[self._index[prediction_id]])

    def list_predictions(self, limit: int = PREDICTION_HISTORY_LIMIT) -> List[Dict[str, Any]]:
        with self._lock:
            recent = self._records[::-1][:limit]
            return [dict(r) for r in recent]

    def __len__(self) -> int:
        return len(self._records)


class CsvPredictionStore(PredictionStore):
    """Appends predictions to a CSV file (data/predictions/predictions.csv by default)."""

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else get_predictions_path()
        self._lock = threading.Lock()
        self._ids = itertools.count(len(self._read()) + 1)

    def _read(self) -> pd.DataFrame:
        if not self.path.exists():
            return pd.DataFrame(columns=PREDICTION_COLUMNS)
        return pd.read_csv(self.path)

    def store_prediction(self, context: MatchContext, result: EnsembleResult) -> str:
        with self._lock:
            prediction_id = f"pred-{next(self._ids)}"
            row = pd.DataFrame(
                [prediction_record(prediction_id, context, result)],
                columns=PREDICTION_COLUMNS,
            )
            self.path.parent.mkdir(parents=True, exist_ok=True)
            row.to_csv(
                self.path,
                mode="a",
                header=not self.path.exists(),
                index=False,
            )
        logger.debug("Stored prediction %s to %s", prediction_id, self.path)
        return prediction_id

    def list_predictions(self, limit: int = PREDICTION_HISTORY_LIMIT) -> List[Dict[str, Any]]:
        with self._lock:
            df = self._read()
        recent = df.iloc[::-1].head(limit).astype(object)
        # Missing values (e.g. no league) come back as None, not NaN
        recent = recent.where(recent.notna(), None)
        return recent.to_dict(orient="records")

    def to_dataframe(self) -> pd.DataFrame:
        with self._lock:
            return self._read()
