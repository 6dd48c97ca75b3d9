# path: src/footyforecast/prediction/run_prediction.py
"""
Command-line predictions for footyforecast.

Usage:

    python -m footyforecast.prediction.run_prediction Arsenal Chelsea
    python -m footyforecast.prediction.run_prediction Arsenal Chelsea --date 2024-03-02
    python -m footyforecast.prediction.run_prediction --batch fixtures.csv

Builds the match repository from the raw matches CSV, runs the prediction(s)
and prints the result as JSON. Predictions are appended to
data/predictions/predictions.csv unless --no-store is given.
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime
from typing import List

import pandas as pd

from footyforecast.data.data_loader import load_raw_matches
from footyforecast.data.repository import DataFrameMatchRepository
from footyforecast.errors import ForecastError
from footyforecast.prediction.service import (
    PredictionRequest,
    PredictionService,
    summarize_batch,
)
from footyforecast.prediction.store import CsvPredictionStore
from footyforecast.utils.logging_utils import get_logger

logger = get_logger(__name__)


def build_service(
    matches_path: str | None = None,
    store_path: str | None = None,
    store: bool = True,
    as_of: datetime | None = None,
):
    """Create a PredictionService over the raw matches CSV (results before `as_of` only)."""
    repository = DataFrameMatchRepository(load_raw_matches(matches_path), as_of=as_of)
    prediction_store = CsvPredictionStore(store_path) if store else None
    return PredictionService(repository, store=prediction_store)


def read_batch_requests(path: str) -> List[PredictionRequest]:
    """Read fixtures from a CSV with home_team, away_team[, league, date] columns."""
    df = pd.read_csv(path)
    missing = [c for c in ("home_team", "away_team") if c not in df.columns]
    if missing:
        raise ValueError(f"Batch file is missing columns: {missing}")

    requests = []
    for row in df.to_dict(orient="records"):
        date = row.get("date")
        requests.append(
            PredictionRequest(
                home_team_id=row["home_team"],
                away_team_id=row["away_team"],
                league=row.get("league") if pd.notna(row.get("league")) else None,
                match_date=pd.Timestamp(date).to_pydatetime() if pd.notna(date) else None,
            )
        )
    return requests


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Predict match outcomes with footyforecast.")
    parser.add_argument("home_team", nargs="?", help="Home team id.")
    parser.add_argument("away_team", nargs="?", help="Away team id.")
    parser.add_argument("--league", default=None, help="League (defaults to the home team's).")
    parser.add_argument(
        "--date",
        default=None,
        help="Match date in ISO format (YYYY-MM-DD). Defaults to now.",
    )
    parser.add_argument("--batch", default=None, help="CSV of fixtures to predict.")
    parser.add_argument("--matches", default=None, help="Raw matches CSV path.")
    parser.add_argument("--store-path", default=None, help="Predictions CSV path.")
    parser.add_argument("--no-store", action="store_true", help="Do not store predictions.")
    parser.add_argument(
        "--as-of",
        default=None,
        help="Only use results played before this ISO date (for back-testing).",
    )
    args = parser.parse_args(argv)

    if args.batch is None and (args.home_team is None or args.away_team is None):
        parser.error("home_team and away_team are required unless --batch is given")

    as_of = datetime.fromisoformat(args.as_of) if args.as_of else None
    service = build_service(args.matches, args.store_path, store=not args.no_store, as_of=as_of)

    try:
        if args.batch is not None:
            responses = service.predict_batch(read_batch_requests(args.batch))
            output = {
                "predictions": [r.to_dict() for r in responses],
                "summary": summarize_batch(responses),
            }
        else:
            match_date = datetime.fromisoformat(args.date) if args.date else None
            output = service.predict(
                args.home_team,
                args.away_team,
                league=args.league,
                match_date=match_date,
            ).to_dict()
    except ForecastError as exc:
        logger.error("Prediction failed: %s", exc)
        print(json.dumps({"error": type(exc).__name__, "detail": str(exc)}), file=sys.stderr)
        return 1

    print(json.dumps(output, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
