# path: src/footyforecast/prediction/service.py
"""
Prediction orchestration for footyforecast.

PredictionService runs the full pipeline for one fixture:

1. Reject self-matches before any lookup.
2. Look up both teams concurrently (each call bounded by a timeout).
3. Aggregate both teams and build the match context concurrently.
4. Assemble the feature vector.
5. Score it with the three strategies concurrently and combine.
6. Hand the result to the prediction store (best effort).

Batches run in sub-batches of BATCH_CONCURRENCY with a short pause between
them; results keep the input order and the first failing request (in input
order) propagates its error.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from footyforecast.config import (
    BATCH_CONCURRENCY,
    BATCH_PAUSE_SECONDS,
    DEFAULT_HISTORY_WINDOW,
    LOOKUP_TIMEOUT_SECONDS,
    MAX_BATCH_SIZE,
    MODEL_NAME,
    MODEL_VERSION,
)
from footyforecast.data.repository import MatchRepository
from footyforecast.data.schema import EntitySnapshot, MatchContext, TeamId
from footyforecast.errors import TransientFailureError, ValidationError
from footyforecast.features.feature_vector import FeatureVector, assemble_feature_vector
from footyforecast.features.match_context import (
    ContextualFeatureBuilder,
    ExternalFactorsProvider,
)
from footyforecast.features.team_stats import StatisticAggregator
from footyforecast.models.ensemble import EnsembleConfig, EnsembleResult, combine
from footyforecast.models.strategies import Strategy, default_strategies
from footyforecast.prediction.store import PredictionStore
from footyforecast.utils.logging_utils import get_logger

logger = get_logger(__name__)


@dataclass
class ServiceConfig:
    """
    Configuration of the prediction orchestrator.

    Attributes
    ----------
    lookup_timeout_seconds : float
        Upper bound on every collaborator call.
    max_batch_size : int
        Largest accepted batch.
    batch_concurrency : int
        Requests run concurrently within a sub-batch.
    batch_pause_seconds : float
        Pause between sub-batches.
    history_window : int
        Number of recent results aggregated per team.
    """

    lookup_timeout_seconds: float = LOOKUP_TIMEOUT_SECONDS
    max_batch_size: int = MAX_BATCH_SIZE
    batch_concurrency: int = BATCH_CONCURRENCY
    batch_pause_seconds: float = BATCH_PAUSE_SECONDS
    history_window: int = DEFAULT_HISTORY_WINDOW


@dataclass(frozen=True)
class PredictionRequest:
    home_team_id: TeamId
    away_team_id: TeamId
    league: Optional[str] = None
    match_date: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PredictionRequest":
        """Build a request from a JSON-like mapping (snake_case or camelCase keys)."""
        home = data.get("home_team_id", data.get("homeTeamId"))
        away = data.get("away_team_id", data.get("awayTeamId"))
        if home is None or away is None:
            raise ValidationError("home_team_id and away_team_id are required")

        match_date = data.get("match_date", data.get("matchDate"))
        if isinstance(match_date, str):
            try:
                match_date = datetime.fromisoformat(match_date)
            except ValueError as exc:
                raise ValidationError(f"Invalid match_date: {match_date!r}") from exc

        return cls(
            home_team_id=home,
            away_team_id=away,
            league=data.get("league"),
            match_date=match_date,
        )


@dataclass(frozen=True)
class PredictionResponse:
    """A finished prediction with the context shown to callers."""

    match_info: Dict[str, Any]
    league: Optional[str]
    match_date: datetime
    result: EnsembleResult
    historical_context: Dict[str, Any]
    processing_time_ms: float
    timestamp: str
    prediction_id: Optional[str] = None
    model_version: str = MODEL_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prediction_id": self.prediction_id,
            "match_info": {
                **self.match_info,
                "league": self.league,
                "match_date": self.match_date.isoformat(),
            },
            "prediction": self.result.to_dict(),
            "historical_context": self.historical_context,
            "model": {"name": MODEL_NAME, "version": self.model_version},
            "processing_time_ms": self.processing_time_ms,
            "timestamp": self.timestamp,
        }


def _naive_match_date(match_date: Optional[datetime]) -> datetime:
    """Default to now; convert aware datetimes to naive UTC like the match records."""
    if match_date is None:
        return datetime.now()
    if match_date.tzinfo is not None:
        return match_date.astimezone(timezone.utc).replace(tzinfo=None)
    return match_date


def _team_info(snapshot: EntitySnapshot) -> Dict[str, Any]:
    return {
        "id": snapshot.team_id,
        "name": snapshot.name,
        "league_position": snapshot.league_position,
        "form": snapshot.form,
    }


def build_historical_context(fv: FeatureVector) -> Dict[str, Any]:
    """Head-to-head record and last-5 form comparison of the fixture."""
    h2h = fv.head_to_head
    last_meeting = h2h.last_meeting_date.isoformat() if h2h.last_meeting_date else None

    def form(team) -> Dict[str, Any]:
        return {
            "wins": team.form_wins_last_5,
            "draws": team.form_draws_last_5,
            "losses": team.form_losses_last_5,
            "points": team.form_points_last_5,
            "goals_for": team.form_goals_for_last_5,
            "goals_against": team.form_goals_against_last_5,
        }

    return {
        "head_to_head_record": {
            "total_matches": h2h.h2h_matches_played,
            "home_team_wins": h2h.h2h_home_wins,
            "draws": h2h.h2h_draws,
            "away_team_wins": h2h.h2h_away_wins,
            "last_meeting": last_meeting,
        },
        "recent_form_comparison": {
            "home_team": form(fv.home_team),
            "away_team": form(fv.away_team),
        },
    }


class PredictionService:
    """Runs predictions for single fixtures and batches."""

    def __init__(
        self,
        repository: MatchRepository,
        store: Optional[PredictionStore] = None,
        external_provider: Optional[ExternalFactorsProvider] = None,
        ensemble_config: Optional[EnsembleConfig] = None,
        config: Optional[ServiceConfig] = None,
        strategies: Optional[Sequence[Strategy]] = None,
    ) -> None:
        self.repository = repository
        self.store = store
        self.config = config or ServiceConfig()
        self.ensemble_config = ensemble_config or EnsembleConfig()
        self.strategies = tuple(strategies) if strategies is not None else default_strategies()
        if len(self.strategies) != 3:
            raise ValueError(f"Expected 3 strategies, got {len(self.strategies)}")

        self.aggregator = StatisticAggregator(repository, lookup=self._lookup)
        self.context_builder = ContextualFeatureBuilder(
            repository,
            external_provider=external_provider,
            lookup=self._lookup,
        )

    # -- collaborator calls -------------------------------------------------

    def _lookup(self, collaborator: str, fn: Callable[..., Any], *args: Any) -> Any:
        """
        Call a collaborator with the configured timeout.

        Timeouts and connection errors become TransientFailureError. A call
        that times out is abandoned, not awaited.
        """
        timeout = self.config.lookup_timeout_seconds
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"lookup-{collaborator}")
        future = executor.submit(fn, *args)
        try:
            return future.result(timeout=timeout)
        except FuturesTimeoutError as exc:
            if not future.done():
                raise TransientFailureError(
                    collaborator, f"no response within {timeout}s"
                ) from exc
            raise TransientFailureError(collaborator, str(exc)) from exc
        except (TimeoutError, ConnectionError) as exc:
            raise TransientFailureError(collaborator, str(exc)) from exc
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    # -- single prediction ----------------------------------------------------

    def predict(
        self,
        home_team_id: TeamId,
        away_team_id: TeamId,
        league: Optional[str] = None,
        match_date: Optional[datetime] = None,
    ) -> PredictionResponse:
        """
        Predict the outcome of `home_team_id` vs `away_team_id`.

        Raises
        ------
        ValidationError
            If both ids are the same, or the features are malformed.
        EntityNotFoundError
            If either team is unknown.
        TransientFailureError
            If a critical collaborator (team or recent results lookup) is
            unavailable.
        """
        start = time.perf_counter()
        if home_team_id == away_team_id:
            raise ValidationError(
                f"A team cannot play itself (got {home_team_id!r} twice)"
            )
        match_date = _naive_match_date(match_date)

        logger.info("Generating prediction: %s vs %s", home_team_id, away_team_id)

        with ThreadPoolExecutor(max_workers=3, thread_name_prefix="predict") as pool:
            f_home = pool.submit(self._lookup, "entity", self.repository.get_entity, home_team_id)
            f_away = pool.submit(self._lookup, "entity", self.repository.get_entity, away_team_id)
            home_snapshot = f_home.result()
            away_snapshot = f_away.result()

            league = league if league is not None else home_snapshot.league
            context = MatchContext(
                home_team_id=home_team_id,
                away_team_id=away_team_id,
                league=league,
                match_date=match_date,
            )

            averages, degraded = self.context_builder.league_averages(league)
            window = self.config.history_window
            f_home_features = pool.submit(
                self.aggregator.aggregate,
                home_team_id,
                window,
                home_snapshot,
                averages.avg_points_per_game,
            )
            f_away_features = pool.submit(
                self.aggregator.aggregate,
                away_team_id,
                window,
                away_snapshot,
                averages.avg_points_per_game,
            )
            f_context = pool.submit(self.context_builder.build, context, averages)
            home_features = f_home_features.result()
            away_features = f_away_features.result()
            contextual = f_context.result()

            fv = assemble_feature_vector(
                home_features,
                away_features,
                contextual.match,
                contextual.head_to_head,
                contextual.external,
            )

            futures = [pool.submit(strategy.score, fv) for strategy in self.strategies]
            estimates = [f.result() for f in futures]

        degraded_inputs = tuple(dict.fromkeys(list(degraded) + list(contextual.degraded_inputs)))
        result = combine(
            *estimates,
            fv,
            config=self.ensemble_config,
            degraded_inputs=degraded_inputs,
        )

        prediction_id = self._store(context, result)
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        logger.info(
            "Prediction %s vs %s: %s (%.3f) in %.1f ms",
            home_team_id,
            away_team_id,
            result.outcome,
            result.confidence,
            elapsed_ms,
        )

        return PredictionResponse(
            match_info={
                "home_team": _team_info(home_snapshot),
                "away_team": _team_info(away_snapshot),
            },
            league=league,
            match_date=match_date,
            result=result,
            historical_context=build_historical_context(fv),
            processing_time_ms=elapsed_ms,
            timestamp=datetime.now(timezone.utc).isoformat(),
            prediction_id=prediction_id,
        )

    def predict_request(self, request: PredictionRequest) -> PredictionResponse:
        return self.predict(
            request.home_team_id,
            request.away_team_id,
            league=request.league,
            match_date=request.match_date,
        )

    def _store(self, context: MatchContext, result: EnsembleResult) -> Optional[str]:
        if self.store is None:
            return None
        try:
            return self.store.store_prediction(context, result)
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to store prediction: %s", exc)
            return None

    # -- batches --------------------------------------------------------------

    def predict_batch(self, requests: Sequence[PredictionRequest]) -> List[PredictionResponse]:
        """
        Predict a batch of fixtures.

        Raises ValidationError if the batch exceeds `max_batch_size`. Any
        failing request aborts the batch with the error of the first failing
        request in input order.
        """
        requests = list(requests)
        if len(requests) > self.config.max_batch_size:
            raise ValidationError(
                f"Batch of {len(requests)} exceeds the maximum of "
                f"{self.config.max_batch_size} predictions"
            )
        if not requests:
            return []

        logger.info("Generating batch predictions for %d matches", len(requests))
        size = self.config.batch_concurrency
        results: List[PredictionResponse] = []
        for i in range(0, len(requests), size):
            chunk = requests[i : i + size]
            with ThreadPoolExecutor(max_workers=size, thread_name_prefix="batch") as pool:
                futures = [pool.submit(self.predict_request, r) for r in chunk]
                # Collect in input order so the first failure (by position) wins.
                results.extend(f.result() for f in futures)

            if i + size < len(requests):
                time.sleep(self.config.batch_pause_seconds)

        logger.info("Batch predictions completed for %d matches", len(results))
        return results


def summarize_batch(responses: Sequence[PredictionResponse]) -> Dict[str, Any]:
    """Totals of a batch: count, average confidence, high-confidence count, time."""
    total = len(responses)
    confidences = [r.result.confidence for r in responses]
    return {
        "total_predictions": total,
        "average_confidence": sum(confidences) / total if total else 0.0,
        "high_confidence_predictions": sum(1 for r in responses if r.result.is_high_confidence),
        "processing_time_ms": sum(r.processing_time_ms for r in responses),
    }
