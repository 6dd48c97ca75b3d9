import math

import numpy as np
import pandas as pd
import pytest

from footyforecast.data.data_loader import load_raw_matches
from footyforecast.models.evaluate_predictions import (
    evaluate_stored_predictions,
    join_predictions_with_results,
    plot_confusion_matrix,
)
from footyforecast.models.metrics import compute_classification_metrics, labels_to_indices


def test_labels_to_indices():
    assert labels_to_indices(["home_win", "draw", "away_win"]).tolist() == [0, 1, 2]
    with pytest.raises(ValueError):
        labels_to_indices(["win"])


def test_classification_metrics_basic():
    y_true = np.array([0, 0, 1, 2])
    y_pred = np.array([0, 1, 1, 2])
    y_proba = np.array(
        [
            [0.7, 0.2, 0.1],
            [0.3, 0.5, 0.2],
            [0.2, 0.6, 0.2],
            [0.1, 0.2, 0.7],
        ]
    )
    metrics = compute_classification_metrics(y_true, y_pred, y_proba)

    assert metrics["n_predictions"] == 4
    assert metrics["accuracy"] == pytest.approx(0.75)
    assert metrics["baseline_accuracy"] == pytest.approx(0.5)
    assert metrics["per_outcome_accuracy"]["home_win"] == pytest.approx(1.0)
    assert metrics["per_outcome_accuracy"]["draw"] == pytest.approx(0.5)
    assert metrics["confusion_matrix"] == [[1, 1, 0], [0, 1, 0], [0, 0, 1]]
    assert metrics["log_loss"] > 0


def test_classification_metrics_empty():
    metrics = compute_classification_metrics(np.array([]), np.array([]))
    assert metrics["n_predictions"] == 0
    assert math.isnan(metrics["accuracy"])


def _stored(home, away, date, outcome, confidence):
    probs = {"home_win": 0.1, "draw": 0.1, "away_win": 0.1}
    probs[outcome] = confidence
    rest = (1 - confidence) / 2
    for key in probs:
        if key != outcome:
            probs[key] = rest
    return {
        "prediction_id": f"pred-{home}-{away}",
        "home_team": home,
        "away_team": away,
        "match_date": date,
        "predicted_outcome": outcome,
        "confidence": confidence,
        "home_win_probability": probs["home_win"],
        "draw_probability": probs["draw"],
        "away_win_probability": probs["away_win"],
    }


def test_evaluate_stored_predictions_against_sample_results():
    predictions = pd.DataFrame(
        [
            # Arsenal 2-1 Chelsea: correct
            _stored("Arsenal", "Chelsea", "2023-08-12T15:00:00", "home_win", 0.8),
            # Everton 0-1 Fulham: wrong
            _stored("Everton", "Fulham", "2023-08-12T15:00:00", "home_win", 0.6),
            # Fulham v Arsenal not played yet: ignored
            _stored("Fulham", "Arsenal", "2023-10-07T15:00:00", "away_win", 0.7),
        ]
    )
    matches = load_raw_matches()

    joined = join_predictions_with_results(predictions, matches)
    assert len(joined) == 2

    metrics = evaluate_stored_predictions(predictions, matches)
    assert metrics["n_stored"] == 3
    assert metrics["n_predictions"] == 2
    assert metrics["accuracy"] == pytest.approx(0.5)
    assert metrics["avg_confidence_correct"] == pytest.approx(0.8)
    assert metrics["avg_confidence_incorrect"] == pytest.approx(0.6)


def test_plot_confusion_matrix(tmp_path, monkeypatch):
    monkeypatch.setattr(
        "footyforecast.models.evaluate_predictions.get_plot_path",
        lambda filename: tmp_path / filename,
    )
    out_path = plot_confusion_matrix(np.array([[1, 0, 0], [0, 2, 1], [0, 0, 3]]))
    assert out_path.exists()
