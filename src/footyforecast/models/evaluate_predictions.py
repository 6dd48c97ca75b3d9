# path: src/footyforecast/models/evaluate_predictions.py
"""
Evaluate stored footyforecast predictions against actual results.

Usage:

    python -m footyforecast.models.evaluate_predictions

This will:
- Load data/predictions/predictions.csv
- Load the raw matches CSV (data/raw/sample_matches.csv)
- Join predictions with completed matches on (home_team, away_team, date)
- Compute overall/per-outcome accuracy, log loss and the confidence of correct
  vs incorrect predictions
- Save a confusion matrix plot to plots/
"""

from __future__ import annotations

import argparse
from typing import Any, Dict

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from footyforecast.config import AWAY_WIN, CLASS_LABELS, DRAW, HOME_WIN
from footyforecast.data.data_loader import load_raw_matches
from footyforecast.models.metrics import (
    compute_classification_metrics,
    labels_to_indices,
)
from footyforecast.utils.logging_utils import get_logger
from footyforecast.utils.paths import get_plot_path, get_predictions_path

logger = get_logger(__name__)

PROBABILITY_COLUMNS = [
    "home_win_probability",
    "draw_probability",
    "away_win_probability",
]


def actual_outcomes(matches_df: pd.DataFrame) -> pd.Series:
    """Outcome label of each completed match, from the home side's view."""
    diff = matches_df["home_goals"] - matches_df["away_goals"]
    outcome = pd.Series(DRAW, index=matches_df.index)
    outcome[diff > 0] = HOME_WIN
    outcome[diff < 0] = AWAY_WIN
    return outcome


def join_predictions_with_results(
    predictions_df: pd.DataFrame,
    matches_df: pd.DataFrame,
) -> pd.DataFrame:
    """
    Attach the actual outcome to every prediction whose match has been played.

    Matches are keyed by (home_team, away_team, calendar date). Predictions of
    unplayed matches are dropped.
    """
    completed = matches_df[
        matches_df["home_goals"].notna() & matches_df["away_goals"].notna()
    ].copy()
    completed["match_day"] = pd.to_datetime(completed["date"]).dt.normalize()
    completed["actual_outcome"] = actual_outcomes(completed)

    preds = predictions_df.copy()
    preds["match_day"] = pd.to_datetime(preds["match_date"]).dt.normalize()
    for col in ("home_team", "away_team"):
        preds[col] = preds[col].astype(str)
        completed[col] = completed[col].astype(str)

    joined = preds.merge(
        completed[["home_team", "away_team", "match_day", "actual_outcome"]],
        on=["home_team", "away_team", "match_day"],
        how="inner",
    )
    joined["is_correct"] = joined["predicted_outcome"] == joined["actual_outcome"]
    return joined


def evaluate_stored_predictions(
    predictions_df: pd.DataFrame,
    matches_df: pd.DataFrame,
) -> Dict[str, Any]:
    """
    Accuracy statistics of stored predictions.

    Predictions are scored as stored. A prediction of a past fixture made from
    a repository that already holds its result has seen that result; build
    such back-test predictions with `DataFrameMatchRepository(..., as_of=...)`.

    Returns
    -------
    dict
        The metrics of `compute_classification_metrics` plus
        "n_stored", "avg_confidence_correct", "avg_confidence_incorrect".
    """
    joined = join_predictions_with_results(predictions_df, matches_df)
    logger.info(
        "Matched %d of %d stored predictions with completed results.",
        len(joined),
        len(predictions_df),
    )

    y_true = labels_to_indices(joined["actual_outcome"])
    y_pred = labels_to_indices(joined["predicted_outcome"])
    y_proba = joined[PROBABILITY_COLUMNS].to_numpy(dtype=float) if len(joined) else None

    metrics = compute_classification_metrics(
        y_true=y_true,
        y_pred=y_pred,
        y_proba=y_proba,
        labels=CLASS_LABELS,
    )

    correct = joined.loc[joined["is_correct"], "confidence"]
    incorrect = joined.loc[~joined["is_correct"], "confidence"]
    metrics["n_stored"] = int(len(predictions_df))
    metrics["avg_confidence_correct"] = float(correct.mean()) if len(correct) else float("nan")
    metrics["avg_confidence_incorrect"] = (
        float(incorrect.mean()) if len(incorrect) else float("nan")
    )
    return metrics


def plot_confusion_matrix(cm: np.ndarray, filename: str = "prediction_confusion_matrix.png"):
    """Plot and save the confusion matrix; returns the output path."""
    out_path = get_plot_path(filename)

    fig, ax = plt.subplots(figsize=(6, 5))
    im = ax.imshow(cm, interpolation="nearest")
    ax.figure.colorbar(im, ax=ax)

    ax.set_xticks(np.arange(len(CLASS_LABELS)))
    ax.set_yticks(np.arange(len(CLASS_LABELS)))
    ax.set_xticklabels(CLASS_LABELS)
    ax.set_yticklabels(CLASS_LABELS)
    ax.set_xlabel("Predicted outcome")
    ax.set_ylabel("Actual outcome")
    ax.set_title("Prediction Confusion Matrix")

    thresh = cm.max() / 2.0 if cm.max() > 0 else 0.5
    for i in range(cm.shape[0]):
        for j in range(cm.shape[1]):
            ax.text(
                j,
                i,
                format(cm[i, j], "d"),
                ha="center",
                va="center",
                color="white" if cm[i, j] > thresh else "black",
            )

    fig.tight_layout()
    fig.savefig(out_path)
    plt.close(fig)
    logger.info("Saved confusion matrix plot to %s", out_path)
    return out_path


def run_evaluation(
    predictions_path: str | None = None,
    matches_path: str | None = None,
    plot: bool = True,
) -> Dict[str, Any]:
    """Main evaluation routine."""
    path = predictions_path or get_predictions_path()
    logger.info("Loading stored predictions from %s", path)
    predictions_df = pd.read_csv(path)
    matches_df = load_raw_matches(matches_path)

    metrics = evaluate_stored_predictions(predictions_df, matches_df)
    logger.info("Prediction accuracy metrics: %s", metrics)

    print("Prediction accuracy:")
    for k in (
        "n_stored",
        "n_predictions",
        "accuracy",
        "baseline_accuracy",
        "log_loss",
        "avg_confidence_correct",
        "avg_confidence_incorrect",
    ):
        print(f"  {k}: {metrics[k]:.4f}" if isinstance(metrics[k], float) else f"  {k}: {metrics[k]}")

    if plot and metrics["n_predictions"] > 0:
        plot_confusion_matrix(np.array(metrics["confusion_matrix"], dtype=int))
    return metrics


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Evaluate stored footyforecast predictions against results."
    )
    parser.add_argument("--predictions", default=None, help="Predictions CSV path.")
    parser.add_argument("--matches", default=None, help="Raw matches CSV path.")
    parser.add_argument("--no-plot", action="store_true", help="Skip the plot.")
    args = parser.parse_args(argv)
    run_evaluation(args.predictions, args.matches, plot=not args.no_plot)


if __name__ == "__main__":
    main()
