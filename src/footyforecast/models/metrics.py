# path: src/footyforecast/models/metrics.py
"""
Accuracy metrics for footyforecast predictions.
"""

from __future__ import annotations

from typing import Any, Dict, Sequence

import numpy as np
from sklearn.metrics import accuracy_score, confusion_matrix, log_loss

from footyforecast.config import CLASS_LABELS


def labels_to_indices(outcomes: Sequence[str], labels: list[str] | None = None) -> np.ndarray:
    """Map outcome labels ('home_win', ...) to class indices."""
    if labels is None:
        labels = CLASS_LABELS
    label_to_idx = {lab: i for i, lab in enumerate(labels)}
    try:
        return np.array([label_to_idx[o] for o in outcomes], dtype=int)
    except KeyError as exc:
        raise ValueError(f"Unknown outcome label: {exc.args[0]!r}") from exc


def compute_classification_metrics(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    y_proba: np.ndarray | None = None,
    labels: list[str] | None = None,
) -> Dict[str, Any]:
    """
    Compute accuracy metrics of predicted outcomes against actual results.

    Parameters
    ----------
    y_true : np.ndarray
        Actual class indices (0..n_classes-1).
    y_pred : np.ndarray
        Predicted class indices.
    y_proba : np.ndarray | None
        Predicted probabilities with shape (n_samples, n_classes), columns in
        `labels` order. Log loss is NaN when omitted.
    labels : list[str] | None
        Class label strings (defaults to CLASS_LABELS).

    Returns
    -------
    dict
        {
          "n_predictions": int,
          "accuracy": float,
          "log_loss": float,
          "baseline_accuracy": float,
          "per_outcome_accuracy": {label: float},
          "confusion_matrix": list[list[int]],
        }
    """
    if labels is None:
        labels = CLASS_LABELS

    y_true = np.asarray(y_true, dtype=int)
    y_pred = np.asarray(y_pred, dtype=int)
    num_classes = len(labels)

    if len(y_true) == 0:
        return {
            "n_predictions": 0,
            "accuracy": float("nan"),
            "log_loss": float("nan"),
            "baseline_accuracy": float("nan"),
            "per_outcome_accuracy": {lab: float("nan") for lab in labels},
            "confusion_matrix": np.zeros((num_classes, num_classes), dtype=int).tolist(),
        }

    acc = accuracy_score(y_true, y_pred)

    # Majority-class baseline accuracy
    counts = np.bincount(y_true, minlength=num_classes)
    baseline_acc = counts.max() / counts.sum()

    ll = float("nan")
    if y_proba is not None:
        try:
            ll = log_loss(y_true, y_proba, labels=np.arange(num_classes))
        except ValueError:
            # e.g. probabilities of the wrong width
            ll = float("nan")

    cm = confusion_matrix(y_true, y_pred, labels=np.arange(num_classes))

    # Accuracy of predictions of each outcome (precision per predicted label)
    per_outcome: Dict[str, float] = {}
    for i, lab in enumerate(labels):
        predicted = cm[:, i].sum()
        per_outcome[lab] = float(cm[i, i] / predicted) if predicted > 0 else float("nan")

    return {
        "n_predictions": int(len(y_true)),
        "accuracy": float(acc),
        "log_loss": float(ll),
        "baseline_accuracy": float(baseline_acc),
        "per_outcome_accuracy": per_outcome,
        "confusion_matrix": cm.tolist(),
    }
