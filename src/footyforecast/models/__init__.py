"""
Scoring and explanation for footyforecast.

- `strategies` holds the three heuristic scorers.
- `ensemble` combines strategy estimates into one distribution.
- `explain` provides feature importance and reasoning rules.
- `metrics` / `evaluate_predictions` track accuracy of stored predictions.
"""
