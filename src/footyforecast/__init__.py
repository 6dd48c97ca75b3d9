"""
footyforecast: match-outcome forecasting engine.

- `features` derives team, match, head-to-head and external features.
- `models` scores feature vectors with heuristic strategies and combines them.
- `prediction` orchestrates end-to-end predictions and stores results.
"""
