"""
Prediction orchestration for footyforecast.

- `service` runs the pipeline for single requests and batches.
- `store` persists emitted predictions.
- `run_prediction` is a CLI entry point.
"""
