"""
FastAPI prediction service for footyforecast.

Exposes endpoints to request single and batch predictions and to read the
prediction history.
"""
