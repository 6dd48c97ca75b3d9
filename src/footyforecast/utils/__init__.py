"""Shared helpers (logging, paths) for footyforecast."""
