"""
Helper functions for file and directory paths used in footyforecast.
"""

from pathlib import Path

from footyforecast.config import (
    PLOTS_DIR,
    PREDICTIONS_DIR,
    PREDICTIONS_FILENAME,
    RAW_DATA_DIR,
    RAW_MATCHES_FILENAME,
)


def get_raw_data_path(filename: str | None = None) -> Path:
    """
    Return the path to a raw match history file.

    Parameters
    ----------
    filename : str | None
        Specific filename, or None for the default raw matches CSV.

    Returns
    -------
    Path
        Full path to the raw data file.
    """
    if filename is None:
        filename = RAW_MATCHES_FILENAME
    return RAW_DATA_DIR / filename


def get_predictions_path(filename: str | None = None) -> Path:
    """Return the path to the CSV file that stores emitted predictions."""
    if filename is None:
        filename = PREDICTIONS_FILENAME
    return PREDICTIONS_DIR / filename


def get_plot_path(filename: str) -> Path:
    """Return the path of a plot file, creating the plots directory."""
    PLOTS_DIR.mkdir(parents=True, exist_ok=True)
    return PLOTS_DIR / filename
