"""
Data loading utilities for footyforecast.

This module provides functions to load the raw match history that backs the
pandas repository.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pandas as pd

from footyforecast.data.schema import validate_raw_matches_df
from footyforecast.utils.logging_utils import get_logger
from footyforecast.utils.paths import get_raw_data_path

logger = get_logger(__name__)


def load_raw_matches(path: Optional[Path | str] = None) -> pd.DataFrame:
    """
    Load raw match data from a CSV file and validate it.

    Parameters
    ----------
    path : pathlib.Path | str | None
        Path to the raw CSV file. If None, uses the default path from config.

    Returns
    -------
    pandas.DataFrame
        Validated raw matches DataFrame.
    """
    csv_path = Path(path) if path is not None else get_raw_data_path()
    if not csv_path.exists():
        raise FileNotFoundError(f"Raw data file not found: {csv_path}")

    logger.info("Loading raw match data from %s", csv_path)
    df = pd.read_csv(csv_path)
    df = validate_raw_matches_df(df)
    logger.info("Loaded %d valid raw match rows.", len(df))
    return df
