"""
Data loading utilities.
Loads the raw CSV, checks its header, and reports missing values.
"""
import logging
from pathlib import Path

import pandas as pd

from irisnet.config import IRIS_CSV, ID_COL, LABEL_COL, FEATURE_COLS
from irisnet.errors import EncodingError

logger = logging.getLogger(__name__)


def load_observations(
    path: str | Path = IRIS_CSV,
    feature_cols: list[str] = FEATURE_COLS,
    label_col: str = LABEL_COL,
    id_col: str = ID_COL,
) -> pd.DataFrame:
    """Load the raw observation table and check its header."""
    df = pd.read_csv(path)
    missing = [c for c in [id_col, *feature_cols, label_col] if c not in df.columns]
    if missing:
        raise EncodingError(f"{path}: missing required columns {missing}")
    logger.info("Loaded %d rows from %s", len(df), path)
    return df


def missing_report(df: pd.DataFrame) -> pd.Series:
    """
    Count missing values per column.
    Only columns with at least one missing value are returned.
    """
    counts = df.isna().sum()
    counts = counts[counts > 0]
    if counts.empty:
        logger.info("No missing values")
    for col, n in counts.items():
        logger.info("  %s: %d missing", col, n)
    return counts
