import logging
from pathlib import Path
from typing import Iterator, Optional, Tuple

import pandas as pd

logger = logging.getLogger(__name__)

SERIES_NAME = "price"


def load_price_series(
    price_path: Path,
    date_column: Optional[str] = None,
    value_column: Optional[str] = None,
) -> pd.Series:
    """Read a (date, price) CSV into a monthly price series.

    Without explicit column names the first column is taken as the date and
    the second as the price, so FRED downloads load as-is.
    """
    df = pd.read_csv(price_path)
    if df.shape[1] < 2:
        raise ValueError("Price data needs a date column and a price column.")

    date_column = date_column or df.columns[0]
    value_column = value_column or df.columns[1]
    missing = {date_column, value_column} - set(df.columns)
    if missing:
        raise ValueError(f"Price data missing required columns: {sorted(missing)}")

    frame = df[[date_column, value_column]].copy()
    frame[date_column] = pd.to_datetime(frame[date_column], errors="coerce")
    frame[value_column] = pd.to_numeric(frame[value_column], errors="coerce")
    dropped = int(frame.isna().any(axis=1).sum())
    frame = frame.dropna()
    if frame.empty:
        raise ValueError("No rows left after parsing dates and prices. Check the source data.")
    if dropped:
        logger.info("Dropped %d unparseable rows from %s", dropped, price_path)

    frame = frame.sort_values(date_column)
    series = pd.Series(
        frame[value_column].to_numpy(dtype=float),
        index=pd.DatetimeIndex(frame[date_column], name="ds"),
        name=SERIES_NAME,
    )
    return ensure_monthly_frequency(series)


def ensure_monthly_frequency(series: pd.Series, how: str = "mean") -> pd.Series:
    if series.empty:
        raise ValueError("Cannot regularise an empty series.")
    monthly = series.sort_index().resample("MS").agg(how)
    gaps = int(monthly.isna().sum())
    if gaps:
        logger.warning("Interpolating %d missing months", gaps)
        monthly = monthly.interpolate(method="linear")
    monthly = monthly.astype(float)
    monthly.index.name = "ds"
    monthly.name = series.name or SERIES_NAME
    return monthly


def train_test_split(series: pd.Series, test_size: int) -> Tuple[pd.Series, pd.Series]:
    if test_size < 1:
        raise ValueError("test_size must be at least 1.")
    if test_size >= len(series):
        raise ValueError(
            f"test_size={test_size} leaves no training data for a series of length {len(series)}."
        )
    return series.iloc[:-test_size], series.iloc[-test_size:]


def expanding_window_splits(
    series: pd.Series,
    min_train: int,
    horizon: int,
    step: int = 1,
    max_folds: Optional[int] = None,
) -> Iterator[Tuple[pd.Series, pd.Series]]:
    """Yield (train, test) pairs with a growing training prefix.

    Every test window holds exactly ``horizon`` points; the cutoff starts at
    ``min_train`` and moves forward by ``step``. ``max_folds`` keeps only the
    most recent cutoffs.
    """
    if min_train < 1 or horizon < 1 or step < 1:
        raise ValueError("min_train, horizon and step must all be positive.")
    if max_folds is not None and max_folds < 1:
        raise ValueError("max_folds must be positive when given.")
    if len(series) < min_train + horizon:
        raise ValueError(
            f"Series of length {len(series)} is too short for min_train={min_train} "
            f"and horizon={horizon}."
        )

    cutoffs = list(range(min_train, len(series) - horizon + 1, step))
    if max_folds is not None:
        cutoffs = cutoffs[-max_folds:]

    for cutoff in cutoffs:
        yield series.iloc[:cutoff], series.iloc[cutoff : cutoff + horizon]
