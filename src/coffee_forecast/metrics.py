from typing import Dict, Optional

import numpy as np
import pandas as pd
from sklearn.metrics import mean_absolute_error, mean_squared_error
from statsmodels.tsa.stattools import acf

ACCURACY_COLUMNS = ("ME", "RMSE", "MAE", "MPE", "MAPE", "MASE", "ACF1")


def _finite_pairs(
    actual: pd.Series | np.ndarray, predicted: pd.Series | np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    actual_arr = np.asarray(actual, dtype=float).ravel()
    predicted_arr = np.asarray(predicted, dtype=float).ravel()
    if actual_arr.shape != predicted_arr.shape:
        raise ValueError(
            f"actual and predicted lengths differ: {actual_arr.size} != {predicted_arr.size}"
        )
    mask = np.isfinite(actual_arr) & np.isfinite(predicted_arr)
    return actual_arr[mask], predicted_arr[mask]


def rmse(actual: pd.Series | np.ndarray, predicted: pd.Series | np.ndarray) -> float:
    actual_arr, predicted_arr = _finite_pairs(actual, predicted)
    if actual_arr.size == 0:
        return np.nan
    return float(np.sqrt(mean_squared_error(actual_arr, predicted_arr)))


def mae(actual: pd.Series | np.ndarray, predicted: pd.Series | np.ndarray) -> float:
    actual_arr, predicted_arr = _finite_pairs(actual, predicted)
    if actual_arr.size == 0:
        return np.nan
    return float(mean_absolute_error(actual_arr, predicted_arr))


def mase(
    actual: pd.Series | np.ndarray,
    predicted: pd.Series | np.ndarray,
    insample: pd.Series | np.ndarray,
    season_length: int,
) -> float:
    insample_arr = np.asarray(insample, dtype=float)
    if season_length < 1:
        season_length = 1
    if insample_arr.size <= season_length:
        return np.nan
    denom = np.mean(np.abs(insample_arr[season_length:] - insample_arr[:-season_length]))
    if denom == 0:
        return np.nan
    actual_arr, predicted_arr = _finite_pairs(actual, predicted)
    if actual_arr.size == 0:
        return np.nan
    return float(mean_absolute_error(actual_arr, predicted_arr) / denom)


def accuracy(
    actual: pd.Series | np.ndarray,
    predicted: pd.Series | np.ndarray,
    insample: Optional[pd.Series | np.ndarray] = None,
    season_length: int = 1,
) -> Dict[str, float]:
    """Test-set accuracy measures in the layout of R's ``forecast::accuracy``.

    Errors are ``actual - predicted``. Percentage measures are NaN when any
    actual value is zero, MASE is NaN without in-sample data.
    """
    actual_arr, predicted_arr = _finite_pairs(actual, predicted)
    if actual_arr.size == 0:
        return {column: np.nan for column in ACCURACY_COLUMNS}

    errors = actual_arr - predicted_arr
    if np.any(actual_arr == 0):
        mpe = mape = np.nan
    else:
        percentage = 100.0 * errors / actual_arr
        mpe = float(np.mean(percentage))
        mape = float(np.mean(np.abs(percentage)))

    if errors.size > 1 and np.std(errors) > 0:
        acf1 = float(acf(errors, nlags=1, fft=False)[1])
    else:
        acf1 = np.nan

    return {
        "ME": float(np.mean(errors)),
        "RMSE": rmse(actual_arr, predicted_arr),
        "MAE": mae(actual_arr, predicted_arr),
        "MPE": mpe,
        "MAPE": mape,
        "MASE": mase(actual_arr, predicted_arr, insample, season_length) if insample is not None else np.nan,
        "ACF1": acf1,
    }
