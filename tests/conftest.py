import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest


def make_monthly_series(
    n_periods: int = 96,
    level: float = 120.0,
    trend: float = 0.5,
    amplitude: float = 10.0,
    noise: float = 1.0,
    seed: int = 0,
) -> pd.Series:
    rng = np.random.default_rng(seed)
    dates = pd.date_range("2015-01-01", periods=n_periods, freq="MS", name="ds")
    t = np.arange(n_periods)
    seasonal = amplitude * np.sin(2 * np.pi * t / 12)
    values = level + trend * t + seasonal + rng.normal(0, noise, size=n_periods)
    return pd.Series(values, index=dates, name="price")


def naive_forecaster(train, horizon, config=None):
    return np.full(horizon, float(train.iloc[-1]))


def drift_forecaster(train, horizon, config=None):
    values = train.to_numpy(dtype=float)
    slope = (values[-1] - values[0]) / (len(values) - 1)
    return values[-1] + slope * np.arange(1, horizon + 1)


def failing_forecaster(train, horizon, config=None):
    raise ValueError("model blew up")


@pytest.fixture
def seasonal_series() -> pd.Series:
    return make_monthly_series()


@pytest.fixture
def linear_series() -> pd.Series:
    dates = pd.date_range("2018-01-01", periods=40, freq="MS", name="ds")
    return pd.Series(100.0 + np.arange(40, dtype=float), index=dates, name="price")
