from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

import numpy as np
import pandas as pd
from dateutil.relativedelta import relativedelta
from statsmodels.tools.sm_exceptions import ConvergenceWarning
from statsmodels.tsa.holtwinters import ExponentialSmoothing, Holt
from statsmodels.tsa.statespace.sarimax import SARIMAX

logger = logging.getLogger(__name__)


@dataclass
class HoltConfig:
    smoothing_level: Optional[float] = None
    smoothing_trend: Optional[float] = None
    damped: bool = False
    exponential: bool = False


@dataclass
class HoltWintersConfig:
    seasonal: str = "add"
    trend: Optional[str] = "add"
    seasonal_periods: int = 12
    damped: bool = False


@dataclass
class ArimaConfig:
    order: Tuple[int, int, int] = (1, 1, 1)
    seasonal_order: Tuple[int, int, int, int] = (0, 0, 0, 0)
    trend: Optional[str] = None


@dataclass
class AutoArimaConfig:
    seasonal: bool = True
    m: int = 12
    max_p: int = 5
    max_q: int = 5
    max_d: int = 2
    stepwise: bool = True
    n_jobs: int = 1
    information_criterion: str = "aic"


def _check_horizon(horizon: int) -> None:
    if horizon < 1:
        raise ValueError(f"horizon must be at least 1, got {horizon}.")


def _as_float_series(train: pd.Series) -> pd.Series:
    series = train.astype(float)
    if series.isna().any():
        raise ValueError("Training series contains missing values.")
    return series


def forecast_index(last_date: pd.Timestamp, horizon: int) -> pd.DatetimeIndex:
    dates = [pd.Timestamp(last_date) + relativedelta(months=step + 1) for step in range(horizon)]
    return pd.DatetimeIndex(dates, freq="MS", name="ds")


def forecast_with_holt(train: pd.Series, horizon: int, config: Optional[HoltConfig] = None) -> np.ndarray:
    _check_horizon(horizon)
    if config is None:
        config = HoltConfig()
    series = _as_float_series(train)

    fit_kwargs = {"optimized": True}
    if config.smoothing_level is not None:
        fit_kwargs["smoothing_level"] = config.smoothing_level
    if config.smoothing_trend is not None:
        fit_kwargs["smoothing_trend"] = config.smoothing_trend

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        model = Holt(
            series,
            exponential=config.exponential,
            damped_trend=config.damped,
            initialization_method="estimated",
        )
        fitted = model.fit(**fit_kwargs)
    logger.debug(
        "Holt fit alpha=%.3f beta=%.3f",
        fitted.params["smoothing_level"],
        fitted.params["smoothing_trend"],
    )
    return np.asarray(fitted.forecast(horizon), dtype=float)


def forecast_with_holt_winters(
    train: pd.Series, horizon: int, config: Optional[HoltWintersConfig] = None
) -> np.ndarray:
    _check_horizon(horizon)
    if config is None:
        config = HoltWintersConfig()
    series = _as_float_series(train)
    if config.seasonal == "mul" and (series <= 0).any():
        raise ValueError("Multiplicative seasonality requires a strictly positive series.")
    if len(series) < 2 * config.seasonal_periods:
        raise ValueError(
            f"Holt-Winters needs at least two seasonal cycles ({2 * config.seasonal_periods} points), "
            f"got {len(series)}."
        )

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        model = ExponentialSmoothing(
            series,
            trend=config.trend,
            damped_trend=config.damped if config.trend else False,
            seasonal=config.seasonal,
            seasonal_periods=config.seasonal_periods,
            initialization_method="estimated",
        )
        fitted = model.fit(optimized=True)
    return np.asarray(fitted.forecast(horizon), dtype=float)


def fit_sarimax(series: pd.Series, order: Tuple[int, int, int], seasonal_order=(0, 0, 0, 0), trend=None):
    model = SARIMAX(
        series,
        order=order,
        seasonal_order=seasonal_order,
        trend=trend,
        enforce_stationarity=False,
        enforce_invertibility=False,
        initialization="approximate_diffuse",
    )
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        return model.fit(disp=False)


def forecast_with_arima(train: pd.Series, horizon: int, config: Optional[ArimaConfig] = None) -> np.ndarray:
    _check_horizon(horizon)
    if config is None:
        config = ArimaConfig()
    series = _as_float_series(train)
    fitted = fit_sarimax(series, config.order, config.seasonal_order, config.trend)
    logger.debug("ARIMA%s%s aic=%.2f", config.order, config.seasonal_order, fitted.aic)
    forecast = fitted.get_forecast(steps=horizon)
    return np.asarray(forecast.predicted_mean, dtype=float)


def forecast_with_auto_arima(
    train: pd.Series, horizon: int, config: Optional[AutoArimaConfig] = None
) -> np.ndarray:
    # pmdarima is slow to import; load it on first use.
    import pmdarima as pm

    _check_horizon(horizon)
    if config is None:
        config = AutoArimaConfig()
    series = _as_float_series(train)

    model = pm.auto_arima(
        series.to_numpy(),
        seasonal=config.seasonal,
        m=config.m if config.seasonal else 1,
        max_p=config.max_p,
        max_q=config.max_q,
        max_d=config.max_d,
        stepwise=config.stepwise,
        n_jobs=config.n_jobs,
        information_criterion=config.information_criterion,
        error_action="ignore",
        suppress_warnings=True,
    )
    logger.debug("auto_arima selected order=%s seasonal_order=%s", model.order, model.seasonal_order)
    return np.asarray(model.predict(n_periods=horizon), dtype=float)


@dataclass
class ModelSpec:
    name: str
    forecaster: Callable[[pd.Series, int, Any], np.ndarray]
    config: Any = None

    def forecast(self, train: pd.Series, horizon: int) -> np.ndarray:
        predictions = self.forecaster(train, horizon, self.config)
        if len(predictions) != horizon:
            raise ValueError(f"{self.name} returned {len(predictions)} values for horizon {horizon}.")
        return predictions


def default_model_specs(season_length: int = 12, n_jobs: int = 1) -> List[ModelSpec]:
    """Candidate models compared by the analysis.

    Holt-Winters variants are only included for a seasonal period above one.
    """
    specs = [
        ModelSpec("holt", forecast_with_holt, HoltConfig()),
        ModelSpec("holt_damped", forecast_with_holt, HoltConfig(damped=True)),
    ]
    if season_length > 1:
        specs.extend(
            [
                ModelSpec(
                    "hw_additive",
                    forecast_with_holt_winters,
                    HoltWintersConfig("add", seasonal_periods=season_length),
                ),
                ModelSpec(
                    "hw_multiplicative",
                    forecast_with_holt_winters,
                    HoltWintersConfig("mul", seasonal_periods=season_length),
                ),
            ]
        )
    specs.extend(
        [
            ModelSpec("arima_110", forecast_with_arima, ArimaConfig(order=(1, 1, 0))),
            ModelSpec("arima_011", forecast_with_arima, ArimaConfig(order=(0, 1, 1))),
            ModelSpec("arima_111", forecast_with_arima, ArimaConfig(order=(1, 1, 1))),
            ModelSpec("arima_212", forecast_with_arima, ArimaConfig(order=(2, 1, 2))),
            ModelSpec(
                "auto_arima",
                forecast_with_auto_arima,
                AutoArimaConfig(
                    m=season_length,
                    seasonal=season_length > 1,
                    n_jobs=n_jobs,
                    stepwise=n_jobs == 1,
                ),
            ),
        ]
    )
    return specs
