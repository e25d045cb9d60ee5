from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from .backtest import BacktestConfig, BacktestResult, HoldoutResult, expanding_window_cv, holdout_evaluation
from .data import train_test_split
from .models import ModelSpec, default_model_specs, forecast_index
from .search import (
    ArimaSearchConfig,
    HoltGridConfig,
    forecast_with_best_aic_arima,
    forecast_with_tuned_holt,
    rank_arima_orders,
    tune_holt,
)

logger = logging.getLogger(__name__)


@dataclass
class ForecastConfig:
    horizon: int = 12
    test_size: int = 12
    season_length: int = 12
    backtest: BacktestConfig = field(default_factory=BacktestConfig)
    n_jobs: int = 1
    run_cv: bool = True
    holt_search: bool = True
    holt_grid: HoltGridConfig = field(default_factory=HoltGridConfig)
    arima_search: ArimaSearchConfig = field(default_factory=ArimaSearchConfig)


@dataclass
class ComparisonResult:
    holdout: HoldoutResult
    backtest: Optional[BacktestResult]
    holt_grid: Optional[pd.DataFrame]
    arima_ranking: pd.DataFrame
    best_model: Optional[str]
    specs: List[ModelSpec] = field(default_factory=list)


def compare_models(
    series: pd.Series,
    config: ForecastConfig,
    specs: Optional[Sequence[ModelSpec]] = None,
) -> ComparisonResult:
    """Run the full model comparison on one price series.

    ``holt_tuned`` re-runs the smoothing grid inside every fit, scored on the
    tail of that fit's own training data. ``arima_aic`` likewise re-ranks
    ARIMA orders by AIC on each training window. The grid and ranking kept on
    the result are the ones computed on the holdout training prefix.
    """
    specs = list(specs) if specs is not None else default_model_specs(config.season_length, config.n_jobs)
    train, _ = train_test_split(series, config.test_size)

    holt_grid = None
    if config.holt_search:
        try:
            _, holt_grid = tune_holt(train, config.holt_grid)
            specs.append(ModelSpec("holt_tuned", forecast_with_tuned_holt, config.holt_grid))
        except ValueError as exc:
            logger.warning("Skipping tuned Holt model: %s", exc)

    search = config.arima_search
    arima_ranking = rank_arima_orders(train, search.p_values, search.d_values, search.q_values)
    if arima_ranking.empty:
        logger.warning("Skipping lowest-AIC ARIMA model: no order could be fitted")
    else:
        logger.info("Lowest-AIC ARIMA order on training data: %s", tuple(arima_ranking.iloc[0]["order"]))
        specs.append(ModelSpec("arima_aic", forecast_with_best_aic_arima, search))

    holdout = holdout_evaluation(series, specs, config.test_size, config.season_length)
    logger.info("Holdout winner: %s", holdout.best_model)

    backtest = None
    best_model = holdout.best_model
    if config.run_cv:
        backtest = expanding_window_cv(series, specs, config.backtest)
        logger.info("Cross-validation winner: %s", backtest.best_model)
        if backtest.best_model is not None:
            best_model = backtest.best_model

    return ComparisonResult(
        holdout=holdout,
        backtest=backtest,
        holt_grid=holt_grid,
        arima_ranking=arima_ranking,
        best_model=best_model,
        specs=specs,
    )


def build_forecast(
    series: pd.Series,
    specs: Sequence[ModelSpec],
    horizon: int,
    selected_model: Optional[str] = None,
) -> pd.DataFrame:
    future_index = forecast_index(series.index[-1], horizon)
    forecasts = pd.DataFrame(index=future_index)

    for spec in specs:
        try:
            forecasts[spec.name] = spec.forecast(series, horizon)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Final fit failed for %s: %s", spec.name, exc)
            forecasts[spec.name] = np.full(horizon, np.nan)

    usable = [name for name in forecasts.columns if np.isfinite(forecasts[name]).all()]
    if selected_model not in usable:
        if selected_model is not None:
            logger.warning("Selected model %s produced no usable forecast", selected_model)
        selected_model = usable[0] if usable else None

    forecasts["selected_model"] = selected_model
    if selected_model is None:
        forecasts["selected_forecast"] = np.nan
    else:
        forecasts["selected_forecast"] = forecasts[selected_model]
    return forecasts
