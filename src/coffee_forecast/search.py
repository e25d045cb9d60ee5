from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import product
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .data import train_test_split
from .metrics import rmse
from .models import ArimaConfig, HoltConfig, fit_sarimax, forecast_with_arima, forecast_with_holt

logger = logging.getLogger(__name__)

DEFAULT_ALPHAS: Sequence[float] = tuple(np.round(np.arange(0.05, 1.0, 0.05), 2))
DEFAULT_BETAS: Sequence[float] = tuple(np.round(np.arange(0.01, 0.51, 0.05), 2))


@dataclass
class HoltGridConfig:
    alphas: Sequence[float] = DEFAULT_ALPHAS
    betas: Sequence[float] = DEFAULT_BETAS
    damped: bool = False
    validation_size: int = 12


@dataclass
class ArimaSearchConfig:
    p_values: Tuple[int, ...] = (0, 1, 2)
    d_values: Tuple[int, ...] = (0, 1)
    q_values: Tuple[int, ...] = (0, 1, 2)


def holt_grid_search(
    train: pd.Series,
    test: pd.Series,
    alphas: Optional[Iterable[float]] = None,
    betas: Optional[Iterable[float]] = None,
    damped: bool = False,
) -> pd.DataFrame:
    """Score Holt for every (alpha, beta) pair on a holdout window.

    Returns one row per pair sorted by RMSE; pairs whose fit failed carry a
    NaN RMSE and the error text, and sort last.
    """
    alphas = DEFAULT_ALPHAS if alphas is None else tuple(alphas)
    betas = DEFAULT_BETAS if betas is None else tuple(betas)
    horizon = len(test)
    records: List[dict] = []

    for alpha, beta in product(alphas, betas):
        config = HoltConfig(smoothing_level=float(alpha), smoothing_trend=float(beta), damped=damped)
        try:
            predicted = forecast_with_holt(train, horizon, config)
            records.append({"alpha": float(alpha), "beta": float(beta), "rmse": rmse(test, predicted), "error": ""})
        except Exception as exc:  # noqa: BLE001
            logger.debug("Holt alpha=%s beta=%s failed: %s", alpha, beta, exc)
            records.append({"alpha": float(alpha), "beta": float(beta), "rmse": np.nan, "error": str(exc)})

    grid = pd.DataFrame.from_records(records, columns=["alpha", "beta", "rmse", "error"])
    grid = grid.sort_values("rmse", na_position="last").reset_index(drop=True)
    grid.attrs["damped"] = damped
    return grid


def best_holt_config(grid: pd.DataFrame) -> HoltConfig:
    valid = grid[grid["rmse"].notna()]
    if valid.empty:
        raise ValueError("Every Holt fit in the grid failed; no smoothing parameters to choose from.")
    best_row = valid.sort_values("rmse").iloc[0]
    logger.info(
        "Best Holt smoothing: alpha=%.2f beta=%.2f rmse=%.4f",
        best_row["alpha"],
        best_row["beta"],
        best_row["rmse"],
    )
    return HoltConfig(
        smoothing_level=float(best_row["alpha"]),
        smoothing_trend=float(best_row["beta"]),
        damped=bool(grid.attrs.get("damped", False)),
    )


def rank_arima_orders(
    series: pd.Series,
    p_values: Iterable[int] = range(0, 3),
    d_values: Iterable[int] = range(0, 2),
    q_values: Iterable[int] = range(0, 3),
    seasonal_order: Tuple[int, int, int, int] = (0, 0, 0, 0),
) -> pd.DataFrame:
    """Fit every (p, d, q) order and rank the fits by AIC."""
    records: List[dict] = []
    series = series.astype(float)

    for order in product(p_values, d_values, q_values):
        if order == (0, 0, 0) and seasonal_order == (0, 0, 0, 0):
            continue
        try:
            fitted = fit_sarimax(series, order, seasonal_order)
        except (ValueError, np.linalg.LinAlgError) as exc:
            logger.debug("ARIMA%s failed to fit: %s", order, exc)
            continue
        if not np.isfinite(fitted.aic):
            continue
        records.append({"order": tuple(int(o) for o in order), "aic": float(fitted.aic), "bic": float(fitted.bic)})

    ranking = pd.DataFrame.from_records(records, columns=["order", "aic", "bic"])
    return ranking.sort_values("aic").reset_index(drop=True)


def tune_holt(train: pd.Series, config: Optional[HoltGridConfig] = None) -> Tuple[HoltConfig, pd.DataFrame]:
    """Pick Holt smoothing parameters using only ``train``.

    The last ``validation_size`` points of ``train`` score the grid, so the
    chosen parameters never depend on anything after the training cutoff.
    """
    if config is None:
        config = HoltGridConfig()
    fit_train, validation = train_test_split(train, config.validation_size)
    grid = holt_grid_search(fit_train, validation, config.alphas, config.betas, config.damped)
    return best_holt_config(grid), grid


def forecast_with_tuned_holt(
    train: pd.Series, horizon: int, config: Optional[HoltGridConfig] = None
) -> np.ndarray:
    holt_config, _ = tune_holt(train, config)
    return forecast_with_holt(train, horizon, holt_config)


def forecast_with_best_aic_arima(
    train: pd.Series, horizon: int, config: Optional[ArimaSearchConfig] = None
) -> np.ndarray:
    if config is None:
        config = ArimaSearchConfig()
    ranking = rank_arima_orders(train, config.p_values, config.d_values, config.q_values)
    if ranking.empty:
        raise ValueError("No ARIMA order could be fitted to the training data.")
    best_order = tuple(ranking.iloc[0]["order"])
    logger.debug("Lowest-AIC ARIMA order for %d months: %s", len(train), best_order)
    return forecast_with_arima(train, horizon, ArimaConfig(order=best_order))
