from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from .data import expanding_window_splits, train_test_split
from .metrics import ACCURACY_COLUMNS, accuracy, mae, mase, rmse
from .models import ModelSpec

logger = logging.getLogger(__name__)


@dataclass
class HoldoutResult:
    metrics: pd.DataFrame
    forecasts: pd.DataFrame
    best_model: Optional[str]


@dataclass
class BacktestConfig:
    horizon: int = 12
    min_train: int = 60
    step: int = 12
    max_folds: Optional[int] = None
    season_length: int = 12


@dataclass
class BacktestResult:
    metrics: pd.DataFrame
    summary: pd.DataFrame
    best_model: Optional[str]


RESERVED_NAMES = frozenset({"actual"})


def _check_model_names(specs: Sequence[ModelSpec]) -> None:
    names = [spec.name for spec in specs]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ValueError(f"Model names must be unique; duplicated: {duplicates}")
    reserved = sorted(RESERVED_NAMES.intersection(names))
    if reserved:
        raise ValueError(f"Model names {reserved} are reserved for evaluation columns.")


def _lowest(frame: pd.DataFrame, column: str) -> Optional[str]:
    valid = frame[frame[column].notna()]
    if valid.empty:
        return None
    return str(valid.sort_values(column).iloc[0]["model"])


def holdout_evaluation(
    series: pd.Series,
    specs: Sequence[ModelSpec],
    test_size: int,
    season_length: int = 12,
) -> HoldoutResult:
    _check_model_names(specs)
    train, test = train_test_split(series, test_size)
    forecasts = pd.DataFrame({"actual": test.to_numpy(dtype=float)}, index=test.index)
    records: List[dict] = []

    for spec in specs:
        try:
            predicted = spec.forecast(train, test_size)
            scores = accuracy(test, predicted, insample=train, season_length=season_length)
            records.append({"model": spec.name, **scores, "error": ""})
        except Exception as exc:  # noqa: BLE001
            logger.warning("Holdout fit failed for %s: %s", spec.name, exc)
            predicted = np.full(test_size, np.nan)
            records.append({"model": spec.name, **{c: np.nan for c in ACCURACY_COLUMNS}, "error": str(exc)})
        forecasts[spec.name] = predicted

    metrics = pd.DataFrame.from_records(records, columns=["model", *ACCURACY_COLUMNS, "error"])
    metrics = metrics.sort_values("RMSE", na_position="last").reset_index(drop=True)
    return HoldoutResult(metrics=metrics, forecasts=forecasts, best_model=_lowest(metrics, "RMSE"))


def expanding_window_cv(
    series: pd.Series,
    specs: Sequence[ModelSpec],
    config: BacktestConfig,
) -> BacktestResult:
    _check_model_names(specs)
    records: List[dict] = []
    splits = expanding_window_splits(
        series,
        min_train=config.min_train,
        horizon=config.horizon,
        step=config.step,
        max_folds=config.max_folds,
    )

    for fold, (train, test) in enumerate(splits):
        cutoff_date = train.index[-1]
        logger.info("Fold %d: training on %d months up to %s", fold, len(train), cutoff_date.date())
        actual = test.to_numpy(dtype=float)

        for spec in specs:
            record = {
                "model": spec.name,
                "fold": fold,
                "cutoff": cutoff_date,
                "train_size": len(train),
            }
            try:
                predicted = spec.forecast(train, config.horizon)
                record.update(
                    {
                        "rmse": rmse(actual, predicted),
                        "mae": mae(actual, predicted),
                        "mase": mase(actual, predicted, train, config.season_length),
                        "error": "",
                    }
                )
            except Exception as exc:  # noqa: BLE001
                logger.warning("Fold %d: %s failed: %s", fold, spec.name, exc)
                record.update({"rmse": np.nan, "mae": np.nan, "mase": np.nan, "error": str(exc)})
            records.append(record)

    metrics = pd.DataFrame.from_records(
        records,
        columns=["model", "fold", "cutoff", "train_size", "rmse", "mae", "mase", "error"],
    )
    summary = summarize_folds(metrics)
    return BacktestResult(metrics=metrics, summary=summary, best_model=_lowest(summary, "rmse"))


def summarize_folds(metrics: pd.DataFrame) -> pd.DataFrame:
    columns = ["model", "rmse", "mae", "mase", "folds"]
    valid = metrics[metrics["rmse"].notna()]
    if valid.empty:
        return pd.DataFrame(columns=columns)

    summary = valid.groupby("model").agg(
        rmse=("rmse", "mean"),
        mae=("mae", "mean"),
        mase=("mase", "mean"),
        folds=("fold", "size"),
    )
    return summary.reset_index().sort_values("rmse").reset_index(drop=True)[columns]
