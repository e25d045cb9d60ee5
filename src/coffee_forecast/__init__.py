"""Monthly coffee price forecasting with exponential smoothing and ARIMA models."""

from .backtest import BacktestConfig, BacktestResult, HoldoutResult, expanding_window_cv, holdout_evaluation
from .data import ensure_monthly_frequency, expanding_window_splits, load_price_series, train_test_split
from .metrics import accuracy, rmse
from .models import ModelSpec, default_model_specs
from .pipeline import ComparisonResult, ForecastConfig, build_forecast, compare_models

__all__ = [
    "BacktestConfig",
    "BacktestResult",
    "ComparisonResult",
    "ForecastConfig",
    "HoldoutResult",
    "ModelSpec",
    "accuracy",
    "build_forecast",
    "compare_models",
    "default_model_specs",
    "ensure_monthly_frequency",
    "expanding_window_cv",
    "expanding_window_splits",
    "holdout_evaluation",
    "load_price_series",
    "rmse",
    "train_test_split",
]

__version__ = "0.1.0"
