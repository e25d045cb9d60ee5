import logging

import numpy as np
import pytest

from coffee_forecast.backtest import BacktestConfig, expanding_window_cv, holdout_evaluation, summarize_folds
from coffee_forecast.models import ModelSpec

from conftest import drift_forecaster, failing_forecaster, naive_forecaster


@pytest.fixture
def stub_specs():
    return [
        ModelSpec("naive", naive_forecaster),
        ModelSpec("drift", drift_forecaster),
        ModelSpec("broken", failing_forecaster),
    ]


def test_holdout_evaluation_ranks_models(linear_series, stub_specs):
    result = holdout_evaluation(linear_series, stub_specs, test_size=6, season_length=1)

    assert list(result.metrics["model"]) == ["drift", "naive", "broken"]
    assert result.best_model == "drift"
    assert result.metrics.loc[0, "RMSE"] == pytest.approx(0.0)
    # naive misses a unit trend by 1..6
    naive_rmse = np.sqrt(np.mean(np.arange(1, 7) ** 2))
    assert result.metrics.loc[1, "RMSE"] == pytest.approx(naive_rmse)


def test_holdout_evaluation_records_failures(linear_series, stub_specs, caplog):
    with caplog.at_level(logging.WARNING, logger="coffee_forecast.backtest"):
        result = holdout_evaluation(linear_series, stub_specs, test_size=6)

    broken = result.metrics.set_index("model").loc["broken"]
    assert broken["error"] == "model blew up"
    assert np.isnan(broken["RMSE"])
    assert np.isnan(result.forecasts["broken"]).all()
    assert "broken" in caplog.text


def test_holdout_forecasts_align_with_test_window(linear_series, stub_specs):
    result = holdout_evaluation(linear_series, stub_specs, test_size=6)

    assert list(result.forecasts.columns) == ["actual", "naive", "drift", "broken"]
    assert result.forecasts.index.equals(linear_series.index[-6:])
    assert np.allclose(result.forecasts["actual"], linear_series.iloc[-6:])


def test_holdout_without_any_success_has_no_winner(linear_series):
    result = holdout_evaluation(linear_series, [ModelSpec("broken", failing_forecaster)], test_size=3)

    assert result.best_model is None


def test_expanding_window_cv_scores_every_fold(linear_series, stub_specs):
    config = BacktestConfig(horizon=5, min_train=20, step=5, season_length=1)

    result = expanding_window_cv(linear_series, stub_specs, config)

    assert len(result.metrics) == 4 * len(stub_specs)
    naive_rows = result.metrics[result.metrics["model"] == "naive"]
    assert list(naive_rows["fold"]) == [0, 1, 2, 3]
    assert list(naive_rows["train_size"]) == [20, 25, 30, 35]
    assert naive_rows["rmse"].notna().all()
    assert result.best_model == "drift"


def test_expanding_window_cv_summary_skips_failed_model(linear_series, stub_specs):
    config = BacktestConfig(horizon=5, min_train=20, step=5, season_length=1)

    result = expanding_window_cv(linear_series, stub_specs, config)

    assert list(result.summary["model"]) == ["drift", "naive"]
    assert list(result.summary["folds"]) == [4, 4]
    broken = result.metrics[result.metrics["model"] == "broken"]
    assert (broken["error"] == "model blew up").all()
    assert broken["rmse"].isna().all()


def test_expanding_window_cv_respects_max_folds(linear_series, stub_specs):
    config = BacktestConfig(horizon=5, min_train=20, step=5, max_folds=1)

    result = expanding_window_cv(linear_series, stub_specs[:1], config)

    assert list(result.metrics["train_size"]) == [35]


def test_summarize_folds_handles_all_failures(linear_series):
    config = BacktestConfig(horizon=5, min_train=30, step=5)
    result = expanding_window_cv(linear_series, [ModelSpec("broken", failing_forecaster)], config)

    assert result.summary.empty
    assert result.best_model is None
    assert list(summarize_folds(result.metrics).columns) == ["model", "rmse", "mae", "mase", "folds"]


def test_expanding_window_cv_scores_partial_forecasts(linear_series):
    def gappy_naive(train, horizon, config=None):
        predicted = naive_forecaster(train, horizon)
        predicted[-1] = np.nan
        return predicted

    config = BacktestConfig(horizon=5, min_train=20, step=5, season_length=1)

    result = expanding_window_cv(linear_series, [ModelSpec("gappy", gappy_naive)], config)

    # naive misses a unit trend by 1..4 once the last step is dropped
    first = result.metrics.iloc[0]
    assert first["mae"] == pytest.approx(2.5)
    assert first["rmse"] == pytest.approx(np.sqrt(7.5))
    assert first["mase"] == pytest.approx(2.5)
    assert result.summary.loc[0, "mae"] == pytest.approx(2.5)


@pytest.mark.parametrize(
    "names, message",
    [
        (["naive", "naive"], "unique"),
        (["naive", "actual"], "reserved"),
    ],
)
def test_model_names_must_be_distinct_columns(linear_series, names, message):
    specs = [ModelSpec(name, naive_forecaster) for name in names]
    config = BacktestConfig(horizon=5, min_train=20, step=5)

    with pytest.raises(ValueError, match=message):
        holdout_evaluation(linear_series, specs, test_size=6)
    with pytest.raises(ValueError, match=message):
        expanding_window_cv(linear_series, specs, config)
