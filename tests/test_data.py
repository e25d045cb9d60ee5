import numpy as np
import pandas as pd
import pytest

from coffee_forecast.data import (
    ensure_monthly_frequency,
    expanding_window_splits,
    load_price_series,
    train_test_split,
)


def test_load_price_series_reads_fred_style_csv(tmp_path):
    csv_path = tmp_path / "PCOFFOTMUSDM.csv"
    csv_path.write_text(
        "DATE,PCOFFOTMUSDM\n"
        "2020-01-01,120.5\n"
        "2020-02-01,.\n"
        "2020-03-01,118.0\n"
        "2020-04-01,121.0\n"
    )

    series = load_price_series(csv_path)

    assert series.name == "price"
    assert series.index.freqstr == "MS"
    assert len(series) == 4
    # the unparseable February value is filled from its neighbours
    assert series.loc["2020-02-01"] == pytest.approx((120.5 + 118.0) / 2)


def test_load_price_series_sorts_and_uses_named_columns(tmp_path):
    csv_path = tmp_path / "coffee.csv"
    pd.DataFrame(
        {
            "note": ["x", "y", "z"],
            "month": ["2021-03-01", "2021-01-01", "2021-02-01"],
            "cents": [3.0, 1.0, 2.0],
        }
    ).to_csv(csv_path, index=False)

    series = load_price_series(csv_path, date_column="month", value_column="cents")

    assert list(series.to_numpy()) == [1.0, 2.0, 3.0]
    assert series.index.is_monotonic_increasing


def test_load_price_series_rejects_missing_column(tmp_path):
    csv_path = tmp_path / "coffee.csv"
    csv_path.write_text("date,price\n2020-01-01,1.0\n")

    with pytest.raises(ValueError, match="missing required columns"):
        load_price_series(csv_path, value_column="close")


def test_load_price_series_rejects_single_column(tmp_path):
    csv_path = tmp_path / "coffee.csv"
    csv_path.write_text("date\n2020-01-01\n")

    with pytest.raises(ValueError):
        load_price_series(csv_path)


def test_load_price_series_rejects_file_without_valid_rows(tmp_path):
    csv_path = tmp_path / "coffee.csv"
    csv_path.write_text("date,price\nnot-a-date,.\n")

    with pytest.raises(ValueError, match="No rows left"):
        load_price_series(csv_path)


def test_ensure_monthly_frequency_averages_and_interpolates():
    index = pd.to_datetime(["2020-01-05", "2020-01-20", "2020-03-10"])
    series = pd.Series([10.0, 20.0, 30.0], index=index, name="price")

    monthly = ensure_monthly_frequency(series)

    assert list(monthly.index) == list(pd.date_range("2020-01-01", periods=3, freq="MS"))
    assert monthly.iloc[0] == pytest.approx(15.0)
    assert monthly.iloc[1] == pytest.approx(22.5)
    assert monthly.iloc[2] == pytest.approx(30.0)
    assert not monthly.isna().any()


def test_train_test_split_keeps_order(seasonal_series):
    train, test = train_test_split(seasonal_series, 12)

    assert len(train) == len(seasonal_series) - 12
    assert len(test) == 12
    assert train.index[-1] < test.index[0]


@pytest.mark.parametrize("test_size", [0, 96, 200])
def test_train_test_split_rejects_bad_sizes(seasonal_series, test_size):
    with pytest.raises(ValueError):
        train_test_split(seasonal_series, test_size)


def test_expanding_window_splits_grow_training_set(linear_series):
    splits = list(expanding_window_splits(linear_series, min_train=20, horizon=5, step=5))

    assert [len(train) for train, _ in splits] == [20, 25, 30, 35]
    assert all(len(test) == 5 for _, test in splits)
    for train, test in splits:
        assert train.index[-1] + pd.DateOffset(months=1) == test.index[0]
        # training always starts at the first observation
        assert train.index[0] == linear_series.index[0]


def test_expanding_window_splits_step_one_covers_every_cutoff(linear_series):
    splits = list(expanding_window_splits(linear_series, min_train=30, horizon=3))

    assert len(splits) == 40 - 3 - 30 + 1
    assert len(splits[-1][0]) == 37


def test_expanding_window_splits_max_folds_keeps_latest(linear_series):
    splits = list(expanding_window_splits(linear_series, min_train=20, horizon=5, step=5, max_folds=2))

    assert [len(train) for train, _ in splits] == [30, 35]


def test_expanding_window_splits_rejects_short_series(linear_series):
    with pytest.raises(ValueError, match="too short"):
        list(expanding_window_splits(linear_series, min_train=38, horizon=5))


@pytest.mark.parametrize(
    "kwargs",
    [
        {"min_train": 0, "horizon": 5},
        {"min_train": 10, "horizon": 0},
        {"min_train": 10, "horizon": 5, "step": 0},
        {"min_train": 10, "horizon": 5, "max_folds": 0},
    ],
)
def test_expanding_window_splits_rejects_non_positive_arguments(linear_series, kwargs):
    with pytest.raises(ValueError):
        list(expanding_window_splits(linear_series, **kwargs))


def test_loaded_series_values_are_float(tmp_path):
    csv_path = tmp_path / "coffee.csv"
    csv_path.write_text("date,price\n2020-01-01,1\n2020-02-01,2\n")

    series = load_price_series(csv_path)

    assert series.dtype == np.float64
