from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from .backtest import BacktestConfig
from .data import load_price_series, train_test_split
from .pipeline import ComparisonResult, ForecastConfig, build_forecast, compare_models
from .plotting import plot_cv_errors, plot_forecast, plot_holdout, plot_series, write_report
from .search import HoltGridConfig

logger = logging.getLogger(__name__)


def _float_format(x: float) -> str:
    return f"{x:.4f}"


def summarize_comparison(result: ComparisonResult) -> str:
    lines: list[str] = []

    holdout = result.holdout.metrics
    valid = holdout[holdout["RMSE"].notna()]
    if valid.empty:
        lines.append("Holdout metrics contain only NaN values; inspect error column.")
    else:
        lines.append("Holdout accuracy (lower is better):")
        table = valid.drop(columns=["error"]).set_index("model")
        lines.append(table.to_string(float_format=_float_format))

    if result.arima_ranking is not None and not result.arima_ranking.empty:
        lines.append("\nARIMA orders ranked by AIC (top 5):")
        lines.append(result.arima_ranking.head(5).to_string(index=False, float_format=_float_format))

    if result.backtest is not None:
        summary = result.backtest.summary
        if summary.empty:
            lines.append("\nNo cross-validation fold produced a score.")
        else:
            lines.append("\nExpanding-window cross-validation (mean over folds):")
            lines.append(summary.to_string(index=False, float_format=_float_format))

    failures = holdout[holdout["error"].str.len().gt(0)]
    if result.backtest is not None:
        cv_failures = result.backtest.metrics[result.backtest.metrics["error"].str.len().gt(0)]
    else:
        cv_failures = pd.DataFrame()
    if not failures.empty or not cv_failures.empty:
        lines.append("\nWarnings:")
        for _, row in failures.iterrows():
            lines.append(f"- holdout: {row['model']} -> {row['error']}")
        for _, row in cv_failures.iterrows():
            lines.append(f"- fold {row['fold']} @ {row['cutoff'].date()}: {row['model']} -> {row['error']}")

    lines.append(f"\nBest model by RMSE: {result.best_model or 'none'}")
    return "\n".join(lines)


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Monthly coffee price forecasting with Holt, Holt-Winters, ARIMA and auto-ARIMA.",
    )
    parser.add_argument(
        "--price-path",
        type=Path,
        required=True,
        help="Path to the price CSV (first column date, second column price unless overridden).",
    )
    parser.add_argument("--date-column", type=str, help="Name of the date column (default: first column).")
    parser.add_argument("--value-column", type=str, help="Name of the price column (default: second column).")
    parser.add_argument(
        "--test-size",
        type=int,
        default=12,
        help="Number of trailing months held out for the holdout comparison (default: 12).",
    )
    parser.add_argument(
        "--horizon",
        type=int,
        default=12,
        help="Months per cross-validation test window and for the final forecast (default: 12).",
    )
    parser.add_argument(
        "--min-train",
        type=int,
        default=60,
        help="Minimum history (months) in the first cross-validation fold (default: 60).",
    )
    parser.add_argument(
        "--step",
        type=int,
        default=12,
        help="Months the cross-validation cutoff advances between folds (default: 12).",
    )
    parser.add_argument("--max-folds", type=int, help="Keep only the most recent N folds (optional).")
    parser.add_argument(
        "--season-length",
        type=int,
        default=12,
        help="Season length in months for Holt-Winters, auto-ARIMA and MASE (default: 12).",
    )
    parser.add_argument("--no-cv", action="store_true", help="Skip expanding-window cross-validation.")
    parser.add_argument("--no-holt-search", action="store_true", help="Skip the Holt smoothing grid search.")
    parser.add_argument(
        "--n-jobs",
        type=int,
        default=1,
        help="Parallel jobs for the auto-ARIMA order search; above 1 switches to a full grid (default: 1).",
    )
    parser.add_argument("--metrics-output", type=Path, help="Optional path to write holdout metrics as CSV.")
    parser.add_argument("--cv-output", type=Path, help="Optional path to write fold-level CV metrics as CSV.")
    parser.add_argument("--forecast-output", type=Path, help="Optional path to write future forecasts as CSV.")
    parser.add_argument("--report", type=Path, help="Optional path to write a PDF of plots.")
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO).",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> ForecastConfig:
    return ForecastConfig(
        horizon=args.horizon,
        test_size=args.test_size,
        season_length=args.season_length,
        backtest=BacktestConfig(
            horizon=args.horizon,
            min_train=args.min_train,
            step=args.step,
            max_folds=args.max_folds,
            season_length=args.season_length,
        ),
        n_jobs=args.n_jobs,
        run_cv=not args.no_cv,
        holt_search=not args.no_holt_search,
        holt_grid=HoltGridConfig(validation_size=args.test_size),
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_argument_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    series = load_price_series(args.price_path, args.date_column, args.value_column)
    logger.info("Loaded %d months from %s to %s", len(series), series.index[0].date(), series.index[-1].date())

    config = config_from_args(args)
    result = compare_models(series, config)
    print(summarize_comparison(result))

    forecast_df = build_forecast(series, result.specs, config.horizon, result.best_model)
    if forecast_df["selected_forecast"].isna().all():
        print("\nNo forecasts generated. Every model failed on the full series.")
    else:
        print("\nGenerated forecasts:")
        print(forecast_df[["selected_model", "selected_forecast"]].to_string(float_format=lambda x: f"{x:.2f}"))

    if args.metrics_output:
        result.holdout.metrics.to_csv(args.metrics_output, index=False)
        print(f"\nSaved holdout metrics to {args.metrics_output}")

    if args.cv_output and result.backtest is not None:
        result.backtest.metrics.to_csv(args.cv_output, index=False)
        print(f"Saved cross-validation metrics to {args.cv_output}")

    if args.forecast_output:
        forecast_df.to_csv(args.forecast_output, index_label="ds")
        print(f"Saved forecasts to {args.forecast_output}")

    if args.report:
        train, _ = train_test_split(series, config.test_size)
        figures = [plot_series(series), plot_holdout(train, result.holdout.forecasts)]
        if result.backtest is not None:
            figures.append(plot_cv_errors(result.backtest.metrics))
        figures.append(plot_forecast(series, forecast_df))
        write_report(args.report, figures)
        print(f"Saved report to {args.report}")


if __name__ == "__main__":
    main()
