import logging
from pathlib import Path
from typing import Iterable

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.backends.backend_pdf import PdfPages
from matplotlib.figure import Figure

logger = logging.getLogger(__name__)


def plot_series(series: pd.Series, title: str = "Monthly coffee price") -> Figure:
    fig, ax = plt.subplots(figsize=(10, 6))
    ax.plot(series.index, series.to_numpy(), color="saddlebrown", label="Price")

    # Linear trendline over the whole history
    x_dates = np.asarray([ts.toordinal() for ts in series.index], dtype=float)
    z = np.polyfit(x_dates, series.to_numpy(dtype=float), 1)
    ax.plot(series.index, np.poly1d(z)(x_dates), linestyle="--", color="red", label="Trendline")

    ax.set_title(title)
    ax.set_xlabel("Date")
    ax.set_ylabel("Price (US cents/lb)")
    ax.legend()
    ax.grid(True)
    fig.tight_layout()
    return fig


def plot_holdout(train: pd.Series, forecasts: pd.DataFrame, title: str = "Holdout forecasts") -> Figure:
    """Training history, held-out actuals and every model's test forecast."""
    fig, ax = plt.subplots(figsize=(10, 6))
    ax.plot(train.index, train.to_numpy(), color="black", label="Train")
    ax.plot(forecasts.index, forecasts["actual"].to_numpy(), color="black", marker="o", label="Actual")
    for column in forecasts.columns:
        if column == "actual":
            continue
        ax.plot(forecasts.index, forecasts[column].to_numpy(), linestyle="--", label=column)
    ax.set_title(title)
    ax.set_xlabel("Date")
    ax.set_ylabel("Price")
    ax.legend(fontsize="small", ncol=2)
    ax.grid(True)
    fig.tight_layout()
    return fig


def plot_cv_errors(metrics: pd.DataFrame, title: str = "Expanding-window RMSE by fold") -> Figure:
    fig, ax = plt.subplots(figsize=(10, 6))
    valid = metrics[metrics["rmse"].notna()]
    for model, group in valid.groupby("model"):
        ax.plot(group["cutoff"], group["rmse"], marker="o", label=model)
    ax.set_title(title)
    ax.set_xlabel("Training cutoff")
    ax.set_ylabel("RMSE")
    if not valid.empty:
        ax.legend(fontsize="small", ncol=2)
    ax.grid(True)
    fig.tight_layout()
    return fig


def plot_forecast(series: pd.Series, forecast: pd.DataFrame, history: int = 60) -> Figure:
    fig, ax = plt.subplots(figsize=(10, 6))
    recent = series.iloc[-history:]
    ax.plot(recent.index, recent.to_numpy(), color="black", label="History")
    selected = forecast["selected_model"].iloc[0] if not forecast.empty else None
    ax.plot(
        forecast.index,
        forecast["selected_forecast"].to_numpy(dtype=float),
        color="tab:blue",
        marker="o",
        label=f"Forecast ({selected})",
    )
    ax.set_title("Price forecast")
    ax.set_xlabel("Date")
    ax.set_ylabel("Price")
    ax.legend()
    ax.grid(True)
    fig.tight_layout()
    return fig


def write_report(report_path: Path, figures: Iterable[Figure]) -> Path:
    report_path = Path(report_path)
    report_path.parent.mkdir(parents=True, exist_ok=True)
    pages = 0
    with PdfPages(report_path) as pdf:
        for fig in figures:
            pdf.savefig(fig)
            plt.close(fig)
            pages += 1
    logger.info("Wrote %d-page report to %s", pages, report_path)
    return report_path
