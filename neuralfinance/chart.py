"""Candlestick chart of the dataset's recent window.

The figure is saved to disk so that it can be opened later without
blocking the CLI or tests.
"""

from __future__ import annotations

from pathlib import Path

import matplotlib.dates as mdates
import matplotlib.pyplot as plt
import pandas as pd

from neuralfinance.dataset import Dataset

UP_COLOR = "#06982d"
DOWN_COLOR = "#dc3912"


def window_frame(dataset: Dataset, size: int | None = None) -> pd.DataFrame:
    """Recent-window rows as a Time/Open/High/Low/Close frame."""
    window = dataset.recent_window() if size is None else dataset.recent_window(size)
    return dataset.to_frame(window)


def draw_candlesticks(frame: pd.DataFrame, out_path: str | Path, *, title: str | None = None) -> Path:
    """Draw one candle per row and save the figure to ``out_path``."""

    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    fig, ax = plt.subplots(figsize=(10, 5))

    if len(frame) > 0:
        x = mdates.date2num([t.to_pydatetime() for t in pd.to_datetime(frame["Time"])])
        # Candle width follows the smallest spacing between points (in days).
        gaps = [b - a for a, b in zip(x[:-1], x[1:]) if b > a]
        width = 0.6 * float(min(gaps)) if gaps else 0.6

        for xi, o, h, lo, c in zip(x, frame["Open"], frame["High"], frame["Low"], frame["Close"]):
            color = UP_COLOR if o < c else DOWN_COLOR
            ax.vlines(xi, lo, h, color=color, linewidth=1)
            ax.bar(xi, abs(c - o) or 1e-9, width=width, bottom=min(o, c), color=color, align="center")

        ax.xaxis_date()

    ax.set_ylabel("Price")
    if title:
        ax.set_title(title)
    ax.grid(True, alpha=0.3)

    fig.autofmt_xdate()
    plt.tight_layout()
    fig.savefig(out, dpi=120)
    plt.close(fig)
    return out


class ChartSink:
    """Writes the recent window of each loaded dataset to a PNG file."""

    def __init__(self, out_path: str | Path) -> None:
        self.out_path = Path(out_path)

    def draw(self, dataset: Dataset) -> Path:
        title = f"NeuralFinance – {dataset.name}" if dataset.name else "NeuralFinance"
        return draw_candlesticks(window_frame(dataset), self.out_path, title=title)
