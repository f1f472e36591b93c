"""Turn a status snapshot into the values shown on the progress card."""

from __future__ import annotations

import math

from neuralfinance.config import DISPLAY
from neuralfinance.core.contracts import DisplayProjection, TrainingStatus
from neuralfinance.locale_parsing import format_number, round_half_away

__all__ = [
    "growth_percent",
    "format_growth",
    "progress_fraction",
    "project_status",
    "complete_projection",
]


def growth_percent(estimate_value: float, last_known_close: float) -> float:
    """Estimated change against the last close, in percent, one decimal.

    Returns nan when there is no usable reference close (zero or not finite).
    """
    if last_known_close == 0 or not math.isfinite(last_known_close):
        return math.nan
    g = round_half_away((estimate_value / last_known_close - 1) * 100, DISPLAY.growth_decimals)
    # Avoid "-0" for tiny negative changes.
    return 0.0 if g == 0 else g


def format_growth(growth: float) -> str:
    """Explicit "+" for non-negative growth, plain minus sign otherwise."""
    if math.isnan(growth):
        return "n/a"
    text = format_number(growth)
    if growth >= 0:
        return "+" + text
    return text


def progress_fraction(current_epoch: int, total_epochs: int | None) -> float:
    """Share of epochs done, clamped below a full circle."""
    if not total_epochs or total_epochs <= 0:
        return 0.0
    frac = float(current_epoch) / float(total_epochs)
    return max(0.0, min(DISPLAY.progress_cap, frac))


def project_status(
    status: TrainingStatus,
    last_known_close: float,
    total_epochs: int | None = None,
) -> DisplayProjection:
    growth = growth_percent(status.estimate_value, last_known_close)
    return DisplayProjection(
        upper_text=f"{status.estimate_length} data points",
        main_text=format_number(round_half_away(status.estimate_value, DISPLAY.estimate_decimals)),
        lower_text=format_growth(growth) + "%",
        current_epoch=status.current_epoch,
        total_epochs=total_epochs,
        progress=progress_fraction(status.current_epoch, total_epochs),
    )


def complete_projection(last: DisplayProjection | None) -> DisplayProjection:
    """Keep the last texts and show the progress indicator as full."""
    if last is None:
        return DisplayProjection("", "", "", current_epoch=0, progress=DISPLAY.progress_cap)
    return DisplayProjection(
        upper_text=last.upper_text,
        main_text=last.main_text,
        lower_text=last.lower_text,
        current_epoch=last.current_epoch,
        total_epochs=last.total_epochs,
        progress=DISPLAY.progress_cap,
    )
