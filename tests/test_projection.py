from __future__ import annotations

import math

import pytest

from neuralfinance.core.contracts import TrainingStatus
from neuralfinance.session.projection import (
    complete_projection,
    format_growth,
    growth_percent,
    progress_fraction,
    project_status,
)


def test_growth_percent_rounds_to_one_decimal() -> None:
    assert growth_percent(105.04, 100.0) == 5.0
    assert growth_percent(105.06, 100.0) == 5.1
    assert growth_percent(100.0, 100.0) == 0.0


def test_growth_sign_formatting() -> None:
    assert format_growth(0.0) == "+0"
    assert format_growth(growth_percent(100.0, 100.0)) == "+0"
    assert format_growth(2.5) == "+2.5"
    assert format_growth(-1.2) == "-1.2"


def test_tiny_negative_growth_is_shown_as_plus_zero() -> None:
    assert format_growth(growth_percent(99.999, 100.0)) == "+0"


def test_progress_fraction_is_clamped_below_full() -> None:
    assert progress_fraction(5, 10) == pytest.approx(0.5)
    assert progress_fraction(10, 10) == pytest.approx(0.9999)
    assert progress_fraction(3, None) == 0.0
    assert progress_fraction(-1, 10) == 0.0


def test_project_status_builds_card_texts() -> None:
    status = TrainingStatus(thread_alive=True, estimate_value=102.3456, estimate_length=12, current_epoch=40)
    p = project_status(status, last_known_close=100.0, total_epochs=200)

    assert p.upper_text == "12 data points"
    assert p.main_text == "102.35"
    assert p.lower_text == "+2.3%"
    assert p.current_epoch == 40
    assert p.progress == pytest.approx(0.2)


def test_complete_projection_keeps_texts_and_fills_progress() -> None:
    status = TrainingStatus(thread_alive=True, estimate_value=99.0, estimate_length=5, current_epoch=1)
    last = project_status(status, 100.0, 10)

    done = complete_projection(last)
    assert done.main_text == last.main_text
    assert done.progress == pytest.approx(0.9999)

    assert complete_projection(None).progress == pytest.approx(0.9999)


def test_growth_without_usable_reference_close() -> None:
    assert math.isnan(growth_percent(105.0, 0.0))
    assert math.isnan(growth_percent(105.0, math.inf))
    assert format_growth(growth_percent(105.0, 0.0)) == "n/a"
