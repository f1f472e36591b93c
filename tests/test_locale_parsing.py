from __future__ import annotations

from datetime import datetime

import pytest

from neuralfinance.core.errors import DateError, ParseError
from neuralfinance.locale_parsing import (
    format_number,
    parse_locale_date,
    parse_locale_number,
    round_half_away,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1.234,5", 1234.5),
        ("12,0", 12.0),
        ("1.234.567,89", 1234567.89),
        ("-3,25", -3.25),
        ("42", 42.0),
        (" 7,5 ", 7.5),
    ],
)
def test_parse_locale_number(raw: str, expected: float) -> None:
    assert parse_locale_number(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", ["abc", "12,5x", "", "1,2,3", "nan", None])
def test_parse_locale_number_rejects_non_numeric_residue(raw) -> None:
    with pytest.raises(ParseError):
        parse_locale_number(raw)


def test_parse_locale_number_accepts_json_numbers() -> None:
    assert parse_locale_number(12) == 12.0
    assert parse_locale_number(3.5) == 3.5


def test_parse_locale_date_end_of_month_does_not_roll_over() -> None:
    assert parse_locale_date("31.01.2020") == datetime(2020, 1, 31, 8, 0, 0)


def test_parse_locale_date_with_time() -> None:
    assert parse_locale_date("01.03.2020", "14:30") == datetime(2020, 3, 1, 14, 30, 0)


def test_parse_locale_date_defaults_to_eight_oclock() -> None:
    d = parse_locale_date("15.06.2021")
    assert (d.hour, d.minute, d.second) == (8, 0, 0)


@pytest.mark.parametrize(
    "date_str, time_str",
    [
        ("aa.01.2020", None),
        ("31.02.2020", None),
        ("2020-01-31", None),
        ("01.01.2020", "25:00"),
        ("01.01.2020", "1230"),
        ("01.01.2020", "ab:cd"),
    ],
)
def test_parse_locale_date_rejects_malformed_input(date_str: str, time_str: str | None) -> None:
    with pytest.raises(DateError):
        parse_locale_date(date_str, time_str)


def test_date_error_is_a_parse_error() -> None:
    assert issubclass(DateError, ParseError)


def test_round_half_away_from_zero() -> None:
    assert round_half_away(2.345, 2) == 2.35
    assert round_half_away(-2.345, 2) == -2.35
    assert round_half_away(0.05, 1) == 0.1
    assert round_half_away(2.5, 0) == 3.0
    assert round_half_away(-2.5, 0) == -3.0


def test_format_number_matches_javascript_rendering() -> None:
    assert format_number(2.0) == "2"
    assert format_number(-0.0) == "0"
    assert format_number(2.35) == "2.35"
    assert format_number(-2.5) == "-2.5"
