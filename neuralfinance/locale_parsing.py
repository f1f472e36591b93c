"""Helpers for German-formatted quote exports.

Numbers use ``.`` as thousands separator and ``,`` as decimal separator
(``"1.234,5"``), dates are ``DD.MM.YYYY`` with an optional ``HH:MM`` time.
"""

from __future__ import annotations

import re
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from neuralfinance.config import DISPLAY
from neuralfinance.core.errors import DateError, ParseError

__all__ = [
    "parse_locale_number",
    "parse_locale_date",
    "round_half_away",
    "format_number",
]

_DECIMAL_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")


def parse_locale_number(value: str | int | float | None) -> float:
    """Return the float encoded by a localized number string.

    Every ``.`` is dropped and ``,`` becomes the decimal point. Anything that
    is not a plain decimal literal afterwards raises :class:`ParseError`.
    """

    if value is None:
        raise ParseError("number field is absent")
    if isinstance(value, bool):
        raise ParseError(f"not a number: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)

    s = str(value).strip().replace(".", "").replace(",", ".")
    if not _DECIMAL_RE.match(s):
        raise ParseError(f"not a localized number: {value!r}")
    return float(s)


def _int_component(raw: str, what: str, source: str) -> int:
    raw = raw.strip()
    if not raw.isdigit():
        raise DateError(f"non-numeric {what} in {source!r}")
    return int(raw)


def parse_locale_date(date_str: str, time_str: str | None = None) -> datetime:
    """Build a naive local datetime from ``DD.MM.YYYY`` and ``HH:MM``.

    Year, month and day are validated together, so an impossible day such
    as ``31.02.2020`` is rejected instead of rolling over into March.
    Without a time the timestamp defaults to 08:00; seconds are always zero.
    """

    if not isinstance(date_str, str):
        raise DateError(f"date field must be a string, got {date_str!r}")

    parts = date_str.strip().split(".")
    if len(parts) != 3:
        raise DateError(f"expected DD.MM.YYYY, got {date_str!r}")
    day = _int_component(parts[0], "day", date_str)
    month = _int_component(parts[1], "month", date_str)
    year = _int_component(parts[2], "year", date_str)

    if time_str is None:
        hour, minute = DISPLAY.default_hour, DISPLAY.default_minute
    else:
        if not isinstance(time_str, str):
            raise DateError(f"time field must be a string, got {time_str!r}")
        t = time_str.strip().split(":")
        if len(t) != 2:
            raise DateError(f"expected HH:MM, got {time_str!r}")
        hour = _int_component(t[0], "hour", time_str)
        minute = _int_component(t[1], "minute", time_str)

    try:
        return datetime(year, month, day, hour, minute, 0)
    except ValueError as exc:
        raise DateError(f"invalid date {date_str!r} {time_str or ''}: {exc}".rstrip()) from exc


def round_half_away(x: float, decimal_places: int) -> float:
    """Round half away from zero at ``decimal_places``.

    Works on the shortest decimal representation of ``x`` so that values
    like ``2.345`` (stored as 2.34499...) round to ``2.35``.
    """

    try:
        d = Decimal(repr(float(x)))
        q = Decimal(1).scaleb(-int(decimal_places))
        return float(d.quantize(q, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        # nan / inf have no fixed-point representation.
        return float(x)


def format_number(x: float) -> str:
    """Render a float like a JavaScript number (``2.0 -> "2"``, ``-0.0 -> "0"``)."""

    x = float(x)
    if x == 0:
        return "0"
    if x.is_integer() and abs(x) < 1e16:
        return str(int(x))
    return repr(x)
