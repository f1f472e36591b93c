"""In-memory quote dataset built from a JSON-lines export.

Each line of the export is one JSON object keyed by localized field names::

    {"Datum": "31.01.2020", "Zeit": "09:15", "Eröffnung": "1.234,5", ...}

Lines that fail to parse are dropped individually; a bad line never aborts
the whole load. The number of dropped lines is kept on the dataset for
diagnostics.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd

from neuralfinance.config import CLIENT, DISPLAY, FIELDS, FieldNames
from neuralfinance.core.errors import ParseError
from neuralfinance.locale_parsing import parse_locale_date, parse_locale_number

__all__ = [
    "TimeSeriesRecord",
    "Dataset",
    "FileContent",
    "parse_record",
    "read_file_content",
]

logger = logging.getLogger(__name__)

OHLC_KEYS = ("low", "open", "close", "high")


@dataclass(frozen=True)
class TimeSeriesRecord:
    timestamp: datetime
    low: float
    open: float
    close: float
    high: float
    volume: float | None = None

    def ohlc(self) -> dict[str, float]:
        return {"low": self.low, "open": self.open, "close": self.close, "high": self.high}


@dataclass(frozen=True)
class FileContent:
    name: str
    content: str


def read_file_content(path: str | Path, *, encoding: str | None = None) -> FileContent:
    """Read a quote export as text and return it together with its file name."""

    p = Path(path)
    text = p.read_text(encoding=encoding or CLIENT.file_encoding, errors="replace")
    return FileContent(name=p.name, content=text)


def parse_record(row: Any, fields: FieldNames = FIELDS) -> TimeSeriesRecord:
    """Turn one decoded JSON row into a record.

    Raises :class:`ParseError` when the date or any OHLC value is unusable.
    Volume is optional and becomes ``None`` when absent or malformed.
    """

    if not isinstance(row, dict):
        raise ParseError(f"row must be a JSON object, got {type(row).__name__}")
    if fields.date not in row:
        raise ParseError(f"row has no {fields.date!r} field")

    timestamp = parse_locale_date(row[fields.date], row.get(fields.time))

    values = {}
    for key in OHLC_KEYS:
        local_key = getattr(fields, key)
        values[key] = parse_locale_number(row.get(local_key))

    try:
        volume: float | None = parse_locale_number(row.get(fields.volume))
    except ParseError:
        volume = None

    return TimeSeriesRecord(timestamp=timestamp, volume=volume, **values)


@dataclass(frozen=True)
class Dataset:
    records: tuple[TimeSeriesRecord, ...] = ()
    has_intraday: bool = False
    name: str | None = None
    # Non-blank lines that could not be parsed.
    skipped: int = 0
    errors: tuple[str, ...] = field(default=(), repr=False)

    @classmethod
    def load(cls, raw_text: str, name: str | None = None, *, fields: FieldNames = FIELDS) -> "Dataset":
        """Parse a whole export into a new dataset."""

        records: list[TimeSeriesRecord] = []
        has_intraday: bool | None = None
        errors: list[str] = []

        for line_no, line in enumerate(raw_text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                row = json.loads(line)
                record = parse_record(row, fields)
            except (ValueError, ParseError) as exc:
                # json.JSONDecodeError is a ValueError as well.
                errors.append(f"line {line_no}: {exc}")
                continue

            if has_intraday is None:
                has_intraday = row.get(fields.time) is not None
            records.append(record)

        if errors:
            logger.info("Dropped %d unparseable line(s) from %s", len(errors), name or "dataset")

        return cls(
            records=tuple(records),
            has_intraday=bool(has_intraday),
            name=name,
            skipped=len(errors),
            errors=tuple(errors),
        )

    @classmethod
    def from_file(cls, path: str | Path, *, encoding: str | None = None) -> "Dataset":
        f = read_file_content(path, encoding=encoding)
        return cls.load(f.content, f.name)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)

    @property
    def last_close(self) -> float | None:
        if not self.records:
            return None
        return self.records[-1].close

    def filtered(self) -> list[dict[str, float]]:
        """OHLC-only rows, the exact payload sent to the trainer."""
        return [r.ohlc() for r in self.records]

    def recent_window(self, size: int = DISPLAY.window_size) -> list[TimeSeriesRecord]:
        """Trailing records for the candlestick chart.

        Takes the last ``size`` records. For intraday data only those on the
        same calendar day as the final record are kept.
        """

        if not self.records:
            return []

        tail = list(self.records[-size:]) if size > 0 else []
        if not self.has_intraday:
            return tail

        last_day = self.records[-1].timestamp.date()
        return [r for r in tail if r.timestamp.date() == last_day]

    def to_frame(self, records: list[TimeSeriesRecord] | None = None) -> pd.DataFrame:
        """Return records as a DataFrame using the Time/Open/High/Low/Close columns."""

        rows = self.records if records is None else records
        return pd.DataFrame(
            {
                "Time": pd.to_datetime([r.timestamp for r in rows]),
                "Open": [r.open for r in rows],
                "High": [r.high for r in rows],
                "Low": [r.low for r in rows],
                "Close": [r.close for r in rows],
                "Volume": [r.volume for r in rows],
            },
            columns=["Time", "Open", "High", "Low", "Close", "Volume"],
        )
