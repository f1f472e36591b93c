"""On-disk JSONL log of one training session.

Each session gets its own ``session_<run id>.jsonl`` file under the log
directory. :class:`neuralfinance.session.events.EventRecorder` appends one
line per event, so a transport failure and a normal completion can still be
told apart after the client has exited.
"""

from __future__ import annotations

import json
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from neuralfinance.config import LOGGING

_UNSAFE = re.compile(r"[^A-Za-z0-9_-]")


def create_run_id(ts: datetime | None = None) -> str:
    """Sortable UTC run id, e.g. ``20240102T030405123456Z``."""
    return (ts or datetime.now(timezone.utc)).strftime("%Y%m%dT%H%M%S%fZ")


def make_log_path(*, run_id: str, log_dir: Path | None = None) -> Path:
    d = Path(log_dir or LOGGING.log_dir)
    d.mkdir(parents=True, exist_ok=True)
    return d / f"session_{_UNSAFE.sub('_', run_id)}.jsonl"


def append_event(path: Path, event: dict[str, Any]) -> None:
    """Write ``event`` as one line and fsync, stamping ``ts_utc`` if missing."""

    record = {"ts_utc": datetime.now(timezone.utc).isoformat(), **event}
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8", newline="\n") as f:
        f.write(json.dumps(record, ensure_ascii=False) + "\n")
        f.flush()
        try:
            os.fsync(f.fileno())
        except OSError:
            # fsync is unsupported on some filesystems; the line is written.
            pass
