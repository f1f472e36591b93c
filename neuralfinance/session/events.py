"""Contracts for training-session events.

Event Types:
- SessionStartEvent: start request accepted by the server
- StatusEvent: one successful poll snapshot
- SessionEndEvent: session back to IDLE, with the reason
- ErrorEvent: a remote call failed

Events are kept in memory by :class:`EventRecorder` and, when a log path is
configured, appended to a JSONL session log (see :mod:`neuralfinance.session_log`).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Union

from neuralfinance.session_log import append_event


@dataclass
class SessionStartEvent:
    run_id: str
    epochs: int
    estimate_length: int
    hidden_layers: int
    last_known_close: float

    def to_dict(self) -> dict[str, Any]:
        return {"type": "session_start", **asdict(self)}


@dataclass
class StatusEvent:
    run_id: str
    poll_index: int
    thread_alive: bool
    estimate_value: float
    current_epoch: int
    growth_text: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": "status", **asdict(self)}


@dataclass
class SessionEndEvent:
    run_id: str
    reason: str
    polls: int

    def to_dict(self) -> dict[str, Any]:
        return {"type": "session_end", **asdict(self)}


@dataclass
class ErrorEvent:
    run_id: str | None
    where: str
    error: str
    status_code: int | None = None
    body: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": "error", **asdict(self)}


SessionEvent = Union[SessionStartEvent, StatusEvent, SessionEndEvent, ErrorEvent]


@dataclass
class EventRecorder:
    """Collects events in memory and optionally mirrors them to disk."""

    log_path: Path | None = None
    events: list[dict[str, Any]] = field(default_factory=list)

    def emit(self, event: SessionEvent) -> None:
        d = event.to_dict()
        self.events.append(d)
        if self.log_path is not None:
            append_event(self.log_path, d)

    def of_type(self, event_type: str) -> list[dict[str, Any]]:
        return [e for e in self.events if e.get("type") == event_type]
