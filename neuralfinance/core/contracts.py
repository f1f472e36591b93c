from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from neuralfinance.core.errors import ProtocolError


class RequestDescription(str, Enum):
    """Action labels understood by the server.

    The labels are written from the server's point of view, so pushing data
    is ``getData`` and polling is ``sendTrainingOutput``.
    """

    START_TRAINING = "startTraining"
    STOP_TRAINING = "stopTraining"
    PUSH_DATA = "getData"
    TRAINING_OUTPUT = "sendTrainingOutput"


class SessionState(str, Enum):
    IDLE = "IDLE"
    STARTING = "STARTING"
    RUNNING = "RUNNING"
    STOPPING = "STOPPING"


class EndReason(str, Enum):
    CLIENT_STOP = "client_stop"
    SERVER_COMPLETE = "server_complete"
    TRANSPORT_ERROR = "transport_error"


def _require_int(name: str, value: Any, *, minimum: int) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    try:
        as_int = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an integer, got {value!r}") from None
    if isinstance(value, float) and value != as_int:
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if as_int < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {as_int}")
    return as_int


def _require_positive_float(name: str, value: Any) -> float:
    try:
        as_float = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}") from None
    if not as_float > 0:
        raise ValueError(f"{name} must be > 0, got {as_float}")
    return as_float


@dataclass(frozen=True)
class TrainingFormInput:
    epochs: int
    increase_factor: float
    shrink_factor: float
    estimate_length: int
    hidden_layers: int = 0

    def __post_init__(self) -> None:
        # Normalize string input coming from forms/CLI into typed values.
        object.__setattr__(self, "epochs", _require_int("epochs", self.epochs, minimum=1))
        object.__setattr__(
            self, "increase_factor", _require_positive_float("increase_factor", self.increase_factor)
        )
        object.__setattr__(
            self, "shrink_factor", _require_positive_float("shrink_factor", self.shrink_factor)
        )
        object.__setattr__(
            self, "estimate_length", _require_int("estimate_length", self.estimate_length, minimum=1)
        )
        object.__setattr__(
            self, "hidden_layers", _require_int("hidden_layers", self.hidden_layers, minimum=0)
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_payload(self) -> dict[str, Any]:
        """Server-side field names."""
        return {
            "epochs": self.epochs,
            "increaseFactor": self.increase_factor,
            "shrinkFactor": self.shrink_factor,
            "estimateLength": self.estimate_length,
            "hiddenLayers": self.hidden_layers,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "TrainingFormInput":
        return cls(**d)

    @classmethod
    def from_payload(cls, d: dict[str, Any]) -> "TrainingFormInput":
        return cls(
            epochs=d["epochs"],
            increase_factor=d["increaseFactor"],
            shrink_factor=d["shrinkFactor"],
            estimate_length=d["estimateLength"],
            hidden_layers=d.get("hiddenLayers", 0),
        )


_STATUS_KEYS = ("threadAlive", "estimateValue", "estimateLength", "currentEpoch")


@dataclass(frozen=True)
class TrainingStatus:
    thread_alive: bool
    estimate_value: float
    estimate_length: int
    current_epoch: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_payload(self) -> dict[str, Any]:
        return {
            "threadAlive": self.thread_alive,
            "estimateValue": self.estimate_value,
            "estimateLength": self.estimate_length,
            "currentEpoch": self.current_epoch,
        }

    @classmethod
    def from_payload(cls, d: Any) -> "TrainingStatus":
        if not isinstance(d, dict):
            raise ProtocolError(json.dumps(d))
        missing = [k for k in _STATUS_KEYS if k not in d]
        if missing:
            raise ProtocolError(f"status payload is missing {', '.join(missing)}: {json.dumps(d)}")
        alive = d["threadAlive"]
        if not isinstance(alive, bool):
            raise ProtocolError(f"threadAlive must be a boolean, got {alive!r}")
        try:
            return cls(
                thread_alive=alive,
                estimate_value=float(d["estimateValue"]),
                estimate_length=int(d["estimateLength"]),
                current_epoch=int(d["currentEpoch"]),
            )
        except (TypeError, ValueError) as exc:
            raise ProtocolError(f"malformed status payload: {exc}") from exc

    @classmethod
    def from_json(cls, text: str) -> "TrainingStatus":
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as exc:
            raise ProtocolError(text if isinstance(text, str) else repr(text)) from exc
        return cls.from_payload(data)


@dataclass(frozen=True)
class DisplayProjection:
    upper_text: str
    main_text: str
    lower_text: str
    current_epoch: int
    total_epochs: int | None = None
    progress: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
