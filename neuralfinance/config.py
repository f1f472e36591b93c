# neuralfinance/config.py

import os
from dataclasses import dataclass, field

# --- Base paths ---
# Project root can be overridden if needed (e.g. for tests or deployment)
BASE_DIR = os.path.abspath(os.getenv("NEURALFINANCE_BASE_DIR", os.path.join(os.path.dirname(__file__), "..")))


def _env_float(name: str, default: float | None) -> float | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


# ---------------------------
# Structured configuration
# ---------------------------

@dataclass(frozen=True)
class ClientConfig:
    """Remote endpoint and polling configuration.

    Values can be overridden via environment variables:
    - NEURALFINANCE_ENDPOINT_URL
    - NEURALFINANCE_POLL_INTERVAL_MS
    - NEURALFINANCE_REQUEST_TIMEOUT_S (unset means no timeout)
    - NEURALFINANCE_FILE_ENCODING
    """

    endpoint_url: str = field(
        default_factory=lambda: os.getenv(
            "NEURALFINANCE_ENDPOINT_URL", "http://127.0.0.1:8000/controller"
        )
    )
    poll_interval_ms: int = field(
        default_factory=lambda: int(os.getenv("NEURALFINANCE_POLL_INTERVAL_MS", "100"))
    )
    request_timeout_s: float | None = field(
        default_factory=lambda: _env_float("NEURALFINANCE_REQUEST_TIMEOUT_S", None)
    )
    # Exported quote files are ANSI encoded.
    file_encoding: str = field(
        default_factory=lambda: os.getenv("NEURALFINANCE_FILE_ENCODING", "cp1252")
    )
    # Which OHLC field the trainer is asked to estimate.
    output_value: str = "close"


@dataclass(frozen=True)
class FieldNames:
    """Localized keys of one input row."""

    date: str = "Datum"
    time: str = "Zeit"
    low: str = "Tief"
    open: str = "Eröffnung"
    close: str = "Schluss"
    high: str = "Hoch"
    volume: str = "Volumen"


@dataclass(frozen=True)
class DisplayConfig:
    window_size: int = 30
    default_hour: int = 8
    default_minute: int = 0
    # A full circle is not drawn by the progress glyph, stay just below it.
    progress_cap: float = 0.9999
    growth_decimals: int = 1
    estimate_decimals: int = 2


@dataclass(frozen=True)
class TrainingDefaults:
    """Default form values used by the CLI when no flag is given."""

    epochs: int = 1000
    increase_factor: float = 1.2
    shrink_factor: float = 0.5
    estimate_length: int = 10
    hidden_layers: int = 1


@dataclass(frozen=True)
class ServerConfig:
    """Reference training server settings.

    - NEURALFINANCE_EPOCH_DELAY_S: pause between two epochs of the bundled trainer.
    """

    epoch_delay_s: float = field(
        default_factory=lambda: float(os.getenv("NEURALFINANCE_EPOCH_DELAY_S", "0.01"))
    )
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass(frozen=True)
class LogConfig:
    log_dir: str = field(
        default_factory=lambda: os.getenv(
            "NEURALFINANCE_LOG_DIR", os.path.join(BASE_DIR, "ui_state", "sessions")
        )
    )


# Module-level defaults for callers that do not need custom instances.
CLIENT = ClientConfig()
FIELDS = FieldNames()
DISPLAY = DisplayConfig()
TRAINING = TrainingDefaults()
SERVER = ServerConfig()
LOGGING = LogConfig()
