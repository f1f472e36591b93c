"""Plain-text presentation sink for the CLI."""

from __future__ import annotations

import sys
from typing import TextIO

from neuralfinance.core.contracts import DisplayProjection, EndReason


def render_progress_bar(progress: float, width: int = 30) -> str:
    filled = int(round(max(0.0, min(1.0, progress)) * width))
    return "[" + "#" * filled + "-" * (width - filled) + "]"


def render_projection(projection: DisplayProjection) -> str:
    epochs = (
        f"{projection.current_epoch}/{projection.total_epochs}"
        if projection.total_epochs
        else str(projection.current_epoch)
    )
    return (
        f"{render_progress_bar(projection.progress)} epoch {epochs} | "
        f"{projection.upper_text} | estimate {projection.main_text} ({projection.lower_text})"
    )


_END_MESSAGES = {
    EndReason.CLIENT_STOP: "Training stopped.",
    EndReason.SERVER_COMPLETE: "Training finished.",
    EndReason.TRANSPORT_ERROR: "Lost contact with the training server; session closed.",
}


class ConsoleSink:
    """Prints one status line per poll and a summary when the session ends."""

    def __init__(self, stream: TextIO | None = None, *, quiet: bool = False) -> None:
        self.stream = stream or sys.stdout
        self.quiet = quiet

    def _print(self, text: str) -> None:
        print(text, file=self.stream, flush=True)

    def show_title(self, name: str | None) -> None:
        self._print(f"NeuralFinance – {name}" if name else "NeuralFinance")

    def show_projection(self, projection: DisplayProjection) -> None:
        if not self.quiet:
            self._print(render_projection(projection))

    def show_ended(self, reason: EndReason, projection: DisplayProjection | None) -> None:
        if projection is not None and reason is not EndReason.CLIENT_STOP:
            self._print(render_projection(projection))
        self._print(_END_MESSAGES[reason])

    def show_error(self, exc: Exception) -> None:
        self._print(f"Error: {exc}")
