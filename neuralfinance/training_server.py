"""Server-side session state for the reference training endpoint.

The server owns the pushed OHLC rows and at most one background training
thread. Semantics of the four actions:

- ``getData``: stop any running training, then replace rows and output label.
- ``startTraining``: needs data; ignored while a training thread is alive.
- ``stopTraining``: signal the thread and wait for it to exit.
- ``sendTrainingOutput``: current estimate, epoch and liveness.

The bundled :class:`DriftTrainer` is intentionally small: it fits the mean
log growth of the output series with a sign-based adaptive step (the
increase/shrink factors scale the step). Any object with ``fit_epoch()`` and
``estimate()`` can be plugged in through ``trainer_factory``.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Protocol

import numpy as np

from neuralfinance.config import SERVER
from neuralfinance.core.contracts import TrainingFormInput, TrainingStatus
from neuralfinance.core.errors import NeuralFinanceError

__all__ = ["ServerStateError", "Trainer", "DriftTrainer", "TrainingServer"]

logger = logging.getLogger(__name__)


class ServerStateError(NeuralFinanceError):
    """Request cannot be served in the server's current state."""


class Trainer(Protocol):
    estimate_length: int

    def fit_epoch(self) -> None: ...

    def estimate(self) -> float: ...


class DriftTrainer:
    """One-step-ahead estimate ``last * exp(mu)`` with ``mu`` fitted by adaptive steps."""

    def __init__(self, values: list[float], form: TrainingFormInput, *, initial_step: float = 1e-3) -> None:
        series = np.asarray(values, dtype=float)
        if series.size < 2:
            raise ServerStateError("need at least two data points to train")
        if np.any(series <= 0):
            raise ServerStateError("output values must be positive")

        log_growth = np.diff(np.log(series))
        self.returns = log_growth[-form.estimate_length:]
        self.last_value = float(series[-1])
        self.estimate_length = form.estimate_length
        self.increase_factor = form.increase_factor
        self.shrink_factor = form.shrink_factor

        self.mu = 0.0
        self.step = float(initial_step)
        self._prev_sign = 0.0

    def fit_epoch(self) -> None:
        grad = float(np.mean(self.mu - self.returns))
        sign = float(np.sign(grad))
        if sign * self._prev_sign > 0:
            self.step *= self.increase_factor
        elif sign * self._prev_sign < 0:
            self.step *= self.shrink_factor
        self.mu -= sign * self.step
        self._prev_sign = sign

    def estimate(self) -> float:
        return float(self.last_value * np.exp(self.mu))


TrainerFactory = Callable[[list[float], TrainingFormInput], Trainer]


class TrainingServer:
    def __init__(
        self,
        *,
        epoch_delay_s: float | None = None,
        trainer_factory: TrainerFactory = DriftTrainer,
    ) -> None:
        self.epoch_delay_s = SERVER.epoch_delay_s if epoch_delay_s is None else float(epoch_delay_s)
        self.trainer_factory = trainer_factory

        self.rows: list[dict[str, float]] | None = None
        self.output_value: str | None = None

        self._lock = threading.Lock()
        self._trainer: Trainer | None = None
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._epoch = 0
        self._error: str | None = None

    # --- actions -------------------------------------------------------
    def push_data(self, rows: list[dict[str, float]], output_value: str) -> int:
        self.stop_training()
        if rows and output_value not in rows[0]:
            raise ServerStateError(f"outputValue {output_value!r} is not a field of the pushed rows")
        self.rows = [dict(r) for r in rows]
        self.output_value = output_value
        logger.info("Received %d rows (estimating %s)", len(self.rows), output_value)
        return len(self.rows)

    def start_training(self, form: TrainingFormInput) -> bool:
        """Start a training thread; returns False when one is already running."""

        if self.is_alive():
            return False
        if not self.rows or self.output_value is None:
            raise ServerStateError("no data has been pushed")

        values = [float(r[self.output_value]) for r in self.rows]
        trainer = self.trainer_factory(values, form)

        with self._lock:
            self._trainer = trainer
            self._epoch = 0
            self._error = None
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(trainer, form.epochs, self._stop_event), name="training", daemon=True
        )
        self._thread.start()
        return True

    def stop_training(self) -> bool:
        thread = self._thread
        if thread is None:
            return False
        self._stop_event.set()
        thread.join()
        return True

    def status(self) -> TrainingStatus:
        with self._lock:
            trainer = self._trainer
            epoch = self._epoch
            if trainer is None:
                raise ServerStateError("training has not been started")
            estimate = trainer.estimate()
        return TrainingStatus(
            thread_alive=self.is_alive(),
            estimate_value=estimate,
            estimate_length=trainer.estimate_length,
            current_epoch=epoch,
        )

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def last_error(self) -> str | None:
        return self._error

    # --- worker --------------------------------------------------------
    def _run(self, trainer: Trainer, epochs: int, stop_event: threading.Event) -> None:
        try:
            for epoch in range(1, epochs + 1):
                if stop_event.is_set():
                    break
                with self._lock:
                    trainer.fit_epoch()
                    self._epoch = epoch
                if self.epoch_delay_s > 0:
                    stop_event.wait(self.epoch_delay_s)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Training thread failed")
            with self._lock:
                self._error = repr(exc)
