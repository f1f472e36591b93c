"""Training-session controller.

Drives one remote training session through IDLE -> STARTING -> RUNNING ->
STOPPING -> IDLE. While a session is active the controller polls the
server in a single chain of deferred ticks: a tick schedules its successor
only after its own status response has been handled, so there is never
more than one status request outstanding and snapshots are applied in
order.

A session ends in one of three ways, recorded in :attr:`end_reason`:

- ``client_stop``: :meth:`SessionController.stop` succeeded and the next
  tick observed the cancellation flag (no status request is sent then).
- ``server_complete``: a poll reported ``threadAlive: false``.
- ``transport_error``: a poll failed. The session is dropped locally just
  like a completion, but the error is re-raised and logged as such.

A tick that fires while the controller is IDLE does nothing, which ends
the chain.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Protocol

from neuralfinance.config import CLIENT
from neuralfinance.core.contracts import (
    DisplayProjection,
    EndReason,
    SessionState,
    TrainingFormInput,
    TrainingStatus,
)
from neuralfinance.core.errors import NeuralFinanceError, SessionStateError, TransportError
from neuralfinance.dataset import Dataset
from neuralfinance.remote_client import RemoteSessionClient, parse_status
from neuralfinance.session.events import (
    ErrorEvent,
    EventRecorder,
    SessionEndEvent,
    SessionStartEvent,
    StatusEvent,
)
from neuralfinance.session.projection import complete_projection, project_status
from neuralfinance.session.scheduler import AsyncioScheduler, Scheduler
from neuralfinance.session_log import create_run_id

__all__ = ["PresentationSink", "NullSink", "SessionController"]

logger = logging.getLogger(__name__)


class PresentationSink(Protocol):
    def show_projection(self, projection: DisplayProjection) -> None: ...

    def show_ended(self, reason: EndReason, projection: DisplayProjection | None) -> None: ...

    def show_error(self, exc: Exception) -> None: ...


class NullSink:
    def show_projection(self, projection: DisplayProjection) -> None:
        pass

    def show_ended(self, reason: EndReason, projection: DisplayProjection | None) -> None:
        pass

    def show_error(self, exc: Exception) -> None:
        pass


class SessionController:
    def __init__(
        self,
        client: RemoteSessionClient,
        dataset: Dataset | None = None,
        *,
        scheduler: Scheduler | None = None,
        sink: PresentationSink | None = None,
        recorder: EventRecorder | None = None,
        poll_interval_ms: int | None = None,
    ) -> None:
        self.client = client
        self.dataset = dataset
        self.scheduler = scheduler or AsyncioScheduler()
        self.sink = sink or NullSink()
        self.recorder = recorder or EventRecorder()
        self.poll_interval_ms = CLIENT.poll_interval_ms if poll_interval_ms is None else int(poll_interval_ms)

        self._state = SessionState.IDLE
        self._cancel_requested = False
        self._poll_in_flight = False
        # Token of the one tick allowed to run next; stale ticks compare unequal.
        self._pending_tick: int | None = None
        self._tick_seq = 0
        self._idle = asyncio.Event()
        self._idle.set()

        self._run_id: str | None = None
        self._form: TrainingFormInput | None = None
        self._last_known_close: float | None = None
        self._polls = 0

        self.last_status: TrainingStatus | None = None
        self.last_projection: DisplayProjection | None = None
        self.end_reason: EndReason | None = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def run_id(self) -> str | None:
        return self._run_id

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    @property
    def poll_in_flight(self) -> bool:
        return self._poll_in_flight

    @property
    def last_known_close(self) -> float | None:
        return self._last_known_close

    @property
    def polls(self) -> int:
        return self._polls

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------
    async def push_dataset(self, dataset: Dataset, output_value: str = CLIENT.output_value) -> str:
        """Replace the current dataset and send its OHLC rows to the trainer.

        The dataset is kept even when the push fails, so the chart can still
        be drawn; the error is re-raised.
        """

        self.dataset = dataset
        try:
            return await self.client.push_data(dataset.filtered(), output_value)
        except TransportError as exc:
            self._record_error("push_data", exc)
            raise

    # ------------------------------------------------------------------
    # Session control
    # ------------------------------------------------------------------
    async def start(self, form_input: TrainingFormInput) -> str:
        if self._state is not SessionState.IDLE:
            raise SessionStateError(f"cannot start while {self._state.value}")
        if self.dataset is None or len(self.dataset) == 0:
            raise SessionStateError("no dataset loaded")

        self._set_state(SessionState.STARTING)
        try:
            body = await self.client.start_training(form_input)
        except TransportError as exc:
            self._set_state(SessionState.IDLE)
            self._record_error("start", exc)
            raise

        self._run_id = create_run_id()
        self._form = form_input
        # Fixed for the whole session even if a new file is loaded meanwhile.
        self._last_known_close = self.dataset.last_close
        self._polls = 0
        self._cancel_requested = False
        self.last_status = None
        self.last_projection = None
        self.end_reason = None

        self._set_state(SessionState.RUNNING)
        self.recorder.emit(
            SessionStartEvent(
                run_id=self._run_id,
                epochs=form_input.epochs,
                estimate_length=form_input.estimate_length,
                hidden_layers=form_input.hidden_layers,
                last_known_close=float(self._last_known_close),
            )
        )
        self._schedule_next(0.0)
        return body

    async def stop(self) -> str:
        if self._state is not SessionState.RUNNING:
            raise SessionStateError(f"cannot stop while {self._state.value}")

        self._set_state(SessionState.STOPPING)
        try:
            body = await self.client.stop_training()
        except TransportError as exc:
            if self._state is SessionState.STOPPING:
                self._set_state(SessionState.RUNNING)
            self._record_error("stop", exc)
            raise

        # The session may have ended on its own while the request was out.
        if self._state is SessionState.STOPPING:
            self._cancel_requested = True
        return body

    async def poll_once(self) -> TrainingStatus | None:
        """Run one poll tick; see the module docstring for the branches."""

        if self._state not in (SessionState.RUNNING, SessionState.STOPPING):
            return None
        if self._poll_in_flight:
            raise SessionStateError("a status request is already in flight")

        # This tick supersedes any tick still waiting in the scheduler.
        self._pending_tick = None

        if self._cancel_requested:
            self._cancel_requested = False
            self._finish(EndReason.CLIENT_STOP)
            return None

        self._poll_in_flight = True
        try:
            status = parse_status(await self.client.get_status())
        except TransportError as exc:
            logger.error("Status poll failed for run %s, ending session: %s", self._run_id, exc)
            self._record_error("poll", exc)
            self._finish(EndReason.TRANSPORT_ERROR)
            raise
        finally:
            self._poll_in_flight = False

        self._polls += 1
        self.last_status = status

        if not status.thread_alive:
            self.recorder.emit(self._status_event(status, None))
            self._finish(EndReason.SERVER_COMPLETE)
            return status

        reference = math.nan if self._last_known_close is None else self._last_known_close
        projection = project_status(
            status,
            reference,
            self._form.epochs if self._form else None,
        )
        self.last_projection = projection
        self.recorder.emit(self._status_event(status, projection.lower_text))
        self._schedule_next(self.poll_interval_ms / 1000.0)
        self.sink.show_projection(projection)
        return status

    async def wait_closed(self) -> EndReason | None:
        """Wait until the controller is IDLE again and return the end reason."""
        await self._idle.wait()
        return self.end_reason

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _set_state(self, state: SessionState) -> None:
        if state is not self._state:
            logger.debug("Session %s: %s -> %s", self._run_id, self._state.value, state.value)
        self._state = state
        if state is SessionState.IDLE:
            self._idle.set()
        else:
            self._idle.clear()

    def _schedule_next(self, delay_s: float) -> None:
        self._tick_seq += 1
        token = self._tick_seq
        self._pending_tick = token

        async def _tick() -> None:
            if self._pending_tick != token:
                return
            try:
                await self.poll_once()
            except NeuralFinanceError as exc:
                self.sink.show_error(exc)
            except Exception as exc:  # noqa: BLE001
                # Nothing above the scheduler would see this, so end the session here.
                logger.exception("Poll tick failed for run %s", self._run_id)
                if self._state in (SessionState.RUNNING, SessionState.STOPPING):
                    self._record_error("poll", exc)
                    self._finish(EndReason.TRANSPORT_ERROR)
                self.sink.show_error(exc)

        self.scheduler.call_later(delay_s, _tick)

    def _finish(self, reason: EndReason) -> None:
        self._cancel_requested = False
        self._pending_tick = None
        self.scheduler.cancel_all()
        self.end_reason = reason

        projection = self.last_projection
        if reason is not EndReason.CLIENT_STOP:
            projection = complete_projection(self.last_projection)
            self.last_projection = projection

        self._set_state(SessionState.IDLE)
        logger.info("Session %s ended (%s) after %d poll(s)", self._run_id, reason.value, self._polls)
        self.recorder.emit(
            SessionEndEvent(run_id=str(self._run_id), reason=reason.value, polls=self._polls)
        )
        self.sink.show_ended(reason, projection)

    def _status_event(self, status: TrainingStatus, growth_text: str | None) -> StatusEvent:
        return StatusEvent(
            run_id=str(self._run_id),
            poll_index=self._polls,
            thread_alive=status.thread_alive,
            estimate_value=status.estimate_value,
            current_epoch=status.current_epoch,
            growth_text=growth_text,
        )

    def _record_error(self, where: str, exc: Exception) -> None:
        if isinstance(exc, TransportError):
            status_code, body = exc.status_code, exc.body
        else:
            status_code, body = None, str(exc)
        self.recorder.emit(
            ErrorEvent(
                run_id=self._run_id,
                where=where,
                error=type(exc).__name__,
                status_code=status_code,
                body=body,
            )
        )
