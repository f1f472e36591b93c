"""Run one training session against the NeuralFinance server.

Steps:
1. Load a quote export (JSON lines with German field names).
2. Push its OHLC rows to the server.
3. Optionally draw the recent-window candlestick chart.
4. Start training and print progress until the server finishes.
   Ctrl+C sends a stop request instead of killing the client.

Usage example:
    python -m neuralfinance.cli data/quotes.txt --epochs 500 --chart out/chart.png
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from neuralfinance.chart import ChartSink
from neuralfinance.config import CLIENT, TRAINING
from neuralfinance.console import ConsoleSink
from neuralfinance.core.contracts import EndReason, TrainingFormInput
from neuralfinance.core.errors import NeuralFinanceError, SessionStateError, TransportError
from neuralfinance.dataset import Dataset
from neuralfinance.remote_client import RemoteSessionClient
from neuralfinance.session.controller import SessionController
from neuralfinance.session.events import EventRecorder
from neuralfinance.session_log import create_run_id, make_log_path

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Train the remote estimator on a quote export and follow its progress.")
    p.add_argument("file", type=str, help="Quote export, one JSON object per line.")
    p.add_argument("--url", default=CLIENT.endpoint_url, help="Controller endpoint of the training server.")
    p.add_argument("--encoding", default=CLIENT.file_encoding, help="Text encoding of the export.")
    p.add_argument("--output-value", default=CLIENT.output_value, choices=["low", "open", "close", "high"])
    p.add_argument("--epochs", type=int, default=TRAINING.epochs)
    p.add_argument("--increase-factor", type=float, default=TRAINING.increase_factor)
    p.add_argument("--shrink-factor", type=float, default=TRAINING.shrink_factor)
    p.add_argument("--estimate-length", type=int, default=TRAINING.estimate_length)
    p.add_argument("--hidden-layers", type=int, default=TRAINING.hidden_layers)
    p.add_argument("--poll-interval-ms", type=int, default=CLIENT.poll_interval_ms)
    p.add_argument("--timeout", type=float, default=CLIENT.request_timeout_s, help="Per-request timeout in seconds (default: none).")
    p.add_argument("--chart", type=str, default=None, help="Write the recent-window candlestick chart to this PNG.")
    p.add_argument("--log-dir", type=str, default=None, help="Directory for the JSONL session log.")
    p.add_argument("--no-log", action="store_true", help="Do not write a session log to disk.")
    p.add_argument("--quiet", action="store_true", help="Only print the final result.")
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def form_from_args(args: argparse.Namespace) -> TrainingFormInput:
    return TrainingFormInput(
        epochs=args.epochs,
        increase_factor=args.increase_factor,
        shrink_factor=args.shrink_factor,
        estimate_length=args.estimate_length,
        hidden_layers=args.hidden_layers,
    )


async def _request_stop(controller: SessionController, sink: ConsoleSink) -> None:
    try:
        await controller.stop()
    except SessionStateError:
        # Already stopping or finished.
        pass
    except TransportError as exc:
        sink.show_error(exc)


async def run_session(args: argparse.Namespace, *, client: RemoteSessionClient | None = None) -> int:
    sink = ConsoleSink(quiet=args.quiet)

    try:
        form = form_from_args(args)
    except ValueError as exc:
        sink.show_error(exc)
        return 2

    dataset = Dataset.from_file(args.file, encoding=args.encoding)
    sink.show_title(dataset.name)
    if dataset.skipped:
        print(f"Skipped {dataset.skipped} unreadable line(s).")
    if len(dataset) == 0:
        sink.show_error(ValueError(f"No usable records in {args.file}"))
        return 1

    log_path = None
    if not args.no_log:
        log_path = make_log_path(run_id=create_run_id(), log_dir=Path(args.log_dir) if args.log_dir else None)

    if client is not None:
        return await _drive(args, client, dataset, form, sink, log_path)

    owned = RemoteSessionClient(args.url, timeout=args.timeout)
    try:
        return await _drive(args, owned, dataset, form, sink, log_path)
    finally:
        owned.close()


async def _drive(
    args: argparse.Namespace,
    client: RemoteSessionClient,
    dataset: Dataset,
    form: TrainingFormInput,
    sink: ConsoleSink,
    log_path: Path | None,
) -> int:
    controller = SessionController(
        client,
        sink=sink,
        recorder=EventRecorder(log_path=log_path),
        poll_interval_ms=args.poll_interval_ms,
    )

    try:
        await controller.push_dataset(dataset, args.output_value)
    except TransportError as exc:
        sink.show_error(exc)
        return 1

    if args.chart:
        out = ChartSink(args.chart).draw(dataset)
        print(f"Saved chart to {out}")

    try:
        await controller.start(form)
    except NeuralFinanceError as exc:
        sink.show_error(exc)
        return 1

    loop = asyncio.get_running_loop()
    stop_tasks: set[asyncio.Task] = set()

    def _on_sigint() -> None:
        task = loop.create_task(_request_stop(controller, sink))
        stop_tasks.add(task)
        task.add_done_callback(stop_tasks.discard)

    try:
        loop.add_signal_handler(signal.SIGINT, _on_sigint)
    except (NotImplementedError, RuntimeError):  # pragma: no cover - Windows / non-main thread
        pass

    try:
        reason = await controller.wait_closed()
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):  # pragma: no cover
            pass

    if log_path is not None:
        logger.info("Session log written to %s", log_path)
    return 2 if reason is EndReason.TRANSPORT_ERROR else 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(run_session(args))


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
