from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from datetime import datetime

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.css.query import NoMatches
from textual.widgets import Footer, Header, Log, Static
from textual.worker import Worker, WorkerState

from .config import DEFAULT_CONFIG_PATH, ControllerConfig, load_controller_config
from .controller import InstanceController
from .demo import DEFAULT_SETTLE_DELAY, RENDERERS, Controller, DemoResult, TextRenderer, run_demo
from .errors import Ec2ControlError
from .logging_setup import configure_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_REMOTE_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


class DemoApp(App[None]):
    TITLE = "EC2 Control"
    CSS = """
    #status {
        height: 1;
        padding: 0 1;
    }
    """
    BINDINGS = [
        Binding("r", "rerun", "Run again"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        controller: Controller,
        *,
        delay: float = DEFAULT_SETTLE_DELAY,
        wait: bool = False,
    ) -> None:
        super().__init__()
        self.controller = controller
        self.delay = delay
        self.wait = wait
        self.result: DemoResult | None = None
        self.status_message = ""
        self.sequence_error: BaseException | None = None
        self.sub_title = controller.instance_id

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static("Starting...", id="status", markup=False)
        yield Log(highlight=False, max_lines=500, auto_scroll=True, id="activity-log")
        yield Footer()

    def on_mount(self) -> None:
        self.action_rerun()

    def action_rerun(self) -> None:
        if self.sequence_running:
            self._log("A sequence is already running; wait for it to finish.")
            return
        self.sequence_error = None
        self._set_status(f"Running start/stop sequence for {self.controller.instance_id}...")
        self.run_sequence()

    @property
    def sequence_running(self) -> bool:
        return any(
            worker.name == "run-demo" and worker.state in (WorkerState.PENDING, WorkerState.RUNNING)
            for worker in self.workers
        )

    @work(thread=True, exclusive=True, exit_on_error=False, name="run-demo")
    def run_sequence(self) -> DemoResult:
        return run_demo(
            self.controller,
            self._emit_from_thread,
            renderer=TextRenderer(),
            delay=self.delay,
            wait=self.wait,
        )

    @on(Worker.StateChanged)
    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if event.worker.name != "run-demo":
            return

        if event.worker.state == WorkerState.SUCCESS:
            result = event.worker.result
            if isinstance(result, DemoResult):
                self.result = result
                self._set_status(
                    f"Done: after start {result.status_after_start or '-'}, "
                    f"after stop {result.status_after_stop or '-'}."
                )
            return

        if event.worker.state == WorkerState.ERROR:
            error = event.worker.error
            self.sequence_error = error
            self._set_status(f"Sequence failed: {error}")
            self._log(f"Sequence failed: {error}")

    def _emit_from_thread(self, line: str) -> None:
        self.call_from_thread(self._log, line)

    def _set_status(self, message: str) -> None:
        self.status_message = message
        try:
            self.query_one("#status", Static).update(message)
        except NoMatches:
            return

    def _log(self, message: str) -> None:
        try:
            activity_log = self.query_one("#activity-log", Log)
        except NoMatches:
            return
        if not message:
            return
        timestamp = datetime.now().strftime("%H:%M:%S")
        activity_log.write_line(f"[{timestamp}] {message}")


def _non_negative_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {value}")
    return number


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Start and stop one EC2 instance, reporting its state")
    parser.add_argument(
        "--config",
        default=str(DEFAULT_CONFIG_PATH),
        help="YAML file with instance id, region, API version and credentials",
    )
    parser.add_argument("--instance-id", default=None, help="EC2 instance id (overrides the config file)")
    parser.add_argument("--profile", default=None, help="AWS CLI profile name")
    parser.add_argument("--region", default=None, help="AWS region name")
    parser.add_argument("--api-version", default=None, help="EC2 API version to pin the client to")
    parser.add_argument(
        "--delay",
        type=_non_negative_float,
        default=DEFAULT_SETTLE_DELAY,
        help="Seconds to pause after start/stop before reading the status",
    )
    parser.add_argument(
        "--wait",
        action="store_true",
        help="Poll with backoff until running/stopped instead of a single pause",
    )
    parser.add_argument("--format", choices=sorted(RENDERERS), default="html", help="Output markup")
    parser.add_argument("--tui", action="store_true", help="Show the sequence in a terminal UI")
    parser.add_argument("--log-level", default="WARNING", help="Log level for stderr logging")
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON lines")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ControllerConfig:
    config = load_controller_config(args.config).with_overrides(
        instance_id=args.instance_id,
        profile=args.profile,
        region=args.region,
        api_version=args.api_version,
    )
    config.validate()
    return config


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level, json_format=args.log_json)

    try:
        config = build_config(args)
    except ValueError as error:
        print(f"Error: {error} (use --instance-id or the config file)", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        controller = InstanceController(config)
    except Ec2ControlError as error:
        print(f"Error: {error.message}", file=sys.stderr)
        return EXIT_REMOTE_ERROR

    if args.tui:
        app = DemoApp(controller, delay=args.delay, wait=args.wait)
        app.run()
        return EXIT_REMOTE_ERROR if app.sequence_error is not None else EXIT_OK

    try:
        run_demo(
            controller,
            lambda line: print(line, flush=True),
            renderer=RENDERERS[args.format](),
            delay=args.delay,
            wait=args.wait,
        )
    except Ec2ControlError as error:
        logger.error("Sequence aborted: %s", error.message, extra={"instance_id": config.instance_id})
        print(f"Error: {error.message}", file=sys.stderr)
        return EXIT_REMOTE_ERROR
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
