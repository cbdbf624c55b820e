"""Rich console output for flow logs."""

from __future__ import annotations

from typing import Callable, Optional

from rich.console import Console

from .errors import FlowError
from .log import Log
from .models import LogKind, LogRecord
from .streams import Subject

STYLES = {
    LogKind.CONTEXT: "bold",
    LogKind.INFO: "cyan",
    LogKind.WARN: "yellow",
    LogKind.ERROR: "red",
}


class ConsoleLogSink:
    """Prints log records as they are published, styled by kind."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self._console = console or Console()

    def __call__(self, record: LogRecord) -> None:
        self._console.print(
            record.render(), style=STYLES.get(record.kind, "white"), markup=False, highlight=False
        )

    def attach(self, stream: Subject) -> Callable[[], None]:
        """Subscribe to ``stream``; the returned function detaches the sink."""

        return stream.subscribe(self)


def render_log(log: Log, console: Optional[Console] = None) -> None:
    """Print a finished log tree."""

    console = console or Console()
    for node in log.walk():
        if node.is_blank:
            continue
        console.print(node.line(), style=STYLES.get(node.kind, "white"), markup=False, highlight=False)


def report_failure(error: FlowError, console: Optional[Console] = None) -> None:
    console = console or Console(stderr=True)
    console.print(f"Flow failed: {error}", style="bold red", markup=False, highlight=False)
