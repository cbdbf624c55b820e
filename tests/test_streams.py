from io import StringIO

from rich.console import Console

from browser_flow.core.prelude import context, fail, info
from browser_flow.core.runner import run
from browser_flow.config import FlowSettings
from browser_flow.errors import AssertionFailure
from browser_flow.models import LogKind, LogRecord
from browser_flow.reporting import ConsoleLogSink, render_log, report_failure
from browser_flow.streams import Recorder, Subject


def _console(buffer: StringIO) -> Console:
    return Console(file=buffer, force_terminal=False, color_system=None, width=120)


def test_subject_fans_out_and_unsubscribes():
    subject: Subject[int] = Subject()
    first: list[int] = []
    second = Recorder(subject)
    unsubscribe = subject.subscribe(first.append)

    subject.publish(1)
    unsubscribe()
    second.close()
    subject.publish(2)

    assert first == [1]
    assert second.items == [1]
    assert subject.subscriber_count == 0


def test_console_sink_prints_records_as_they_arrive():
    buffer = StringIO()
    settings = FlowSettings()
    detach = ConsoleLogSink(_console(buffer)).attach(settings.log_stream)

    run(context("Search [beta]", info("typed")), settings=settings)
    detach()

    assert buffer.getvalue().splitlines() == ["Search [beta]", "    INFO: typed"]


def test_render_log_and_failure_report():
    buffer = StringIO()
    state, _ = run(context("A", fail("boom")))

    render_log(state.log, _console(buffer))
    report_failure(state.errors[0], _console(buffer))

    assert buffer.getvalue().splitlines() == ["A", "    ERRO: boom", "Flow failed: boom (A)"]


def test_log_record_render():
    record = LogRecord(message="careful", kind=LogKind.WARN, indent=2)

    assert record.render() == "        WARN: careful"
    assert isinstance(AssertionFailure("x"), Exception)
