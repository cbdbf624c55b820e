"""Polling combinators built on top of :class:`Computation`."""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import Any, Callable, Optional, TypeVar, Union

from ..errors import FlowTimeoutError
from ..state import FlowState, Outcome
from .computation import Computation, Run, Sleep
from .prelude import fail, pure

LOGGER = logging.getLogger(__name__)

A = TypeVar("A")

Duration = Union[timedelta, float]


def _seconds(value: Optional[Duration], default: timedelta) -> float:
    if value is None:
        return default.total_seconds()
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


def pause(interval: Duration) -> Computation[None]:
    """Pause the flow; blocks the thread, or suspends under the async driver."""

    seconds = _seconds(interval, timedelta())

    def program(env: Any, state: FlowState):
        yield Sleep(seconds)
        return Outcome(None, state)

    return Computation(program)


def wait_until(
    computation: Computation[A],
    continue_if: Callable[[A], bool],
    interval: Optional[Duration] = None,
    wait: Optional[Duration] = None,
    label: str = "condition",
    describe: Optional[Callable[[A], str]] = None,
) -> Computation[A]:
    """Re-run ``computation`` while ``continue_if(value)`` holds, up to ``wait``.

    A failure of ``computation`` itself is returned immediately. Interval and
    wait default to the run settings; plain numbers are seconds. ``describe``
    turns the last value into extra detail for the timeout message.
    """

    def program(env: Any, state: FlowState):
        pause_for = _seconds(interval, state.settings.interval)
        timeout = _seconds(wait, state.settings.wait)
        started = time.monotonic()
        attempts = 0
        while True:
            outcome = yield Run(computation, env, state)
            attempts += 1
            if outcome.is_faulted or not continue_if(outcome.value):
                return outcome
            elapsed = time.monotonic() - started
            if elapsed >= timeout:
                LOGGER.warning(
                    "Timed out waiting for %s after %d attempts (%.3fs)", label, attempts, elapsed
                )
                message = f"Timed out after {timeout:g}s waiting for {label}"
                if describe is not None:
                    message = f"{message}: {describe(outcome.value)}"
                return (yield Run(fail(FlowTimeoutError(message)), env, state))
            yield Sleep(min(pause_for, timeout - elapsed))

    return Computation(program)


def wait_until_succeeds(
    computation: Computation[A],
    interval: Optional[Duration] = None,
    wait: Optional[Duration] = None,
    label: str = "step to succeed",
) -> Computation[A]:
    """Retry ``computation`` on failure until it succeeds or ``wait`` elapses.

    The timeout error carries the last failure's message.
    """

    attempt: Computation[tuple[bool, Any]] = computation.map(
        lambda value: (True, value)
    ).or_else(lambda errors: pure((False, errors)))

    return wait_until(
        attempt,
        lambda result: not result[0],
        interval,
        wait,
        label,
        describe=lambda result: str(result[1][-1]),
    ).map(lambda result: result[1])


def do_while(
    computation: Computation[A],
    continue_if: Callable[[A], bool],
    max_repeats: int = 100,
) -> Computation[Optional[A]]:
    """Run ``computation`` while ``continue_if`` holds, at most ``max_repeats`` times.

    Returns the last value once the repeats are exhausted.
    """

    def program(env: Any, state: FlowState):
        current = state
        value: Optional[A] = None
        for _ in range(max_repeats):
            outcome = yield Run(computation, env, current)
            if outcome.is_faulted:
                return outcome
            current = outcome.state
            value = outcome.value
            if not continue_if(value):
                break
        return Outcome(value, current)

    return Computation(program)


def do_while_or_fail(
    computation: Computation[A],
    continue_if: Callable[[A], bool],
    max_attempts: int = 100,
    interval: Optional[Duration] = None,
    message: str = "do while reached the max-attempts",
) -> Computation[A]:
    """Like :func:`do_while`, but running out of attempts fails with ``message``.

    ``interval`` optionally pauses between attempts.
    """

    def program(env: Any, state: FlowState):
        current = state
        for attempt in range(max_attempts):
            if attempt and interval is not None:
                yield Sleep(_seconds(interval, timedelta()))
            outcome = yield Run(computation, env, current)
            if outcome.is_faulted or not continue_if(outcome.value):
                return outcome
            current = outcome.state
        return (yield Run(fail(message), env, current))

    return Computation(program)
