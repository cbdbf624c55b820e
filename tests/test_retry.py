import itertools
import time

from browser_flow.core.prelude import fail, info, lift, pure
from browser_flow.core.retry import do_while, do_while_or_fail, pause, wait_until, wait_until_succeeds
from browser_flow.core.runner import run
from browser_flow.errors import AssertionFailure, FlowTimeoutError


def test_wait_until_times_out_within_one_interval():
    started = time.monotonic()
    state, _ = run(wait_until(pure(1), lambda value: True, interval=0.01, wait=0.05))
    elapsed = time.monotonic() - started

    assert isinstance(state.errors[0], FlowTimeoutError)
    assert "Timed out after 0.05s" in str(state.errors[0])
    # Allow for scheduler slack on top of timeout plus one interval.
    assert elapsed < 0.05 + 0.01 + 0.1


def test_wait_until_does_not_retry_failures():
    attempts: list[int] = []
    step = lift(lambda: attempts.append(1)).then(fail("broken"))

    state, _ = run(wait_until(step, lambda value: True, interval=0.001, wait=1))

    assert attempts == [1]
    assert [str(err) for err in state.errors] == ["broken"]


def test_wait_until_returns_first_acceptable_value():
    counter = itertools.count(1)

    state, value = run(wait_until(lift(lambda: next(counter)), lambda value: value < 3, interval=0.001, wait=1))

    assert value == 3
    assert state.errors == ()


def test_wait_until_keeps_only_the_last_attempt_log():
    counter = itertools.count(1)
    step = info("poll").then(lift(lambda: next(counter)))

    state, _ = run(wait_until(step, lambda value: value < 4, interval=0.001, wait=1))

    assert state.log.lines() == ["INFO: poll"]


def test_wait_until_uses_settings_defaults(settings):
    state, _ = run(wait_until(pure(0), lambda value: True), settings=settings)

    assert str(state.errors[0]) == "Timed out after 0.2s waiting for condition"
    assert state.log.lines() == ["ERRO: Timed out after 0.2s waiting for condition"]


def test_wait_until_succeeds_retries_failures():
    counter = itertools.count(1)

    def attempt(number):
        return pure(number) if number >= 3 else fail(f"attempt {number} failed")

    step = lift(lambda: next(counter)).bind(attempt)

    state, value = run(wait_until_succeeds(step, interval=0.001, wait=1))

    assert value == 3
    assert state.errors == ()


def test_wait_until_succeeds_reports_last_error_on_timeout():
    state, _ = run(wait_until_succeeds(fail("still missing"), interval=0.01, wait=0.03, label="banner"))

    error = state.errors[0]
    assert isinstance(error, FlowTimeoutError)
    assert str(error) == "Timed out after 0.03s waiting for banner: still missing"


def test_do_while_returns_last_value_when_repeats_run_out():
    counter = itertools.count(1)

    _, value = run(do_while(lift(lambda: next(counter)), lambda value: True, max_repeats=2))

    assert value == 2


def test_do_while_stops_when_condition_clears():
    counter = itertools.count(1)

    _, value = run(do_while(lift(lambda: next(counter)), lambda value: value < 3))

    assert value == 3


def test_do_while_or_fail_fails_with_caller_message():
    state, _ = run(do_while_or_fail(pure(0), lambda value: True, max_attempts=3, message="gave up"))

    assert isinstance(state.errors[0], AssertionFailure)
    assert str(state.errors[0]) == "gave up"


def test_pause_sleeps():
    started = time.monotonic()
    run(pause(0.02))

    assert time.monotonic() - started >= 0.02
