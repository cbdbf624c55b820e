"""Primitive and composite operations for building flows."""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import (
    Any,
    Callable,
    Iterable,
    Mapping,
    Optional,
    Sequence,
    TypeVar,
    Union,
)

from ..config import FlowSettings
from ..errors import (
    AssertionFailure,
    CapabilityFailure,
    CompositeFailure,
    ConfigurationError,
    FlowError,
    as_flow_error,
)
from ..log import Log
from ..models import LogKind
from ..state import FlowState, Outcome
from .computation import Computation, Run, resolve

LOGGER = logging.getLogger(__name__)

A = TypeVar("A")
B = TypeVar("B")
R = TypeVar("R")


def pure(value: A) -> Computation[A]:
    """Lift ``value`` into a computation that always succeeds."""

    return Computation.pure(value)


unit: Computation[None] = Computation.pure(None)


def fail(
    error: Union[str, BaseException],
    *,
    kind: type[FlowError] = AssertionFailure,
) -> Computation[Any]:
    """Log ``error`` and fault the state with it."""

    if isinstance(error, FlowError):
        record = error
    elif isinstance(error, BaseException):
        record = CapabilityFailure(str(error) or type(error).__name__, cause=error)
    else:
        record = kind(error)
    return error_log(record.message).then(Computation.failure(record))


# -- state --------------------------------------------------------------------


get_state: Computation[FlowState] = Computation(lambda env, state: Outcome(state, state))


def put_state(new_state: FlowState) -> Computation[None]:
    return Computation(lambda env, state: Outcome(None, new_state))


def modify_state(f: Callable[[FlowState], FlowState]) -> Computation[None]:
    return Computation(lambda env, state: Outcome(None, f(state)))


def lift(fn: Callable[[], A]) -> Computation[A]:
    """Run ``fn`` when the computation runs; an exception faults the state."""

    def program(env: Any, state: FlowState):
        value = yield from resolve(fn())
        return Outcome(value, state)

    return Computation(program)


def lift_state(fn: Callable[[FlowState], A]) -> Computation[A]:
    return Computation(lambda env, state: Outcome(fn(state), state))


def try_call(
    fn: Callable[[], A],
    label: Union[str, Callable[[BaseException], str]],
) -> Computation[A]:
    """Call an external function, wrapping anything it raises as a capability failure.

    ``fn`` may return an awaitable; it is awaited under the async driver.
    """

    def program(env: Any, state: FlowState):
        try:
            value = yield from resolve(fn())
        except Exception as exc:
            message = label(exc) if callable(label) else label
            LOGGER.debug("%s (%r)", message, exc)
            return (yield Run(fail(as_flow_error(exc, message)), env, state))
        return Outcome(value, state)

    return Computation(program)


def require(value: Optional[A], label: str) -> Computation[A]:
    """Succeed with ``value`` or fail with ``label`` when it is ``None``."""

    return pure(value) if value is not None else fail(label)


# -- environment --------------------------------------------------------------


def ask() -> Computation[Any]:
    """Return the environment injected at run start."""

    return Computation(lambda env, state: Outcome(env, state))


def asks(f: Callable[[Any], R]) -> Computation[R]:
    return ask().map(f)


def local(f: Callable[[Any], Any], computation: Computation[A]) -> Computation[A]:
    """Run ``computation`` with the environment mapped through ``f``."""

    def program(env: Any, state: FlowState):
        return (yield Run(computation, f(env), state))

    return Computation(program)


# -- configuration ------------------------------------------------------------


def init_config(
    configuration: Union[Mapping[str, str], Iterable[tuple[str, str]]],
) -> Computation[None]:
    items = dict(configuration)
    return modify_state(lambda state: state.evolve(configuration=items))


def config(key: str) -> Computation[str]:
    """Read a run configuration value."""

    def program(env: Any, state: FlowState):
        if key in state.configuration:
            return Outcome(state.configuration[key], state)
        return (yield Run(fail(ConfigurationError(f"Configuration key not found: {key}")), env, state))

    return Computation(program)


def init_settings(settings: FlowSettings) -> Computation[None]:
    return modify_state(lambda state: state.evolve(settings=settings))


default_wait: Computation[timedelta] = lift_state(lambda state: state.settings.wait)
default_interval: Computation[timedelta] = lift_state(lambda state: state.settings.interval)


# -- logging ------------------------------------------------------------------


def _publish(state: FlowState, node: Log) -> None:
    if state.muted or node.is_blank:
        return
    state.settings.logging_action(node.message, node.indent)
    state.settings.log_stream.publish(node.to_record())


def _write(kind: LogKind, message: str) -> Computation[None]:
    def program(env: Any, state: FlowState) -> Outcome[None]:
        log, added = state.log.append(kind, message)
        _publish(state, added)
        return Outcome(None, state.evolve(log=log))

    return Computation(program)


def info(message: str) -> Computation[None]:
    return _write(LogKind.INFO, message)


def warn(message: str) -> Computation[None]:
    """Log a warning; warnings never affect control flow."""

    return _write(LogKind.WARN, message)


def error_log(message: str) -> Computation[None]:
    """Log an error line without failing. Use :func:`fail` to stop the flow."""

    return _write(LogKind.ERROR, message)


def context(label: str, computation: Computation[A]) -> Computation[A]:
    """Run ``computation`` inside a named log scope.

    The scope is always closed, also when ``computation`` fails, and every error
    leaving the scope gets ``label`` prepended to its breadcrumb.
    """

    def program(env: Any, state: FlowState):
        scope = Log.context(label).rebase(state.log.child_indent)
        _publish(state, scope)
        inner = state.evolve(log=scope, context=(*state.context, label))
        outcome = yield Run(computation, env, inner)
        closed = outcome.state.evolve(
            log=state.log.merge(outcome.state.log),
            context=state.context,
            errors=tuple(err.within(label) for err in outcome.state.errors),
        )
        return Outcome(outcome.value, closed)

    return Computation(program)


def mute(computation: Computation[A]) -> Computation[A]:
    """Run ``computation`` without publishing log lines; the tree is still built."""

    def program(env: Any, state: FlowState):
        outcome = yield Run(computation, env, state.evolve(muted=True))
        return Outcome(outcome.value, outcome.state.evolve(muted=state.muted))

    return Computation(program)


# -- batches ------------------------------------------------------------------


def sequence(computations: Iterable[Computation[A]]) -> Computation[list[A]]:
    """Run computations in order, stopping at the first failure."""

    items = list(computations)

    def program(env: Any, state: FlowState):
        values: list[A] = []
        current = state
        for item in items:
            outcome = yield Run(item, env, current)
            if outcome.is_faulted:
                return outcome.discard_value()
            values.append(outcome.value)
            current = outcome.state
        return Outcome(values, current)

    return Computation(program)


def collect(computations: Iterable[Computation[A]]) -> Computation[list[Optional[A]]]:
    """Run every computation, folding all failures into one :class:`CompositeFailure`.

    Each item starts from an error-free state carrying the log written so far, so
    the log of successful and failed items is kept. Failed items yield ``None``.
    """

    items = list(computations)

    def program(env: Any, state: FlowState):
        values: list[Optional[A]] = []
        errors: list[FlowError] = []
        current = state
        for item in items:
            outcome = yield Run(item, env, current)
            values.append(None if outcome.is_faulted else outcome.value)
            errors.extend(outcome.errors)
            current = outcome.state.evolve(errors=())
        if errors:
            return Outcome(values, current.evolve(errors=(CompositeFailure(errors),)))
        return Outcome(values, current)

    return Computation(program)


# -- resources ----------------------------------------------------------------


def use(
    resource: A,
    release: Callable[[A], Any],
    f: Callable[[A], Computation[B]],
) -> Computation[B]:
    """Run ``f(resource)`` and release the resource afterwards, whatever happens."""

    def program(env: Any, state: FlowState):
        try:
            body = f(resource)
        except Exception as exc:
            body = Computation.failure(as_flow_error(exc))
        outcome = yield Run(body, env, state)
        try:
            yield from resolve(release(resource))
        except Exception as exc:
            return Outcome.fault(
                outcome.state, CapabilityFailure("Failed to release resource", cause=exc)
            )
        return outcome

    return Computation(program)


def _current_session(env: Any, state: FlowState) -> Outcome[Any]:
    if state.session is None:
        return Outcome.fault(state, ConfigurationError("session hasn't been selected yet"))
    return Outcome(state.session, state)


session: Computation[Any] = Computation(_current_session)


def call_session(label: str, fn: Callable[[Any], A]) -> Computation[A]:
    """Call ``fn`` with the current session, failing with ``label`` if it raises.

    This is the one seam between flows and a browser capability; ``fn`` may
    return an awaitable when the capability is asynchronous.
    """

    return session.bind(lambda handle: try_call(lambda: fn(handle), label))


def with_session(handle: Any, computation: Computation[A]) -> Computation[A]:
    """Run ``computation`` against ``handle``, then restore the previous session.

    The handle is quit afterwards only when ``dispose_on_completion`` is set.
    """

    def program(env: Any, state: FlowState):
        outcome = yield Run(computation, env, state.evolve(session=handle))
        if state.settings.dispose_on_completion:
            LOGGER.debug("Disposing session %r", handle)
            try:
                yield from resolve(handle.quit())
            except Exception:
                LOGGER.exception("Failed to quit session")
        return Outcome(outcome.value, outcome.state.evolve(session=state.session))

    return Computation(program)


def stopwatch(computation: Computation[A]) -> Computation[tuple[A, timedelta]]:
    """Run ``computation`` and return its value with the elapsed time."""

    def program(env: Any, state: FlowState):
        started = yield Run(info("Start stopwatch"), env, state)
        began = time.perf_counter()
        outcome = yield Run(computation, env, started.state)
        if outcome.is_faulted:
            return outcome.discard_value()
        elapsed = timedelta(seconds=time.perf_counter() - began)
        message = f"Stop stopwatch, elapsed time: {_format_elapsed(elapsed)}"
        stopped = yield Run(info(message), env, outcome.state)
        return Outcome((outcome.value, elapsed), stopped.state)

    return Computation(program)


def _format_elapsed(elapsed: timedelta) -> str:
    minutes, seconds = divmod(elapsed.total_seconds(), 60)
    return f"{int(minutes)}:{seconds:06.3f}"


def for_each(values: Sequence[A], f: Callable[[A], Computation[B]]) -> Computation[list[B]]:
    return sequence(f(value) for value in values)
