"""The effect type that threads run-state through every step of a flow.

A :class:`Computation` wraps a *program*: a function of ``(env, state)`` that
either returns an :class:`~browser_flow.state.Outcome` directly or is a
generator. Generators talk to the interpreter by yielding requests:

* :class:`Run` interprets a nested computation and sends back its outcome,
* :class:`Await` suspends on an awaitable (only under the async driver),
* :class:`Sleep` blocks or suspends for a number of seconds.

Combinators are written once against this protocol; :func:`interpret` and
:func:`interpret_async` are the two drivers.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import time
from dataclasses import dataclass
from typing import (
    Any,
    Awaitable,
    Callable,
    Generator,
    Generic,
    Iterable,
    Optional,
    TypeVar,
    Union,
)

from ..errors import CapabilityFailure, FlowError, as_flow_error
from ..state import FlowState, Outcome

LOGGER = logging.getLogger(__name__)

A = TypeVar("A")
B = TypeVar("B")


@dataclass(frozen=True)
class Run:
    """Ask the driver to interpret ``computation`` from ``state``."""

    computation: "Computation[Any]"
    env: Any
    state: FlowState


@dataclass(frozen=True)
class Await:
    """Ask the driver to await ``awaitable`` and send back its result."""

    awaitable: Awaitable[Any]


@dataclass(frozen=True)
class Sleep:
    """Ask the driver to pause for ``seconds``."""

    seconds: float


Request = Union[Run, Await, Sleep]
ProgramResult = Union[Outcome[Any], Generator[Request, Any, Outcome[Any]]]
Program = Callable[[Any, FlowState], ProgramResult]


class Computation(Generic[A]):
    """A step, or a composed chain of steps, run against a :class:`FlowState`."""

    __slots__ = ("_program",)

    def __init__(self, program: Program) -> None:
        self._program = program

    @property
    def program(self) -> Program:
        return self._program

    @classmethod
    def pure(cls, value: A) -> "Computation[A]":
        return cls(lambda env, state: Outcome(value, state))

    @classmethod
    def failure(cls, *errors: FlowError) -> "Computation[A]":
        """Fault the state with ``errors`` without writing to the log."""

        return cls(lambda env, state: Outcome.fault(state, *errors))

    def bind(self, f: Callable[[A], "Computation[B]"]) -> "Computation[B]":
        """Run ``self`` then the computation ``f`` builds from its value."""

        first = self

        def program(env: Any, state: FlowState):
            outcome = yield Run(first, env, state)
            if outcome.is_faulted:
                return outcome.discard_value()
            return (yield Run(f(outcome.value), env, outcome.state))

        return Computation(program)

    def map(self, f: Callable[[A], B]) -> "Computation[B]":
        first = self

        def program(env: Any, state: FlowState):
            outcome = yield Run(first, env, state)
            if outcome.is_faulted:
                return outcome.discard_value()
            return Outcome(f(outcome.value), outcome.state)

        return Computation(program)

    def then(self, other: "Computation[B]") -> "Computation[B]":
        return self.bind(lambda _: other)

    def or_else(
        self,
        alternative: Union["Computation[A]", Callable[[tuple[FlowError, ...]], "Computation[A]"]],
    ) -> "Computation[A]":
        """Run ``alternative`` from the same starting state when ``self`` fails.

        ``alternative`` may be a function receiving the errors of ``self``. When
        both sides fail, the errors of both are kept, left side first.
        """

        first = self

        def program(env: Any, state: FlowState):
            left = yield Run(first, env, state)
            if not left.is_faulted:
                return left
            rhs = alternative if isinstance(alternative, Computation) else alternative(left.errors)
            right = yield Run(rhs, env, state)
            if not right.is_faulted:
                return right
            return Outcome.fault(state, *left.errors, *right.errors)

        return Computation(program)

    def __or__(self, other: "Computation[A]") -> "Computation[A]":
        return self.or_else(other)

    def map_fail(
        self,
        f: Callable[[tuple[FlowError, ...]], Union[FlowError, Iterable[FlowError]]],
    ) -> "Computation[A]":
        """Replace the errors of a failed run with ``f(errors)``."""

        return self.bimap(lambda value: value, f)

    def bimap(
        self,
        succ: Callable[[A], B],
        fail: Callable[[tuple[FlowError, ...]], Union[FlowError, Iterable[FlowError]]],
    ) -> "Computation[B]":
        """Map the value of a successful run or the errors of a failed one.

        A failed run stays failed: when ``fail`` returns no errors the original
        ones are kept.
        """

        first = self

        def program(env: Any, state: FlowState):
            outcome = yield Run(first, env, state)
            if not outcome.is_faulted:
                return Outcome(succ(outcome.value), outcome.state)
            mapped = fail(outcome.errors)
            errors = (mapped,) if isinstance(mapped, FlowError) else tuple(mapped)
            if not errors:
                LOGGER.debug("Error mapping returned nothing; keeping %r", outcome.errors)
                return outcome.discard_value()
            return Outcome(None, outcome.state.evolve(errors=errors))

        return Computation(program)

    def __repr__(self) -> str:
        name = getattr(self._program, "__qualname__", type(self._program).__name__)
        return f"Computation({name})"


def flow(fn: Callable[..., Any]) -> Callable[..., Computation[Any]]:
    """Turn a generator function that yields computations into a computation.

    Each yielded computation runs against the current state and its value is sent
    back into the generator. The first failure closes the generator and becomes
    the result; the generator's return value is the computation's value.
    """

    @functools.wraps(fn)
    def build(*args: Any, **kwargs: Any) -> Computation[Any]:
        def program(env: Any, state: FlowState):
            body = fn(*args, **kwargs)
            if isinstance(body, Computation):
                return (yield Run(body, env, state))
            if not inspect.isgenerator(body):
                return Outcome(body, state)
            current = state
            reply: Any = None
            while True:
                try:
                    step = body.send(reply)
                except StopIteration as stop:
                    return Outcome(stop.value, current)
                except Exception as exc:
                    return Outcome.fault(current, as_flow_error(exc))
                if not isinstance(step, Computation):
                    body.close()
                    return Outcome.fault(
                        current,
                        CapabilityFailure(f"flow yielded {step!r}, expected a computation"),
                    )
                outcome = yield Run(step, env, current)
                if outcome.is_faulted:
                    body.close()
                    return outcome.discard_value()
                current = outcome.state
                reply = outcome.value

        return Computation(program)

    return build


class AsyncStepError(RuntimeError):
    """A step needs the async driver but the flow runs synchronously."""


def _start(computation: Computation[Any], env: Any, state: FlowState) -> ProgramResult:
    try:
        return computation.program(env, state)
    except Exception as exc:
        LOGGER.debug("Step raised %r", exc)
        return Outcome.fault(state, as_flow_error(exc))


class _Frames:
    """Suspended generators of a run, innermost last.

    Nested ``Run`` requests push a frame instead of recursing, so the length of
    a chain is not bounded by the interpreter's recursion limit. Only ``Sleep``
    and ``Await`` requests are handed back to the driver.
    """

    def __init__(self) -> None:
        self._stack: list[tuple[Generator[Request, Any, Outcome[Any]], FlowState]] = []

    def _push(
        self, computation: Computation[Any], env: Any, state: FlowState
    ) -> Optional[Outcome[Any]]:
        started = _start(computation, env, state)
        if isinstance(started, Outcome):
            return started
        self._stack.append((started, state))
        return None

    def begin(
        self, computation: Computation[Any], env: Any, state: FlowState
    ) -> Union[Outcome[Any], Sleep, Await]:
        outcome = self._push(computation, env, state)
        return outcome if outcome is not None else self.resume()

    def resume(
        self,
        value: Any = None,
        error: Optional[BaseException] = None,
    ) -> Union[Outcome[Any], Sleep, Await]:
        """Send ``value`` (or throw ``error``) into the innermost frame."""

        reply = value
        while self._stack:
            generator, start = self._stack[-1]
            try:
                if error is not None:
                    request = generator.throw(error)
                else:
                    request = generator.send(reply)
            except StopIteration as stop:
                self._stack.pop()
                reply = stop.value
            except Exception as exc:
                LOGGER.debug("Step raised %r", exc)
                self._stack.pop()
                reply = Outcome.fault(start, as_flow_error(exc))
            else:
                if isinstance(request, (Sleep, Await)):
                    return request
                if isinstance(request, Run):
                    reply = self._push(request.computation, request.env, request.state)
                else:
                    generator.close()
                    self._stack.pop()
                    unsupported = TypeError(f"Unsupported request: {request!r}")
                    reply = Outcome.fault(start, as_flow_error(unsupported))
            error = None
        return reply


def interpret(computation: Computation[A], env: Any, state: FlowState) -> Outcome[A]:
    """Synchronous driver."""

    frames = _Frames()
    request = frames.begin(computation, env, state)
    while not isinstance(request, Outcome):
        if isinstance(request, Sleep):
            time.sleep(max(request.seconds, 0.0))
            request = frames.resume()
        else:
            _close_awaitable(request.awaitable)
            request = frames.resume(error=AsyncStepError("asynchronous step requires run_async"))
    return request


async def interpret_async(computation: Computation[A], env: Any, state: FlowState) -> Outcome[A]:
    """Asynchronous driver; suspends only around awaited steps and sleeps."""

    frames = _Frames()
    request = frames.begin(computation, env, state)
    while not isinstance(request, Outcome):
        if isinstance(request, Sleep):
            await asyncio.sleep(max(request.seconds, 0.0))
            request = frames.resume()
        else:
            try:
                value = await request.awaitable
            except Exception as exc:
                request = frames.resume(error=exc)
            else:
                request = frames.resume(value)
    return request


def _close_awaitable(awaitable: Awaitable[Any]) -> None:
    if inspect.iscoroutine(awaitable):
        awaitable.close()


def resolve(value: Any):
    """Generator helper: await ``value`` when it is awaitable, else pass it through.

    Use as ``result = yield from resolve(session.current_url())`` inside a
    program so the same step works with sync and async capabilities.
    """

    if inspect.isawaitable(value):
        return (yield Await(value))
    return value


def as_computation(value: Union[Computation[A], A]) -> Computation[A]:
    return value if isinstance(value, Computation) else Computation.pure(value)
