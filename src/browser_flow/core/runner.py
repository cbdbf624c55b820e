"""Entry points that interpret a computation from an empty run state."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Optional, TypeVar

from ..config import FlowSettings
from ..errors import FlowError, FlowErrorGroup
from ..state import FlowState, Outcome
from .computation import Computation, interpret, interpret_async

LOGGER = logging.getLogger(__name__)

A = TypeVar("A")


def run(
    computation: Computation[A],
    session: Optional[Any] = None,
    settings: Optional[FlowSettings] = None,
    *,
    env: Any = None,
) -> tuple[FlowState, Optional[A]]:
    """Interpret ``computation`` and return the final state and value."""

    state = FlowState.create(session=session, settings=settings)
    LOGGER.debug("Running %r", computation)
    outcome = interpret(computation, env, state)
    _dispose(outcome.state, session)
    return outcome.state, outcome.value


def run_and_raise(
    computation: Computation[A],
    session: Optional[Any] = None,
    settings: Optional[FlowSettings] = None,
    *,
    env: Any = None,
) -> tuple[FlowState, Optional[A]]:
    """Like :func:`run`, but a faulted run reports to the failure sink and raises."""

    state, value = run(computation, session, settings, env=env)
    _raise_on_failure(state)
    return state, value


async def run_async(
    computation: Computation[A],
    session: Optional[Any] = None,
    settings: Optional[FlowSettings] = None,
    *,
    env: Any = None,
) -> tuple[FlowState, Optional[A]]:
    """Interpret ``computation`` with the async driver."""

    state = FlowState.create(session=session, settings=settings)
    LOGGER.debug("Running %r asynchronously", computation)
    outcome: Outcome[A] = await interpret_async(computation, env, state)
    result = _dispose(outcome.state, session)
    if inspect.isawaitable(result):
        try:
            await result
        except Exception:
            LOGGER.exception("Failed to quit session")
    return outcome.state, outcome.value


async def run_and_raise_async(
    computation: Computation[A],
    session: Optional[Any] = None,
    settings: Optional[FlowSettings] = None,
    *,
    env: Any = None,
) -> tuple[FlowState, Optional[A]]:
    state, value = await run_async(computation, session, settings, env=env)
    _raise_on_failure(state)
    return state, value


def _dispose(state: FlowState, session: Optional[Any]) -> Any:
    if session is None or not state.settings.dispose_on_completion:
        return None
    LOGGER.debug("Disposing session at run end")
    try:
        return session.quit()
    except Exception:
        LOGGER.exception("Failed to quit session")
        return None


def _raise_on_failure(state: FlowState) -> None:
    if not state.is_faulted:
        return
    settings = state.settings
    for error in state.errors:
        settings.error_stream.publish(error)
    raised: FlowError = (
        state.errors[0] if len(state.errors) == 1 else FlowErrorGroup(state.errors)
    )
    settings.failure_action(raised, state.log)
    raise raised
