"""Run-state threaded through every step of a flow."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Generic, Iterable, Mapping, Optional, TypeVar

from .config import FlowSettings
from .errors import FlowError
from .log import Log

A = TypeVar("A")

_EMPTY_CONFIGURATION: Mapping[str, str] = MappingProxyType({})


@dataclass(frozen=True)
class FlowState:
    """Immutable snapshot of a run.

    ``session`` is owned by the caller; the state only carries it. ``errors`` is
    an ordered tuple and a non-empty tuple marks the state as faulted.
    """

    session: Optional[Any] = None
    settings: FlowSettings = field(default_factory=FlowSettings)
    configuration: Mapping[str, str] = field(default_factory=lambda: _EMPTY_CONFIGURATION)
    errors: tuple[FlowError, ...] = ()
    log: Log = field(default_factory=Log.empty)
    context: tuple[str, ...] = ()
    muted: bool = False

    @classmethod
    def create(
        cls,
        session: Optional[Any] = None,
        settings: Optional[FlowSettings] = None,
    ) -> "FlowState":
        return cls(session=session, settings=settings or FlowSettings())

    @property
    def is_faulted(self) -> bool:
        return bool(self.errors)

    def evolve(self, **changes: Any) -> "FlowState":
        """Return a copy with ``changes`` applied."""

        if "configuration" in changes:
            changes["configuration"] = MappingProxyType(dict(changes["configuration"]))
        return replace(self, **changes)

    def add_error(self, error: FlowError) -> "FlowState":
        return replace(self, errors=(*self.errors, error))

    def add_errors(self, errors: Iterable[FlowError]) -> "FlowState":
        return replace(self, errors=(*self.errors, *errors))


@dataclass(frozen=True)
class Outcome(Generic[A]):
    """Value produced by a step together with the state it left behind."""

    value: Optional[A]
    state: FlowState

    @property
    def is_faulted(self) -> bool:
        return self.state.is_faulted

    @property
    def errors(self) -> tuple[FlowError, ...]:
        return self.state.errors

    @classmethod
    def fault(cls, state: FlowState, *errors: FlowError) -> "Outcome[A]":
        return cls(None, state.add_errors(errors))

    def discard_value(self) -> "Outcome[Any]":
        return Outcome(None, self.state)
