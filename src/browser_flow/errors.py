"""Error records carried by a flow run."""

from __future__ import annotations

import copy
from typing import Iterable, Optional

BREADCRUMB_SEPARATOR = " → "


class FlowError(Exception):
    """Base class for every failure recorded in a run state.

    Errors are treated as values: they are stored in the state, never raised
    while a computation is being interpreted. ``breadcrumb`` holds the labels of
    the enclosing contexts, outermost first.
    """

    def __init__(
        self,
        message: str,
        *,
        breadcrumb: Iterable[str] = (),
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.breadcrumb: tuple[str, ...] = tuple(breadcrumb)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def within(self, label: str) -> "FlowError":
        """Return a copy of the error nested inside the context ``label``."""

        clone = copy.copy(self)
        clone.breadcrumb = (label, *self.breadcrumb)
        return _keep_chain(clone, self)

    def __str__(self) -> str:
        if not self.breadcrumb:
            return self.message
        return f"{self.message} ({BREADCRUMB_SEPARATOR.join(self.breadcrumb)})"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FlowError):
            return NotImplemented
        return type(self) is type(other) and str(self) == str(other)

    def __hash__(self) -> int:
        return hash((type(self).__name__, str(self)))


class AssertionFailure(FlowError):
    """Explicit failure raised by ``fail`` or an assertion helper."""


class CapabilityFailure(FlowError):
    """An external call raised; ``cause`` holds the original exception."""

    @property
    def detail(self) -> str:
        return str(self.cause) if self.cause is not None else ""


class FlowTimeoutError(FlowError):
    """A retry loop exceeded its total wait."""


class ResolutionFailure(FlowError):
    """An element query produced an unusable result set."""


class ConfigurationError(FlowError):
    """A configuration key or the session handle is missing."""


class CompositeFailure(FlowError):
    """Several failures folded into a single record by ``collect``.

    Enclosing contexts are pushed into the members, so the joined message
    shows where each failure happened.
    """

    def __init__(self, errors: Iterable[FlowError], **kwargs: object) -> None:
        self.errors: tuple[FlowError, ...] = tuple(errors)
        super().__init__("; ".join(str(err) for err in self.errors), **kwargs)  # type: ignore[arg-type]

    def within(self, label: str) -> "CompositeFailure":
        """Nest every member inside ``label`` and rebuild the joined message."""

        clone = CompositeFailure(
            [err.within(label) for err in self.errors],
            breadcrumb=(label, *self.breadcrumb),
            cause=self.cause,
        )
        return _keep_chain(clone, self)

    def __str__(self) -> str:
        return self.message


class FlowErrorGroup(FlowError):
    """Raised by ``run_and_raise`` when a run ends with more than one error."""

    def __init__(self, errors: Iterable[FlowError]) -> None:
        self.errors: tuple[FlowError, ...] = tuple(errors)
        super().__init__("\n".join(str(err) for err in self.errors))


def _keep_chain(clone: FlowError, source: FlowError) -> FlowError:
    clone.__cause__ = source.__cause__
    clone.__context__ = source.__context__
    clone.__suppress_context__ = source.__suppress_context__
    return clone.with_traceback(source.__traceback__)


def as_flow_error(exc: BaseException, label: Optional[str] = None) -> FlowError:
    """Wrap an arbitrary exception as a :class:`CapabilityFailure`."""

    if isinstance(exc, FlowError) and label is None:
        return exc
    detail = str(exc) or type(exc).__name__
    message = f"{label}: {detail}" if label else detail
    return CapabilityFailure(message, cause=exc)
