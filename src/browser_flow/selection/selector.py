"""Composable, lazily executed element queries.

A :class:`Selector` is an ordered tuple of steps. Nothing touches the browser
until the selector is resolved into a computation; at that point the steps run
left to right over the current result set. A criterion step with no result set
yet queries the page, otherwise it queries inside every element found so far.
Filter, wait and index steps need a preceding query.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict

from ..core.computation import Computation
from ..core.prelude import call_session, fail, pure, sequence
from ..core.retry import wait_until_succeeds
from ..errors import ResolutionFailure
from ..models import By, Criterion, Point, Size

STEP_SEPARATOR = " → "

Elements = list[Any]
Predicate = Callable[[Elements], Computation[Any]]
Duration = Union[timedelta, float]


@dataclass(frozen=True)
class Query:
    """Look elements up by ``criterion``."""

    criterion: Criterion

    @property
    def description(self) -> str:
        return str(self.criterion)

    def compile(self, prefix: Optional[Computation[Elements]]) -> Computation[Elements]:
        criterion = self.criterion
        if prefix is None:
            return call_session(
                f"Failed to find elements {criterion}",
                lambda handle: handle.find_elements(criterion),
            )
        return prefix.bind(lambda found: _find_inside(criterion, found))


def _find_inside(criterion: Criterion, found: Elements) -> Computation[Elements]:
    if not found:
        return pure([])

    def lookup(element: Any) -> Computation[Elements]:
        return call_session(
            f"Failed to find elements {criterion} inside an element",
            lambda handle: handle.find_elements(criterion, within=element),
        )

    return sequence(lookup(element) for element in found).map(
        lambda groups: [element for group in groups for element in group]
    )


def _standalone(action: str) -> Computation[Elements]:
    return fail(
        ResolutionFailure(f"{action} must follow something that queries elements.  It can't run alone")
    )


@dataclass(frozen=True)
class Filter:
    """Check the current result set with ``predicate``; a failure fails the selector."""

    predicate: Predicate
    description: str

    def compile(self, prefix: Optional[Computation[Elements]]) -> Computation[Elements]:
        if prefix is None:
            return _standalone("filtering")
        predicate = self.predicate
        return prefix.bind(lambda found: predicate(found).then(pure(found)))


@dataclass(frozen=True)
class WaitFor:
    """Re-run the preceding query until ``predicate`` accepts its result."""

    predicate: Predicate
    description: str
    interval: Optional[Duration] = None
    wait: Optional[Duration] = None

    def compile(self, prefix: Optional[Computation[Elements]]) -> Computation[Elements]:
        if prefix is None:
            return _standalone("`wait_for`")
        predicate = self.predicate
        attempt = prefix.bind(lambda found: predicate(found).then(pure(found)))
        return wait_until_succeeds(attempt, self.interval, self.wait, self.description)


@dataclass(frozen=True)
class Pick:
    """Keep only the element at ``index`` (zero based)."""

    index: int

    @property
    def description(self) -> str:
        return f"at index {self.index}"

    def compile(self, prefix: Optional[Computation[Elements]]) -> Computation[Elements]:
        if prefix is None:
            return _standalone("index selection")
        index = self.index

        def pick(found: Elements) -> Computation[Elements]:
            if 0 <= index < len(found):
                return pure([found[index]])
            return fail(
                ResolutionFailure(
                    "Index is out of range of the matching elements.  "
                    f"Only {len(found)} elements found, element at index {index} requested"
                )
            )

        return prefix.bind(pick)


Step = Union[Query, Filter, WaitFor, Pick]

MATCH_ALL = Criterion(by=By.CSS, value="*")


def _require_some(found: Elements) -> Computation[Elements]:
    if found:
        return pure(found)
    return fail(ResolutionFailure("No elements: expected at least one element"))


def _require_single(found: Elements) -> Computation[Elements]:
    if not found:
        return fail(ResolutionFailure("No elements: expected one element"))
    if len(found) > 1:
        return fail(ResolutionFailure("Too many elements: expected only one"))
    return pure(found)


def _require_exists(found: Elements) -> Computation[Elements]:
    return pure(found) if found else Computation.failure(ResolutionFailure("No elements"))


@dataclass(frozen=True)
class Selector:
    """Ordered steps describing how to locate elements.

    Selectors concatenate with ``+``; the empty selector is the identity and,
    resolved on its own, matches every element of the page.
    """

    steps: tuple[Step, ...] = ()

    @classmethod
    def identity(cls) -> "Selector":
        return cls()

    @classmethod
    def of(cls, by: By, value: str) -> "Selector":
        return cls((Query(Criterion(by=by, value=value)),))

    def __add__(self, other: "Selector") -> "Selector":
        if not isinstance(other, Selector):
            return NotImplemented
        return Selector(self.steps + other.steps)

    def then(self, step: Step) -> "Selector":
        return Selector((*self.steps, step))

    def at_index(self, index: int) -> "Selector":
        return self.then(Pick(index))

    def filter_by(self, predicate: Predicate, description: str) -> "Selector":
        return self.then(Filter(predicate, description))

    def wait_for(
        self,
        predicate: Predicate,
        description: str,
        interval: Optional[Duration] = None,
        wait: Optional[Duration] = None,
    ) -> "Selector":
        return self.then(WaitFor(predicate, description, interval, wait))

    def when_at_least_one(self) -> "Selector":
        return self.filter_by(_require_some, "when at least one")

    def when_single(self) -> "Selector":
        return self.filter_by(_require_single, "when single")

    def wait_until_exists(self) -> "Selector":
        return self.wait_for(_require_exists, "wait until exists")

    def wait_until_exists_for(self, interval: Duration, wait: Duration) -> "Selector":
        return self.wait_for(_require_exists, "wait until exists", interval, wait)

    def compile(self, start: Optional[Computation[Elements]] = None) -> Computation[Elements]:
        """Build the computation that runs the steps after ``start``."""

        prefix = start
        for step in self.steps:
            prefix = step.compile(prefix)
        if prefix is None:
            return Query(MATCH_ALL).compile(None)
        return prefix

    def __str__(self) -> str:
        if not self.steps:
            return "all elements"
        return STEP_SEPARATOR.join(step.description for step in self.steps)


SelectorLike = Union[Selector, Criterion, str]


def as_selector(value: SelectorLike) -> Selector:
    """Accept a selector, a criterion or a CSS string."""

    if isinstance(value, Selector):
        return value
    if isinstance(value, Criterion):
        return Selector((Query(value),))
    return css(value)


def css(value: str) -> Selector:
    return Selector.of(By.CSS, value)


def xpath(value: str) -> Selector:
    return Selector.of(By.XPATH, value)


def element_id(value: str) -> Selector:
    return Selector.of(By.ID, value)


def name(value: str) -> Selector:
    return Selector.of(By.NAME, value)


def tag_name(value: str) -> Selector:
    return Selector.of(By.TAG_NAME, value)


def class_name(value: str) -> Selector:
    return Selector.of(By.CLASS_NAME, value)


def link_text(value: str) -> Selector:
    return Selector.of(By.LINK_TEXT, value)


def partial_link_text(value: str) -> Selector:
    return Selector.of(By.PARTIAL_LINK_TEXT, value)


# -- resolution ---------------------------------------------------------------


def find_all(selector: SelectorLike) -> Computation[Elements]:
    return as_selector(selector).compile()


def find_inside(element: Any, selector: SelectorLike) -> Computation[Elements]:
    """Resolve ``selector`` relative to an element found earlier."""

    return as_selector(selector).compile(pure([element]))


def find_one(selector: SelectorLike) -> Computation[Any]:
    """Resolve to exactly one element."""

    resolved = as_selector(selector)

    def single(found: Elements) -> Computation[Any]:
        if not found:
            return fail(ResolutionFailure(f"Element not found: {resolved}"))
        if len(found) > 1:
            return fail(
                ResolutionFailure(f"More than one element found that matches the selector: {resolved}")
            )
        return pure(found[0])

    return resolved.compile().bind(single)


def find_first(selector: SelectorLike) -> Computation[Any]:
    """Resolve to the first match; fails only when nothing matches."""

    resolved = as_selector(selector)

    def first(found: Elements) -> Computation[Any]:
        if not found:
            return fail(ResolutionFailure(f"Element not found: {resolved}"))
        return pure(found[0])

    return resolved.compile().bind(first)


def find_first_or_none(selector: SelectorLike) -> Computation[Optional[Any]]:
    return as_selector(selector).compile().map(lambda found: found[0] if found else None)


# -- snapshots ----------------------------------------------------------------


class ElementSnapshot(BaseModel):
    """Observable properties of an element captured at resolution time."""

    model_config = ConfigDict(frozen=True)

    selector: str
    index: int
    element_id: str = ""
    tag: str = ""
    text: str = ""
    enabled: bool = False
    selected: bool = False
    location: Point = Point()
    size: Size = Size()
    displayed: bool = False

    def describe(self) -> str:
        ident = f"#{self.element_id}" if self.element_id else ""
        return (
            f"[{self.index}] <{self.tag}{ident}> text={self.text!r} enabled={self.enabled} "
            f"selected={self.selected} displayed={self.displayed} "
            f"at ({self.location.x}, {self.location.y}) size {self.size.width}x{self.size.height}"
        )


def snapshot_element(element: Any, selector: SelectorLike, index: int = 0) -> Computation[ElementSnapshot]:
    """Probe ``element``; an unreadable identifier becomes an empty string."""

    label = str(as_selector(selector))

    def probe(method: str) -> Computation[Any]:
        return call_session(
            f"Failed to read {method.replace('_', ' ')} of {label}",
            lambda handle: getattr(handle, method)(element),
        )

    identifier = probe("element_id").or_else(pure(""))
    probes = [
        probe(method)
        for method in ("tag_name", "text", "is_enabled", "is_selected", "location", "size", "is_displayed")
    ]

    def build(values: list[Any]) -> ElementSnapshot:
        ident, tag, text, enabled, selected, location, size, displayed = values
        return ElementSnapshot(
            selector=label,
            index=index,
            element_id=ident,
            tag=tag,
            text=text,
            enabled=enabled,
            selected=selected,
            location=location,
            size=size,
            displayed=displayed,
        )

    return sequence([identifier, *probes]).map(build)


def snapshot(selector: SelectorLike) -> Computation[list[ElementSnapshot]]:
    """Capture every element the selector matches."""

    resolved = as_selector(selector)
    return find_all(resolved).bind(
        lambda found: sequence(
            snapshot_element(element, resolved, index) for index, element in enumerate(found)
        )
    )
