"""Assertions that log their outcome and fail the flow when they do not hold."""

from __future__ import annotations

from typing import Union

from .browser import actions
from .core.computation import Computation, as_computation
from .core.prelude import fail, info
from .selection.selector import SelectorLike, as_selector


def assert_that(fact: Union[bool, Computation[bool]], label: str) -> Computation[None]:
    """Fail with ``label`` unless ``fact`` (or the value it computes) is true."""

    def check(holds: bool) -> Computation[None]:
        if holds:
            return info(f"Assert {label}: passed")
        return fail(f"Assertion failed: {label}")

    return as_computation(fact).bind(check)


def assert_element_has_text(selector: SelectorLike, expected: str) -> Computation[None]:
    resolved = as_selector(selector)

    def compare(actual: str) -> Computation[None]:
        if actual == expected:
            return info(f'Assert {resolved} has text "{expected}": passed')
        return fail(f'Expected {resolved} to have text "{expected}" but found "{actual}"')

    return actions.text(resolved).bind(compare)


def assert_element_is_displayed(selector: SelectorLike) -> Computation[None]:
    resolved = as_selector(selector)
    return assert_that(actions.displayed(resolved), f"{resolved} is displayed")
