"""Computations that drive the browser capability.

Every action reaches the session through :func:`call_session`, so the same
flow runs against the sync and the async Playwright sessions.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from ..core.computation import Computation
from ..core.prelude import call_session, context, info, pure, sequence
from ..core.retry import Duration, wait_until_succeeds
from ..errors import AssertionFailure
from ..selection.selector import (
    ElementSnapshot,
    SelectorLike,
    as_selector,
    find_all,
    find_inside,
    find_one,
    snapshot,
)

OBSCURED_SCRIPT = """([el]) => {
    const box = el.getBoundingClientRect();
    const top = document.elementFromPoint(box.left + box.width / 2, box.top + box.height / 2);
    return top !== null && top !== el && !el.contains(top);
}"""


# -- browser ------------------------------------------------------------------


def navigate(url: str) -> Computation[None]:
    return info(f"Navigate to {url}").then(
        call_session(f"Failed to navigate to {url}", lambda s: s.navigate(url))
    )


def current_url() -> Computation[str]:
    return call_session("Failed to read the current url", lambda s: s.current_url())


def set_window_size(width: int, height: int) -> Computation[None]:
    return info(f"Set window size to {width}x{height}").then(
        call_session("Failed to set the window size", lambda s: s.set_window_size(width, height))
    )


def set_window_position(x: int, y: int) -> Computation[None]:
    return info(f"Move window to {x}, {y}").then(
        call_session(f"Failed to move the window to {x}, {y}", lambda s: s.set_window_position(x, y))
    )


def maximise_window() -> Computation[None]:
    return info("Maximise window").then(
        call_session("Failed to maximise the window", lambda s: s.maximise_window())
    )


def new_tab() -> Computation[None]:
    return info("Open new tab").then(call_session("Failed to open a new tab", lambda s: s.new_tab()))


def new_window() -> Computation[None]:
    return info("Open new window").then(
        call_session("Failed to open a new window", lambda s: s.new_window())
    )


def switch_tab(position: int) -> Computation[None]:
    """Focus the tab at ``position``, counting from zero in opening order."""

    return info(f"Switch to tab {position}").then(
        call_session(f"Failed to switch to tab {position}", lambda s: s.switch_tab(position))
    )


def close_tab() -> Computation[None]:
    return info("Close tab").then(call_session("Failed to close the tab", lambda s: s.close_tab()))


def back() -> Computation[None]:
    return info("Navigate back").then(call_session("Failed to navigate back", lambda s: s.back()))


def forward() -> Computation[None]:
    return info("Navigate forward").then(
        call_session("Failed to navigate forward", lambda s: s.forward())
    )


def refresh() -> Computation[None]:
    return info("Refresh page").then(call_session("Failed to refresh", lambda s: s.refresh()))


def eval_js(script: str, *args: Any) -> Computation[Any]:
    """Evaluate ``script``; it receives ``args`` as a single array."""

    return call_session("Failed to evaluate script", lambda s: s.execute_script(script, *args))


def alert_present() -> Computation[bool]:
    return call_session("Failed to check for an alert", lambda s: s.alert_present())


def alert_text() -> Computation[str]:
    return call_session("Failed to read the alert text", lambda s: s.alert_text())


def accept_alert() -> Computation[None]:
    return info("Accept alert").then(call_session("Failed to accept the alert", lambda s: s.accept_alert()))


def dismiss_alert() -> Computation[None]:
    return info("Dismiss alert").then(
        call_session("Failed to dismiss the alert", lambda s: s.dismiss_alert())
    )


def alert_send_keys(text: str) -> Computation[None]:
    return call_session("Failed to type into the alert", lambda s: s.alert_send_keys(text))


def quit_session() -> Computation[None]:
    return info("Quit session").then(call_session("Failed to quit the session", lambda s: s.quit()))


# -- elements -----------------------------------------------------------------


def _on_element(
    selector: SelectorLike,
    label: str,
    fn: Callable[[Any, Any], Any],
) -> Computation[Any]:
    resolved = as_selector(selector)
    return find_one(resolved).bind(
        lambda element: call_session(f"{label} {resolved}", lambda s: fn(s, element))
    )


def click(selector: SelectorLike) -> Computation[None]:
    resolved = as_selector(selector)
    return info(f"Click {resolved}").then(
        _on_element(resolved, "Failed to click", lambda s, el: s.click(el))
    )


def send_keys(selector: SelectorLike, text: str) -> Computation[None]:
    resolved = as_selector(selector)
    return info(f'Send keys "{text}" to {resolved}').then(
        _on_element(resolved, "Failed to send keys to", lambda s, el: s.send_keys(el, text))
    )


def clear(selector: SelectorLike) -> Computation[None]:
    resolved = as_selector(selector)
    return info(f"Clear {resolved}").then(
        _on_element(resolved, "Failed to clear", lambda s, el: s.clear(el))
    )


def overwrite(selector: SelectorLike, text: str) -> Computation[None]:
    """Clear the element, then type ``text`` into it."""

    resolved = as_selector(selector)
    return context(f"Overwrite {resolved}", clear(resolved).then(send_keys(resolved, text)))


def text(selector: SelectorLike) -> Computation[str]:
    return _on_element(selector, "Failed to read text of", lambda s, el: s.text(el))


def attribute(selector: SelectorLike, name: str) -> Computation[Optional[str]]:
    return _on_element(
        selector, f"Failed to read attribute {name} of", lambda s, el: s.attribute(el, name)
    )


def value(selector: SelectorLike) -> Computation[Optional[str]]:
    return attribute(selector, "value")


def style(selector: SelectorLike, prop: str) -> Computation[str]:
    return _on_element(selector, f"Failed to read style {prop} of", lambda s, el: s.style(el, prop))


def z_index(selector: SelectorLike) -> Computation[Optional[int]]:
    """Computed z-index of the element; ``None`` when it is ``auto``."""

    def parse(raw: str) -> Optional[int]:
        raw = raw.strip()
        return int(raw) if raw.lstrip("-").isdigit() else None

    return style(selector, "z-index").map(parse)


def displayed(selector: SelectorLike) -> Computation[bool]:
    return _on_element(selector, "Failed to read visibility of", lambda s, el: s.is_displayed(el))


def enabled(selector: SelectorLike) -> Computation[bool]:
    return _on_element(selector, "Failed to read enabled state of", lambda s, el: s.is_enabled(el))


def exists(selector: SelectorLike) -> Computation[bool]:
    return find_all(selector).map(bool)


def obscured(selector: SelectorLike) -> Computation[bool]:
    """Whether another element covers the centre of the element."""

    return _on_element(
        selector,
        "Failed to check whether an element covers",
        lambda s, el: s.execute_script(OBSCURED_SCRIPT, el),
    ).map(bool)


def has_text(selector: SelectorLike, expected: str) -> Computation[bool]:
    return text(selector).map(lambda actual: actual == expected)


def is_checkbox_checked(selector: SelectorLike) -> Computation[bool]:
    return _on_element(selector, "Failed to read checked state of", lambda s, el: s.is_selected(el))


def set_checkbox(selector: SelectorLike, checked: bool) -> Computation[None]:
    """Click the checkbox only when its state differs from ``checked``."""

    resolved = as_selector(selector)
    state = "checked" if checked else "unchecked"

    def toggle(current: bool) -> Computation[None]:
        if current == checked:
            return info(f"{resolved} is already {state}")
        return click(resolved)

    return context(f"Set {resolved} {state}", is_checkbox_checked(resolved).bind(toggle))


def select_by_text(selector: SelectorLike, option: str) -> Computation[None]:
    resolved = as_selector(selector)
    return info(f'Select "{option}" in {resolved}').then(
        _on_element(resolved, f'Failed to select "{option}" in', lambda s, el: s.select_by_text(el, option))
    )


def select_by_value(selector: SelectorLike, option: str) -> Computation[None]:
    resolved = as_selector(selector)
    return info(f'Select value "{option}" in {resolved}').then(
        _on_element(
            resolved, f'Failed to select value "{option}" in', lambda s, el: s.select_by_value(el, option)
        )
    )


def selected_option_text(selector: SelectorLike) -> Computation[str]:
    return _on_element(
        selector, "Failed to read the selected option of", lambda s, el: s.selected_option_text(el)
    )


def selected_option_value(selector: SelectorLike) -> Computation[str]:
    return _on_element(
        selector, "Failed to read the selected value of", lambda s, el: s.selected_option_value(el)
    )


def wait_until_clickable(
    selector: SelectorLike,
    interval: Optional[Duration] = None,
    wait: Optional[Duration] = None,
) -> Computation[Any]:
    """Wait until the element is displayed and enabled, returning it."""

    resolved = as_selector(selector)

    def check(element: Any) -> Computation[Any]:
        probe = sequence(
            [
                call_session(f"Failed to read visibility of {resolved}", lambda s: s.is_displayed(element)),
                call_session(f"Failed to read enabled state of {resolved}", lambda s: s.is_enabled(element)),
            ]
        ).map(all)
        return probe.bind(
            lambda ready: pure(element)
            if ready
            else Computation.failure(AssertionFailure(f"{resolved} is not clickable"))
        )

    return info(f"Wait until {resolved} is clickable").then(
        wait_until_succeeds(find_one(resolved).bind(check), interval, wait, f"{resolved} to be clickable")
    )


def find(selector: SelectorLike) -> Computation[list[Any]]:
    return find_all(selector)


def find1(selector: SelectorLike) -> Computation[Any]:
    return find_one(selector)


def find_within(element: Any, selector: SelectorLike) -> Computation[list[Any]]:
    return find_inside(element, selector)


def pretty_print(selector: SelectorLike) -> Computation[list[ElementSnapshot]]:
    """Log a description of every matching element and return the snapshots."""

    resolved = as_selector(selector)

    def show(snapshots: list[ElementSnapshot]) -> Computation[list[ElementSnapshot]]:
        if not snapshots:
            return info("No elements").then(pure(snapshots))
        return sequence(info(item.describe()) for item in snapshots).then(pure(snapshots))

    return context(f"Elements matching {resolved}", snapshot(resolved).bind(show))
