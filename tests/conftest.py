from __future__ import annotations

import asyncio
from typing import Any, Callable, Iterator, Optional

import pytest

from browser_flow.browser.base import BrowserCapability, SessionError
from browser_flow.config import FlowSettings
from browser_flow.models import By, Criterion, Point, Size


class FakeElement:
    def __init__(
        self,
        tag: str = "div",
        text: str = "",
        ident: str = "",
        classes: tuple[str, ...] = (),
        children: tuple["FakeElement", ...] = (),
        enabled: bool = True,
        displayed: bool = True,
        selected: bool = False,
        attributes: Optional[dict[str, str]] = None,
        styles: Optional[dict[str, str]] = None,
    ) -> None:
        self.tag = tag
        self.text = text
        self.ident = ident
        self.classes = classes
        self.children = children
        self.enabled = enabled
        self.displayed = displayed
        self.selected = selected
        self.attributes = attributes or {}
        self.styles = styles or {}

    def matches(self, criterion: Criterion) -> bool:
        value = criterion.value
        if criterion.by is By.CSS:
            return value in {"*", self.tag, f"#{self.ident}"} or value in {f".{cls}" for cls in self.classes}
        if criterion.by is By.ID:
            return value == self.ident
        if criterion.by is By.TAG_NAME:
            return value == self.tag
        if criterion.by is By.CLASS_NAME:
            return value in self.classes
        if criterion.by is By.LINK_TEXT:
            return self.tag == "a" and self.text == value
        return False

    def walk(self) -> Iterator["FakeElement"]:
        for child in self.children:
            yield child
            yield from child.walk()

    def __repr__(self) -> str:
        return f"<{self.tag} {self.text!r}>"


class StubCapability(BrowserCapability):
    """In-memory page made of :class:`FakeElement` nodes."""

    def __init__(self, *elements: FakeElement) -> None:
        self.root = FakeElement(tag="html", children=elements)
        self.calls: list[tuple[Any, ...]] = []
        self.fail_on: set[str] = set()
        self.url = "about:blank"
        self.history: list[str] = []
        self.window: Optional[tuple[int, int]] = None
        self.position: Optional[tuple[int, int]] = None
        self.maximised = False
        self.tabs: list[str] = ["main"]
        self.current_tab = 0
        self.alerts: list[str] = []
        self.prompt_text: Optional[str] = None
        self.script_result: Any = None
        self.started = False
        self.quit_calls = 0

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        if name in self.fail_on:
            raise SessionError(f"{name} failed")

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.started = False

    def find_elements(self, criterion: Criterion, within: Optional[Any] = None) -> list[Any]:
        self._record("find_elements", criterion, within)
        scope = within if within is not None else self.root
        return [element for element in scope.walk() if element.matches(criterion)]

    def navigate(self, url: str) -> None:
        self._record("navigate", url)
        self.history.append(self.url)
        self.url = url

    def current_url(self) -> str:
        self._record("current_url")
        return self.url

    def set_window_size(self, width: int, height: int) -> None:
        self._record("set_window_size", width, height)
        self.window = (width, height)

    def set_window_position(self, x: int, y: int) -> None:
        self._record("set_window_position", x, y)
        self.position = (x, y)

    def maximise_window(self) -> None:
        self._record("maximise_window")
        self.maximised = True

    def new_tab(self) -> None:
        self._record("new_tab")
        self.tabs.append(f"tab {len(self.tabs)}")
        self.current_tab = len(self.tabs) - 1

    def new_window(self) -> None:
        self._record("new_window")
        self.tabs.append(f"window {len(self.tabs)}")
        self.current_tab = len(self.tabs) - 1

    def switch_tab(self, position: int) -> None:
        self._record("switch_tab", position)
        if not 0 <= position < len(self.tabs):
            raise SessionError(f"No tab at position {position}; {len(self.tabs)} open")
        self.current_tab = position

    def close_tab(self) -> None:
        self._record("close_tab")
        self.tabs.pop(self.current_tab)
        self.current_tab = max(self.current_tab - 1, 0)

    def back(self) -> None:
        self._record("back")
        if self.history:
            self.url = self.history.pop()

    def forward(self) -> None:
        self._record("forward")

    def refresh(self) -> None:
        self._record("refresh")

    def execute_script(self, script: str, *args: Any) -> Any:
        self._record("execute_script", script, *args)
        return self.script_result

    def text(self, element: Any) -> str:
        self._record("text", element)
        return element.text

    def attribute(self, element: Any, name: str) -> Optional[str]:
        self._record("attribute", element, name)
        return element.attributes.get(name)

    def style(self, element: Any, prop: str) -> str:
        self._record("style", element, prop)
        return element.styles.get(prop, "")

    def click(self, element: Any) -> None:
        self._record("click", element)
        if element.attributes.get("type") == "checkbox":
            element.selected = not element.selected

    def send_keys(self, element: Any, text: str) -> None:
        self._record("send_keys", element, text)
        element.text += text

    def clear(self, element: Any) -> None:
        self._record("clear", element)
        element.text = ""

    def _choose(self, element: Any, matches: Callable[[FakeElement], bool], missing: str) -> None:
        options = [child for child in element.children if child.tag == "option"]
        chosen = next((option for option in options if matches(option)), None)
        if chosen is None:
            raise SessionError(missing)
        for option in options:
            option.selected = option is chosen

    def _selected_option(self, element: Any) -> FakeElement:
        for child in element.children:
            if child.tag == "option" and child.selected:
                return child
        raise SessionError("No option is selected")

    def select_by_text(self, element: Any, text: str) -> None:
        self._record("select_by_text", element, text)
        self._choose(element, lambda option: option.text == text, f"No option with text {text!r}")

    def select_by_value(self, element: Any, value: str) -> None:
        self._record("select_by_value", element, value)
        self._choose(
            element, lambda option: option.attributes.get("value") == value, f"No option with value {value!r}"
        )

    def selected_option_text(self, element: Any) -> str:
        self._record("selected_option_text", element)
        return self._selected_option(element).text

    def selected_option_value(self, element: Any) -> str:
        self._record("selected_option_value", element)
        return self._selected_option(element).attributes.get("value", "")

    def tag_name(self, element: Any) -> str:
        self._record("tag_name", element)
        return element.tag

    def is_enabled(self, element: Any) -> bool:
        self._record("is_enabled", element)
        return element.enabled

    def is_selected(self, element: Any) -> bool:
        self._record("is_selected", element)
        return element.selected

    def is_displayed(self, element: Any) -> bool:
        self._record("is_displayed", element)
        return element.displayed

    def location(self, element: Any) -> Point:
        self._record("location", element)
        return Point(x=10, y=20)

    def size(self, element: Any) -> Size:
        self._record("size", element)
        return Size(width=100, height=30)

    def element_id(self, element: Any) -> str:
        self._record("element_id", element)
        return element.ident

    def alert_present(self) -> bool:
        self._record("alert_present")
        return bool(self.alerts)

    def alert_text(self) -> str:
        self._record("alert_text")
        if not self.alerts:
            raise SessionError("No alert is open")
        return self.alerts[0]

    def accept_alert(self) -> None:
        self._record("accept_alert")
        self.alerts.pop(0)

    def dismiss_alert(self) -> None:
        self._record("dismiss_alert")
        self.alerts.pop(0)

    def alert_send_keys(self, text: str) -> None:
        self._record("alert_send_keys", text)
        self.prompt_text = text

    def quit(self) -> None:
        self._record("quit")
        self.quit_calls += 1


class AsyncStub:
    """Exposes every method of a :class:`StubCapability` as a coroutine."""

    def __init__(self, inner: StubCapability) -> None:
        self.inner = inner

    def __getattr__(self, name: str) -> Any:
        target = getattr(self.inner, name)
        if not callable(target):
            return target

        async def call(*args: Any, **kwargs: Any) -> Any:
            await asyncio.sleep(0)
            return target(*args, **kwargs)

        return call


def sample_page() -> StubCapability:
    return StubCapability(
        FakeElement(
            tag="ul",
            ident="menu",
            classes=("list",),
            children=(
                FakeElement(tag="li", text="one", ident="first"),
                FakeElement(tag="li", text="two"),
            ),
        ),
        FakeElement(
            tag="ul",
            ident="other",
            classes=("list",),
            children=(FakeElement(tag="li", text="three"),),
        ),
        FakeElement(tag="h1", text="Welcome", ident="title"),
        FakeElement(tag="input", ident="agree", attributes={"type": "checkbox", "value": "yes"}),
        FakeElement(tag="a", text="Next page", ident="next", styles={"z-index": "5"}),
        FakeElement(tag="button", text="Hidden", ident="hidden", displayed=False),
        FakeElement(
            tag="select",
            ident="size",
            children=(
                FakeElement(tag="option", text="Small", attributes={"value": "s"}),
                FakeElement(tag="option", text="Medium", attributes={"value": "m"}, selected=True),
                FakeElement(tag="option", text="Large", attributes={"value": "l"}),
            ),
        ),
        FakeElement(tag="select", ident="empty"),
    )


@pytest.fixture
def page() -> StubCapability:
    return sample_page()


@pytest.fixture
def settings() -> FlowSettings:
    return FlowSettings(wait=0.2, interval=0.01)
