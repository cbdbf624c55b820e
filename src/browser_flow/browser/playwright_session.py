"""Playwright-powered browser capability."""

from __future__ import annotations

import logging
from collections import deque
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from playwright.sync_api import Dialog, Error, sync_playwright

from ..config import BrowserConfig, BrowserEngine
from ..models import By, Criterion, Point, Size
from .base import BrowserCapability, SessionError

LOGGER = logging.getLogger(__name__)

STYLE_SCRIPT = "(el, prop) => getComputedStyle(el).getPropertyValue(prop)"
SELECTED_SCRIPT = "el => Boolean(el.checked || el.selected)"
TAG_SCRIPT = "el => el.tagName.toLowerCase()"
SELECTED_OPTION_SCRIPT = "(el, field) => el.selectedIndex < 0 ? null : el.options[el.selectedIndex][field]"
SCREEN_SCRIPT = "() => ({width: screen.availWidth, height: screen.availHeight})"
POPUP_SCRIPT = "() => { window.open('about:blank', '_blank', 'popup'); }"


def to_playwright_selector(criterion: Criterion) -> str:
    """Translate a criterion into a Playwright selector string."""

    value = criterion.value
    if criterion.by is By.CSS or criterion.by is By.TAG_NAME:
        return value
    if criterion.by is By.XPATH:
        return f"xpath={value}"
    if criterion.by is By.ID:
        return f"[id={_css_string(value)}]"
    if criterion.by is By.NAME:
        return f"[name={_css_string(value)}]"
    if criterion.by is By.CLASS_NAME:
        return "." + ".".join(value.split())
    if criterion.by is By.LINK_TEXT:
        return f"xpath=.//a[normalize-space(.)={_xpath_string(value)}]"
    if criterion.by is By.PARTIAL_LINK_TEXT:
        return f"xpath=.//a[contains(normalize-space(.), {_xpath_string(value)})]"
    raise SessionError(f"Unsupported criterion: {criterion}")


def _css_string(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _xpath_string(value: str) -> str:
    if '"' not in value:
        return f'"{value}"'
    if "'" not in value:
        return f"'{value}'"
    parts = value.split('"')
    return "concat(" + ", '\"', ".join(f'"{part}"' for part in parts) + ")"


def tab_at(pages: list[Any], position: int) -> Any:
    if not 0 <= position < len(pages):
        raise SessionError(f"No tab at position {position}; {len(pages)} open")
    return pages[position]


def focus_after_close(closed: int, remaining: int) -> Optional[int]:
    """Position of the tab to focus once the tab at ``closed`` is gone."""

    if remaining == 0:
        return None
    return min(max(closed - 1, 0), remaining - 1)


def chosen_option(value: Optional[str]) -> str:
    if value is None:
        raise SessionError("No option is selected")
    return value


def require_window_bounds(config: BrowserConfig) -> None:
    if config.engine is not BrowserEngine.CHROMIUM:
        raise SessionError(f"Moving the window needs chromium, not {config.engine.value}")


def launch_options(config: BrowserConfig) -> dict[str, Any]:
    options: dict[str, Any] = {"headless": config.headless, "slow_mo": config.slow_mo_ms}
    if config.engine is BrowserEngine.CHROMIUM:
        options["args"] = [
            "--no-sandbox",
            "--disable-dev-shm-usage",
            "--disable-gpu",
        ]
    return options


class DialogTracker:
    """Answers page dialogs as they open and remembers them for later inspection.

    Playwright blocks the page until a dialog is answered, so dialogs are
    accepted (or dismissed when ``accept`` is false) immediately, typing any
    staged prompt text. The messages stay pending until a flow acknowledges them.
    """

    def __init__(self, accept: bool = True) -> None:
        self.accept = accept
        self.prompt_text: Optional[str] = None
        self._pending: deque[str] = deque()

    def answer(self, dialog: Any) -> tuple[bool, Optional[str]]:
        LOGGER.debug("Dialog opened: %s", dialog.message)
        self._pending.append(dialog.message)
        prompt_text, self.prompt_text = self.prompt_text, None
        return self.accept, prompt_text

    @property
    def present(self) -> bool:
        return bool(self._pending)

    def text(self) -> str:
        if not self._pending:
            raise SessionError("No alert is open")
        return self._pending[0]

    def acknowledge(self) -> str:
        message = self.text()
        self._pending.popleft()
        return message


class PlaywrightSession(BrowserCapability):
    """Browser capability backed by the synchronous Playwright API."""

    def __init__(self, config: Optional[BrowserConfig] = None) -> None:
        self._config = config or BrowserConfig()
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None
        self.dialogs = DialogTracker()

    def start(self) -> None:
        LOGGER.debug("Starting Playwright %s session", self._config.engine.value)
        self._playwright = sync_playwright().start()
        browser_type = getattr(self._playwright, self._config.engine.value)
        viewport = {"width": self._config.viewport_width, "height": self._config.viewport_height}
        self._browser = browser_type.launch(**launch_options(self._config))
        self._context = self._browser.new_context(viewport=viewport)
        self._context.on("page", self._watch_page)
        self._page = self._context.new_page()

    def stop(self) -> None:
        LOGGER.debug("Stopping Playwright session")
        try:
            if self._context:
                self._context.close()
        finally:
            if self._browser:
                self._browser.close()
            if self._playwright:
                self._playwright.stop()
        self._context = None
        self._browser = None
        self._playwright = None
        self._page = None

    def quit(self) -> None:
        self.stop()

    def _watch_page(self, page: Any) -> None:
        page.on("dialog", self._on_dialog)

    def _on_dialog(self, dialog: Dialog) -> None:
        accept, prompt_text = self.dialogs.answer(dialog)
        if not accept:
            dialog.dismiss()
        elif prompt_text is not None:
            dialog.accept(prompt_text)
        else:
            dialog.accept()

    @property
    def page(self) -> Any:
        if not self._page:
            raise SessionError("Browser session is not started")
        return self._page

    @contextmanager
    def _translate(self, action: str) -> Iterator[None]:
        try:
            yield
        except Error as exc:  # pragma: no cover - Playwright exception path
            raise SessionError(f"{action} failed: {exc}") from exc

    def find_elements(self, criterion: Criterion, within: Optional[Any] = None) -> list[Any]:
        root = within if within is not None else self.page
        with self._translate(f"Finding {criterion}"):
            return root.query_selector_all(to_playwright_selector(criterion))

    def navigate(self, url: str) -> None:
        LOGGER.info("Navigating to %s", url)
        with self._translate("Navigation"):
            self.page.goto(url, wait_until="load")

    def current_url(self) -> str:
        return self.page.url

    def set_window_size(self, width: int, height: int) -> None:
        with self._translate("Resizing the window"):
            self.page.set_viewport_size({"width": width, "height": height})

    def set_window_position(self, x: int, y: int) -> None:
        require_window_bounds(self._config)
        with self._translate("Moving the window"):
            cdp = self.page.context.new_cdp_session(self.page)
            try:
                window = cdp.send("Browser.getWindowForTarget")
                # left/top are rejected while the window is maximised
                for bounds in ({"windowState": "normal"}, {"left": x, "top": y}):
                    cdp.send("Browser.setWindowBounds", {"windowId": window["windowId"], "bounds": bounds})
            finally:
                cdp.detach()

    def maximise_window(self) -> None:
        with self._translate("Maximising the window"):
            screen = self.page.evaluate(SCREEN_SCRIPT)
            self.page.set_viewport_size({"width": int(screen["width"]), "height": int(screen["height"])})

    def _focus(self, page: Any) -> None:
        self._page = page
        page.bring_to_front()

    def new_tab(self) -> None:
        with self._translate("Opening a tab"):
            self._focus(self.page.context.new_page())

    def new_window(self) -> None:
        with self._translate("Opening a window"):
            with self.page.expect_popup() as popup:
                self.page.evaluate(POPUP_SCRIPT)
            self._focus(popup.value)

    def switch_tab(self, position: int) -> None:
        with self._translate(f"Switching to tab {position}"):
            self._focus(tab_at(self.page.context.pages, position))

    def close_tab(self) -> None:
        context = self.page.context
        with self._translate("Closing the tab"):
            closed = context.pages.index(self.page)
            self.page.close()
            remaining = context.pages
            position = focus_after_close(closed, len(remaining))
            if position is None:
                self._page = None
            else:
                self._focus(remaining[position])

    def back(self) -> None:
        with self._translate("Going back"):
            self.page.go_back()

    def forward(self) -> None:
        with self._translate("Going forward"):
            self.page.go_forward()

    def refresh(self) -> None:
        with self._translate("Reloading"):
            self.page.reload()

    def execute_script(self, script: str, *args: Any) -> Any:
        with self._translate("Script evaluation"):
            return self.page.evaluate(script, list(args))

    def text(self, element: Any) -> str:
        with self._translate("Reading text"):
            return element.inner_text()

    def attribute(self, element: Any, name: str) -> Optional[str]:
        with self._translate(f"Reading attribute {name}"):
            return element.get_attribute(name)

    def style(self, element: Any, prop: str) -> str:
        with self._translate(f"Reading style {prop}"):
            return element.evaluate(STYLE_SCRIPT, prop)

    def click(self, element: Any) -> None:
        with self._translate("Click"):
            element.click()

    def send_keys(self, element: Any, text: str) -> None:
        with self._translate("Typing"):
            element.type(text)

    def clear(self, element: Any) -> None:
        with self._translate("Clearing"):
            element.fill("")

    def select_by_text(self, element: Any, text: str) -> None:
        with self._translate(f"Selecting option {text!r}"):
            element.select_option(label=text)

    def select_by_value(self, element: Any, value: str) -> None:
        with self._translate(f"Selecting option value {value!r}"):
            element.select_option(value=value)

    def selected_option_text(self, element: Any) -> str:
        with self._translate("Reading the selected option"):
            return chosen_option(element.evaluate(SELECTED_OPTION_SCRIPT, "text"))

    def selected_option_value(self, element: Any) -> str:
        with self._translate("Reading the selected option"):
            return chosen_option(element.evaluate(SELECTED_OPTION_SCRIPT, "value"))

    def tag_name(self, element: Any) -> str:
        with self._translate("Reading tag name"):
            return element.evaluate(TAG_SCRIPT)

    def is_enabled(self, element: Any) -> bool:
        with self._translate("Reading enabled state"):
            return element.is_enabled()

    def is_selected(self, element: Any) -> bool:
        with self._translate("Reading selected state"):
            return bool(element.evaluate(SELECTED_SCRIPT))

    def is_displayed(self, element: Any) -> bool:
        with self._translate("Reading visibility"):
            return element.is_visible()

    def location(self, element: Any) -> Point:
        with self._translate("Reading location"):
            box = element.bounding_box()
        if not box:
            return Point()
        return Point(x=int(box["x"]), y=int(box["y"]))

    def size(self, element: Any) -> Size:
        with self._translate("Reading size"):
            box = element.bounding_box()
        if not box:
            return Size()
        return Size(width=int(box["width"]), height=int(box["height"]))

    def element_id(self, element: Any) -> str:
        with self._translate("Reading id"):
            return element.get_attribute("id") or ""

    def alert_present(self) -> bool:
        return self.dialogs.present

    def alert_text(self) -> str:
        return self.dialogs.text()

    def accept_alert(self) -> None:
        self.dialogs.acknowledge()

    def dismiss_alert(self) -> None:
        message = self.dialogs.acknowledge()
        if self.dialogs.accept:
            LOGGER.warning("Dialog %r was already accepted when it opened", message)

    def alert_send_keys(self, text: str) -> None:
        self.dialogs.prompt_text = text
