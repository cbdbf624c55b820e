"""Browser capability backed by the asynchronous Playwright API."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from playwright.async_api import Dialog, Error, async_playwright

from ..config import BrowserConfig
from ..models import Criterion, Point, Size
from .base import BrowserCapability, SessionError
from .playwright_session import (
    POPUP_SCRIPT,
    SCREEN_SCRIPT,
    SELECTED_OPTION_SCRIPT,
    SELECTED_SCRIPT,
    STYLE_SCRIPT,
    TAG_SCRIPT,
    DialogTracker,
    chosen_option,
    focus_after_close,
    launch_options,
    require_window_bounds,
    tab_at,
    to_playwright_selector,
)

LOGGER = logging.getLogger(__name__)


class AsyncPlaywrightSession(BrowserCapability):
    """Coroutine flavour of :class:`PlaywrightSession`; run flows with ``run_async``."""

    def __init__(self, config: Optional[BrowserConfig] = None) -> None:
        self._config = config or BrowserConfig()
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None
        self.dialogs = DialogTracker()

    async def start(self) -> None:
        LOGGER.debug("Starting async Playwright %s session", self._config.engine.value)
        self._playwright = await async_playwright().start()
        browser_type = getattr(self._playwright, self._config.engine.value)
        viewport = {"width": self._config.viewport_width, "height": self._config.viewport_height}
        self._browser = await browser_type.launch(**launch_options(self._config))
        self._context = await self._browser.new_context(viewport=viewport)
        self._context.on("page", self._watch_page)
        self._page = await self._context.new_page()

    async def stop(self) -> None:
        LOGGER.debug("Stopping async Playwright session")
        try:
            if self._context:
                await self._context.close()
        finally:
            if self._browser:
                await self._browser.close()
            if self._playwright:
                await self._playwright.stop()
        self._context = None
        self._browser = None
        self._playwright = None
        self._page = None

    async def quit(self) -> None:
        await self.stop()

    def _watch_page(self, page: Any) -> None:
        page.on("dialog", self._on_dialog)

    async def _on_dialog(self, dialog: Dialog) -> None:
        accept, prompt_text = self.dialogs.answer(dialog)
        if not accept:
            await dialog.dismiss()
        elif prompt_text is not None:
            await dialog.accept(prompt_text)
        else:
            await dialog.accept()

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

    async def find_elements(self, criterion: Criterion, within: Optional[Any] = None) -> list[Any]:
        root = within if within is not None else self.page
        with self._translate(f"Finding {criterion}"):
            return await root.query_selector_all(to_playwright_selector(criterion))

    async def navigate(self, url: str) -> None:
        LOGGER.info("Navigating to %s", url)
        with self._translate("Navigation"):
            await self.page.goto(url, wait_until="load")

    async def current_url(self) -> str:
        return self.page.url

    async def set_window_size(self, width: int, height: int) -> None:
        with self._translate("Resizing the window"):
            await self.page.set_viewport_size({"width": width, "height": height})

    async def set_window_position(self, x: int, y: int) -> None:
        require_window_bounds(self._config)
        with self._translate("Moving the window"):
            cdp = await self.page.context.new_cdp_session(self.page)
            try:
                window = await cdp.send("Browser.getWindowForTarget")
                for bounds in ({"windowState": "normal"}, {"left": x, "top": y}):
                    await cdp.send("Browser.setWindowBounds", {"windowId": window["windowId"], "bounds": bounds})
            finally:
                await cdp.detach()

    async def maximise_window(self) -> None:
        with self._translate("Maximising the window"):
            screen = await self.page.evaluate(SCREEN_SCRIPT)
            await self.page.set_viewport_size({"width": int(screen["width"]), "height": int(screen["height"])})

    async def _focus(self, page: Any) -> None:
        self._page = page
        await page.bring_to_front()

    async def new_tab(self) -> None:
        with self._translate("Opening a tab"):
            await self._focus(await self.page.context.new_page())

    async def new_window(self) -> None:
        with self._translate("Opening a window"):
            async with self.page.expect_popup() as popup:
                await self.page.evaluate(POPUP_SCRIPT)
            await self._focus(await popup.value)

    async def switch_tab(self, position: int) -> None:
        with self._translate(f"Switching to tab {position}"):
            await self._focus(tab_at(self.page.context.pages, position))

    async def close_tab(self) -> None:
        context = self.page.context
        with self._translate("Closing the tab"):
            closed = context.pages.index(self.page)
            await self.page.close()
            remaining = context.pages
            position = focus_after_close(closed, len(remaining))
            if position is None:
                self._page = None
            else:
                await self._focus(remaining[position])

    async def back(self) -> None:
        with self._translate("Going back"):
            await self.page.go_back()

    async def forward(self) -> None:
        with self._translate("Going forward"):
            await self.page.go_forward()

    async def refresh(self) -> None:
        with self._translate("Reloading"):
            await self.page.reload()

    async def execute_script(self, script: str, *args: Any) -> Any:
        with self._translate("Script evaluation"):
            return await self.page.evaluate(script, list(args))

    async def text(self, element: Any) -> str:
        with self._translate("Reading text"):
            return await element.inner_text()

    async def attribute(self, element: Any, name: str) -> Optional[str]:
        with self._translate(f"Reading attribute {name}"):
            return await element.get_attribute(name)

    async def style(self, element: Any, prop: str) -> str:
        with self._translate(f"Reading style {prop}"):
            return await element.evaluate(STYLE_SCRIPT, prop)

    async def click(self, element: Any) -> None:
        with self._translate("Click"):
            await element.click()

    async def send_keys(self, element: Any, text: str) -> None:
        with self._translate("Typing"):
            await element.type(text)

    async def clear(self, element: Any) -> None:
        with self._translate("Clearing"):
            await element.fill("")

    async def select_by_text(self, element: Any, text: str) -> None:
        with self._translate(f"Selecting option {text!r}"):
            await element.select_option(label=text)

    async def select_by_value(self, element: Any, value: str) -> None:
        with self._translate(f"Selecting option value {value!r}"):
            await element.select_option(value=value)

    async def selected_option_text(self, element: Any) -> str:
        with self._translate("Reading the selected option"):
            return chosen_option(await element.evaluate(SELECTED_OPTION_SCRIPT, "text"))

    async def selected_option_value(self, element: Any) -> str:
        with self._translate("Reading the selected option"):
            return chosen_option(await element.evaluate(SELECTED_OPTION_SCRIPT, "value"))

    async def tag_name(self, element: Any) -> str:
        with self._translate("Reading tag name"):
            return await element.evaluate(TAG_SCRIPT)

    async def is_enabled(self, element: Any) -> bool:
        with self._translate("Reading enabled state"):
            return await element.is_enabled()

    async def is_selected(self, element: Any) -> bool:
        with self._translate("Reading selected state"):
            return bool(await element.evaluate(SELECTED_SCRIPT))

    async def is_displayed(self, element: Any) -> bool:
        with self._translate("Reading visibility"):
            return await element.is_visible()

    async def location(self, element: Any) -> Point:
        with self._translate("Reading location"):
            box = await element.bounding_box()
        if not box:
            return Point()
        return Point(x=int(box["x"]), y=int(box["y"]))

    async def size(self, element: Any) -> Size:
        with self._translate("Reading size"):
            box = await element.bounding_box()
        if not box:
            return Size()
        return Size(width=int(box["width"]), height=int(box["height"]))

    async def element_id(self, element: Any) -> str:
        with self._translate("Reading id"):
            return await element.get_attribute("id") or ""

    async def alert_present(self) -> bool:
        return self.dialogs.present

    async def alert_text(self) -> str:
        return self.dialogs.text()

    async def accept_alert(self) -> None:
        self.dialogs.acknowledge()

    async def dismiss_alert(self) -> None:
        message = self.dialogs.acknowledge()
        if self.dialogs.accept:
            LOGGER.warning("Dialog %r was already accepted when it opened", message)

    async def alert_send_keys(self, text: str) -> None:
        self.dialogs.prompt_text = text
