import pytest

from browser_flow.browser.async_playwright_session import AsyncPlaywrightSession
from browser_flow.browser.base import SessionError
from browser_flow.browser.playwright_session import (
    DialogTracker,
    PlaywrightSession,
    focus_after_close,
    launch_options,
    to_playwright_selector,
)
from browser_flow.config import BrowserConfig, BrowserEngine
from browser_flow.factory import build_async_session, build_session
from browser_flow.models import By, Criterion


@pytest.mark.parametrize(
    "by, value, expected",
    [
        (By.CSS, "div > a", "div > a"),
        (By.XPATH, "//ul/li", "xpath=//ul/li"),
        (By.ID, "main", '[id="main"]'),
        (By.NAME, 'q"x', '[name="q\\"x"]'),
        (By.TAG_NAME, "li", "li"),
        (By.CLASS_NAME, "btn primary", ".btn.primary"),
        (By.LINK_TEXT, "Next", 'xpath=.//a[normalize-space(.)="Next"]'),
        (By.PARTIAL_LINK_TEXT, 'say "hi"', "xpath=.//a[contains(normalize-space(.), 'say \"hi\"')]"),
    ],
)
def test_criteria_translate_to_playwright_selectors(by, value, expected):
    assert to_playwright_selector(Criterion(by=by, value=value)) == expected


class FakeDialog:
    def __init__(self, message: str) -> None:
        self.message = message


def test_dialog_tracker_answers_and_remembers():
    tracker = DialogTracker()
    tracker.prompt_text = "Bob"

    assert tracker.answer(FakeDialog("Name?")) == (True, "Bob")
    assert tracker.answer(FakeDialog("Sure?")) == (True, None)
    assert tracker.present
    assert tracker.text() == "Name?"
    assert tracker.acknowledge() == "Name?"
    assert tracker.acknowledge() == "Sure?"
    assert not tracker.present
    with pytest.raises(SessionError):
        tracker.text()


def test_launch_options_follow_engine():
    chromium = launch_options(BrowserConfig(headless=False, slow_mo_ms=50))
    firefox = launch_options(BrowserConfig(engine=BrowserEngine.FIREFOX))

    assert chromium["headless"] is False
    assert chromium["slow_mo"] == 50
    assert "--no-sandbox" in chromium["args"]
    assert "args" not in firefox


def test_factories_build_unstarted_sessions():
    session = build_session(BrowserConfig())

    assert isinstance(session, PlaywrightSession)
    assert isinstance(build_async_session(BrowserConfig()), AsyncPlaywrightSession)
    with pytest.raises(SessionError, match="not started"):
        session.current_url()


class FakePage:
    def __init__(self, context: "FakeContext", name: str) -> None:
        self.context = context
        self.name = name
        self.fronted = 0

    def bring_to_front(self) -> None:
        self.fronted += 1

    def close(self) -> None:
        self.context.pages.remove(self)


class FakeContext:
    def __init__(self) -> None:
        self.pages: list[FakePage] = []

    def new_page(self) -> FakePage:
        page = FakePage(self, f"page {len(self.pages)}")
        self.pages.append(page)
        return page


class FakeSelect:
    def __init__(self, selected=None) -> None:
        self.selected = selected
        self.chosen: list[dict[str, str]] = []

    def select_option(self, **kwargs) -> None:
        self.chosen.append(kwargs)

    def evaluate(self, script, field):
        return None if self.selected is None else self.selected[field]


def test_session_follows_the_current_tab():
    context = FakeContext()
    session = PlaywrightSession()
    session._page = context.new_page()

    session.new_tab()
    session.new_tab()
    assert session.page is context.pages[2]

    session.switch_tab(1)
    assert session.page.name == "page 1"
    assert session.page.fronted == 2

    session.close_tab()
    assert [page.name for page in context.pages] == ["page 0", "page 2"]
    assert session.page.name == "page 0"

    with pytest.raises(SessionError, match="No tab at position 5; 2 open"):
        session.switch_tab(5)


def test_closing_the_last_tab_leaves_no_page():
    context = FakeContext()
    session = PlaywrightSession()
    session._page = context.new_page()

    session.close_tab()

    with pytest.raises(SessionError, match="not started"):
        session.current_url()


@pytest.mark.parametrize(
    "closed, remaining, expected",
    [(0, 0, None), (0, 2, 0), (2, 2, 1), (3, 5, 2)],
)
def test_focus_after_close_prefers_the_previous_tab(closed, remaining, expected):
    assert focus_after_close(closed, remaining) == expected


def test_dropdowns_use_select_option():
    session = PlaywrightSession()
    dropdown = FakeSelect({"text": "Large", "value": "l"})

    session.select_by_text(dropdown, "Large")
    session.select_by_value(dropdown, "l")

    assert dropdown.chosen == [{"label": "Large"}, {"value": "l"}]
    assert session.selected_option_text(dropdown) == "Large"
    assert session.selected_option_value(dropdown) == "l"
    with pytest.raises(SessionError, match="No option is selected"):
        session.selected_option_text(FakeSelect())


def test_window_position_needs_chromium():
    session = PlaywrightSession(BrowserConfig(engine=BrowserEngine.FIREFOX))

    with pytest.raises(SessionError, match="needs chromium, not firefox"):
        session.set_window_position(10, 10)
