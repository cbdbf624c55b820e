"""Factories for constructing browser capabilities from configuration."""

from __future__ import annotations

from .browser.async_playwright_session import AsyncPlaywrightSession
from .browser.playwright_session import PlaywrightSession
from .config import BrowserConfig


def build_session(config: BrowserConfig) -> PlaywrightSession:
    return PlaywrightSession(config)


def build_async_session(config: BrowserConfig) -> AsyncPlaywrightSession:
    return AsyncPlaywrightSession(config)
