"""Settings for running flows."""

from __future__ import annotations

import enum
import logging
from collections.abc import Mapping
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .streams import Subject

if TYPE_CHECKING:
    from .errors import FlowError
    from .log import Log

LOGGER = logging.getLogger(__name__)


class BrowserEngine(str, enum.Enum):
    """Playwright browser engines that can back a session."""

    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    WEBKIT = "webkit"


class BrowserConfig(BaseModel):
    """Settings for launching the browser behind a session."""

    engine: BrowserEngine = BrowserEngine.CHROMIUM
    headless: bool = True
    viewport_width: int = 1280
    viewport_height: int = 720
    slow_mo_ms: float = 0.0


def _ignore_log_line(text: str, indent: int) -> None:
    return


def _log_failure(error: "FlowError", log: "Log") -> None:
    LOGGER.error("Flow failed: %s\n%s", error, log)


# Fields holding live Python objects; they are never read from files or the
# environment and are carried over untouched when settings are re-validated.
RUNTIME_FIELDS = ("logging_action", "failure_action", "log_stream", "error_stream")


class FlowSettings(BaseSettings):
    """Settings recognised by a flow run."""

    model_config = SettingsConfigDict(
        env_prefix="BROWSER_FLOW_",
        env_file=(".env",),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        arbitrary_types_allowed=True,
        extra="ignore",
    )

    wait: timedelta = Field(
        default=timedelta(seconds=10),
        description="Default total duration of a wait before it times out.",
    )
    interval: timedelta = Field(
        default=timedelta(milliseconds=500),
        description="Default pause between two polling attempts.",
    )
    dispose_on_completion: bool = Field(
        default=False,
        description="Quit the session handed to with_session once the flow ends.",
    )
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    logging_action: Callable[[str, int], None] = Field(
        default=_ignore_log_line, exclude=True
    )
    failure_action: Callable[[Any, Any], None] = Field(default=_log_failure, exclude=True)
    log_stream: Subject = Field(default_factory=Subject, exclude=True)
    error_stream: Subject = Field(default_factory=Subject, exclude=True)


def load_settings(
    path: Path | None = None,
    *,
    env_file: Path | None = None,
    **overrides: object,
) -> FlowSettings:
    """Load settings from an optional YAML file and overrides."""

    data: dict[str, Any] = {}
    if path:
        import yaml

        data = yaml.safe_load(path.read_text()) or {}
    if overrides:
        _deep_update(data, overrides)
    settings_kwargs: dict[str, object] = {}
    if env_file is not None:
        settings_kwargs["_env_file"] = env_file
    settings = FlowSettings(**data, **settings_kwargs)
    if not data:
        return settings

    runtime = {name: getattr(settings, name) for name in RUNTIME_FIELDS}
    merged = settings.model_dump(mode="python")
    _deep_update(merged, {key: value for key, value in data.items() if key not in runtime})
    return FlowSettings.model_validate({**merged, **runtime})


def _deep_update(target: dict[str, Any], updates: Mapping[str, Any]) -> None:
    """Recursively merge ``updates`` into ``target`` in-place."""

    for key, value in updates.items():
        if (
            isinstance(value, Mapping)
            and isinstance(existing := target.get(key), Mapping)
        ):
            nested: dict[str, Any]
            if isinstance(existing, dict):
                nested = existing
            else:
                nested = dict(existing)
            _deep_update(nested, value)
            target[key] = nested
        else:
            target[key] = value
