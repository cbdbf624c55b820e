"""Shared models used across browser flow."""

from __future__ import annotations

import enum
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class LogKind(str, enum.Enum):
    """Kind of a log tree node."""

    CONTEXT = "context"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @property
    def tag(self) -> str:
        """Severity prefix used when rendering leaf lines."""

        return _TAGS.get(self, "")


_TAGS = {
    LogKind.INFO: "INFO: ",
    LogKind.WARN: "WARN: ",
    LogKind.ERROR: "ERRO: ",
}


class LogRecord(BaseModel):
    """Entry published on the log stream as soon as it is written."""

    model_config = ConfigDict(frozen=True)

    message: str
    kind: LogKind = LogKind.INFO
    indent: int = Field(default=0, ge=0)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def render(self) -> str:
        return f"{'    ' * self.indent}{self.kind.tag}{self.message}"

    def __str__(self) -> str:
        return self.render()


class Point(BaseModel):
    """Top-left corner of an element relative to the page."""

    model_config = ConfigDict(frozen=True)

    x: int = 0
    y: int = 0


class Size(BaseModel):
    """Width and height of an element."""

    model_config = ConfigDict(frozen=True)

    width: int = 0
    height: int = 0


class By(str, enum.Enum):
    """Strategy used to locate elements."""

    CSS = "css"
    XPATH = "xpath"
    ID = "id"
    NAME = "name"
    TAG_NAME = "tag name"
    CLASS_NAME = "class name"
    LINK_TEXT = "link text"
    PARTIAL_LINK_TEXT = "partial link text"


class Criterion(BaseModel):
    """A single element lookup understood by every browser capability."""

    model_config = ConfigDict(frozen=True)

    by: By
    value: str

    def __str__(self) -> str:
        return f'{self.by.value} "{self.value}"'
