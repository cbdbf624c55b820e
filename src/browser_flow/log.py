"""Immutable, nested log tree produced by a flow run."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterator

from .models import LogKind, LogRecord

INDENT = "    "


@dataclass(frozen=True)
class Log:
    """A node of the log tree.

    Context nodes open a scope: their children are indented one level deeper.
    The root of a run is a context with a blank message, which renders no line
    and adds no indentation. Indents are recomputed whenever a subtree is
    attached to a parent, so a subtree built in isolation lands at the right
    depth.
    """

    kind: LogKind = LogKind.CONTEXT
    message: str = ""
    indent: int = 0
    children: tuple["Log", ...] = field(default=())

    @classmethod
    def empty(cls) -> "Log":
        return cls()

    @classmethod
    def context(cls, label: str) -> "Log":
        return cls(kind=LogKind.CONTEXT, message=label)

    @classmethod
    def info(cls, message: str) -> "Log":
        return cls(kind=LogKind.INFO, message=message)

    @classmethod
    def warn(cls, message: str) -> "Log":
        return cls(kind=LogKind.WARN, message=message)

    @classmethod
    def error(cls, message: str) -> "Log":
        return cls(kind=LogKind.ERROR, message=message)

    @property
    def is_blank(self) -> bool:
        return not self.message.strip()

    @property
    def child_indent(self) -> int:
        if self.kind is LogKind.CONTEXT and not self.is_blank:
            return self.indent + 1
        return self.indent

    def rebase(self, indent: int) -> "Log":
        """Return the subtree moved to ``indent``."""

        if indent < 0:
            raise ValueError("indent must be non-negative")
        moved = replace(self, indent=indent, children=())
        return replace(
            moved,
            children=tuple(child.rebase(moved.child_indent) for child in self.children),
        )

    def add(self, child: "Log") -> tuple["Log", "Log"]:
        """Attach ``child`` as the last child, returning the new tree and the rebased child."""

        added = child.rebase(self.child_indent)
        return replace(self, children=(*self.children, added)), added

    def append(self, kind: LogKind, message: str) -> tuple["Log", "Log"]:
        return self.add(Log(kind=kind, message=message))

    def merge(self, other: "Log") -> "Log":
        """Attach ``other`` unless it is an empty blank root."""

        if other.is_blank and other.kind is LogKind.CONTEXT:
            merged = self
            for child in other.children:
                merged, _ = merged.add(child)
            return merged
        merged, _ = self.add(other)
        return merged

    def walk(self) -> Iterator["Log"]:
        """Yield nodes in pre-order."""

        yield self
        for child in self.children:
            yield from child.walk()

    def to_record(self) -> LogRecord:
        return LogRecord(message=self.message, kind=self.kind, indent=self.indent)

    def line(self) -> str:
        tag = "" if self.kind is LogKind.CONTEXT else self.kind.tag
        return f"{INDENT * self.indent}{tag}{self.message}"

    def lines(self) -> list[str]:
        return [node.line() for node in self.walk() if not node.is_blank]

    def __str__(self) -> str:
        return "\n".join(self.lines())
