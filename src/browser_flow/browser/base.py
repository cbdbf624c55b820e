"""Browser capability abstractions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from ..models import Criterion, Point, Size


class SessionError(RuntimeError):
    """Raised when a browser capability call fails."""


class BrowserCapability(ABC):
    """Interface a flow needs from a live browser session.

    Element handles are opaque to flows; they are only passed back to the
    capability that produced them. Asynchronous implementations define the same
    methods as coroutines and are run with ``run_async``.
    """

    @abstractmethod
    def find_elements(self, criterion: Criterion, within: Optional[Any] = None) -> list[Any]:
        """Return the elements matching ``criterion``, inside ``within`` when given."""

    @abstractmethod
    def navigate(self, url: str) -> None:
        """Load ``url`` in the current page."""

    @abstractmethod
    def current_url(self) -> str: ...

    @abstractmethod
    def set_window_size(self, width: int, height: int) -> None: ...

    @abstractmethod
    def set_window_position(self, x: int, y: int) -> None:
        """Move the browser window so its top-left corner is at ``(x, y)``."""

    @abstractmethod
    def maximise_window(self) -> None: ...

    @abstractmethod
    def new_tab(self) -> None:
        """Open a blank tab and make it current."""

    @abstractmethod
    def new_window(self) -> None:
        """Open a blank window and make it current."""

    @abstractmethod
    def switch_tab(self, position: int) -> None:
        """Make the tab at ``position`` current; tabs are ordered by opening time."""

    @abstractmethod
    def close_tab(self) -> None:
        """Close the current tab and focus the one opened before it."""

    @abstractmethod
    def back(self) -> None: ...

    @abstractmethod
    def forward(self) -> None: ...

    @abstractmethod
    def refresh(self) -> None: ...

    @abstractmethod
    def execute_script(self, script: str, *args: Any) -> Any:
        """Evaluate ``script``, a function receiving ``args`` as one array."""

    @abstractmethod
    def text(self, element: Any) -> str: ...

    @abstractmethod
    def attribute(self, element: Any, name: str) -> Optional[str]: ...

    @abstractmethod
    def style(self, element: Any, prop: str) -> str:
        """Return the computed value of the CSS property ``prop``."""

    @abstractmethod
    def click(self, element: Any) -> None: ...

    @abstractmethod
    def send_keys(self, element: Any, text: str) -> None: ...

    @abstractmethod
    def clear(self, element: Any) -> None: ...

    @abstractmethod
    def select_by_text(self, element: Any, text: str) -> None:
        """Choose the option of a ``<select>`` whose visible text is ``text``."""

    @abstractmethod
    def select_by_value(self, element: Any, value: str) -> None: ...

    @abstractmethod
    def selected_option_text(self, element: Any) -> str:
        """Return the text of the chosen option; fails when none is chosen."""

    @abstractmethod
    def selected_option_value(self, element: Any) -> str: ...

    @abstractmethod
    def tag_name(self, element: Any) -> str: ...

    @abstractmethod
    def is_enabled(self, element: Any) -> bool: ...

    @abstractmethod
    def is_selected(self, element: Any) -> bool:
        """Return whether a checkbox, radio or option is checked."""

    @abstractmethod
    def is_displayed(self, element: Any) -> bool: ...

    @abstractmethod
    def location(self, element: Any) -> Point: ...

    @abstractmethod
    def size(self, element: Any) -> Size: ...

    @abstractmethod
    def element_id(self, element: Any) -> str:
        """Return the element's DOM identifier."""

    @abstractmethod
    def alert_present(self) -> bool: ...

    @abstractmethod
    def alert_text(self) -> str: ...

    @abstractmethod
    def accept_alert(self) -> None: ...

    @abstractmethod
    def dismiss_alert(self) -> None: ...

    @abstractmethod
    def alert_send_keys(self, text: str) -> None: ...

    @abstractmethod
    def quit(self) -> None:
        """Close the browser behind the session."""
