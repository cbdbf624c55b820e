"""Observable channels used to publish log and error records in real time."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, List, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class Subject(Generic[T]):
    """Fan-out channel that forwards every published item to its subscribers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: List[Callable[[T], None]] = []

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register ``callback`` and return a function that removes it again."""

        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, item: T) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(item)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)


class Recorder(Generic[T]):
    """Subscriber that keeps every item it receives, useful in tests."""

    def __init__(self, subject: Subject[T]) -> None:
        self.items: List[T] = []
        self._unsubscribe = subject.subscribe(self.items.append)

    def close(self) -> None:
        self._unsubscribe()
