"""
signals.py - Observable cells with explicit subscriptions.

A Cell holds a value and notifies subscribers when a different value is
set. A Computed cell derives its value from other cells and recomputes when
any of them changes. Every update edge is an explicit subscription; there is
no two-way binding.

Usage:
    status = Cell(None)
    unsubscribe = status.subscribe(lambda value: print("status", value))
    status.set(new_status)   # notifies
    status.set(new_status)   # equal value, no notification
    unsubscribe()
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Generic, List, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Subscriber = Callable[[T], None]


class Cell(Generic[T]):
    """A mutable observable value.

    Subscribers are called synchronously, in subscription order, each time
    set() stores a value that is not equal to the current one. A subscriber
    that raises is logged and does not prevent the others from running.
    """

    def __init__(self, value: T, name: str = "cell"):
        self._value = value
        self._name = name
        self._subscribers: List[Subscriber[T]] = []
        self._version = 0

    @property
    def value(self) -> T:
        return self._value

    @property
    def version(self) -> int:
        """Number of changes published so far."""
        return self._version

    def get(self) -> T:
        return self._value

    def set(self, value: T) -> bool:
        """Store value and notify subscribers if it changed.

        Returns:
            True if the value changed and subscribers were notified.
        """
        if value == self._value:
            return False
        self._value = value
        self._version += 1
        self._notify()
        return True

    def subscribe(self, callback: Subscriber[T]) -> Callable[[], None]:
        """Register a callback; returns a function that removes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback(self._value)
            except Exception:
                logger.exception("Subscriber of %s failed", self._name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._name}={self._value!r})"


class Computed(Cell[T]):
    """A read-only cell derived from other cells.

    The value is computed eagerly on construction and again whenever one of
    the sources publishes a change. Call dispose() to detach from the sources.
    """

    def __init__(self, sources: Sequence[Cell[Any]], compute: Callable[..., T], name: str = "computed"):
        self._sources = list(sources)
        self._compute = compute
        super().__init__(self._evaluate(), name=name)
        self._unsubscribers = [source.subscribe(self._on_source_change) for source in self._sources]

    def _evaluate(self) -> T:
        return self._compute(*(source.value for source in self._sources))

    def _on_source_change(self, _value: Any) -> None:
        Cell.set(self, self._evaluate())

    def set(self, value: T) -> bool:
        raise AttributeError("Computed cells are read-only")

    def dispose(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
