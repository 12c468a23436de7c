"""Synchronous change-notification bus for the record store."""

from __future__ import annotations

from typing import Any, Callable

# Listener receives (collection_name, collection_snapshot).
Listener = Callable[[str, Any], None]


class EventBus:
    """Ordered, synchronous fan-out to subscribers.

    Listeners run in subscription order on the caller's stack. A listener
    must not mutate the store it is observing while being notified.
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, collection: str, snapshot_factory: Callable[[], Any]) -> None:
        """Deliver a fresh snapshot of `collection` to every listener.

        Each listener gets its own copy so none can alias another's data.
        """
        for listener in list(self._listeners):
            listener(collection, snapshot_factory())

    def __len__(self) -> int:
        return len(self._listeners)
