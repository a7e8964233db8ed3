"""Minimal synchronous event emitter used by both engines."""

from collections.abc import Callable
from typing import Any

Listener = Callable[[Any], Any]


class EventEmitter:
    """Named-event fan-out.  Listeners run synchronously in subscription order."""

    def __init__(self, *event_names: str) -> None:
        self._listeners: dict[str, list[Listener]] = {name: [] for name in event_names}

    def subscribe(self, event: str, listener: Listener) -> Callable[[], None]:
        """Register *listener* for *event*; returns an unsubscribe callable."""
        if event not in self._listeners:
            raise KeyError(f"Unknown event {event!r}; expected one of {sorted(self._listeners)}")
        self._listeners[event].append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners[event]:
                self._listeners[event].remove(listener)

        return unsubscribe

    def emit(self, event: str, payload: Any = None) -> None:
        for listener in list(self._listeners[event]):
            listener(payload)
