"""
Callback registries used by the acquisition and playback controllers.

A Signal is owned by the controller that emits it; listeners subscribe through
connect() and get back an unsubscribe function.

Listener lifecycle:
- persistent (once=False): called on every emit until unsubscribed
- one-shot (once=True): removed before it is called, so it runs at most once

Whoever subscribes a one-shot listener that may never fire (a waiter that gets
canceled, for example) must call the returned unsubscribe function itself.
"""

import logging
from typing import Any, Callable, List

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class _Connection:
    __slots__ = ("listener", "once")

    def __init__(self, listener: Listener, once: bool):
        self.listener = listener
        self.once = once


class Signal:
    """A named list of listeners called synchronously by emit()."""

    def __init__(self, name: str):
        self.name = name
        self._connections: List[_Connection] = []

    def connect(self, listener: Listener, once: bool = False) -> Callable[[], None]:
        connection = _Connection(listener, once)
        self._connections.append(connection)

        def unsubscribe() -> None:
            if connection in self._connections:
                self._connections.remove(connection)

        return unsubscribe

    def emit(self, *args: Any) -> None:
        for connection in list(self._connections):
            if connection not in self._connections:
                continue  # unsubscribed by an earlier listener
            if connection.once:
                self._connections.remove(connection)
            try:
                connection.listener(*args)
            except Exception as e:
                logger.error(f"[SIGNAL] Listener for '{self.name}' failed: {e}", exc_info=True)

    @property
    def listener_count(self) -> int:
        return len(self._connections)
