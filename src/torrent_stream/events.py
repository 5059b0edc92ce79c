"""
Minimal event emitter for client notifications.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class EventEmitter:
    """Named events with persistent and one-shot listeners."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[tuple[Listener, bool]]] = {}

    def on(self, event: str, listener: Listener) -> Listener:
        self._listeners.setdefault(event, []).append((listener, False))
        return listener

    def once(self, event: str, listener: Listener) -> Listener:
        self._listeners.setdefault(event, []).append((listener, True))
        return listener

    def off(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(event, [])
        self._listeners[event] = [(fn, once) for fn, once in listeners if fn is not listener]

    def emit(self, event: str, *args: Any) -> bool:
        """
        Call every listener for `event` in registration order.

        Returns:
            True if the event had listeners
        """
        listeners = self._listeners.get(event, [])
        if not listeners:
            return False
        self._listeners[event] = [(fn, once) for fn, once in listeners if not once]
        for listener, _ in listeners:
            listener(*args)
        return True
