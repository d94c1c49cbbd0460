"""
Minimal typed observer contract shared by the capture session and playback
controller.
"""

from enum import Enum
from typing import Callable, List, Any

from .logging_config import get_logger


logger = get_logger("events")


Listener = Callable[[Enum, Any], None]


class EventEmitter:
    """
    Mixin that lets an owned resource publish lifecycle events.

    Listeners receive ``(event, payload)`` and run synchronously on the
    emitting task. A listener that raises is logged and skipped so one bad
    subscriber cannot break the resource.
    """

    def __init__(self):
        self._listeners: List[Listener] = []

    def add_listener(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _emit(self, event: Enum, payload: Any = None) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, payload)
            except Exception:
                logger.exception(f"Listener failed for {event.name}")
