"""Process-wide publish/subscribe channel for backend events."""

from __future__ import annotations

from threading import Lock
from typing import Any, Callable, Dict, List

from plume.core.logging import get_logger

logger = get_logger(__name__)

COMPRESSION_PROGRESS_EVENT = "compression-progress"

EventHandler = Callable[[Dict[str, Any]], None]
Unlisten = Callable[[], None]


class ProgressChannel:
    """Named-event channel. `listen` returns a disposer that removes the handler."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._closed = False

    def listen(self, event: str, handler: EventHandler) -> Unlisten:
        with self._lock:
            if self._closed:
                raise RuntimeError("Progress channel is closed.")
            self._handlers.setdefault(event, []).append(handler)

        def unlisten() -> None:
            with self._lock:
                handlers = self._handlers.get(event, [])
                if handler in handlers:
                    handlers.remove(handler)

        return unlisten

    def emit(self, event: str, payload: Dict[str, Any]) -> int:
        """Deliver a payload to every handler of an event. Returns the delivery count."""

        with self._lock:
            handlers = list(self._handlers.get(event, []))

        for handler in handlers:
            handler(payload)
        return len(handlers)

    def listener_count(self, event: str) -> int:
        with self._lock:
            return len(self._handlers.get(event, []))

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._handlers.clear()
