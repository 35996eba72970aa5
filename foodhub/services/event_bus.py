"""In-process publish/subscribe for order lifecycle events.

Handlers run synchronously after the emitting transaction has committed.
A failing handler is logged and skipped; it never undoes the write.
"""
from __future__ import annotations

import logging
from typing import Any, Callable

Handler = Callable[[dict[str, Any]], None]

logger = logging.getLogger(__name__)


class EventBus:
    def __init__(self) -> None:
        self._subscribers: dict[str, list[Handler]] = {}

    def subscribe(self, event_name: str, handler: Handler) -> None:
        self._subscribers.setdefault(event_name, []).append(handler)

    def unsubscribe(self, event_name: str, handler: Handler) -> None:
        handlers = self._subscribers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event_name: str, payload: dict[str, Any]) -> int:
        """Delivers ``payload`` and returns how many handlers accepted it."""
        delivered = 0
        for handler in tuple(self._subscribers.get(event_name, ())):
            try:
                handler(dict(payload))
            except Exception:
                logger.exception("event handler failed event=%s handler=%s", event_name, getattr(handler, "__name__", handler))
                continue
            delivered += 1
        if not delivered:
            logger.debug("event not delivered event=%s", event_name)
        return delivered


event_bus = EventBus()
