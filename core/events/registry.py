"""
Custody Event Bus — Subscriber Registry
=========================================
Observers subscribe to a closed set of event types fixed when the
registry is built. Subscribing to anything else is an error, so a
typo in an event type fails at wiring time instead of never firing.

Handlers are kept per event type in subscription order.
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, Dict, FrozenSet, Iterable, List, Tuple

from core.events.errors import (
    DuplicateSubscriberError,
    EventBusError,
    UnknownEventTypeError,
)

logger = logging.getLogger("custody.events")

Handler = Callable[[object], None]


def handler_name(handler: Handler) -> str:
    return getattr(handler, "__qualname__", repr(handler))


class SubscriberRegistry:
    def __init__(self, event_types: Iterable[str]):
        self._handlers: Dict[str, List[Handler]] = {
            event_type: [] for event_type in event_types
        }
        if not self._handlers:
            raise ValueError("SubscriberRegistry needs at least one event type.")
        self._lock = Lock()

    @property
    def event_types(self) -> FrozenSet[str]:
        return frozenset(self._handlers)

    def subscribe(self, event_type: str, handler: Handler) -> None:
        """
        Raises:
            UnknownEventTypeError:    event_type not served by this registry
            DuplicateSubscriberError: handler already on event_type
            EventBusError:            handler is not callable
        """
        if not callable(handler):
            raise EventBusError(f"Handler must be callable, got {type(handler)}.")

        with self._lock:
            handlers = self._handlers_or_raise(event_type)
            if any(existing is handler for existing in handlers):
                raise DuplicateSubscriberError(event_type, handler_name(handler))
            handlers.append(handler)

        logger.info(f"Subscribed {handler_name(handler)} to {event_type}")

    def subscribe_all(self, handler: Handler) -> None:
        """Subscribe handler to every event type, in sorted order."""
        for event_type in sorted(self._handlers):
            self.subscribe(event_type, handler)

    def handlers_for(self, event_type: str) -> Tuple[Handler, ...]:
        with self._lock:
            return tuple(self._handlers_or_raise(event_type))

    def subscriber_count(self, event_type: str) -> int:
        return len(self.handlers_for(event_type))

    def _handlers_or_raise(self, event_type: str) -> List[Handler]:
        try:
            return self._handlers[event_type]
        except KeyError:
            raise UnknownEventTypeError(event_type) from None
