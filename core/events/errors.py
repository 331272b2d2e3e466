"""
Custody Event Bus — Errors
"""


class EventBusError(Exception):
    """Base error for notification subscription."""


class UnknownEventTypeError(EventBusError):
    """Event type is not one the registry was built for."""

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(f"Unknown event type '{event_type}'.")


class DuplicateSubscriberError(EventBusError):
    """Handler is already subscribed to this event type."""

    def __init__(self, event_type: str, handler_name: str):
        self.event_type = event_type
        self.handler_name = handler_name
        super().__init__(
            f"'{handler_name}' is already subscribed to '{event_type}'."
        )
