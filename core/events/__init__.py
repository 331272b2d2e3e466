"""
Custody Event Bus — Public API
================================
The ledger commits state; the bus tells outside observers about it.
"""

from core.events.dispatcher import DispatchFailure, DispatchReport, dispatch
from core.events.errors import (
    DuplicateSubscriberError,
    EventBusError,
    UnknownEventTypeError,
)
from core.events.registry import SubscriberRegistry

__all__ = [
    "dispatch",
    "DispatchFailure",
    "DispatchReport",
    "SubscriberRegistry",
    "EventBusError",
    "UnknownEventTypeError",
    "DuplicateSubscriberError",
]
