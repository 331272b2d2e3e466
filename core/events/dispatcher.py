"""
Custody Event Bus — Dispatcher
================================
Hands a committed notification to every subscribed handler, in order.

A failing handler is logged and reported; the remaining handlers still
run and nothing is raised back into the ledger. Delivery happens once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Tuple

from core.events.registry import SubscriberRegistry, handler_name

logger = logging.getLogger("custody.events")


@dataclass(frozen=True)
class DispatchFailure:
    handler: str
    error_type: str
    error: str


@dataclass(frozen=True)
class DispatchReport:
    event_type: str
    event_id: str
    delivered: int
    failures: Tuple[DispatchFailure, ...] = ()

    @property
    def failed(self) -> int:
        return len(self.failures)


def dispatch(notification: Any, registry: SubscriberRegistry) -> DispatchReport:
    """
    Deliver notification (anything with event_type and event_id).

    Raises UnknownEventTypeError only for a type the registry does not
    serve; handler exceptions never propagate.
    """
    event_type = notification.event_type
    event_id = str(notification.event_id)

    delivered = 0
    failures = []
    for handler in registry.handlers_for(event_type):
        try:
            handler(notification)
        except Exception as exc:
            failures.append(DispatchFailure(
                handler=handler_name(handler),
                error_type=type(exc).__name__,
                error=str(exc),
            ))
            logger.error(
                f"Handler {handler_name(handler)} failed on {event_type} "
                f"({event_id}): {exc}",
                exc_info=True,
            )
        else:
            delivered += 1

    if failures:
        logger.warning(
            f"{event_type} ({event_id}): {delivered} delivered, "
            f"{len(failures)} failed"
        )
    else:
        logger.debug(f"{event_type} ({event_id}): {delivered} delivered")

    return DispatchReport(
        event_type=event_type,
        event_id=event_id,
        delivered=delivered,
        failures=tuple(failures),
    )
