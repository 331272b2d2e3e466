"""
Custody Engine — Notification Types and Payload Builders
==========================================================
Engine: Custody

Every successful mutating call emits exactly one notification,
synchronously, after its state commit. Delivery to observers is the
event bus's job; the engine never retries.

Notes are audit-only annotations and carry no notification tag.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

from core.events.dispatcher import DispatchReport, dispatch
from core.events.registry import SubscriberRegistry
from core.primitives.identity import Identity
from core.time.clock import Clock, SystemClock


# ══════════════════════════════════════════════════════════════
# NOTIFICATION TAGS AND EVENT TYPES
# ══════════════════════════════════════════════════════════════

PRODUCT_CREATED = "ProductCreated"
TRANSFER_INITIATED = "TransferInitiated"
TRANSFER_ACCEPTED = "TransferAccepted"
PRODUCT_RECEIVED = "ProductReceived"
ACCESS_GRANTED = "AccessGranted"
ACCESS_REVOKED = "AccessRevoked"

CUSTODY_PRODUCT_CREATED_V1 = "custody.product.created.v1"
CUSTODY_TRANSFER_INITIATED_V1 = "custody.transfer.initiated.v1"
CUSTODY_TRANSFER_ACCEPTED_V1 = "custody.transfer.accepted.v1"
CUSTODY_PRODUCT_RECEIVED_V1 = "custody.product.received.v1"
CUSTODY_ACCESS_GRANTED_V1 = "custody.access.granted.v1"
CUSTODY_ACCESS_REVOKED_V1 = "custody.access.revoked.v1"

TAG_TO_EVENT_TYPE: Dict[str, str] = {
    PRODUCT_CREATED: CUSTODY_PRODUCT_CREATED_V1,
    TRANSFER_INITIATED: CUSTODY_TRANSFER_INITIATED_V1,
    TRANSFER_ACCEPTED: CUSTODY_TRANSFER_ACCEPTED_V1,
    PRODUCT_RECEIVED: CUSTODY_PRODUCT_RECEIVED_V1,
    ACCESS_GRANTED: CUSTODY_ACCESS_GRANTED_V1,
    ACCESS_REVOKED: CUSTODY_ACCESS_REVOKED_V1,
}

CUSTODY_EVENT_TYPES = tuple(sorted(TAG_TO_EVENT_TYPE.values()))


def resolve_custody_event_type(tag: str) -> str | None:
    return TAG_TO_EVENT_TYPE.get(tag)


# ══════════════════════════════════════════════════════════════
# PAYLOAD BUILDERS
# ══════════════════════════════════════════════════════════════

def build_product_created_payload(
    product_id: str, owner: Identity, metadata: str,
) -> dict:
    return {
        "product_id": product_id,
        "owner": owner.to_hex(),
        "metadata": metadata,
    }


def build_transfer_initiated_payload(
    product_id: str, from_owner: Identity, to: Identity,
) -> dict:
    return {
        "product_id": product_id,
        "from": from_owner.to_hex(),
        "to": to.to_hex(),
    }


def build_transfer_accepted_payload(
    product_id: str, previous_owner: Identity, new_owner: Identity,
) -> dict:
    return {
        "product_id": product_id,
        "from": previous_owner.to_hex(),
        "to": new_owner.to_hex(),
    }


def build_product_received_payload(product_id: str, owner: Identity) -> dict:
    return {
        "product_id": product_id,
        "owner": owner.to_hex(),
    }


def build_access_payload(
    product_id: str, viewer: Identity, by: Identity,
) -> dict:
    return {
        "product_id": product_id,
        "viewer": viewer.to_hex(),
        "by": by.to_hex(),
    }


# ══════════════════════════════════════════════════════════════
# NOTIFICATION RECORD
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CustodyNotification:
    """Outbound record handed to observers. Never mutated."""
    event_id: uuid.UUID
    event_type: str
    tag: str
    payload: dict
    occurred_at: datetime

    def to_dict(self) -> dict:
        return {
            "event_id": str(self.event_id),
            "event_type": self.event_type,
            "tag": self.tag,
            "payload": dict(self.payload),
            "occurred_at": self.occurred_at.isoformat(),
        }


# ══════════════════════════════════════════════════════════════
# NOTIFIER
# ══════════════════════════════════════════════════════════════

def build_custody_subscriber_registry() -> SubscriberRegistry:
    """Registry serving exactly the custody event types."""
    return SubscriberRegistry(CUSTODY_EVENT_TYPES)


class CustodyNotifier:
    """
    Builds notifications and hands them to the event bus.

    Holds only the most recent notification and dispatch report;
    observers that need the full stream subscribe to the registry.
    Without a subscriber registry, notifications are built and dropped.
    """

    def __init__(
        self,
        subscriber_registry: Optional[SubscriberRegistry] = None,
        clock: Optional[Clock] = None,
    ):
        if subscriber_registry is not None:
            missing = set(CUSTODY_EVENT_TYPES) - subscriber_registry.event_types
            if missing:
                raise ValueError(
                    f"Subscriber registry does not serve {sorted(missing)}."
                )
        self._subscriber_registry = subscriber_registry
        self._clock = clock or SystemClock()
        self._last: Optional[CustodyNotification] = None
        self._last_dispatch: Optional[DispatchReport] = None

    def emit(self, tag: str, payload: dict) -> CustodyNotification:
        event_type = resolve_custody_event_type(tag)
        if event_type is None:
            raise ValueError(f"Unknown custody notification tag: {tag}")

        notification = CustodyNotification(
            event_id=uuid.uuid4(),
            event_type=event_type,
            tag=tag,
            payload=payload,
            occurred_at=self._clock.now_utc(),
        )
        self._last = notification

        if self._subscriber_registry is not None:
            self._last_dispatch = dispatch(notification, self._subscriber_registry)
        return notification

    @property
    def last(self) -> Optional[CustodyNotification]:
        return self._last

    @property
    def last_dispatch(self) -> Optional[DispatchReport]:
        return self._last_dispatch
