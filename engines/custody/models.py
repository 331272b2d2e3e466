"""
Custody Engine — Data Model
=============================
Engine: Custody
Authority: Custody Doctrine — Append-Only, Single-Writer

Roles, product status, audit history entries, and the Product record.

RULES (NON-NEGOTIABLE):
- product_id is unique and immutable once created
- History only grows, in append order; entries are never edited
- Exactly one non-null owner per product
- Products are never deleted

Product is an immutable snapshot. Every mutation produces a new
snapshot with one more history entry; the previous snapshot is
left untouched.

This file contains NO persistence logic.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Tuple

from core.primitives.identity import Identity


# ══════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════

class Role(Enum):
    """Supply-chain role bound to an identity. Exactly one at a time."""
    NONE = "None"
    MANUFACTURER = "Manufacturer"
    DISTRIBUTOR = "Distributor"
    RETAILER = "Retailer"


class Status(Enum):
    """Product lifecycle status."""
    CREATED = "Created"
    IN_TRANSIT = "InTransit"
    RECEIVED = "Received"


class EventAction(Enum):
    """Tag carried by every audit history entry."""
    CREATED = "Created"
    TRANSFER_INITIATED = "TransferInitiated"
    TRANSFER_ACCEPTED = "TransferAccepted"
    RECEIVED = "Received"
    NOTE = "Note"


# ══════════════════════════════════════════════════════════════
# EVENT ENTRY (audit history record)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class EventEntry:
    """
    Immutable record of one lifecycle transition.

    Fields:
        timestamp:  When the transition was committed (UTC)
        actor:      Identity that performed it
        action:     EventAction tag
        metadata:   Opaque string, passed through unmodified
    """
    timestamp: datetime
    actor: Identity
    action: EventAction
    metadata: str = ""

    def __post_init__(self):
        if not isinstance(self.timestamp, datetime):
            raise ValueError("timestamp must be datetime.")
        if not isinstance(self.actor, Identity):
            raise TypeError("actor must be Identity.")
        if not isinstance(self.action, EventAction):
            raise ValueError("action must be EventAction enum.")
        if not isinstance(self.metadata, str):
            raise TypeError("metadata must be a string.")

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "actor": self.actor.to_hex(),
            "action": self.action.value,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict) -> EventEntry:
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            actor=Identity.from_hex(data["actor"]),
            action=EventAction(data["action"]),
            metadata=data.get("metadata", ""),
        )


# ══════════════════════════════════════════════════════════════
# PRODUCT SUMMARY (public read model)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ProductSummary:
    """Always-public view of a product. Carries no history."""
    product_id: str
    owner: Identity
    owner_role: Role
    status: Status

    def as_tuple(self) -> Tuple[str, Identity, Role, Status]:
        return (self.product_id, self.owner, self.owner_role, self.status)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "owner": self.owner.to_hex(),
            "owner_role": self.owner_role.value,
            "status": self.status.value,
        }


# ══════════════════════════════════════════════════════════════
# PRODUCT (immutable snapshot)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Product:
    """
    A tracked product and its full custody history.

    Fields:
        product_id:  Unique, immutable key
        owner:       Current custodian (never null)
        owner_role:  Owner's role snapshot, taken at creation or acceptance
        status:      Created | InTransit | Received
        history:     Ordered, append-only tuple of EventEntry
    """
    product_id: str
    owner: Identity
    owner_role: Role
    status: Status
    history: Tuple[EventEntry, ...] = ()

    def __post_init__(self):
        if not self.product_id or not isinstance(self.product_id, str):
            raise ValueError("product_id must be a non-empty string.")
        if not isinstance(self.owner, Identity):
            raise TypeError("owner must be Identity.")
        if self.owner.is_null:
            raise ValueError("owner must be a non-null identity.")
        if not isinstance(self.owner_role, Role):
            raise ValueError("owner_role must be Role enum.")
        if not isinstance(self.status, Status):
            raise ValueError("status must be Status enum.")
        if not isinstance(self.history, tuple):
            raise TypeError("history must be a tuple of EventEntry.")

    def append(self, entry: EventEntry, **changes) -> Product:
        """
        Return a new snapshot with entry appended and fields changed.
        product_id and history cannot be overridden.
        """
        if not isinstance(entry, EventEntry):
            raise TypeError("entry must be EventEntry.")
        forbidden = {"product_id", "history"} & set(changes)
        if forbidden:
            raise ValueError(f"Cannot change {sorted(forbidden)} on append.")
        return replace(self, history=self.history + (entry,), **changes)

    def summary(self) -> ProductSummary:
        return ProductSummary(
            product_id=self.product_id,
            owner=self.owner,
            owner_role=self.owner_role,
            status=self.status,
        )

    @property
    def history_length(self) -> int:
        return len(self.history)

    def to_dict(self) -> dict:
        data = self.summary().to_dict()
        data["history"] = [e.to_dict() for e in self.history]
        return data
