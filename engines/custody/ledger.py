"""
Custody Engine — Product Ledger
=================================
Engine: Custody
Authority: Custody Doctrine — Append-Only, Single-Writer

Owns product records, the ownership/status state machine, and the
two-phase ownership transfer.

State machine (per product):

    Created ──initiate──▶ InTransit ──accept──▶ (owner changes)
       │                     ▲   │
       │                     └───┘ re-initiate
       └──────────── mark_received ──────────▶ Received

Two-phase transfer:
    1. Owner nominates a recipient (pending recipient recorded)
    2. Recipient accepts: owner, owner_role and pending are
       updated in one commit

RULES (NON-NEGOTIABLE):
- Every check runs before the first write
- A failed call changes nothing and emits nothing
- One history entry per successful mutation
- Pending transfers never expire
- accept_transfer and mark_received do not gate on status
"""

from __future__ import annotations

from typing import Optional

from core.primitives.identity import Identity
from core.time.clock import Clock, SystemClock
from engines.custody.config import CustodyConfig
from engines.custody.errors import raise_for_rejection
from engines.custody.events import (
    PRODUCT_CREATED,
    PRODUCT_RECEIVED,
    TRANSFER_ACCEPTED,
    TRANSFER_INITIATED,
    CustodyNotifier,
    build_product_created_payload,
    build_product_received_payload,
    build_transfer_accepted_payload,
    build_transfer_initiated_payload,
)
from engines.custody.models import EventAction, EventEntry, Product, Role, Status
from engines.custody.policies import (
    owner_only_policy,
    pending_overwrite_policy,
    pending_recipient_policy,
    product_absent_policy,
    product_exists_policy,
    recipient_policy,
    role_required_policy,
)
from engines.custody.state import CustodyStateStore


class ProductLedger:
    """
    Product custody state machine.

    Shares its state container with RoleRegistry and AccessControlList;
    roles are read from it, the creator's view grant is written to it.
    """

    def __init__(
        self,
        state: CustodyStateStore,
        *,
        config: Optional[CustodyConfig] = None,
        clock: Optional[Clock] = None,
        notifier: Optional[CustodyNotifier] = None,
    ):
        self._state = state
        self._config = config or CustodyConfig(admin=state.admin)
        self._clock = clock or SystemClock()
        self._notifier = notifier or CustodyNotifier(clock=self._clock)

    # ── reads ─────────────────────────────────────────────────

    def product_exists(self, product_id: str) -> bool:
        return self._state.has_product(product_id)

    def get_product(self, product_id: str) -> Product:
        raise_for_rejection(
            product_exists_policy(self._state, product_id), product_id,
        )
        return self._state.get_product(product_id)

    def pending_recipient(self, product_id: str) -> Identity:
        """Identity.NULL when nothing is pending."""
        return self._state.get_pending(product_id)

    # ── mutations ─────────────────────────────────────────────

    def create_product(self, caller: Identity, product_id: str, metadata: str) -> Product:
        if not product_id or not isinstance(product_id, str):
            raise ValueError("product_id must be a non-empty string.")
        if not isinstance(metadata, str):
            raise TypeError("metadata must be a string.")

        raise_for_rejection(
            role_required_policy(self._state, caller, Role.MANUFACTURER),
            product_id,
        )
        raise_for_rejection(
            product_absent_policy(self._state, product_id), product_id,
        )

        product = Product(
            product_id=product_id,
            owner=caller,
            owner_role=self._state.get_role(caller),
            status=Status.CREATED,
            history=(self._entry(caller, EventAction.CREATED, metadata),),
        )
        with self._state.atomic():
            self._state.put_product(product)
            self._state.set_grant(product_id, caller, True)

        self._notifier.emit(
            PRODUCT_CREATED,
            build_product_created_payload(product_id, caller, metadata),
        )
        return product

    def initiate_transfer(self, caller: Identity, product_id: str, to: Identity) -> Product:
        """
        Nominate a recipient. Re-initiating replaces the previous nominee
        unless the config disables overwrite.
        """
        raise_for_rejection(
            product_exists_policy(self._state, product_id), product_id,
        )
        raise_for_rejection(
            owner_only_policy(self._state, product_id, caller), product_id,
        )
        raise_for_rejection(recipient_policy(to), product_id)
        raise_for_rejection(
            pending_overwrite_policy(
                self._state, product_id, self._config.allow_pending_overwrite,
            ),
            product_id,
        )

        current = self._state.get_product(product_id)
        product = current.append(
            self._entry(caller, EventAction.TRANSFER_INITIATED, to.to_hex()),
            status=Status.IN_TRANSIT,
        )
        with self._state.atomic():
            self._state.set_pending(product_id, to)
            self._state.put_product(product)

        self._notifier.emit(
            TRANSFER_INITIATED,
            build_transfer_initiated_payload(product_id, caller, to),
        )
        return product

    def accept_transfer(self, caller: Identity, product_id: str) -> Product:
        raise_for_rejection(
            product_exists_policy(self._state, product_id), product_id,
        )
        raise_for_rejection(
            pending_recipient_policy(self._state, product_id, caller),
            product_id,
        )

        current = self._state.get_product(product_id)
        product = current.append(
            self._entry(caller, EventAction.TRANSFER_ACCEPTED, ""),
            owner=caller,
            owner_role=self._state.get_role(caller),
        )
        with self._state.atomic():
            self._state.put_product(product)
            self._state.clear_pending(product_id)

        self._notifier.emit(
            TRANSFER_ACCEPTED,
            build_transfer_accepted_payload(product_id, current.owner, caller),
        )
        return product

    def mark_received(self, caller: Identity, product_id: str) -> Product:
        raise_for_rejection(
            product_exists_policy(self._state, product_id), product_id,
        )
        raise_for_rejection(
            owner_only_policy(self._state, product_id, caller), product_id,
        )

        product = self._state.get_product(product_id).append(
            self._entry(caller, EventAction.RECEIVED, ""),
            status=Status.RECEIVED,
        )
        with self._state.atomic():
            self._state.put_product(product)

        self._notifier.emit(
            PRODUCT_RECEIVED,
            build_product_received_payload(product_id, caller),
        )
        return product

    def add_note(self, caller: Identity, product_id: str, note: str) -> Product:
        """Audit annotation only: no status change, no notification."""
        if not isinstance(note, str):
            raise TypeError("note must be a string.")
        raise_for_rejection(
            product_exists_policy(self._state, product_id), product_id,
        )
        raise_for_rejection(
            owner_only_policy(self._state, product_id, caller), product_id,
        )

        product = self._state.get_product(product_id).append(
            self._entry(caller, EventAction.NOTE, note),
        )
        with self._state.atomic():
            self._state.put_product(product)
        return product

    def _entry(self, actor: Identity, action: EventAction, metadata: str) -> EventEntry:
        return EventEntry(
            timestamp=self._clock.now_utc(),
            actor=actor,
            action=action,
            metadata=metadata,
        )
