"""
Custody Engine — Access Control List
======================================
Per-(product, viewer) visibility grants over audit history.

The product summary is public. The full history is readable only by
viewers holding an explicit grant. Grants survive ownership changes;
the only automatic grant is the creator's, made at creation time.
"""

from __future__ import annotations

from typing import Optional, Tuple

from core.primitives.identity import Identity
from engines.custody.errors import raise_for_rejection
from engines.custody.events import (
    ACCESS_GRANTED,
    ACCESS_REVOKED,
    CustodyNotifier,
    build_access_payload,
)
from engines.custody.models import EventEntry, ProductSummary
from engines.custody.policies import (
    grant_manager_policy,
    product_exists_policy,
    view_grant_policy,
)
from engines.custody.state import CustodyStateStore


class AccessControlList:
    def __init__(
        self,
        state: CustodyStateStore,
        notifier: Optional[CustodyNotifier] = None,
    ):
        self._state = state
        self._notifier = notifier or CustodyNotifier()

    # ── grants ────────────────────────────────────────────────

    def grant_view(self, caller: Identity, product_id: str, viewer: Identity) -> None:
        self._set_grant(caller, product_id, viewer, allowed=True)
        self._notifier.emit(
            ACCESS_GRANTED, build_access_payload(product_id, viewer, caller),
        )

    def revoke_view(self, caller: Identity, product_id: str, viewer: Identity) -> None:
        self._set_grant(caller, product_id, viewer, allowed=False)
        self._notifier.emit(
            ACCESS_REVOKED, build_access_payload(product_id, viewer, caller),
        )

    def _set_grant(
        self,
        caller: Identity,
        product_id: str,
        viewer: Identity,
        allowed: bool,
    ) -> None:
        if not isinstance(viewer, Identity):
            raise TypeError("viewer must be Identity.")
        raise_for_rejection(
            product_exists_policy(self._state, product_id), product_id,
        )
        raise_for_rejection(
            grant_manager_policy(self._state, product_id, caller), product_id,
        )

        with self._state.atomic():
            self._state.set_grant(product_id, viewer, allowed)

    def can_view(self, product_id: str, viewer: Identity) -> bool:
        return self._state.get_grant(product_id, viewer)

    # ── reads ─────────────────────────────────────────────────

    def get_product_summary(self, product_id: str) -> ProductSummary:
        """Public: no grant required."""
        raise_for_rejection(
            product_exists_policy(self._state, product_id), product_id,
        )
        return self._state.get_product(product_id).summary()

    def get_product_history(
        self, caller: Identity, product_id: str,
    ) -> Tuple[EventEntry, ...]:
        """Full history in append order, for granted viewers only."""
        raise_for_rejection(
            product_exists_policy(self._state, product_id), product_id,
        )
        raise_for_rejection(
            view_grant_policy(self._state, product_id, caller), product_id,
        )
        return self._state.get_product(product_id).history
