"""
Custody Engine — DB-backed State
==================================
CustodyStateStore over the core.custody_store tables.

atomic() is a Django transaction, so the writes of one ledger
operation commit or roll back together. History rows are only ever
inserted, with a per-product sequence number.
"""

from __future__ import annotations

from typing import ContextManager, Optional, Tuple

from django.db import transaction

from core.primitives.identity import Identity
from engines.custody.models import EventAction, EventEntry, Product, Role, Status


def _entry_from_row(row) -> EventEntry:
    return EventEntry(
        timestamp=row.timestamp,
        actor=Identity.from_hex(row.actor),
        action=EventAction(row.action),
        metadata=row.metadata,
    )


class DbCustodyState:
    def __init__(self, admin: Identity):
        if not isinstance(admin, Identity):
            raise TypeError("admin must be Identity.")
        if admin.is_null:
            raise ValueError("admin must be a non-null identity.")
        self._admin = admin

    @property
    def admin(self) -> Identity:
        return self._admin

    def atomic(self) -> ContextManager[None]:
        return transaction.atomic()

    # ── roles ─────────────────────────────────────────────────

    def get_role(self, identity: Identity) -> Role:
        from core.custody_store.models import CustodyRole

        row = CustodyRole.objects.filter(identity=identity.to_hex()).first()
        if row is None:
            return Role.NONE
        return Role(row.role)

    def set_role(self, identity: Identity, role: Role) -> None:
        from core.custody_store.models import CustodyRole

        if role is Role.NONE:
            CustodyRole.objects.filter(identity=identity.to_hex()).delete()
            return
        CustodyRole.objects.update_or_create(
            identity=identity.to_hex(),
            defaults={"role": role.value},
        )

    # ── products ──────────────────────────────────────────────

    def get_product(self, product_id: str) -> Optional[Product]:
        from core.custody_store.models import CustodyProduct

        row = CustodyProduct.objects.filter(product_id=product_id).first()
        if row is None:
            return None

        history = tuple(
            _entry_from_row(entry)
            for entry in row.history_entries.order_by("sequence")
        )
        return Product(
            product_id=row.product_id,
            owner=Identity.from_hex(row.owner),
            owner_role=Role(row.owner_role),
            status=Status(row.status),
            history=history,
        )

    def has_product(self, product_id: str) -> bool:
        from core.custody_store.models import CustodyProduct

        return CustodyProduct.objects.filter(product_id=product_id).exists()

    def put_product(self, product: Product) -> None:
        from core.custody_store.models import CustodyHistoryEntry, CustodyProduct

        with transaction.atomic():
            CustodyProduct.objects.update_or_create(
                product_id=product.product_id,
                defaults={
                    "owner": product.owner.to_hex(),
                    "owner_role": product.owner_role.value,
                    "status": product.status.value,
                },
            )
            existing = tuple(
                _entry_from_row(row)
                for row in CustodyHistoryEntry.objects.filter(
                    product_id=product.product_id,
                ).order_by("sequence")
            )
            stored = len(existing)
            if product.history[:stored] != existing:
                raise ValueError(
                    f"History for product '{product.product_id}' is append-only."
                )
            CustodyHistoryEntry.objects.bulk_create([
                CustodyHistoryEntry(
                    product_id=product.product_id,
                    sequence=sequence,
                    timestamp=entry.timestamp,
                    actor=entry.actor.to_hex(),
                    action=entry.action.value,
                    metadata=entry.metadata,
                )
                for sequence, entry in enumerate(
                    product.history[stored:], start=stored,
                )
            ])

    def product_ids(self) -> Tuple[str, ...]:
        from core.custody_store.models import CustodyProduct

        return tuple(
            CustodyProduct.objects.order_by("product_id")
            .values_list("product_id", flat=True)
        )

    # ── pending transfers ─────────────────────────────────────

    def get_pending(self, product_id: str) -> Identity:
        from core.custody_store.models import CustodyPendingTransfer

        row = CustodyPendingTransfer.objects.filter(product_id=product_id).first()
        if row is None:
            return Identity.NULL
        return Identity.from_hex(row.recipient)

    def set_pending(self, product_id: str, recipient: Identity) -> None:
        from core.custody_store.models import CustodyPendingTransfer

        CustodyPendingTransfer.objects.update_or_create(
            product_id=product_id,
            defaults={"recipient": recipient.to_hex()},
        )

    def clear_pending(self, product_id: str) -> None:
        from core.custody_store.models import CustodyPendingTransfer

        CustodyPendingTransfer.objects.filter(product_id=product_id).delete()

    # ── view grants ───────────────────────────────────────────

    def get_grant(self, product_id: str, viewer: Identity) -> bool:
        from core.custody_store.models import CustodyViewGrant

        return CustodyViewGrant.objects.filter(
            product_id=product_id,
            viewer=viewer.to_hex(),
            allowed=True,
        ).exists()

    def set_grant(self, product_id: str, viewer: Identity, allowed: bool) -> None:
        from core.custody_store.models import CustodyViewGrant

        CustodyViewGrant.objects.update_or_create(
            product_id=product_id,
            viewer=viewer.to_hex(),
            defaults={"allowed": bool(allowed)},
        )
