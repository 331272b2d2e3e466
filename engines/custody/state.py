"""
Custody Engine — State Container Protocol and In-Memory State
===============================================================
The four custody tables live behind one injected container:

    products   product_id → Product (history embedded)
    pending    product_id → nominated recipient Identity
    roles      Identity → Role
    grants     (product_id, Identity) → bool

Only RoleRegistry, AccessControlList and ProductLedger write
through this interface. Every write happens inside atomic().
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import ContextManager, Dict, Iterator, Optional, Protocol, Tuple

from core.primitives.identity import Identity
from engines.custody.models import Product, Role


class CustodyStateStore(Protocol):
    @property
    def admin(self) -> Identity:
        ...

    def atomic(self) -> ContextManager[None]:
        ...

    # ── roles ─────────────────────────────────────────────────

    def get_role(self, identity: Identity) -> Role:
        ...

    def set_role(self, identity: Identity, role: Role) -> None:
        ...

    # ── products ──────────────────────────────────────────────

    def get_product(self, product_id: str) -> Optional[Product]:
        ...

    def has_product(self, product_id: str) -> bool:
        ...

    def put_product(self, product: Product) -> None:
        ...

    def product_ids(self) -> Tuple[str, ...]:
        ...

    # ── pending transfers ─────────────────────────────────────

    def get_pending(self, product_id: str) -> Identity:
        ...

    def set_pending(self, product_id: str, recipient: Identity) -> None:
        ...

    def clear_pending(self, product_id: str) -> None:
        ...

    # ── view grants ───────────────────────────────────────────

    def get_grant(self, product_id: str, viewer: Identity) -> bool:
        ...

    def set_grant(self, product_id: str, viewer: Identity, allowed: bool) -> None:
        ...


class InMemoryCustodyState:
    """
    Deterministic in-memory state used for bootstrap/tests.

    Execution is serialized by the host, so atomic() needs no lock;
    callers run every check before the first write.
    """

    def __init__(self, admin: Identity):
        if not isinstance(admin, Identity):
            raise TypeError("admin must be Identity.")
        if admin.is_null:
            raise ValueError("admin must be a non-null identity.")
        self._admin = admin
        self._products: Dict[str, Product] = {}
        self._pending: Dict[str, Identity] = {}
        self._roles: Dict[Identity, Role] = {}
        self._grants: Dict[Tuple[str, Identity], bool] = {}

    @property
    def admin(self) -> Identity:
        return self._admin

    @contextmanager
    def atomic(self) -> Iterator[None]:
        yield

    def get_role(self, identity: Identity) -> Role:
        return self._roles.get(identity, Role.NONE)

    def set_role(self, identity: Identity, role: Role) -> None:
        if role is Role.NONE:
            self._roles.pop(identity, None)
        else:
            self._roles[identity] = role

    def get_product(self, product_id: str) -> Optional[Product]:
        return self._products.get(product_id)

    def has_product(self, product_id: str) -> bool:
        return product_id in self._products

    def put_product(self, product: Product) -> None:
        existing = self._products.get(product.product_id)
        if existing is not None and (
            product.history[: existing.history_length] != existing.history
        ):
            raise ValueError(
                f"History for product '{product.product_id}' is append-only."
            )
        self._products[product.product_id] = product

    def product_ids(self) -> Tuple[str, ...]:
        return tuple(sorted(self._products))

    def get_pending(self, product_id: str) -> Identity:
        return self._pending.get(product_id, Identity.NULL)

    def set_pending(self, product_id: str, recipient: Identity) -> None:
        self._pending[product_id] = recipient

    def clear_pending(self, product_id: str) -> None:
        self._pending.pop(product_id, None)

    def get_grant(self, product_id: str, viewer: Identity) -> bool:
        return self._grants.get((product_id, viewer), False)

    def set_grant(self, product_id: str, viewer: Identity, allowed: bool) -> None:
        if allowed:
            self._grants[(product_id, viewer)] = True
        else:
            self._grants.pop((product_id, viewer), None)
