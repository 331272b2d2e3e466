"""
Custody Engine — Application Service
======================================
Wires RoleRegistry, AccessControlList and ProductLedger over one
injected state container, and executes custody Commands.

Flow per command:
1. Resolve caller identity from command.actor_id
2. Route command_type to the component operation
3. Component checks, commits, and emits its notification
4. Wrap the outcome in a CustodyExecutionResult

Rejections propagate to the caller as CustodyError subclasses.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from core.commands.base import Command
from core.events.registry import SubscriberRegistry
from core.primitives.identity import Identity
from core.time.clock import Clock, SystemClock
from engines.custody.access import AccessControlList
from engines.custody.commands import (
    CUSTODY_ACCESS_GRANT_REQUEST,
    CUSTODY_ACCESS_REVOKE_REQUEST,
    CUSTODY_PRODUCT_CREATE_REQUEST,
    CUSTODY_PRODUCT_NOTE_REQUEST,
    CUSTODY_PRODUCT_RECEIVE_REQUEST,
    CUSTODY_ROLE_ASSIGN_REQUEST,
    CUSTODY_ROLE_REVOKE_REQUEST,
    CUSTODY_TRANSFER_ACCEPT_REQUEST,
    CUSTODY_TRANSFER_INITIATE_REQUEST,
)
from engines.custody.config import CustodyConfig
from engines.custody.errors import CustodyError
from engines.custody.events import CustodyNotification, CustodyNotifier
from engines.custody.ledger import ProductLedger
from engines.custody.models import Product, Role
from engines.custody.registry import RoleRegistry
from engines.custody.state import CustodyStateStore

logger = logging.getLogger("custody.commands")


# ══════════════════════════════════════════════════════════════
# EXECUTION RESULT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CustodyExecutionResult:
    command_id: Any
    command_type: str
    product: Optional[Product] = None
    notification: Optional[CustodyNotification] = None


# ══════════════════════════════════════════════════════════════
# APPLICATION SERVICE
# ══════════════════════════════════════════════════════════════

class CustodyService:
    """
    Custody engine application service.

    Components are exposed as attributes for direct, typed use:
    service.roles, service.access, service.ledger.
    """

    def __init__(
        self,
        *,
        state: CustodyStateStore,
        config: Optional[CustodyConfig] = None,
        clock: Optional[Clock] = None,
        subscriber_registry: Optional[SubscriberRegistry] = None,
    ):
        self._state = state
        self._config = config or CustodyConfig(admin=state.admin)
        if self._config.admin != state.admin:
            raise ValueError("Config admin does not match state admin.")
        self._clock = clock or SystemClock()
        self._notifier = CustodyNotifier(
            subscriber_registry=subscriber_registry, clock=self._clock,
        )

        self.roles = RoleRegistry(state)
        self.access = AccessControlList(state, notifier=self._notifier)
        self.ledger = ProductLedger(
            state,
            config=self._config,
            clock=self._clock,
            notifier=self._notifier,
        )

        self._routes: Dict[str, Callable[[Identity, dict], Optional[Product]]] = {
            CUSTODY_ROLE_ASSIGN_REQUEST: self._assign_role,
            CUSTODY_ROLE_REVOKE_REQUEST: self._revoke_role,
            CUSTODY_PRODUCT_CREATE_REQUEST: self._create_product,
            CUSTODY_TRANSFER_INITIATE_REQUEST: self._initiate_transfer,
            CUSTODY_TRANSFER_ACCEPT_REQUEST: self._accept_transfer,
            CUSTODY_PRODUCT_RECEIVE_REQUEST: self._mark_received,
            CUSTODY_PRODUCT_NOTE_REQUEST: self._add_note,
            CUSTODY_ACCESS_GRANT_REQUEST: self._grant_view,
            CUSTODY_ACCESS_REVOKE_REQUEST: self._revoke_view,
        }

    @property
    def notifier(self) -> CustodyNotifier:
        return self._notifier

    @property
    def config(self) -> CustodyConfig:
        return self._config

    def execute(self, command: Command) -> CustodyExecutionResult:
        route = self._routes.get(command.command_type)
        if route is None:
            raise ValueError(
                f"Unsupported custody command type: {command.command_type}"
            )

        caller = command.actor
        previous = self._notifier.last
        try:
            product = route(caller, command.payload)
        except CustodyError as exc:
            logger.info(
                f"Command {command.command_id} REJECTED "
                f"({command.command_type}): {exc.code}: {exc.message}"
            )
            raise

        latest = self._notifier.last
        notification = latest if latest is not previous else None
        logger.info(
            f"Command {command.command_id} ACCEPTED ({command.command_type})"
        )
        return CustodyExecutionResult(
            command_id=command.command_id,
            command_type=command.command_type,
            product=product,
            notification=notification,
        )

    # ── routes ────────────────────────────────────────────────

    def _assign_role(self, caller: Identity, payload: dict) -> None:
        self.roles.assign_role(
            caller, Identity.from_hex(payload["identity"]), Role(payload["role"]),
        )

    def _revoke_role(self, caller: Identity, payload: dict) -> None:
        self.roles.revoke_role(caller, Identity.from_hex(payload["identity"]))

    def _create_product(self, caller: Identity, payload: dict) -> Product:
        return self.ledger.create_product(
            caller, payload["product_id"], payload.get("metadata", ""),
        )

    def _initiate_transfer(self, caller: Identity, payload: dict) -> Product:
        return self.ledger.initiate_transfer(
            caller, payload["product_id"], Identity.from_hex(payload["to"]),
        )

    def _accept_transfer(self, caller: Identity, payload: dict) -> Product:
        return self.ledger.accept_transfer(caller, payload["product_id"])

    def _mark_received(self, caller: Identity, payload: dict) -> Product:
        return self.ledger.mark_received(caller, payload["product_id"])

    def _add_note(self, caller: Identity, payload: dict) -> Product:
        return self.ledger.add_note(caller, payload["product_id"], payload["note"])

    def _grant_view(self, caller: Identity, payload: dict) -> None:
        self.access.grant_view(
            caller, payload["product_id"], Identity.from_hex(payload["viewer"]),
        )

    def _revoke_view(self, caller: Identity, payload: dict) -> None:
        self.access.revoke_view(
            caller, payload["product_id"], Identity.from_hex(payload["viewer"]),
        )


# ══════════════════════════════════════════════════════════════
# DJANGO WIRING
# ══════════════════════════════════════════════════════════════

def build_custody_service_from_settings(
    settings=None,
    *,
    clock: Optional[Clock] = None,
    subscriber_registry: Optional[SubscriberRegistry] = None,
) -> CustodyService:
    """Build a DB-backed service from Django settings."""
    if settings is None:
        from django.conf import settings

    from engines.custody.db_state import DbCustodyState

    config = CustodyConfig.from_settings(settings)
    return CustodyService(
        state=DbCustodyState(admin=config.admin),
        config=config,
        clock=clock,
        subscriber_registry=subscriber_registry,
    )
