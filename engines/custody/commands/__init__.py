"""
Custody Engine — Request Commands
===================================
Typed custody requests that convert into canonical Command objects.
Requests validate shape only; authorization happens in the engine.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

from core.commands.base import Command
from core.primitives.identity import Identity


# ══════════════════════════════════════════════════════════════
# COMMAND TYPE CONSTANTS
# ══════════════════════════════════════════════════════════════

CUSTODY_ROLE_ASSIGN_REQUEST = "custody.role.assign.request"
CUSTODY_ROLE_REVOKE_REQUEST = "custody.role.revoke.request"
CUSTODY_PRODUCT_CREATE_REQUEST = "custody.product.create.request"
CUSTODY_TRANSFER_INITIATE_REQUEST = "custody.transfer.initiate.request"
CUSTODY_TRANSFER_ACCEPT_REQUEST = "custody.transfer.accept.request"
CUSTODY_PRODUCT_RECEIVE_REQUEST = "custody.product.receive.request"
CUSTODY_PRODUCT_NOTE_REQUEST = "custody.product.note.request"
CUSTODY_ACCESS_GRANT_REQUEST = "custody.access.grant.request"
CUSTODY_ACCESS_REVOKE_REQUEST = "custody.access.revoke.request"

CUSTODY_COMMAND_TYPES = frozenset({
    CUSTODY_ROLE_ASSIGN_REQUEST,
    CUSTODY_ROLE_REVOKE_REQUEST,
    CUSTODY_PRODUCT_CREATE_REQUEST,
    CUSTODY_TRANSFER_INITIATE_REQUEST,
    CUSTODY_TRANSFER_ACCEPT_REQUEST,
    CUSTODY_PRODUCT_RECEIVE_REQUEST,
    CUSTODY_PRODUCT_NOTE_REQUEST,
    CUSTODY_ACCESS_GRANT_REQUEST,
    CUSTODY_ACCESS_REVOKE_REQUEST,
})

VALID_ROLE_NAMES = frozenset({"None", "Manufacturer", "Distributor", "Retailer"})


def _check_identity_hex(field_name: str, value: str) -> None:
    if not value or not isinstance(value, str):
        raise ValueError(f"{field_name} must be non-empty.")
    try:
        Identity.from_hex(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field_name} is not a valid identity: {exc}") from exc


def _check_product_id(product_id: str) -> None:
    if not product_id or not isinstance(product_id, str):
        raise ValueError("product_id must be non-empty.")


def _build_command(
    command_type: str,
    payload: dict,
    *,
    actor_id: str,
    command_id: uuid.UUID,
    correlation_id: uuid.UUID,
    issued_at: datetime,
) -> Command:
    return Command(
        command_id=command_id,
        command_type=command_type,
        actor_id=actor_id,
        payload=payload,
        issued_at=issued_at,
        correlation_id=correlation_id,
        source_engine="custody",
    )


# ══════════════════════════════════════════════════════════════
# ROLE REQUESTS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AssignRoleRequest:
    """Admin request to bind a role to an identity."""
    identity: str
    role: str

    def __post_init__(self):
        _check_identity_hex("identity", self.identity)
        if self.role not in VALID_ROLE_NAMES:
            raise ValueError(f"role '{self.role}' not valid.")

    def to_command(self, **kwargs) -> Command:
        return _build_command(
            CUSTODY_ROLE_ASSIGN_REQUEST,
            {"identity": self.identity, "role": self.role},
            **kwargs,
        )


@dataclass(frozen=True)
class RevokeRoleRequest:
    """Admin request to reset an identity to role None."""
    identity: str

    def __post_init__(self):
        _check_identity_hex("identity", self.identity)

    def to_command(self, **kwargs) -> Command:
        return _build_command(
            CUSTODY_ROLE_REVOKE_REQUEST, {"identity": self.identity}, **kwargs,
        )


# ══════════════════════════════════════════════════════════════
# PRODUCT REQUESTS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CreateProductRequest:
    product_id: str
    metadata: str = ""

    def __post_init__(self):
        _check_product_id(self.product_id)
        if not isinstance(self.metadata, str):
            raise ValueError("metadata must be a string.")

    def to_command(self, **kwargs) -> Command:
        return _build_command(
            CUSTODY_PRODUCT_CREATE_REQUEST,
            {"product_id": self.product_id, "metadata": self.metadata},
            **kwargs,
        )


@dataclass(frozen=True)
class MarkReceivedRequest:
    product_id: str

    def __post_init__(self):
        _check_product_id(self.product_id)

    def to_command(self, **kwargs) -> Command:
        return _build_command(
            CUSTODY_PRODUCT_RECEIVE_REQUEST,
            {"product_id": self.product_id},
            **kwargs,
        )


@dataclass(frozen=True)
class AddNoteRequest:
    product_id: str
    note: str

    def __post_init__(self):
        _check_product_id(self.product_id)
        if not isinstance(self.note, str):
            raise ValueError("note must be a string.")

    def to_command(self, **kwargs) -> Command:
        return _build_command(
            CUSTODY_PRODUCT_NOTE_REQUEST,
            {"product_id": self.product_id, "note": self.note},
            **kwargs,
        )


# ══════════════════════════════════════════════════════════════
# TRANSFER REQUESTS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class InitiateTransferRequest:
    """
    Owner nominates a recipient. The null identity is accepted here
    and rejected by the engine as an invalid recipient.
    """
    product_id: str
    to: str

    def __post_init__(self):
        _check_product_id(self.product_id)
        _check_identity_hex("to", self.to)

    def to_command(self, **kwargs) -> Command:
        return _build_command(
            CUSTODY_TRANSFER_INITIATE_REQUEST,
            {"product_id": self.product_id, "to": self.to},
            **kwargs,
        )


@dataclass(frozen=True)
class AcceptTransferRequest:
    product_id: str

    def __post_init__(self):
        _check_product_id(self.product_id)

    def to_command(self, **kwargs) -> Command:
        return _build_command(
            CUSTODY_TRANSFER_ACCEPT_REQUEST,
            {"product_id": self.product_id},
            **kwargs,
        )


# ══════════════════════════════════════════════════════════════
# ACCESS REQUESTS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class GrantViewRequest:
    product_id: str
    viewer: str

    def __post_init__(self):
        _check_product_id(self.product_id)
        _check_identity_hex("viewer", self.viewer)

    def to_command(self, **kwargs) -> Command:
        return _build_command(
            CUSTODY_ACCESS_GRANT_REQUEST,
            {"product_id": self.product_id, "viewer": self.viewer},
            **kwargs,
        )


@dataclass(frozen=True)
class RevokeViewRequest:
    product_id: str
    viewer: str

    def __post_init__(self):
        _check_product_id(self.product_id)
        _check_identity_hex("viewer", self.viewer)

    def to_command(self, **kwargs) -> Command:
        return _build_command(
            CUSTODY_ACCESS_REVOKE_REQUEST,
            {"product_id": self.product_id, "viewer": self.viewer},
            **kwargs,
        )
