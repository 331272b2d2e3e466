"""
Custody Engine — Policies
===========================
Pure authorization and existence checks for custody operations.

Each policy returns None when the check passes, or a RejectionReason.
Policies only read state; the caller raises before mutating anything.
"""

from __future__ import annotations

from typing import Optional

from core.commands.rejection import ReasonCode, RejectionReason
from core.primitives.identity import Identity
from engines.custody.models import Role
from engines.custody.state import CustodyStateStore


def admin_only_policy(
    state: CustodyStateStore,
    caller: Identity,
) -> Optional[RejectionReason]:
    """Reject unless caller is the admin fixed at initialization."""
    if caller == state.admin:
        return None
    return RejectionReason(
        code=ReasonCode.ADMIN_ONLY,
        message=f"Only the admin may do this; caller is {caller.to_hex()}.",
        policy_name="admin_only_policy",
    )


def role_required_policy(
    state: CustodyStateStore,
    caller: Identity,
    role: Role,
) -> Optional[RejectionReason]:
    """Reject unless caller currently holds role."""
    current = state.get_role(caller)
    if current is role:
        return None
    return RejectionReason(
        code=ReasonCode.ROLE_MISMATCH,
        message=(
            f"Caller {caller.to_hex()} has role '{current.value}', "
            f"'{role.value}' required."
        ),
        policy_name="role_required_policy",
    )


def product_absent_policy(
    state: CustodyStateStore,
    product_id: str,
) -> Optional[RejectionReason]:
    """Reject creation of a product id that is already taken."""
    if not state.has_product(product_id):
        return None
    return RejectionReason(
        code=ReasonCode.ALREADY_EXISTS,
        message=f"Product '{product_id}' already exists.",
        policy_name="product_absent_policy",
    )


def product_exists_policy(
    state: CustodyStateStore,
    product_id: str,
) -> Optional[RejectionReason]:
    if state.has_product(product_id):
        return None
    return RejectionReason(
        code=ReasonCode.NOT_FOUND,
        message=f"Product '{product_id}' not found.",
        policy_name="product_exists_policy",
    )


def owner_only_policy(
    state: CustodyStateStore,
    product_id: str,
    caller: Identity,
) -> Optional[RejectionReason]:
    """Reject unless caller is the current owner. Product must exist."""
    product = state.get_product(product_id)
    if product is not None and product.owner == caller:
        return None
    return RejectionReason(
        code=ReasonCode.NOT_OWNER,
        message=(
            f"Caller {caller.to_hex()} is not the owner "
            f"of product '{product_id}'."
        ),
        policy_name="owner_only_policy",
    )


def recipient_policy(recipient: Identity) -> Optional[RejectionReason]:
    """Reject the null identity as a transfer recipient."""
    if isinstance(recipient, Identity) and not recipient.is_null:
        return None
    return RejectionReason(
        code=ReasonCode.INVALID_RECIPIENT,
        message="Transfer recipient must be a non-null identity.",
        policy_name="recipient_policy",
    )


def pending_overwrite_policy(
    state: CustodyStateStore,
    product_id: str,
    allow_overwrite: bool,
) -> Optional[RejectionReason]:
    """
    Reject a fresh initiate while another recipient is pending.
    Passes unconditionally when allow_overwrite is set.
    """
    if allow_overwrite:
        return None
    pending = state.get_pending(product_id)
    if pending.is_null:
        return None
    return RejectionReason(
        code=ReasonCode.PENDING_TRANSFER_EXISTS,
        message=(
            f"Product '{product_id}' already has a pending transfer "
            f"to {pending.to_hex()}."
        ),
        policy_name="pending_overwrite_policy",
    )


def pending_recipient_policy(
    state: CustodyStateStore,
    product_id: str,
    caller: Identity,
) -> Optional[RejectionReason]:
    """Reject unless caller is the nominated pending recipient."""
    pending = state.get_pending(product_id)
    if not pending.is_null and pending == caller:
        return None
    return RejectionReason(
        code=ReasonCode.NO_PENDING_TRANSFER_FOR_CALLER,
        message=(
            f"No pending transfer of product '{product_id}' "
            f"for {caller.to_hex()}."
        ),
        policy_name="pending_recipient_policy",
    )


def grant_manager_policy(
    state: CustodyStateStore,
    product_id: str,
    caller: Identity,
) -> Optional[RejectionReason]:
    """Only the admin or the current owner may change view grants."""
    if caller == state.admin:
        return None
    product = state.get_product(product_id)
    if product is not None and product.owner == caller:
        return None
    return RejectionReason(
        code=ReasonCode.UNAUTHORIZED,
        message=(
            f"Caller {caller.to_hex()} may not manage access "
            f"to product '{product_id}'."
        ),
        policy_name="grant_manager_policy",
    )


def view_grant_policy(
    state: CustodyStateStore,
    product_id: str,
    caller: Identity,
) -> Optional[RejectionReason]:
    """History is readable only with an explicit grant."""
    if state.get_grant(product_id, caller):
        return None
    return RejectionReason(
        code=ReasonCode.UNAUTHORIZED,
        message=(
            f"Caller {caller.to_hex()} has no view grant "
            f"for product '{product_id}'."
        ),
        policy_name="view_grant_policy",
    )
