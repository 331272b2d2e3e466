"""
Custody Engine — Errors
=========================
One error type per failure kind. Raised synchronously to the caller
before any state is touched; the engine never retries.
"""

from __future__ import annotations

from typing import Dict, Optional, Type

from core.commands.rejection import ReasonCode, RejectionReason


class CustodyError(Exception):
    """Base error for custody operations."""

    code: str = "CUSTODY_ERROR"

    def __init__(
        self,
        message: str,
        product_id: Optional[str] = None,
        policy_name: Optional[str] = None,
    ):
        self.message = message
        self.product_id = product_id
        self.policy_name = policy_name
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "product_id": self.product_id,
            "policy_name": self.policy_name,
        }


class AdminOnlyError(CustodyError):
    """Caller is not the system admin identity."""
    code = ReasonCode.ADMIN_ONLY


class RoleMismatchError(CustodyError):
    """Caller does not hold the role the operation requires."""
    code = ReasonCode.ROLE_MISMATCH


class NotFoundError(CustodyError):
    """No product with the given id exists."""
    code = ReasonCode.NOT_FOUND


class NotOwnerError(CustodyError):
    """Caller is not the product's current owner."""
    code = ReasonCode.NOT_OWNER


class UnauthorizedError(CustodyError):
    """Caller may not manage grants or read history for this product."""
    code = ReasonCode.UNAUTHORIZED


class InvalidRecipientError(CustodyError):
    """Nominated recipient is the null identity."""
    code = ReasonCode.INVALID_RECIPIENT


class AlreadyExistsError(CustodyError):
    """A product with the given id already exists."""
    code = ReasonCode.ALREADY_EXISTS


class NoPendingTransferForCallerError(CustodyError):
    """Caller is not the pending recipient (or nothing is pending)."""
    code = ReasonCode.NO_PENDING_TRANSFER_FOR_CALLER


class PendingTransferExistsError(CustodyError):
    """A transfer is already pending and overwrite is disabled."""
    code = ReasonCode.PENDING_TRANSFER_EXISTS


ERRORS_BY_CODE: Dict[str, Type[CustodyError]] = {
    cls.code: cls
    for cls in (
        AdminOnlyError,
        RoleMismatchError,
        NotFoundError,
        NotOwnerError,
        UnauthorizedError,
        InvalidRecipientError,
        AlreadyExistsError,
        NoPendingTransferForCallerError,
        PendingTransferExistsError,
    )
}


def raise_for_rejection(
    reason: Optional[RejectionReason],
    product_id: Optional[str] = None,
) -> None:
    """Raise the typed error for a policy rejection. None passes."""
    if reason is None:
        return
    error_cls = ERRORS_BY_CODE.get(reason.code, CustodyError)
    raise error_cls(
        reason.message,
        product_id=product_id,
        policy_name=reason.policy_name,
    )
