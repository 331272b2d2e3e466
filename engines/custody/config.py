"""
Custody Engine — Configuration
================================
Deployment-level settings for the custody engine.

Values come from Django settings:

    CUSTODY_ADMIN_IDENTITY          hex identity of the admin (required)
    CUSTODY_ALLOW_PENDING_OVERWRITE re-initiating over a pending transfer
                                    replaces the nominee (default True)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from core.primitives.identity import Identity


@dataclass(frozen=True)
class CustodyConfig:
    admin: Identity
    allow_pending_overwrite: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.admin, Identity):
            raise TypeError("admin must be Identity.")
        if self.admin.is_null:
            raise ValueError("admin must be a non-null identity.")
        if not isinstance(self.allow_pending_overwrite, bool):
            raise TypeError("allow_pending_overwrite must be bool.")

    @classmethod
    def from_settings(cls, settings: Any) -> CustodyConfig:
        admin_hex = getattr(settings, "CUSTODY_ADMIN_IDENTITY", None)
        if not admin_hex:
            raise ValueError("CUSTODY_ADMIN_IDENTITY must be configured.")
        return cls(
            admin=Identity.from_hex(admin_hex),
            allow_pending_overwrite=bool(
                getattr(settings, "CUSTODY_ALLOW_PENDING_OVERWRITE", True)
            ),
        )
