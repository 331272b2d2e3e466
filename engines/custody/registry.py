"""
Custody Engine — Role Registry
================================
Maps each identity to exactly one supply-chain role.

Only the admin identity fixed at initialization may change roles.
Role changes are not notified and not recorded in product history.
"""

from __future__ import annotations

from core.primitives.identity import Identity
from engines.custody.errors import raise_for_rejection
from engines.custody.models import Role
from engines.custody.policies import admin_only_policy
from engines.custody.state import CustodyStateStore


class RoleRegistry:
    def __init__(self, state: CustodyStateStore):
        self._state = state

    @property
    def admin(self) -> Identity:
        return self._state.admin

    def assign_role(self, caller: Identity, identity: Identity, role: Role) -> None:
        """Overwrite identity's role. Idempotent."""
        if not isinstance(role, Role):
            raise ValueError("role must be Role enum.")
        if not isinstance(identity, Identity):
            raise TypeError("identity must be Identity.")
        raise_for_rejection(admin_only_policy(self._state, caller))

        with self._state.atomic():
            self._state.set_role(identity, role)

    def revoke_role(self, caller: Identity, identity: Identity) -> None:
        """Reset identity to Role.NONE. Revoking NONE is a no-op."""
        if not isinstance(identity, Identity):
            raise TypeError("identity must be Identity.")
        raise_for_rejection(admin_only_policy(self._state, caller))

        if self._state.get_role(identity) is Role.NONE:
            return
        with self._state.atomic():
            self._state.set_role(identity, Role.NONE)

    def get_role(self, identity: Identity) -> Role:
        return self._state.get_role(identity)

    def has_role(self, identity: Identity, role: Role) -> bool:
        return self._state.get_role(identity) is role
