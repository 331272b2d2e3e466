"""
Custody Identity Primitive — Account Principal
===============================================
Phase 1: Core Primitive Layer
Authority: Custody Doctrine — Deterministic, Single-Writer

The Identity Primitive captures WHO holds, nominates, or views a product.
It is used as a dictionary key (roles, grants, pending transfers) and as
a value (owner, actor, viewer).

RULES (NON-NEGOTIABLE):
- Identities are numeric account values in [0, 2**160)
- Value 0 is the null identity — never a valid owner or recipient
- Human-readable form is 0x + 40 lowercase hex digits
- Identities are immutable and totally ordered

This file contains NO persistence logic.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar


IDENTITY_BITS = 160
IDENTITY_HEX_DIGITS = IDENTITY_BITS // 4
MAX_IDENTITY_VALUE = (1 << IDENTITY_BITS) - 1


# ══════════════════════════════════════════════════════════════
# IDENTITY VALUE OBJECT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True, order=True)
class Identity:
    """
    Opaque, comparable account principal.

    Fields:
        value:  Integer account number (0 = null identity)

    Example:
        Identity.from_hex("0x00000000000000000000000000000000000000aa")
    """
    value: int

    NULL: ClassVar[Identity]

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise TypeError(
                f"Identity value must be int, "
                f"got {type(self.value).__name__}."
            )
        if self.value < 0 or self.value > MAX_IDENTITY_VALUE:
            raise ValueError(
                f"Identity value out of range: must be within "
                f"0..2**{IDENTITY_BITS}-1."
            )

    @property
    def is_null(self) -> bool:
        return self.value == 0

    def to_hex(self) -> str:
        """Human-readable encoding used in audit metadata."""
        return f"0x{self.value:0{IDENTITY_HEX_DIGITS}x}"

    @classmethod
    def from_hex(cls, text: str) -> Identity:
        if not isinstance(text, str):
            raise TypeError("Identity hex must be a string.")
        raw = text.strip()
        if raw[:2].lower() != "0x":
            raise ValueError(f"Identity hex must start with '0x', got '{text}'.")
        digits = raw[2:]
        if not digits or len(digits) > IDENTITY_HEX_DIGITS:
            raise ValueError(
                f"Identity hex must carry 1..{IDENTITY_HEX_DIGITS} digits, "
                f"got '{text}'."
            )
        try:
            value = int(digits, 16)
        except ValueError:
            raise ValueError(f"Identity hex is not hexadecimal: '{text}'.") from None
        return cls(value=value)

    def __str__(self) -> str:
        return self.to_hex()


Identity.NULL = Identity(0)


def format_identity(identity: Identity) -> str:
    """Render an identity as human-readable text."""
    if not isinstance(identity, Identity):
        raise TypeError("identity must be Identity.")
    return identity.to_hex()
