"""
Custody Command Layer — Command Base Contract
===============================================
Every externally submitted action begins as a Command.

A Command is a frozen, auditable declaration of intent.
It carries identity and payload — nothing else.

Rules:
- Immutable once created (frozen dataclass)
- No business logic inside
- No state mutation
- command_type must end with '.request'
- command_type follows engine.domain.action.request format

A Command is NOT an event. It is intent awaiting judgment.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

from core.primitives.identity import Identity


# ══════════════════════════════════════════════════════════════
# CANONICAL COMMAND
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Command:
    """
    Canonical Command — declaration of intent.

    Fields:
        command_id:     Unique identifier (UUID).
        command_type:   Namespaced type ending in '.request'
                        (e.g. 'custody.product.create.request').
        actor_id:       Hex identity of the caller.
        payload:        Intent data (dict).
        issued_at:      When the command was issued.
        correlation_id: Groups related commands/events in a story.
        source_engine:  Engine that owns this command.
    """

    command_id: uuid.UUID
    command_type: str
    actor_id: str
    payload: dict
    issued_at: datetime
    correlation_id: uuid.UUID
    source_engine: str

    def __post_init__(self):
        if not isinstance(self.command_id, uuid.UUID):
            raise ValueError(
                f"command_id must be UUID, got {type(self.command_id).__name__}"
            )

        if not self.command_type or not isinstance(self.command_type, str):
            raise ValueError("command_type must be a non-empty string.")

        if not self.command_type.endswith(".request"):
            raise ValueError(
                f"command_type '{self.command_type}' must end with "
                f"'.request' (e.g. 'custody.product.create.request')."
            )

        parts = self.command_type.split(".")
        if len(parts) < 4:
            raise ValueError(
                f"command_type '{self.command_type}' must follow "
                f"engine.domain.action.request format (minimum 4 segments)."
            )

        if parts[0] != self.source_engine:
            raise ValueError(
                f"command_type namespace '{parts[0]}' does not match "
                f"source_engine '{self.source_engine}'."
            )

        if not self.actor_id or not isinstance(self.actor_id, str):
            raise ValueError("actor_id must be a non-empty string.")

        if not isinstance(self.payload, dict):
            raise TypeError("payload must be a dict.")

        if not isinstance(self.issued_at, datetime):
            raise ValueError("issued_at must be a datetime.")

        if not isinstance(self.correlation_id, uuid.UUID):
            raise ValueError("correlation_id must be UUID.")

    @property
    def actor(self) -> Identity:
        """Caller identity resolved from actor_id."""
        return Identity.from_hex(self.actor_id)


def derive_source_engine(command_type: str) -> str:
    """
    Extract source engine from command type.

    custody.product.create.request → custody
    """
    return command_type.split(".")[0]
