"""
Custody Command Layer — Public API
====================================
Every action begins as a Command.
Every denied Command carries exactly one RejectionReason.
"""

from core.commands.base import (
    Command,
    derive_source_engine,
)
from core.commands.rejection import (
    ReasonCode,
    RejectionReason,
)

__all__ = [
    "Command",
    "derive_source_engine",
    "RejectionReason",
    "ReasonCode",
]
