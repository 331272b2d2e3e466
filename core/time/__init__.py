"""
Custody Core Time — Public API
================================
Explicit clock protocol.
Doctrine: NO datetime.now() in ledger logic.
"""

from core.time.clock import (
    Clock,
    FixedClock,
    SystemClock,
)

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
]
