"""
Custody Core Time — Explicit Clock Protocol
=============================================
Doctrine: NO datetime.now() inside ledger logic.
History timestamps come from a Clock injected into the ledger.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


# ══════════════════════════════════════════════════════════════
# CLOCK PROTOCOL
# ══════════════════════════════════════════════════════════════

class Clock(Protocol):
    """Injectable time source."""

    def now_utc(self) -> datetime:
        """Return current UTC time."""
        ...  # pragma: no cover


# ══════════════════════════════════════════════════════════════
# IMPLEMENTATIONS
# ══════════════════════════════════════════════════════════════

class SystemClock:
    """Production clock — real system time."""

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    Test clock — returns a fixed timestamp.

    Usage:
        clock = FixedClock(datetime(2025, 1, 1, tzinfo=timezone.utc))
        assert clock.now_utc().year == 2025

    With step_seconds set, every read advances the clock afterwards,
    so consecutive history entries carry distinct timestamps.
    """

    def __init__(self, fixed_dt: datetime, step_seconds: float = 0) -> None:
        if fixed_dt.tzinfo is None:
            raise ValueError("FixedClock requires timezone-aware datetime.")
        if step_seconds < 0:
            raise ValueError("step_seconds cannot be negative.")
        self._fixed_dt = fixed_dt
        self._step = timedelta(seconds=step_seconds)

    def now_utc(self) -> datetime:
        current = self._fixed_dt
        self._fixed_dt = current + self._step
        return current

    def advance(self, seconds: float) -> None:
        """Advance the fixed time (useful for multi-step test scenarios)."""
        self._fixed_dt = self._fixed_dt + timedelta(seconds=seconds)
