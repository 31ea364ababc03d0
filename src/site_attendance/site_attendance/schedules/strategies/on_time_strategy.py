from __future__ import annotations

from ...core.enums import TimeDirection
from .base import StatusDecision, StatusStrategy, format_duration


class OnTimeStrategy(StatusStrategy):
    """Checked in within the grace window."""

    def decide_pending(self, *, minutes: int) -> StatusDecision:
        # There is no on-time state before check-in.
        return StatusDecision(TimeDirection.LATE, f"{format_duration(minutes)} late")

    def decide_checked_in(self, *, minutes: int) -> StatusDecision:
        return StatusDecision(TimeDirection.ON_TIME, "checked in on time")
