from __future__ import annotations

from ...core.enums import TimeDirection
from .base import StatusDecision, StatusStrategy, format_duration


class LateStrategy(StatusStrategy):
    """After the scheduled start (and past grace, once checked in)."""

    def decide_pending(self, *, minutes: int) -> StatusDecision:
        return StatusDecision(TimeDirection.LATE, f"{format_duration(minutes)} late")

    def decide_checked_in(self, *, minutes: int) -> StatusDecision:
        return StatusDecision(TimeDirection.LATE, f"checked in {format_duration(minutes)} late")
