from __future__ import annotations

from ...core.enums import TimeDirection
from .base import StatusDecision, StatusStrategy, format_duration


class EarlyStrategy(StatusStrategy):
    """Before the scheduled start."""

    def decide_pending(self, *, minutes: int) -> StatusDecision:
        return StatusDecision(TimeDirection.EARLY, f"{format_duration(minutes)} remaining")

    def decide_checked_in(self, *, minutes: int) -> StatusDecision:
        return StatusDecision(TimeDirection.EARLY, f"checked in {format_duration(minutes)} early")
