from __future__ import annotations

from dataclasses import dataclass

from .strategies.base import StatusStrategy
from .strategies.early_strategy import EarlyStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.on_time_strategy import OnTimeStrategy


@dataclass
class StatusStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    def for_reading(self, *, delta_seconds: float, minutes: int, has_checked_in: bool, grace_minutes: int) -> StatusStrategy:
        if delta_seconds < 0:
            return EarlyStrategy()
        if has_checked_in and minutes <= grace_minutes:
            return OnTimeStrategy()
        return LateStrategy()
