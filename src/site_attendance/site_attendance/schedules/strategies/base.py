from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ...core.enums import TimeDirection


@dataclass(frozen=True)
class StatusDecision:
    direction: TimeDirection
    label: str


def format_duration(total_minutes: int) -> str:
    """``"5 minutes"``, or ``"1 hour 5 minutes"`` once there is at least an hour."""
    hours, minutes = divmod(int(total_minutes), 60)
    text = f"{minutes} minute{'' if minutes == 1 else 's'}"
    if hours > 0:
        text = f"{hours} hour{'' if hours == 1 else 's'} {text}"
    return text


class StatusStrategy(ABC):
    """Strategy Pattern: encapsulate how we label a worker against the schedule start."""

    @abstractmethod
    def decide_pending(self, *, minutes: int) -> StatusDecision:
        """Worker has not checked in yet; ``minutes`` is the absolute distance to the start."""

        raise NotImplementedError

    @abstractmethod
    def decide_checked_in(self, *, minutes: int) -> StatusDecision:
        raise NotImplementedError
