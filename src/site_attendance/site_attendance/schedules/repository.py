from __future__ import annotations

from typing import Protocol, Sequence

from .model import ScopedSchedule


class ScheduleSource(Protocol):
    def get_active_work_schedules(self) -> Sequence[ScopedSchedule]:
        """All schedules the organization has defined (inactive ones may be included)."""

        raise NotImplementedError
