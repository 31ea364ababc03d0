from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Optional

from ..core.constants import DEFAULT_REQUIRED_HOURS
from ..core.enums import ScheduleScope


@dataclass(frozen=True)
class WorkSchedule:
    """Thực thể miền (domain): Lịch làm việc trong ngày."""

    start_time: time
    end_time: time
    required_hours: float = DEFAULT_REQUIRED_HOURS
    name: Optional[str] = None

    @property
    def crosses_midnight(self) -> bool:
        return self.end_time < self.start_time


@dataclass(frozen=True)
class ScopedSchedule:
    """A schedule as defined by the organization, tagged with its scope."""

    schedule: WorkSchedule
    schedule_id: Optional[int] = None
    project_code: Optional[int] = None
    department_code: Optional[int] = None
    is_active: bool = True

    @property
    def scope(self) -> ScheduleScope:
        if self.project_code:
            return ScheduleScope.PROJECT
        if self.department_code:
            return ScheduleScope.DEPARTMENT
        return ScheduleScope.DEFAULT


@dataclass(frozen=True)
class ResolvedSchedule:
    schedule: WorkSchedule
    scope: ScheduleScope
    schedule_id: Optional[int] = None

    @property
    def is_fallback(self) -> bool:
        return self.scope == ScheduleScope.FALLBACK
