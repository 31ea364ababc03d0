from __future__ import annotations

from typing import Iterable, Optional

import structlog

from ..core.constants import DEFAULT_SCHEDULE_END, DEFAULT_SCHEDULE_START
from ..core.enums import ScheduleScope
from .model import ResolvedSchedule, ScopedSchedule, WorkSchedule

logger = structlog.get_logger(__name__)

FALLBACK_SCHEDULE = WorkSchedule(
    start_time=DEFAULT_SCHEDULE_START,
    end_time=DEFAULT_SCHEDULE_END,
    name="Fallback Schedule",
)


class ScheduleResolver:
    """Pick the effective schedule: project > department > organization default.

    When nothing matches, the hard-coded 08:00-17:00 is returned flagged as
    FALLBACK and a warning is logged, since it means a configuration gap.
    """

    def resolve(
        self,
        project_code: Optional[int],
        department_code: Optional[int],
        candidates: Iterable[ScopedSchedule],
    ) -> ResolvedSchedule:
        active = [c for c in candidates if c.is_active]

        match = None
        if project_code:
            match = next((c for c in active if c.project_code == project_code), None)
        if match is None and department_code:
            match = next(
                (c for c in active if c.department_code == department_code and not c.project_code),
                None,
            )
        if match is None:
            match = next((c for c in active if c.scope == ScheduleScope.DEFAULT), None)

        if match is not None:
            return ResolvedSchedule(schedule=match.schedule, scope=match.scope, schedule_id=match.schedule_id)

        logger.warning(
            "schedule_fallback",
            project_code=project_code,
            department_code=department_code,
            start=FALLBACK_SCHEDULE.start_time.strftime("%H:%M"),
            end=FALLBACK_SCHEDULE.end_time.strftime("%H:%M"),
        )
        return ResolvedSchedule(schedule=FALLBACK_SCHEDULE, scope=ScheduleScope.FALLBACK)
