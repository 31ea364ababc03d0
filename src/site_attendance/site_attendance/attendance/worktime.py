from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ..common.datetime_utils import local_combine, to_local
from ..core.constants import GRACE_WINDOW_MINUTES
from ..schedules.model import WorkSchedule
from .model import AttendanceRecord


@dataclass(frozen=True)
class WorkTimeSummary:
    worked_minutes: int
    late_minutes: int
    early_departure_minutes: int
    overtime_minutes: int
    is_holiday_work: bool = False

    @property
    def worked_hhmm(self) -> str:
        return minutes_to_hhmm(self.worked_minutes)

    @property
    def overtime_hhmm(self) -> str:
        return minutes_to_hhmm(self.overtime_minutes)


def minutes_to_hhmm(minutes: int) -> str:
    hours, mins = divmod(int(minutes), 60)
    return f"{hours:02d}:{mins:02d}"


def _whole_minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() // 60)


def late_arrival_minutes(entry: datetime, scheduled_start: datetime, grace_minutes: int = GRACE_WINDOW_MINUTES) -> int:
    """Full minutes late, or 0 while still inside the grace window."""
    late = _whole_minutes(entry - scheduled_start)
    if late <= grace_minutes:
        return 0
    return late


def early_departure_minutes(exit_: datetime, scheduled_end: datetime) -> int:
    """No grace on the way out."""
    return max(0, _whole_minutes(scheduled_end - exit_))


def summarize(
    record: AttendanceRecord,
    schedule: WorkSchedule,
    tz,
    *,
    grace_minutes: int = GRACE_WINDOW_MINUTES,
) -> Optional[WorkTimeSummary]:
    """Day summary for a completed record; None until both entry and exit exist."""

    if record.entry_time is None or record.exit_time is None:
        return None

    entry = to_local(record.entry_time, tz)
    exit_ = to_local(record.exit_time, tz)

    worked = _whole_minutes(exit_ - entry)
    if worked < 0:
        worked += 24 * 60

    scheduled_start = local_combine(entry.date(), schedule.start_time, tz)
    end_day = entry.date() + timedelta(days=1) if schedule.crosses_midnight else entry.date()
    scheduled_end = local_combine(end_day, schedule.end_time, tz)

    required = int(round(schedule.required_hours * 60))
    if record.is_holiday_work:
        overtime = worked
    else:
        overtime = max(0, worked - required)

    return WorkTimeSummary(
        worked_minutes=worked,
        late_minutes=late_arrival_minutes(entry, scheduled_start, grace_minutes),
        early_departure_minutes=early_departure_minutes(exit_, scheduled_end),
        overtime_minutes=overtime,
        is_holiday_work=record.is_holiday_work,
    )
