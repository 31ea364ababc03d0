from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import SessionState


@dataclass(frozen=True)
class AttendanceRecord:
    """Thực thể miền (domain): Bản ghi chấm công, một bản ghi mỗi ngày (theo ngày địa phương)."""

    work_date: date
    project_code: Optional[int] = None
    entry_time: Optional[datetime] = None
    exit_time: Optional[datetime] = None
    is_holiday_work: bool = False
    is_weekend_work: bool = False
    record_id: Optional[int] = None
    worker_id: Optional[int] = None


@dataclass(frozen=True)
class WorkerAssignment:
    worker_id: int
    project_code: Optional[int] = None
    department_code: Optional[int] = None


@dataclass(frozen=True)
class LaborAssignment:
    """A labor assignment of the worker to a project, as listed by the HR backend."""

    project_code: Optional[int]
    assignment_no: Optional[int] = None
    status: Optional[str] = None
    is_active: Optional[bool] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def is_current(self, today: date) -> bool:
        active = (self.status or "").upper() == "ACTIVE" or self.is_active is True
        if active and self.end_date is not None:
            return self.end_date >= today
        return active


def derive_session_state(record: Optional[AttendanceRecord], work_date: date) -> SessionState:
    """Session state from today's record; a record for another date counts as none."""

    if record is None or record.work_date != work_date or record.entry_time is None:
        return SessionState.NOT_CHECKED_IN
    if record.exit_time is None:
        return SessionState.CHECKED_IN
    return SessionState.CHECKED_OUT
