from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..core.enums import RequestStatus


@dataclass(frozen=True)
class ManualAttendanceRequest:
    """Đề xuất chấm công thủ công, chờ duyệt bên ngoài; không sửa bản ghi chấm công."""

    request_id: int
    worker_id: int
    work_date: date
    requested_entry_time: time
    requested_exit_time: Optional[time]
    reason: str
    status: RequestStatus = RequestStatus.PENDING
    requested_at: Optional[datetime] = None


@dataclass(frozen=True)
class NewManualAttendanceRequest:
    work_date: Optional[date]
    requested_entry_time: Optional[time]
    requested_exit_time: Optional[time]
    reason: Optional[str]
