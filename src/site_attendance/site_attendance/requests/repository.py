from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from .model import ManualAttendanceRequest


class ManualRequestSink(Protocol):
    def submit_manual_attendance_request(
        self,
        *,
        worker_id: int,
        work_date,
        entry_time: datetime,
        exit_time: Optional[datetime],
        reason: str,
    ) -> ManualAttendanceRequest:
        """Hand the request to the approval pipeline.

        ``entry_time``/``exit_time`` are local wall-clock datetimes on ``work_date``.
        """

        raise NotImplementedError
