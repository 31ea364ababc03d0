from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional

import structlog

from ..common.datetime_utils import Clock, local_date, parse_hhmm, parse_iso_date
from ..common.single_flight import SingleFlight
from ..core.exceptions import ValidationError
from .model import ManualAttendanceRequest, NewManualAttendanceRequest
from .repository import ManualRequestSink

logger = structlog.get_logger(__name__)


class ManualRequestService:
    """Validate and forward manual attendance requests.

    Requests never touch the attendance record; approval happens elsewhere.
    Invalid requests are rejected here and never reach the backend.
    """

    def __init__(self, sink: ManualRequestSink, *, clock: Clock, tz, single_flight: SingleFlight | None = None):
        self._sink = sink
        self._clock = clock
        self._tz = tz
        self._single_flight = single_flight or SingleFlight()

    @staticmethod
    def _parse_time(value: Optional[str]) -> Optional[time]:
        v = (value or "").strip()
        return parse_hhmm(v) if v else None

    @staticmethod
    def _parse_date(value: Optional[str]) -> Optional[date]:
        v = (value or "").strip()
        return parse_iso_date(v) if v else None

    def parse(
        self,
        *,
        work_date: Optional[str],
        entry_time: Optional[str],
        exit_time: Optional[str],
        reason: Optional[str],
    ) -> NewManualAttendanceRequest:
        """Turn raw form values (YYYY-MM-DD, HH:MM) into a draft."""

        errors: dict[str, str] = {}
        parsed_date = parsed_entry = parsed_exit = None
        try:
            parsed_date = self._parse_date(work_date)
        except ValueError:
            errors["date"] = "Invalid date (YYYY-MM-DD)"
        try:
            parsed_entry = self._parse_time(entry_time)
        except ValueError:
            errors["entry_time"] = "Invalid time (HH:MM)"
        try:
            parsed_exit = self._parse_time(exit_time)
        except ValueError:
            errors["exit_time"] = "Invalid time (HH:MM)"

        if errors:
            raise ValidationError("Invalid manual attendance request", errors)

        return NewManualAttendanceRequest(
            work_date=parsed_date,
            requested_entry_time=parsed_entry,
            requested_exit_time=parsed_exit,
            reason=reason,
        )

    def validate(self, draft: NewManualAttendanceRequest, *, today: Optional[date] = None) -> None:
        today = today or local_date(self._clock.now(), self._tz)
        errors: dict[str, str] = {}

        if not draft.reason or not draft.reason.strip():
            errors["reason"] = "Reason is required"
        if draft.requested_entry_time is None:
            errors["entry_time"] = "Entry time is required"
        elif draft.requested_exit_time is not None and draft.requested_exit_time <= draft.requested_entry_time:
            errors["exit_time"] = "Exit time must be after entry time"
        if draft.work_date is None:
            errors["date"] = "Date is required"
        elif draft.work_date > today:
            errors["date"] = "Cannot submit a request for a future date"

        if errors:
            raise ValidationError("Invalid manual attendance request", errors)

    def submit(self, *, worker_id: int, draft: NewManualAttendanceRequest) -> ManualAttendanceRequest:
        self.validate(draft)

        entry_at = datetime.combine(draft.work_date, draft.requested_entry_time)
        exit_at = datetime.combine(draft.work_date, draft.requested_exit_time) if draft.requested_exit_time else None

        with self._single_flight.claim((int(worker_id), "manual_request")):
            request = self._sink.submit_manual_attendance_request(
                worker_id=int(worker_id),
                work_date=draft.work_date,
                entry_time=entry_at,
                exit_time=exit_at,
                reason=draft.reason.strip(),
            )

        logger.info("manual_request_submitted", worker_id=worker_id, request_id=request.request_id, work_date=str(draft.work_date))
        return request
