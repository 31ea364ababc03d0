"""One worker's attendance day: NOT_CHECKED_IN -> CHECKED_IN -> CHECKED_OUT.

The state is never stored; it is derived from today's record on every read.
CHECKED_OUT is terminal until the local date rolls over.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

import structlog

from ..common.single_flight import SingleFlight
from ..core.enums import SessionState
from ..core.exceptions import SessionConflict
from ..geo.location import LocationSnapshot
from ..geo.model import GeoFence
from ..requests.model import ManualAttendanceRequest, NewManualAttendanceRequest
from ..requests.service import ManualRequestService
from ..schedules.clock import ClockReading, ScheduleClock
from ..schedules.model import ResolvedSchedule
from .gate import AttendanceGate, GateDecision, blocked_error
from .model import AttendanceRecord, derive_session_state
from .repository import AttendanceBackend
from .worktime import WorkTimeSummary, summarize

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SessionStatus:
    state: SessionState
    work_date: date
    reading: ClockReading
    is_after_scheduled_end: bool
    gate: GateDecision
    record: Optional[AttendanceRecord]
    summary: Optional[WorkTimeSummary] = None


class AttendanceSession:
    def __init__(
        self,
        *,
        worker_id: int,
        project_code: Optional[int],
        work_date: date,
        fence: Optional[GeoFence],
        schedule: ResolvedSchedule,
        backend: AttendanceBackend,
        schedule_clock: ScheduleClock,
        requests: ManualRequestService,
        gate: AttendanceGate | None = None,
        record: Optional[AttendanceRecord] = None,
        project_issue: Optional[str] = None,
    ):
        self.worker_id = int(worker_id)
        self.project_code = project_code
        self.fence = fence
        # User-facing reason an assigned project has no fence.
        self.project_issue = project_issue
        self.schedule = schedule
        self._work_date = work_date
        self._backend = backend
        self._clock = schedule_clock
        self._requests = requests
        self._gate = gate or AttendanceGate()
        self._record = record if record is not None and record.work_date == work_date else None
        self._single_flight = SingleFlight()
        # Bumped on every accepted transition; a call that returns after the
        # epoch moved is stale and its result is dropped.
        self._epoch = 0

    @property
    def work_date(self) -> date:
        return self._work_date

    @property
    def record(self) -> Optional[AttendanceRecord]:
        return self._record

    @property
    def state(self) -> SessionState:
        return derive_session_state(self._record, self._work_date)

    @property
    def has_checked_in(self) -> bool:
        return self.state != SessionState.NOT_CHECKED_IN

    @property
    def has_checked_out(self) -> bool:
        return self.state == SessionState.CHECKED_OUT

    def roll_over(self, today: date) -> bool:
        """Start a fresh day once the local date changes. Returns True if it reset."""
        if today == self._work_date:
            return False
        logger.info("session_rolled_over", worker_id=self.worker_id, previous=str(self._work_date), today=str(today))
        self._work_date = today
        self._record = None
        self._epoch += 1
        return True

    def status(self, location: LocationSnapshot, now: Optional[datetime] = None) -> SessionStatus:
        now = now or self._clock.now()
        schedule = self.schedule.schedule
        record = self._record

        reading = self._clock.evaluate(
            schedule,
            now,
            has_checked_in=self.has_checked_in,
            check_in_time=record.entry_time if record else None,
        )
        after_end = self._clock.is_after_scheduled_end(schedule, now)
        gate = self._gate.evaluate(
            location,
            self.fence,
            is_after_scheduled_end=after_end,
            has_checked_in=self.has_checked_in,
            has_checked_out=self.has_checked_out,
        )
        summary = summarize(record, schedule, self._clock.tz, grace_minutes=reading.grace_window_minutes) if self.has_checked_out else None

        return SessionStatus(
            state=self.state,
            work_date=self._work_date,
            reading=reading,
            is_after_scheduled_end=after_end,
            gate=gate,
            record=record,
            summary=summary,
        )

    def check_in(self, location: LocationSnapshot, timestamp: datetime) -> Optional[AttendanceRecord]:
        # The gate is read under the claim so a caller that queued behind a
        # finished check-in sees its result.
        with self._single_flight.claim("check_in", message="Check-in is already being submitted"):
            status = self.status(location, timestamp)
            if not status.gate.can_check_in:
                raise blocked_error(status.gate.check_in_blocked_by[0], status.gate, project_issue=self.project_issue)

            epoch = self._epoch
            try:
                result = self._backend.check_in(
                    worker_id=self.worker_id,
                    project_code=int(self.project_code),
                    latitude=location.position.latitude,
                    longitude=location.position.longitude,
                    timestamp=timestamp,
                )
            except SessionConflict:
                logger.warning("check_in_conflict", worker_id=self.worker_id)
                self.reconcile()
                raise

            return self._accept(result, epoch=epoch, expected=SessionState.NOT_CHECKED_IN, action="check_in")

    def check_out(self, location: LocationSnapshot, timestamp: datetime) -> Optional[AttendanceRecord]:
        with self._single_flight.claim("check_out", message="Check-out is already being submitted"):
            status = self.status(location, timestamp)
            if not status.gate.can_check_out:
                raise blocked_error(status.gate.check_out_blocked_by[0], status.gate, project_issue=self.project_issue)

            epoch = self._epoch
            try:
                result = self._backend.check_out(
                    worker_id=self.worker_id,
                    latitude=location.position.latitude,
                    longitude=location.position.longitude,
                    timestamp=timestamp,
                )
            except SessionConflict:
                logger.warning("check_out_conflict", worker_id=self.worker_id)
                self.reconcile()
                raise

            return self._accept(result, epoch=epoch, expected=SessionState.CHECKED_IN, action="check_out")

    def submit_manual_request(self, draft: NewManualAttendanceRequest) -> ManualAttendanceRequest:
        """Side channel for when live gating fails; the session state does not change."""
        return self._requests.submit(worker_id=self.worker_id, draft=draft)

    def reconcile(self) -> SessionState:
        """Refetch today's record from the backend and adopt it."""
        record = self._backend.get_today_attendance(self.worker_id, self._work_date)
        self._record = record if record is not None and record.work_date == self._work_date else None
        self._epoch += 1
        logger.info("session_reconciled", worker_id=self.worker_id, state=self.state.value)
        return self.state

    def _accept(self, result: AttendanceRecord, *, epoch: int, expected: SessionState, action: str) -> Optional[AttendanceRecord]:
        """Adopt a backend result, or return None when the session moved on meanwhile."""
        if epoch != self._epoch or self.state != expected:
            logger.warning(
                "stale_result_discarded",
                worker_id=self.worker_id,
                action=action,
                state=self.state.value,
            )
            return None

        self._record = result
        self._epoch += 1
        logger.info(action, worker_id=self.worker_id, work_date=str(result.work_date), state=self.state.value)
        return result
