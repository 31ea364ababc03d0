from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Optional

import structlog

from ..core.constants import LOCATION_MAX_FIX_AGE_SECONDS, LOCATION_TIMEOUT_SECONDS
from ..core.enums import GateBlockReason, LocationErrorKind, SessionState
from ..core.exceptions import BackendError, NoProjectAssigned, ProjectUnavailable
from ..geo.location import LocationFailure, LocationSnapshot, LocationSubscription, LocationTracker, PositionFix
from ..geo.model import Coordinate, GeoFence
from ..requests.model import ManualAttendanceRequest
from ..requests.service import ManualRequestService
from ..schedules.clock import ScheduleClock
from ..schedules.model import ResolvedSchedule
from ..schedules.repository import ScheduleSource
from ..schedules.resolver import ScheduleResolver
from .gate import AttendanceGate
from .model import AttendanceRecord, WorkerAssignment
from .repository import AssignmentSource, AttendanceBackend, GeofenceSource
from .session import AttendanceSession, SessionStatus

logger = structlog.get_logger(__name__)

# Blocks that the manual request path exists to work around.
MANUAL_REQUEST_REASONS = {
    GateBlockReason.SCHEDULE_WINDOW_CLOSED,
    GateBlockReason.LOCATION_PERMISSION_DENIED,
    GateBlockReason.LOCATION_UNAVAILABLE,
    GateBlockReason.NO_GEOFENCE,
}


class AttendanceService:
    """Per-worker orchestration around :class:`AttendanceSession`.

    Loads the assignment, geofence and effective schedule once per local day,
    keeps one location subscription per worker, and exposes the status view the
    controllers render.
    """

    def __init__(
        self,
        *,
        backend: AttendanceBackend,
        schedules: ScheduleSource,
        geofences: GeofenceSource,
        assignments: AssignmentSource,
        requests: ManualRequestService,
        schedule_clock: ScheduleClock,
        resolver: ScheduleResolver | None = None,
        gate: AttendanceGate | None = None,
        location_timeout_seconds: int = LOCATION_TIMEOUT_SECONDS,
        max_fix_age_seconds: int = LOCATION_MAX_FIX_AGE_SECONDS,
    ):
        self._backend = backend
        self._schedules = schedules
        self._geofences = geofences
        self._assignments = assignments
        self._requests = requests
        self._clock = schedule_clock
        self._resolver = resolver or ScheduleResolver()
        self._gate = gate or AttendanceGate()
        self._location_timeout = timedelta(seconds=int(location_timeout_seconds))
        self._max_fix_age = timedelta(seconds=int(max_fix_age_seconds))

        self._sessions: dict[int, AttendanceSession] = {}
        self._subscriptions: dict[int, LocationSubscription] = {}
        self._session_locks: dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ----- sessions -----

    def session_for(self, worker_id: int) -> AttendanceSession:
        worker_id = int(worker_id)

        # Opening and rolling over both read the backend; one worker's
        # requests wait for each other so a day is only loaded once.
        with self._session_lock(worker_id):
            today = self._clock.local_today()
            session = self._sessions.get(worker_id)
            if session is None:
                session = self._open_session(worker_id, today)
                self._sessions[worker_id] = session
            elif session.roll_over(today):
                self._refresh_day(session)
            return session

    def _session_lock(self, worker_id: int) -> threading.Lock:
        with self._locks_guard:
            lock = self._session_locks.get(worker_id)
            if lock is None:
                lock = threading.Lock()
                self._session_locks[worker_id] = lock
            return lock

    def _open_session(self, worker_id: int, today: date) -> AttendanceSession:
        assignment = self._resolve_assignment(worker_id, today)
        fence, issue = self._load_fence(assignment.project_code)
        schedule = self._load_schedule(assignment.project_code, assignment.department_code)
        record = self._backend.get_today_attendance(worker_id, today)

        logger.info(
            "session_opened",
            worker_id=worker_id,
            work_date=str(today),
            project_code=assignment.project_code,
            schedule_scope=schedule.scope.value,
        )
        return AttendanceSession(
            worker_id=worker_id,
            project_code=assignment.project_code,
            work_date=today,
            fence=fence,
            schedule=schedule,
            backend=self._backend,
            schedule_clock=self._clock,
            requests=self._requests,
            gate=self._gate,
            record=record,
            project_issue=issue,
        )

    def _refresh_day(self, session: AttendanceSession) -> None:
        assignment = self._resolve_assignment(session.worker_id, session.work_date)
        session.project_code = assignment.project_code
        session.fence, session.project_issue = self._load_fence(assignment.project_code)
        session.schedule = self._load_schedule(assignment.project_code, assignment.department_code)
        session.reconcile()

    def _resolve_assignment(self, worker_id: int, today: date) -> WorkerAssignment:
        """Primary project, else the first current labor assignment, else the user account's project.

        The fallbacks are best effort: a failed lookup is logged and skipped.
        """
        assignment = self._assignments.get_worker_assignment(worker_id)
        if assignment.project_code:
            return assignment

        project_code = None
        try:
            current = next(
                (a for a in self._assignments.get_labor_assignments(worker_id) if a.project_code and a.is_current(today)),
                None,
            )
        except BackendError as e:
            logger.warning("labor_assignments_unavailable", worker_id=worker_id, error=str(e))
            current = None
        if current is not None:
            project_code = current.project_code
            logger.info(
                "project_from_labor_assignment",
                worker_id=worker_id,
                project_code=project_code,
                assignment_no=current.assignment_no,
            )

        if not project_code:
            try:
                project_code = self._assignments.get_account_project_code(worker_id)
            except BackendError as e:
                logger.warning("account_project_unavailable", worker_id=worker_id, error=str(e))
            if project_code:
                logger.info("project_from_user_account", worker_id=worker_id, project_code=project_code)

        if not project_code:
            return assignment
        return replace(assignment, project_code=project_code)

    def _load_fence(self, project_code: Optional[int]) -> tuple[Optional[GeoFence], Optional[str]]:
        """The project's fence, or None with the reason the worker should see."""
        if not project_code:
            return None, None
        try:
            fence = self._geofences.get_project_geofence(int(project_code))
        except ProjectUnavailable as e:
            logger.warning("project_unavailable", project_code=project_code, reason=str(e))
            return None, str(e)
        except BackendError as e:
            logger.error("geofence_load_failed", project_code=project_code, error=str(e))
            return None, "Your project's site location could not be loaded; try again later or submit a manual request"
        if fence is None:
            logger.warning("project_without_geofence", project_code=project_code)
            return None, "Your assigned project could not be found"
        return fence, None

    def _load_schedule(self, project_code: Optional[int], department_code: Optional[int]) -> ResolvedSchedule:
        try:
            candidates = list(self._schedules.get_active_work_schedules())
        except BackendError as e:
            logger.error("schedule_load_failed", error=str(e))
            candidates = []
        return self._resolver.resolve(project_code, department_code, candidates)

    # ----- location -----

    def subscribe_location(self, worker_id: int) -> LocationSubscription:
        """Start (or restart) watching a worker's device; cancels the previous watch."""
        worker_id = int(worker_id)
        previous = self._subscriptions.pop(worker_id, None)
        if previous is not None:
            previous.cancel()

        tracker = LocationTracker(
            started_at=self._clock.now(),
            timeout=self._location_timeout,
            max_fix_age=self._max_fix_age,
        )
        subscription = LocationSubscription(tracker)
        self._subscriptions[worker_id] = subscription
        return subscription

    def _subscription(self, worker_id: int) -> LocationSubscription:
        subscription = self._subscriptions.get(int(worker_id))
        if subscription is None or subscription.cancelled:
            subscription = self.subscribe_location(worker_id)
        return subscription

    def report_position(self, worker_id: int, *, latitude: float, longitude: float, accuracy_m: Optional[float] = None) -> None:
        fix = PositionFix(
            coordinate=Coordinate(latitude=float(latitude), longitude=float(longitude)),
            received_at=self._clock.now(),
            accuracy_m=accuracy_m,
        )
        self._subscription(worker_id).publish(fix)

    def report_location_error(self, worker_id: int, *, kind: LocationErrorKind, message: Optional[str] = None) -> None:
        failure = LocationFailure(kind=kind, received_at=self._clock.now(), message=message)
        self._subscription(worker_id).publish(failure)

    def location(self, worker_id: int, now: Optional[datetime] = None) -> LocationSnapshot:
        return self._subscription(worker_id).latest(now or self._clock.now())

    # ----- actions -----

    def get_status(self, worker_id: int) -> SessionStatus:
        now = self._clock.now()
        session = self.session_for(worker_id)
        return session.status(self.location(worker_id, now), now)

    def check_in(self, worker_id: int) -> Optional[AttendanceRecord]:
        now = self._clock.now()
        session = self.session_for(worker_id)
        if not session.project_code:
            raise NoProjectAssigned("Attendance is only available to workers assigned to an active project")
        return session.check_in(self.location(worker_id, now), now)

    def check_out(self, worker_id: int) -> Optional[AttendanceRecord]:
        now = self._clock.now()
        session = self.session_for(worker_id)
        return session.check_out(self.location(worker_id, now), now)

    def submit_manual_request(
        self,
        worker_id: int,
        *,
        work_date: Optional[str],
        entry_time: Optional[str],
        exit_time: Optional[str],
        reason: Optional[str],
    ) -> ManualAttendanceRequest:
        draft = self._requests.parse(work_date=work_date, entry_time=entry_time, exit_time=exit_time, reason=reason)
        self._requests.validate(draft)
        # Must work while the session's backend reads fail; never open one here.
        session = self._sessions.get(int(worker_id))
        if session is not None:
            return session.submit_manual_request(draft)
        return self._requests.submit(worker_id=int(worker_id), draft=draft)

    # ----- UI -----

    def get_status_ui(self, worker_id: int) -> dict:
        session = self.session_for(worker_id)
        return self._to_ui(session, self.get_status(worker_id))

    def _to_ui(self, session: AttendanceSession, st: SessionStatus) -> dict:
        schedule = session.schedule.schedule
        gate = st.gate
        record = st.record
        blocked = set(gate.check_in_blocked_by) if not gate.can_check_in else set()

        return {
            "workerId": session.worker_id,
            "workDate": st.work_date.isoformat(),
            "state": st.state.value,
            "projectCode": session.project_code,
            "projectIssue": session.project_issue,
            "schedule": {
                "start": schedule.start_time.strftime("%H:%M"),
                "end": schedule.end_time.strftime("%H:%M"),
                "crossesMidnight": schedule.crosses_midnight,
                "scope": session.schedule.scope.value,
                "isFallback": session.schedule.is_fallback,
            },
            "clock": {
                "minutesDelta": st.reading.minutes_delta,
                "direction": st.reading.direction.value,
                "label": st.reading.label,
                "graceWindowMinutes": st.reading.grace_window_minutes,
                "shiftedToNextDay": st.reading.shifted_to_next_day,
            },
            "isAfterScheduledEnd": st.is_after_scheduled_end,
            "location": {
                "state": gate.location_state.value,
                "label": gate.label,
                "distanceMeters": round(gate.distance_m, 1) if gate.distance_m is not None else None,
                "radiusMeters": gate.radius_m,
                "withinFence": gate.within_fence,
            },
            "canCheckIn": gate.can_check_in,
            "canCheckOut": gate.can_check_out,
            "checkInBlockedBy": [r.value for r in gate.check_in_blocked_by],
            "checkOutBlockedBy": [r.value for r in gate.check_out_blocked_by],
            "manualRequestSuggested": st.state == SessionState.NOT_CHECKED_IN and bool(blocked & MANUAL_REQUEST_REASONS),
            "record": _record_ui(record),
            "summary": (
                {
                    "workedHours": st.summary.worked_hhmm,
                    "overtimeHours": st.summary.overtime_hhmm,
                    "lateMinutes": st.summary.late_minutes,
                    "earlyDepartureMinutes": st.summary.early_departure_minutes,
                    "isHolidayWork": st.summary.is_holiday_work,
                }
                if st.summary
                else None
            ),
        }


def _record_ui(record: Optional[AttendanceRecord]) -> Optional[dict]:
    if record is None:
        return None
    return {
        "recordId": record.record_id,
        "workDate": record.work_date.isoformat(),
        "projectCode": record.project_code,
        "entryTime": record.entry_time.isoformat() if record.entry_time else None,
        "exitTime": record.exit_time.isoformat() if record.exit_time else None,
        "isHolidayWork": record.is_holiday_work,
        "isWeekendWork": record.is_weekend_work,
    }
