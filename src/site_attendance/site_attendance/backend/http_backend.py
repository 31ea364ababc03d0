from __future__ import annotations

from datetime import date, datetime, time
from typing import Any, Optional, Sequence

import structlog

from ..attendance.model import AttendanceRecord, LaborAssignment, WorkerAssignment
from ..common.datetime_utils import ensure_utc, local_combine, parse_instant, parse_iso_date
from ..core.constants import DEFAULT_GEOFENCE_RADIUS_M, DEFAULT_REQUIRED_HOURS
from ..core.enums import RequestStatus
from ..core.exceptions import BackendError, ProjectUnavailable
from ..geo.model import Coordinate, GeoFence
from ..requests.model import ManualAttendanceRequest
from ..schedules.model import ScopedSchedule, WorkSchedule
from .client import BackendClient

logger = structlog.get_logger(__name__)


def _flag(value: Any) -> bool:
    """Backend booleans arrive as 'Y'/'N', true/false or 1/0."""
    if isinstance(value, str):
        return value.strip().upper() in {"Y", "YES", "TRUE", "1"}
    return bool(value)


def _int_or_none(value: Any) -> Optional[int]:
    if value in (None, "", 0, "0"):
        return None
    return int(value)


def _float_or_none(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    return float(value)


def _positive_or_none(value: Any) -> Optional[float]:
    """Radius-like settings where 0 or a negative number means 'not configured'."""
    f = _float_or_none(value)
    if f is None or f <= 0:
        return None
    return f


def normalize_backend_time(value: Any) -> Optional[time]:
    """Normalize LocalTime values: ``time`` objects or 'HH:mm' / 'HH:mm:ss' strings."""

    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        parts = value.strip().split(":")
        if len(parts) < 2:
            raise ValueError(f"Invalid time string: {value!r}")
        seconds = int(float(parts[2])) if len(parts) >= 3 and parts[2] else 0
        return time(hour=int(parts[0]), minute=int(parts[1]), second=seconds)
    raise TypeError(f"Unsupported time value type: {type(value)!r}")


class HttpAttendanceBackend:
    """All collaborator protocols against the HR backend's REST API."""

    def __init__(self, client: BackendClient, *, tz, default_radius_m: float = DEFAULT_GEOFENCE_RADIUS_M):
        self._client = client
        self._tz = tz
        self._default_radius_m = float(default_radius_m)

    # ----- schedules -----

    def get_active_work_schedules(self) -> Sequence[ScopedSchedule]:
        rows = self._client.get("/schedules") or []
        out: list[ScopedSchedule] = []
        for r in rows:
            try:
                out.append(self._row_to_schedule(r))
            except (TypeError, ValueError) as e:
                logger.warning("schedule_row_skipped", schedule_id=r.get("scheduleId"), error=str(e))
        return out

    def _row_to_schedule(self, r: dict) -> ScopedSchedule:
        start = normalize_backend_time(r.get("scheduledStartTime"))
        end = normalize_backend_time(r.get("scheduledEndTime"))
        if start is None or end is None:
            raise ValueError("schedule without start/end time")
        return ScopedSchedule(
            schedule=WorkSchedule(
                start_time=start,
                end_time=end,
                required_hours=float(r.get("requiredHours") or DEFAULT_REQUIRED_HOURS),
                name=r.get("scheduleName"),
            ),
            schedule_id=_int_or_none(r.get("scheduleId")),
            project_code=_int_or_none(r.get("projectCode")),
            department_code=_int_or_none(r.get("departmentCode")),
            is_active=_flag(r.get("isActive", "Y")),
        )

    # ----- projects -----

    def get_project_geofence(self, project_code: int) -> Optional[GeoFence]:
        p = self._client.get(f"/projects/{int(project_code)}")
        if not p:
            return None

        status = p.get("projectStatus") or p.get("status")
        inactive = status is not None and str(status).upper() != "ACTIVE"
        if status is None and "isActive" in p and not _flag(p.get("isActive")):
            inactive = True
        if inactive:
            raise ProjectUnavailable(
                f"Your assigned project is not active ({status or 'inactive'}); attendance cannot be recorded there",
                project_code=int(project_code),
            )

        lat = _float_or_none(p.get("projectLatitude"))
        lng = _float_or_none(p.get("projectLongitude"))
        if lat is None or lng is None:
            raise ProjectUnavailable(
                "Your assigned project has no site location configured",
                project_code=int(project_code),
            )

        radius = (
            _positive_or_none(p.get("attendanceRadius"))
            or _positive_or_none(p.get("gpsRadiusMeters"))
            or self._default_radius_m
        )
        return GeoFence(
            center=Coordinate(latitude=lat, longitude=lng),
            radius_meters=radius,
            project_code=int(project_code),
        )

    # ----- employees -----

    def get_worker_assignment(self, worker_id: int) -> WorkerAssignment:
        e = self._client.get(f"/employees/{int(worker_id)}") or {}
        return WorkerAssignment(
            worker_id=int(worker_id),
            project_code=_int_or_none(e.get("primaryProjectCode")),
            department_code=_int_or_none(e.get("primaryDeptCode")),
        )

    def get_labor_assignments(self, worker_id: int) -> Sequence[LaborAssignment]:
        rows = self._client.get(f"/labor/assignments/employee/{int(worker_id)}") or []
        out: list[LaborAssignment] = []
        for r in rows:
            try:
                out.append(
                    LaborAssignment(
                        project_code=_int_or_none(r.get("projectCode")),
                        assignment_no=_int_or_none(r.get("assignmentNo")),
                        status=r.get("assignmentStatus"),
                        is_active=_flag(r["isActive"]) if r.get("isActive") is not None else None,
                        start_date=parse_iso_date(str(r["startDate"])[:10]) if r.get("startDate") else None,
                        end_date=parse_iso_date(str(r["endDate"])[:10]) if r.get("endDate") else None,
                    )
                )
            except (TypeError, ValueError) as e:
                logger.warning("labor_assignment_row_skipped", assignment_no=r.get("assignmentNo"), error=str(e))
        return out

    def get_account_project_code(self, worker_id: int) -> Optional[int]:
        page = self._client.get("/users", params={"employeeNo": int(worker_id)}) or {}
        rows = page.get("content", []) if isinstance(page, dict) else page
        for u in rows:
            if _int_or_none(u.get("employeeNo")) == int(worker_id):
                return _int_or_none(u.get("projectCode"))
        return None

    # ----- attendance -----

    def get_today_attendance(self, worker_id: int, work_date: date) -> Optional[AttendanceRecord]:
        r = self._client.get(
            "/attendance/today",
            params={"employeeNo": int(worker_id), "date": work_date.isoformat()},
        )
        if not r:
            return None
        return self._row_to_record(r)

    def check_in(
        self,
        *,
        worker_id: int,
        project_code: int,
        latitude: float,
        longitude: float,
        timestamp: datetime,
    ) -> AttendanceRecord:
        r = self._client.post(
            "/attendance/check-in",
            {
                "employeeNo": int(worker_id),
                "projectCode": int(project_code),
                "latitude": float(latitude),
                "longitude": float(longitude),
                "timestamp": ensure_utc(timestamp).isoformat(),
            },
        )
        if not r:
            raise BackendError("Empty check-in response")
        return self._row_to_record(r)

    def check_out(
        self,
        *,
        worker_id: int,
        latitude: float,
        longitude: float,
        timestamp: datetime,
    ) -> AttendanceRecord:
        r = self._client.post(
            "/attendance/check-out",
            {
                "employeeNo": int(worker_id),
                "latitude": float(latitude),
                "longitude": float(longitude),
                "timestamp": ensure_utc(timestamp).isoformat(),
            },
        )
        if not r:
            raise BackendError("Empty check-out response")
        return self._row_to_record(r)

    def _row_to_record(self, r: dict) -> AttendanceRecord:
        work_date = parse_iso_date(str(r["attendanceDate"])[:10])
        return AttendanceRecord(
            work_date=work_date,
            project_code=_int_or_none(r.get("projectCode")),
            entry_time=self._instant(r.get("entryTime"), work_date),
            exit_time=self._instant(r.get("exitTime"), work_date),
            is_holiday_work=_flag(r.get("isHolidayWork", "N")),
            is_weekend_work=_flag(r.get("isWeekendWork", "N")),
            record_id=_int_or_none(r.get("transactionId")),
            worker_id=_int_or_none(r.get("employeeNo")),
        )

    def _instant(self, value: Any, work_date: date) -> Optional[datetime]:
        """Entry/exit come either as full timestamps or as local times on the work date."""

        if value is None or value == "":
            return None
        text = str(value)
        if "T" in text or len(text) > 8:
            return parse_instant(text)
        return ensure_utc(local_combine(work_date, normalize_backend_time(text), self._tz))

    # ----- manual requests -----

    def submit_manual_attendance_request(
        self,
        *,
        worker_id: int,
        work_date: date,
        entry_time: datetime,
        exit_time: Optional[datetime],
        reason: str,
    ) -> ManualAttendanceRequest:
        body = {
            "employeeNo": int(worker_id),
            "attendanceDate": work_date.isoformat(),
            "entryTime": entry_time.strftime("%Y-%m-%dT%H:%M:00"),
            "reason": reason,
        }
        if exit_time is not None:
            body["exitTime"] = exit_time.strftime("%Y-%m-%dT%H:%M:00")

        r = self._client.post("/manual-attendance/submit", body) or {}
        return ManualAttendanceRequest(
            request_id=int(r.get("requestId") or 0),
            worker_id=int(worker_id),
            work_date=work_date,
            requested_entry_time=entry_time.time().replace(second=0, microsecond=0),
            requested_exit_time=exit_time.time().replace(second=0, microsecond=0) if exit_time else None,
            reason=reason,
            status=RequestStatus.from_backend(r.get("transStatus")),
            requested_at=parse_instant(r.get("requestDate")),
        )
