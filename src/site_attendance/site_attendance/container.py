from __future__ import annotations

from dataclasses import dataclass

from .attendance.gate import AttendanceGate
from .attendance.service import AttendanceService
from .backend.client import BackendClient
from .backend.http_backend import HttpAttendanceBackend
from .common.datetime_utils import Clock, SystemClock, get_timezone
from .core.constants import (
    DEFAULT_GEOFENCE_RADIUS_M,
    DEFAULT_TIMEZONE,
    GRACE_WINDOW_MINUTES,
    LOCATION_MAX_FIX_AGE_SECONDS,
    LOCATION_TIMEOUT_SECONDS,
)
from .requests.service import ManualRequestService
from .schedules.clock import ScheduleClock
from .schedules.factory import StatusStrategyFactory
from .schedules.resolver import ScheduleResolver


@dataclass(frozen=True)
class Container:
    backend: HttpAttendanceBackend

    schedule_clock: ScheduleClock
    request_service: ManualRequestService
    attendance_service: AttendanceService


def build_container(
    *,
    settings,
    clock: Clock | None = None,
    backend: HttpAttendanceBackend | None = None,
) -> Container:
    """Wire services from a settings module (see ``config``)."""

    tz = get_timezone(getattr(settings, "TIMEZONE", DEFAULT_TIMEZONE))
    clock = clock or SystemClock()

    if backend is None:
        client = BackendClient(
            str(getattr(settings, "BACKEND_BASE_URL")),
            api_token=getattr(settings, "BACKEND_API_TOKEN", None) or None,
            timeout=float(getattr(settings, "BACKEND_TIMEOUT_SECONDS", 30.0)),
        )
        backend = HttpAttendanceBackend(
            client,
            tz=tz,
            default_radius_m=float(getattr(settings, "DEFAULT_GEOFENCE_RADIUS_M", DEFAULT_GEOFENCE_RADIUS_M)),
        )

    schedule_clock = ScheduleClock(
        clock=clock,
        tz=tz,
        grace_minutes=GRACE_WINDOW_MINUTES,
        strategy_factory=StatusStrategyFactory(),
    )
    request_service = ManualRequestService(backend, clock=clock, tz=tz)
    attendance_service = AttendanceService(
        backend=backend,
        schedules=backend,
        geofences=backend,
        assignments=backend,
        requests=request_service,
        schedule_clock=schedule_clock,
        resolver=ScheduleResolver(),
        gate=AttendanceGate(),
        location_timeout_seconds=int(getattr(settings, "LOCATION_TIMEOUT_SECONDS", LOCATION_TIMEOUT_SECONDS)),
        max_fix_age_seconds=int(getattr(settings, "LOCATION_MAX_FIX_AGE_SECONDS", LOCATION_MAX_FIX_AGE_SECONDS)),
    )

    return Container(
        backend=backend,
        schedule_clock=schedule_clock,
        request_service=request_service,
        attendance_service=attendance_service,
    )
