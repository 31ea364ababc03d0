from __future__ import annotations

from enum import Enum


class SessionState(str, Enum):
    """Trạng thái chấm công trong ngày, suy ra từ bản ghi hôm nay."""

    NOT_CHECKED_IN = "NOT_CHECKED_IN"
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"


class TimeDirection(str, Enum):
    """Where the worker stands against the scheduled start."""

    EARLY = "EARLY"
    ON_TIME = "ON_TIME"
    LATE = "LATE"


class ScheduleScope(str, Enum):
    PROJECT = "PROJECT"
    DEPARTMENT = "DEPARTMENT"
    DEFAULT = "DEFAULT"
    FALLBACK = "FALLBACK"


class LocationErrorKind(str, Enum):
    """Error kinds reported by the device location provider."""

    PERMISSION_DENIED = "PERMISSION_DENIED"
    UNAVAILABLE = "UNAVAILABLE"
    TIMEOUT = "TIMEOUT"


class LocationState(str, Enum):
    LOCATING = "LOCATING"
    LOCATED = "LOCATED"
    UNAVAILABLE = "UNAVAILABLE"
    PERMISSION_DENIED = "PERMISSION_DENIED"


class GateBlockReason(str, Enum):
    """Why an attendance action is currently disabled."""

    LOCATION_PERMISSION_DENIED = "LOCATION_PERMISSION_DENIED"
    LOCATION_UNAVAILABLE = "LOCATION_UNAVAILABLE"
    NO_GEOFENCE = "NO_GEOFENCE"
    OUT_OF_GEOFENCE = "OUT_OF_GEOFENCE"
    SCHEDULE_WINDOW_CLOSED = "SCHEDULE_WINDOW_CLOSED"
    ALREADY_CHECKED_IN = "ALREADY_CHECKED_IN"
    NOT_CHECKED_IN = "NOT_CHECKED_IN"
    ALREADY_CHECKED_OUT = "ALREADY_CHECKED_OUT"


class RequestStatus(str, Enum):
    """Trạng thái luồng duyệt yêu cầu chấm công thủ công."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @classmethod
    def from_backend(cls, code: str | None) -> "RequestStatus":
        # Backend uses N (new), A (approved), R (rejected).
        return {"A": cls.APPROVED, "R": cls.REJECTED}.get((code or "").upper(), cls.PENDING)
