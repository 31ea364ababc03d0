from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules.

    ``errors`` maps a field name to a user-facing message.
    """

    def __init__(self, message: str, errors: Optional[dict[str, str]] = None):
        super().__init__(message)
        self.errors = dict(errors or {})


class LocationUnavailable(DomainError):
    """No usable position fix yet (or acquisition timed out)."""


class LocationPermissionDenied(DomainError):
    """The device refused location access; only the user can fix this."""


class OutOfGeofence(DomainError):
    """Raised when the worker is outside the project site radius."""

    def __init__(self, message: str, *, distance_m: Optional[float] = None, radius_m: Optional[float] = None):
        super().__init__(message)
        self.distance_m = distance_m
        self.radius_m = radius_m


class ScheduleWindowClosed(DomainError):
    """Check-in refused because the scheduled window has already elapsed."""


class SessionConflict(DomainError):
    """Local session state and the backend disagree."""


class SubmissionInFlight(DomainError):
    """The same action was submitted again before the first call finished."""


class NoProjectAssigned(DomainError):
    """The worker has no active project site to check in at."""


class ProjectUnavailable(DomainError):
    """The worker has a project, but its site is inactive or has no location."""

    def __init__(self, message: str, *, project_code: Optional[int] = None):
        super().__init__(message)
        self.project_code = project_code


class BackendError(DomainError):
    """The remote HR backend failed or was unreachable."""

    def __init__(self, message: str, *, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code
