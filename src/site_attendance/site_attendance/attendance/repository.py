from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..geo.model import GeoFence
from .model import AttendanceRecord, LaborAssignment, WorkerAssignment


class AttendanceBackend(Protocol):
    def get_today_attendance(self, worker_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def check_in(
        self,
        *,
        worker_id: int,
        project_code: int,
        latitude: float,
        longitude: float,
        timestamp: datetime,
    ) -> AttendanceRecord:
        """Record the entry. Raises SessionConflict if already checked in."""

        raise NotImplementedError

    def check_out(
        self,
        *,
        worker_id: int,
        latitude: float,
        longitude: float,
        timestamp: datetime,
    ) -> AttendanceRecord:
        """Record the exit. Raises SessionConflict if not checked in or already out."""

        raise NotImplementedError


class GeofenceSource(Protocol):
    def get_project_geofence(self, project_code: int) -> Optional[GeoFence]:
        """None when the project does not exist.

        Raises ProjectUnavailable when it is inactive or has no site coordinates.
        """

        raise NotImplementedError


class AssignmentSource(Protocol):
    def get_worker_assignment(self, worker_id: int) -> WorkerAssignment:
        raise NotImplementedError

    def get_labor_assignments(self, worker_id: int) -> Sequence[LaborAssignment]:
        raise NotImplementedError

    def get_account_project_code(self, worker_id: int) -> Optional[int]:
        """Project set on the worker's user account, if any."""

        raise NotImplementedError
