"""Decide whether check-in / check-out is allowed right now.

Pure functions of the latest location snapshot, the project fence and the
session flags. Nothing here raises; a closed gate comes back with the reasons.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from ..core.enums import GateBlockReason, LocationErrorKind, LocationState
from ..core.exceptions import (
    DomainError,
    LocationPermissionDenied,
    LocationUnavailable,
    NoProjectAssigned,
    OutOfGeofence,
    ProjectUnavailable,
    ScheduleWindowClosed,
    SessionConflict,
)
from ..geo.distance import distance_meters, format_distance
from ..geo.location import LocationSnapshot
from ..geo.model import Coordinate, GeoFence
from ..schedules.clock import ClockReading

LOCATION_MESSAGES = {
    LocationState.LOCATING: "Locating…",
    LocationState.PERMISSION_DENIED: "Location permission denied. Enable location services (GPS) to record attendance.",
    LocationState.UNAVAILABLE: "Unable to determine your location. Make sure GPS is enabled.",
}


@dataclass(frozen=True)
class GateDecision:
    location_state: LocationState
    distance_m: Optional[float]
    radius_m: Optional[float]
    within_fence: bool
    can_check_in: bool
    can_check_out: bool
    check_in_blocked_by: tuple[GateBlockReason, ...] = ()
    check_out_blocked_by: tuple[GateBlockReason, ...] = ()
    label: str = ""


class AttendanceGate:
    def fence_distance(self, position: Optional[Coordinate], fence: Optional[GeoFence]) -> Optional[float]:
        """Distance to the fence center, or None when it cannot be known."""
        if position is None or fence is None:
            return None
        d = distance_meters(position, fence.center)
        if math.isnan(d):
            return None
        return d

    def is_within_fence(self, position: Optional[Coordinate], fence: Optional[GeoFence]) -> bool:
        if fence is None or not fence.radius_meters or fence.radius_meters <= 0:
            return False
        d = self.fence_distance(position, fence)
        if d is None:
            return False
        return d <= fence.radius_meters

    def can_check_in(
        self,
        position: Optional[Coordinate],
        fence: Optional[GeoFence],
        clock: Optional[ClockReading],
        is_after_scheduled_end: bool,
        has_checked_in: bool,
        location_error: Optional[LocationErrorKind] = None,
    ) -> bool:
        # The clock reading only feeds the label; it never opens or closes the gate.
        return not self._check_in_reasons(
            position, fence, is_after_scheduled_end=is_after_scheduled_end,
            has_checked_in=has_checked_in, location_error=location_error,
        )

    def can_check_out(
        self,
        position: Optional[Coordinate],
        fence: Optional[GeoFence],
        has_checked_in: bool,
        has_checked_out: bool,
        location_error: Optional[LocationErrorKind] = None,
    ) -> bool:
        return not self._check_out_reasons(
            position, fence, has_checked_in=has_checked_in,
            has_checked_out=has_checked_out, location_error=location_error,
        )

    def evaluate(
        self,
        location: LocationSnapshot,
        fence: Optional[GeoFence],
        *,
        is_after_scheduled_end: bool,
        has_checked_in: bool,
        has_checked_out: bool,
    ) -> GateDecision:
        in_reasons = self._check_in_reasons(
            location.position, fence, is_after_scheduled_end=is_after_scheduled_end,
            has_checked_in=has_checked_in, location_error=location.error,
        )
        out_reasons = self._check_out_reasons(
            location.position, fence, has_checked_in=has_checked_in,
            has_checked_out=has_checked_out, location_error=location.error,
        )
        distance = self.fence_distance(location.position, fence)
        within = self.is_within_fence(location.position, fence)

        return GateDecision(
            location_state=location.state,
            distance_m=distance,
            radius_m=fence.radius_meters if fence else None,
            within_fence=within,
            can_check_in=not in_reasons,
            can_check_out=not out_reasons,
            check_in_blocked_by=in_reasons,
            check_out_blocked_by=out_reasons,
            label=self._label(location, fence, distance, within),
        )

    def _location_reasons(
        self,
        position: Optional[Coordinate],
        fence: Optional[GeoFence],
        location_error: Optional[LocationErrorKind],
    ) -> list[GateBlockReason]:
        if location_error == LocationErrorKind.PERMISSION_DENIED:
            return [GateBlockReason.LOCATION_PERMISSION_DENIED]
        if location_error is not None:
            return [GateBlockReason.LOCATION_UNAVAILABLE]
        if fence is None:
            return [GateBlockReason.NO_GEOFENCE]
        if position is None:
            return [GateBlockReason.LOCATION_UNAVAILABLE]
        if not self.is_within_fence(position, fence):
            return [GateBlockReason.OUT_OF_GEOFENCE]
        return []

    def _check_in_reasons(self, position, fence, *, is_after_scheduled_end, has_checked_in, location_error):
        reasons = self._location_reasons(position, fence, location_error)
        if has_checked_in:
            reasons.append(GateBlockReason.ALREADY_CHECKED_IN)
        elif is_after_scheduled_end:
            reasons.append(GateBlockReason.SCHEDULE_WINDOW_CLOSED)
        return tuple(reasons)

    def _check_out_reasons(self, position, fence, *, has_checked_in, has_checked_out, location_error):
        reasons = self._location_reasons(position, fence, location_error)
        if not has_checked_in:
            reasons.append(GateBlockReason.NOT_CHECKED_IN)
        elif has_checked_out:
            reasons.append(GateBlockReason.ALREADY_CHECKED_OUT)
        return tuple(reasons)

    @staticmethod
    def _label(location: LocationSnapshot, fence: Optional[GeoFence], distance: Optional[float], within: bool) -> str:
        if location.state != LocationState.LOCATED:
            return LOCATION_MESSAGES[location.state]
        if fence is None:
            return "No site location is configured for your project"
        if distance is None:
            return "Distance unknown"
        if within:
            return f"Within site range ({format_distance(distance)})"
        return f"Outside site range ({format_distance(distance)} away, allowed {format_distance(fence.radius_meters)})"


def blocked_error(reason: GateBlockReason, decision: GateDecision, *, project_issue: Optional[str] = None) -> DomainError:
    """Exception a submission raises when the gate is closed for ``reason``.

    ``project_issue`` says why an assigned project has no usable fence; without
    it a missing fence means the worker has no project at all.
    """

    if reason == GateBlockReason.LOCATION_PERMISSION_DENIED:
        return LocationPermissionDenied(LOCATION_MESSAGES[LocationState.PERMISSION_DENIED])
    if reason == GateBlockReason.LOCATION_UNAVAILABLE:
        return LocationUnavailable(LOCATION_MESSAGES[LocationState.UNAVAILABLE])
    if reason == GateBlockReason.NO_GEOFENCE:
        if project_issue:
            return ProjectUnavailable(project_issue)
        return NoProjectAssigned("No active project site to record attendance at")
    if reason == GateBlockReason.OUT_OF_GEOFENCE:
        return OutOfGeofence(decision.label, distance_m=decision.distance_m, radius_m=decision.radius_m)
    if reason == GateBlockReason.SCHEDULE_WINDOW_CLOSED:
        return ScheduleWindowClosed("The scheduled work window has ended; submit a manual attendance request instead")
    if reason == GateBlockReason.ALREADY_CHECKED_IN:
        return SessionConflict("You have already checked in today")
    if reason == GateBlockReason.NOT_CHECKED_IN:
        return SessionConflict("You have not checked in today")
    return SessionConflict("You have already checked out today")
