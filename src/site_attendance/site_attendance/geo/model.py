from __future__ import annotations

from dataclasses import dataclass

from ..core.constants import DEFAULT_GEOFENCE_RADIUS_M


@dataclass(frozen=True)
class Coordinate:
    """Một điểm GPS (vĩ độ, kinh độ) tại một thời điểm."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class GeoFence:
    """Circular site boundary around a project.

    A non-positive radius is kept as-is; the gate treats it as closed.
    """

    center: Coordinate
    radius_meters: float = DEFAULT_GEOFENCE_RADIUS_M
    project_code: int | None = None
