"""Great-circle distance between GPS coordinates (Haversine)."""

from __future__ import annotations

import math

from ..core.constants import EARTH_RADIUS_M
from .model import Coordinate


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Distance between two points in meters.

    NaN inputs propagate as NaN; callers must read that as "unknown".
    """

    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    delta_phi = math.radians(b.latitude - a.latitude)
    delta_lambda = math.radians(b.longitude - a.longitude)

    h = math.sin(delta_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    # Rounding can push h a hair outside [0, 1] for antipodal points.
    h = min(1.0, max(0.0, h)) if not math.isnan(h) else h
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_M * c


def format_distance(meters: float) -> str:
    if meters < 1000:
        return f"{round(meters)}m"
    return f"{meters / 1000:.2f}km"
