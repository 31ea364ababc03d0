from __future__ import annotations

import math
from typing import Optional

from ..core.exceptions import ValidationError

def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required", {field_name: f"{field_name} is required"})
    return value.strip()

def require_coordinate(latitude, longitude) -> tuple[float, float]:
    """Validate a raw lat/lng pair coming from a device."""
    try:
        lat = float(latitude)
        lng = float(longitude)
    except (TypeError, ValueError):
        raise ValidationError("Invalid coordinates", {"location": "latitude/longitude must be numbers"})
    if not (-90.0 <= lat <= 90.0) or not (-180.0 <= lng <= 180.0):
        raise ValidationError("Invalid coordinates", {"location": "latitude/longitude out of range"})
    return lat, lng

def optional_accuracy(value) -> Optional[float]:
    """Reported fix accuracy in meters; absent is fine, garbage is not."""
    if value is None or value == "":
        return None
    try:
        accuracy = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Invalid accuracy", {"accuracy": "accuracy must be a number of meters"})
    if math.isnan(accuracy) or accuracy < 0:
        raise ValidationError("Invalid accuracy", {"accuracy": "accuracy must be a non-negative number of meters"})
    return accuracy
