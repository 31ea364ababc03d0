"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import time

EARTH_RADIUS_M = 6_371_000
DEFAULT_GEOFENCE_RADIUS_M = 100.0

GRACE_WINDOW_MINUTES = 15
NEXT_DAY_THRESHOLD_HOURS = 12

DEFAULT_SCHEDULE_START = time(8, 0)
DEFAULT_SCHEDULE_END = time(17, 0)
DEFAULT_REQUIRED_HOURS = 8

LOCATION_TIMEOUT_SECONDS = 20
LOCATION_MAX_FIX_AGE_SECONDS = 120

DEFAULT_TIMEZONE = "Asia/Riyadh"
