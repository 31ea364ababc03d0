import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

# HR backend (REST) that owns attendance records, schedules and projects
BACKEND_BASE_URL = os.getenv("BACKEND_BASE_URL", "http://localhost:8080/api")
BACKEND_API_TOKEN = os.getenv("BACKEND_API_TOKEN", "")
BACKEND_TIMEOUT_SECONDS = float(os.getenv("BACKEND_TIMEOUT_SECONDS", "30"))

# Local timezone used for "today" and all time-of-day comparisons
TIMEZONE = os.getenv("TIMEZONE", "Asia/Riyadh")

LOCATION_TIMEOUT_SECONDS = int(os.getenv("LOCATION_TIMEOUT_SECONDS", "20"))
LOCATION_MAX_FIX_AGE_SECONDS = int(os.getenv("LOCATION_MAX_FIX_AGE_SECONDS", "120"))
DEFAULT_GEOFENCE_RADIUS_M = float(os.getenv("DEFAULT_GEOFENCE_RADIUS_M", "100"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

DEBUG = True
