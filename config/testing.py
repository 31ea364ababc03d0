import os

SECRET_KEY = "test-secret"

BACKEND_BASE_URL = os.getenv("BACKEND_BASE_URL", "http://backend.test/api")
BACKEND_API_TOKEN = "test-token"
BACKEND_TIMEOUT_SECONDS = 5.0

TIMEZONE = "Asia/Riyadh"

LOCATION_TIMEOUT_SECONDS = 20
LOCATION_MAX_FIX_AGE_SECONDS = 120
DEFAULT_GEOFENCE_RADIUS_M = 100.0

LOG_LEVEL = "WARNING"

DEBUG = False
TESTING = True
