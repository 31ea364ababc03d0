from __future__ import annotations

import structlog
from dotenv import load_dotenv
from flask import Flask, jsonify

from config import get_settings_module, load_settings

from .attendance.controller import register as register_attendance
from .container import Container, build_container
from .core.exceptions import (
    BackendError,
    DomainError,
    LocationPermissionDenied,
    LocationUnavailable,
    NoProjectAssigned,
    OutOfGeofence,
    ProjectUnavailable,
    ScheduleWindowClosed,
    SessionConflict,
    SubmissionInFlight,
    ValidationError,
)
from .logging import register_request_id, setup_logging
from .requests.controller import register as register_requests

logger = structlog.get_logger(__name__)

# Most specific first; the first isinstance match wins.
ERROR_STATUS = (
    (ValidationError, 422),
    (SessionConflict, 409),
    (SubmissionInFlight, 409),
    (LocationPermissionDenied, 403),
    (LocationUnavailable, 403),
    (OutOfGeofence, 403),
    (ScheduleWindowClosed, 403),
    (ProjectUnavailable, 403),
    (NoProjectAssigned, 404),
    (BackendError, 502),
)


def error_payload(e: DomainError) -> tuple[dict, int]:
    status = next((code for exc_type, code in ERROR_STATUS if isinstance(e, exc_type)), 500)
    body = {"success": False, "error": type(e).__name__, "message": str(e)}
    if isinstance(e, ValidationError) and e.errors:
        body["errors"] = e.errors
    if isinstance(e, OutOfGeofence):
        body["distanceMeters"] = round(e.distance_m, 1) if e.distance_m is not None else None
        body["radiusMeters"] = e.radius_m
    return body, status


def create_app(settings_module: str | None = None, *, container: Container | None = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = load_settings(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    setup_logging(getattr(settings, "LOG_LEVEL", None))
    register_request_id(app)

    container = container or build_container(settings=settings)
    logger.info("app_started", settings=settings_module, timezone=str(container.schedule_clock.tz))

    @app.errorhandler(DomainError)
    def _domain_error(e: DomainError):
        body, status = error_payload(e)
        if status >= 500:
            logger.error("request_failed", error=type(e).__name__, message=str(e))
        return jsonify(body), status

    register_attendance(app, container)
    register_requests(app, container)

    return app
