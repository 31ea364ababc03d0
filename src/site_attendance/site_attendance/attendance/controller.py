from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.validators import optional_accuracy, require_coordinate
from ..container import Container
from ..core.enums import LocationErrorKind
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    def _submission_response(worker_id: int, record, *, done: str, superseded: str):
        # None: the day rolled over or was reconciled while the call was out.
        if record is None:
            return jsonify({
                "success": False,
                "error": "SessionConflict",
                "message": superseded,
                "data": service.get_status_ui(worker_id),
            }), 409
        return jsonify({
            "success": True,
            "message": done,
            "data": service.get_status_ui(worker_id),
        })

    @app.route("/api/attendance/<int:worker_id>/status", methods=["GET"], endpoint="attendance_status")
    def attendance_status(worker_id: int):
        return jsonify({"success": True, "data": service.get_status_ui(worker_id)})

    @app.route("/api/attendance/<int:worker_id>/location", methods=["POST"], endpoint="attendance_location")
    def attendance_location(worker_id: int):
        payload = request.get_json(silent=True) or {}

        if payload.get("error"):
            try:
                kind = LocationErrorKind(str(payload["error"]).upper())
            except ValueError:
                raise ValidationError("Unknown location error", {"error": "Unknown location error kind"})
            service.report_location_error(worker_id, kind=kind, message=payload.get("message"))
        else:
            lat, lng = require_coordinate(payload.get("latitude"), payload.get("longitude"))
            accuracy = optional_accuracy(payload.get("accuracy"))
            service.report_position(worker_id, latitude=lat, longitude=lng, accuracy_m=accuracy)

        return jsonify({"success": True, "data": service.get_status_ui(worker_id)})

    @app.route("/api/attendance/<int:worker_id>/check-in", methods=["POST"], endpoint="attendance_check_in")
    def attendance_check_in(worker_id: int):
        record = service.check_in(worker_id)
        return _submission_response(
            worker_id,
            record,
            done="Checked in successfully",
            superseded="Attendance changed while the check-in was being recorded; showing the current state",
        )

    @app.route("/api/attendance/<int:worker_id>/check-out", methods=["POST"], endpoint="attendance_check_out")
    def attendance_check_out(worker_id: int):
        record = service.check_out(worker_id)
        return _submission_response(
            worker_id,
            record,
            done="Checked out successfully",
            superseded="Attendance changed while the check-out was being recorded; showing the current state",
        )
