from __future__ import annotations

from flask import Flask, jsonify, request

from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.route("/api/attendance/<int:worker_id>/manual-requests", methods=["POST"], endpoint="manual_request_submit")
    def manual_request_submit(worker_id: int):
        payload = request.get_json(silent=True) or request.form

        req = service.submit_manual_request(
            worker_id,
            work_date=payload.get("date"),
            entry_time=payload.get("entry_time") or payload.get("entryTime"),
            exit_time=payload.get("exit_time") or payload.get("exitTime"),
            reason=payload.get("reason"),
        )
        return jsonify({
            "success": True,
            "message": "Manual attendance request submitted for approval",
            "data": {
                "requestId": req.request_id,
                "workDate": req.work_date.isoformat(),
                "entryTime": req.requested_entry_time.strftime("%H:%M"),
                "exitTime": req.requested_exit_time.strftime("%H:%M") if req.requested_exit_time else None,
                "reason": req.reason,
                "status": req.status.value,
            },
        }), 201
