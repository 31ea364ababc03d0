from __future__ import annotations

from datetime import date, time

import pytest

from config import load_settings
from src.site_attendance.site_attendance.attendance.model import WorkerAssignment
from src.site_attendance.site_attendance.container import build_container
from src.site_attendance.site_attendance.geo.model import GeoFence
from src.site_attendance.site_attendance.main import create_app
from src.site_attendance.site_attendance.schedules.model import ScopedSchedule, WorkSchedule
from tests.fakes import SITE, FixedClock, InMemoryBackend, local, north_of

WORKER = 1001


@pytest.fixture
def env():
    clock = FixedClock(local(2026, 3, 2, 8, 5))
    backend = InMemoryBackend(
        schedules=[ScopedSchedule(WorkSchedule(time(8, 0), time(17, 0)), schedule_id=1)],
        fences={501: GeoFence(center=SITE, radius_meters=100.0, project_code=501)},
        assignments={WORKER: WorkerAssignment(worker_id=WORKER, project_code=501, department_code=30)},
    )
    container = build_container(settings=load_settings("config.testing"), clock=clock, backend=backend)
    app = create_app("config.testing", container=container)
    return app.test_client(), backend, clock, container


def post_location(client, coord):
    return client.post(f"/api/attendance/{WORKER}/location", json={"latitude": coord.latitude, "longitude": coord.longitude})


def test_status_before_any_location_is_locating(env):
    client, _, _, _ = env
    resp = client.get(f"/api/attendance/{WORKER}/status")

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["location"]["state"] == "LOCATING"
    assert data["canCheckIn"] is False
    assert data["schedule"]["scope"] == "DEFAULT"


def test_request_id_is_echoed(env):
    client, _, _, _ = env
    resp = client.get(f"/api/attendance/{WORKER}/status", headers={"X-Request-ID": "abc-123"})
    assert resp.headers["X-Request-ID"] == "abc-123"
    assert client.get(f"/api/attendance/{WORKER}/status").headers["X-Request-ID"]


def test_check_in_and_out_flow(env):
    client, _, clock, _ = env
    resp = post_location(client, SITE)
    assert resp.get_json()["data"]["canCheckIn"] is True
    assert resp.get_json()["data"]["location"]["label"] == "Within site range (0m)"

    resp = client.post(f"/api/attendance/{WORKER}/check-in")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["state"] == "CHECKED_IN"
    assert data["clock"]["direction"] == "ON_TIME"

    assert client.post(f"/api/attendance/{WORKER}/check-in").status_code == 409

    clock.set(local(2026, 3, 2, 17, 10))
    post_location(client, SITE)
    resp = client.post(f"/api/attendance/{WORKER}/check-out")
    data = resp.get_json()["data"]
    assert data["state"] == "CHECKED_OUT"
    assert data["summary"]["workedHours"] == "09:05"
    assert data["summary"]["overtimeHours"] == "01:05"


def test_out_of_fence_is_forbidden_with_distance(env):
    client, _, _, _ = env
    post_location(client, north_of(SITE, 150))

    resp = client.post(f"/api/attendance/{WORKER}/check-in")
    body = resp.get_json()
    assert resp.status_code == 403
    assert body["success"] is False
    assert body["error"] == "OutOfGeofence"
    assert body["radiusMeters"] == 100.0
    assert round(body["distanceMeters"]) == 150


def test_location_error_report(env):
    client, _, _, _ = env
    resp = client.post(f"/api/attendance/{WORKER}/location", json={"error": "permission_denied"})
    assert resp.get_json()["data"]["location"]["state"] == "PERMISSION_DENIED"

    assert client.post(f"/api/attendance/{WORKER}/check-in").status_code == 403


@pytest.mark.parametrize(
    "payload",
    [
        {"latitude": "north", "longitude": 1},
        {"latitude": 91, "longitude": 0},
        {"error": "EXPLODED"},
        {"latitude": 24.7, "longitude": 46.6, "accuracy": "high"},
        {"latitude": 24.7, "longitude": 46.6, "accuracy": -3},
    ],
)
def test_bad_location_payload_is_422(env, payload):
    client, _, _, _ = env
    resp = client.post(f"/api/attendance/{WORKER}/location", json=payload)
    assert resp.status_code == 422
    assert resp.get_json()["errors"]


def test_manual_request_validation_and_submit(env):
    client, backend, _, _ = env
    resp = client.post(
        f"/api/attendance/{WORKER}/manual-requests",
        json={"date": "2026-03-02", "entry_time": "08:00", "exit_time": "08:00", "reason": "GPS"},
    )
    assert resp.status_code == 422
    assert resp.get_json()["errors"] == {"exit_time": "Exit time must be after entry time"}
    assert backend.submitted == []

    resp = client.post(
        f"/api/attendance/{WORKER}/manual-requests",
        json={"date": "2026-03-01", "entryTime": "08:00", "exitTime": "17:00", "reason": "GPS"},
    )
    assert resp.status_code == 201
    assert resp.get_json()["data"] == {
        "requestId": 1,
        "workDate": "2026-03-01",
        "entryTime": "08:00",
        "exitTime": "17:00",
        "reason": "GPS",
        "status": "PENDING",
    }


def test_check_in_result_dropped_after_day_change_is_not_reported_as_success(env):
    client, backend, _, container = env
    post_location(client, SITE)
    session = container.attendance_service.session_for(WORKER)
    real_check_in = backend.check_in

    def check_in_then_day_changes(**kwargs):
        rec = real_check_in(**kwargs)
        session.roll_over(date(2026, 3, 3))
        return rec

    backend.check_in = check_in_then_day_changes
    resp = client.post(f"/api/attendance/{WORKER}/check-in")
    body = resp.get_json()

    assert resp.status_code == 409
    assert body["success"] is False
    assert body["error"] == "SessionConflict"
    assert "showing the current state" in body["message"]
    assert body["data"]["workerId"] == WORKER


def test_inactive_project_is_forbidden_with_its_own_message(env):
    client, backend, _, _ = env
    backend.unavailable_projects[501] = "Your assigned project is not active (SUSPENDED); attendance cannot be recorded there"
    post_location(client, SITE)

    resp = client.post(f"/api/attendance/{WORKER}/check-in")
    body = resp.get_json()
    assert resp.status_code == 403
    assert body["error"] == "ProjectUnavailable"
    assert "SUSPENDED" in body["message"]


def test_location_accuracy_is_accepted_as_a_number(env):
    client, _, _, _ = env
    resp = client.post(
        f"/api/attendance/{WORKER}/location",
        json={"latitude": SITE.latitude, "longitude": SITE.longitude, "accuracy": "12.5"},
    )
    assert resp.status_code == 200
    assert resp.get_json()["data"]["canCheckIn"] is True


@pytest.mark.parametrize(
    "value,expected",
    [("production", "config.production"), ("TEST", "config.testing"), ("anything", "config.development")],
)
def test_settings_module_follows_app_env(monkeypatch, value, expected):
    from config import get_settings_module

    monkeypatch.setenv("APP_ENV", value)
    assert get_settings_module() == expected
