from __future__ import annotations

import threading
from time import sleep
from datetime import date, time

import pytest

from src.site_attendance.site_attendance.attendance.model import AttendanceRecord, LaborAssignment, WorkerAssignment
from src.site_attendance.site_attendance.attendance.service import AttendanceService
from src.site_attendance.site_attendance.core.enums import LocationErrorKind, ScheduleScope, SessionState, TimeDirection
from src.site_attendance.site_attendance.core.exceptions import (
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
from src.site_attendance.site_attendance.geo.model import GeoFence
from src.site_attendance.site_attendance.requests.service import ManualRequestService
from src.site_attendance.site_attendance.schedules.clock import ScheduleClock
from src.site_attendance.site_attendance.schedules.model import ScopedSchedule, WorkSchedule
from tests.fakes import RIYADH, SITE, FixedClock, InMemoryBackend, local, north_of

WORKER = 1001
PROJECT = 501


def build(now, *, schedules=None, project=PROJECT, fence=True):
    clock = FixedClock(now)
    backend = InMemoryBackend(
        schedules=schedules if schedules is not None else [ScopedSchedule(WorkSchedule(time(8, 0), time(17, 0)), schedule_id=1, project_code=PROJECT)],
        fences={PROJECT: GeoFence(center=SITE, radius_meters=100.0, project_code=PROJECT)} if fence else {},
        assignments={WORKER: WorkerAssignment(worker_id=WORKER, project_code=project, department_code=30)},
    )
    schedule_clock = ScheduleClock(clock=clock, tz=RIYADH)
    requests = ManualRequestService(backend, clock=clock, tz=RIYADH)
    service = AttendanceService(
        backend=backend,
        schedules=backend,
        geofences=backend,
        assignments=backend,
        requests=requests,
        schedule_clock=schedule_clock,
    )
    return service, backend, clock


def test_scenario_at_fence_center_five_minutes_after_start():
    service, _, _ = build(local(2026, 3, 2, 8, 5))
    service.report_position(WORKER, latitude=SITE.latitude, longitude=SITE.longitude)

    ui = service.get_status_ui(WORKER)
    assert ui["canCheckIn"] is True
    assert ui["clock"]["label"] == "5 minutes late"
    assert ui["clock"]["direction"] == TimeDirection.LATE.value
    assert ui["state"] == SessionState.NOT_CHECKED_IN.value


def test_scenario_check_in_five_minutes_late_is_on_time():
    service, _, clock = build(local(2026, 3, 2, 8, 5))
    service.report_position(WORKER, latitude=SITE.latitude, longitude=SITE.longitude)

    record = service.check_in(WORKER)
    assert record.entry_time == local(2026, 3, 2, 8, 5)

    clock.advance(hours=2)
    service.report_position(WORKER, latitude=SITE.latitude, longitude=SITE.longitude)
    st = service.get_status(WORKER)
    assert st.state == SessionState.CHECKED_IN
    assert st.reading.direction == TimeDirection.ON_TIME
    assert st.reading.minutes_delta == 5
    assert st.gate.can_check_out
    assert not st.gate.can_check_in


def test_scenario_out_of_fence_cannot_check_in():
    service, backend, _ = build(local(2026, 3, 2, 7, 50))
    far = north_of(SITE, 150)
    service.report_position(WORKER, latitude=far.latitude, longitude=far.longitude)

    ui = service.get_status_ui(WORKER)
    assert ui["canCheckIn"] is False
    assert ui["location"]["withinFence"] is False

    with pytest.raises(OutOfGeofence):
        service.check_in(WORKER)
    assert "check_in" not in backend.calls


def test_full_day_is_linear_and_terminal():
    service, _, clock = build(local(2026, 3, 2, 7, 55))
    service.report_position(WORKER, latitude=SITE.latitude, longitude=SITE.longitude)
    service.check_in(WORKER)

    clock.set(local(2026, 3, 2, 17, 5))
    service.report_position(WORKER, latitude=SITE.latitude, longitude=SITE.longitude)
    service.check_out(WORKER)

    st = service.get_status(WORKER)
    assert st.state == SessionState.CHECKED_OUT
    assert not st.gate.can_check_in
    assert not st.gate.can_check_out
    assert st.summary.worked_minutes == 550

    with pytest.raises(SessionConflict):
        service.check_out(WORKER)


def test_new_local_day_resets_session():
    service, backend, clock = build(local(2026, 3, 2, 7, 55))
    service.report_position(WORKER, latitude=SITE.latitude, longitude=SITE.longitude)
    service.check_in(WORKER)

    clock.set(local(2026, 3, 3, 7, 55))
    service.report_position(WORKER, latitude=SITE.latitude, longitude=SITE.longitude)
    st = service.get_status(WORKER)

    assert st.work_date == date(2026, 3, 3)
    assert st.state == SessionState.NOT_CHECKED_IN
    assert st.gate.can_check_in


def test_check_out_before_check_in_is_rejected_locally():
    service, backend, _ = build(local(2026, 3, 2, 9, 0))
    service.report_position(WORKER, latitude=SITE.latitude, longitude=SITE.longitude)

    with pytest.raises(SessionConflict):
        service.check_out(WORKER)
    assert "check_out" not in backend.calls


def test_check_in_after_window_closed_suggests_manual_request():
    service, _, _ = build(local(2026, 3, 2, 17, 30))
    service.report_position(WORKER, latitude=SITE.latitude, longitude=SITE.longitude)

    ui = service.get_status_ui(WORKER)
    assert ui["isAfterScheduledEnd"] is True
    assert ui["checkInBlockedBy"] == ["SCHEDULE_WINDOW_CLOSED"]
    assert ui["manualRequestSuggested"] is True

    with pytest.raises(ScheduleWindowClosed):
        service.check_in(WORKER)


def test_location_errors_block_submission():
    service, _, clock = build(local(2026, 3, 2, 8, 0))
    service.report_location_error(WORKER, kind=LocationErrorKind.PERMISSION_DENIED)
    with pytest.raises(LocationPermissionDenied):
        service.check_in(WORKER)

    service.subscribe_location(WORKER)
    clock.advance(seconds=30)
    with pytest.raises(LocationUnavailable):
        service.check_in(WORKER)


def test_worker_without_project_cannot_check_in():
    service, _, _ = build(local(2026, 3, 2, 8, 0), project=None)
    service.report_position(WORKER, latitude=SITE.latitude, longitude=SITE.longitude)
    with pytest.raises(NoProjectAssigned):
        service.check_in(WORKER)


def test_project_without_coordinates_blocks_with_no_geofence():
    service, _, _ = build(local(2026, 3, 2, 8, 0), fence=False)
    service.report_position(WORKER, latitude=SITE.latitude, longitude=SITE.longitude)
    ui = service.get_status_ui(WORKER)
    assert ui["checkInBlockedBy"] == ["NO_GEOFENCE"]
    assert ui["location"]["radiusMeters"] is None


def test_backend_conflict_reconciles_state():
    service, backend, _ = build(local(2026, 3, 2, 8, 0))
    service.report_position(WORKER, latitude=SITE.latitude, longitude=SITE.longitude)
    service.session_for(WORKER)
    # Checked in from another device after the session was loaded.
    backend.records[(WORKER, date(2026, 3, 2))] = AttendanceRecord(
        work_date=date(2026, 3, 2), project_code=PROJECT, entry_time=local(2026, 3, 2, 7, 58)
    )

    with pytest.raises(SessionConflict):
        service.check_in(WORKER)
    assert service.session_for(WORKER).state == SessionState.CHECKED_IN


def test_schedule_outage_falls_back_and_still_works():
    service, backend, _ = build(local(2026, 3, 2, 8, 0))
    backend.fail_schedules = True
    ui = service.get_status_ui(WORKER)
    assert ui["schedule"]["isFallback"] is True
    assert ui["schedule"]["scope"] == ScheduleScope.FALLBACK.value


def test_geofence_outage_keeps_gate_closed():
    service, backend, _ = build(local(2026, 3, 2, 8, 0))
    backend.fail_fences = True
    service.report_position(WORKER, latitude=SITE.latitude, longitude=SITE.longitude)
    assert service.get_status_ui(WORKER)["canCheckIn"] is False


def test_concurrent_check_in_is_rejected_while_in_flight():
    service, backend, _ = build(local(2026, 3, 2, 8, 0))
    service.report_position(WORKER, latitude=SITE.latitude, longitude=SITE.longitude)

    entered = threading.Event()
    release = threading.Event()
    real_check_in = backend.check_in

    def slow_check_in(**kwargs):
        entered.set()
        release.wait(timeout=5)
        return real_check_in(**kwargs)

    backend.check_in = slow_check_in
    results = []
    t = threading.Thread(target=lambda: results.append(service.check_in(WORKER)))
    t.start()
    assert entered.wait(timeout=5)

    with pytest.raises(SubmissionInFlight):
        service.check_in(WORKER)

    release.set()
    t.join(timeout=5)
    assert results and results[0].entry_time is not None
    assert backend.calls.count("check_in") == 1


def test_stale_result_is_discarded_after_day_rolls_over():
    service, backend, clock = build(local(2026, 3, 2, 23, 0), schedules=[
        ScopedSchedule(WorkSchedule(time(22, 0), time(6, 0)), schedule_id=4, project_code=PROJECT),
    ])
    service.report_position(WORKER, latitude=SITE.latitude, longitude=SITE.longitude)
    session = service.session_for(WORKER)
    real_check_in = backend.check_in

    def check_in_across_midnight(**kwargs):
        rec = real_check_in(**kwargs)
        session.roll_over(date(2026, 3, 3))
        return rec

    backend.check_in = check_in_across_midnight
    assert service.check_in(WORKER) is None
    assert session.state == SessionState.NOT_CHECKED_IN


def test_manual_request_with_equal_times_never_reaches_backend():
    service, backend, _ = build(local(2026, 3, 2, 18, 0))

    with pytest.raises(ValidationError) as exc:
        service.submit_manual_request(WORKER, work_date="2026-03-02", entry_time="08:00", exit_time="08:00", reason="GPS failed")
    assert exc.value.errors == {"exit_time": "Exit time must be after entry time"}
    assert backend.calls == []


def test_manual_request_does_not_change_session_state():
    service, backend, _ = build(local(2026, 3, 2, 18, 0))
    req = service.submit_manual_request(WORKER, work_date="2026-03-02", entry_time="08:00", exit_time="17:00", reason="GPS failed")

    assert req.request_id == 1
    assert backend.submitted[0]["entry_time"].hour == 8
    assert service.session_for(WORKER).state == SessionState.NOT_CHECKED_IN


def test_manual_request_goes_through_while_assignments_are_down():
    service, backend, _ = build(local(2026, 3, 2, 18, 0))
    backend.fail_assignments = True

    req = service.submit_manual_request(WORKER, work_date="2026-03-02", entry_time="08:00", exit_time="17:00", reason="GPS failed")

    assert req.request_id == 1
    assert backend.calls == ["manual_request"]


def test_first_requests_of_the_day_load_the_session_once():
    service, backend, _ = build(local(2026, 3, 2, 8, 0))
    service.report_position(WORKER, latitude=SITE.latitude, longitude=SITE.longitude)

    entered = threading.Event()
    release = threading.Event()
    real_assignment = backend.get_worker_assignment

    def slow_assignment(worker_id):
        entered.set()
        release.wait(timeout=5)
        return real_assignment(worker_id)

    backend.get_worker_assignment = slow_assignment
    outcomes = []

    def attempt():
        try:
            outcomes.append(service.check_in(WORKER))
        except (SubmissionInFlight, SessionConflict) as e:
            outcomes.append(e)

    threads = [threading.Thread(target=attempt) for _ in range(2)]
    threads[0].start()
    assert entered.wait(timeout=5)
    threads[1].start()
    sleep(0.05)
    release.set()
    for t in threads:
        t.join(timeout=5)

    assert backend.calls.count("assignment") == 1
    assert backend.calls.count("check_in") == 1
    assert len(outcomes) == 2
    assert sum(isinstance(o, AttendanceRecord) for o in outcomes) == 1


def test_project_falls_back_to_current_labor_assignment():
    service, backend, _ = build(local(2026, 3, 2, 8, 0), project=None)
    backend.labor[WORKER] = [
        LaborAssignment(project_code=777, assignment_no=1, status="COMPLETED"),
        LaborAssignment(project_code=778, assignment_no=2, is_active=True, end_date=date(2026, 3, 1)),
        LaborAssignment(project_code=PROJECT, assignment_no=3, status="active", end_date=date(2026, 3, 2)),
    ]
    service.report_position(WORKER, latitude=SITE.latitude, longitude=SITE.longitude)

    record = service.check_in(WORKER)

    assert record.project_code == PROJECT
    assert "account" not in backend.calls


def test_project_falls_back_to_user_account_when_labor_lookup_fails():
    service, backend, _ = build(local(2026, 3, 2, 8, 0), project=None)
    backend.fail_labor = True
    backend.account_projects[WORKER] = PROJECT
    service.report_position(WORKER, latitude=SITE.latitude, longitude=SITE.longitude)

    assert service.get_status_ui(WORKER)["projectCode"] == PROJECT
    assert service.check_in(WORKER).project_code == PROJECT


def test_no_project_anywhere_still_means_no_project():
    service, backend, _ = build(local(2026, 3, 2, 8, 0), project=None)
    service.report_position(WORKER, latitude=SITE.latitude, longitude=SITE.longitude)

    with pytest.raises(NoProjectAssigned):
        service.check_in(WORKER)
    assert backend.calls[:3] == ["assignment", "labor", "account"]


def test_inactive_project_is_reported_as_unavailable_not_missing():
    service, backend, _ = build(local(2026, 3, 2, 8, 0))
    backend.unavailable_projects[PROJECT] = "Your assigned project is not active (ON_HOLD); attendance cannot be recorded there"
    service.report_position(WORKER, latitude=SITE.latitude, longitude=SITE.longitude)

    ui = service.get_status_ui(WORKER)
    assert ui["checkInBlockedBy"] == ["NO_GEOFENCE"]
    assert "ON_HOLD" in ui["projectIssue"]
    assert ui["manualRequestSuggested"] is True

    with pytest.raises(ProjectUnavailable) as exc:
        service.check_in(WORKER)
    assert "ON_HOLD" in str(exc.value)
