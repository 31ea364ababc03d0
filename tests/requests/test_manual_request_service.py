from __future__ import annotations

from datetime import date, time

import pytest

from src.site_attendance.site_attendance.core.exceptions import SubmissionInFlight, ValidationError
from src.site_attendance.site_attendance.requests.model import NewManualAttendanceRequest
from src.site_attendance.site_attendance.requests.service import ManualRequestService
from tests.fakes import RIYADH, FixedClock, InMemoryBackend, local


def make_service(now=None):
    backend = InMemoryBackend()
    service = ManualRequestService(backend, clock=FixedClock(now or local(2026, 3, 2, 18, 0)), tz=RIYADH)
    return service, backend


def draft(**kw):
    values = dict(
        work_date=date(2026, 3, 2),
        requested_entry_time=time(8, 0),
        requested_exit_time=time(17, 0),
        reason="Phone GPS was off",
    )
    values.update(kw)
    return NewManualAttendanceRequest(**values)


def test_submit_forwards_local_wall_clock_times():
    service, backend = make_service()
    req = service.submit(worker_id=7, draft=draft())

    assert req.request_id == 1
    assert req.status.value == "PENDING"
    sent = backend.submitted[0]
    assert sent["entry_time"].isoformat() == "2026-03-02T08:00:00"
    assert sent["exit_time"].isoformat() == "2026-03-02T17:00:00"
    assert sent["reason"] == "Phone GPS was off"


def test_exit_time_is_optional():
    service, backend = make_service()
    service.submit(worker_id=7, draft=draft(requested_exit_time=None))
    assert backend.submitted[0]["exit_time"] is None


def test_all_field_errors_are_reported_together():
    service, backend = make_service()

    with pytest.raises(ValidationError) as exc:
        service.submit(worker_id=7, draft=draft(work_date=None, requested_entry_time=None, reason="  "))

    assert set(exc.value.errors) == {"date", "entry_time", "reason"}
    assert backend.calls == []


def test_exit_must_be_after_entry():
    service, backend = make_service()

    with pytest.raises(ValidationError) as exc:
        service.submit(worker_id=7, draft=draft(requested_exit_time=time(8, 0)))

    assert exc.value.errors == {"exit_time": "Exit time must be after entry time"}
    assert backend.calls == []


def test_future_date_is_rejected_by_local_date():
    # 01:00 local on the 3rd is still the 2nd in UTC.
    service, _ = make_service(local(2026, 3, 3, 1, 0))
    service.validate(draft(work_date=date(2026, 3, 3)))

    with pytest.raises(ValidationError) as exc:
        service.validate(draft(work_date=date(2026, 3, 4)))
    assert exc.value.errors["date"] == "Cannot submit a request for a future date"


def test_parse_reports_malformed_values():
    service, _ = make_service()

    with pytest.raises(ValidationError) as exc:
        service.parse(work_date="02/03/2026", entry_time="8am", exit_time="17:00", reason="x")
    assert set(exc.value.errors) == {"date", "entry_time"}


def test_parse_accepts_seconds_and_blank_exit():
    service, _ = make_service()
    d = service.parse(work_date="2026-03-02", entry_time="08:00:00", exit_time="", reason="x")
    assert d.requested_entry_time == time(8, 0)
    assert d.requested_exit_time is None


def test_second_submission_while_first_in_flight_is_rejected():
    service, backend = make_service()

    def reentrant_submit(**kwargs):
        return service.submit(worker_id=7, draft=draft())

    backend.submit_manual_attendance_request = reentrant_submit
    with pytest.raises(SubmissionInFlight):
        service.submit(worker_id=7, draft=draft())
