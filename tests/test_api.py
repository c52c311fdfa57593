from __future__ import annotations

import pytest

from branch_attendance.main import DATABASE_DIR, create_app, status_for
from branch_attendance.core.exceptions import (
    AlreadyCheckedInError,
    EmployeeNotFoundError,
    OperationCancelledError,
    ValidationError,
)

from fakes import build_env


@pytest.fixture
def api(monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    env = build_env()
    app = create_app(env.container)
    return env, app.test_client()


def test_status_codes_by_error_category():
    assert status_for(ValidationError("x")) == 400
    assert status_for(EmployeeNotFoundError("x")) == 404
    assert status_for(AlreadyCheckedInError("x")) == 409
    assert status_for(OperationCancelledError("x")) == 499


def test_check_in_and_out_over_http(api):
    env, client = api
    env.at(9, 20)

    resp = client.post("/api/attendance/1/check-in", json={"location": "HQ", "weather": {"summary": "Rain"}})
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["status"] == "LATE"
    assert body["late_arrival_duration"] == 20.0
    assert body["weather"]["summary"] == "Rain"

    again = client.post("/api/attendance/1/check-in", json={})
    assert again.status_code == 409
    assert again.get_json()["error"] == "AlreadyCheckedInError"

    env.at(18, 0)
    out = client.post("/api/attendance/1/check-out", json={"notes": "done"})
    assert out.status_code == 200
    assert out.get_json()["total_working_hours"] == 520.0

    status = client.get("/api/attendance/1/status").get_json()
    assert status["day_state"] == "CHECKED_OUT"


def test_unknown_employee_is_404(api):
    _, client = api

    resp = client.post("/api/attendance/77/check-in", json={})

    assert resp.status_code == 404
    assert resp.get_json()["error"] == "EmployeeNotFoundError"


def test_break_end_reports_overage_warning(api):
    env, client = api
    env.at(8, 0)
    client.post("/api/attendance/1/check-in", json={})
    env.at(10, 0)
    assert client.post("/api/attendance/1/breaks/start", json={"break_type": "Tea"}).status_code == 201

    env.at(10, 20)
    resp = client.post("/api/attendance/1/breaks/end")

    body = resp.get_json()
    assert resp.status_code == 200
    assert body["break"]["is_exceeding"] is True
    assert body["break"]["exceeded_duration"] == 5.0
    assert "exceeded" in body["warning"]

    approved = client.post(f"/api/attendance/breaks/{body['break']['break_id']}/approve", json={"approved_by": 5})
    assert approved.get_json()["approval_status"] == "APPROVED"


def test_break_start_requires_type(api):
    env, client = api
    env.at(8, 0)
    client.post("/api/attendance/1/check-in", json={})

    resp = client.post("/api/attendance/1/breaks/start", json={})

    assert resp.status_code == 400


def test_manual_entry_uses_branch_local_times(api):
    _, client = api

    resp = client.post(
        "/api/attendance/1/manual",
        json={
            "work_date": "2025-03-07",
            "check_in": "2025-03-07T09:00:00",
            "check_out": "2025-03-07T17:30:00",
            "status": "Present",
            "reason": "Forgot to check in",
            "entered_by": 99,
        },
    )

    body = resp.get_json()
    assert resp.status_code == 201
    assert body["check_in_time"] == "2025-03-07T02:00:00+00:00"
    assert body["check_in_time_local"] == "2025-03-07T09:00:00"
    assert body["total_working_hours"] == 510.0


def test_manual_entry_rejects_bad_status(api):
    _, client = api

    resp = client.post(
        "/api/attendance/1/manual",
        json={"work_date": "2025-03-07", "status": "Dancing", "reason": "x", "entered_by": 1},
    )

    assert resp.status_code == 400


def test_correction_workflow_over_http(api):
    env, client = api
    env.at(8, 30)
    record = client.post("/api/attendance/1/check-in", json={}).get_json()

    created = client.post(
        "/api/attendance/corrections",
        json={
            "attendance_id": record["attendance_id"],
            "requested_by": 1,
            "correction_type": "AttendanceStatus",
            "corrected_value": "Late",
            "reason": "Arrived after stand-up",
        },
    )
    assert created.status_code == 201
    correction_id = created.get_json()["correction_id"]

    pending = client.get("/api/attendance/corrections/pending?branch_id=10").get_json()
    assert [c["correction_id"] for c in pending["corrections"]] == [correction_id]

    approved = client.post(f"/api/attendance/corrections/{correction_id}/approve", json={"approved_by": 50})
    body = approved.get_json()
    assert approved.status_code == 200
    assert body["correction"]["status"] == "APPROVED"
    assert body["record"]["status"] == "LATE"
    assert body["skipped_field"] is None

    twice = client.post(f"/api/attendance/corrections/{correction_id}/approve", json={"approved_by": 50})
    assert twice.status_code == 409
    assert twice.get_json()["error"] == "InvalidStateError"


def test_records_range_validation(api):
    _, client = api

    resp = client.get("/api/attendance/1/records?start=2025-03-10&end=2025-03-01")

    assert resp.status_code == 400


def test_schema_and_seed_ship_with_the_package():
    assert (DATABASE_DIR / "schema.sql").is_file()
    assert (DATABASE_DIR / "seed.sql").is_file()
