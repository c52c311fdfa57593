from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from flask import Flask, jsonify, request

from ..common.datetime_utils import ensure_utc
from ..common.http import date_value, int_field, json_body, require_field, timestamp_value
from ..common.serialization import to_jsonable
from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError
from ..container import Container
from .model import WeatherSnapshot


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    def _instant(employee_id: int, text: Optional[str], name: str) -> Optional[datetime]:
        """Naive timestamps are branch wall-clock."""
        value = timestamp_value(text, name)
        if value is None or value.tzinfo is not None:
            return value
        employee = container.workdays.employee(employee_id)
        return container.workdays.to_utc(employee, value)

    def _status(data: dict) -> AttendanceStatus:
        try:
            return AttendanceStatus.parse(str(require_field(data, "status")))
        except ValueError as e:
            raise ValidationError(str(e))

    def _manual_kwargs(employee_id: int, data: dict) -> dict:
        return dict(
            status=_status(data),
            reason=require_field(data, "reason"),
            entered_by=int_field(data, "entered_by"),
            check_in=_instant(employee_id, data.get("check_in"), "check_in"),
            check_out=_instant(employee_id, data.get("check_out"), "check_out"),
            location=data.get("location"),
            notes=data.get("notes"),
        )

    @app.route("/api/attendance/<int:employee_id>/check-in", methods=["POST"], endpoint="api_check_in")
    def api_check_in(employee_id: int):
        data = json_body()
        record = service.check_in(
            employee_id,
            location=data.get("location"),
            ip_address=data.get("ip_address") or request.remote_addr,
            device_info=data.get("device_info") or request.headers.get("User-Agent"),
            notes=data.get("notes"),
            weather=WeatherSnapshot.from_dict(data.get("weather")),
        )
        return jsonify(to_jsonable(record)), 201

    @app.route("/api/attendance/<int:employee_id>/check-out", methods=["POST"], endpoint="api_check_out")
    def api_check_out(employee_id: int):
        data = json_body()
        record = service.check_out(
            employee_id,
            location=data.get("location"),
            ip_address=data.get("ip_address") or request.remote_addr,
            device_info=data.get("device_info") or request.headers.get("User-Agent"),
            notes=data.get("notes"),
        )
        return jsonify(to_jsonable(record)), 200

    @app.route("/api/attendance/<int:employee_id>/status", methods=["GET"], endpoint="api_status")
    def api_status(employee_id: int):
        record = service.get_today_record(employee_id)
        return jsonify(
            {
                "status": service.get_current_status(employee_id).value,
                "day_state": service.get_day_state(employee_id).value,
                "record": to_jsonable(record),
                "active_breaks": to_jsonable(service.get_active_breaks(employee_id)),
            }
        )

    @app.route("/api/attendance/<int:employee_id>/records", methods=["GET"], endpoint="api_records")
    def api_records(employee_id: int):
        today = date.today()
        start = date_value(request.args.get("start") or today.replace(day=1).isoformat(), "start")
        end = date_value(request.args.get("end") or today.isoformat(), "end")
        if end < start:
            raise ValidationError("end must not be earlier than start")
        records = service.list_employee_records(employee_id, start=start, end=end)
        return jsonify({"records": to_jsonable(list(records))})

    @app.route("/api/attendance/<int:employee_id>/shift-hours", methods=["GET"], endpoint="api_shift_hours")
    def api_shift_hours(employee_id: int):
        at = timestamp_value(request.args.get("at"), "at") or container.workdays.now()
        return jsonify({"at": to_jsonable(ensure_utc(at)), "within_shift": service.is_within_shift_hours(employee_id, at)})

    @app.route("/api/attendance/<int:employee_id>/manual", methods=["POST"], endpoint="api_manual_create")
    def api_manual_create(employee_id: int):
        data = json_body()
        work_date = date_value(require_field(data, "work_date"), "work_date")
        record = service.create_manual_entry(employee_id, work_date, **_manual_kwargs(employee_id, data))
        return jsonify(to_jsonable(record)), 201

    @app.route(
        "/api/attendance/<int:employee_id>/manual/<work_date>",
        methods=["PUT"],
        endpoint="api_manual_update",
    )
    def api_manual_update(employee_id: int, work_date: str):
        data = json_body()
        record = service.update_manual_entry(
            employee_id,
            date_value(work_date, "work_date"),
            **_manual_kwargs(employee_id, data),
        )
        return jsonify(to_jsonable(record)), 200
