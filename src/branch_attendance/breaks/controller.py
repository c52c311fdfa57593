from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import int_field, json_body, require_field
from ..common.serialization import to_jsonable
from ..container import Container
from .policy import policy_violation


def register(app: Flask, container: Container) -> None:
    service = container.break_service

    @app.route("/api/attendance/<int:employee_id>/breaks/start", methods=["POST"], endpoint="api_break_start")
    def api_break_start(employee_id: int):
        data = json_body()
        brk = service.start_break(
            employee_id,
            require_field(data, "break_type"),
            location=data.get("location"),
            reason=data.get("reason"),
        )
        return jsonify(to_jsonable(brk)), 201

    @app.route("/api/attendance/<int:employee_id>/breaks/end", methods=["POST"], endpoint="api_break_end")
    def api_break_end(employee_id: int):
        brk = service.end_break(employee_id)
        violation = policy_violation(brk)
        return jsonify({"break": to_jsonable(brk), "warning": str(violation) if violation else None}), 200

    @app.route("/api/attendance/<int:employee_id>/breaks/active", methods=["GET"], endpoint="api_breaks_active")
    def api_breaks_active(employee_id: int):
        return jsonify({"breaks": to_jsonable(service.get_active_breaks(employee_id))})

    @app.route("/api/attendance/breaks/<int:break_id>/approve", methods=["POST"], endpoint="api_break_approve")
    def api_break_approve(break_id: int):
        data = json_body()
        brk = service.approve_overage(break_id, approved_by=int_field(data, "approved_by"))
        return jsonify(to_jsonable(brk)), 200

    @app.route("/api/attendance/breaks/<int:break_id>/reject", methods=["POST"], endpoint="api_break_reject")
    def api_break_reject(break_id: int):
        data = json_body()
        brk = service.reject_overage(break_id, rejected_by=int_field(data, "rejected_by"))
        return jsonify(to_jsonable(brk)), 200
