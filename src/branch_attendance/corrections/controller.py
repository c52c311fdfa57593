from __future__ import annotations

from itertools import islice

from flask import Flask, jsonify, request

from ..common.http import int_field, json_body, require_field
from ..common.serialization import to_jsonable
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.correction_service

    @app.route("/api/attendance/corrections", methods=["POST"], endpoint="api_correction_request")
    def api_correction_request():
        data = json_body()
        correction = service.request_correction(
            int_field(data, "attendance_id"),
            requested_by=int_field(data, "requested_by"),
            correction_type=require_field(data, "correction_type"),
            original_value=data.get("original_value"),
            corrected_value=require_field(data, "corrected_value"),
            reason=require_field(data, "reason"),
        )
        return jsonify(to_jsonable(correction)), 201

    @app.route("/api/attendance/corrections/<int:correction_id>", methods=["GET"], endpoint="api_correction_get")
    def api_correction_get(correction_id: int):
        return jsonify(to_jsonable(service.get(correction_id)))

    @app.route(
        "/api/attendance/corrections/<int:correction_id>/approve",
        methods=["POST"],
        endpoint="api_correction_approve",
    )
    def api_correction_approve(correction_id: int):
        data = json_body()
        outcome = service.approve(
            correction_id,
            approved_by=int_field(data, "approved_by"),
            comments=data.get("comments"),
        )
        return jsonify(to_jsonable(outcome)), 200

    @app.route(
        "/api/attendance/corrections/<int:correction_id>/reject",
        methods=["POST"],
        endpoint="api_correction_reject",
    )
    def api_correction_reject(correction_id: int):
        data = json_body()
        correction = service.reject(
            correction_id,
            rejected_by=int_field(data, "rejected_by"),
            reason=require_field(data, "reason"),
        )
        return jsonify(to_jsonable(correction)), 200

    @app.route(
        "/api/attendance/corrections/<int:correction_id>/cancel",
        methods=["POST"],
        endpoint="api_correction_cancel",
    )
    def api_correction_cancel(correction_id: int):
        data = json_body()
        correction = service.cancel(correction_id, requested_by=int_field(data, "requested_by"))
        return jsonify(to_jsonable(correction)), 200

    @app.route("/api/attendance/corrections/pending", methods=["GET"], endpoint="api_corrections_pending")
    def api_corrections_pending():
        branch_id = request.args.get("branch_id", type=int)
        limit = request.args.get("limit", default=500, type=int)
        pending = list(islice(service.iter_pending(branch_id), max(limit, 0)))
        return jsonify({"corrections": to_jsonable(pending)})
