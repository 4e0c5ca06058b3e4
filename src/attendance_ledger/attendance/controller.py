from __future__ import annotations

from dataclasses import asdict

from flask import Flask, g, jsonify

from ..common.datetime_utils import now_local
from ..common.web import client_ip, json_body, login_required, parse_int, parse_timestamp, require_admin, required_date
from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError
from ..container import Container
from .model import UNSET, AttendanceRecord


def _status(value) -> AttendanceStatus:
    try:
        return AttendanceStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown attendance status: {value!r}")


def serialize_record(r: AttendanceRecord) -> dict:
    data = asdict(r)
    data["work_date"] = r.work_date.isoformat()
    data["status"] = r.status.value
    data["check_in"] = r.check_in.isoformat() if r.check_in else None
    data["check_out"] = r.check_out.isoformat() if r.check_out else None
    if r.leave_override:
        data["leave_override"]["leave_type"] = r.leave_override.leave_type.value
    return data


def register(app: Flask, container: Container) -> None:
    authenticated = login_required(container.users_repo)
    tz = container.timezone

    @app.route("/api/attendance/check-in", methods=["POST"], endpoint="attendance_check_in")
    @authenticated
    def check_in():
        result = container.attendance_service.check_in(g.user.user_id, actor=g.actor, origin_ip=client_ip())
        return jsonify(
            {
                "success": True,
                "message": result.analysis,
                "restored_days": result.restored_days,
                "override_message": result.override_message,
                "data": serialize_record(result.record),
            }
        ), 201

    @app.route("/api/attendance/check-out", methods=["POST"], endpoint="attendance_check_out")
    @authenticated
    def check_out():
        record = container.attendance_service.check_out(g.user.user_id, actor=g.actor)
        return jsonify({"success": True, "message": record.analysis, "data": serialize_record(record)})

    @app.route("/api/attendance/today", methods=["GET"], endpoint="attendance_today")
    @authenticated
    def today():
        record = container.attendance_service.get_record(g.user.user_id, now_local(tz).date())
        return jsonify({"success": True, "data": serialize_record(record) if record else None})

    @app.route("/api/admin/attendance", methods=["POST"], endpoint="attendance_admin_mark")
    @authenticated
    def admin_mark():
        actor = require_admin()
        data = json_body()
        if "user_id" not in data:
            raise ValidationError("user_id is required")
        record = container.attendance_service.admin_mark(
            parse_int(data["user_id"], "user_id"),
            required_date(data, "date"),
            actor=actor,
            check_in=parse_timestamp(data.get("check_in"), "check_in", tz),
            check_out=parse_timestamp(data.get("check_out"), "check_out", tz),
        )
        return jsonify({"success": True, "data": serialize_record(record)}), 201

    @app.route("/api/admin/attendance/<int:attendance_id>", methods=["PATCH"], endpoint="attendance_admin_edit")
    @authenticated
    def admin_edit(attendance_id: int):
        actor = require_admin()
        data = json_body()
        status = data.get("status")
        record = container.attendance_service.admin_edit(
            attendance_id,
            actor=actor,
            check_in=parse_timestamp(data["check_in"], "check_in", tz) if "check_in" in data else UNSET,
            check_out=parse_timestamp(data["check_out"], "check_out", tz) if "check_out" in data else UNSET,
            status=_status(status) if status else None,
        )
        return jsonify({"success": True, "data": serialize_record(record)})
