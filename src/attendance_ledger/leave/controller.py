from __future__ import annotations

from dataclasses import asdict

from flask import Flask, g, jsonify, request

from ..common.datetime_utils import now_local
from ..common.web import json_body, login_required, optional_date, parse_float, parse_int, require_admin, required_date
from ..core.enums import LeaveCategory, LeaveType
from ..core.exceptions import ValidationError
from ..container import Container
from .model import LeaveRecord, LeaveStats


def _leave_type(value) -> LeaveType:
    try:
        return LeaveType(value)
    except ValueError:
        raise ValidationError(f"Unknown leave type: {value!r}")


def serialize_leave(leave: LeaveRecord) -> dict:
    return {
        "leave_id": leave.leave_id,
        "user_id": leave.user_id,
        "leave_type": leave.leave_type.value,
        "start_date": leave.start_date.isoformat(),
        "end_date": leave.end_date.isoformat(),
        "total_days": leave.total_days,
        "is_half_day": leave.is_half_day,
        "status": leave.status.value,
        "reason": leave.reason,
        "rejection_reason": leave.rejection_reason,
        "action_taken_by": leave.action_taken_by,
        "attendance_overrides": [
            {"date": o.date.isoformat(), "restored_days": o.restored_days, "created_by": o.created_by}
            for o in leave.attendance_overrides
        ],
    }


def serialize_stats(stats: LeaveStats) -> dict:
    data = asdict(stats)
    data["leave_breakdown"] = {t.value: asdict(b) for t, b in stats.leave_breakdown.items()}
    data["last_updated"] = stats.last_updated.isoformat() if stats.last_updated else None
    return data


def register(app: Flask, container: Container) -> None:
    authenticated = login_required(container.users_repo)
    service = container.leave_service
    tz = container.timezone

    @app.route("/api/leaves", methods=["POST"], endpoint="leave_apply")
    @authenticated
    def apply_leave():
        data = json_body()
        leave = service.apply_leave(
            user_id=parse_int(data.get("user_id") or g.user.user_id, "user_id"),
            leave_type=_leave_type(data.get("leave_type")),
            start_date=required_date(data, "start_date"),
            end_date=optional_date(data, "end_date") or required_date(data, "start_date"),
            reason=str(data.get("reason") or ""),
            is_half_day=bool(data.get("is_half_day", False)),
            total_days=parse_float(data["total_days"], "total_days") if data.get("total_days") is not None else None,
            actor=g.actor,
        )
        return jsonify({"success": True, "data": serialize_leave(leave)}), 201

    @app.route("/api/leaves/<int:leave_id>/approve", methods=["POST"], endpoint="leave_approve")
    @authenticated
    def approve_leave(leave_id: int):
        leave = service.approve_leave(leave_id, actor=g.actor)
        return jsonify({"success": True, "data": serialize_leave(leave)})

    @app.route("/api/leaves/<int:leave_id>/reject", methods=["POST"], endpoint="leave_reject")
    @authenticated
    def reject_leave(leave_id: int):
        data = json_body()
        leave = service.reject_leave(leave_id, rejection_reason=str(data.get("rejection_reason") or ""), actor=g.actor)
        return jsonify({"success": True, "data": serialize_leave(leave)})

    @app.route("/api/leaves/<int:leave_id>", methods=["PATCH"], endpoint="leave_edit")
    @authenticated
    def edit_leave(leave_id: int):
        data = json_body()
        leave = service.edit_leave(
            leave_id,
            actor=g.actor,
            leave_type=_leave_type(data["leave_type"]) if data.get("leave_type") else None,
            start_date=optional_date(data, "start_date"),
            end_date=optional_date(data, "end_date"),
            reason=data.get("reason"),
            is_half_day=data.get("is_half_day"),
            total_days=parse_float(data["total_days"], "total_days") if data.get("total_days") is not None else None,
        )
        return jsonify({"success": True, "data": serialize_leave(leave)})

    @app.route("/api/leaves/<int:leave_id>", methods=["DELETE"], endpoint="leave_delete")
    @authenticated
    def delete_leave(leave_id: int):
        service.delete_leave(leave_id, actor=g.actor)
        return jsonify({"success": True, "message": "Leave request deleted"})

    @app.route("/api/leave-stats", methods=["GET"], endpoint="leave_stats")
    @authenticated
    def leave_stats():
        user_id = parse_int(request.args.get("user_id") or g.user.user_id, "user_id")
        if user_id != g.user.user_id:
            require_admin()
        year = parse_int(request.args.get("year") or now_local(tz).year, "year")
        stats = container.leave_ledger.get_stats(user_id, year)
        return jsonify({"success": True, "data": serialize_stats(stats)})

    @app.route("/api/admin/leave-stats/<int:user_id>/recalculate", methods=["POST"], endpoint="leave_stats_recalculate")
    @authenticated
    def recalculate(user_id: int):
        require_admin()
        year = parse_int(json_body().get("year") or now_local(tz).year, "year")
        stats = container.leave_ledger.recalculate(user_id, year)
        return jsonify({"success": True, "data": serialize_stats(stats)})

    @app.route("/api/admin/leave-types/<category>", methods=["PUT"], endpoint="leave_types_update")
    @authenticated
    def update_leave_types(category: str):
        try:
            leave_category = LeaveCategory(category)
        except ValueError:
            raise ValidationError(f"Unknown leave category: {category!r}")
        allowances = {_leave_type(k): parse_int(v, k) for k, v in json_body().items()}
        service.update_leave_type_allowances(leave_category, allowances, actor=g.actor)
        return jsonify({"success": True, "message": "Leave allowances updated; balances are being recalculated"}), 202
