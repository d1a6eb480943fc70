from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_clock
from ..common.web import admin_required, api_errors, current_actor, date_arg, int_arg, json_body, login_required, ok
from ..common.validators import require_enum
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import AttendanceMethod, PersonKind
from ..core.exceptions import ValidationError
from ..container import Container


def _person_ref(data: dict):
    ref = data.get("personId") or data.get("studentId") or data.get("staffId")
    if ref in (None, ""):
        raise ValidationError("personId is required")
    return ref


def _clock(data: dict, name: str):
    try:
        return parse_clock(data.get(name))
    except ValueError:
        raise ValidationError(f"{name} must be a time in HH:MM format")


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.route("/api/attendance/check-in", methods=["POST"], endpoint="attendance_check_in")
    @login_required
    @api_errors
    def check_in():
        actor = current_actor()
        data = json_body()
        method = require_enum(AttendanceMethod, data.get("method") or AttendanceMethod.MANUAL.value, "method")
        change = service.mark_or_check_in(
            actor.branch_id,
            _person_ref(data),
            work_date=date_arg("date", data),
            period=data.get("period"),
            method=method,
            check_in_time=_clock(data, "checkInTime"),
            qr_payload=data.get("qrData"),
            marked_by=actor.user_id,
            batch_id=int_arg("batchId", source=data),
        )
        return ok(change.to_dict(), message="Attendance marked successfully", status=201 if change.created else 200)

    @app.route("/api/attendance/check-out", methods=["POST"], endpoint="attendance_check_out")
    @login_required
    @api_errors
    def check_out():
        actor = current_actor()
        data = json_body()
        change = service.check_out(
            actor.branch_id,
            _person_ref(data),
            work_date=date_arg("date", data),
            period=data.get("period"),
            check_out_time=_clock(data, "checkOutTime"),
            marked_by=actor.user_id,
        )
        return ok(change.to_dict(), message="Checked out successfully")

    @app.route("/api/attendance/scan", methods=["POST"], endpoint="attendance_scan")
    @login_required
    @api_errors
    def scan():
        actor = current_actor()
        data = json_body()
        if not data.get("qrData"):
            raise ValidationError("qrData is required")
        change = service.scan(actor.branch_id, data["qrData"], marked_by=actor.user_id)
        action = "check-out" if change.record and change.record.is_complete else "check-in"
        return ok({**change.to_dict(), "action": action}, message=f"QR {action} successful")

    @app.route("/api/attendance/mark", methods=["POST"], endpoint="attendance_mark")
    @login_required
    @api_errors
    def mark():
        actor = current_actor()
        data = json_body()
        if not data.get("status"):
            raise ValidationError("status is required")
        method = require_enum(AttendanceMethod, data.get("method") or AttendanceMethod.MANUAL.value, "method")
        change = service.mark_explicit(
            actor.branch_id,
            _person_ref(data),
            status=data["status"],
            work_date=date_arg("date", data),
            period=data.get("period"),
            method=method,
            marked_by=actor.user_id,
        )
        return ok(change.to_dict(), status=201 if change.created else 200)

    @app.route("/api/attendance", methods=["GET"], endpoint="attendance_list")
    @login_required
    @api_errors
    def list_for_date():
        actor = current_actor()
        work_date = date_arg("date")
        if not work_date:
            raise ValidationError("date is required")
        kind = request.args.get("kind")
        kind = require_enum(PersonKind, kind.upper(), "kind") if kind else None
        rows = service.list_for_date(actor.branch_id, work_date, kind=kind)
        return ok([r.to_dict() for r in rows])

    @app.route("/api/attendance/history/<person_ref>", methods=["GET"], endpoint="attendance_history")
    @login_required
    @api_errors
    def history(person_ref: str):
        actor = current_actor()
        rows = service.history(
            actor.branch_id,
            person_ref,
            start_date=date_arg("start"),
            end_date=date_arg("end"),
            limit=int_arg("limit", DEFAULT_HISTORY_LIMIT),
        )
        return ok([r.to_dict() for r in rows])

    @app.route("/api/attendance/today/<person_ref>", methods=["GET"], endpoint="attendance_today")
    @login_required
    @api_errors
    def today(person_ref: str):
        actor = current_actor()
        record = service.today_record(actor.branch_id, person_ref, period=request.args.get("period"))
        return ok(record.to_dict() if record else None)

    @app.route("/api/attendance/<int:attendance_id>", methods=["GET"], endpoint="attendance_get")
    @login_required
    @api_errors
    def get_record(attendance_id: int):
        actor = current_actor()
        return ok(service.get_record(actor.branch_id, attendance_id).to_dict())

    @app.route("/api/attendance/<int:attendance_id>", methods=["PUT"], endpoint="attendance_update")
    @admin_required
    @api_errors
    def update_record(attendance_id: int):
        actor = current_actor()
        data = json_body()
        change = service.update_record(
            actor.branch_id,
            attendance_id,
            status=data.get("status"),
            period=data.get("period"),
            method=data.get("method"),
            updated_by=actor.user_id,
        )
        return ok(change.to_dict(), message="Attendance updated successfully")

    @app.route("/api/attendance/<int:attendance_id>", methods=["DELETE"], endpoint="attendance_delete")
    @admin_required
    @api_errors
    def delete_record(attendance_id: int):
        actor = current_actor()
        change = service.delete_record(actor.branch_id, attendance_id, deleted_by=actor.user_id)
        return ok(change.to_dict(), message="Attendance deleted successfully")
