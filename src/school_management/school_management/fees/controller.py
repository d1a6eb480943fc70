from __future__ import annotations

from flask import Flask, request

from ..common.web import admin_required, api_errors, current_actor, date_arg, int_arg, json_body, login_required, ok
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.fee_service

    @app.route("/api/payments", methods=["POST"], endpoint="payments_create")
    @login_required
    @api_errors
    def create_payment():
        actor = current_actor()
        data = json_body()
        student_ref = data.get("studentId")
        if student_ref in (None, "") or data.get("amount") in (None, ""):
            raise ValidationError("studentId and amount are required")
        payment_mode = data.get("paymentMode") or "CASH"
        if not isinstance(payment_mode, str):
            raise ValidationError("paymentMode must be text")
        change = service.record_payment(
            actor.branch_id,
            student_ref,
            amount=data["amount"],
            discount=data.get("discount") or 0,
            payment_mode=payment_mode.upper(),
            collected_by=actor.user_id,
            description=data.get("description"),
            month=data.get("month"),
            year=int_arg("year", source=data),
        )
        return ok(change.to_dict(), message="Payment recorded successfully", status=201)

    @app.route("/api/payments", methods=["GET"], endpoint="payments_list")
    @login_required
    @api_errors
    def list_payments():
        actor = current_actor()
        rows = service.list_payments(
            actor.branch_id,
            student_ref=request.args.get("studentId") or None,
            start_date=date_arg("start"),
            end_date=date_arg("end"),
            payment_mode=(request.args.get("paymentMode") or "").upper() or None,
            limit=int_arg("limit"),
        )
        return ok([p.to_dict() for p in rows])

    @app.route("/api/payments/<int:payment_id>", methods=["GET"], endpoint="payments_get")
    @login_required
    @api_errors
    def get_payment(payment_id: int):
        actor = current_actor()
        return ok(service.get_payment(actor.branch_id, payment_id).to_dict())

    @app.route("/api/payments/<int:payment_id>", methods=["PUT"], endpoint="payments_update")
    @admin_required
    @api_errors
    def update_payment(payment_id: int):
        actor = current_actor()
        data = json_body()
        change = service.amend_payment(
            actor.branch_id,
            payment_id,
            amount=data.get("amount"),
            discount=data.get("discount"),
            description=data.get("description"),
            updated_by=actor.user_id,
        )
        return ok(change.to_dict(), message="Payment updated successfully")

    @app.route("/api/payments/<int:payment_id>", methods=["DELETE"], endpoint="payments_delete")
    @admin_required
    @api_errors
    def delete_payment(payment_id: int):
        actor = current_actor()
        change = service.reverse_payment(actor.branch_id, payment_id, deleted_by=actor.user_id)
        return ok(change.to_dict(), message="Payment deleted successfully")

    @app.route("/api/students/<student_ref>/fees", methods=["GET"], endpoint="student_fee_status")
    @login_required
    @api_errors
    def fee_status(student_ref: str):
        actor = current_actor()
        return ok(service.fee_status(actor.branch_id, student_ref, today=date_arg("date")).to_dict())

    @app.route("/api/students/<student_ref>/ledger/rebuild", methods=["POST"], endpoint="student_ledger_rebuild")
    @admin_required
    @api_errors
    def rebuild_ledger(student_ref: str):
        actor = current_actor()
        fix = str(request.args.get("fix", "")).lower() in ("1", "true", "yes")
        return ok(service.rebuild_ledger(actor.branch_id, student_ref, fix=fix).to_dict())
