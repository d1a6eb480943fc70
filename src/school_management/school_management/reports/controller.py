from __future__ import annotations

from flask import Flask, request

from ..common.validators import require_enum
from ..common.web import api_errors, current_actor, date_arg, login_required, ok
from ..core.enums import PersonKind
from ..container import Container


def _kind_arg(default=None):
    raw = request.args.get("kind")
    if not raw:
        return default
    return require_enum(PersonKind, raw.upper(), "kind")


def register(app: Flask, container: Container) -> None:
    service = container.report_service

    @app.route("/api/reports/statistics/<person_ref>", methods=["GET"], endpoint="reports_statistics")
    @login_required
    @api_errors
    def statistics(person_ref: str):
        actor = current_actor()
        stats = service.person_statistics(
            actor.branch_id, person_ref, start_date=date_arg("start"), end_date=date_arg("end")
        )
        return ok(stats.to_dict())

    @app.route("/api/reports/periods", methods=["GET"], endpoint="reports_periods")
    @login_required
    @api_errors
    def periods():
        actor = current_actor()
        rows = service.period_breakdown(
            actor.branch_id,
            start_date=date_arg("start"),
            end_date=date_arg("end"),
            kind=_kind_arg(PersonKind.STUDENT),
        )
        return ok([r.to_dict() for r in rows])

    @app.route("/api/reports/daily", methods=["GET"], endpoint="reports_daily")
    @login_required
    @api_errors
    def daily():
        actor = current_actor()
        rows = service.daily_trend(
            actor.branch_id,
            start_date=date_arg("start"),
            end_date=date_arg("end"),
            kind=_kind_arg(PersonKind.STUDENT),
        )
        return ok([r.to_dict() for r in rows])

    @app.route("/api/reports/worked-hours", methods=["GET"], endpoint="reports_worked_hours")
    @login_required
    @api_errors
    def worked_hours():
        actor = current_actor()
        report = service.worked_hours(
            actor.branch_id,
            start_date=date_arg("start"),
            end_date=date_arg("end"),
            person_ref=request.args.get("personId") or None,
            kind=_kind_arg(),
        )
        return ok(report.to_dict())
