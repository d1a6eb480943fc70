from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import now_local
from ..common.validators import require_enum
from ..common.web import api_errors, current_actor, date_arg, int_arg, login_required, ok
from ..core.enums import PersonKind
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.roster_service

    @app.route("/api/roster/absentees", methods=["GET"], endpoint="roster_absentees")
    @login_required
    @api_errors
    def absentees():
        actor = current_actor()
        kind = require_enum(PersonKind, (request.args.get("kind") or "STUDENT").upper(), "kind")
        roster = service.compute_absentees(
            actor.branch_id,
            date_arg("date") or now_local().date(),
            kind,
            batch_id=int_arg("batchId"),
        )
        return ok(roster.to_dict())

    @app.route("/api/roster/consecutive-absentees", methods=["GET"], endpoint="roster_consecutive_absentees")
    @login_required
    @api_errors
    def consecutive_absentees():
        actor = current_actor()
        rows = service.consecutive_absentees(
            actor.branch_id,
            date_arg("date") or now_local().date(),
            int_arg("days", 3),
        )
        return ok([r.to_dict() for r in rows])
