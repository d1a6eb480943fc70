from __future__ import annotations

from flask import Flask

from ..common.validators import require_enum
from ..common.web import admin_required, api_errors, current_actor, date_arg, int_arg, json_body, login_required, ok
from ..core.enums import PersonKind
from ..core.exceptions import ValidationError
from ..container import Container


def _person_dict(person) -> dict:
    data = {
        **person.summary(),
        "email": person.email,
        "isActive": person.is_active,
        "period": person.period,
        "admissionDate": person.admission_date.isoformat() if person.admission_date else None,
    }
    if person.ledger:
        data["fees"] = person.ledger.to_dict()
    return data


def register(app: Flask, container: Container) -> None:
    registry = container.identity_registry

    @app.route("/api/people/<person_ref>", methods=["GET"], endpoint="people_get")
    @login_required
    @api_errors
    def get_person(person_ref: str):
        actor = current_actor()
        return ok(_person_dict(registry.resolve(actor.branch_id, person_ref)))

    @app.route("/api/people", methods=["POST"], endpoint="people_enroll")
    @admin_required
    @api_errors
    def enroll():
        actor = current_actor()
        data = json_body()
        person = registry.enroll(
            branch_id=actor.branch_id,
            kind=require_enum(PersonKind, str(data.get("kind") or "").upper(), "kind"),
            full_name=data.get("fullName") or "",
            email=data.get("email"),
            batch_id=int_arg("batchId", source=data),
            admission_date=date_arg("admissionDate", data),
            monthly_fee=data.get("monthlyFee") or 0,
            total_fees=data.get("totalFees") or 0,
        )
        return ok(_person_dict(person), message="Enrolled successfully", status=201)

    @app.route("/api/people/<person_ref>/status", methods=["PATCH"], endpoint="people_set_status")
    @admin_required
    @api_errors
    def set_status(person_ref: str):
        actor = current_actor()
        data = json_body()
        is_active = data.get("isActive")
        if not isinstance(is_active, bool):
            raise ValidationError("isActive must be true or false")
        person = registry.set_active(actor.branch_id, person_ref, is_active=is_active)
        return ok(_person_dict(person))
