"""QR payload parsing and verification.

The payload is produced by an external collaborator as a JSON object
``{"personId": ..., "branchId": ..., "personName": ...}``. Rendering the image
is not handled here.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

from ..core.exceptions import InvalidQR


@dataclass(frozen=True)
class QRPayload:
    person_id: str
    branch_id: str
    person_name: Optional[str] = None


def parse_qr_payload(raw: Any) -> QRPayload:
    if isinstance(raw, dict):
        data = raw
    else:
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            raise InvalidQR("Invalid QR code format")
    if not isinstance(data, dict):
        raise InvalidQR("Invalid QR code format")

    person_id = data.get("personId")
    branch_id = data.get("branchId")
    if person_id in (None, "") or branch_id in (None, ""):
        raise InvalidQR("QR code is missing personId or branchId")

    return QRPayload(
        person_id=str(person_id).strip(),
        branch_id=str(branch_id).strip(),
        person_name=data.get("personName"),
    )


def verify_qr_payload(raw: Any, *, person, branch_id: int) -> QRPayload:
    """Check that the payload names ``person`` in ``branch_id``.

    Either the business ID or the surrogate ID is accepted as ``personId``.
    """

    payload = parse_qr_payload(raw)
    accepted_ids = {str(person.person_id), person.business_id.upper()}
    if payload.person_id.upper() not in accepted_ids or payload.branch_id != str(branch_id):
        raise InvalidQR("Invalid QR code")
    return payload
