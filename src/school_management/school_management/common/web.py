"""Shared helpers for the JSON controllers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Dict, Optional

from flask import jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import (
    AlreadyComplete,
    AuthorizationError,
    BatchFull,
    DomainError,
    DuplicateAttendance,
    InactiveSubject,
    InvalidAmount,
    InvalidQR,
    LedgerInvariantViolation,
    NoCheckIn,
    NotFound,
    StalePayment,
    ValidationError,
)
from .datetime_utils import parse_optional_date

logger = logging.getLogger(__name__)

ADMIN_ROLES = frozenset({Role.SUPER_ADMIN.value, Role.BRANCH_ADMIN.value})

# Most specific first; the first isinstance match wins.
ERROR_STATUS = (
    (AlreadyComplete, 409),
    (DuplicateAttendance, 409),
    (BatchFull, 409),
    (StalePayment, 409),
    (NotFound, 404),
    (NoCheckIn, 400),
    (InvalidQR, 400),
    (InvalidAmount, 400),
    (InactiveSubject, 400),
    (AuthorizationError, 403),
    (LedgerInvariantViolation, 500),
    (ValidationError, 400),
)


@dataclass(frozen=True)
class Actor:
    """Caller identity as stored in the session by the auth layer."""

    user_id: int
    branch_id: int
    role: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


def status_for(error: DomainError) -> int:
    for cls, status in ERROR_STATUS:
        if isinstance(error, cls):
            return status
    return 400


def error_response(error: DomainError):
    status = status_for(error)
    body: Dict[str, Any] = {"success": False, "message": str(error)}
    existing = getattr(error, "existing", None)
    if existing is not None:
        body["data"] = existing.to_dict()
    if status >= 500:
        logger.error("%s: %s", type(error).__name__, error)
    return jsonify(body), status


def ok(data: Any = None, *, message: Optional[str] = None, status: int = 200):
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return jsonify(body), status


def api_errors(view):
    """Translate domain errors to JSON responses; anything else is a 500."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except DomainError as e:
            return error_response(e)
        except Exception:
            logger.exception("Unhandled error in %s", request.path)
            return jsonify({"success": False, "message": "Internal server error"}), 500

    return wrapper


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session or "branch_id" not in session:
            return jsonify({"success": False, "message": "Please log in to continue"}), 401
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session or "branch_id" not in session:
            return jsonify({"success": False, "message": "Please log in to continue"}), 401
        if session.get("role") not in ADMIN_ROLES:
            return error_response(AuthorizationError("Admin access required"))
        return view(*args, **kwargs)

    return wrapper


def current_actor() -> Actor:
    """Identity of the caller.

    A super admin may act on another branch through ``?branchId=``.
    """

    role = session.get("role")
    branch_id = int(session["branch_id"])
    override = request.args.get("branchId")
    if override and role == Role.SUPER_ADMIN.value:
        branch_id = int_arg("branchId")
    return Actor(user_id=int(session["user_id"]), branch_id=branch_id, role=role)


def json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def date_arg(name: str, source: Optional[Dict[str, Any]] = None):
    raw = (source if source is not None else request.args).get(name)
    try:
        return parse_optional_date(None if raw is None else str(raw))
    except ValueError:
        raise ValidationError(f"{name} must be a date in YYYY-MM-DD format")


def int_arg(name: str, default: Optional[int] = None, source: Optional[Dict[str, Any]] = None) -> Optional[int]:
    raw = (source if source is not None else request.args).get(name)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")
