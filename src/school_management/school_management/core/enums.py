from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Panel roles used for permission checks."""

    SUPER_ADMIN = "SUPER_ADMIN"
    BRANCH_ADMIN = "BRANCH_ADMIN"
    TEACHER = "TEACHER"
    STAFF = "STAFF"
    STUDENT = "STUDENT"


class PersonKind(str, Enum):
    STUDENT = "STUDENT"
    STAFF = "STAFF"
    TEACHER = "TEACHER"


class AttendanceStatus(str, Enum):
    """Attendance status as stored in the database."""

    PRESENT = "Present"
    LATE = "Late"
    ABSENT = "Absent"


class AttendanceMethod(str, Enum):
    QR = "QR"
    FACE = "FACE"
    MANUAL = "MANUAL"


class PaymentMode(str, Enum):
    CASH = "CASH"
    UPI = "UPI"
    ONLINE = "ONLINE"


class SequenceKind(str, Enum):
    """Kinds of human-readable identifiers issued by the sequence generator."""

    STUDENT = "STUDENT"
    STAFF = "STAFF"
    TEACHER = "TEACHER"
    RECEIPT = "RECEIPT"
    CERTIFICATE = "CERTIFICATE"


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CHECK_IN = "CHECK_IN"
    CHECK_OUT = "CHECK_OUT"


ATTENDED_STATUSES = frozenset({AttendanceStatus.PRESENT, AttendanceStatus.LATE})
