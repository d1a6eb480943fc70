from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceMethod, AttendanceStatus, PersonKind


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one presence record per (branch, person, date, period)."""

    attendance_id: int
    branch_id: int
    person_id: int
    person_kind: PersonKind
    work_date: date
    period: str
    status: AttendanceStatus
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    method: AttendanceMethod = AttendanceMethod.MANUAL
    marked_by: Optional[int] = None
    batch_id: Optional[int] = None

    @property
    def is_checked_in(self) -> bool:
        return self.check_in_time is not None

    @property
    def is_complete(self) -> bool:
        return self.check_out_time is not None

    def to_dict(self) -> dict:
        return {
            "attendanceId": self.attendance_id,
            "branchId": self.branch_id,
            "personId": self.person_id,
            "personKind": self.person_kind.value,
            "date": self.work_date.isoformat(),
            "period": self.period,
            "status": self.status.value,
            "checkIn": self.check_in_time.isoformat() if self.check_in_time else None,
            "checkOut": self.check_out_time.isoformat() if self.check_out_time else None,
            "method": self.method.value,
            "markedBy": self.marked_by,
            "batchId": self.batch_id,
        }


@dataclass(frozen=True)
class AttendanceChange:
    """Result of a mutating attendance operation, with audit context."""

    record: Optional[AttendanceRecord]
    old_data: Optional[dict]
    new_data: Optional[dict]
    created: bool = False
    note: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "record": self.record.to_dict() if self.record else None,
            "oldData": self.old_data,
            "newData": self.new_data,
            "created": self.created,
            "note": self.note,
        }
