from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import AttendanceMethod, AttendanceStatus, PersonKind
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    """Attendance storage.

    Implementations must enforce uniqueness of
    ``(branch_id, person_id, work_date, period)`` in storage and raise
    ``DuplicateAttendance`` when an insert collides with an existing row.
    """

    def get_by_id(self, branch_id: int, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_by_key(self, branch_id: int, person_id: int, work_date: date, period: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def insert(
        self,
        *,
        branch_id: int,
        person_id: int,
        person_kind: PersonKind,
        work_date: date,
        period: str,
        status: AttendanceStatus,
        check_in_time: Optional[datetime],
        method: AttendanceMethod,
        marked_by: Optional[int],
        batch_id: Optional[int] = None,
    ) -> int:
        raise NotImplementedError

    def fill_check_in(
        self,
        *,
        attendance_id: int,
        check_in_time: datetime,
        status: AttendanceStatus,
        method: AttendanceMethod,
        marked_by: Optional[int],
    ) -> bool:
        """Set check-in only if the row has none yet (compare-and-set)."""

        raise NotImplementedError

    def set_check_out(self, *, attendance_id: int, check_out_time: datetime) -> bool:
        """Set check-out only on a checked-in, not yet checked-out row."""

        raise NotImplementedError

    def upsert_status(
        self,
        *,
        branch_id: int,
        person_id: int,
        person_kind: PersonKind,
        work_date: date,
        period: str,
        status: AttendanceStatus,
        method: AttendanceMethod,
        marked_by: Optional[int],
        batch_id: Optional[int] = None,
    ) -> int:
        """Insert or overwrite status/method/marked_by for the key; returns the row id."""

        raise NotImplementedError

    def update_fields(
        self,
        *,
        branch_id: int,
        attendance_id: int,
        status: AttendanceStatus,
        period: str,
        method: AttendanceMethod,
    ) -> bool:
        raise NotImplementedError

    def delete(self, branch_id: int, attendance_id: int) -> bool:
        raise NotImplementedError

    def list_for_date(
        self,
        branch_id: int,
        work_date: date,
        *,
        kind: Optional[PersonKind] = None,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_in_range(
        self,
        branch_id: int,
        *,
        start_date: date,
        end_date: date,
        kind: Optional[PersonKind] = None,
        person_ids: Optional[Iterable[int]] = None,
        status: Optional[AttendanceStatus] = None,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def count_for_batch(
        self,
        branch_id: int,
        batch_id: int,
        work_date: date,
        statuses: Iterable[AttendanceStatus],
    ) -> int:
        raise NotImplementedError
