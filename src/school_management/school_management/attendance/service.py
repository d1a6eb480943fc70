from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

from ..audit.service import AuditService
from ..common.datetime_utils import at_date, now_local
from ..common.qr import parse_qr_payload, verify_qr_payload
from ..common.validators import require_enum
from ..core.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_LATE_CUTOFFS, DEFAULT_STAFF_PERIOD
from ..core.enums import ATTENDED_STATUSES, AttendanceMethod, AttendanceStatus, AuditAction, PersonKind
from ..core.exceptions import (
    AlreadyComplete,
    BatchFull,
    DuplicateAttendance,
    NoCheckIn,
    NotFound,
    ValidationError,
)
from ..people.model import Person
from ..people.service import IdentityRegistry, PersonRef
from .factory import AttendanceStrategyFactory
from .model import AttendanceChange, AttendanceRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

Clock = Union[datetime, time, None]


class AttendanceService:
    """Attendance ledger: one record per (branch, person, date, period).

    State per key: nothing -> checked in (Present/Late) -> checked out.
    Rows created by an explicit mark (e.g. Absent) may still be checked in.
    """

    MODULE = "attendance"

    def __init__(
        self,
        attendance: AttendanceRepository,
        registry: IdentityRegistry,
        audit: Optional[AuditService] = None,
        *,
        strategy_factory: Optional[AttendanceStrategyFactory] = None,
        late_cutoffs: Optional[Mapping[str, time]] = None,
        staff_period: str = DEFAULT_STAFF_PERIOD,
    ):
        self._attendance = attendance
        self._registry = registry
        self._audit = audit or AuditService()
        self._factory = strategy_factory or AttendanceStrategyFactory(
            cutoffs=dict(late_cutoffs or DEFAULT_LATE_CUTOFFS)
        )
        self._staff_period = (staff_period or DEFAULT_STAFF_PERIOD).strip().upper()

    # ---- helpers ----

    def _periods(self, person: Person, period: Optional[str]) -> Tuple[str, str]:
        """Return (storage period, period used for late classification)."""
        if person.is_student:
            p = (period or person.period or "").strip().upper()
            return p, p
        return "", (period or self._staff_period).strip().upper()

    def _factory_for(self, branch_id: int) -> AttendanceStrategyFactory:
        return self._factory.with_overrides(self._registry.late_cutoffs(branch_id))

    def _check_batch_capacity(self, branch_id: int, person: Person, work_date: date) -> None:
        if not person.is_student or person.batch_id is None:
            return
        batch = self._registry.get_batch(branch_id, person.batch_id)
        if not batch.max_students:
            return
        taken = self._attendance.count_for_batch(branch_id, batch.batch_id, work_date, ATTENDED_STATUSES)
        if taken >= batch.max_students:
            raise BatchFull(f"Batch {batch.name} is full ({batch.max_students} students) for {work_date.isoformat()}")

    def _require_record(self, branch_id: int, attendance_id: int) -> AttendanceRecord:
        record = self._attendance.get_by_id(int(branch_id), int(attendance_id))
        if not record:
            raise NotFound("Attendance record not found")
        return record

    # ---- commands ----

    def mark_or_check_in(
        self,
        branch_id: int,
        person_ref: PersonRef,
        *,
        work_date: Optional[date] = None,
        period: Optional[str] = None,
        method: AttendanceMethod = AttendanceMethod.MANUAL,
        check_in_time: Clock = None,
        qr_payload: Any = None,
        marked_by: Optional[int] = None,
        batch_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceChange:
        now = now or now_local()
        work_date = work_date or now.date()
        branch_id = int(branch_id)

        person = self._registry.resolve_active(branch_id, person_ref)
        if batch_id is not None and person.is_student and person.batch_id != int(batch_id):
            raise ValidationError("Student does not belong to this batch")
        if qr_payload is not None:
            verify_qr_payload(qr_payload, person=person, branch_id=branch_id)

        key_period, rule_period = self._periods(person, period)
        existing = self._attendance.get_by_key(branch_id, person.person_id, work_date, key_period)
        if existing and existing.is_complete:
            raise AlreadyComplete("Attendance already completed for today", existing=existing)
        if existing and existing.is_checked_in:
            raise DuplicateAttendance("Attendance already marked for this date", existing=existing)

        if not existing or existing.status not in ATTENDED_STATUSES:
            self._check_batch_capacity(branch_id, person, work_date)

        check_in = at_date(work_date, check_in_time) or now
        factory = self._factory_for(branch_id)
        strategy = factory.for_checkin(period=rule_period, check_in=check_in)
        decision = strategy.decide_checkin(check_in=check_in, period=rule_period, cutoff=factory.cutoff_for(rule_period))

        if existing:
            filled = self._attendance.fill_check_in(
                attendance_id=existing.attendance_id,
                check_in_time=check_in,
                status=decision.status,
                method=method,
                marked_by=marked_by,
            )
            if not filled:
                current = self._attendance.get_by_key(branch_id, person.person_id, work_date, key_period)
                raise DuplicateAttendance("Attendance already marked for this date", existing=current)
            attendance_id = existing.attendance_id
        else:
            try:
                attendance_id = self._attendance.insert(
                    branch_id=branch_id,
                    person_id=person.person_id,
                    person_kind=person.kind,
                    work_date=work_date,
                    period=key_period,
                    status=decision.status,
                    check_in_time=check_in,
                    method=method,
                    marked_by=marked_by,
                    batch_id=person.batch_id if person.is_student else None,
                )
            except DuplicateAttendance as e:
                current = self._attendance.get_by_key(branch_id, person.person_id, work_date, key_period)
                logger.warning("Concurrent check-in lost for %s on %s", person.business_id, work_date)
                raise DuplicateAttendance(str(e), existing=current) from e

        record = self._require_record(branch_id, attendance_id)
        old_data = existing.to_dict() if existing else None
        self._audit.log(
            branch_id=branch_id,
            user_id=marked_by,
            action=AuditAction.CHECK_IN,
            module=self.MODULE,
            entity_id=record.attendance_id,
            old_data=old_data,
            new_data=record.to_dict(),
        )
        logger.info(
            "Check-in %s %s on %s %s: %s%s",
            person.kind.value,
            person.business_id,
            work_date,
            key_period or "-",
            record.status.value,
            f" ({decision.note})" if decision.note else "",
        )
        return AttendanceChange(
            record=record,
            old_data=old_data,
            new_data=record.to_dict(),
            created=existing is None,
            note=decision.note,
        )

    def check_out(
        self,
        branch_id: int,
        person_ref: PersonRef,
        *,
        work_date: Optional[date] = None,
        period: Optional[str] = None,
        check_out_time: Clock = None,
        marked_by: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceChange:
        now = now or now_local()
        work_date = work_date or now.date()
        branch_id = int(branch_id)

        person = self._registry.resolve_active(branch_id, person_ref)
        key_period, _ = self._periods(person, period)

        record = self._attendance.get_by_key(branch_id, person.person_id, work_date, key_period)
        if not record or not record.is_checked_in:
            raise NoCheckIn("No check-in found for today")
        if record.is_complete:
            raise AlreadyComplete("Already checked out today", existing=record)

        check_out = at_date(work_date, check_out_time) or now
        if check_out < record.check_in_time:
            raise ValidationError("Check-out time cannot be before check-in time")

        if not self._attendance.set_check_out(attendance_id=record.attendance_id, check_out_time=check_out):
            current = self._attendance.get_by_id(branch_id, record.attendance_id)
            if current and current.is_complete:
                raise AlreadyComplete("Already checked out today", existing=current)
            raise NoCheckIn("No check-in found for today")

        updated = self._require_record(branch_id, record.attendance_id)
        self._audit.log(
            branch_id=branch_id,
            user_id=marked_by,
            action=AuditAction.CHECK_OUT,
            module=self.MODULE,
            entity_id=updated.attendance_id,
            old_data=record.to_dict(),
            new_data=updated.to_dict(),
        )
        logger.info("Check-out %s %s on %s", person.kind.value, person.business_id, work_date)
        return AttendanceChange(record=updated, old_data=record.to_dict(), new_data=updated.to_dict())

    def scan(
        self,
        branch_id: int,
        qr_payload: Any,
        *,
        marked_by: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceChange:
        """QR self-attendance.

        Students are checked in. For staff and teachers the first scan of the
        day checks in and the second one checks out.
        """

        now = now or now_local()
        payload = parse_qr_payload(qr_payload)
        person = self._registry.resolve_active(branch_id, payload.person_id)

        if not person.is_student:
            key_period, _ = self._periods(person, None)
            record = self._attendance.get_by_key(int(branch_id), person.person_id, now.date(), key_period)
            if record and record.is_checked_in and not record.is_complete:
                verify_qr_payload(qr_payload, person=person, branch_id=int(branch_id))
                return self.check_out(branch_id, person.person_id, marked_by=marked_by, now=now)

        return self.mark_or_check_in(
            branch_id,
            person.person_id,
            method=AttendanceMethod.QR,
            qr_payload=qr_payload,
            marked_by=marked_by,
            now=now,
        )

    def mark_explicit(
        self,
        branch_id: int,
        person_ref: PersonRef,
        *,
        status: Union[AttendanceStatus, str],
        work_date: Optional[date] = None,
        period: Optional[str] = None,
        method: AttendanceMethod = AttendanceMethod.MANUAL,
        marked_by: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceChange:
        """Administrative upsert of the status for the key."""

        now = now or now_local()
        work_date = work_date or now.date()
        branch_id = int(branch_id)
        status = require_enum(AttendanceStatus, status, "Status")

        person = self._registry.resolve_active(branch_id, person_ref)
        key_period, _ = self._periods(person, period)

        existing = self._attendance.get_by_key(branch_id, person.person_id, work_date, key_period)
        if person.is_student and status in ATTENDED_STATUSES and (
            not existing or existing.status not in ATTENDED_STATUSES
        ):
            self._check_batch_capacity(branch_id, person, work_date)

        decision = self._factory.for_explicit(status).decide_checkin(check_in=None, period=key_period, cutoff=None)
        attendance_id = self._attendance.upsert_status(
            branch_id=branch_id,
            person_id=person.person_id,
            person_kind=person.kind,
            work_date=work_date,
            period=key_period,
            status=decision.status,
            method=method,
            marked_by=marked_by,
            batch_id=person.batch_id if person.is_student else None,
        )

        record = self._require_record(branch_id, attendance_id)
        old_data = existing.to_dict() if existing else None
        self._audit.log(
            branch_id=branch_id,
            user_id=marked_by,
            action=AuditAction.UPDATE if existing else AuditAction.CREATE,
            module=self.MODULE,
            entity_id=record.attendance_id,
            old_data=old_data,
            new_data=record.to_dict(),
        )
        logger.info("Marked %s %s %s on %s", person.kind.value, person.business_id, record.status.value, work_date)
        return AttendanceChange(record=record, old_data=old_data, new_data=record.to_dict(), created=existing is None)

    def update_record(
        self,
        branch_id: int,
        attendance_id: int,
        *,
        status: Union[AttendanceStatus, str, None] = None,
        period: Optional[str] = None,
        method: Union[AttendanceMethod, str, None] = None,
        updated_by: Optional[int] = None,
    ) -> AttendanceChange:
        branch_id = int(branch_id)
        old = self._require_record(branch_id, attendance_id)

        new_status = require_enum(AttendanceStatus, status, "Status") if status is not None else old.status
        new_method = require_enum(AttendanceMethod, method, "Method") if method is not None else old.method
        new_period = old.period
        if period is not None:
            if not isinstance(period, str):
                raise ValidationError("Period must be text")
            if old.person_kind != PersonKind.STUDENT and period.strip():
                raise ValidationError("Period applies to student attendance only")
            new_period = period.strip().upper()

        try:
            updated = self._attendance.update_fields(
                branch_id=branch_id,
                attendance_id=old.attendance_id,
                status=new_status,
                period=new_period,
                method=new_method,
            )
        except DuplicateAttendance as e:
            current = self._attendance.get_by_key(branch_id, old.person_id, old.work_date, new_period)
            raise DuplicateAttendance(str(e), existing=current) from e
        if not updated:
            raise NotFound("Attendance record not found")

        record = self._require_record(branch_id, old.attendance_id)
        self._audit.log(
            branch_id=branch_id,
            user_id=updated_by,
            action=AuditAction.UPDATE,
            module=self.MODULE,
            entity_id=record.attendance_id,
            old_data=old.to_dict(),
            new_data=record.to_dict(),
        )
        logger.info("Updated attendance #%s", record.attendance_id)
        return AttendanceChange(record=record, old_data=old.to_dict(), new_data=record.to_dict())

    def delete_record(
        self,
        branch_id: int,
        attendance_id: int,
        *,
        deleted_by: Optional[int] = None,
    ) -> AttendanceChange:
        branch_id = int(branch_id)
        old = self._require_record(branch_id, attendance_id)
        if not self._attendance.delete(branch_id, old.attendance_id):
            raise NotFound("Attendance record not found")

        self._audit.log(
            branch_id=branch_id,
            user_id=deleted_by,
            action=AuditAction.DELETE,
            module=self.MODULE,
            entity_id=old.attendance_id,
            old_data=old.to_dict(),
        )
        logger.info("Deleted attendance #%s", old.attendance_id)
        return AttendanceChange(record=None, old_data=old.to_dict(), new_data=None)

    # ---- queries ----

    def get_record(self, branch_id: int, attendance_id: int) -> AttendanceRecord:
        return self._require_record(branch_id, attendance_id)

    def today_record(
        self,
        branch_id: int,
        person_ref: PersonRef,
        *,
        period: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Optional[AttendanceRecord]:
        now = now or now_local()
        person = self._registry.resolve(branch_id, person_ref)
        key_period, _ = self._periods(person, period)
        return self._attendance.get_by_key(int(branch_id), person.person_id, now.date(), key_period)

    def history(
        self,
        branch_id: int,
        person_ref: PersonRef,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
        now: Optional[datetime] = None,
    ) -> Sequence[AttendanceRecord]:
        """Most recent records of one person, newest first."""

        now = now or now_local()
        end_date = end_date or now.date()
        start_date = start_date or (end_date - timedelta(days=365))
        if start_date > end_date:
            raise ValidationError("Start date must not be after end date")

        person = self._registry.resolve(branch_id, person_ref)
        rows = self._attendance.list_in_range(
            int(branch_id),
            start_date=start_date,
            end_date=end_date,
            person_ids=[person.person_id],
        )
        return list(rows)[: max(0, int(limit))]

    def list_for_date(
        self,
        branch_id: int,
        work_date: date,
        *,
        kind: Optional[PersonKind] = None,
    ) -> Sequence[AttendanceRecord]:
        return self._attendance.list_for_date(int(branch_id), work_date, kind=kind)
