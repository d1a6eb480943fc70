from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

import pytest

from src.school_management.school_management.attendance.model import AttendanceRecord
from src.school_management.school_management.container import wire_services
from src.school_management.school_management.core.enums import (
    AttendanceMethod,
    PersonKind,
    SequenceKind,
)
from src.school_management.school_management.core.exceptions import DuplicateAttendance, LedgerInvariantViolation, StalePayment
from src.school_management.school_management.fees.dues import net_amount
from src.school_management.school_management.fees.model import PaymentRecord
from src.school_management.school_management.people.model import Batch, Branch, LedgerState, Person

FIXED_NOW = datetime(2026, 3, 10, 9, 40, 0)


@dataclass
class Store:
    """Shared rows behind the in-memory repositories."""

    people: Dict[int, Person] = field(default_factory=dict)
    branches: Dict[int, Branch] = field(default_factory=dict)
    batches: Dict[int, Batch] = field(default_factory=dict)
    cutoffs: Dict[int, Dict[str, time]] = field(default_factory=dict)


def student(person_id, business_id, *, branch_id=1, batch_id=1, period="AM", total="5000", active=True):
    total = Decimal(total)
    return Person(
        person_id=person_id,
        branch_id=branch_id,
        business_id=business_id,
        kind=PersonKind.STUDENT,
        full_name=f"Student {person_id}",
        is_active=active,
        batch_id=batch_id,
        period=period,
        admission_date=date(2026, 1, 5),
        monthly_fee=Decimal("500"),
        ledger=LedgerState(total_fees=total, paid_amount=Decimal("0"), due_amount=total),
    )


def seeded_store() -> Store:
    store = Store()
    store.branches[1] = Branch(branch_id=1, code="DHK001", name="Dhaka Main")
    store.branches[2] = Branch(branch_id=2, code="CTG001", name="Chattogram")
    store.batches[1] = Batch(batch_id=1, branch_id=1, name="Morning A", period="AM", max_students=40)
    store.batches[2] = Batch(batch_id=2, branch_id=1, name="Evening B", period="EVENING")
    store.batches[3] = Batch(batch_id=3, branch_id=1, name="Tiny PM", period="PM", max_students=1)

    for p in (
        student(1, "DHK001-2026-001"),
        student(2, "DHK001-2026-002", batch_id=2, period="EVENING", total="6000"),
        student(5, "DHK001-2026-003", active=False),
        student(6, "CTG001-2026-001", branch_id=2),
        student(7, "DHK001-2026-004", batch_id=3, period="PM"),
        student(8, "DHK001-2026-005", batch_id=3, period="PM"),
        Person(person_id=3, branch_id=1, business_id="DHK001-STF-001", kind=PersonKind.STAFF, full_name="Salma"),
        Person(person_id=4, branch_id=1, business_id="DHK001-TCH-001", kind=PersonKind.TEACHER, full_name="Hasan"),
    ):
        store.people[p.person_id] = p
    return store


class FakePersonRepository:
    def __init__(self, store: Store):
        self._store = store

    def get_by_id(self, branch_id, person_id):
        p = self._store.people.get(int(person_id))
        return p if p and p.branch_id == int(branch_id) else None

    def get_by_business_id(self, branch_id, business_id):
        for p in self._store.people.values():
            if p.branch_id == int(branch_id) and p.business_id == business_id:
                return p
        return None

    def list_active(self, branch_id, kind):
        rows = [p for p in self._store.people.values() if p.branch_id == int(branch_id) and p.kind == kind and p.is_active]
        return sorted(rows, key=lambda p: p.business_id)

    def list_business_ids(self, branch_id, kind):
        return [p.business_id for p in self._store.people.values() if p.branch_id == int(branch_id) and p.kind == kind]

    def create_person(self, *, branch_id, business_id, kind, full_name, email, batch_id, period, admission_date, monthly_fee, total_fees):
        person_id = max(self._store.people, default=0) + 1
        ledger = None
        if kind == PersonKind.STUDENT:
            ledger = LedgerState(total_fees=total_fees, paid_amount=Decimal("0"), due_amount=total_fees)
        self._store.people[person_id] = Person(
            person_id=person_id,
            branch_id=int(branch_id),
            business_id=business_id,
            kind=kind,
            full_name=full_name,
            email=email,
            batch_id=batch_id,
            period=period,
            admission_date=admission_date,
            monthly_fee=monthly_fee,
            ledger=ledger,
        )
        return person_id

    def set_active(self, branch_id, person_id, *, is_active):
        p = self.get_by_id(branch_id, person_id)
        if not p:
            return False
        self._store.people[p.person_id] = replace(p, is_active=is_active)
        return True


class FakeBranchRepository:
    def __init__(self, store: Store):
        self._store = store

    def get_branch(self, branch_id):
        return self._store.branches.get(int(branch_id))

    def get_batch(self, branch_id, batch_id):
        b = self._store.batches.get(int(batch_id))
        return b if b and b.branch_id == int(branch_id) else None

    def get_late_cutoffs(self, branch_id):
        return dict(self._store.cutoffs.get(int(branch_id), {}))


class FakeAttendanceRepository:
    """Honors the (branch, person, date, period) unique key like the MySQL table."""

    def __init__(self):
        self.records: Dict[int, AttendanceRecord] = {}
        self._next_id = 1

    @staticmethod
    def _key(r: AttendanceRecord) -> Tuple[int, int, date, str]:
        return (r.branch_id, r.person_id, r.work_date, r.period)

    def _find_key(self, key) -> Optional[AttendanceRecord]:
        for r in self.records.values():
            if self._key(r) == key:
                return r
        return None

    def get_by_id(self, branch_id, attendance_id):
        r = self.records.get(int(attendance_id))
        return r if r and r.branch_id == int(branch_id) else None

    def get_by_key(self, branch_id, person_id, work_date, period):
        return self._find_key((int(branch_id), int(person_id), work_date, period or ""))

    def _create(self, **kwargs) -> int:
        record = AttendanceRecord(attendance_id=self._next_id, **kwargs)
        if self._find_key(self._key(record)):
            raise DuplicateAttendance("Attendance already marked for this date")
        self.records[record.attendance_id] = record
        self._next_id += 1
        return record.attendance_id

    def insert(self, *, branch_id, person_id, person_kind, work_date, period, status, check_in_time, method, marked_by, batch_id=None):
        return self._create(
            branch_id=int(branch_id),
            person_id=int(person_id),
            person_kind=person_kind,
            work_date=work_date,
            period=period or "",
            status=status,
            check_in_time=check_in_time,
            method=method,
            marked_by=marked_by,
            batch_id=batch_id,
        )

    def fill_check_in(self, *, attendance_id, check_in_time, status, method, marked_by):
        r = self.records.get(int(attendance_id))
        if not r or r.check_in_time is not None:
            return False
        self.records[r.attendance_id] = replace(
            r,
            check_in_time=check_in_time,
            status=status,
            method=method,
            marked_by=marked_by if marked_by is not None else r.marked_by,
        )
        return True

    def set_check_out(self, *, attendance_id, check_out_time):
        r = self.records.get(int(attendance_id))
        if not r or r.check_in_time is None or r.check_out_time is not None:
            return False
        self.records[r.attendance_id] = replace(r, check_out_time=check_out_time)
        return True

    def upsert_status(self, *, branch_id, person_id, person_kind, work_date, period, status, method, marked_by, batch_id=None):
        existing = self.get_by_key(branch_id, person_id, work_date, period)
        if existing:
            self.records[existing.attendance_id] = replace(existing, status=status, method=method, marked_by=marked_by)
            return existing.attendance_id
        return self._create(
            branch_id=int(branch_id),
            person_id=int(person_id),
            person_kind=person_kind,
            work_date=work_date,
            period=period or "",
            status=status,
            method=method,
            marked_by=marked_by,
            batch_id=batch_id,
        )

    def update_fields(self, *, branch_id, attendance_id, status, period, method):
        r = self.get_by_id(branch_id, attendance_id)
        if not r:
            return False
        updated = replace(r, status=status, period=period or "", method=method)
        clash = self._find_key(self._key(updated))
        if clash and clash.attendance_id != r.attendance_id:
            raise DuplicateAttendance("Another record already exists for this period")
        self.records[r.attendance_id] = updated
        return True

    def delete(self, branch_id, attendance_id):
        r = self.get_by_id(branch_id, attendance_id)
        if not r:
            return False
        del self.records[r.attendance_id]
        return True

    def list_for_date(self, branch_id, work_date, *, kind=None):
        return self.list_in_range(branch_id, start_date=work_date, end_date=work_date, kind=kind)

    def list_in_range(self, branch_id, *, start_date, end_date, kind=None, person_ids=None, status=None):
        ids = None if person_ids is None else {int(i) for i in person_ids}
        rows = [
            r
            for r in self.records.values()
            if r.branch_id == int(branch_id)
            and start_date <= r.work_date <= end_date
            and (kind is None or r.person_kind == kind)
            and (ids is None or r.person_id in ids)
            and (status is None or r.status == status)
        ]
        rows.sort(key=lambda r: (r.person_id, r.period))
        rows.sort(key=lambda r: r.work_date, reverse=True)
        return rows

    def count_for_batch(self, branch_id, batch_id, work_date, statuses):
        wanted = set(statuses)
        return sum(
            1
            for r in self.records.values()
            if r.branch_id == int(branch_id) and r.batch_id == int(batch_id) and r.work_date == work_date and r.status in wanted
        )


class FakeFeeRepository:
    """Applies ledger deltas with the same guard as the SQL update."""

    def __init__(self, store: Store):
        self._store = store
        self.payments: Dict[int, PaymentRecord] = {}
        self._next_id = 1

    def _student(self, branch_id, student_id) -> Person:
        p = self._store.people.get(int(student_id))
        if not p or p.branch_id != int(branch_id) or p.kind != PersonKind.STUDENT:
            raise LedgerInvariantViolation(f"Ledger update rejected for student #{student_id}")
        return p

    def _apply_delta(self, branch_id, student_id, delta, paid_at=None):
        if delta == 0:
            return
        p = self._student(branch_id, student_id)
        paid = p.ledger.paid_amount + delta
        due = p.ledger.due_amount - delta
        if paid < 0 or due < 0:
            raise LedgerInvariantViolation(f"Ledger update of {delta} rejected for student #{student_id}")
        ledger = replace(p.ledger, paid_amount=paid, due_amount=due, last_payment_date=paid_at or p.ledger.last_payment_date)
        self._store.people[p.person_id] = replace(p, ledger=ledger)

    def get_payment(self, branch_id, payment_id):
        pay = self.payments.get(int(payment_id))
        return pay if pay and pay.branch_id == int(branch_id) else None

    def get_ledger(self, branch_id, student_id):
        p = self._store.people.get(int(student_id))
        if not p or p.branch_id != int(branch_id) or p.kind != PersonKind.STUDENT:
            return None
        return p.ledger

    def insert_payment(self, *, branch_id, student_id, amount, discount, payment_mode, description, receipt_number, month, year, collected_by, created_at):
        self._apply_delta(branch_id, student_id, net_amount(amount, discount), paid_at=created_at)
        payment = PaymentRecord(
            payment_id=self._next_id,
            branch_id=int(branch_id),
            student_id=int(student_id),
            amount=amount,
            discount=discount,
            payment_mode=payment_mode,
            receipt_number=receipt_number,
            month=month,
            year=int(year),
            description=description,
            collected_by=collected_by,
            created_at=created_at,
        )
        self.payments[payment.payment_id] = payment
        self._next_id += 1
        return payment.payment_id

    def _locked(self, branch_id, payment_id, student_id, expected_amount, expected_discount):
        pay = self.get_payment(branch_id, payment_id)
        if not pay or pay.student_id != int(student_id):
            return None
        if pay.amount != expected_amount or pay.discount != expected_discount:
            raise StalePayment(f"Payment #{payment_id} was changed by another request")
        return pay

    def update_payment(self, *, branch_id, payment_id, student_id, expected_amount, expected_discount, amount, discount, description, delta):
        pay = self._locked(branch_id, payment_id, student_id, expected_amount, expected_discount)
        if not pay:
            return False
        self._apply_delta(branch_id, student_id, delta)
        self.payments[pay.payment_id] = replace(pay, amount=amount, discount=discount, description=description)
        return True

    def delete_payment(self, *, branch_id, payment_id, student_id, expected_amount, expected_discount, net):
        pay = self._locked(branch_id, payment_id, student_id, expected_amount, expected_discount)
        if not pay:
            return False
        del self.payments[pay.payment_id]
        p = self._student(branch_id, student_id)
        ledger = replace(
            p.ledger,
            paid_amount=max(Decimal("0"), p.ledger.paid_amount - net),
            due_amount=min(p.ledger.total_fees, p.ledger.due_amount + net),
        )
        self._store.people[p.person_id] = replace(p, ledger=ledger)
        return True

    def list_payments(self, branch_id, *, student_id=None, start_date=None, end_date=None, payment_mode=None, limit=None):
        rows = [
            p
            for p in self.payments.values()
            if p.branch_id == int(branch_id)
            and (student_id is None or p.student_id == int(student_id))
            and (start_date is None or p.created_at.date() >= start_date)
            and (end_date is None or p.created_at.date() <= end_date)
            and (payment_mode is None or p.payment_mode == payment_mode)
        ]
        rows.sort(key=lambda p: (p.created_at, p.payment_id), reverse=True)
        return rows[:limit] if limit is not None else rows

    def sum_net_for_student(self, branch_id, student_id):
        return sum((p.net_amount for p in self.list_payments(branch_id, student_id=student_id)), Decimal("0"))

    def count_paid_months(self, branch_id, student_id):
        return len({(p.month, p.year) for p in self.list_payments(branch_id, student_id=student_id)})

    def overwrite_ledger(self, branch_id, student_id, *, paid_amount, due_amount):
        p = self._student(branch_id, student_id)
        self._store.people[p.person_id] = replace(p, ledger=replace(p.ledger, paid_amount=paid_amount, due_amount=due_amount))
        return True


class FakeSequenceRepository:
    def __init__(self):
        self.counters: Dict[Tuple[str, SequenceKind, str], int] = {}

    def increment(self, *, branch_code, kind, period_key):
        key = (branch_code, kind, period_key)
        self.counters[key] = self.counters.get(key, 0) + 1
        return self.counters[key]

    def ensure_at_least(self, *, branch_code, kind, period_key, value):
        key = (branch_code, kind, period_key)
        self.counters[key] = max(self.counters.get(key, 0), int(value))
        return self.counters[key]


class FakeAuditRepository:
    def __init__(self):
        self.entries: List = []
        self.fail = False

    def insert(self, entry):
        if self.fail:
            raise RuntimeError("audit sink down")
        self.entries.append(entry)


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def store():
    return seeded_store()


@pytest.fixture
def attendance_repo():
    return FakeAttendanceRepository()


@pytest.fixture
def fees_repo(store):
    return FakeFeeRepository(store)


@pytest.fixture
def sequences_repo():
    return FakeSequenceRepository()


@pytest.fixture
def audit_repo():
    return FakeAuditRepository()


@pytest.fixture
def container(store, attendance_repo, fees_repo, sequences_repo, audit_repo):
    return wire_services(
        conn=None,
        people_repo=FakePersonRepository(store),
        branches_repo=FakeBranchRepository(store),
        attendance_repo=attendance_repo,
        fees_repo=fees_repo,
        sequences_repo=sequences_repo,
        audit_repo=audit_repo,
    )


@pytest.fixture
def attendance_service(container):
    return container.attendance_service


@pytest.fixture
def fee_service(container):
    return container.fee_service


@pytest.fixture
def roster_service(container):
    return container.roster_service


@pytest.fixture
def report_service(container):
    return container.report_service


@pytest.fixture
def registry(container):
    return container.identity_registry


@pytest.fixture
def add_record(attendance_repo):
    """Insert a record directly, bypassing the service rules."""

    def _add(person_id, work_date, status, *, period="AM", kind=PersonKind.STUDENT, check_in=None, check_out=None, batch_id=None, branch_id=1):
        attendance_id = attendance_repo.insert(
            branch_id=branch_id,
            person_id=person_id,
            person_kind=kind,
            work_date=work_date,
            period=period,
            status=status,
            check_in_time=check_in,
            method=AttendanceMethod.MANUAL,
            marked_by=99,
            batch_id=batch_id,
        )
        if check_out is not None:
            attendance_repo.set_check_out(attendance_id=attendance_id, check_out_time=check_out)
        return attendance_repo.records[attendance_id]

    return _add

