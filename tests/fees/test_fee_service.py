from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal

import pytest

from src.school_management.school_management.core.enums import AuditAction, PaymentMode
from src.school_management.school_management.core.exceptions import (
    InactiveSubject,
    InvalidAmount,
    LedgerInvariantViolation,
    NotFound,
    ValidationError,
)
from src.school_management.school_management.people.model import LedgerState


def ledger_of(store, person_id):
    return store.people[person_id].ledger


def assert_balanced(store, person_id):
    ledger = ledger_of(store, person_id)
    assert ledger.paid_amount + ledger.due_amount == ledger.total_fees
    assert ledger.paid_amount >= 0 and ledger.due_amount >= 0


def test_payment_then_reversal_restores_ledger(fee_service, fees_repo, store, fixed_now):
    change = fee_service.record_payment(
        1, "DHK001-2026-001", amount=1000, discount=100, payment_mode="CASH", collected_by=10, now=fixed_now
    )

    assert change.ledger.paid_amount == Decimal("900")
    assert change.ledger.due_amount == Decimal("4100")
    assert change.payment.receipt_number == "DHK001-202603-0001"
    assert change.payment.month == "March"
    assert change.payment.year == 2026
    assert change.payment.net_amount == Decimal("900")

    reversed_ = fee_service.reverse_payment(1, change.payment.payment_id, deleted_by=10)

    assert reversed_.ledger.paid_amount == Decimal("0")
    assert reversed_.ledger.due_amount == Decimal("5000")
    assert reversed_.old_data["receiptNumber"] == "DHK001-202603-0001"
    assert fees_repo.payments == {}


def test_receipt_numbers_are_sequential_per_branch_and_month(fee_service, fixed_now):
    first = fee_service.record_payment(1, 1, amount=100, now=fixed_now)
    second = fee_service.record_payment(1, 2, amount=100, now=fixed_now)
    next_month = fee_service.record_payment(1, 1, amount=100, now=fixed_now + timedelta(days=30))
    other_branch = fee_service.record_payment(2, 6, amount=100, now=fixed_now)

    assert first.payment.receipt_number == "DHK001-202603-0001"
    assert second.payment.receipt_number == "DHK001-202603-0002"
    assert next_month.payment.receipt_number == "DHK001-202604-0001"
    assert other_branch.payment.receipt_number == "CTG001-202603-0001"


@pytest.mark.parametrize(
    "amount, discount",
    [(0, 0), (-50, 0), ("abc", 0), (100, -1)],
)
def test_invalid_amounts_are_rejected(fee_service, fees_repo, store, fixed_now, amount, discount):
    with pytest.raises(InvalidAmount):
        fee_service.record_payment(1, 1, amount=amount, discount=discount, now=fixed_now)
    assert fees_repo.payments == {}
    assert ledger_of(store, 1).paid_amount == Decimal("0")


def test_unknown_payment_mode_is_rejected(fee_service, fixed_now):
    with pytest.raises(ValidationError):
        fee_service.record_payment(1, 1, amount=100, payment_mode="CHEQUE", now=fixed_now)


def test_overpayment_is_rejected(fee_service, fees_repo, store, fixed_now):
    with pytest.raises(InvalidAmount):
        fee_service.record_payment(1, 1, amount=5001, now=fixed_now)

    assert fees_repo.payments == {}
    assert_balanced(store, 1)


def test_full_discount_records_payment_without_ledger_change(fee_service, store, fixed_now):
    change = fee_service.record_payment(1, 1, amount=100, discount=150, now=fixed_now)

    assert change.payment.net_amount == Decimal("0")
    assert ledger_of(store, 1).paid_amount == Decimal("0")


def test_only_active_students_can_pay(fee_service, fixed_now):
    with pytest.raises(InactiveSubject):
        fee_service.record_payment(1, 5, amount=100, now=fixed_now)
    with pytest.raises(NotFound):
        fee_service.record_payment(1, "DHK001-STF-001", amount=100, now=fixed_now)
    with pytest.raises(NotFound):
        fee_service.record_payment(1, "CTG001-2026-001", amount=100, now=fixed_now)


def test_amendment_moves_ledger_by_delta_only(fee_service, fees_repo, store, audit_repo, fixed_now):
    first = fee_service.record_payment(1, 1, amount=1000, discount=100, now=fixed_now)
    second = fee_service.record_payment(1, 1, amount=500, now=fixed_now)

    change = fee_service.amend_payment(1, first.payment.payment_id, amount=1500, updated_by=10)

    assert change.ledger.paid_amount == Decimal("1900")
    assert change.ledger.due_amount == Decimal("3100")
    assert change.old_data["amount"] == "1000.00"
    assert change.new_data["amount"] == "1500.00"
    assert fees_repo.payments[second.payment.payment_id] == second.payment
    assert audit_repo.entries[-1].action == AuditAction.UPDATE


def test_amending_discount_down_and_description(fee_service, store, fixed_now):
    payment = fee_service.record_payment(1, 1, amount=1000, discount=100, now=fixed_now).payment

    fee_service.amend_payment(1, payment.payment_id, discount=0)
    change = fee_service.amend_payment(1, payment.payment_id, description="  March tuition ")

    assert change.payment.description == "March tuition"
    assert change.ledger.paid_amount == Decimal("1000")
    assert_balanced(store, 1)


def test_amendment_cannot_exceed_due(fee_service, store, fixed_now):
    payment = fee_service.record_payment(1, 1, amount=4000, now=fixed_now).payment

    with pytest.raises(InvalidAmount):
        fee_service.amend_payment(1, payment.payment_id, amount=6000)
    assert ledger_of(store, 1).paid_amount == Decimal("4000")


def test_unknown_payment_is_not_found(fee_service):
    with pytest.raises(NotFound):
        fee_service.amend_payment(1, 999, amount=10)
    with pytest.raises(NotFound):
        fee_service.reverse_payment(1, 999)


def test_reversal_is_exact(fee_service, store, fixed_now):
    a = fee_service.record_payment(1, 1, amount=700, discount=50, now=fixed_now)
    fee_service.record_payment(1, 1, amount=300, now=fixed_now)

    fee_service.reverse_payment(1, a.payment.payment_id)

    assert ledger_of(store, 1).paid_amount == Decimal("300")
    assert ledger_of(store, 1).due_amount == Decimal("4700")


def test_ledger_stays_balanced_across_operations(fee_service, store, fixed_now):
    p1 = fee_service.record_payment(1, 1, amount=1200, discount=200, now=fixed_now).payment
    assert_balanced(store, 1)
    p2 = fee_service.record_payment(1, 1, amount=800, now=fixed_now).payment
    assert_balanced(store, 1)
    fee_service.amend_payment(1, p1.payment_id, amount=900, discount=0)
    assert_balanced(store, 1)
    fee_service.reverse_payment(1, p2.payment_id)
    assert_balanced(store, 1)
    fee_service.reverse_payment(1, p1.payment_id)
    assert ledger_of(store, 1) == LedgerState(
        total_fees=Decimal("5000"),
        paid_amount=Decimal("0"),
        due_amount=Decimal("5000"),
        last_payment_date=fixed_now,
    )


def test_storage_guard_rejects_stale_precheck(fee_service, fees_repo, store, fixed_now, monkeypatch):
    fee_service.record_payment(1, 1, amount=4800, now=fixed_now)
    stale = LedgerState(total_fees=Decimal("5000"), paid_amount=Decimal("0"), due_amount=Decimal("5000"))
    monkeypatch.setattr(fees_repo, "get_ledger", lambda branch_id, student_id: stale)

    with pytest.raises(LedgerInvariantViolation):
        fee_service.record_payment(1, 1, amount=500, now=fixed_now)

    assert len(fees_repo.payments) == 1
    assert store.people[1].ledger.paid_amount == Decimal("4800")


def test_reversal_clamps_drifted_ledger(fee_service, store, fixed_now):
    payment = fee_service.record_payment(1, 1, amount=1000, now=fixed_now).payment
    person = store.people[1]
    store.people[1] = replace(person, ledger=replace(person.ledger, paid_amount=Decimal("400"), due_amount=Decimal("4600")))

    change = fee_service.reverse_payment(1, payment.payment_id)

    assert change.ledger.paid_amount == Decimal("0")
    assert change.ledger.due_amount == Decimal("5000")


def test_fee_status_reports_expected_and_next_due(fee_service, fixed_now):
    fee_service.record_payment(1, 1, amount=1000, discount=100, now=fixed_now)

    status = fee_service.fee_status(1, "DHK001-2026-001", today=date(2026, 3, 10))

    assert status.expected_due == Decimal("600")
    assert status.next_due_date == date(2026, 4, 5)
    assert status.next_due_amount == Decimal("500")
    assert [p.receipt_number for p in status.recent_payments] == ["DHK001-202603-0001"]
    assert status.to_dict()["fees"]["dueAmount"] == "4100.00"


def test_list_payments_filters(fee_service, fixed_now):
    fee_service.record_payment(1, 1, amount=100, payment_mode=PaymentMode.UPI, now=fixed_now)
    fee_service.record_payment(1, 2, amount=200, payment_mode="CASH", now=fixed_now)
    fee_service.record_payment(1, 1, amount=300, payment_mode="CASH", now=fixed_now + timedelta(days=1))

    assert [p.amount for p in fee_service.list_payments(1, student_ref=1)] == [Decimal("300"), Decimal("100")]
    assert [p.student_id for p in fee_service.list_payments(1, payment_mode="UPI")] == [1]
    assert len(fee_service.list_payments(1, start_date=date(2026, 3, 11))) == 1
    with pytest.raises(ValidationError):
        fee_service.list_payments(1, start_date=date(2026, 3, 11), end_date=date(2026, 3, 1))


def test_rebuild_ledger_reports_and_fixes_drift(fee_service, store, fixed_now):
    fee_service.record_payment(1, 1, amount=1000, discount=100, now=fixed_now)
    assert fee_service.rebuild_ledger(1, 1).is_consistent

    person = store.people[1]
    store.people[1] = replace(person, ledger=replace(person.ledger, paid_amount=Decimal("0"), due_amount=Decimal("5000")))

    report = fee_service.rebuild_ledger(1, 1)
    assert report.drift == Decimal("-900")
    assert report.fixed is False
    assert store.people[1].ledger.paid_amount == Decimal("0")

    fixed = fee_service.rebuild_ledger(1, 1, fix=True)
    assert fixed.fixed is True
    assert fixed.is_consistent
    assert store.people[1].ledger.paid_amount == Decimal("900")
    assert store.people[1].ledger.due_amount == Decimal("4100")
