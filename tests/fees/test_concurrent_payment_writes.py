from decimal import Decimal

import pytest

from src.school_management.school_management.core.exceptions import StalePayment


def interleave(monkeypatch, fees_repo, method, concurrent):
    """Run ``concurrent`` once, right before the first call to ``fees_repo.<method>`` writes."""

    original = getattr(fees_repo, method)
    state = {"done": False}

    def wrapped(**kwargs):
        if not state["done"]:
            state["done"] = True
            concurrent()
        return original(**kwargs)

    monkeypatch.setattr(fees_repo, method, wrapped)


def test_concurrent_identical_amendments_apply_once(fee_service, fees_repo, store, fixed_now, monkeypatch):
    payment = fee_service.record_payment(1, 1, amount=1000, now=fixed_now).payment
    interleave(
        monkeypatch,
        fees_repo,
        "update_payment",
        lambda: fee_service.amend_payment(1, payment.payment_id, amount=500, updated_by=11),
    )

    change = fee_service.amend_payment(1, payment.payment_id, amount=500, updated_by=10)

    stored = fees_repo.payments[payment.payment_id]
    ledger = store.people[1].ledger
    assert stored.net_amount == Decimal("500")
    assert ledger.paid_amount == Decimal("500")
    assert ledger.due_amount == Decimal("4500")
    assert change.ledger == ledger


def test_amendment_recomputes_delta_after_concurrent_change(fee_service, fees_repo, store, fixed_now, monkeypatch):
    payment = fee_service.record_payment(1, 1, amount=1000, now=fixed_now).payment
    interleave(
        monkeypatch,
        fees_repo,
        "update_payment",
        lambda: fee_service.amend_payment(1, payment.payment_id, amount=200),
    )

    fee_service.amend_payment(1, payment.payment_id, amount=700)

    assert fees_repo.payments[payment.payment_id].amount == Decimal("700")
    assert store.people[1].ledger.paid_amount == Decimal("700")
    assert store.people[1].ledger.due_amount == Decimal("4300")


def test_reversal_takes_back_current_net_after_concurrent_amendment(fee_service, fees_repo, store, fixed_now, monkeypatch):
    fee_service.record_payment(1, 1, amount=300, now=fixed_now)
    payment = fee_service.record_payment(1, 1, amount=1000, now=fixed_now).payment
    interleave(
        monkeypatch,
        fees_repo,
        "delete_payment",
        lambda: fee_service.amend_payment(1, payment.payment_id, amount=400),
    )

    fee_service.reverse_payment(1, payment.payment_id)

    assert payment.payment_id not in fees_repo.payments
    assert store.people[1].ledger.paid_amount == Decimal("300")
    assert store.people[1].ledger.due_amount == Decimal("4700")


def test_persistent_conflict_is_reported(fee_service, fees_repo, store, fixed_now, monkeypatch):
    payment = fee_service.record_payment(1, 1, amount=1000, now=fixed_now).payment

    def always_stale(**kwargs):
        raise StalePayment("changed")

    monkeypatch.setattr(fees_repo, "update_payment", always_stale)

    with pytest.raises(StalePayment):
        fee_service.amend_payment(1, payment.payment_id, amount=500)

    assert store.people[1].ledger.paid_amount == Decimal("1000")


def test_fake_storage_rejects_stale_expected_values(fee_service, fees_repo, fixed_now):
    payment = fee_service.record_payment(1, 1, amount=1000, now=fixed_now).payment

    with pytest.raises(StalePayment):
        fees_repo.delete_payment(
            branch_id=1,
            payment_id=payment.payment_id,
            student_id=1,
            expected_amount=Decimal("900"),
            expected_discount=Decimal("0"),
            net=Decimal("900"),
        )
