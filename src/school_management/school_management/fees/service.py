from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Optional, Sequence, Union

from ..audit.service import AuditService
from ..common.datetime_utils import now_local
from ..common.validators import optional_money, require_enum, to_money
from ..core.constants import PAYMENT_WRITE_ATTEMPTS, RECENT_PAYMENTS_LIMIT
from ..core.enums import AuditAction, PaymentMode, PersonKind, SequenceKind
from ..core.exceptions import InvalidAmount, NotFound, StalePayment, ValidationError
from ..people.model import LedgerState, Person
from ..people.service import IdentityRegistry, PersonRef
from ..sequences.service import SequenceService
from .dues import ZERO, expected_due, net_amount, next_due
from .model import FeeStatus, LedgerReconciliation, PaymentChange, PaymentRecord
from .repository import FeeRepository

logger = logging.getLogger(__name__)


class FeeService:
    """Student fee ledger.

    Keeps ``paid + due == total`` across payment create, amend and reverse.
    """

    MODULE = "payments"

    def __init__(
        self,
        fees: FeeRepository,
        registry: IdentityRegistry,
        sequences: SequenceService,
        audit: Optional[AuditService] = None,
    ):
        self._fees = fees
        self._registry = registry
        self._sequences = sequences
        self._audit = audit or AuditService()

    def _ledger(self, branch_id: int, student_id: int) -> LedgerState:
        ledger = self._fees.get_ledger(int(branch_id), int(student_id))
        if ledger is None:
            raise NotFound("Student not found")
        return ledger

    def _require_payment(self, branch_id: int, payment_id: int) -> PaymentRecord:
        payment = self._fees.get_payment(int(branch_id), int(payment_id))
        if not payment:
            raise NotFound("Payment not found")
        return payment

    def record_payment(
        self,
        branch_id: int,
        student_ref: PersonRef,
        *,
        amount: Any,
        discount: Any = 0,
        payment_mode: Union[PaymentMode, str] = PaymentMode.CASH,
        collected_by: Optional[int] = None,
        description: Optional[str] = None,
        month: Optional[str] = None,
        year: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> PaymentChange:
        now = now or now_local()
        branch_id = int(branch_id)

        amount = to_money(amount, "Amount")
        discount = optional_money(discount, "Discount") or ZERO
        if amount <= 0:
            raise InvalidAmount("Amount must be greater than 0")
        if discount < 0:
            raise InvalidAmount("Discount cannot be negative")
        mode = require_enum(PaymentMode, payment_mode, "Payment mode")

        student = self._registry.resolve_active(branch_id, student_ref, kind=PersonKind.STUDENT)
        net = net_amount(amount, discount)
        ledger = self._ledger(branch_id, student.person_id)
        if net > ledger.due_amount:
            raise InvalidAmount(f"Payment of {net} exceeds due amount {ledger.due_amount}")

        branch = self._registry.get_branch(branch_id)
        receipt = self._sequences.next_id(branch.code, SequenceKind.RECEIPT, now=now)

        payment_id = self._fees.insert_payment(
            branch_id=branch_id,
            student_id=student.person_id,
            amount=amount,
            discount=discount,
            payment_mode=mode,
            description=(description or "").strip() or None,
            receipt_number=receipt,
            month=(month or now.strftime("%B")).strip(),
            year=int(year or now.year),
            collected_by=collected_by,
            created_at=now,
        )

        payment = self._require_payment(branch_id, payment_id)
        after = self._ledger(branch_id, student.person_id)
        self._audit.log(
            branch_id=branch_id,
            user_id=collected_by,
            action=AuditAction.CREATE,
            module=self.MODULE,
            entity_id=payment.payment_id,
            new_data=payment.to_dict(),
        )
        logger.info("Payment %s of %s recorded for %s", receipt, net, student.business_id)
        return PaymentChange(payment=payment, ledger=after, old_data=None, new_data=payment.to_dict())

    def amend_payment(
        self,
        branch_id: int,
        payment_id: int,
        *,
        amount: Any = None,
        discount: Any = None,
        description: Optional[str] = None,
        updated_by: Optional[int] = None,
    ) -> PaymentChange:
        """Change amount, discount or description; the ledger moves by the net difference only.

        The write only lands if the payment still holds the values the delta
        was computed from; otherwise it is re-read and the delta recomputed.
        """

        branch_id = int(branch_id)
        new_amount = optional_money(amount, "Amount")
        new_discount = optional_money(discount, "Discount")

        for attempt in range(1, PAYMENT_WRITE_ATTEMPTS + 1):
            old = self._require_payment(branch_id, payment_id)
            target_amount = old.amount if new_amount is None else new_amount
            target_discount = old.discount if new_discount is None else new_discount
            if target_amount <= 0:
                raise InvalidAmount("Amount must be greater than 0")
            if target_discount < 0:
                raise InvalidAmount("Discount cannot be negative")
            new_description = old.description if description is None else (description.strip() or None)

            delta = net_amount(target_amount, target_discount) - old.net_amount
            ledger = self._ledger(branch_id, old.student_id)
            if delta > ledger.due_amount:
                raise InvalidAmount(f"Payment increase of {delta} exceeds due amount {ledger.due_amount}")
            if -delta > ledger.paid_amount:
                raise InvalidAmount(f"Payment decrease of {-delta} exceeds paid amount {ledger.paid_amount}")

            try:
                updated = self._fees.update_payment(
                    branch_id=branch_id,
                    payment_id=old.payment_id,
                    student_id=old.student_id,
                    expected_amount=old.amount,
                    expected_discount=old.discount,
                    amount=target_amount,
                    discount=target_discount,
                    description=new_description,
                    delta=delta,
                )
            except StalePayment:
                if attempt == PAYMENT_WRITE_ATTEMPTS:
                    raise
                logger.warning("Payment %s changed concurrently, retrying amendment", old.receipt_number)
                continue
            if not updated:
                raise NotFound("Payment not found")
            break

        payment = self._require_payment(branch_id, old.payment_id)
        after = self._ledger(branch_id, old.student_id)
        self._audit.log(
            branch_id=branch_id,
            user_id=updated_by,
            action=AuditAction.UPDATE,
            module=self.MODULE,
            entity_id=payment.payment_id,
            old_data=old.to_dict(),
            new_data=payment.to_dict(),
        )
        logger.info("Payment %s amended, ledger delta %s", payment.receipt_number, delta)
        return PaymentChange(payment=payment, ledger=after, old_data=old.to_dict(), new_data=payment.to_dict())

    def reverse_payment(
        self,
        branch_id: int,
        payment_id: int,
        *,
        deleted_by: Optional[int] = None,
    ) -> PaymentChange:
        branch_id = int(branch_id)

        for attempt in range(1, PAYMENT_WRITE_ATTEMPTS + 1):
            old = self._require_payment(branch_id, payment_id)
            net = old.net_amount

            before = self._ledger(branch_id, old.student_id)
            if net > before.paid_amount or before.due_amount + net > before.total_fees:
                logger.warning(
                    "Ledger drift reversing %s for student #%s (paid %s, due %s, total %s)",
                    old.receipt_number,
                    old.student_id,
                    before.paid_amount,
                    before.due_amount,
                    before.total_fees,
                )

            try:
                deleted = self._fees.delete_payment(
                    branch_id=branch_id,
                    payment_id=old.payment_id,
                    student_id=old.student_id,
                    expected_amount=old.amount,
                    expected_discount=old.discount,
                    net=net,
                )
            except StalePayment:
                if attempt == PAYMENT_WRITE_ATTEMPTS:
                    raise
                logger.warning("Payment %s changed concurrently, retrying reversal", old.receipt_number)
                continue
            if not deleted:
                raise NotFound("Payment not found")
            break

        after = self._ledger(branch_id, old.student_id)
        self._audit.log(
            branch_id=branch_id,
            user_id=deleted_by,
            action=AuditAction.DELETE,
            module=self.MODULE,
            entity_id=old.payment_id,
            old_data=old.to_dict(),
        )
        logger.info("Payment %s reversed", old.receipt_number)
        return PaymentChange(payment=None, ledger=after, old_data=old.to_dict(), new_data=None)

    def get_payment(self, branch_id: int, payment_id: int) -> PaymentRecord:
        return self._require_payment(branch_id, payment_id)

    def list_payments(
        self,
        branch_id: int,
        *,
        student_ref: Optional[PersonRef] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        payment_mode: Union[PaymentMode, str, None] = None,
        limit: Optional[int] = None,
    ) -> Sequence[PaymentRecord]:
        if start_date and end_date and start_date > end_date:
            raise ValidationError("Start date must not be after end date")
        student_id = None
        if student_ref is not None:
            student_id = self._registry.resolve(branch_id, student_ref, kind=PersonKind.STUDENT).person_id
        mode = require_enum(PaymentMode, payment_mode, "Payment mode") if payment_mode else None
        return self._fees.list_payments(
            int(branch_id),
            student_id=student_id,
            start_date=start_date,
            end_date=end_date,
            payment_mode=mode,
            limit=limit,
        )

    def fee_status(self, branch_id: int, student_ref: PersonRef, *, today: Optional[date] = None) -> FeeStatus:
        today = today or now_local().date()
        student = self._registry.resolve(branch_id, student_ref, kind=PersonKind.STUDENT)
        ledger = self._ledger(branch_id, student.person_id)

        paid_months = self._fees.count_paid_months(int(branch_id), student.person_id)
        due_date, due_amount = next_due(student.admission_date, student.monthly_fee, paid_months, today)
        recent = self._fees.list_payments(int(branch_id), student_id=student.person_id, limit=RECENT_PAYMENTS_LIMIT)

        return FeeStatus(
            student=student,
            ledger=ledger,
            monthly_fee=student.monthly_fee,
            expected_due=expected_due(student.admission_date, student.monthly_fee, ledger.paid_amount, today),
            next_due_date=due_date,
            next_due_amount=due_amount,
            recent_payments=list(recent),
        )

    def rebuild_ledger(self, branch_id: int, student_ref: PersonRef, *, fix: bool = False) -> LedgerReconciliation:
        """Recompute paid/due from the payments on record.

        Drift is only reported unless ``fix`` is set.
        """

        student: Person = self._registry.resolve(branch_id, student_ref, kind=PersonKind.STUDENT)
        stored = self._ledger(branch_id, student.person_id)
        paid = self._fees.sum_net_for_student(int(branch_id), student.person_id)
        due = max(ZERO, stored.total_fees - paid)

        result = LedgerReconciliation(
            student_id=student.person_id,
            business_id=student.business_id,
            stored=stored,
            expected_paid=paid,
            expected_due=due,
        )
        if result.is_consistent:
            return result

        logger.warning(
            "Ledger drift for %s: stored paid %s due %s, payments say paid %s due %s",
            student.business_id,
            stored.paid_amount,
            stored.due_amount,
            paid,
            due,
        )
        if not fix:
            return result

        self._fees.overwrite_ledger(int(branch_id), student.person_id, paid_amount=paid, due_amount=due)
        return LedgerReconciliation(
            student_id=student.person_id,
            business_id=student.business_id,
            stored=self._ledger(branch_id, student.person_id),
            expected_paid=paid,
            expected_due=due,
            fixed=True,
        )
