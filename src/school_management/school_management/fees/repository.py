from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from ..core.enums import PaymentMode
from ..people.model import LedgerState
from .model import PaymentRecord


class FeeRepository(Protocol):
    """Payments plus the running paid/due totals on the student row.

    Every mutating method changes the payment and the ledger in one
    transaction. Ledger deltas are applied as a guarded atomic update; when the
    guard fails (``paid`` or ``due`` would become negative) the transaction is
    rolled back and ``LedgerInvariantViolation`` is raised.
    """

    def get_payment(self, branch_id: int, payment_id: int) -> Optional[PaymentRecord]:
        raise NotImplementedError

    def get_ledger(self, branch_id: int, student_id: int) -> Optional[LedgerState]:
        raise NotImplementedError

    def insert_payment(
        self,
        *,
        branch_id: int,
        student_id: int,
        amount: Decimal,
        discount: Decimal,
        payment_mode: PaymentMode,
        description: Optional[str],
        receipt_number: str,
        month: str,
        year: int,
        collected_by: Optional[int],
        created_at: datetime,
    ) -> int:
        raise NotImplementedError

    def update_payment(
        self,
        *,
        branch_id: int,
        payment_id: int,
        student_id: int,
        expected_amount: Decimal,
        expected_discount: Decimal,
        amount: Decimal,
        discount: Decimal,
        description: Optional[str],
        delta: Decimal,
    ) -> bool:
        """Rewrite the payment and apply ``delta`` to the ledger in one transaction.

        Raises ``StalePayment`` when amount or discount no longer hold the
        expected values; returns False when the payment is gone.
        """
        raise NotImplementedError

    def delete_payment(
        self,
        *,
        branch_id: int,
        payment_id: int,
        student_id: int,
        expected_amount: Decimal,
        expected_discount: Decimal,
        net: Decimal,
    ) -> bool:
        """Delete the payment and take ``net`` back off the ledger.

        Same staleness check as ``update_payment``.

        The reversal is clamped: paid never drops below 0 and due never rises
        above the total.
        """
        raise NotImplementedError

    def list_payments(
        self,
        branch_id: int,
        *,
        student_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        payment_mode: Optional[PaymentMode] = None,
        limit: Optional[int] = None,
    ) -> Sequence[PaymentRecord]:
        raise NotImplementedError

    def sum_net_for_student(self, branch_id: int, student_id: int) -> Decimal:
        raise NotImplementedError

    def count_paid_months(self, branch_id: int, student_id: int) -> int:
        raise NotImplementedError

    def overwrite_ledger(self, branch_id: int, student_id: int, *, paid_amount: Decimal, due_amount: Decimal) -> bool:
        raise NotImplementedError
