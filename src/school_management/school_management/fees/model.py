from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from ..core.enums import PaymentMode
from ..people.model import LedgerState, Person
from .dues import net_amount


@dataclass(frozen=True)
class PaymentRecord:
    payment_id: int
    branch_id: int
    student_id: int
    amount: Decimal
    discount: Decimal
    payment_mode: PaymentMode
    receipt_number: str
    month: str
    year: int
    description: Optional[str] = None
    collected_by: Optional[int] = None
    created_at: Optional[datetime] = None

    @property
    def net_amount(self) -> Decimal:
        return net_amount(self.amount, self.discount)

    def to_dict(self) -> dict:
        return {
            "paymentId": self.payment_id,
            "studentId": self.student_id,
            "amount": str(self.amount),
            "discount": str(self.discount),
            "netAmount": str(self.net_amount),
            "paymentMode": self.payment_mode.value,
            "receiptNumber": self.receipt_number,
            "month": self.month,
            "year": self.year,
            "description": self.description,
            "collectedBy": self.collected_by,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class PaymentChange:
    """Result of a payment mutation: the payment, the ledger after it, and audit context."""

    payment: Optional[PaymentRecord]
    ledger: LedgerState
    old_data: Optional[dict]
    new_data: Optional[dict]

    def to_dict(self) -> dict:
        return {
            "payment": self.payment.to_dict() if self.payment else None,
            "ledger": self.ledger.to_dict(),
            "oldData": self.old_data,
            "newData": self.new_data,
        }


@dataclass(frozen=True)
class FeeStatus:
    student: Person
    ledger: LedgerState
    monthly_fee: Decimal
    expected_due: Decimal
    next_due_date: Optional[date] = None
    next_due_amount: Decimal = Decimal("0")
    recent_payments: List[PaymentRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "student": self.student.summary(),
            "fees": {**self.ledger.to_dict(), "monthlyFees": str(self.monthly_fee)},
            "expectedDue": str(self.expected_due),
            "nextDue": {
                "date": self.next_due_date.isoformat() if self.next_due_date else None,
                "amount": str(self.next_due_amount),
            },
            "registrationDate": self.student.admission_date.isoformat() if self.student.admission_date else None,
            "recentPayments": [p.to_dict() for p in self.recent_payments],
        }


@dataclass(frozen=True)
class LedgerReconciliation:
    """Stored running totals compared with the sum of recorded payments."""

    student_id: int
    business_id: str
    stored: LedgerState
    expected_paid: Decimal
    expected_due: Decimal
    fixed: bool = False

    @property
    def drift(self) -> Decimal:
        return self.stored.paid_amount - self.expected_paid

    @property
    def is_consistent(self) -> bool:
        return self.drift == 0 and self.stored.due_amount == self.expected_due

    def to_dict(self) -> dict:
        return {
            "studentId": self.student_id,
            "businessId": self.business_id,
            "stored": self.stored.to_dict(),
            "expectedPaid": str(self.expected_paid),
            "expectedDue": str(self.expected_due),
            "drift": str(self.drift),
            "consistent": self.is_consistent,
            "fixed": self.fixed,
        }
