from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import PersonKind


@dataclass(frozen=True)
class LedgerState:
    """Running fee totals embedded in a student row."""

    total_fees: Decimal
    paid_amount: Decimal
    due_amount: Decimal
    last_payment_date: Optional[datetime] = None

    @property
    def is_balanced(self) -> bool:
        return (
            self.paid_amount + self.due_amount == self.total_fees
            and self.paid_amount >= 0
            and self.due_amount >= 0
        )

    def to_dict(self) -> dict:
        return {
            "totalFees": str(self.total_fees),
            "paidAmount": str(self.paid_amount),
            "dueAmount": str(self.due_amount),
            "lastPaymentDate": self.last_payment_date.isoformat() if self.last_payment_date else None,
        }


@dataclass(frozen=True)
class Person:
    """A student, staff member or teacher of one branch.

    Teachers are a ``kind`` of person; there is no separate staff row for them.
    """

    person_id: int
    branch_id: int
    business_id: str
    kind: PersonKind
    full_name: str
    email: Optional[str] = None
    is_active: bool = True
    batch_id: Optional[int] = None
    period: Optional[str] = None
    admission_date: Optional[date] = None
    monthly_fee: Decimal = Decimal("0")
    ledger: Optional[LedgerState] = None

    @property
    def is_student(self) -> bool:
        return self.kind == PersonKind.STUDENT

    def summary(self) -> dict:
        return {
            "personId": self.person_id,
            "businessId": self.business_id,
            "kind": self.kind.value,
            "fullName": self.full_name,
            "batchId": self.batch_id,
        }


@dataclass(frozen=True)
class Branch:
    branch_id: int
    code: str
    name: str
    is_active: bool = True


@dataclass(frozen=True)
class Batch:
    batch_id: int
    branch_id: int
    name: str
    period: str
    max_students: Optional[int] = None
