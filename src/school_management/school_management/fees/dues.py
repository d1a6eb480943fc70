"""Pure fee arithmetic."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional, Tuple

from ..common.datetime_utils import add_months, months_between

ZERO = Decimal("0")


def net_amount(amount: Decimal, discount: Decimal) -> Decimal:
    """Amount actually credited to the ledger; never negative."""
    return max(ZERO, Decimal(amount) - Decimal(discount))


def expected_due(admission_date: Optional[date], monthly_fee: Decimal, paid_amount: Decimal, today: date) -> Decimal:
    """Fees owed so far under monthly billing.

    The admission month is billed, so a student admitted this month owes one
    monthly fee.
    """

    if admission_date is None or today < admission_date:
        return ZERO
    months = months_between(admission_date, today) + 1
    return max(ZERO, months * Decimal(monthly_fee) - Decimal(paid_amount))


def next_due(
    admission_date: Optional[date],
    monthly_fee: Decimal,
    paid_months: int,
    today: date,
) -> Tuple[Optional[date], Decimal]:
    """Date and amount of the next unpaid monthly installment.

    ``paid_months`` is the number of distinct (month, year) pairs with a
    payment. Returns ``(None, 0)`` when the student is paid up.
    """

    if admission_date is None or today < admission_date:
        return None, ZERO
    next_month = months_between(admission_date, today) + 1
    if paid_months >= next_month:
        return None, ZERO
    return add_months(admission_date, next_month), Decimal(monthly_fee)
