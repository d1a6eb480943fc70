from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence

from ..core.enums import PaymentMode
from ..core.exceptions import LedgerInvariantViolation, StalePayment
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, money
from ..people.model import LedgerState
from .dues import net_amount
from .model import PaymentRecord
from .repository import FeeRepository

_COLUMNS = """
    payment_id, branch_id, student_id, amount, discount, payment_mode, description,
    receipt_number, month, year, collected_by, created_at
"""


def _row_to_payment(r: Dict[str, Any]) -> PaymentRecord:
    return PaymentRecord(
        payment_id=int(r["payment_id"]),
        branch_id=int(r["branch_id"]),
        student_id=int(r["student_id"]),
        amount=money(r["amount"]),
        discount=money(r.get("discount")),
        payment_mode=PaymentMode(r["payment_mode"]),
        receipt_number=r["receipt_number"],
        month=r["month"],
        year=int(r["year"]),
        description=r.get("description"),
        collected_by=r.get("collected_by"),
        created_at=r.get("created_at"),
    )


def _apply_delta(cur, *, branch_id: int, student_id: int, delta: Decimal, paid_at: Optional[datetime] = None) -> None:
    """Move ``delta`` from due to paid in one guarded statement."""

    if delta == 0:
        return
    cur.execute(
        """
        UPDATE people
        SET paid_amount = paid_amount + %s,
            due_amount = due_amount - %s,
            last_payment_date = COALESCE(%s, last_payment_date)
        WHERE branch_id=%s AND person_id=%s AND kind='STUDENT'
          AND paid_amount + %s >= 0 AND due_amount - %s >= 0
        """,
        (delta, delta, paid_at, int(branch_id), int(student_id), delta, delta),
    )
    if cur.rowcount == 0:
        raise LedgerInvariantViolation(f"Ledger update of {delta} rejected for student #{student_id}")


def _lock_payment(
    cur,
    *,
    branch_id: int,
    payment_id: int,
    student_id: int,
    expected_amount: Decimal,
    expected_discount: Decimal,
) -> bool:
    """Row-lock the payment for this transaction and check it still holds the expected values."""

    cur.execute(
        """
        SELECT amount, discount FROM payments
        WHERE branch_id=%s AND payment_id=%s AND student_id=%s
        FOR UPDATE
        """,
        (int(branch_id), int(payment_id), int(student_id)),
    )
    r = fetchone(cur)
    if not r:
        return False
    if money(r["amount"]) != expected_amount or money(r["discount"]) != expected_discount:
        raise StalePayment(f"Payment #{payment_id} was changed by another request")
    return True


class MySQLFeeRepository(FeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_payment(self, branch_id: int, payment_id: int) -> Optional[PaymentRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM payments WHERE branch_id=%s AND payment_id=%s",
                (int(branch_id), int(payment_id)),
            )
            r = fetchone(cur)
            return _row_to_payment(r) if r else None

    def get_ledger(self, branch_id: int, student_id: int) -> Optional[LedgerState]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT total_fees, paid_amount, due_amount, last_payment_date
                FROM people
                WHERE branch_id=%s AND person_id=%s AND kind='STUDENT'
                """,
                (int(branch_id), int(student_id)),
            )
            r = fetchone(cur)
            if not r:
                return None
            return LedgerState(
                total_fees=money(r["total_fees"]),
                paid_amount=money(r["paid_amount"]),
                due_amount=money(r["due_amount"]),
                last_payment_date=r.get("last_payment_date"),
            )

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
        with db_cursor(self._conn_factory) as (_, cur):
            _apply_delta(
                cur,
                branch_id=branch_id,
                student_id=student_id,
                delta=net_amount(amount, discount),
                paid_at=created_at,
            )
            cur.execute(
                """
                INSERT INTO payments(branch_id, student_id, amount, discount, payment_mode, description,
                                     receipt_number, month, year, collected_by, created_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(branch_id),
                    int(student_id),
                    amount,
                    discount,
                    payment_mode.value,
                    description,
                    receipt_number,
                    month,
                    int(year),
                    collected_by,
                    created_at,
                ),
            )
            return int(cur.lastrowid)

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
        with db_cursor(self._conn_factory) as (_, cur):
            if not _lock_payment(
                cur,
                branch_id=branch_id,
                payment_id=payment_id,
                student_id=student_id,
                expected_amount=expected_amount,
                expected_discount=expected_discount,
            ):
                return False
            cur.execute(
                """
                UPDATE payments SET amount=%s, discount=%s, description=%s
                WHERE branch_id=%s AND payment_id=%s AND student_id=%s
                """,
                (amount, discount, description, int(branch_id), int(payment_id), int(student_id)),
            )
            _apply_delta(cur, branch_id=branch_id, student_id=student_id, delta=delta)
            return True

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
        with db_cursor(self._conn_factory) as (_, cur):
            if not _lock_payment(
                cur,
                branch_id=branch_id,
                payment_id=payment_id,
                student_id=student_id,
                expected_amount=expected_amount,
                expected_discount=expected_discount,
            ):
                return False
            cur.execute(
                "DELETE FROM payments WHERE branch_id=%s AND payment_id=%s AND student_id=%s",
                (int(branch_id), int(payment_id), int(student_id)),
            )
            if net:
                cur.execute(
                    """
                    UPDATE people
                    SET paid_amount = GREATEST(0, paid_amount - %s),
                        due_amount = LEAST(total_fees, due_amount + %s)
                    WHERE branch_id=%s AND person_id=%s AND kind='STUDENT'
                    """,
                    (net, net, int(branch_id), int(student_id)),
                )
            return True

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
        clauses = ["branch_id=%s"]
        params: list[object] = [int(branch_id)]
        if student_id is not None:
            clauses.append("student_id=%s")
            params.append(int(student_id))
        if start_date is not None:
            clauses.append("DATE(created_at) >= %s")
            params.append(start_date)
        if end_date is not None:
            clauses.append("DATE(created_at) <= %s")
            params.append(end_date)
        if payment_mode is not None:
            clauses.append("payment_mode=%s")
            params.append(payment_mode.value)

        sql = f"SELECT {_COLUMNS} FROM payments WHERE {' AND '.join(clauses)} ORDER BY created_at DESC, payment_id DESC"
        if limit is not None:
            sql += " LIMIT %s"
            params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_row_to_payment(r) for r in fetchall(cur)]

    def sum_net_for_student(self, branch_id: int, student_id: int) -> Decimal:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COALESCE(SUM(GREATEST(0, amount - discount)), 0) AS total
                FROM payments WHERE branch_id=%s AND student_id=%s
                """,
                (int(branch_id), int(student_id)),
            )
            r = fetchone(cur)
            return money(r["total"] if r else None)

    def count_paid_months(self, branch_id: int, student_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(DISTINCT month, year) AS months
                FROM payments WHERE branch_id=%s AND student_id=%s
                """,
                (int(branch_id), int(student_id)),
            )
            r = fetchone(cur)
            return int(r["months"]) if r else 0

    def overwrite_ledger(self, branch_id: int, student_id: int, *, paid_amount: Decimal, due_amount: Decimal) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE people SET paid_amount=%s, due_amount=%s
                WHERE branch_id=%s AND person_id=%s AND kind='STUDENT'
                """,
                (paid_amount, due_amount, int(branch_id), int(student_id)),
            )
            return cur.rowcount > 0
