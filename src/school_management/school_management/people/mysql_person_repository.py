from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence

from ..core.enums import PersonKind
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_date, db_cursor, fetchall, fetchone, money
from .model import LedgerState, Person
from .repository import PersonRepository

_COLUMNS = """
    person_id, branch_id, business_id, kind, full_name, email, is_active,
    batch_id, period, admission_date, monthly_fee,
    total_fees, paid_amount, due_amount, last_payment_date
"""


def row_to_person(r: Dict[str, Any]) -> Person:
    kind = PersonKind(r["kind"])
    ledger = None
    if kind == PersonKind.STUDENT:
        ledger = LedgerState(
            total_fees=money(r.get("total_fees")),
            paid_amount=money(r.get("paid_amount")),
            due_amount=money(r.get("due_amount")),
            last_payment_date=r.get("last_payment_date"),
        )
    return Person(
        person_id=int(r["person_id"]),
        branch_id=int(r["branch_id"]),
        business_id=r["business_id"],
        kind=kind,
        full_name=r["full_name"],
        email=r.get("email"),
        is_active=bool(r.get("is_active", True)),
        batch_id=r.get("batch_id"),
        period=r.get("period"),
        admission_date=as_date(r.get("admission_date")),
        monthly_fee=money(r.get("monthly_fee")),
        ledger=ledger,
    )


class MySQLPersonRepository(PersonRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, branch_id: int, person_id: int) -> Optional[Person]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM people WHERE branch_id=%s AND person_id=%s",
                (int(branch_id), int(person_id)),
            )
            r = fetchone(cur)
            return row_to_person(r) if r else None

    def get_by_business_id(self, branch_id: int, business_id: str) -> Optional[Person]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM people WHERE branch_id=%s AND business_id=%s",
                (int(branch_id), business_id),
            )
            r = fetchone(cur)
            return row_to_person(r) if r else None

    def list_active(self, branch_id: int, kind: PersonKind) -> Sequence[Person]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM people
                WHERE branch_id=%s AND kind=%s AND is_active=1
                ORDER BY business_id
                """,
                (int(branch_id), kind.value),
            )
            return [row_to_person(r) for r in fetchall(cur)]

    def list_business_ids(self, branch_id: int, kind: PersonKind) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT business_id FROM people WHERE branch_id=%s AND kind=%s",
                (int(branch_id), kind.value),
            )
            return [r["business_id"] for r in fetchall(cur)]

    def create_person(
        self,
        *,
        branch_id: int,
        business_id: str,
        kind: PersonKind,
        full_name: str,
        email: Optional[str],
        batch_id: Optional[int],
        period: Optional[str],
        admission_date: Optional[date],
        monthly_fee: Decimal,
        total_fees: Decimal,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO people(branch_id, business_id, kind, full_name, email, is_active,
                                   batch_id, period, admission_date, monthly_fee,
                                   total_fees, paid_amount, due_amount)
                VALUES(%s,%s,%s,%s,%s,1,%s,%s,%s,%s,%s,0,%s)
                """,
                (
                    int(branch_id),
                    business_id,
                    kind.value,
                    full_name,
                    email,
                    batch_id,
                    period,
                    admission_date,
                    monthly_fee,
                    total_fees,
                    total_fees,
                ),
            )
            return int(cur.lastrowid)

    def set_active(self, branch_id: int, person_id: int, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE people SET is_active=%s WHERE branch_id=%s AND person_id=%s",
                (1 if is_active else 0, int(branch_id), int(person_id)),
            )
            return cur.rowcount > 0
