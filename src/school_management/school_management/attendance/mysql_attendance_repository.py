from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional, Sequence

import mysql.connector

from ..core.enums import AttendanceMethod, AttendanceStatus, PersonKind
from ..core.exceptions import DuplicateAttendance
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_date, db_cursor, fetchall, fetchone, in_clause, is_duplicate_key
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = """
    attendance_id, branch_id, person_id, person_kind, work_date, period, status,
    check_in_time, check_out_time, method, marked_by, batch_id
"""


def _row_to_record(r: Dict[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        branch_id=int(r["branch_id"]),
        person_id=int(r["person_id"]),
        person_kind=PersonKind(r["person_kind"]),
        work_date=as_date(r["work_date"]),
        period=r.get("period") or "",
        status=AttendanceStatus(r["status"]),
        check_in_time=r.get("check_in_time"),
        check_out_time=r.get("check_out_time"),
        method=AttendanceMethod(r.get("method") or AttendanceMethod.MANUAL.value),
        marked_by=r.get("marked_by"),
        batch_id=r.get("batch_id"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, branch_id: int, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE branch_id=%s AND attendance_id=%s",
                (int(branch_id), int(attendance_id)),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def get_by_key(self, branch_id: int, person_id: int, work_date: date, period: str) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM attendance_records
                WHERE branch_id=%s AND person_id=%s AND work_date=%s AND period=%s
                """,
                (int(branch_id), int(person_id), work_date, period or ""),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def insert(
        self,
        *,
        branch_id: int,
        person_id: int,
        person_kind: PersonKind,
        work_date: date,
        period: str,
        status: AttendanceStatus,
        check_in_time: Optional[datetime],
        method: AttendanceMethod,
        marked_by: Optional[int],
        batch_id: Optional[int] = None,
    ) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(branch_id, person_id, person_kind, work_date, period,
                                                   status, check_in_time, method, marked_by, batch_id)
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(branch_id),
                        int(person_id),
                        person_kind.value,
                        work_date,
                        period or "",
                        status.value,
                        check_in_time,
                        method.value,
                        marked_by,
                        batch_id,
                    ),
                )
                return int(cur.lastrowid)
        except mysql.connector.IntegrityError as e:
            if is_duplicate_key(e):
                raise DuplicateAttendance("Attendance already marked for this date") from e
            raise

    def fill_check_in(
        self,
        *,
        attendance_id: int,
        check_in_time: datetime,
        status: AttendanceStatus,
        method: AttendanceMethod,
        marked_by: Optional[int],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET check_in_time=%s, status=%s, method=%s, marked_by=COALESCE(%s, marked_by)
                WHERE attendance_id=%s AND check_in_time IS NULL
                """,
                (check_in_time, status.value, method.value, marked_by, int(attendance_id)),
            )
            return cur.rowcount > 0

    def set_check_out(self, *, attendance_id: int, check_out_time: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET check_out_time=%s
                WHERE attendance_id=%s AND check_in_time IS NOT NULL AND check_out_time IS NULL
                """,
                (check_out_time, int(attendance_id)),
            )
            return cur.rowcount > 0

    def upsert_status(
        self,
        *,
        branch_id: int,
        person_id: int,
        person_kind: PersonKind,
        work_date: date,
        period: str,
        status: AttendanceStatus,
        method: AttendanceMethod,
        marked_by: Optional[int],
        batch_id: Optional[int] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            # LAST_INSERT_ID(attendance_id) exposes the existing row id on the update path.
            cur.execute(
                """
                INSERT INTO attendance_records(branch_id, person_id, person_kind, work_date, period,
                                               status, method, marked_by, batch_id)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    status=VALUES(status),
                    method=VALUES(method),
                    marked_by=VALUES(marked_by),
                    attendance_id=LAST_INSERT_ID(attendance_id)
                """,
                (
                    int(branch_id),
                    int(person_id),
                    person_kind.value,
                    work_date,
                    period or "",
                    status.value,
                    method.value,
                    marked_by,
                    batch_id,
                ),
            )
            return int(cur.lastrowid)

    def update_fields(
        self,
        *,
        branch_id: int,
        attendance_id: int,
        status: AttendanceStatus,
        period: str,
        method: AttendanceMethod,
    ) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    UPDATE attendance_records
                    SET status=%s, period=%s, method=%s
                    WHERE branch_id=%s AND attendance_id=%s
                    """,
                    (status.value, period or "", method.value, int(branch_id), int(attendance_id)),
                )
                return cur.rowcount > 0
        except mysql.connector.IntegrityError as e:
            if is_duplicate_key(e):
                raise DuplicateAttendance("Another record already exists for this period") from e
            raise

    def delete(self, branch_id: int, attendance_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM attendance_records WHERE branch_id=%s AND attendance_id=%s",
                (int(branch_id), int(attendance_id)),
            )
            return cur.rowcount > 0

    def list_for_date(
        self,
        branch_id: int,
        work_date: date,
        *,
        kind: Optional[PersonKind] = None,
    ) -> Sequence[AttendanceRecord]:
        return self.list_in_range(branch_id, start_date=work_date, end_date=work_date, kind=kind)

    def list_in_range(
        self,
        branch_id: int,
        *,
        start_date: date,
        end_date: date,
        kind: Optional[PersonKind] = None,
        person_ids: Optional[Iterable[int]] = None,
        status: Optional[AttendanceStatus] = None,
    ) -> Sequence[AttendanceRecord]:
        clauses = ["branch_id=%s", "work_date BETWEEN %s AND %s"]
        params: list[object] = [int(branch_id), start_date, end_date]

        if kind is not None:
            clauses.append("person_kind=%s")
            params.append(kind.value)
        if person_ids is not None:
            ids = [int(i) for i in person_ids]
            if not ids:
                return []
            clauses.append(f"person_id IN ({in_clause(ids)})")
            params.extend(ids)
        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM attendance_records
                WHERE {where}
                ORDER BY work_date DESC, person_id ASC, period ASC
                """,
                tuple(params),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def count_for_batch(
        self,
        branch_id: int,
        batch_id: int,
        work_date: date,
        statuses: Iterable[AttendanceStatus],
    ) -> int:
        values = [s.value for s in statuses]
        if not values:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS total FROM attendance_records
                WHERE branch_id=%s AND batch_id=%s AND work_date=%s AND status IN ({in_clause(values)})
                """,
                (int(branch_id), int(batch_id), work_date, *values),
            )
            r = fetchone(cur)
            return int(r["total"]) if r else 0
