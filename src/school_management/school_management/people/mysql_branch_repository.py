from __future__ import annotations

from datetime import time
from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time
from .branch_repository import BranchRepository
from .model import Batch, Branch


class MySQLBranchRepository(BranchRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_branch(self, branch_id: int) -> Optional[Branch]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT branch_id, code, name, is_active FROM branches WHERE branch_id=%s",
                (int(branch_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Branch(
                branch_id=int(r["branch_id"]),
                code=r["code"],
                name=r["name"],
                is_active=bool(r.get("is_active", True)),
            )

    def get_batch(self, branch_id: int, batch_id: int) -> Optional[Batch]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT batch_id, branch_id, name, period, max_students
                FROM batches
                WHERE branch_id=%s AND batch_id=%s
                """,
                (int(branch_id), int(batch_id)),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Batch(
                batch_id=int(r["batch_id"]),
                branch_id=int(r["branch_id"]),
                name=r["name"],
                period=r["period"],
                max_students=r.get("max_students"),
            )

    def get_late_cutoffs(self, branch_id: int) -> dict[str, time]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT period, cutoff FROM period_cutoffs WHERE branch_id=%s",
                (int(branch_id),),
            )
            return {r["period"].upper(): normalize_mysql_time(r["cutoff"]) for r in fetchall(cur)}
