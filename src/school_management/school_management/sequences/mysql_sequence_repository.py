from __future__ import annotations

from ..core.enums import SequenceKind
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .repository import SequenceRepository


class MySQLSequenceRepository(SequenceRepository):
    """Counters stored one row per key.

    ``LAST_INSERT_ID(expr)`` makes the increment and the read a single atomic
    statement on the connection, so concurrent callers never share a value.
    """

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def increment(self, *, branch_code: str, kind: SequenceKind, period_key: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO sequence_counters(branch_code, id_kind, period_key, value)
                VALUES(%s,%s,%s,LAST_INSERT_ID(1))
                ON DUPLICATE KEY UPDATE value = LAST_INSERT_ID(value + 1)
                """,
                (branch_code, kind.value, period_key),
            )
            cur.execute("SELECT LAST_INSERT_ID() AS value")
            row = fetchone(cur)
            return int(row["value"])

    def ensure_at_least(self, *, branch_code: str, kind: SequenceKind, period_key: str, value: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO sequence_counters(branch_code, id_kind, period_key, value)
                VALUES(%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE value = GREATEST(value, VALUES(value))
                """,
                (branch_code, kind.value, period_key, int(value)),
            )
            cur.execute(
                """
                SELECT value FROM sequence_counters
                WHERE branch_code=%s AND id_kind=%s AND period_key=%s
                """,
                (branch_code, kind.value, period_key),
            )
            row = fetchone(cur)
            return int(row["value"])
