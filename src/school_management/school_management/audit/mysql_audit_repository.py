from __future__ import annotations

import json

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor
from .model import AuditEntry
from .repository import AuditRepository


def _to_json(data):
    if data is None:
        return None
    return json.dumps(data, default=str)


class MySQLAuditRepository(AuditRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def insert(self, entry: AuditEntry) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO audit_logs(branch_id, user_id, role, action, module, entity_id, old_data, new_data)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(entry.branch_id),
                    entry.user_id,
                    entry.role,
                    entry.action.value,
                    entry.module,
                    entry.entity_id,
                    _to_json(entry.old_data),
                    _to_json(entry.new_data),
                ),
            )
