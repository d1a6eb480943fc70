from __future__ import annotations

import logging
from typing import Optional

from ..core.enums import AuditAction
from .model import AuditEntry
from .repository import AuditRepository

logger = logging.getLogger(__name__)


class AuditService:
    """Best-effort audit trail.

    A failing sink is logged and ignored; the primary operation has already
    been committed when ``log`` runs.
    """

    def __init__(self, audit: Optional[AuditRepository] = None):
        self._audit = audit

    def log(
        self,
        *,
        branch_id: int,
        user_id: Optional[int],
        action: AuditAction,
        module: str,
        entity_id: Optional[int] = None,
        old_data: Optional[dict] = None,
        new_data: Optional[dict] = None,
        role: Optional[str] = None,
    ) -> bool:
        if not self._audit:
            return False
        entry = AuditEntry(
            branch_id=int(branch_id),
            user_id=user_id,
            role=role,
            action=action,
            module=module,
            entity_id=entity_id,
            old_data=old_data,
            new_data=new_data,
        )
        try:
            self._audit.insert(entry)
        except Exception:
            logger.exception("Audit log write failed for %s %s #%s", module, action.value, entity_id)
            return False
        return True
