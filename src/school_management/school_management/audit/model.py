from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import AuditAction


@dataclass(frozen=True)
class AuditEntry:
    branch_id: int
    user_id: Optional[int]
    role: Optional[str]
    action: AuditAction
    module: str
    entity_id: Optional[int]
    old_data: Optional[dict] = None
    new_data: Optional[dict] = None
