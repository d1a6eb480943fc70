from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from ..common.datetime_utils import now_local
from ..core.enums import SequenceKind
from ..core.exceptions import ValidationError
from .model import SequenceKey
from .repository import SequenceRepository

logger = logging.getLogger(__name__)


class SequenceService:
    """Issues human-readable IDs (students, staff, teachers, receipts, certificates)."""

    def __init__(self, sequences: SequenceRepository):
        self._sequences = sequences

    def next_id(self, branch_code: str, kind: SequenceKind, *, now: Optional[datetime] = None) -> str:
        key = self._key(branch_code, kind, now)
        value = self._sequences.increment(branch_code=key.branch_code, kind=key.kind, period_key=key.period_key)
        issued = key.format(value)
        logger.debug("Issued %s id %s", kind.value, issued)
        return issued

    def seed_from_existing(
        self,
        branch_code: str,
        kind: SequenceKind,
        existing_ids: Iterable[str],
        *,
        now: Optional[datetime] = None,
    ) -> int:
        """Move the counter past the highest legacy ID issued under the same key.

        One-off migration helper for data created before counters existed.
        """

        key = self._key(branch_code, kind, now)
        highest = max((s for s in (key.parse_suffix(i) for i in existing_ids) if s is not None), default=0)
        if highest == 0:
            return 0
        stored = self._sequences.ensure_at_least(
            branch_code=key.branch_code,
            kind=key.kind,
            period_key=key.period_key,
            value=highest,
        )
        logger.info("Seeded %s counter %s to %s", kind.value, key.prefix, stored)
        return stored

    @staticmethod
    def _key(branch_code: str, kind: SequenceKind, now: Optional[datetime]) -> SequenceKey:
        if kind != SequenceKind.CERTIFICATE and not (branch_code or "").strip():
            raise ValidationError("Branch code is required")
        return SequenceKey.for_kind(branch_code, kind, now or now_local())
