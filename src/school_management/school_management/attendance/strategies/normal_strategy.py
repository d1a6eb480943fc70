from __future__ import annotations

from datetime import datetime, time
from typing import Optional

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class NormalStrategy(AttendanceStrategy):
    """Check-in at or before the period cutoff."""

    def decide_checkin(self, *, check_in: Optional[datetime], period: str, cutoff: Optional[time]) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT)
