from __future__ import annotations

from datetime import datetime, time
from typing import Optional

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Check-in strictly after the period cutoff."""

    def decide_checkin(self, *, check_in: Optional[datetime], period: str, cutoff: Optional[time]) -> StatusDecision:
        note = f"after {cutoff.strftime('%H:%M')} ({period})" if cutoff else None
        return StatusDecision(status=AttendanceStatus.LATE, note=note)
