from __future__ import annotations

from .base import WorkedTimeCalculator
from ...attendance.model import AttendanceRecord


class StandardWorkedTimeCalculator(WorkedTimeCalculator):
    """Standard rule: out - in, not below 0; open records count nothing."""

    def worked_minutes(self, record: AttendanceRecord) -> int:
        if not record.check_in_time or not record.check_out_time:
            return 0
        minutes = int((record.check_out_time - record.check_in_time).total_seconds() // 60)
        return max(minutes, 0)
