from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, time
from typing import Optional

from ...core.enums import AttendanceStatus


@dataclass(frozen=True)
class StatusDecision:
    """Status to store, plus an optional human-readable reason."""

    status: AttendanceStatus
    note: Optional[str] = None


class AttendanceStrategy(ABC):
    """Decides the status of an attendance record for one event."""

    @abstractmethod
    def decide_checkin(self, *, check_in: Optional[datetime], period: str, cutoff: Optional[time]) -> StatusDecision:
        """``check_in`` is None for explicit marks that carry no time."""
        raise NotImplementedError
