from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Mapping, Optional, Union

from ..core.constants import DEFAULT_LATE_CUTOFFS
from ..core.enums import AttendanceStatus
from .strategies.absent_strategy import AbsentStrategy
from .strategies.base import AttendanceStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.normal_strategy import NormalStrategy


def _time_of_day(value: Union[datetime, time]) -> time:
    return value.time() if isinstance(value, datetime) else value


def classify_check_in(
    period: Optional[str],
    check_in: Union[datetime, time],
    cutoffs: Optional[Mapping[str, time]] = None,
) -> AttendanceStatus:
    """LATE iff the time of day is strictly after the cutoff of ``period``.

    Unknown or empty periods are always PRESENT.
    """

    cutoffs = DEFAULT_LATE_CUTOFFS if cutoffs is None else cutoffs
    cutoff = cutoffs.get((period or "").strip().upper())
    if cutoff is None:
        return AttendanceStatus.PRESENT
    if _time_of_day(check_in) > cutoff:
        return AttendanceStatus.LATE
    return AttendanceStatus.PRESENT


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    cutoffs: Mapping[str, time] = field(default_factory=lambda: dict(DEFAULT_LATE_CUTOFFS))

    def cutoff_for(self, period: Optional[str]) -> Optional[time]:
        return self.cutoffs.get((period or "").strip().upper())

    def for_checkin(self, *, period: Optional[str], check_in: Union[datetime, time]) -> AttendanceStrategy:
        if classify_check_in(period, check_in, self.cutoffs) == AttendanceStatus.LATE:
            return LateStrategy()
        return NormalStrategy()

    def for_explicit(self, status: AttendanceStatus) -> AttendanceStrategy:
        return {
            AttendanceStatus.PRESENT: NormalStrategy(),
            AttendanceStatus.LATE: LateStrategy(),
            AttendanceStatus.ABSENT: AbsentStrategy(),
        }[status]

    def with_overrides(self, overrides: Optional[Mapping[str, time]]) -> "AttendanceStrategyFactory":
        """Copy of this factory with branch-specific cutoffs layered on top."""
        if not overrides:
            return self
        merged = dict(self.cutoffs)
        merged.update({k.upper(): v for k, v in overrides.items()})
        return AttendanceStrategyFactory(cutoffs=merged)
