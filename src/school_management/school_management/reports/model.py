from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from ..people.model import Person


def attendance_percentage(attended: int, total: int) -> int:
    """Whole-number percentage, halves rounded up; 0 when nothing was recorded."""
    if total <= 0:
        return 0
    value = Decimal(attended) * 100 / Decimal(total)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class StatusCounts:
    present: int = 0
    late: int = 0
    absent: int = 0

    @property
    def total(self) -> int:
        return self.present + self.late + self.absent

    @property
    def attended(self) -> int:
        return self.present + self.late

    @property
    def percentage(self) -> int:
        return attendance_percentage(self.attended, self.total)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "present": self.present,
            "late": self.late,
            "absent": self.absent,
            "percentage": self.percentage,
        }


@dataclass(frozen=True)
class AttendanceStatistics:
    person: Person
    start_date: date
    end_date: date
    counts: StatusCounts
    eligible_for_exam: bool

    def to_dict(self) -> dict:
        return {
            "person": self.person.summary(),
            "from": self.start_date.isoformat(),
            "to": self.end_date.isoformat(),
            **self.counts.to_dict(),
            "eligibleForExam": self.eligible_for_exam,
        }


@dataclass(frozen=True)
class GroupSummary:
    """Counts for one group key (a period or a day)."""

    key: str
    counts: StatusCounts

    def to_dict(self) -> dict:
        return {"key": self.key, **self.counts.to_dict()}


@dataclass(frozen=True)
class WorkedHoursRow:
    person: Person
    work_date: date
    period: str
    minutes: int
    check_in: Optional[str] = None
    check_out: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            **self.person.summary(),
            "date": self.work_date.isoformat(),
            "checkIn": self.check_in or "-",
            "checkOut": self.check_out or "-",
            "workedHours": format_minutes(self.minutes),
        }


@dataclass(frozen=True)
class WorkedHoursReport:
    rows: List[WorkedHoursRow] = field(default_factory=list)
    summary: List[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"rows": [r.to_dict() for r in self.rows], "summary": self.summary}


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"
