from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import FrozenSet, List, Optional

from ..attendance.model import AttendanceRecord
from ..core.enums import PersonKind
from ..people.model import Person


@dataclass(frozen=True)
class MarkedAbsence:
    """An absentee who has an explicit Absent record."""

    person: Person
    record: AttendanceRecord

    def to_dict(self) -> dict:
        return {
            **self.person.summary(),
            "attendanceId": self.record.attendance_id,
            "period": self.record.period,
            "method": self.record.method.value,
            "markedBy": self.record.marked_by,
        }


@dataclass(frozen=True)
class AbsenteeRoster:
    """Roster split into present, marked absent and unmarked absent.

    The three groups are disjoint and together cover every active person.
    """

    branch_id: int
    work_date: date
    kind: PersonKind
    present_ids: FrozenSet[int] = frozenset()
    marked_absent: List[MarkedAbsence] = field(default_factory=list)
    unmarked_absent: List[Person] = field(default_factory=list)

    @property
    def total_absent(self) -> int:
        return len(self.marked_absent) + len(self.unmarked_absent)

    def to_dict(self) -> dict:
        return {
            "date": self.work_date.isoformat(),
            "kind": self.kind.value,
            "presentIds": sorted(self.present_ids),
            "markedAbsent": [m.to_dict() for m in self.marked_absent],
            "unmarkedAbsent": [p.summary() for p in self.unmarked_absent],
            "totalAbsent": self.total_absent,
        }


@dataclass(frozen=True)
class ConsecutiveAbsentee:
    person: Person
    absent_days: int
    last_absent: Optional[date]
    drop_risk: bool

    def to_dict(self) -> dict:
        return {
            **self.person.summary(),
            "absentDays": self.absent_days,
            "lastAbsent": self.last_absent.isoformat() if self.last_absent else None,
            "dropRisk": self.drop_risk,
        }
