from __future__ import annotations

from collections import Counter, defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_REPORT_DAYS, EXAM_ELIGIBILITY_THRESHOLD
from ..core.enums import AttendanceStatus, PersonKind
from ..core.exceptions import NotFound, ValidationError
from ..people.model import Person
from ..people.service import IdentityRegistry, PersonRef
from .calculator.base import WorkedTimeCalculator
from .calculator.standard_calculator import StandardWorkedTimeCalculator
from .model import (
    AttendanceStatistics,
    GroupSummary,
    StatusCounts,
    WorkedHoursReport,
    WorkedHoursRow,
    format_minutes,
)


def count_statuses(records: Iterable[AttendanceRecord]) -> StatusCounts:
    c = Counter(r.status for r in records)
    return StatusCounts(
        present=c.get(AttendanceStatus.PRESENT, 0),
        late=c.get(AttendanceStatus.LATE, 0),
        absent=c.get(AttendanceStatus.ABSENT, 0),
    )


class AttendanceReportService:
    """Read-only attendance views; nothing here is persisted."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        registry: IdentityRegistry,
        *,
        calculator: Optional[WorkedTimeCalculator] = None,
        eligibility_threshold: int = EXAM_ELIGIBILITY_THRESHOLD,
    ):
        self._attendance = attendance
        self._registry = registry
        self._calculator = calculator or StandardWorkedTimeCalculator()
        self._threshold = int(eligibility_threshold)

    @staticmethod
    def _window(start: Optional[date], end: Optional[date], days: int) -> Tuple[date, date]:
        end = end or now_local().date()
        start = start or (end - timedelta(days=days - 1))
        if start > end:
            raise ValidationError("Start date must not be after end date")
        return start, end

    def person_statistics(
        self,
        branch_id: int,
        person_ref: PersonRef,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> AttendanceStatistics:
        """Totals and attendance percentage; Late counts as attended."""

        person = self._registry.resolve(branch_id, person_ref)
        end = end_date or now_local().date()
        start = start_date or person.admission_date or end.replace(month=1, day=1)
        start, end = self._window(start, end, DEFAULT_REPORT_DAYS)

        records = self._attendance.list_in_range(
            int(branch_id), start_date=start, end_date=end, person_ids=[person.person_id]
        )
        counts = count_statuses(records)
        return AttendanceStatistics(
            person=person,
            start_date=start,
            end_date=end,
            counts=counts,
            eligible_for_exam=counts.total > 0 and counts.percentage >= self._threshold,
        )

    def period_breakdown(
        self,
        branch_id: int,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        kind: PersonKind = PersonKind.STUDENT,
    ) -> List[GroupSummary]:
        start, end = self._window(start_date, end_date, DEFAULT_REPORT_DAYS)
        records = self._attendance.list_in_range(int(branch_id), start_date=start, end_date=end, kind=kind)

        grouped: Dict[str, List[AttendanceRecord]] = defaultdict(list)
        for r in records:
            grouped[r.period or "-"].append(r)
        return [GroupSummary(key=k, counts=count_statuses(v)) for k, v in sorted(grouped.items())]

    def daily_trend(
        self,
        branch_id: int,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        kind: PersonKind = PersonKind.STUDENT,
    ) -> List[GroupSummary]:
        """One entry per calendar day of the window, empty days included."""

        start, end = self._window(start_date, end_date, DEFAULT_REPORT_DAYS)
        records = self._attendance.list_in_range(int(branch_id), start_date=start, end_date=end, kind=kind)

        grouped: Dict[date, List[AttendanceRecord]] = defaultdict(list)
        for r in records:
            grouped[r.work_date].append(r)

        out: List[GroupSummary] = []
        day = start
        while day <= end:
            out.append(GroupSummary(key=day.isoformat(), counts=count_statuses(grouped.get(day, []))))
            day += timedelta(days=1)
        return out

    def worked_hours(
        self,
        branch_id: int,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        person_ref: Optional[PersonRef] = None,
        kind: Optional[PersonKind] = None,
    ) -> WorkedHoursReport:
        """Per-record and per-person worked time (check-out minus check-in)."""

        start, end = self._window(start_date, end_date, DEFAULT_REPORT_DAYS)
        person_ids = None
        if person_ref is not None:
            person_ids = [self._registry.resolve(branch_id, person_ref).person_id]

        records = self._attendance.list_in_range(
            int(branch_id), start_date=start, end_date=end, kind=kind, person_ids=person_ids
        )

        people: Dict[int, Person] = {}
        rows: List[WorkedHoursRow] = []
        totals: Dict[int, int] = defaultdict(int)
        for r in records:
            if not r.check_in_time:
                continue
            if kind is None and person_ref is None and r.person_kind == PersonKind.STUDENT:
                continue
            person = people.get(r.person_id)
            if person is None:
                try:
                    person = self._registry.resolve(branch_id, r.person_id)
                except NotFound:
                    continue
                people[r.person_id] = person

            minutes = self._calculator.worked_minutes(r)
            totals[r.person_id] += minutes
            rows.append(
                WorkedHoursRow(
                    person=person,
                    work_date=r.work_date,
                    period=r.period,
                    minutes=minutes,
                    check_in=r.check_in_time.strftime("%H:%M"),
                    check_out=r.check_out_time.strftime("%H:%M") if r.check_out_time else None,
                )
            )

        summary = [
            {**people[pid].summary(), "totalMinutes": minutes, "totalHours": format_minutes(minutes)}
            for pid, minutes in totals.items()
        ]
        summary.sort(key=lambda x: x["totalMinutes"], reverse=True)
        return WorkedHoursReport(rows=rows, summary=summary)
