from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..core.constants import DROP_RISK_ABSENT_DAYS
from ..core.enums import ATTENDED_STATUSES, AttendanceStatus, PersonKind
from ..core.exceptions import ValidationError
from ..people.model import Person
from ..people.service import IdentityRegistry
from .model import AbsenteeRoster, ConsecutiveAbsentee, MarkedAbsence

logger = logging.getLogger(__name__)


def partition_roster(
    roster: Sequence[Person],
    records: Sequence[AttendanceRecord],
) -> Tuple[Set[int], List[MarkedAbsence], List[Person]]:
    """Split ``roster`` against one snapshot of a day's records.

    A person with any Present/Late record counts as present even if another
    period of the same day is marked Absent.
    """

    present_ids = {r.person_id for r in records if r.status in ATTENDED_STATUSES}

    absent_records: Dict[int, AttendanceRecord] = {}
    for r in records:
        if r.status == AttendanceStatus.ABSENT:
            absent_records.setdefault(r.person_id, r)

    marked: List[MarkedAbsence] = []
    unmarked: List[Person] = []
    for person in roster:
        if person.person_id in present_ids:
            continue
        record = absent_records.get(person.person_id)
        if record is not None:
            marked.append(MarkedAbsence(person=person, record=record))
        else:
            unmarked.append(person)

    roster_ids = {p.person_id for p in roster}
    return present_ids & roster_ids, marked, unmarked


class RosterService:
    def __init__(self, attendance: AttendanceRepository, registry: IdentityRegistry):
        self._attendance = attendance
        self._registry = registry

    def compute_absentees(
        self,
        branch_id: int,
        work_date: date,
        kind: PersonKind = PersonKind.STUDENT,
        *,
        batch_id: Optional[int] = None,
    ) -> AbsenteeRoster:
        roster = list(self._registry.roster(branch_id, kind))
        if batch_id is not None:
            roster = [p for p in roster if p.batch_id == int(batch_id)]

        records = self._attendance.list_for_date(int(branch_id), work_date, kind=kind)
        present_ids, marked, unmarked = partition_roster(roster, records)

        logger.debug(
            "Absentees %s on %s: %d marked, %d unmarked of %d",
            kind.value,
            work_date,
            len(marked),
            len(unmarked),
            len(roster),
        )
        return AbsenteeRoster(
            branch_id=int(branch_id),
            work_date=work_date,
            kind=kind,
            present_ids=frozenset(present_ids),
            marked_absent=marked,
            unmarked_absent=unmarked,
        )

    def consecutive_absentees(
        self,
        branch_id: int,
        work_date: date,
        days: int = 3,
        *,
        drop_risk_days: int = DROP_RISK_ABSENT_DAYS,
    ) -> List[ConsecutiveAbsentee]:
        """Active students with at least ``days`` Absent records in the window ending at ``work_date``."""

        days = int(days)
        if days < 1:
            raise ValidationError("Days must be at least 1")

        start = work_date - timedelta(days=days - 1)
        rows = self._attendance.list_in_range(
            int(branch_id),
            start_date=start,
            end_date=work_date,
            kind=PersonKind.STUDENT,
            status=AttendanceStatus.ABSENT,
        )

        absent_dates: Dict[int, Set[date]] = defaultdict(set)
        for r in rows:
            absent_dates[r.person_id].add(r.work_date)

        result: List[ConsecutiveAbsentee] = []
        for person in self._registry.roster(branch_id, PersonKind.STUDENT):
            dates = absent_dates.get(person.person_id)
            if not dates or len(dates) < days:
                continue
            result.append(
                ConsecutiveAbsentee(
                    person=person,
                    absent_days=len(dates),
                    last_absent=max(dates),
                    drop_risk=len(dates) >= drop_risk_days,
                )
            )
        result.sort(key=lambda a: (-a.absent_days, a.person.business_id))
        return result
