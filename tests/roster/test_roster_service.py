from __future__ import annotations

from datetime import date, timedelta

import pytest

from src.school_management.school_management.core.enums import AttendanceStatus, PersonKind
from src.school_management.school_management.core.exceptions import ValidationError
from src.school_management.school_management.roster.service import partition_roster

DAY = date(2026, 3, 10)


def test_absentees_split_into_marked_and_unmarked(roster_service, add_record):
    add_record(1, DAY, AttendanceStatus.PRESENT)
    add_record(2, DAY, AttendanceStatus.ABSENT, period="EVENING")

    roster = roster_service.compute_absentees(1, DAY)

    assert roster.present_ids == {1}
    assert [m.person.person_id for m in roster.marked_absent] == [2]
    assert [p.business_id for p in roster.unmarked_absent] == ["DHK001-2026-004", "DHK001-2026-005"]
    assert roster.total_absent == 3


def test_buckets_partition_the_active_roster(roster_service, registry, add_record):
    add_record(1, DAY, AttendanceStatus.LATE)
    add_record(7, DAY, AttendanceStatus.ABSENT, period="PM")
    add_record(5, DAY, AttendanceStatus.PRESENT)  # inactive student

    roster = roster_service.compute_absentees(1, DAY)
    active = {p.person_id for p in registry.roster(1, PersonKind.STUDENT)}
    marked = {m.person.person_id for m in roster.marked_absent}
    unmarked = {p.person_id for p in roster.unmarked_absent}

    assert set(roster.present_ids) | marked | unmarked == active
    assert not (set(roster.present_ids) & marked)
    assert not (set(roster.present_ids) & unmarked)
    assert not (marked & unmarked)


def test_present_in_any_period_is_present(roster_service, add_record):
    add_record(1, DAY, AttendanceStatus.PRESENT, period="AM")
    add_record(1, DAY, AttendanceStatus.ABSENT, period="PM")

    roster = roster_service.compute_absentees(1, DAY)

    assert 1 in roster.present_ids
    assert 1 not in {m.person.person_id for m in roster.marked_absent}


def test_batch_filter_limits_the_roster(roster_service):
    roster = roster_service.compute_absentees(1, DAY, batch_id=3)

    assert [p.person_id for p in roster.unmarked_absent] == [7, 8]


def test_teacher_roster_uses_teacher_records(roster_service, add_record):
    add_record(3, DAY, AttendanceStatus.PRESENT, period="", kind=PersonKind.STAFF)

    roster = roster_service.compute_absentees(1, DAY, PersonKind.TEACHER)

    assert [p.person_id for p in roster.unmarked_absent] == [4]
    assert roster.present_ids == frozenset()


def test_partition_roster_is_pure(store, add_record):
    people = [store.people[1], store.people[2]]
    records = [add_record(2, DAY, AttendanceStatus.ABSENT)]

    present, marked, unmarked = partition_roster(people, records)

    assert present == set()
    assert [m.person.person_id for m in marked] == [2]
    assert [p.person_id for p in unmarked] == [1]


def test_consecutive_absentees_counts_absent_days_in_window(roster_service, add_record):
    for offset in range(5):
        add_record(2, DAY - timedelta(days=offset), AttendanceStatus.ABSENT, period="EVENING")
    for offset in range(3):
        add_record(7, DAY - timedelta(days=offset), AttendanceStatus.ABSENT, period="PM")
    add_record(1, DAY, AttendanceStatus.ABSENT)

    rows = roster_service.consecutive_absentees(1, DAY, days=3)

    assert [(r.person.person_id, r.absent_days, r.drop_risk) for r in rows] == [(2, 3, False), (7, 3, False)]


def test_consecutive_absentees_flags_drop_risk(roster_service, add_record):
    for offset in range(5):
        add_record(2, DAY - timedelta(days=offset), AttendanceStatus.ABSENT, period="EVENING")

    rows = roster_service.consecutive_absentees(1, DAY, days=5)

    assert len(rows) == 1
    assert rows[0].drop_risk is True
    assert rows[0].last_absent == DAY


def test_consecutive_absentees_requires_positive_days(roster_service):
    with pytest.raises(ValidationError):
        roster_service.consecutive_absentees(1, DAY, days=0)
