"""Example: driving the services directly, without the HTTP layer.

Needs a database prepared with ``scripts/init_db.py --seed``.
"""

import importlib
from datetime import date

from config import get_settings_module

from src.school_management.school_management.common.datetime_utils import parse_cutoffs
from src.school_management.school_management.container import build_container
from src.school_management.school_management.core.enums import AttendanceMethod, PersonKind
from src.school_management.school_management.core.exceptions import DuplicateAttendance

BRANCH_ID = 1
STUDENT = "DHK001-2026-001"


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(
        db_config=settings.DB_CONFIG,
        late_cutoffs=parse_cutoffs(settings.LATE_CUTOFFS),
        staff_period=settings.STAFF_PERIOD,
    )
    today = date.today()

    try:
        change = container.attendance_service.mark_or_check_in(
            BRANCH_ID, STUDENT, work_date=today, method=AttendanceMethod.MANUAL, marked_by=1
        )
        print("checked in:", change.record.status.value)
    except DuplicateAttendance as e:
        print("already marked:", e.existing.status.value if e.existing else "-")

    roster = container.roster_service.compute_absentees(BRANCH_ID, today, PersonKind.STUDENT)
    print(f"absent today: {roster.total_absent} ({len(roster.unmarked_absent)} unmarked)")

    stats = container.report_service.person_statistics(BRANCH_ID, STUDENT)
    print(f"attendance: {stats.counts.percentage}% eligible={stats.eligible_for_exam}")

    status = container.fee_service.fee_status(BRANCH_ID, STUDENT)
    print("fees:", status.to_dict()["fees"], "next due:", status.to_dict()["nextDue"])


if __name__ == "__main__":
    main()
