from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Mapping, Optional

from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .audit.mysql_audit_repository import MySQLAuditRepository
from .audit.repository import AuditRepository
from .audit.service import AuditService
from .core.constants import DEFAULT_LATE_CUTOFFS, DEFAULT_STAFF_PERIOD, EXAM_ELIGIBILITY_THRESHOLD
from .database.connection import DBConfig, DatabaseConnection
from .fees.mysql_fee_repository import MySQLFeeRepository
from .fees.repository import FeeRepository
from .fees.service import FeeService
from .people.branch_repository import BranchRepository
from .people.mysql_branch_repository import MySQLBranchRepository
from .people.mysql_person_repository import MySQLPersonRepository
from .people.repository import PersonRepository
from .people.service import IdentityRegistry
from .reports.service import AttendanceReportService
from .roster.service import RosterService
from .sequences.mysql_sequence_repository import MySQLSequenceRepository
from .sequences.repository import SequenceRepository
from .sequences.service import SequenceService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    people_repo: PersonRepository
    branches_repo: BranchRepository
    attendance_repo: AttendanceRepository
    fees_repo: FeeRepository
    sequences_repo: SequenceRepository
    audit_repo: AuditRepository

    identity_registry: IdentityRegistry
    sequence_service: SequenceService
    audit_service: AuditService
    attendance_service: AttendanceService
    roster_service: RosterService
    fee_service: FeeService
    report_service: AttendanceReportService


def wire_services(
    *,
    conn: Optional[DatabaseConnection],
    people_repo: PersonRepository,
    branches_repo: BranchRepository,
    attendance_repo: AttendanceRepository,
    fees_repo: FeeRepository,
    sequences_repo: SequenceRepository,
    audit_repo: AuditRepository,
    late_cutoffs: Optional[Mapping[str, time]] = None,
    staff_period: str = DEFAULT_STAFF_PERIOD,
    eligibility_threshold: int = EXAM_ELIGIBILITY_THRESHOLD,
) -> Container:
    """Build the services over any set of repositories (MySQL or in-memory)."""

    sequence_service = SequenceService(sequences_repo)
    audit_service = AuditService(audit_repo)
    identity_registry = IdentityRegistry(people_repo, branches_repo, sequence_service)

    attendance_service = AttendanceService(
        attendance_repo,
        identity_registry,
        audit_service,
        strategy_factory=AttendanceStrategyFactory(cutoffs=dict(late_cutoffs or DEFAULT_LATE_CUTOFFS)),
        staff_period=staff_period,
    )
    roster_service = RosterService(attendance_repo, identity_registry)
    fee_service = FeeService(fees_repo, identity_registry, sequence_service, audit_service)
    report_service = AttendanceReportService(
        attendance_repo,
        identity_registry,
        eligibility_threshold=eligibility_threshold,
    )

    return Container(
        conn=conn,
        people_repo=people_repo,
        branches_repo=branches_repo,
        attendance_repo=attendance_repo,
        fees_repo=fees_repo,
        sequences_repo=sequences_repo,
        audit_repo=audit_repo,
        identity_registry=identity_registry,
        sequence_service=sequence_service,
        audit_service=audit_service,
        attendance_service=attendance_service,
        roster_service=roster_service,
        fee_service=fee_service,
        report_service=report_service,
    )


def build_container(
    *,
    db_config: dict,
    late_cutoffs: Optional[Mapping[str, time]] = None,
    staff_period: str = DEFAULT_STAFF_PERIOD,
    eligibility_threshold: int = EXAM_ELIGIBILITY_THRESHOLD,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    return wire_services(
        conn=conn,
        people_repo=MySQLPersonRepository(conn),
        branches_repo=MySQLBranchRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        fees_repo=MySQLFeeRepository(conn),
        sequences_repo=MySQLSequenceRepository(conn),
        audit_repo=MySQLAuditRepository(conn),
        late_cutoffs=late_cutoffs,
        staff_period=staff_period,
        eligibility_threshold=eligibility_threshold,
    )
