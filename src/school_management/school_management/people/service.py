from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Union

from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty, to_money
from ..core.enums import PersonKind, SequenceKind
from ..core.exceptions import InactiveSubject, NotFound, ValidationError
from ..sequences.service import SequenceService
from .branch_repository import BranchRepository
from .model import Batch, Branch, Person
from .repository import PersonRepository

logger = logging.getLogger(__name__)

PersonRef = Union[int, str]

_SEQUENCE_FOR_KIND = {
    PersonKind.STUDENT: SequenceKind.STUDENT,
    PersonKind.STAFF: SequenceKind.STAFF,
    PersonKind.TEACHER: SequenceKind.TEACHER,
}


class IdentityRegistry:
    """Resolves people of a branch and gates inactive ones."""

    def __init__(
        self,
        people: PersonRepository,
        branches: BranchRepository,
        sequences: Optional[SequenceService] = None,
    ):
        self._people = people
        self._branches = branches
        self._sequences = sequences

    def resolve(self, branch_id: int, ref: PersonRef, *, kind: Optional[PersonKind] = None) -> Person:
        """Find a person by surrogate ID (int or digits) or business ID."""

        person = None
        if isinstance(ref, int) or (isinstance(ref, str) and ref.strip().isdigit()):
            person = self._people.get_by_id(int(branch_id), int(ref))
        elif isinstance(ref, str) and ref.strip():
            person = self._people.get_by_business_id(int(branch_id), ref.strip().upper())

        if not person or (kind is not None and person.kind != kind):
            label = kind.value.lower() if kind else "person"
            raise NotFound(f"{label.capitalize()} not found")
        return person

    def resolve_active(self, branch_id: int, ref: PersonRef, *, kind: Optional[PersonKind] = None) -> Person:
        person = self.resolve(branch_id, ref, kind=kind)
        if not person.is_active:
            raise InactiveSubject(f"{person.kind.value.capitalize()} {person.business_id} is not active")
        return person

    def roster(self, branch_id: int, kind: PersonKind):
        return self._people.list_active(int(branch_id), kind)

    def get_branch(self, branch_id: int) -> Branch:
        branch = self._branches.get_branch(int(branch_id))
        if not branch:
            raise NotFound("Branch not found")
        return branch

    def get_batch(self, branch_id: int, batch_id: int) -> Batch:
        batch = self._branches.get_batch(int(branch_id), int(batch_id))
        if not batch:
            raise NotFound("Batch not found")
        return batch

    def late_cutoffs(self, branch_id: int):
        return self._branches.get_late_cutoffs(int(branch_id))

    def enroll(
        self,
        *,
        branch_id: int,
        kind: PersonKind,
        full_name: str,
        email: Optional[str] = None,
        batch_id: Optional[int] = None,
        admission_date: Optional[date] = None,
        monthly_fee=0,
        total_fees=0,
        now: Optional[datetime] = None,
    ) -> Person:
        """Onboard a person under a freshly issued business ID."""

        if not self._sequences:
            raise ValidationError("ID generation is not configured")

        now = now or now_local()
        full_name = require_non_empty(full_name, "Full name")
        branch = self.get_branch(branch_id)

        period = None
        if kind == PersonKind.STUDENT:
            if batch_id is None:
                raise ValidationError("Batch is required for students")
            period = self.get_batch(branch_id, batch_id).period
            admission_date = admission_date or now.date()
        else:
            batch_id = None

        monthly = to_money(monthly_fee, "Monthly fee") if kind == PersonKind.STUDENT else Decimal("0")
        total = to_money(total_fees, "Total fees") if kind == PersonKind.STUDENT else Decimal("0")
        if monthly < 0 or total < 0:
            raise ValidationError("Fees cannot be negative")

        business_id = self._sequences.next_id(branch.code, _SEQUENCE_FOR_KIND[kind], now=now)
        person_id = self._people.create_person(
            branch_id=branch.branch_id,
            business_id=business_id,
            kind=kind,
            full_name=full_name,
            email=(email or "").strip().lower() or None,
            batch_id=batch_id,
            period=period,
            admission_date=admission_date,
            monthly_fee=monthly,
            total_fees=total,
        )
        logger.info("Enrolled %s %s in branch %s", kind.value, business_id, branch.code)
        return self.resolve(branch.branch_id, person_id)

    def set_active(self, branch_id: int, ref: PersonRef, *, is_active: bool) -> Person:
        person = self.resolve(branch_id, ref)
        if not self._people.set_active(int(branch_id), person.person_id, is_active=is_active):
            raise NotFound("Person not found")
        return self.resolve(branch_id, person.person_id)
