from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from ..core.enums import PersonKind
from .model import Person


class PersonRepository(Protocol):
    """Roster storage for students, staff and teachers.

    Every lookup is scoped by ``branch_id``; a row of another branch is reported
    as missing.
    """

    def get_by_id(self, branch_id: int, person_id: int) -> Optional[Person]:
        raise NotImplementedError

    def get_by_business_id(self, branch_id: int, business_id: str) -> Optional[Person]:
        raise NotImplementedError

    def list_active(self, branch_id: int, kind: PersonKind) -> Sequence[Person]:
        raise NotImplementedError

    def list_business_ids(self, branch_id: int, kind: PersonKind) -> Sequence[str]:
        raise NotImplementedError

    def create_person(
        self,
        *,
        branch_id: int,
        business_id: str,
        kind: PersonKind,
        full_name: str,
        email: Optional[str],
        batch_id: Optional[int],
        period: Optional[str],
        admission_date: Optional[date],
        monthly_fee: Decimal,
        total_fees: Decimal,
    ) -> int:
        raise NotImplementedError

    def set_active(self, branch_id: int, person_id: int, *, is_active: bool) -> bool:
        raise NotImplementedError
