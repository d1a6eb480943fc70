from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import SequenceKind

# Zero-padding width of the numeric suffix per kind.
SUFFIX_WIDTH = {
    SequenceKind.STUDENT: 3,
    SequenceKind.STAFF: 3,
    SequenceKind.TEACHER: 3,
    SequenceKind.RECEIPT: 4,
    SequenceKind.CERTIFICATE: 6,
}

_ROLE_TAG = {
    SequenceKind.STAFF: "STF",
    SequenceKind.TEACHER: "TCH",
}


@dataclass(frozen=True)
class SequenceKey:
    """Scope of one counter: ``(branch_code, kind, period_key)``."""

    branch_code: str
    kind: SequenceKind
    period_key: str

    @classmethod
    def for_kind(cls, branch_code: str, kind: SequenceKind, now: datetime) -> "SequenceKey":
        code = (branch_code or "").strip().upper()
        if kind == SequenceKind.CERTIFICATE:
            # Certificate IDs are global, not branch scoped.
            code = ""
        return cls(branch_code=code, kind=kind, period_key=period_key_for(kind, now))

    @property
    def prefix(self) -> str:
        if self.kind == SequenceKind.CERTIFICATE:
            return f"CERT-{self.period_key}-"
        if self.kind in _ROLE_TAG:
            return f"{self.branch_code}-{_ROLE_TAG[self.kind]}-"
        return f"{self.branch_code}-{self.period_key}-"

    def format(self, value: int) -> str:
        return f"{self.prefix}{int(value):0{SUFFIX_WIDTH[self.kind]}d}"

    def parse_suffix(self, business_id: str) -> Optional[int]:
        """Numeric suffix of ``business_id`` if it was issued under this key."""
        text = (business_id or "").strip().upper()
        if not text.startswith(self.prefix):
            return None
        suffix = text[len(self.prefix):]
        if not suffix.isdigit():
            return None
        return int(suffix)


def period_key_for(kind: SequenceKind, now: datetime) -> str:
    if kind in (SequenceKind.STUDENT, SequenceKind.CERTIFICATE):
        return f"{now.year:04d}"
    if kind == SequenceKind.RECEIPT:
        return f"{now.year:04d}{now.month:02d}"
    return ""
