from __future__ import annotations

from typing import Protocol

from ..core.enums import SequenceKind


class SequenceRepository(Protocol):
    def increment(self, *, branch_code: str, kind: SequenceKind, period_key: str) -> int:
        """Atomically bump the counter and return the new value (1 for a fresh key)."""

        raise NotImplementedError

    def ensure_at_least(self, *, branch_code: str, kind: SequenceKind, period_key: str, value: int) -> int:
        """Raise the counter to ``value`` if it is lower; return the stored value."""

        raise NotImplementedError
