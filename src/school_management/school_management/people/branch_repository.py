from __future__ import annotations

from datetime import time
from typing import Optional, Protocol

from .model import Batch, Branch


class BranchRepository(Protocol):
    def get_branch(self, branch_id: int) -> Optional[Branch]:
        raise NotImplementedError

    def get_batch(self, branch_id: int, batch_id: int) -> Optional[Batch]:
        raise NotImplementedError

    def get_late_cutoffs(self, branch_id: int) -> dict[str, time]:
        """Per-branch overrides of the period cutoff table (may be empty)."""

        raise NotImplementedError
