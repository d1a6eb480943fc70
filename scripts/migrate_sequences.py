"""Move ID counters past identifiers created before counters existed.

Usage: python scripts/migrate_sequences.py <branch_id> [<branch_id> ...]

Safe to run repeatedly: counters only ever move forward.
"""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.school_management.school_management.container import build_container
from src.school_management.school_management.core.enums import PersonKind, SequenceKind

KINDS = (
    (PersonKind.STUDENT, SequenceKind.STUDENT),
    (PersonKind.STAFF, SequenceKind.STAFF),
    (PersonKind.TEACHER, SequenceKind.TEACHER),
)


def main(argv: list[str]) -> None:
    if not argv:
        raise SystemExit(__doc__)

    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=dict(settings.DB_CONFIG))

    for raw in argv:
        branch = container.identity_registry.get_branch(int(raw))
        for person_kind, sequence_kind in KINDS:
            ids = container.people_repo.list_business_ids(branch.branch_id, person_kind)
            value = container.sequence_service.seed_from_existing(branch.code, sequence_kind, ids)
            print(f"{branch.code} {sequence_kind.value}: counter at {value} ({len(ids)} existing ids)")


if __name__ == "__main__":
    main(sys.argv[1:])
