from datetime import datetime

import pytest

from src.school_management.school_management.core.enums import SequenceKind
from src.school_management.school_management.core.exceptions import ValidationError
from src.school_management.school_management.sequences.model import SequenceKey
from src.school_management.school_management.sequences.service import SequenceService

NOW = datetime(2026, 3, 10, 9, 40)


@pytest.fixture
def sequences(sequences_repo):
    return SequenceService(sequences_repo)


def test_formats_per_kind(sequences):
    assert sequences.next_id("DHK001", SequenceKind.STUDENT, now=NOW) == "DHK001-2026-001"
    assert sequences.next_id("DHK001", SequenceKind.STAFF, now=NOW) == "DHK001-STF-001"
    assert sequences.next_id("DHK001", SequenceKind.TEACHER, now=NOW) == "DHK001-TCH-001"
    assert sequences.next_id("DHK001", SequenceKind.RECEIPT, now=NOW) == "DHK001-202603-0001"
    assert sequences.next_id("DHK001", SequenceKind.CERTIFICATE, now=NOW) == "CERT-2026-000001"


def test_counters_increment_within_scope(sequences):
    ids = [sequences.next_id("DHK001", SequenceKind.STUDENT, now=NOW) for _ in range(3)]

    assert ids == ["DHK001-2026-001", "DHK001-2026-002", "DHK001-2026-003"]


def test_scopes_are_independent(sequences):
    sequences.next_id("DHK001", SequenceKind.STUDENT, now=NOW)

    assert sequences.next_id("CTG001", SequenceKind.STUDENT, now=NOW) == "CTG001-2026-001"
    assert sequences.next_id("DHK001", SequenceKind.STUDENT, now=NOW.replace(year=2027)) == "DHK001-2027-001"


def test_certificates_share_one_counter_across_branches(sequences):
    sequences.next_id("DHK001", SequenceKind.CERTIFICATE, now=NOW)

    assert sequences.next_id("CTG001", SequenceKind.CERTIFICATE, now=NOW) == "CERT-2026-000002"


def test_branch_code_is_normalized_and_required(sequences):
    assert sequences.next_id(" dhk001 ", SequenceKind.STAFF, now=NOW) == "DHK001-STF-001"
    with pytest.raises(ValidationError):
        sequences.next_id("  ", SequenceKind.STUDENT, now=NOW)


def test_seed_from_existing_moves_counter_past_legacy_ids(sequences):
    legacy = ["DHK001-2026-007", "DHK001-2026-003", "DHK001-2025-099", "junk", "DHK001-2026-0x1"]

    assert sequences.seed_from_existing("DHK001", SequenceKind.STUDENT, legacy, now=NOW) == 7
    assert sequences.next_id("DHK001", SequenceKind.STUDENT, now=NOW) == "DHK001-2026-008"


def test_seed_never_moves_backwards(sequences):
    for _ in range(10):
        sequences.next_id("DHK001", SequenceKind.STAFF, now=NOW)

    assert sequences.seed_from_existing("DHK001", SequenceKind.STAFF, ["DHK001-STF-004"], now=NOW) == 10


def test_seed_without_matching_ids_is_a_no_op(sequences, sequences_repo):
    assert sequences.seed_from_existing("DHK001", SequenceKind.TEACHER, ["DHK001-STF-004"], now=NOW) == 0
    assert sequences_repo.counters == {}


def test_key_prefix_and_suffix_parsing():
    key = SequenceKey.for_kind("DHK001", SequenceKind.RECEIPT, NOW)

    assert key.prefix == "DHK001-202603-"
    assert key.parse_suffix("dhk001-202603-0042") == 42
    assert key.parse_suffix("DHK001-202602-0042") is None
