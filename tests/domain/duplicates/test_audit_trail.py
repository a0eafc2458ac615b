from __future__ import annotations

from datetime import timedelta

from caseintake.domain.duplicates.audit import list_audit_entries, record_resolution
from caseintake.domain.model import DuplicateCandidate, MatchType, ResolutionAction
from tests.helpers.cases import BASE_TIME, FakeAuditRepository


def _candidate(primary: str, duplicate: str) -> DuplicateCandidate:
    return DuplicateCandidate(
        primary_case_id=primary,
        duplicate_case_id=duplicate,
        match_type=MatchType.MANUAL,
        confidence=1.0,
        created_at=BASE_TIME,
    )


def test_record_resolution_appends_entry() -> None:
    repository = FakeAuditRepository()
    candidate = _candidate("A", "B")

    entry = record_resolution(
        repository,
        candidate,
        action=ResolutionAction.REJECT,
        actor="rev-1",
        primary_case_id="A",
        duplicate_case_id="B",
        timestamp=BASE_TIME,
        reason="different animals",
    )

    assert repository.entries == [entry]
    assert entry.candidate_id == candidate.id
    assert entry.reason == "different animals"
    assert entry.notes is None


def test_audit_entries_filter_by_case_and_reviewer_in_time_order() -> None:
    repository = FakeAuditRepository()
    later = record_resolution(
        repository,
        _candidate("A", "B"),
        action=ResolutionAction.APPROVE,
        actor="rev-1",
        primary_case_id="A",
        duplicate_case_id="B",
        timestamp=BASE_TIME + timedelta(hours=2),
    )
    earlier = record_resolution(
        repository,
        _candidate("B", "C"),
        action=ResolutionAction.REJECT,
        actor="rev-2",
        primary_case_id="B",
        duplicate_case_id="C",
        timestamp=BASE_TIME,
        reason="no match",
    )

    assert list_audit_entries(repository) == [earlier, later]
    assert list_audit_entries(repository, case_id="B") == [earlier, later]
    assert list_audit_entries(repository, case_id="A") == [later]
    assert list_audit_entries(repository, reviewer_id="rev-2") == [earlier]
    assert list_audit_entries(repository, case_id="A", reviewer_id="rev-2") == []
