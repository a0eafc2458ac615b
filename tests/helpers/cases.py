"""Reusable fakes and builders for duplicate-engine tests."""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Literal

from caseintake.domain.model import (
    CaseCategory,
    CaseRecord,
    DuplicateCandidate,
    ResolutionAuditEntry,
    pair_key,
)
from caseintake.domain.ports.unit_of_work import DuplicateRepositories

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable
    from uuid import UUID

    from caseintake.domain.model import CandidateDecision, CandidateStatus, MatchType

BASE_TIME = datetime(2025, 3, 1, 8, 0, tzinfo=UTC)
TAIPEI = (25.0330, 121.5654)


def make_case(
    case_id: str,
    *,
    reported_at: datetime = BASE_TIME,
    latitude: float | None = None,
    longitude: float | None = None,
    description: str = "",
    external_case_id: str | None = None,
    chip_id: str | None = None,
    category: CaseCategory = CaseCategory.GENERAL,
) -> CaseRecord:
    """Create a case with just the fields the detection rules look at."""

    return CaseRecord(
        id=case_id,
        category=category,
        title=f"Report {case_id}",
        description=description,
        location="Xinyi District",
        latitude=latitude,
        longitude=longitude,
        reported_at=reported_at,
        created_at=reported_at,
        updated_at=reported_at,
        external_case_id=external_case_id,
        chip_id=chip_id,
    )


class FakeCaseRepository:
    def __init__(self, cases: Iterable[CaseRecord] = ()) -> None:
        self.cases: dict[str, CaseRecord] = {case.id: case for case in cases}

    def add(self, entity: CaseRecord) -> None:
        self.cases[entity.id] = entity

    def get(self, case_id: str) -> CaseRecord | None:
        return self.cases.get(case_id)

    def get_many(self, case_ids: Iterable[str]) -> dict[str, CaseRecord]:
        return {
            case_id: self.cases[case_id]
            for case_id in dict.fromkeys(case_ids)
            if case_id in self.cases
        }

    def list_unmerged(self) -> list[CaseRecord]:
        unmerged = [case for case in self.cases.values() if not case.is_merged]
        return sorted(unmerged, key=lambda case: case.id)

    def list_merged_into(self, root_case_id: str) -> list[CaseRecord]:
        children = [case for case in self.cases.values() if case.merged_into_id == root_case_id]
        return sorted(children, key=lambda case: case.id)


class FakeCandidateRepository:
    """In-memory queue; ``apply_decision`` is a compare-and-set under a lock."""

    def __init__(self, candidates: Iterable[DuplicateCandidate] = ()) -> None:
        self.candidates: dict[UUID, DuplicateCandidate] = {}
        self._lock = threading.Lock()
        for candidate in candidates:
            self.add(candidate)

    def add(self, entity: DuplicateCandidate) -> None:
        with self._lock:
            self.candidates[entity.id] = entity

    def get(self, candidate_id: UUID) -> DuplicateCandidate | None:
        return self.candidates.get(candidate_id)

    def exists_for_pair(self, first_case_id: str, second_case_id: str) -> bool:
        key = pair_key(first_case_id, second_case_id)
        return any(candidate.pair == key for candidate in list(self.candidates.values()))

    def add_if_absent(self, candidate: DuplicateCandidate) -> bool:
        with self._lock:
            if any(existing.pair == candidate.pair for existing in self.candidates.values()):
                return False
            self.candidates[candidate.id] = candidate
            return True

    def pair_keys(self) -> set[tuple[str, str]]:
        return {candidate.pair for candidate in self.candidates.values()}

    def find(
        self,
        *,
        statuses: Collection[CandidateStatus] | None = None,
        match_type: MatchType | None = None,
        min_confidence: float | None = None,
        case_ids: Collection[str] | None = None,
        reviewed_by: str | None = None,
    ) -> list[DuplicateCandidate]:
        found: list[DuplicateCandidate] = []
        for candidate in self.candidates.values():
            if statuses is not None and candidate.status not in statuses:
                continue
            if match_type is not None and candidate.match_type is not match_type:
                continue
            if min_confidence is not None and candidate.confidence < min_confidence:
                continue
            if case_ids is not None and not any(candidate.involves(c) for c in case_ids):
                continue
            if reviewed_by is not None and candidate.reviewed_by != reviewed_by:
                continue
            found.append(candidate)
        return found

    def apply_decision(self, candidate: DuplicateCandidate, decision: CandidateDecision) -> bool:
        with self._lock:
            stored = self.candidates.get(candidate.id)
            if stored is None or stored.status is not decision.expected_status:
                return False
            stored.apply(decision)
            return True


class FakeAuditRepository:
    def __init__(self) -> None:
        self.entries: list[ResolutionAuditEntry] = []

    def add(self, entity: ResolutionAuditEntry) -> None:
        self.entries.append(entity)

    def query(
        self,
        *,
        case_id: str | None = None,
        reviewer_id: str | None = None,
    ) -> list[ResolutionAuditEntry]:
        return [
            entry
            for entry in self.entries
            if (case_id is None or case_id in (entry.primary_case_id, entry.duplicate_case_id))
            and (reviewer_id is None or entry.actor == reviewer_id)
        ]


class FakeUnitOfWork:
    """Unit of work capturing commit and rollback calls over shared fakes."""

    def __init__(self, repositories: DuplicateRepositories) -> None:
        self._repositories = repositories
        self.committed = False
        self.rollback_called = False

    @property
    def repositories(self) -> DuplicateRepositories:
        return self._repositories

    def __enter__(self) -> FakeUnitOfWork:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: object | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        return False

    def commit(self) -> None:
        self.committed = True

    def rollback(self) -> None:
        self.rollback_called = True


class FakeDuplicateStore:
    """Shared in-memory state; every ``unit_of_work()`` call opens a new unit."""

    def __init__(
        self,
        cases: Iterable[CaseRecord] = (),
        candidates: Iterable[DuplicateCandidate] = (),
    ) -> None:
        self.cases = FakeCaseRepository(cases)
        self.candidates = FakeCandidateRepository(candidates)
        self.audit = FakeAuditRepository()
        self.units: list[FakeUnitOfWork] = []

    def unit_of_work(self) -> FakeUnitOfWork:
        uow = FakeUnitOfWork(
            DuplicateRepositories(cases=self.cases, candidates=self.candidates, audit=self.audit)
        )
        self.units.append(uow)
        return uow

    @property
    def last_unit(self) -> FakeUnitOfWork:
        return self.units[-1]


if TYPE_CHECKING:
    from caseintake.domain.ports.persistence import (
        AuditRepository,
        CandidateRepository,
        CaseRepository,
    )
    from caseintake.domain.ports.unit_of_work import DuplicateUnitOfWork

    _case_repo: CaseRepository = FakeCaseRepository()
    _candidate_repo: CandidateRepository = FakeCandidateRepository()
    _audit_repo: AuditRepository = FakeAuditRepository()
    _uow_check: DuplicateUnitOfWork = FakeDuplicateStore().unit_of_work()
