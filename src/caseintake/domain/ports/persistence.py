"""Ports for persisting cases, duplicate candidates and audit entries."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from caseintake.domain.model import CaseRecord, DuplicateCandidate, ResolutionAuditEntry

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable
    from uuid import UUID

    from caseintake.domain.model import CandidateDecision, CandidateStatus, MatchType


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class CaseRepository(Repository[CaseRecord], Protocol):
    """Access to the case store shared with the rest of the portal."""

    def get(self, case_id: str) -> CaseRecord | None: ...

    def get_many(self, case_ids: Iterable[str]) -> dict[str, CaseRecord]: ...

    def list_unmerged(self) -> list[CaseRecord]: ...

    def list_merged_into(self, root_case_id: str) -> list[CaseRecord]: ...


@runtime_checkable
class CandidateRepository(Repository[DuplicateCandidate], Protocol):
    """Durable suggestion queue keyed by the unordered case pair."""

    def get(self, candidate_id: UUID) -> DuplicateCandidate | None: ...

    def exists_for_pair(self, first_case_id: str, second_case_id: str) -> bool: ...

    def add_if_absent(self, candidate: DuplicateCandidate) -> bool:
        """Insert unless the pair already holds a candidate; return whether inserted."""
        ...

    def pair_keys(self) -> set[tuple[str, str]]: ...

    def find(
        self,
        *,
        statuses: Collection[CandidateStatus] | None = None,
        match_type: MatchType | None = None,
        min_confidence: float | None = None,
        case_ids: Collection[str] | None = None,
        reviewed_by: str | None = None,
    ) -> list[DuplicateCandidate]: ...

    def apply_decision(self, candidate: DuplicateCandidate, decision: CandidateDecision) -> bool:
        """Compare-and-set on ``(id, decision.expected_status)``; False when it lost."""
        ...


@runtime_checkable
class AuditRepository(Repository[ResolutionAuditEntry], Protocol):
    """Append-only resolution ledger."""

    def query(
        self,
        *,
        case_id: str | None = None,
        reviewer_id: str | None = None,
    ) -> list[ResolutionAuditEntry]: ...
