"""Resolution workflow for duplicate candidates.

Every operation runs in exactly one unit of work. The terminal transition is
applied by the repository as a compare-and-set on ``(id, pending)``, so two
reviewers acting on the same candidate cannot both win.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from caseintake.domain.duplicates.audit import record_resolution
from caseintake.domain.duplicates.merge import execute_merge, plan_merge
from caseintake.domain.errors import (
    CandidateConflictError,
    CandidateNotFoundError,
    DuplicatePairError,
    UnknownCaseError,
    ValidationError,
)
from caseintake.domain.model import (
    CandidateStatus,
    DuplicateCandidate,
    MatchType,
    ResolutionAction,
    utcnow,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence
    from datetime import datetime
    from uuid import UUID

    from caseintake.domain.model import CandidateDecision, CaseRecord
    from caseintake.domain.ports.unit_of_work import DuplicateRepositories, DuplicateUnitOfWork


log = getLogger(__name__)


def approve(
    *,
    unit_of_work_factory: Callable[[], DuplicateUnitOfWork],
    candidate_id: UUID,
    primary_case_id: str,
    duplicate_case_ids: Sequence[str],
    notes: str | None,
    reviewer_id: str,
    now: datetime | None = None,
) -> DuplicateCandidate:
    """Merge the duplicates into the primary and mark the candidate approved.

    ``primary_case_id`` must be one member of the candidate pair and
    ``duplicate_case_ids`` must contain the other; further duplicates are
    merged into the same primary. If the primary was itself merged earlier the
    merge is redirected to its root, and the candidate records that root as
    its primary.
    """

    reviewer = _require_text(reviewer_id, "reviewer_id")
    primary_id = _require_text(primary_case_id, "primary_case_id")
    duplicates = _unique_ids(duplicate_case_ids)
    if not duplicates:
        raise ValidationError("At least one duplicate case id is required")
    if primary_id in duplicates:
        raise ValidationError(f"Case {primary_id} cannot be both primary and duplicate")
    cleaned_notes = notes.strip() if notes and notes.strip() else None
    moment = now or utcnow()

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        candidate = _load_candidate(repositories, candidate_id)
        decision = candidate.decide(
            ResolutionAction.APPROVE,
            reviewed_by=reviewer,
            reviewed_at=moment,
            primary_case_id=primary_id,
            notes=cleaned_notes,
        )
        if decision.duplicate_case_id not in duplicates:
            raise ValidationError(
                f"Duplicate cases must include {decision.duplicate_case_id} "
                f"of candidate {candidate.id}"
            )

        cases = _load_cases(repositories, (primary_id, *duplicates))
        plan = plan_merge(
            repositories.cases,
            primary=cases[primary_id],
            duplicates=[cases[case_id] for case_id in duplicates],
        )
        if plan.redirected:
            decision = decision.redirected_to(plan.root.id)
        _compare_and_set(repositories, candidate, decision)
        outcome = execute_merge(
            repositories.cases,
            plan,
            merged_by=reviewer,
            notes=cleaned_notes,
            at=moment,
        )
        for duplicate_id in outcome.merged_case_ids:
            record_resolution(
                repositories.audit,
                candidate,
                action=ResolutionAction.APPROVE,
                actor=reviewer,
                primary_case_id=outcome.root_id,
                duplicate_case_id=duplicate_id,
                timestamp=moment,
                notes=cleaned_notes,
            )
        uow.commit()

    log.info(
        "Candidate %s approved by %s: merged %s into %s",
        candidate.id,
        reviewer,
        ", ".join(outcome.merged_case_ids),
        outcome.root_id,
    )
    return candidate


def reject(
    *,
    unit_of_work_factory: Callable[[], DuplicateUnitOfWork],
    candidate_id: UUID,
    reason: str,
    reviewer_id: str,
    now: datetime | None = None,
) -> DuplicateCandidate:
    """Dismiss the candidate as not a true duplicate. ``reason`` is mandatory."""

    reviewer = _require_text(reviewer_id, "reviewer_id")
    cleaned_reason = _require_text(reason, "reason")
    moment = now or utcnow()

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        candidate = _load_candidate(repositories, candidate_id)
        decision = candidate.decide(
            ResolutionAction.REJECT,
            reviewed_by=reviewer,
            reviewed_at=moment,
            reason=cleaned_reason,
        )
        _compare_and_set(repositories, candidate, decision)
        record_resolution(
            repositories.audit,
            candidate,
            action=ResolutionAction.REJECT,
            actor=reviewer,
            primary_case_id=decision.primary_case_id,
            duplicate_case_id=decision.duplicate_case_id,
            timestamp=moment,
            reason=cleaned_reason,
        )
        uow.commit()

    log.info("Candidate %s rejected by %s", candidate.id, reviewer)
    return candidate


def create_manual_candidate(
    *,
    unit_of_work_factory: Callable[[], DuplicateUnitOfWork],
    primary_case_id: str,
    duplicate_case_id: str,
    created_by: str,
    confidence: float = 1.0,
    now: datetime | None = None,
) -> DuplicateCandidate:
    """Record a reviewer-asserted link between two cases."""

    creator = _require_text(created_by, "created_by")
    if primary_case_id == duplicate_case_id:
        raise ValidationError(f"A case cannot duplicate itself: {primary_case_id}")

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        cases = _load_cases(repositories, (primary_case_id, duplicate_case_id))
        merged = sorted(case_id for case_id, case in cases.items() if case.is_merged)
        if merged:
            raise ValidationError(f"Merged cases cannot be linked: {', '.join(merged)}")
        candidate = DuplicateCandidate(
            primary_case_id=primary_case_id,
            duplicate_case_id=duplicate_case_id,
            match_type=MatchType.MANUAL,
            confidence=confidence,
            created_at=now or utcnow(),
            created_by=creator,
        )
        if not repositories.candidates.add_if_absent(candidate):
            raise DuplicatePairError(primary_case_id, duplicate_case_id)
        uow.commit()

    log.info(
        "Manual candidate %s created by %s for %s/%s",
        candidate.id,
        creator,
        primary_case_id,
        duplicate_case_id,
    )
    return candidate


def _compare_and_set(
    repositories: DuplicateRepositories,
    candidate: DuplicateCandidate,
    decision: CandidateDecision,
) -> None:
    if not repositories.candidates.apply_decision(candidate, decision):
        log.warning(
            "Candidate %s was resolved concurrently; %s by %s refused",
            candidate.id,
            decision.action.value,
            decision.reviewed_by,
        )
        raise CandidateConflictError(candidate.id, expected=CandidateStatus.PENDING)


def _load_candidate(repositories: DuplicateRepositories, candidate_id: UUID) -> DuplicateCandidate:
    candidate = repositories.candidates.get(candidate_id)
    if candidate is None:
        raise CandidateNotFoundError(candidate_id)
    if not candidate.is_pending:
        log.warning(
            "Candidate %s is already %s; refusing to resolve it again",
            candidate.id,
            candidate.status.value,
        )
    return candidate


def _load_cases(repositories: DuplicateRepositories, case_ids: Iterable[str]) -> dict[str, CaseRecord]:
    wanted = _unique_ids(case_ids)
    found = repositories.cases.get_many(wanted)
    missing = [case_id for case_id in wanted if case_id not in found]
    if missing:
        raise UnknownCaseError(missing)
    return found


def _unique_ids(case_ids: Iterable[str]) -> tuple[str, ...]:
    cleaned = (case_id.strip() for case_id in case_ids)
    return tuple(dict.fromkeys(case_id for case_id in cleaned if case_id))


def _require_text(value: str | None, name: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{name} must not be blank")
    return value.strip()
