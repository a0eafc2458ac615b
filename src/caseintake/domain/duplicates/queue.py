"""Query contract of the suggestion queue."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from caseintake.domain.errors import ValidationError
from caseintake.domain.model import CandidateStatus

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from caseintake.domain.model import DuplicateCandidate, MatchType
    from caseintake.domain.ports.persistence import CandidateRepository

RESOLVED_STATUSES = (CandidateStatus.APPROVED, CandidateStatus.REJECTED)


@dataclass(frozen=True, slots=True)
class CandidateFilter:
    match_type: MatchType | None = None
    min_confidence: float | None = None

    def __post_init__(self) -> None:
        if self.min_confidence is not None and not (
            math.isfinite(self.min_confidence) and 0.0 <= self.min_confidence <= 1.0
        ):
            raise ValidationError(
                f"min_confidence must lie in [0, 1], got {self.min_confidence}"
            )


@dataclass(frozen=True, slots=True)
class HistoryFilter:
    status: CandidateStatus | None = None
    reviewed_by: str | None = None
    case_id: str | None = None
    match_type: MatchType | None = None

    def __post_init__(self) -> None:
        if self.status is CandidateStatus.PENDING:
            raise ValidationError("Resolution history only holds approved or rejected candidates")


def queue_order(candidate: DuplicateCandidate) -> tuple[float, datetime, str]:
    """Most confident first, then oldest first; the id makes the order total."""

    return (-candidate.confidence, candidate.created_at, str(candidate.id))


def history_order(candidate: DuplicateCandidate) -> tuple[float, float, str]:
    reviewed = candidate.reviewed_at or candidate.created_at
    return (-reviewed.timestamp(), -candidate.created_at.timestamp(), str(candidate.id))


def list_pending_candidates(
    repository: CandidateRepository,
    candidate_filter: CandidateFilter | None = None,
) -> list[DuplicateCandidate]:
    effective = candidate_filter or CandidateFilter()
    found = repository.find(
        statuses=(CandidateStatus.PENDING,),
        match_type=effective.match_type,
        min_confidence=effective.min_confidence,
    )
    return sorted(found, key=queue_order)


def pending_by_case(
    repository: CandidateRepository,
    case_ids: Iterable[str],
) -> dict[str, list[DuplicateCandidate]]:
    """Map each requested case id to its pending candidates (possibly none)."""

    requested = list(dict.fromkeys(case_ids))
    grouped: dict[str, list[DuplicateCandidate]] = {case_id: [] for case_id in requested}
    if not requested:
        return grouped
    for candidate in repository.find(statuses=(CandidateStatus.PENDING,), case_ids=requested):
        for case_id in (candidate.primary_case_id, candidate.duplicate_case_id):
            if case_id in grouped:
                grouped[case_id].append(candidate)
    for candidates in grouped.values():
        candidates.sort(key=queue_order)
    return grouped


def list_resolution_history(
    repository: CandidateRepository,
    history_filter: HistoryFilter | None = None,
) -> list[DuplicateCandidate]:
    """Resolved candidates, most recently reviewed first."""

    effective = history_filter or HistoryFilter()
    statuses = (effective.status,) if effective.status is not None else RESOLVED_STATUSES
    found = repository.find(
        statuses=statuses,
        match_type=effective.match_type,
        case_ids=(effective.case_id,) if effective.case_id else None,
        reviewed_by=effective.reviewed_by,
    )
    return sorted(found, key=history_order)
