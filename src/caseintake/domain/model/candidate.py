"""Duplicate candidates and their resolution state machine."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Final

from caseintake.domain.errors import CandidateConflictError, ValidationError
from caseintake.domain.model.entity import Entity, utcnow
from caseintake.domain.model.enums import CandidateStatus, MatchType, ResolutionAction

if TYPE_CHECKING:
    from datetime import datetime

SYSTEM_ACTOR: Final[str] = "system"

# pending is the only state with outgoing edges; there is no way back to it.
TRANSITIONS: Final[dict[tuple[CandidateStatus, ResolutionAction], CandidateStatus]] = {
    (CandidateStatus.PENDING, ResolutionAction.APPROVE): CandidateStatus.APPROVED,
    (CandidateStatus.PENDING, ResolutionAction.REJECT): CandidateStatus.REJECTED,
}


def pair_key(first_case_id: str, second_case_id: str) -> tuple[str, str]:
    """Return the natural key of an unordered case pair."""

    if first_case_id == second_case_id:
        raise ValidationError(f"A case cannot duplicate itself: {first_case_id}")
    low, high = sorted((first_case_id, second_case_id))
    return low, high


def next_status(status: CandidateStatus, action: ResolutionAction) -> CandidateStatus | None:
    return TRANSITIONS.get((status, action))


@dataclass(frozen=True, slots=True)
class CandidateDecision:
    """A validated terminal transition, applied atomically by the repository."""

    action: ResolutionAction
    expected_status: CandidateStatus
    status: CandidateStatus
    reviewed_by: str
    reviewed_at: datetime
    primary_case_id: str
    duplicate_case_id: str
    notes: str | None = None
    reason: str | None = None

    def redirected_to(self, root_case_id: str) -> CandidateDecision:
        """Record the root primary a redirected merge actually went to."""

        return replace(self, primary_case_id=root_case_id)


@dataclass(eq=False, kw_only=True)
class DuplicateCandidate(Entity):
    """Hypothesis that two case reports describe one incident."""

    primary_case_id: str
    duplicate_case_id: str
    match_type: MatchType
    confidence: float
    status: CandidateStatus = CandidateStatus.PENDING
    notes: str | None = None
    reason: str | None = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    created_at: datetime = field(default_factory=utcnow)
    created_by: str = SYSTEM_ACTOR

    pair_low: str = field(init=False, repr=False)
    pair_high: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not (math.isfinite(self.confidence) and 0.0 <= self.confidence <= 1.0):
            raise ValidationError(f"Confidence must lie in [0, 1], got {self.confidence}")
        self.pair_low, self.pair_high = pair_key(self.primary_case_id, self.duplicate_case_id)

    @property
    def pair(self) -> tuple[str, str]:
        return self.pair_low, self.pair_high

    @property
    def is_pending(self) -> bool:
        return self.status is CandidateStatus.PENDING

    def counterpart(self, case_id: str) -> str:
        """Return the other member of the pair."""

        if case_id == self.primary_case_id:
            return self.duplicate_case_id
        if case_id == self.duplicate_case_id:
            return self.primary_case_id
        raise ValidationError(f"Case {case_id} is not part of candidate {self.id}")

    def involves(self, case_id: str) -> bool:
        return case_id in (self.primary_case_id, self.duplicate_case_id)

    def decide(
        self,
        action: ResolutionAction,
        *,
        reviewed_by: str,
        reviewed_at: datetime | None = None,
        primary_case_id: str | None = None,
        notes: str | None = None,
        reason: str | None = None,
    ) -> CandidateDecision:
        """Validate a terminal transition without applying it.

        ``primary_case_id`` lets a reviewer flip the generator's orientation of
        the pair; it must name one of the two members.
        """

        target = next_status(self.status, action)
        if target is None:
            raise CandidateConflictError(
                self.id,
                expected=CandidateStatus.PENDING,
                actual=self.status,
            )
        primary = primary_case_id or self.primary_case_id
        duplicate = self.counterpart(primary)
        return CandidateDecision(
            action=action,
            expected_status=self.status,
            status=target,
            reviewed_by=reviewed_by,
            reviewed_at=reviewed_at or utcnow(),
            primary_case_id=primary,
            duplicate_case_id=duplicate,
            notes=notes,
            reason=reason,
        )

    def apply(self, decision: CandidateDecision) -> None:
        if self.status is not decision.expected_status:
            raise CandidateConflictError(
                self.id,
                expected=decision.expected_status,
                actual=self.status,
            )
        self.status = decision.status
        self.primary_case_id = decision.primary_case_id
        self.duplicate_case_id = decision.duplicate_case_id
        self.reviewed_by = decision.reviewed_by
        self.reviewed_at = decision.reviewed_at
        self.notes = decision.notes
        self.reason = decision.reason
