"""Public domain model surface."""

from __future__ import annotations

from caseintake.domain.model.audit import ResolutionAuditEntry
from caseintake.domain.model.candidate import (
    SYSTEM_ACTOR,
    TRANSITIONS,
    CandidateDecision,
    DuplicateCandidate,
    next_status,
    pair_key,
)
from caseintake.domain.model.case import (
    HISTORY_ASSIGNED,
    HISTORY_CASE_MERGED,
    HISTORY_CREATED,
    HISTORY_REOPENED,
    HISTORY_STATUS_CHANGED,
    CaseAttachment,
    CaseHistoryEntry,
    CaseRecord,
    GeoPoint,
)
from caseintake.domain.model.entity import Entity, new_id, utcnow
from caseintake.domain.model.enums import (
    AlertLevel,
    CandidateStatus,
    CaseCategory,
    CaseStatus,
    MatchType,
    MergeFlag,
    ResolutionAction,
    UserRole,
)

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    "new_id",
    "utcnow",
    # enums
    "AlertLevel",
    "CandidateStatus",
    "CaseCategory",
    "CaseStatus",
    "MatchType",
    "MergeFlag",
    "ResolutionAction",
    "UserRole",
    # cases
    "CaseAttachment",
    "CaseHistoryEntry",
    "CaseRecord",
    "GeoPoint",
    "HISTORY_ASSIGNED",
    "HISTORY_CASE_MERGED",
    "HISTORY_CREATED",
    "HISTORY_REOPENED",
    "HISTORY_STATUS_CHANGED",
    # candidates
    "CandidateDecision",
    "DuplicateCandidate",
    "SYSTEM_ACTOR",
    "TRANSITIONS",
    "next_status",
    "pair_key",
    # audit
    "ResolutionAuditEntry",
]
