"""Duplicate-case detection and merge resolution."""

from __future__ import annotations

from .audit import list_audit_entries, record_resolution
from .generator import (
    GenerationResult,
    MatchProposal,
    find_matches,
    generate_candidates,
    propose_matches,
)
from .merge import MergeOutcome, MergePlan, execute_merge, plan_merge, resolve_root
from .queue import (
    CandidateFilter,
    HistoryFilter,
    list_pending_candidates,
    list_resolution_history,
    pending_by_case,
    queue_order,
)
from .scoring import (
    LocationEvidence,
    LocationScore,
    alert_level,
    clamp_confidence,
    haversine_m,
    jaccard,
    score_chip_id,
    score_external_id,
    score_location,
    tokenize,
)
from .workflow import approve, create_manual_candidate, reject

__all__ = [
    "CandidateFilter",
    "GenerationResult",
    "HistoryFilter",
    "LocationEvidence",
    "LocationScore",
    "MatchProposal",
    "MergeOutcome",
    "MergePlan",
    "alert_level",
    "approve",
    "clamp_confidence",
    "create_manual_candidate",
    "execute_merge",
    "find_matches",
    "generate_candidates",
    "haversine_m",
    "jaccard",
    "list_audit_entries",
    "list_pending_candidates",
    "list_resolution_history",
    "pending_by_case",
    "plan_merge",
    "propose_matches",
    "queue_order",
    "record_resolution",
    "reject",
    "resolve_root",
    "score_chip_id",
    "score_external_id",
    "score_location",
    "tokenize",
]
