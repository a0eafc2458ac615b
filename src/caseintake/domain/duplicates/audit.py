"""Append-only audit trail of resolution decisions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from caseintake.domain.model import ResolutionAuditEntry

if TYPE_CHECKING:
    from datetime import datetime

    from caseintake.domain.model import DuplicateCandidate, ResolutionAction
    from caseintake.domain.ports.persistence import AuditRepository


def record_resolution(
    repository: AuditRepository,
    candidate: DuplicateCandidate,
    *,
    action: ResolutionAction,
    actor: str,
    primary_case_id: str,
    duplicate_case_id: str,
    timestamp: datetime,
    notes: str | None = None,
    reason: str | None = None,
) -> ResolutionAuditEntry:
    """Append one entry; callers do this last, inside the resolving transaction."""

    entry = ResolutionAuditEntry(
        candidate_id=candidate.id,
        actor=actor,
        action=action,
        primary_case_id=primary_case_id,
        duplicate_case_id=duplicate_case_id,
        timestamp=timestamp,
        notes=notes,
        reason=reason,
    )
    repository.add(entry)
    return entry


def list_audit_entries(
    repository: AuditRepository,
    *,
    case_id: str | None = None,
    reviewer_id: str | None = None,
) -> list[ResolutionAuditEntry]:
    entries = repository.query(case_id=case_id, reviewer_id=reviewer_id)
    return sorted(entries, key=lambda entry: (entry.timestamp, str(entry.id)))
