"""Audit records for resolution decisions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from caseintake.domain.model.entity import Entity, utcnow

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from caseintake.domain.model.enums import ResolutionAction


@dataclass(eq=False, kw_only=True)
class ResolutionAuditEntry(Entity):
    """Append-only record of a resolution that actually took effect."""

    candidate_id: UUID
    actor: str
    action: ResolutionAction
    primary_case_id: str
    duplicate_case_id: str
    timestamp: datetime = field(default_factory=utcnow)
    notes: str | None = None
    reason: str | None = None
