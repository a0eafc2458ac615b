"""Consolidation side effects of an approved duplicate candidate.

The executor works on objects loaded through the caller's unit of work and
never commits; a failure anywhere leaves the whole transaction to be rolled
back by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from caseintake.domain.errors import MergeChainError, ValidationError
from caseintake.domain.model import HISTORY_CASE_MERGED, utcnow

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from caseintake.domain.model import CaseRecord
    from caseintake.domain.ports.persistence import CaseRepository


log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MergePlan:
    """Checked merge request: every duplicate is unmerged and ``root`` is a root."""

    requested_primary_id: str
    root: CaseRecord
    duplicates: tuple[CaseRecord, ...]

    @property
    def redirected(self) -> bool:
        return self.root.id != self.requested_primary_id


@dataclass(frozen=True, slots=True)
class MergeOutcome:
    root_id: str
    merged_case_ids: tuple[str, ...]
    repointed_case_ids: tuple[str, ...]
    moved_attachments: int
    moved_history_entries: int


def resolve_root(cases: CaseRepository, case: CaseRecord) -> CaseRecord:
    """Return the root primary of ``case`` (the case itself when unmerged)."""

    if not case.is_merged:
        return case
    root_id = case.merged_into_id
    root = cases.get(root_id) if root_id else None
    if root is None or root.is_merged:
        # Only reachable with data written outside this engine.
        raise MergeChainError(case.id, root_id=root_id)
    return root


def plan_merge(
    cases: CaseRepository,
    *,
    primary: CaseRecord,
    duplicates: Sequence[CaseRecord],
) -> MergePlan:
    """Run the anti-chaining checks before anything is written."""

    if not duplicates:
        raise ValidationError("At least one duplicate case is required")
    root = resolve_root(cases, primary)
    seen: set[str] = set()
    for duplicate in duplicates:
        if duplicate.is_merged:
            raise MergeChainError(duplicate.id, root_id=duplicate.merged_into_id)
        if duplicate.id == root.id:
            raise ValidationError(
                f"Case {duplicate.id} is the root primary of {primary.id} and cannot be merged"
            )
        if duplicate.id in seen:
            raise ValidationError(f"Case {duplicate.id} is listed more than once")
        seen.add(duplicate.id)
    if root.id != primary.id:
        log.info("Primary %s is merged; redirecting merge to root %s", primary.id, root.id)
    return MergePlan(requested_primary_id=primary.id, root=root, duplicates=tuple(duplicates))


def execute_merge(
    cases: CaseRepository,
    plan: MergePlan,
    *,
    merged_by: str,
    notes: str | None = None,
    at: datetime | None = None,
) -> MergeOutcome:
    """Move records onto the root, flag both sides, and flatten older merges.

    Nothing is deleted; merged cases stay queryable.
    """

    moment = at or utcnow()
    root = plan.root
    moved_attachments = 0
    moved_history = 0
    repointed: list[str] = []

    for duplicate in plan.duplicates:
        attachments, history = root.absorb_records_from(duplicate)
        moved_attachments += attachments
        moved_history += history
        for child in cases.list_merged_into(duplicate.id):
            child.redirect_to(root, at=moment)
            repointed.append(child.id)
        duplicate.mark_merged_into(root, merged_by=merged_by, notes=notes, at=moment)

    root.mark_primary(at=moment)
    merged_ids = tuple(duplicate.id for duplicate in plan.duplicates)
    description = f"Merged duplicate case(s) {', '.join(merged_ids)}"
    if notes:
        description += f": {notes}"
    root.record_history(
        action=HISTORY_CASE_MERGED,
        description=description,
        performed_by=merged_by,
        performed_at=moment,
    )

    return MergeOutcome(
        root_id=root.id,
        merged_case_ids=merged_ids,
        repointed_case_ids=tuple(repointed),
        moved_attachments=moved_attachments,
        moved_history_entries=moved_history,
    )
