"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import exists, or_, select, update
from sqlalchemy.exc import IntegrityError

from caseintake.adapters.sqlalchemy.mappings import (
    case_record_table,
    duplicate_candidate_table,
    resolution_audit_table,
)
from caseintake.domain.model import (
    CaseRecord,
    DuplicateCandidate,
    MergeFlag,
    ResolutionAuditEntry,
    pair_key,
)

if TYPE_CHECKING:
    import uuid
    from collections.abc import Collection, Iterable

    from sqlalchemy.engine import CursorResult
    from sqlalchemy.orm import Session

    from caseintake.domain.model import CandidateDecision, CandidateStatus, MatchType

log = logging.getLogger(__name__)


class SqlAlchemyCaseRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: CaseRecord) -> None:
        self.session.add(entity)

    def get(self, case_id: str) -> CaseRecord | None:
        return self.session.get(CaseRecord, case_id)

    def get_many(self, case_ids: Iterable[str]) -> dict[str, CaseRecord]:
        wanted = list(dict.fromkeys(case_ids))
        if not wanted:
            return {}
        stmt = select(CaseRecord).where(case_record_table.c.id.in_(wanted))
        return {case.id: case for case in self.session.scalars(stmt)}

    def list_unmerged(self) -> list[CaseRecord]:
        stmt = (
            select(CaseRecord)
            .where(case_record_table.c.merge_flag != MergeFlag.MERGED)
            .order_by(case_record_table.c.reported_at, case_record_table.c.id)
        )
        return list(self.session.scalars(stmt))

    def list_merged_into(self, root_case_id: str) -> list[CaseRecord]:
        stmt = (
            select(CaseRecord)
            .where(case_record_table.c.merged_into_id == root_case_id)
            .order_by(case_record_table.c.id)
        )
        return list(self.session.scalars(stmt))


class SqlAlchemyCandidateRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: DuplicateCandidate) -> None:
        self.session.add(entity)

    def get(self, candidate_id: uuid.UUID) -> DuplicateCandidate | None:
        return self.session.get(DuplicateCandidate, candidate_id)

    def exists_for_pair(self, first_case_id: str, second_case_id: str) -> bool:
        low, high = pair_key(first_case_id, second_case_id)
        stmt = select(
            exists()
            .where(duplicate_candidate_table.c.pair_low == low)
            .where(duplicate_candidate_table.c.pair_high == high)
        )
        return bool(self.session.execute(stmt).scalar())

    def add_if_absent(self, candidate: DuplicateCandidate) -> bool:
        if self.exists_for_pair(candidate.pair_low, candidate.pair_high):
            return False
        try:
            with self.session.begin_nested():
                self.session.add(candidate)
        except IntegrityError:
            log.info(
                "Candidate for pair %s/%s inserted concurrently; skipping",
                candidate.pair_low,
                candidate.pair_high,
            )
            return False
        return True

    def pair_keys(self) -> set[tuple[str, str]]:
        stmt = select(duplicate_candidate_table.c.pair_low, duplicate_candidate_table.c.pair_high)
        return {(low, high) for low, high in self.session.execute(stmt)}

    def find(
        self,
        *,
        statuses: Collection[CandidateStatus] | None = None,
        match_type: MatchType | None = None,
        min_confidence: float | None = None,
        case_ids: Collection[str] | None = None,
        reviewed_by: str | None = None,
    ) -> list[DuplicateCandidate]:
        table = duplicate_candidate_table
        stmt = select(DuplicateCandidate)
        if statuses is not None:
            stmt = stmt.where(table.c.status.in_(list(statuses)))
        if match_type is not None:
            stmt = stmt.where(table.c.match_type == match_type)
        if min_confidence is not None:
            stmt = stmt.where(table.c.confidence >= min_confidence)
        if case_ids is not None:
            wanted = list(case_ids)
            stmt = stmt.where(
                or_(table.c.primary_case_id.in_(wanted), table.c.duplicate_case_id.in_(wanted))
            )
        if reviewed_by is not None:
            stmt = stmt.where(table.c.reviewed_by == reviewed_by)
        return list(self.session.scalars(stmt))

    def apply_decision(self, candidate: DuplicateCandidate, decision: CandidateDecision) -> bool:
        table = duplicate_candidate_table
        stmt = (
            update(table)
            .where(table.c.id == candidate.id)
            .where(table.c.status == decision.expected_status)
            .values(
                status=decision.status,
                primary_case_id=decision.primary_case_id,
                duplicate_case_id=decision.duplicate_case_id,
                reviewed_by=decision.reviewed_by,
                reviewed_at=decision.reviewed_at,
                notes=decision.notes,
                reason=decision.reason,
            )
        )
        result = cast("CursorResult[Any]", self.session.execute(stmt))
        if result.rowcount != 1:
            return False
        self.session.refresh(candidate)
        return True


class SqlAlchemyAuditRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: ResolutionAuditEntry) -> None:
        self.session.add(entity)

    def query(
        self,
        *,
        case_id: str | None = None,
        reviewer_id: str | None = None,
    ) -> list[ResolutionAuditEntry]:
        table = resolution_audit_table
        stmt = select(ResolutionAuditEntry)
        if case_id is not None:
            stmt = stmt.where(
                or_(table.c.primary_case_id == case_id, table.c.duplicate_case_id == case_id)
            )
        if reviewer_id is not None:
            stmt = stmt.where(table.c.actor == reviewer_id)
        stmt = stmt.order_by(table.c.timestamp, table.c.id)
        return list(self.session.scalars(stmt))


if TYPE_CHECKING:
    from caseintake.domain.ports.persistence import (
        AuditRepository,
        CandidateRepository,
        CaseRepository,
    )

    _session_stub = cast("Session", object())
    _case_repo: CaseRepository = SqlAlchemyCaseRepository(_session_stub)
    _candidate_repo: CandidateRepository = SqlAlchemyCandidateRepository(_session_stub)
    _audit_repo: AuditRepository = SqlAlchemyAuditRepository(_session_stub)
