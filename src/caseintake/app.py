"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING, Final
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError

from caseintake.adapters.intake import (
    ensure_submission,
    submission_to_case,
)
from caseintake.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, is_started, startup
from caseintake.config import get_detection_config
from caseintake.domain.duplicates import (
    audit,
    generator,
    queue,
    workflow,
)
from caseintake.domain.errors import DuplicateEngineError, UnknownCaseError, ValidationError
from caseintake.domain.intake import ReportWizard
from caseintake.domain.ports.unit_of_work import DuplicateUnitOfWork

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import datetime
    from uuid import UUID

    from caseintake.adapters.intake import ReportSubmissionInput
    from caseintake.config import DetectionConfig
    from caseintake.domain.duplicates import (
        CandidateFilter,
        GenerationResult,
        HistoryFilter,
        MatchProposal,
    )
    from caseintake.domain.intake import ReportDraft, ReviewerSession
    from caseintake.domain.model import CaseRecord, DuplicateCandidate, ResolutionAuditEntry

UnitOfWorkFactory = Callable[[], DuplicateUnitOfWork]

DRAFT_CASE_ID: Final[str] = "draft"


log = getLogger(__name__)


@dataclass(slots=True)
class DetectionBatchResult:
    """Pending candidates per requested case, plus the cases that failed."""

    candidates: dict[str, list[DuplicateCandidate]] = field(
        default_factory=dict[str, list["DuplicateCandidate"]]
    )
    failed: dict[str, str] = field(default_factory=dict[str, str])


def _unit_of_work(unit_of_work_factory: UnitOfWorkFactory | None) -> UnitOfWorkFactory:
    if unit_of_work_factory is not None:
        return unit_of_work_factory
    if not is_started():
        startup()
    return SqlAlchemyUnitOfWork


# Queries ---------------------------------------------------------------------


def list_pending_candidates(
    candidate_filter: CandidateFilter | None = None,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[DuplicateCandidate]:
    """Return the review queue, most confident first."""

    with _unit_of_work(unit_of_work_factory)() as uow:
        return queue.list_pending_candidates(uow.repositories.candidates, candidate_filter)


def list_resolution_history(
    history_filter: HistoryFilter | None = None,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[DuplicateCandidate]:
    with _unit_of_work(unit_of_work_factory)() as uow:
        return queue.list_resolution_history(uow.repositories.candidates, history_filter)


def list_audit_entries(
    *,
    case_id: str | None = None,
    reviewer_id: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[ResolutionAuditEntry]:
    with _unit_of_work(unit_of_work_factory)() as uow:
        return audit.list_audit_entries(
            uow.repositories.audit,
            case_id=case_id,
            reviewer_id=reviewer_id,
        )


def get_case(
    case_id: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> CaseRecord:
    with _unit_of_work(unit_of_work_factory)() as uow:
        case = uow.repositories.cases.get(case_id)
    if case is None:
        raise UnknownCaseError([case_id])
    return case


# Detection -------------------------------------------------------------------


def run_detection(
    *,
    config: DetectionConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    now: datetime | None = None,
) -> GenerationResult:
    """Scan every unmerged case and queue new candidates."""

    effective_config = config or get_detection_config()
    log.info(
        "Starting duplicate detection: radius=%sm, window=%sh, threshold=%s",
        effective_config.radius_meters,
        effective_config.window_hours,
        effective_config.location_threshold,
    )
    return generator.generate_candidates(
        unit_of_work_factory=_unit_of_work(unit_of_work_factory),
        config=effective_config,
        now=now,
    )


def detect_duplicates(
    case_ids: Iterable[str],
    *,
    config: DetectionConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    now: datetime | None = None,
) -> DetectionBatchResult:
    """Run detection for each case on its own; one failing case never sinks the batch."""

    effective_config = config or get_detection_config()
    factory = _unit_of_work(unit_of_work_factory)
    result = DetectionBatchResult()

    for case_id in dict.fromkeys(case_ids):
        try:
            get_case(case_id, unit_of_work_factory=factory)
            generated = generator.generate_candidates(
                unit_of_work_factory=factory,
                config=effective_config,
                case_ids=(case_id,),
                now=now,
            )
            if case_id in generated.failed:
                raise ValidationError(generated.failed[case_id])  # noqa: TRY301
            with factory() as uow:
                pending = queue.pending_by_case(uow.repositories.candidates, (case_id,))
        except (DuplicateEngineError, SQLAlchemyError) as exc:
            log.exception("Duplicate detection failed for case %s", case_id)
            result.failed[case_id] = str(exc)
            continue
        result.candidates[case_id] = pending[case_id]

    log.info(
        "Batch detection finished: cases=%s, failed=%s",
        len(result.candidates),
        len(result.failed),
    )
    return result


def check_draft(
    draft: ReportDraft,
    *,
    config: DetectionConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[MatchProposal]:
    """Pre-filing check of an unsaved report against the stored cases."""

    effective_config = config or get_detection_config()
    subject = draft.to_case(DRAFT_CASE_ID, reported_by=DRAFT_CASE_ID)
    with _unit_of_work(unit_of_work_factory)() as uow:
        others = uow.repositories.cases.list_unmerged()
    return generator.find_matches(subject, others, effective_config)


def start_report_wizard(
    *,
    config: DetectionConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ReportWizard:
    check = partial(check_draft, config=config, unit_of_work_factory=unit_of_work_factory)
    return ReportWizard(duplicate_check=check)


# Resolution ------------------------------------------------------------------


def approve(
    candidate_id: UUID,
    *,
    session: ReviewerSession,
    primary_case_id: str,
    duplicate_case_ids: Sequence[str],
    notes: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    now: datetime | None = None,
) -> DuplicateCandidate:
    reviewer_id = session.require_reviewer()
    return workflow.approve(
        unit_of_work_factory=_unit_of_work(unit_of_work_factory),
        candidate_id=candidate_id,
        primary_case_id=primary_case_id,
        duplicate_case_ids=duplicate_case_ids,
        notes=notes,
        reviewer_id=reviewer_id,
        now=now,
    )


def reject(
    candidate_id: UUID,
    *,
    session: ReviewerSession,
    reason: str,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    now: datetime | None = None,
) -> DuplicateCandidate:
    reviewer_id = session.require_reviewer()
    return workflow.reject(
        unit_of_work_factory=_unit_of_work(unit_of_work_factory),
        candidate_id=candidate_id,
        reason=reason,
        reviewer_id=reviewer_id,
        now=now,
    )


def create_manual_candidate(
    primary_case_id: str,
    duplicate_case_id: str,
    *,
    session: ReviewerSession,
    confidence: float = 1.0,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    now: datetime | None = None,
) -> DuplicateCandidate:
    reviewer_id = session.require_reviewer()
    return workflow.create_manual_candidate(
        unit_of_work_factory=_unit_of_work(unit_of_work_factory),
        primary_case_id=primary_case_id,
        duplicate_case_id=duplicate_case_id,
        created_by=reviewer_id,
        confidence=confidence,
        now=now,
    )


# Intake ----------------------------------------------------------------------


def file_report(
    payload: ReportSubmissionInput,
    *,
    reported_by: str = "public",
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    now: datetime | None = None,
) -> CaseRecord:
    """Store a validated submission as a new case."""

    submission = ensure_submission(payload)
    case_id = submission.id or _new_case_id()
    case = submission_to_case(submission, case_id=case_id, reported_by=reported_by, at=now)
    with _unit_of_work(unit_of_work_factory)() as uow:
        if uow.repositories.cases.get(case_id) is not None:
            raise ValidationError(f"Case {case_id} already exists")
        uow.repositories.cases.add(case)
        uow.commit()

    log.info("Filed %s case %s at %s", case.category.value, case.id, case.location)
    return case


def _new_case_id() -> str:
    return f"CASE-{uuid4().hex[:12].upper()}"
