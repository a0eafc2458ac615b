"""Translate intake payloads into domain entities and candidates onto the wire."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Final

from caseintake.domain.intake import ReportDraft
from caseintake.domain.model import DuplicateCandidate, utcnow

from .schema import (
    CandidateRecord,
    GeneralForm,
    HouseholdVisitForm,
    ReportSubmission,
    ReportSubmissionInput,
    StrayDogVisitForm,
)

if TYPE_CHECKING:
    from datetime import datetime

    from caseintake.domain.model import CaseRecord

    from .schema import CaseForm


log = getLogger(__name__)

HISTORY_FORM_RECORDED: Final[str] = "form_recorded"
PUBLIC_REPORTER: Final[str] = "public"


def ensure_submission(payload: ReportSubmissionInput) -> ReportSubmission:
    if isinstance(payload, ReportSubmission):
        return payload
    return ReportSubmission.model_validate(payload)


def submission_to_draft(payload: ReportSubmissionInput) -> ReportDraft:
    """Return the wizard draft a submission corresponds to."""

    submission = ensure_submission(payload)
    coordinates = submission.coordinates
    return ReportDraft(
        category=submission.category,
        location=submission.location,
        latitude=coordinates.lat if coordinates else None,
        longitude=coordinates.lng if coordinates else None,
        title=submission.title or "",
        description=submission.description,
        external_case_id=submission.external_case_id,
        chip_id=_chip_id(submission),
        form=submission.form,
    )


def submission_to_case(
    payload: ReportSubmissionInput,
    *,
    case_id: str,
    reported_by: str = PUBLIC_REPORTER,
    at: datetime | None = None,
) -> CaseRecord:
    """Build a new case record; the form details become a history entry."""

    submission = ensure_submission(payload)
    moment = at or utcnow()
    draft = submission_to_draft(submission)
    case = draft.to_case(case_id, reported_by=reported_by, at=moment)
    if submission.reported_at is not None:
        case.reported_at = submission.reported_at
    if submission.form is not None:
        case.record_history(
            action=HISTORY_FORM_RECORDED,
            description=describe_form(submission.form),
            performed_by=reported_by,
            performed_at=moment,
        )
    if submission.bee_hive_size or submission.bee_hive_position:
        log.debug(
            "Bee report %s: hive size=%s, position=%s",
            case_id,
            submission.bee_hive_size,
            submission.bee_hive_position,
        )
    return case


def describe_form(form: CaseForm) -> str:
    if isinstance(form, HouseholdVisitForm):
        parts = [
            f"owner={form.owner_name or 'unknown'}",
            f"environment={form.environment}",
            f"water={form.water}",
            f"food={form.food}",
            f"shelter={form.shelter}",
            f"animal={form.animal_status}",
            f"microchip={form.microchip_status}",
            f"vaccine={form.vaccine_status}",
            f"neutering={form.neutering_status}",
        ]
    elif isinstance(form, StrayDogVisitForm):
        parts = [
            f"dogs={form.dog_count}",
            f"behavior={form.behavior}",
            f"trap_placed={'yes' if form.trap_placed else 'no'}",
            f"gender={form.dog_gender}",
            f"ear_notch={form.ear_notch}",
            f"capture={form.capture_difficulty}",
            f"cooperation={form.reporter_cooperation}",
        ]
        if form.dog_color:
            parts.append(f"color={form.dog_color}")
    elif isinstance(form, GeneralForm):
        parts = [f"action={form.action}"]
        if form.notes:
            parts.append(f"notes={form.notes}")
    else:  # pragma: no cover
        raise TypeError(f"Unsupported form type: {type(form).__name__}")
    return f"{form.form_type}: " + ", ".join(parts)


def candidate_to_record(candidate: DuplicateCandidate) -> CandidateRecord:
    return CandidateRecord(
        id=candidate.id,
        primary_case_id=candidate.primary_case_id,
        duplicate_case_id=candidate.duplicate_case_id,
        match_type=candidate.match_type,
        confidence=candidate.confidence,
        status=candidate.status,
        notes=candidate.notes,
        reason=candidate.reason,
        reviewed_by=candidate.reviewed_by,
        reviewed_at=candidate.reviewed_at,
        created_at=candidate.created_at,
    )


def record_to_candidate(record: CandidateRecord) -> DuplicateCandidate:
    return DuplicateCandidate(
        id=record.id,
        primary_case_id=record.primary_case_id,
        duplicate_case_id=record.duplicate_case_id,
        match_type=record.match_type,
        confidence=record.confidence,
        status=record.status,
        notes=record.notes,
        reason=record.reason,
        reviewed_by=record.reviewed_by,
        reviewed_at=record.reviewed_at,
        created_at=record.created_at,
    )


def _chip_id(submission: ReportSubmission) -> str | None:
    if submission.chip_id is not None:
        return submission.chip_id
    form = submission.form
    if isinstance(form, HouseholdVisitForm):
        return form.microchip_number
    return None
