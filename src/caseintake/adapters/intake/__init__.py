"""Public interface for the intake payload adapter."""

from __future__ import annotations

from .schema import (
    CandidateRecord,
    CaseForm,
    Coordinates,
    GeneralForm,
    HouseholdVisitForm,
    ReportSubmission,
    ReportSubmissionInput,
    StrayDogVisitForm,
)
from .translator import (
    HISTORY_FORM_RECORDED,
    PUBLIC_REPORTER,
    candidate_to_record,
    describe_form,
    ensure_submission,
    record_to_candidate,
    submission_to_case,
    submission_to_draft,
)

__all__ = [
    "HISTORY_FORM_RECORDED",
    "PUBLIC_REPORTER",
    "CandidateRecord",
    "CaseForm",
    "Coordinates",
    "GeneralForm",
    "HouseholdVisitForm",
    "ReportSubmission",
    "ReportSubmissionInput",
    "StrayDogVisitForm",
    "candidate_to_record",
    "describe_form",
    "ensure_submission",
    "record_to_candidate",
    "submission_to_case",
    "submission_to_draft",
]
