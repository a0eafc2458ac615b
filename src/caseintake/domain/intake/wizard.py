"""Public report wizard as an explicit finite-state machine.

Entering the review step runs the pre-filing duplicate check. When it finds
likely duplicates the wizard parks in ``DUPLICATE_WARNING`` until the
reporter acknowledges (``PROCEED``) or cancels.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from caseintake.domain.errors import ValidationError
from caseintake.domain.model import (
    HISTORY_CREATED,
    CaseCategory,
    CaseRecord,
    GeoPoint,
    utcnow,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime

    from caseintake.domain.duplicates.generator import MatchProposal


class WizardStep(StrEnum):
    SELECTION = "selection"
    LOCATION = "location"
    FORM = "form"
    EVIDENCE = "evidence"
    REVIEW = "review"
    DUPLICATE_WARNING = "duplicate_warning"
    SUBMITTED = "submitted"
    CANCELLED = "cancelled"


class WizardEvent(StrEnum):
    NEXT = "next"
    BACK = "back"
    PROCEED = "proceed"
    SUBMIT = "submit"
    CANCEL = "cancel"


TERMINAL_STEPS: Final[frozenset[WizardStep]] = frozenset(
    {WizardStep.SUBMITTED, WizardStep.CANCELLED}
)

TRANSITIONS: Final[dict[tuple[WizardStep, WizardEvent], WizardStep]] = {
    (WizardStep.SELECTION, WizardEvent.NEXT): WizardStep.LOCATION,
    (WizardStep.LOCATION, WizardEvent.BACK): WizardStep.SELECTION,
    (WizardStep.LOCATION, WizardEvent.NEXT): WizardStep.FORM,
    (WizardStep.FORM, WizardEvent.BACK): WizardStep.LOCATION,
    (WizardStep.FORM, WizardEvent.NEXT): WizardStep.EVIDENCE,
    (WizardStep.EVIDENCE, WizardEvent.BACK): WizardStep.FORM,
    (WizardStep.EVIDENCE, WizardEvent.NEXT): WizardStep.REVIEW,
    (WizardStep.REVIEW, WizardEvent.BACK): WizardStep.EVIDENCE,
    (WizardStep.REVIEW, WizardEvent.SUBMIT): WizardStep.SUBMITTED,
    (WizardStep.DUPLICATE_WARNING, WizardEvent.PROCEED): WizardStep.REVIEW,
    (WizardStep.DUPLICATE_WARNING, WizardEvent.BACK): WizardStep.EVIDENCE,
} | {
    (step, WizardEvent.CANCEL): WizardStep.CANCELLED
    for step in WizardStep
    if step not in TERMINAL_STEPS
}


class WizardTransitionError(ValidationError):
    """Raised for an event the current step does not accept."""

    def __init__(self, step: WizardStep, event: WizardEvent) -> None:
        self.step = step
        self.event = event
        super().__init__(f"Event {event.value!r} is not allowed in step {step.value!r}")


class IncompleteStepError(ValidationError):
    """Raised when leaving a step whose required data is missing."""

    def __init__(self, step: WizardStep, missing: Sequence[str]) -> None:
        self.step = step
        self.missing = tuple(missing)
        super().__init__(f"Step {step.value!r} is incomplete: {', '.join(self.missing)}")


@dataclass(kw_only=True)
class ReportDraft:
    """Data collected by the wizard so far."""

    category: CaseCategory | None = None
    location: str = ""
    latitude: float | None = None
    longitude: float | None = None
    title: str = ""
    description: str = ""
    external_case_id: str | None = None
    chip_id: str | None = None
    form: object | None = None
    evidence: list[str] = field(default_factory=list[str])

    def missing_for(self, step: WizardStep) -> list[str]:
        missing: list[str] = []
        if step is WizardStep.SELECTION and self.category is None:
            missing.append("category")
        elif step is WizardStep.LOCATION:
            if not self.location.strip():
                missing.append("location")
            if (self.latitude is None) != (self.longitude is None):
                missing.append("coordinates")
        elif step is WizardStep.FORM and not self.description.strip():
            missing.append("description")
        return missing

    def to_case(self, case_id: str, *, reported_by: str, at: datetime | None = None) -> CaseRecord:
        if self.category is None:
            raise IncompleteStepError(WizardStep.SELECTION, ["category"])
        point = (
            GeoPoint(self.latitude, self.longitude)
            if self.latitude is not None and self.longitude is not None
            else None
        )
        moment = at or utcnow()
        case = CaseRecord(
            id=case_id,
            category=self.category,
            title=self.title.strip() or _default_title(self),
            description=self.description.strip(),
            location=self.location.strip(),
            latitude=point.latitude if point else None,
            longitude=point.longitude if point else None,
            reported_at=moment,
            created_at=moment,
            updated_at=moment,
            external_case_id=self.external_case_id,
            chip_id=self.chip_id,
        )
        case.record_history(
            action=HISTORY_CREATED,
            description="Report submitted",
            performed_by=reported_by,
            performed_at=moment,
        )
        return case


type DuplicateCheck = Callable[[ReportDraft], Sequence[MatchProposal]]


@dataclass(kw_only=True)
class ReportWizard:
    duplicate_check: DuplicateCheck
    draft: ReportDraft = field(default_factory=ReportDraft)
    step: WizardStep = WizardStep.SELECTION
    warnings: tuple[MatchProposal, ...] = ()
    acknowledged: bool = False

    @property
    def finished(self) -> bool:
        return self.step in TERMINAL_STEPS

    def fire(self, event: WizardEvent) -> WizardStep:
        target = TRANSITIONS.get((self.step, event))
        if target is None:
            raise WizardTransitionError(self.step, event)
        if event is WizardEvent.NEXT:
            missing = self.draft.missing_for(self.step)
            if missing:
                raise IncompleteStepError(self.step, missing)
        if target is WizardStep.REVIEW and event is WizardEvent.NEXT:
            target = self._enter_review()
        elif event is WizardEvent.PROCEED:
            self.acknowledged = True
        self.step = target
        return target

    def next(self) -> WizardStep:
        return self.fire(WizardEvent.NEXT)

    def back(self) -> WizardStep:
        return self.fire(WizardEvent.BACK)

    def proceed(self) -> WizardStep:
        return self.fire(WizardEvent.PROCEED)

    def submit(self) -> ReportDraft:
        self.fire(WizardEvent.SUBMIT)
        return self.draft

    def cancel(self) -> WizardStep:
        return self.fire(WizardEvent.CANCEL)

    def _enter_review(self) -> WizardStep:
        self.warnings = tuple(self.duplicate_check(self.draft))
        self.acknowledged = False
        if self.warnings:
            return WizardStep.DUPLICATE_WARNING
        return WizardStep.REVIEW


def _default_title(draft: ReportDraft) -> str:
    category = draft.category.value if draft.category is not None else "case"
    location = draft.location.strip()
    return f"{category} report at {location}" if location else f"{category} report"
