"""Report intake: wizard state machine and reviewer sessions."""

from __future__ import annotations

from .session import REVIEW_ROLES, Reviewer, ReviewerSession
from .wizard import (
    TRANSITIONS,
    IncompleteStepError,
    ReportDraft,
    ReportWizard,
    WizardEvent,
    WizardStep,
    WizardTransitionError,
)

__all__ = [
    "REVIEW_ROLES",
    "TRANSITIONS",
    "IncompleteStepError",
    "ReportDraft",
    "ReportWizard",
    "Reviewer",
    "ReviewerSession",
    "WizardEvent",
    "WizardStep",
    "WizardTransitionError",
]
