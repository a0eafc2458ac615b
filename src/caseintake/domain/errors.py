"""Domain error hierarchy.

Validation errors are raised synchronously at the boundary and are never
retried. Conflict errors mean the caller acted on stale state and should
refresh before trying again.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID

    from caseintake.domain.model.enums import CandidateStatus


class DuplicateEngineError(Exception):
    """Base class for errors raised by the duplicate-resolution engine."""


class ValidationError(DuplicateEngineError, ValueError):
    """Raised when a request is malformed or references unknown data."""


class UnknownCaseError(ValidationError):
    """Raised when one or more case identifiers do not exist."""

    def __init__(self, case_ids: Iterable[str]) -> None:
        self.case_ids = tuple(sorted(case_ids))
        super().__init__(f"Unknown case identifiers: {', '.join(self.case_ids)}")


class CandidateNotFoundError(ValidationError, LookupError):
    """Raised when a duplicate candidate does not exist."""

    def __init__(self, candidate_id: UUID) -> None:
        self.candidate_id = candidate_id
        super().__init__(f"Duplicate candidate not found: {candidate_id}")


class ConflictError(DuplicateEngineError):
    """Raised when an action conflicts with the current persisted state."""


class CandidateConflictError(ConflictError):
    """Raised when a candidate is no longer in the state an action expects."""

    def __init__(
        self,
        candidate_id: UUID,
        *,
        expected: CandidateStatus,
        actual: CandidateStatus | None = None,
    ) -> None:
        self.candidate_id = candidate_id
        self.expected = expected
        self.actual = actual
        detail = f"expected={expected.value}"
        if actual is not None:
            detail += f", actual={actual.value}"
        super().__init__(f"Candidate {candidate_id} cannot be resolved: {detail}")


class DuplicatePairError(ConflictError):
    """Raised when a candidate already exists for a case pair."""

    def __init__(self, first_case_id: str, second_case_id: str) -> None:
        self.case_ids = tuple(sorted((first_case_id, second_case_id)))
        super().__init__(
            f"A duplicate candidate already exists for cases {self.case_ids[0]} "
            f"and {self.case_ids[1]}"
        )


class MergeChainError(ConflictError):
    """Raised when a merge would make a case point at a non-root primary."""

    def __init__(self, case_id: str, *, root_id: str | None) -> None:
        self.case_id = case_id
        self.root_id = root_id
        super().__init__(f"Case {case_id} is already merged into root case {root_id}")


class CaseMergedError(ConflictError):
    """Raised when workflow progression is attempted on a merged case."""

    def __init__(self, case_id: str, *, action: str) -> None:
        self.case_id = case_id
        self.action = action
        super().__init__(f"Case {case_id} has been merged; cannot {action}")


class AuthorizationError(DuplicateEngineError, PermissionError):
    """Raised when a reviewer may not perform the requested action."""


class SessionClosedError(AuthorizationError):
    """Raised when a reviewer session is used after logout."""
