"""Explicit reviewer session, opened at login and closed at logout."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from caseintake.domain.errors import AuthorizationError, SessionClosedError, ValidationError
from caseintake.domain.model import UserRole, new_id, utcnow

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

REVIEW_ROLES: Final[frozenset[UserRole]] = frozenset(
    {UserRole.CASEWORKER, UserRole.SUPERVISOR, UserRole.ADMIN}
)


@dataclass(frozen=True, slots=True)
class Reviewer:
    user_id: str
    role: UserRole
    display_name: str | None = None

    @property
    def may_resolve(self) -> bool:
        return self.role in REVIEW_ROLES


@dataclass(eq=False, kw_only=True)
class ReviewerSession:
    reviewer: Reviewer
    token: UUID = field(default_factory=new_id)
    opened_at: datetime = field(default_factory=utcnow)
    closed_at: datetime | None = None

    @classmethod
    def login(
        cls,
        user_id: str,
        *,
        role: UserRole,
        display_name: str | None = None,
        at: datetime | None = None,
    ) -> ReviewerSession:
        if not user_id or not user_id.strip():
            raise ValidationError("user_id must not be blank")
        reviewer = Reviewer(user_id=user_id.strip(), role=role, display_name=display_name)
        return cls(reviewer=reviewer, opened_at=at or utcnow())

    @property
    def is_open(self) -> bool:
        return self.closed_at is None

    def logout(self, *, at: datetime | None = None) -> None:
        if self.closed_at is None:
            self.closed_at = at or utcnow()

    def require_open(self) -> Reviewer:
        if not self.is_open:
            raise SessionClosedError(f"Session {self.token} was closed at {self.closed_at}")
        return self.reviewer

    def require_reviewer(self) -> str:
        """Return the reviewer id when this session may resolve candidates."""

        reviewer = self.require_open()
        if not reviewer.may_resolve:
            raise AuthorizationError(
                f"Role {reviewer.role.value!r} may not resolve duplicate candidates"
            )
        return reviewer.user_id
