from __future__ import annotations

import pytest

from caseintake.domain.errors import AuthorizationError, SessionClosedError, ValidationError
from caseintake.domain.intake import ReviewerSession
from caseintake.domain.model import UserRole
from tests.helpers.cases import BASE_TIME


@pytest.mark.parametrize("role", [UserRole.CASEWORKER, UserRole.SUPERVISOR, UserRole.ADMIN])
def test_review_roles_may_resolve(role: UserRole) -> None:
    session = ReviewerSession.login(" rev-1 ", role=role, at=BASE_TIME)

    assert session.require_reviewer() == "rev-1"
    assert session.opened_at == BASE_TIME
    assert session.is_open


@pytest.mark.parametrize("role", [UserRole.FIELD_INVESTIGATOR, UserRole.PUBLIC])
def test_other_roles_are_refused(role: UserRole) -> None:
    session = ReviewerSession.login("user-9", role=role)

    with pytest.raises(AuthorizationError):
        session.require_reviewer()


def test_closed_session_is_refused() -> None:
    session = ReviewerSession.login("rev-1", role=UserRole.CASEWORKER)
    session.logout(at=BASE_TIME)
    session.logout()

    assert session.closed_at == BASE_TIME
    with pytest.raises(SessionClosedError):
        session.require_reviewer()


def test_login_requires_user_id() -> None:
    with pytest.raises(ValidationError):
        ReviewerSession.login("  ", role=UserRole.ADMIN)


def test_sessions_get_distinct_tokens() -> None:
    first = ReviewerSession.login("rev-1", role=UserRole.CASEWORKER)
    second = ReviewerSession.login("rev-1", role=UserRole.CASEWORKER)

    assert first.token != second.token
