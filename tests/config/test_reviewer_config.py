from __future__ import annotations

import pytest

from caseintake.config import (
    InvalidConfigurationValueError,
    MissingConfigurationError,
    get_reviewer_config,
)
from caseintake.domain.model import UserRole


def test_explicit_values_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CASEINTAKE_REVIEWER", "env-reviewer")
    monkeypatch.setenv("CASEINTAKE_REVIEWER_ROLE", "admin")

    config = get_reviewer_config(user_id="rev-1", role="Supervisor")

    assert config.user_id == "rev-1"
    assert config.role is UserRole.SUPERVISOR


def test_environment_fallback(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CASEINTAKE_REVIEWER", " env-reviewer ")
    monkeypatch.delenv("CASEINTAKE_REVIEWER_ROLE", raising=False)

    config = get_reviewer_config()

    assert config.user_id == "env-reviewer"
    assert config.role is UserRole.CASEWORKER


def test_missing_reviewer(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CASEINTAKE_REVIEWER", raising=False)

    with pytest.raises(MissingConfigurationError) as excinfo:
        get_reviewer_config(user_id="  ")

    assert "CASEINTAKE_REVIEWER" in str(excinfo.value)


def test_unknown_role(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CASEINTAKE_REVIEWER_ROLE", raising=False)

    with pytest.raises(InvalidConfigurationValueError):
        get_reviewer_config(user_id="rev-1", role="janitor")
