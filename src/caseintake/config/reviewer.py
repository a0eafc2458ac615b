"""Reviewer identity used by the command line."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

from caseintake.domain.model.enums import UserRole

from .env import require_env_vars
from .errors import InvalidConfigurationValueError

REVIEWER_ENV: Final[str] = "CASEINTAKE_REVIEWER"
REVIEWER_ROLE_ENV: Final[str] = "CASEINTAKE_REVIEWER_ROLE"


@dataclass(frozen=True, slots=True)
class ReviewerConfig:
    user_id: str
    role: UserRole = UserRole.CASEWORKER


def get_reviewer_config(
    *,
    user_id: str | None = None,
    role: str | None = None,
) -> ReviewerConfig:
    """Resolve the acting reviewer from explicit values or the environment."""

    resolved_id = user_id.strip() if user_id and user_id.strip() else None
    if resolved_id is None:
        resolved_id = require_env_vars((REVIEWER_ENV,))[REVIEWER_ENV]

    raw_role = role or os.getenv(REVIEWER_ROLE_ENV) or UserRole.CASEWORKER.value
    try:
        resolved_role = UserRole(raw_role.strip().lower())
    except ValueError as exc:
        allowed = ", ".join(member.value for member in UserRole)
        raise InvalidConfigurationValueError(REVIEWER_ROLE_ENV, raw_role, allowed) from exc
    return ReviewerConfig(user_id=resolved_id, role=resolved_role)
