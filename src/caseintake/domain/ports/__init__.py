"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import AuditRepository, CandidateRepository, CaseRepository, Repository
from .unit_of_work import (
    DuplicateRepositories,
    DuplicateUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AuditRepository",
    "CandidateRepository",
    "CaseRepository",
    "DuplicateRepositories",
    "DuplicateUnitOfWork",
    "Repository",
    "RepositoryCollection",
    "UnitOfWork",
]
