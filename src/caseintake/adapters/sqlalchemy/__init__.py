"""SQLAlchemy adapter package for caseintake."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyAuditRepository,
    SqlAlchemyCandidateRepository,
    SqlAlchemyCaseRepository,
)
from .unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    create_database_engine,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyAuditRepository",
    "SqlAlchemyCandidateRepository",
    "SqlAlchemyCaseRepository",
    "SqlAlchemyUnitOfWork",
    "StartupError",
    "create_all_tables",
    "create_database_engine",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
