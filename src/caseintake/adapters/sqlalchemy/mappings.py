"""SQLAlchemy mapping metadata for the caseintake domain model."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.orm import configure_mappers, relationship

from caseintake.domain.model import (
    CandidateStatus,
    CaseAttachment,
    CaseCategory,
    CaseHistoryEntry,
    CaseRecord,
    CaseStatus,
    DuplicateCandidate,
    MatchType,
    MergeFlag,
    ResolutionAction,
    ResolutionAuditEntry,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]
CASE_ID_LENGTH = 64


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Cases -----------------------------------------------------------------------

case_record_table = Table(
    "case_record",
    mapper_registry.metadata,
    Column("id", String(CASE_ID_LENGTH), primary_key=True),
    Column("category", Enum(CaseCategory, native_enum=False), nullable=False),
    Column("status", Enum(CaseStatus, native_enum=False), nullable=False),
    Column("title", String, nullable=False, default=""),
    Column("description", Text, nullable=False, default=""),
    Column("location", String, nullable=False, default=""),
    Column("latitude", Float, nullable=True),
    Column("longitude", Float, nullable=True),
    Column("reported_at", UTCDateTime(), nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Column("external_case_id", String, nullable=True, index=True),
    Column("chip_id", String, nullable=True, index=True),
    Column("assigned_to", String, nullable=True),
    Column("merge_flag", Enum(MergeFlag, native_enum=False), nullable=False),
    Column(
        "merged_into_id",
        String(CASE_ID_LENGTH),
        ForeignKey("case_record.id"),
        nullable=True,
        index=True,
    ),
    Column("merged_at", UTCDateTime(), nullable=True),
    Column("merged_by", String, nullable=True),
    Column("merge_notes", Text, nullable=True),
)

case_attachment_table = Table(
    "case_attachment",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "case_id",
        String(CASE_ID_LENGTH),
        ForeignKey("case_record.id"),
        nullable=False,
        index=True,
    ),
    Column("filename", String, nullable=False),
    Column("file_url", String, nullable=False),
    Column("file_type", String, nullable=False),
    Column("file_size", Integer, nullable=False),
    Column("uploaded_by", String, nullable=False),
    Column("uploaded_at", UTCDateTime(), nullable=False),
    Column("description", Text, nullable=True),
)

case_history_table = Table(
    "case_history",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "case_id",
        String(CASE_ID_LENGTH),
        ForeignKey("case_record.id"),
        nullable=False,
        index=True,
    ),
    Column("action", String, nullable=False),
    Column("description", Text, nullable=False),
    Column("performed_by", String, nullable=False),
    Column("performed_at", UTCDateTime(), nullable=False),
    Column("previous_status", Enum(CaseStatus, native_enum=False), nullable=True),
    Column("new_status", Enum(CaseStatus, native_enum=False), nullable=True),
)

# Duplicate resolution -------------------------------------------------------

duplicate_candidate_table = Table(
    "duplicate_candidate",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "primary_case_id",
        String(CASE_ID_LENGTH),
        ForeignKey("case_record.id"),
        nullable=False,
    ),
    Column(
        "duplicate_case_id",
        String(CASE_ID_LENGTH),
        ForeignKey("case_record.id"),
        nullable=False,
    ),
    Column("pair_low", String(CASE_ID_LENGTH), nullable=False),
    Column("pair_high", String(CASE_ID_LENGTH), nullable=False),
    Column("match_type", Enum(MatchType, native_enum=False), nullable=False),
    Column("confidence", Float, nullable=False),
    Column("status", Enum(CandidateStatus, native_enum=False), nullable=False, index=True),
    Column("notes", Text, nullable=True),
    Column("reason", Text, nullable=True),
    Column("reviewed_by", String, nullable=True),
    Column("reviewed_at", UTCDateTime(), nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("created_by", String, nullable=False),
    UniqueConstraint("pair_low", "pair_high", name="uq_duplicate_candidate_pair"),
    Index("ix_duplicate_candidate_primary_case_id", "primary_case_id"),
    Index("ix_duplicate_candidate_duplicate_case_id", "duplicate_case_id"),
)

resolution_audit_table = Table(
    "resolution_audit",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "candidate_id",
        UUIDColumnType,
        ForeignKey("duplicate_candidate.id"),
        nullable=False,
        index=True,
    ),
    Column("actor", String, nullable=False, index=True),
    Column("action", Enum(ResolutionAction, native_enum=False), nullable=False),
    Column("primary_case_id", String(CASE_ID_LENGTH), nullable=False, index=True),
    Column("duplicate_case_id", String(CASE_ID_LENGTH), nullable=False, index=True),
    Column("timestamp", UTCDateTime(), nullable=False),
    Column("notes", Text, nullable=True),
    Column("reason", Text, nullable=True),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(
        CaseRecord,
        case_record_table,
        properties={
            "_attachments": relationship(
                CaseAttachment,
                order_by=case_attachment_table.c.uploaded_at,
                lazy="selectin",
            ),
            "_history": relationship(
                CaseHistoryEntry,
                order_by=case_history_table.c.performed_at,
                lazy="selectin",
            ),
        },
    )

    mapper_registry.map_imperatively(
        CaseAttachment,
        case_attachment_table,
    )

    mapper_registry.map_imperatively(
        CaseHistoryEntry,
        case_history_table,
    )

    mapper_registry.map_imperatively(
        DuplicateCandidate,
        duplicate_candidate_table,
    )

    mapper_registry.map_imperatively(
        ResolutionAuditEntry,
        resolution_audit_table,
    )

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
