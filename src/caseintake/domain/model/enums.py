"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class CaseCategory(StrEnum):
    GENERAL = "general"
    BEE = "bee"
    HOTLINE_1999 = "1999"
    HOTLINE_1959 = "1959"


class CaseStatus(StrEnum):
    PENDING = "pending"
    AUTHORIZED = "authorized"
    ASSIGNED = "assigned"
    PROCESSING = "processing"
    TRANSFERRED = "transferred"
    COMPLETED = "completed"
    RESOLVED = "resolved"
    REJECTED = "rejected"
    OVERDUE = "overdue"
    ARCHIVED = "archived"


class MergeFlag(StrEnum):
    """Merge bookkeeping on a case record."""

    NONE = "none"
    MERGED = "merged"
    PRIMARY = "primary"


class MatchType(StrEnum):
    """Rule family that produced a duplicate candidate."""

    EXTERNAL_ID = "external_id"
    CHIP_ID = "chip_id"
    LOCATION = "location"
    MANUAL = "manual"


class CandidateStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ResolutionAction(StrEnum):
    APPROVE = "approve"
    REJECT = "reject"


class AlertLevel(StrEnum):
    """Warning severity shown to a reporter or reviewer for a likely duplicate."""

    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class UserRole(StrEnum):
    ADMIN = "admin"
    CASEWORKER = "caseworker"
    FIELD_INVESTIGATOR = "field_investigator"
    SUPERVISOR = "supervisor"
    PUBLIC = "public"
