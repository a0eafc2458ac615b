"""Case records and the records attached to them.

Cases are owned by the case repository. The duplicate engine only touches
them for merge bookkeeping; everything else (assignment, status changes) is
here so that a merged case can refuse further workflow progression.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from caseintake.domain.errors import CaseMergedError, ValidationError
from caseintake.domain.model.entity import Entity, utcnow
from caseintake.domain.model.enums import CaseCategory, CaseStatus, MergeFlag

if TYPE_CHECKING:
    from datetime import datetime


HISTORY_CREATED: Final[str] = "created"
HISTORY_ASSIGNED: Final[str] = "assigned"
HISTORY_STATUS_CHANGED: Final[str] = "status_changed"
HISTORY_REOPENED: Final[str] = "reopened"
HISTORY_CASE_MERGED: Final[str] = "case_merged"

_REOPENABLE: Final[frozenset[CaseStatus]] = frozenset(
    {
        CaseStatus.COMPLETED,
        CaseStatus.RESOLVED,
        CaseStatus.REJECTED,
        CaseStatus.ARCHIVED,
    }
)


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """WGS84 coordinate in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.latitude) and math.isfinite(self.longitude)):
            raise ValidationError("Coordinates must be finite numbers")
        if not -90.0 <= self.latitude <= 90.0:
            raise ValidationError(f"Latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValidationError(f"Longitude out of range: {self.longitude}")


@dataclass(eq=False, kw_only=True)
class CaseAttachment(Entity):
    case_id: str
    filename: str
    file_url: str
    file_type: str
    file_size: int
    uploaded_by: str
    uploaded_at: datetime = field(default_factory=utcnow)
    description: str | None = None


@dataclass(eq=False, kw_only=True)
class CaseHistoryEntry(Entity):
    case_id: str
    action: str
    description: str
    performed_by: str
    performed_at: datetime = field(default_factory=utcnow)
    previous_status: CaseStatus | None = None
    new_status: CaseStatus | None = None


@dataclass(eq=False, kw_only=True)
class CaseRecord:
    """A reported incident.

    ``merged_into_id`` always names the root primary of a merged case, never
    another merged case.
    """

    id: str
    category: CaseCategory = CaseCategory.GENERAL
    status: CaseStatus = CaseStatus.PENDING
    title: str = ""
    description: str = ""
    location: str = ""
    latitude: float | None = None
    longitude: float | None = None
    reported_at: datetime = field(default_factory=utcnow)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    external_case_id: str | None = None
    chip_id: str | None = None
    assigned_to: str | None = None

    merge_flag: MergeFlag = MergeFlag.NONE
    merged_into_id: str | None = None
    merged_at: datetime | None = None
    merged_by: str | None = None
    merge_notes: str | None = None

    _attachments: list[CaseAttachment] = field(default_factory=list["CaseAttachment"], repr=False)
    _history: list[CaseHistoryEntry] = field(default_factory=list["CaseHistoryEntry"], repr=False)

    @property
    def coordinates(self) -> GeoPoint | None:
        if self.latitude is None or self.longitude is None:
            return None
        return GeoPoint(self.latitude, self.longitude)

    @property
    def attachments(self) -> tuple[CaseAttachment, ...]:
        return tuple(self._attachments)

    @property
    def history(self) -> tuple[CaseHistoryEntry, ...]:
        return tuple(sorted(self._history, key=lambda entry: entry.performed_at))

    @property
    def is_merged(self) -> bool:
        return self.merge_flag is MergeFlag.MERGED

    # Case workflow -----------------------------------------------------------

    def add_attachment(
        self,
        *,
        filename: str,
        file_url: str,
        file_type: str,
        file_size: int,
        uploaded_by: str,
        uploaded_at: datetime | None = None,
        description: str | None = None,
    ) -> CaseAttachment:
        attachment = CaseAttachment(
            case_id=self.id,
            filename=filename,
            file_url=file_url,
            file_type=file_type,
            file_size=file_size,
            uploaded_by=uploaded_by,
            uploaded_at=uploaded_at or utcnow(),
            description=description,
        )
        self._attachments.append(attachment)
        return attachment

    def record_history(
        self,
        *,
        action: str,
        description: str,
        performed_by: str,
        performed_at: datetime | None = None,
        previous_status: CaseStatus | None = None,
        new_status: CaseStatus | None = None,
    ) -> CaseHistoryEntry:
        entry = CaseHistoryEntry(
            case_id=self.id,
            action=action,
            description=description,
            performed_by=performed_by,
            performed_at=performed_at or utcnow(),
            previous_status=previous_status,
            new_status=new_status,
        )
        self._history.append(entry)
        return entry

    def assign(self, assignee: str, *, performed_by: str, at: datetime | None = None) -> None:
        self._ensure_open("assign")
        moment = at or utcnow()
        previous = self.status
        self.assigned_to = assignee
        self.status = CaseStatus.ASSIGNED
        self.updated_at = moment
        self.record_history(
            action=HISTORY_ASSIGNED,
            description=f"Assigned to {assignee}",
            performed_by=performed_by,
            performed_at=moment,
            previous_status=previous,
            new_status=self.status,
        )

    def change_status(
        self,
        status: CaseStatus,
        *,
        performed_by: str,
        description: str | None = None,
        at: datetime | None = None,
    ) -> None:
        self._ensure_open("change status")
        self._transition(
            status,
            action=HISTORY_STATUS_CHANGED,
            description=description or f"Status changed to {status.value}",
            performed_by=performed_by,
            at=at,
        )

    def reopen(self, *, performed_by: str, at: datetime | None = None) -> None:
        self._ensure_open("reopen")
        if self.status not in _REOPENABLE:
            raise ValidationError(f"Case {self.id} is not closed (status={self.status.value})")
        self._transition(
            CaseStatus.PENDING,
            action=HISTORY_REOPENED,
            description="Case reopened",
            performed_by=performed_by,
            at=at,
        )

    # Merge bookkeeping -------------------------------------------------------

    def absorb_records_from(self, other: CaseRecord) -> tuple[int, int]:
        """Move attachments and history entries of ``other`` onto this case.

        Original upload and performance timestamps are kept.
        """

        attachments = list(other._attachments)  # noqa: SLF001
        entries = list(other._history)  # noqa: SLF001
        for attachment in attachments:
            other._attachments.remove(attachment)  # noqa: SLF001
            attachment.case_id = self.id
            self._attachments.append(attachment)
        for entry in entries:
            other._history.remove(entry)  # noqa: SLF001
            entry.case_id = self.id
            self._history.append(entry)
        return len(attachments), len(entries)

    def mark_merged_into(
        self,
        root: CaseRecord,
        *,
        merged_by: str,
        notes: str | None,
        at: datetime,
    ) -> None:
        if root.id == self.id:
            raise ValidationError(f"Case {self.id} cannot be merged into itself")
        self.merge_flag = MergeFlag.MERGED
        self.merged_into_id = root.id
        self.merged_at = at
        self.merged_by = merged_by
        self.merge_notes = notes
        self.updated_at = at

    def redirect_to(self, root: CaseRecord, *, at: datetime) -> None:
        """Point an already merged case at a new root primary."""

        if not self.is_merged:
            raise ValidationError(f"Case {self.id} is not merged")
        self.merged_into_id = root.id
        self.updated_at = at

    def mark_primary(self, *, at: datetime) -> None:
        if self.merge_flag is not MergeFlag.PRIMARY:
            self.merge_flag = MergeFlag.PRIMARY
        self.updated_at = at

    def _ensure_open(self, action: str) -> None:
        if self.is_merged:
            raise CaseMergedError(self.id, action=action)

    def _transition(
        self,
        status: CaseStatus,
        *,
        action: str,
        description: str,
        performed_by: str,
        at: datetime | None,
    ) -> None:
        moment = at or utcnow()
        previous = self.status
        self.status = status
        self.updated_at = moment
        self.record_history(
            action=action,
            description=description,
            performed_by=performed_by,
            performed_at=moment,
            previous_status=previous,
            new_status=status,
        )
