"""Pydantic models describing intake submissions and the candidate wire record."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Annotated, Literal, Self
from uuid import UUID

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from caseintake.domain.model import CandidateStatus, CaseCategory, MatchType

HiveSize = Literal["fist", "ball", "tire"]
HivePosition = Literal["tree", "eaves", "ground", "other"]
MicrochipStatus = Literal["scanned", "unscanned", "none"]


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class IntakeBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, str_strip_whitespace=True)


class Coordinates(IntakeBaseModel):
    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)


# Case-form variants ----------------------------------------------------------


class HouseholdVisitForm(IntakeBaseModel):
    form_type: Literal["household_visit"]
    owner_name: str | None = None
    environment: str = "fair"
    water: str = "adequate"
    food: str = "adequate"
    shelter: str = "yes"
    animal_status: str = "healthy"
    microchip_status: MicrochipStatus = "unscanned"
    microchip_number: str | None = None
    vaccine_status: Literal["valid", "expired", "none"] = "none"
    neutering_status: Literal["done", "declared", "none"] = "none"

    _normalize_optional = field_validator("owner_name", "microchip_number", mode="before")(
        _blank_to_none
    )

    @model_validator(mode="after")
    def _chip_needs_scan(self) -> Self:
        if self.microchip_number is not None and self.microchip_status != "scanned":
            raise ValueError("microchip_number requires microchip_status 'scanned'")
        return self


class StrayDogVisitForm(IntakeBaseModel):
    form_type: Literal["stray_dog_visit"]
    dog_count: int = Field(default=1, ge=1)
    feeder_info: str | None = None
    behavior: str = "normal"
    trap_placed: bool = False
    dog_gender: Literal["male", "female", "unknown"] = "unknown"
    dog_color: str | None = None
    ear_notch: Literal["left", "right", "both", "none"] = "none"
    capture_difficulty: Literal["low", "medium", "high", "extreme"] = "medium"
    reporter_cooperation: Literal["willing", "unwilling", "unknown"] = "unknown"

    _normalize_optional = field_validator("feeder_info", "dog_color", mode="before")(
        _blank_to_none
    )


class GeneralForm(IntakeBaseModel):
    form_type: Literal["general"]
    action: str = "education"
    notes: str | None = None

    _normalize_notes = field_validator("notes", mode="before")(_blank_to_none)


CaseForm = Annotated[
    HouseholdVisitForm | StrayDogVisitForm | GeneralForm,
    Field(discriminator="form_type"),
]


class ReportSubmission(IntakeBaseModel):
    """A public report or a staff-filed case, before it becomes a case record."""

    id: str | None = None
    category: CaseCategory = CaseCategory.GENERAL
    title: str | None = None
    location: str = Field(min_length=1)
    coordinates: Coordinates | None = None
    description: str = Field(min_length=5)
    reported_at: AwareDatetime | None = None
    external_case_id: str | None = None
    chip_id: str | None = None
    contact_name: str | None = None
    contact_phone: str | None = Field(default=None, pattern=r"^09\d{8}$")
    bee_hive_size: HiveSize | None = None
    bee_hive_position: HivePosition | None = None
    form: CaseForm | None = None

    _normalize_optional = field_validator(
        "id",
        "title",
        "external_case_id",
        "chip_id",
        "contact_name",
        "contact_phone",
        mode="before",
    )(_blank_to_none)

    @model_validator(mode="after")
    def _bee_details_only_for_bee_reports(self) -> Self:
        has_hive = self.bee_hive_size is not None or self.bee_hive_position is not None
        if has_hive and self.category is not CaseCategory.BEE:
            raise ValueError("Hive details are only accepted for bee reports")
        return self


# Candidate wire record -------------------------------------------------------


class CandidateRecord(BaseModel):
    """Serialised duplicate candidate as exchanged with the review client."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    id: UUID
    primary_case_id: str = Field(alias="primaryCaseId")
    duplicate_case_id: str = Field(alias="duplicateCaseId")
    match_type: MatchType = Field(alias="matchType")
    confidence: float = Field(ge=0.0, le=1.0)
    status: CandidateStatus
    notes: str | None = None
    reason: str | None = None
    reviewed_by: str | None = Field(default=None, alias="reviewedBy")
    reviewed_at: datetime | None = Field(default=None, alias="reviewedAt")
    created_at: datetime = Field(alias="createdAt")

    def to_wire(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


ReportSubmissionInput = ReportSubmission | Mapping[str, object]
