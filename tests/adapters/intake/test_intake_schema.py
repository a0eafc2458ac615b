"""Validation rules of intake submissions and the candidate wire record."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

import pytest
from pydantic import ValidationError

from caseintake.adapters.intake import (
    CandidateRecord,
    GeneralForm,
    HouseholdVisitForm,
    ReportSubmission,
    StrayDogVisitForm,
)
from caseintake.domain.model import CandidateStatus, CaseCategory, MatchType


def test_submission_accepts_household_payload(household_payload: dict[str, object]) -> None:
    parsed = ReportSubmission.model_validate(household_payload)

    assert parsed.category is CaseCategory.HOTLINE_1959
    assert parsed.title is None
    assert parsed.coordinates is not None
    assert parsed.coordinates.lng == pytest.approx(121.5654)
    assert parsed.reported_at is not None
    assert parsed.reported_at.astimezone(UTC) == datetime(2025, 3, 1, 8, 0, tzinfo=UTC)
    assert isinstance(parsed.form, HouseholdVisitForm)
    assert parsed.form.microchip_number == "900 123 456"


@pytest.mark.parametrize(
    ("form", "expected"),
    [
        ({"form_type": "stray_dog_visit", "dog_count": 3}, StrayDogVisitForm),
        ({"form_type": "general", "notes": " "}, GeneralForm),
    ],
)
def test_form_variant_is_picked_by_form_type(
    household_payload: dict[str, object],
    form: dict[str, object],
    expected: type[object],
) -> None:
    parsed = ReportSubmission.model_validate(household_payload | {"form": form})

    assert isinstance(parsed.form, expected)


@pytest.mark.parametrize(
    "overrides",
    [
        {"form": {"form_type": "unknown"}},
        {"form": {"form_type": "household_visit", "microchip_number": "900"}},
        {"form": {"form_type": "stray_dog_visit", "dog_count": 0}},
        {"contact_phone": "12345"},
        {"description": "dog"},
        {"location": ""},
        {"coordinates": {"lat": 91, "lng": 0}},
        {"reported_at": "2025-03-01T16:00:00"},
        {"bee_hive_size": "ball"},
    ],
)
def test_submission_rejects_invalid_payloads(
    household_payload: dict[str, object],
    overrides: dict[str, object],
) -> None:
    with pytest.raises(ValidationError):
        ReportSubmission.model_validate(household_payload | overrides)


def test_bee_reports_may_carry_hive_details(household_payload: dict[str, object]) -> None:
    payload = household_payload | {
        "category": "bee",
        "bee_hive_size": "ball",
        "bee_hive_position": "eaves",
        "form": None,
    }

    parsed = ReportSubmission.model_validate(payload)

    assert (parsed.bee_hive_size, parsed.bee_hive_position) == ("ball", "eaves")


def test_candidate_record_uses_camel_case_on_the_wire() -> None:
    candidate_id = uuid4()
    record = CandidateRecord(
        id=candidate_id,
        primary_case_id="A",
        duplicate_case_id="B",
        match_type=MatchType.LOCATION,
        confidence=0.78,
        status=CandidateStatus.PENDING,
        created_at=datetime(2025, 3, 1, 8, 0, tzinfo=UTC),
    )

    wire = record.to_wire()

    assert wire == {
        "id": str(candidate_id),
        "primaryCaseId": "A",
        "duplicateCaseId": "B",
        "matchType": "location",
        "confidence": 0.78,
        "status": "pending",
        "createdAt": "2025-03-01T08:00:00Z",
    }
    assert CandidateRecord.model_validate(wire) == record


def test_candidate_record_refuses_unknown_keys() -> None:
    with pytest.raises(ValidationError):
        CandidateRecord.model_validate(
            {
                "id": str(uuid4()),
                "primaryCaseId": "A",
                "duplicateCaseId": "B",
                "matchType": "manual",
                "confidence": 1.0,
                "status": "pending",
                "createdAt": "2025-03-01T08:00:00Z",
                "score": 1.0,
            }
        )
