from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from caseintake.domain.duplicates.merge import execute_merge, plan_merge, resolve_root
from caseintake.domain.errors import CaseMergedError, MergeChainError, ValidationError
from caseintake.domain.model import HISTORY_CASE_MERGED, CaseStatus, MergeFlag
from tests.helpers.cases import BASE_TIME, FakeCaseRepository, make_case

if TYPE_CHECKING:
    from datetime import datetime

    from caseintake.domain.duplicates.merge import MergeOutcome
    from caseintake.domain.model import CaseRecord

MERGED_AT = BASE_TIME + timedelta(days=2)


def _repository(*case_ids: str) -> FakeCaseRepository:
    return FakeCaseRepository(make_case(case_id) for case_id in case_ids)


def _merge(
    cases: FakeCaseRepository,
    *,
    primary: CaseRecord,
    duplicates: list[CaseRecord],
    merged_by: str,
    notes: str | None = None,
    at: datetime | None = None,
) -> MergeOutcome:
    plan = plan_merge(cases, primary=primary, duplicates=duplicates)
    return execute_merge(cases, plan, merged_by=merged_by, notes=notes, at=at)


def test_merge_moves_records_and_keeps_their_timestamps() -> None:
    cases = _repository("A", "B")
    primary, duplicate = cases.cases["A"], cases.cases["B"]
    uploaded_at = BASE_TIME + timedelta(hours=3)
    photo = duplicate.add_attachment(
        filename="dog.jpg",
        file_url="https://files.example.org/dog.jpg",
        file_type="image/jpeg",
        file_size=2048,
        uploaded_by="reporter-1",
        uploaded_at=uploaded_at,
    )
    visit = duplicate.record_history(
        action="visited",
        description="Field visit",
        performed_by="inspector-1",
        performed_at=BASE_TIME + timedelta(hours=5),
    )

    outcome = _merge(
        cases,
        primary=primary,
        duplicates=[duplicate],
        merged_by="rev-1",
        notes="same dog",
        at=MERGED_AT,
    )

    assert outcome.root_id == "A"
    assert outcome.merged_case_ids == ("B",)
    assert (outcome.moved_attachments, outcome.moved_history_entries) == (1, 1)
    assert primary.attachments == (photo,)
    assert photo.case_id == "A"
    assert photo.uploaded_at == uploaded_at
    assert visit in primary.history
    assert visit.performed_at == BASE_TIME + timedelta(hours=5)
    assert duplicate.attachments == ()
    assert duplicate.history == ()
    assert primary.history[-1].action == HISTORY_CASE_MERGED
    assert "same dog" in primary.history[-1].description


def test_merge_flags_both_sides_and_deletes_nothing() -> None:
    cases = _repository("A", "B")

    _merge(
        cases,
        primary=cases.cases["A"],
        duplicates=[cases.cases["B"]],
        merged_by="rev-1",
        at=MERGED_AT,
    )

    duplicate = cases.get("B")
    assert duplicate is not None
    assert duplicate.merge_flag is MergeFlag.MERGED
    assert duplicate.merged_into_id == "A"
    assert duplicate.merged_by == "rev-1"
    assert duplicate.merged_at == MERGED_AT
    assert cases.cases["A"].merge_flag is MergeFlag.PRIMARY


def test_merging_a_primary_flattens_its_children_onto_the_new_root() -> None:
    cases = _repository("A", "B", "C")
    _merge(cases, primary=cases.cases["B"], duplicates=[cases.cases["C"]], merged_by="rev-1")

    outcome = _merge(
        cases,
        primary=cases.cases["A"],
        duplicates=[cases.cases["B"]],
        merged_by="rev-1",
    )

    assert outcome.repointed_case_ids == ("C",)
    assert cases.cases["B"].merged_into_id == "A"
    assert cases.cases["C"].merged_into_id == "A"
    assert cases.list_merged_into("B") == []


def test_plan_redirects_to_root_primary() -> None:
    cases = _repository("A", "B", "C")
    _merge(cases, primary=cases.cases["A"], duplicates=[cases.cases["B"]], merged_by="rev-1")

    plan = plan_merge(cases, primary=cases.cases["B"], duplicates=[cases.cases["C"]])

    assert plan.root.id == "A"
    assert plan.redirected
    assert resolve_root(cases, cases.cases["B"]).id == "A"
    assert resolve_root(cases, cases.cases["C"]).id == "C"


def test_plan_refuses_merged_duplicates() -> None:
    cases = _repository("A", "B", "C")
    _merge(cases, primary=cases.cases["A"], duplicates=[cases.cases["B"]], merged_by="rev-1")

    with pytest.raises(MergeChainError) as excinfo:
        plan_merge(cases, primary=cases.cases["C"], duplicates=[cases.cases["B"]])

    assert excinfo.value.case_id == "B"
    assert excinfo.value.root_id == "A"


def test_plan_refuses_merging_the_root_into_its_own_child() -> None:
    cases = _repository("A", "B")
    _merge(cases, primary=cases.cases["A"], duplicates=[cases.cases["B"]], merged_by="rev-1")

    with pytest.raises(ValidationError):
        plan_merge(cases, primary=cases.cases["B"], duplicates=[cases.cases["A"]])


def test_plan_requires_duplicates() -> None:
    cases = _repository("A")

    with pytest.raises(ValidationError):
        plan_merge(cases, primary=cases.cases["A"], duplicates=[])


def test_dangling_merge_pointer_is_reported() -> None:
    cases = _repository("B")
    orphan = cases.cases["B"]
    orphan.merge_flag = MergeFlag.MERGED
    orphan.merged_into_id = "GONE"

    with pytest.raises(MergeChainError):
        resolve_root(cases, orphan)


def test_merged_case_refuses_workflow_progression() -> None:
    cases = _repository("A", "B")
    _merge(cases, primary=cases.cases["A"], duplicates=[cases.cases["B"]], merged_by="rev-1")
    merged = cases.cases["B"]

    with pytest.raises(CaseMergedError):
        merged.assign("inspector-1", performed_by="rev-1")
    with pytest.raises(CaseMergedError):
        merged.change_status(CaseStatus.PROCESSING, performed_by="rev-1")
    with pytest.raises(CaseMergedError):
        merged.reopen(performed_by="rev-1")

    cases.cases["A"].assign("inspector-1", performed_by="rev-1")
    assert cases.cases["A"].status is CaseStatus.ASSIGNED
