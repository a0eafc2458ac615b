from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from caseintake.config import DetectionConfig
from caseintake.domain.duplicates.generator import (
    find_matches,
    generate_candidates,
    propose_matches,
)
from caseintake.domain.model import (
    AlertLevel,
    CandidateStatus,
    CaseRecord,
    DuplicateCandidate,
    MatchType,
    MergeFlag,
)
from tests.helpers.cases import BASE_TIME, TAIPEI, FakeDuplicateStore, make_case

METERS_PER_DEGREE_LAT = 111_195.08
DESCRIPTION = "injured dog lying beside the road"


def _located(
    case_id: str,
    *,
    north_m: float = 0.0,
    hours: float = 0.0,
    text: str = DESCRIPTION,
) -> CaseRecord:
    return make_case(
        case_id,
        latitude=TAIPEI[0] + north_m / METERS_PER_DEGREE_LAT,
        longitude=TAIPEI[1],
        reported_at=BASE_TIME + timedelta(hours=hours),
        description=text,
    )


def test_shared_external_id_yields_one_pending_candidate() -> None:
    store = FakeDuplicateStore(
        [
            make_case("A", external_case_id="EXT-001"),
            make_case("B", external_case_id="EXT-001", reported_at=BASE_TIME + timedelta(hours=1)),
        ]
    )

    result = generate_candidates(unit_of_work_factory=store.unit_of_work)

    assert len(result.created) == 1
    candidate = result.created[0]
    assert candidate.match_type is MatchType.EXTERNAL_ID
    assert candidate.confidence == 1.0
    assert candidate.status is CandidateStatus.PENDING
    assert (candidate.primary_case_id, candidate.duplicate_case_id) == ("A", "B")
    assert store.last_unit.committed


def test_nearby_recent_reports_yield_location_candidate() -> None:
    store = FakeDuplicateStore([_located("A"), _located("B", north_m=80, hours=2)])

    result = generate_candidates(unit_of_work_factory=store.unit_of_work)

    assert len(result.created) == 1
    candidate = result.created[0]
    assert candidate.match_type is MatchType.LOCATION
    assert 0.75 <= candidate.confidence < 0.95


def test_regeneration_over_unchanged_cases_creates_nothing() -> None:
    store = FakeDuplicateStore(
        [
            make_case("A", external_case_id="EXT-001"),
            make_case("B", external_case_id="EXT-001"),
            _located("C"),
            _located("D", north_m=30, hours=1),
        ]
    )

    first = generate_candidates(unit_of_work_factory=store.unit_of_work)
    second = generate_candidates(unit_of_work_factory=store.unit_of_work)

    assert len(first.created) == 2
    assert second.created == []
    assert second.skipped_existing == 2
    assert len(store.candidates.candidates) == 2


def test_resolved_candidate_blocks_regeneration_of_its_pair() -> None:
    existing = DuplicateCandidate(
        primary_case_id="A",
        duplicate_case_id="B",
        match_type=MatchType.EXTERNAL_ID,
        confidence=1.0,
        status=CandidateStatus.REJECTED,
    )
    store = FakeDuplicateStore(
        [make_case("A", external_case_id="X"), make_case("B", external_case_id="X")],
        [existing],
    )

    result = generate_candidates(unit_of_work_factory=store.unit_of_work)

    assert result.created == []
    assert list(store.candidates.candidates.values()) == [existing]


def test_pair_matched_by_several_rules_gets_one_candidate() -> None:
    first = _located("A")
    first.chip_id = "900-111"
    second = _located("B", north_m=100, hours=30)
    second.chip_id = "900111"
    store = FakeDuplicateStore([first, second])

    result = generate_candidates(unit_of_work_factory=store.unit_of_work)

    assert len(result.created) == 1
    assert result.created[0].match_type is MatchType.CHIP_ID
    assert result.created[0].confidence == pytest.approx(0.95)


def test_equal_confidence_prefers_external_id_over_chip_id() -> None:
    config = DetectionConfig(chip_confidence=1.0)
    cases = [
        make_case("A", external_case_id="EXT-9", chip_id="C1"),
        make_case("B", external_case_id="EXT-9", chip_id="c1"),
    ]

    proposals, failed = propose_matches(cases, config)

    assert failed == {}
    assert [proposal.match_type for proposal in proposals] == [MatchType.EXTERNAL_ID]
    assert proposals[0].alert_level is AlertLevel.CRITICAL


def test_location_below_threshold_is_ignored() -> None:
    cases = [
        _located("A", text="cat on a roof"),
        _located("B", north_m=140, hours=60, text="dog in a park"),
        _located("C", north_m=5, hours=80),
    ]

    proposals, _ = propose_matches(cases)

    assert proposals == []


def test_location_match_past_the_window_is_still_emitted() -> None:
    store = FakeDuplicateStore([_located("A"), _located("B", hours=100)])

    result = generate_candidates(unit_of_work_factory=store.unit_of_work)

    [candidate] = result.created
    assert candidate.match_type is MatchType.LOCATION
    assert candidate.confidence == pytest.approx(0.7)
    assert (candidate.primary_case_id, candidate.duplicate_case_id) == ("A", "B")


def test_recency_heavy_config_only_emits_pairs_that_reach_the_threshold() -> None:
    config = DetectionConfig(distance_weight=0.2, recency_weight=0.6, text_weight=0.2)
    cases = [_located("A"), _located("B", hours=50), _located("C", hours=121)]

    proposals, _ = propose_matches(cases, config)

    # A-B: 0.4 + 0.6 * 22/72; B-C: 0.4 + 0.6 * 1/72; A-C: 0.4
    assert [proposal.pair for proposal in proposals] == [("A", "B")]
    assert proposals[0].confidence == pytest.approx(0.4 + 0.6 * (1 - 50 / 72))


def test_merged_cases_are_not_scanned() -> None:
    merged = make_case("B", external_case_id="EXT-001")
    merged.merge_flag = MergeFlag.MERGED
    merged.merged_into_id = "Z"

    proposals, _ = propose_matches([make_case("A", external_case_id="EXT-001"), merged])

    assert proposals == []


def test_malformed_case_is_reported_and_the_rest_still_processed() -> None:
    broken = make_case("BROKEN", external_case_id="EXT-001")
    broken.reported_at = datetime(2025, 3, 1, 8, 0)  # noqa: DTZ001
    store = FakeDuplicateStore(
        [
            make_case("A", external_case_id="EXT-001"),
            make_case("B", external_case_id="EXT-001"),
            broken,
        ]
    )

    result = generate_candidates(unit_of_work_factory=store.unit_of_work)

    assert list(result.failed) == ["BROKEN"]
    assert [candidate.pair for candidate in result.created] == [("A", "B")]


@pytest.mark.parametrize(
    ("field_name", "value"),
    [
        ("reported_at", None),
        ("reported_at", "2025-03-01T08:00:00Z"),
        ("chip_id", 900123456),
        ("external_case_id", 42),
        ("description", ["dog"]),
        ("latitude", "25.03"),
        ("longitude", True),
    ],
)
def test_case_with_a_mistyped_field_is_isolated(field_name: str, value: object) -> None:
    broken = _located("BROKEN")
    broken.external_case_id = "EXT-001"
    setattr(broken, field_name, value)
    store = FakeDuplicateStore(
        [
            make_case("A", external_case_id="EXT-001"),
            make_case("B", external_case_id="EXT-001"),
            broken,
        ]
    )

    result = generate_candidates(unit_of_work_factory=store.unit_of_work)

    assert list(result.failed) == ["BROKEN"]
    assert field_name in result.failed["BROKEN"]
    assert [candidate.pair for candidate in result.created] == [("A", "B")]
    assert store.last_unit.committed


def test_focus_limits_scoring_to_pairs_with_the_given_cases() -> None:
    cases = [
        make_case("A", external_case_id="E1"),
        make_case("B", external_case_id="E1"),
        make_case("C", chip_id="K9"),
        make_case("D", chip_id="K9"),
    ]

    proposals, _ = propose_matches(cases, focus={"C"})

    assert [proposal.pair for proposal in proposals] == [("C", "D")]


def test_confidences_stay_within_bounds() -> None:
    cases = [_located(f"L{index}", north_m=index * 20, hours=index) for index in range(6)]

    proposals, _ = propose_matches(cases)

    assert proposals
    assert all(0.0 <= proposal.confidence <= 1.0 for proposal in proposals)


def test_find_matches_scores_a_draft_without_persisting() -> None:
    draft = _located("draft", north_m=20, hours=1)
    others = [_located("A"), make_case("B", external_case_id="EXT-7")]

    matches = find_matches(draft, others)

    assert [match.duplicate_case_id for match in matches] == ["draft"]
    assert matches[0].primary_case_id == "A"
    assert matches[0].alert_level in {AlertLevel.HIGH, AlertLevel.CRITICAL}
