"""Candidate generation over the case set.

Pairs are enumerated cheaply first (shared external id, shared chip code,
and a time-sorted sweep for the location rule), then each pair is scored by
every rule and only the best rule survives. The sweep only stops early when
recency alone decides whether a pair can reach the location threshold.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from itertools import combinations
from logging import getLogger
from operator import attrgetter
from typing import TYPE_CHECKING, Final

from caseintake.domain.duplicates.scoring import (
    DEFAULT_CONFIG,
    LocationEvidence,
    LocationScore,
    alert_level,
    normalize_chip_id,
    normalize_external_id,
    score_chip_id,
    score_external_id,
    score_location,
    tokenize,
)
from caseintake.domain.errors import ValidationError
from caseintake.domain.model import (
    SYSTEM_ACTOR,
    AlertLevel,
    DuplicateCandidate,
    MatchType,
    pair_key,
    utcnow,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Collection, Iterable, Sequence

    from caseintake.config.detection import DetectionConfig
    from caseintake.domain.model import CaseRecord
    from caseintake.domain.ports.unit_of_work import DuplicateUnitOfWork


log = getLogger(__name__)

# Earlier entries win ties on confidence.
RULE_ORDER: Final[tuple[MatchType, ...]] = (
    MatchType.EXTERNAL_ID,
    MatchType.CHIP_ID,
    MatchType.LOCATION,
)

_TEXT_FIELDS: Final[tuple[str, ...]] = ("external_case_id", "chip_id", "description")
_COORDINATE_FIELDS: Final[tuple[str, ...]] = ("latitude", "longitude")


@dataclass(frozen=True, slots=True)
class MatchProposal:
    """A scored pair that has not been persisted yet."""

    primary_case_id: str
    duplicate_case_id: str
    match_type: MatchType
    confidence: float
    alert_level: AlertLevel
    location: LocationScore | None = None

    @property
    def pair(self) -> tuple[str, str]:
        return pair_key(self.primary_case_id, self.duplicate_case_id)

    def to_candidate(
        self,
        *,
        created_at: datetime | None = None,
        created_by: str = SYSTEM_ACTOR,
    ) -> DuplicateCandidate:
        return DuplicateCandidate(
            primary_case_id=self.primary_case_id,
            duplicate_case_id=self.duplicate_case_id,
            match_type=self.match_type,
            confidence=self.confidence,
            created_at=created_at or utcnow(),
            created_by=created_by,
        )


@dataclass(slots=True)
class GenerationResult:
    """Outcome of one detection run."""

    created: list[DuplicateCandidate] = field(default_factory=list["DuplicateCandidate"])
    skipped_existing: int = 0
    failed: dict[str, str] = field(default_factory=dict[str, str])


@dataclass(frozen=True, slots=True)
class _Snapshot:
    case_id: str
    reported_at: datetime
    external_id: str | None
    chip_id: str | None
    location: LocationEvidence | None

    @classmethod
    def of(cls, case: CaseRecord) -> _Snapshot:
        if not isinstance(case.id, str) or not case.id.strip():
            raise ValidationError("Case has no identifier")
        reported_at = case.reported_at
        if not isinstance(reported_at, datetime):
            raise ValidationError(f"Case {case.id} has no reported_at timestamp")
        if reported_at.tzinfo is None or reported_at.utcoffset() is None:
            raise ValidationError(f"Case {case.id} has a naive reported_at timestamp")
        for name in _TEXT_FIELDS:
            value = getattr(case, name)
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"Case {case.id} has a non-text {name}: {value!r}")
        for name in _COORDINATE_FIELDS:
            value = getattr(case, name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int | float):
                raise ValidationError(f"Case {case.id} has a non-numeric {name}: {value!r}")
        point = case.coordinates
        location = (
            LocationEvidence(point=point, reported_at=reported_at, tokens=tokenize(case.description))
            if point is not None
            else None
        )
        return cls(
            case_id=case.id,
            reported_at=reported_at,
            external_id=normalize_external_id(case.external_case_id),
            chip_id=normalize_chip_id(case.chip_id),
            location=location,
        )


def propose_matches(
    cases: Iterable[CaseRecord],
    config: DetectionConfig = DEFAULT_CONFIG,
    *,
    focus: Collection[str] | None = None,
) -> tuple[list[MatchProposal], dict[str, str]]:
    """Score every plausible pair among ``cases``.

    Merged cases are ignored. Malformed cases are logged and returned in the
    failure map instead of aborting the run. With ``focus`` only pairs that
    involve one of the given case ids are scored.
    """

    snapshots, failed = _screen(cases)
    wanted = frozenset(focus) if focus is not None else None

    proposals: list[MatchProposal] = []
    for first_index, second_index in sorted(_candidate_pairs(snapshots, config)):
        first = snapshots[first_index]
        second = snapshots[second_index]
        if wanted is not None and first.case_id not in wanted and second.case_id not in wanted:
            continue
        proposal = _score_pair(first, second, config)
        if proposal is not None:
            proposals.append(proposal)

    proposals.sort(key=lambda item: (-item.confidence, item.primary_case_id, item.duplicate_case_id))
    return proposals, failed


def find_matches(
    draft: CaseRecord,
    others: Iterable[CaseRecord],
    config: DetectionConfig = DEFAULT_CONFIG,
) -> list[MatchProposal]:
    """Pre-filing check: score a draft report against existing cases.

    Nothing is persisted. A malformed draft raises ``ValidationError``.
    """

    subject = _Snapshot.of(draft)
    matches: list[MatchProposal] = []
    for other in others:
        if other.id == draft.id or other.is_merged:
            continue
        try:
            snapshot = _Snapshot.of(other)
        except ValidationError as exc:
            log.warning("Ignoring malformed case %s during pre-filing check: %s", other.id, exc)
            continue
        proposal = _score_pair(subject, snapshot, config)
        if proposal is not None:
            matches.append(proposal)
    matches.sort(key=lambda item: (-item.confidence, item.primary_case_id, item.duplicate_case_id))
    return matches


def generate_candidates(
    *,
    unit_of_work_factory: Callable[[], DuplicateUnitOfWork],
    config: DetectionConfig | None = None,
    case_ids: Collection[str] | None = None,
    now: datetime | None = None,
) -> GenerationResult:
    """Persist new pending candidates for pairs that have none yet."""

    effective_config = config or DEFAULT_CONFIG
    result = GenerationResult()
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        proposals, result.failed = propose_matches(
            repositories.cases.list_unmerged(),
            effective_config,
            focus=case_ids,
        )
        known_pairs = repositories.candidates.pair_keys()
        created_at = now or utcnow()
        for proposal in proposals:
            if proposal.pair in known_pairs:
                result.skipped_existing += 1
                continue
            candidate = proposal.to_candidate(created_at=created_at)
            # A concurrent run may have inserted the pair since pair_keys().
            if repositories.candidates.add_if_absent(candidate):
                result.created.append(candidate)
                known_pairs.add(proposal.pair)
            else:
                result.skipped_existing += 1
        uow.commit()

    log.info(
        "Duplicate detection finished: created=%s, skipped_existing=%s, failed=%s",
        len(result.created),
        result.skipped_existing,
        len(result.failed),
    )
    return result


def _screen(cases: Iterable[CaseRecord]) -> tuple[list[_Snapshot], dict[str, str]]:
    snapshots: list[_Snapshot] = []
    failed: dict[str, str] = {}
    for case in cases:
        if case.is_merged:
            continue
        try:
            snapshots.append(_Snapshot.of(case))
        except ValidationError as exc:
            log.exception("Skipping malformed case %s", case.id)
            failed[case.id] = str(exc)
    return snapshots, failed


def _candidate_pairs(
    snapshots: Sequence[_Snapshot],
    config: DetectionConfig,
) -> set[tuple[int, int]]:
    pairs: set[tuple[int, int]] = set()

    for key_of in (attrgetter("external_id"), attrgetter("chip_id")):
        groups: dict[str, list[int]] = defaultdict(list)
        for index, snapshot in enumerate(snapshots):
            key = key_of(snapshot)
            if key:
                groups[key].append(index)
        for members in groups.values():
            pairs.update(combinations(members, 2))

    located = sorted(
        (index for index, snapshot in enumerate(snapshots) if snapshot.location is not None),
        key=lambda index: snapshots[index].reported_at,
    )
    horizon = _time_horizon(config)
    for position, index in enumerate(located):
        start = snapshots[index].reported_at
        for other in located[position + 1 :]:
            if horizon is not None and snapshots[other].reported_at - start > horizon:
                break
            pairs.add((min(index, other), max(index, other)))

    return pairs


def _time_horizon(config: DetectionConfig) -> timedelta | None:
    """Largest time gap at which the location rule can still reach its threshold.

    ``None`` means distance and text alone can reach it, so no pair may be
    skipped on time.
    """

    shortfall = config.location_threshold - config.distance_weight - config.text_weight
    if shortfall <= 0:
        return None
    if config.recency_weight <= 0:
        return timedelta(0)
    reachable = max(0.0, 1.0 - shortfall / config.recency_weight)
    return timedelta(hours=config.window_hours * reachable)


def _score_pair(
    first: _Snapshot,
    second: _Snapshot,
    config: DetectionConfig,
) -> MatchProposal | None:
    if first.case_id == second.case_id:
        return None

    scores: dict[MatchType, float] = {}
    location: LocationScore | None = None

    external = score_external_id(first.external_id, second.external_id)
    if external is not None:
        scores[MatchType.EXTERNAL_ID] = external
    chip = score_chip_id(first.chip_id, second.chip_id, config)
    if chip is not None:
        scores[MatchType.CHIP_ID] = chip
    if first.location is not None and second.location is not None:
        location = score_location(first.location, second.location, config)
        if location.confidence >= config.location_threshold:
            scores[MatchType.LOCATION] = location.confidence

    best: MatchType | None = None
    for match_type in RULE_ORDER:
        if match_type in scores and (best is None or scores[match_type] > scores[best]):
            best = match_type
    if best is None:
        return None

    primary, duplicate = sorted((first, second), key=lambda item: (item.reported_at, item.case_id))
    confidence = scores[best]
    return MatchProposal(
        primary_case_id=primary.case_id,
        duplicate_case_id=duplicate.case_id,
        match_type=best,
        confidence=confidence,
        alert_level=alert_level(confidence, config),
        location=location if best is MatchType.LOCATION else None,
    )
