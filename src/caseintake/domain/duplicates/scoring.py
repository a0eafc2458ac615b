"""Deterministic confidence scoring for duplicate case pairs.

Every function here is pure: the same two case snapshots always produce the
same score, which is what makes repeated detection runs idempotent.
"""

from __future__ import annotations

import math
import re
import unicodedata
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from caseintake.config.detection import DetectionConfig
from caseintake.domain.errors import ValidationError
from caseintake.domain.model import AlertLevel

if TYPE_CHECKING:
    from collections.abc import Set as AbstractSet
    from datetime import datetime

    from caseintake.domain.model import GeoPoint

EXTERNAL_ID_CONFIDENCE: Final[float] = 1.0
EARTH_RADIUS_METERS: Final[float] = 6_371_008.8

# Word runs; each CJK ideograph is a token of its own.
_TOKEN_PATTERN: Final[re.Pattern[str]] = re.compile(r"[\u4e00-\u9fff]|[^\W_\u4e00-\u9fff]+")
_CHIP_SEPARATORS: Final[re.Pattern[str]] = re.compile(r"[\s\-]+")

DEFAULT_CONFIG: Final[DetectionConfig] = DetectionConfig()


@dataclass(frozen=True, slots=True)
class LocationEvidence:
    """The parts of a case the location rule looks at."""

    point: GeoPoint
    reported_at: datetime
    tokens: frozenset[str]


@dataclass(frozen=True, slots=True)
class LocationScore:
    confidence: float
    distance_m: float
    hours_apart: float
    distance_signal: float
    recency_signal: float
    text_signal: float


def normalize_external_id(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def normalize_chip_id(value: str | None) -> str | None:
    """Chip codes compare without whitespace or hyphens and ignoring case."""

    if value is None:
        return None
    compact = _CHIP_SEPARATORS.sub("", value).upper()
    return compact or None


def score_external_id(first: str | None, second: str | None) -> float | None:
    left = normalize_external_id(first)
    if left is None or left != normalize_external_id(second):
        return None
    return EXTERNAL_ID_CONFIDENCE


def score_chip_id(
    first: str | None,
    second: str | None,
    config: DetectionConfig = DEFAULT_CONFIG,
) -> float | None:
    left = normalize_chip_id(first)
    if left is None or left != normalize_chip_id(second):
        return None
    return clamp_confidence(config.chip_confidence)


def haversine_m(first: GeoPoint, second: GeoPoint) -> float:
    """Great-circle distance in metres."""

    lat1 = math.radians(first.latitude)
    lat2 = math.radians(second.latitude)
    d_lat = lat2 - lat1
    d_lon = math.radians(second.longitude - first.longitude)
    a = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(a)))


def tokenize(text: str | None) -> frozenset[str]:
    if not text:
        return frozenset()
    normalized = unicodedata.normalize("NFKC", text).casefold()
    return frozenset(_TOKEN_PATTERN.findall(normalized))


def jaccard(first: AbstractSet[str], second: AbstractSet[str]) -> float:
    union = first | second
    if not union:
        return 0.0
    return len(first & second) / len(union)


def hours_between(first: datetime, second: datetime) -> float:
    return abs((second - first).total_seconds()) / 3600.0


def clamp_confidence(value: float) -> float:
    if math.isnan(value):
        raise ValidationError("Confidence must be a number")
    return min(1.0, max(0.0, value))


def score_location(
    first: LocationEvidence,
    second: LocationEvidence,
    config: DetectionConfig = DEFAULT_CONFIG,
) -> LocationScore:
    """Composite distance/recency/text score.

    Recency bottoms out at zero past ``window_hours``; the pair is still scored
    on distance and text.
    """

    hours_apart = hours_between(first.reported_at, second.reported_at)
    distance_m = haversine_m(first.point, second.point)
    distance_signal = max(0.0, 1.0 - distance_m / config.radius_meters)
    recency_signal = max(0.0, 1.0 - hours_apart / config.window_hours)
    text_signal = jaccard(first.tokens, second.tokens)
    confidence = clamp_confidence(
        config.distance_weight * distance_signal
        + config.recency_weight * recency_signal
        + config.text_weight * text_signal
    )
    return LocationScore(
        confidence=confidence,
        distance_m=distance_m,
        hours_apart=hours_apart,
        distance_signal=distance_signal,
        recency_signal=recency_signal,
        text_signal=text_signal,
    )


def alert_level(confidence: float, config: DetectionConfig = DEFAULT_CONFIG) -> AlertLevel:
    """Severity band used when warning a reporter or reviewer."""

    if confidence >= config.critical_alert:
        return AlertLevel.CRITICAL
    if confidence >= config.high_alert:
        return AlertLevel.HIGH
    return AlertLevel.MEDIUM
