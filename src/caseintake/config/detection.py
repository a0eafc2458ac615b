"""Duplicate detection thresholds and weights."""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from typing import Final

from .env import float_from_env
from .errors import ConfigurationError

DEFAULT_DISTANCE_WEIGHT: Final[float] = 0.4
DEFAULT_RECENCY_WEIGHT: Final[float] = 0.3
DEFAULT_TEXT_WEIGHT: Final[float] = 0.3
DEFAULT_RADIUS_METERS: Final[float] = 150.0
DEFAULT_WINDOW_HOURS: Final[float] = 72.0
DEFAULT_LOCATION_THRESHOLD: Final[float] = 0.5
DEFAULT_CHIP_CONFIDENCE: Final[float] = 0.95
DEFAULT_HIGH_ALERT: Final[float] = 0.75
DEFAULT_CRITICAL_ALERT: Final[float] = 0.9

ENV_PREFIX: Final[str] = "CASEINTAKE_"


@dataclass(frozen=True, slots=True)
class DetectionConfig:
    distance_weight: float = DEFAULT_DISTANCE_WEIGHT
    recency_weight: float = DEFAULT_RECENCY_WEIGHT
    text_weight: float = DEFAULT_TEXT_WEIGHT
    radius_meters: float = DEFAULT_RADIUS_METERS
    window_hours: float = DEFAULT_WINDOW_HOURS
    location_threshold: float = DEFAULT_LOCATION_THRESHOLD
    chip_confidence: float = DEFAULT_CHIP_CONFIDENCE
    high_alert: float = DEFAULT_HIGH_ALERT
    critical_alert: float = DEFAULT_CRITICAL_ALERT

    def __post_init__(self) -> None:
        for item in fields(self):
            value = getattr(self, item.name)
            if not math.isfinite(value):
                raise ConfigurationError(f"{item.name} must be a finite number")

        weights = (self.distance_weight, self.recency_weight, self.text_weight)
        if any(weight < 0 for weight in weights):
            raise ConfigurationError("Location weights must not be negative")
        if not math.isclose(sum(weights), 1.0, abs_tol=1e-9):
            raise ConfigurationError(f"Location weights must sum to 1, got {sum(weights)}")

        if self.radius_meters <= 0:
            raise ConfigurationError("radius_meters must be positive")
        if self.window_hours <= 0:
            raise ConfigurationError("window_hours must be positive")

        for name in ("location_threshold", "chip_confidence", "high_alert", "critical_alert"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must lie in [0, 1], got {value}")
        if self.high_alert > self.critical_alert:
            raise ConfigurationError("high_alert must not exceed critical_alert")


def get_detection_config() -> DetectionConfig:
    """Build the detection config, honouring ``CASEINTAKE_*`` overrides."""

    defaults = DetectionConfig()
    overrides = {
        item.name: float_from_env(ENV_PREFIX + item.name.upper(), getattr(defaults, item.name))
        for item in fields(DetectionConfig)
    }
    return DetectionConfig(**overrides)
