"""Environment profile models and threshold evaluation.

Profiles only affect interpretation and scoring. Raw telemetry is never
modified; a profile tunes what counts as abnormal for a deployment type.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Literal

MetricStatus = Literal["good", "warning", "poor"]
ProfileMetric = Literal[
    "rfqi",
    "channel_utilization",
    "noise_floor",
    "latency",
    "retry_rate",
    "interference",
]

ADAPTIVE_PROFILE_ID = "adaptive"
FALLBACK_PROFILE_ID = "campus"


class ProfileError(ValueError):
    """Raised for invalid or unknown environment profiles."""


@dataclass(frozen=True)
class ProfileThresholds:
    """Alerting thresholds for one deployment context."""

    rfqi_target: float            # target RF quality (0-100)
    rfqi_poor: float              # below this RF quality is "poor"
    channel_utilization_pct: float
    noise_floor_dbm: float        # more negative is better
    client_density: float         # expected clients per AP
    latency_p95_ms: float
    retry_rate_pct: float
    interference_high: float      # 0-1

    def __post_init__(self) -> None:
        for name, value in asdict(self).items():
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise ProfileError(f"Threshold {name!r} must be numeric, got {value!r}")
            if not math.isfinite(value):
                raise ProfileError(f"Threshold {name!r} must be finite, got {value!r}")
        if not self.rfqi_poor < self.rfqi_target:
            raise ProfileError(
                f"rfqi_poor ({self.rfqi_poor}) must be below rfqi_target ({self.rfqi_target})"
            )
        if not 0 < self.channel_utilization_pct < 100:
            raise ProfileError("channel_utilization_pct must be within (0, 100)")
        if not 0 < self.interference_high <= 1:
            raise ProfileError("interference_high must be within (0, 1]")
        if self.noise_floor_dbm >= 0:
            raise ProfileError("noise_floor_dbm must be negative")
        if self.client_density <= 0 or self.latency_p95_ms <= 0 or self.retry_rate_pct <= 0:
            raise ProfileError("client_density, latency_p95_ms and retry_rate_pct must be positive")

    def to_dict(self) -> dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProfileThresholds:
        try:
            return cls(**{name: data[name] for name in cls.__dataclass_fields__})
        except KeyError as exc:
            raise ProfileError(f"Missing threshold: {exc.args[0]}") from exc


@dataclass(frozen=True)
class EnvironmentProfile:
    """A named, immutable bundle of thresholds."""

    id: str
    name: str
    description: str
    thresholds: ProfileThresholds
    adaptive: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "adaptive": self.adaptive,
            "thresholds": self.thresholds.to_dict(),
        }


def evaluate_metric(
    profile: EnvironmentProfile, metric: ProfileMetric, value: float
) -> MetricStatus:
    """Classify a raw metric value against a profile's thresholds."""
    t = profile.thresholds

    if metric == "rfqi":
        if value >= t.rfqi_target:
            return "good"
        if value >= t.rfqi_poor:
            return "warning"
        return "poor"
    if metric == "noise_floor":
        # More negative is better
        if value <= t.noise_floor_dbm - 5:
            return "good"
        if value <= t.noise_floor_dbm:
            return "warning"
        return "poor"

    ceilings = {
        "channel_utilization": (t.channel_utilization_pct, 0.8),
        "latency": (t.latency_p95_ms, 0.7),
        "retry_rate": (t.retry_rate_pct, 0.7),
        "interference": (t.interference_high, 0.7),
    }
    if metric not in ceilings:
        raise ProfileError(f"Unknown metric: {metric!r}")
    ceiling, good_fraction = ceilings[metric]
    if value <= ceiling * good_fraction:
        return "good"
    if value <= ceiling:
        return "warning"
    return "poor"
