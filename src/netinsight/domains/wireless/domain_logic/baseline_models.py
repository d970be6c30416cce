"""Adaptive baseline data model: samples, learned thresholds, stored envelope."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from netinsight.core.profiles.models import ProfileThresholds
from netinsight.domains.wireless.domain_logic.snapshot_models import _safe_float

logger = logging.getLogger(__name__)

# Used when no samples exist yet
DEFAULT_BASELINE_VALUES: dict[str, float] = {
    "rfqi_target": 75,
    "rfqi_poor": 55,
    "channel_utilization_pct": 65,
    "noise_floor_dbm": -85,
    "client_density": 50,
    "latency_p95_ms": 75,
    "retry_rate_pct": 15,
    "interference_high": 0.3,
}


@dataclass(frozen=True)
class BaselineSample:
    """One telemetry reading retained for baseline learning."""

    timestamp: int                 # epoch ms
    rfqi: float
    client_count: float
    channel_utilization: float = 0.0
    ap_online_count: float = 0.0
    retry_rate: float | None = None
    latency_ms: float | None = None
    site_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "timestamp": self.timestamp,
            "rfqi": self.rfqi,
            "channel_utilization": self.channel_utilization,
            "client_count": self.client_count,
            "ap_online_count": self.ap_online_count,
        }
        for key in ("retry_rate", "latency_ms", "site_id"):
            if getattr(self, key) is not None:
                data[key] = getattr(self, key)
        return data

    @classmethod
    def from_dict(
        cls, data: dict[str, Any], default_timestamp: int | None = None
    ) -> BaselineSample | None:
        """Validate loosely-typed input. Returns None when it cannot be a sample.

        ``rfqi`` and ``client_count`` are mandatory. A missing or zero
        timestamp is replaced with ``default_timestamp``.
        """
        if not isinstance(data, dict):
            return None
        rfqi = _safe_float(data.get("rfqi"))
        client_count = _safe_float(data.get("client_count"))
        if rfqi is None or client_count is None:
            return None

        timestamp = _safe_float(data.get("timestamp"))
        if not timestamp:
            timestamp = default_timestamp
        if timestamp is None:
            return None

        site_id = data.get("site_id")
        return cls(
            timestamp=int(timestamp),
            rfqi=rfqi,
            client_count=client_count,
            channel_utilization=_safe_float(data.get("channel_utilization")) or 0.0,
            ap_online_count=_safe_float(data.get("ap_online_count")) or 0.0,
            retry_rate=_safe_float(data.get("retry_rate")),
            latency_ms=_safe_float(data.get("latency_ms")),
            site_id=str(site_id) if site_id is not None else None,
        )


@dataclass(frozen=True)
class BaselineThresholds:
    """Threshold bundle learned from samples, with its confidence."""

    rfqi_target: float
    rfqi_poor: float
    channel_utilization_pct: float
    noise_floor_dbm: float
    client_density: float
    latency_p95_ms: float
    retry_rate_pct: float
    interference_high: float
    confidence: float          # 0-1
    sample_size: int
    last_updated: int          # epoch ms

    @classmethod
    def default(cls, now_ms: int) -> BaselineThresholds:
        return cls(**DEFAULT_BASELINE_VALUES, confidence=0.0, sample_size=0, last_updated=now_ms)

    def as_profile_thresholds(self) -> ProfileThresholds:
        """Project onto the eight profile thresholds (validated)."""
        return ProfileThresholds.from_dict(
            {name: getattr(self, name) for name in DEFAULT_BASELINE_VALUES}
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            **{name: getattr(self, name) for name in DEFAULT_BASELINE_VALUES},
            "confidence": self.confidence,
            "sample_size": self.sample_size,
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BaselineThresholds:
        """Raises ValueError if a field is missing or not a finite number."""
        values: dict[str, float] = {}
        for name in (*DEFAULT_BASELINE_VALUES, "confidence", "sample_size", "last_updated"):
            value = _safe_float(data.get(name))
            if value is None:
                raise ValueError(f"Invalid baseline threshold field: {name}")
            values[name] = value
        return cls(
            **{name: values[name] for name in DEFAULT_BASELINE_VALUES},
            confidence=values["confidence"],
            sample_size=int(values["sample_size"]),
            last_updated=int(values["last_updated"]),
        )


@dataclass(frozen=True)
class StoredBaselineData:
    """The persisted envelope: samples plus the last calculated bundle."""

    samples: tuple[BaselineSample, ...] = field(default_factory=tuple)
    last_calculated: int = 0
    calculated_thresholds: BaselineThresholds | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "samples": [s.to_dict() for s in self.samples],
            "last_calculated": self.last_calculated,
            "calculated_thresholds": (
                self.calculated_thresholds.to_dict() if self.calculated_thresholds else None
            ),
        }

    @classmethod
    def from_dict(cls, data: Any) -> StoredBaselineData:
        """Rebuild an envelope from parsed JSON.

        Raises ValueError when the envelope itself is malformed. Individual
        invalid samples are dropped with a warning; an invalid cached bundle
        is discarded so it gets recomputed.
        """
        if not isinstance(data, dict) or not isinstance(data.get("samples"), list):
            raise ValueError("Baseline envelope has no samples list")

        samples = []
        for raw in data["samples"]:
            sample = BaselineSample.from_dict(raw)
            if sample is not None:
                samples.append(sample)
        dropped = len(data["samples"]) - len(samples)
        if dropped:
            logger.warning("Dropped %d invalid baseline samples on reload", dropped)

        thresholds = None
        raw_thresholds = data.get("calculated_thresholds")
        if isinstance(raw_thresholds, dict):
            try:
                thresholds = BaselineThresholds.from_dict(raw_thresholds)
            except ValueError:
                logger.warning("Discarding invalid cached baseline thresholds")

        return cls(
            samples=tuple(samples),
            last_calculated=int(_safe_float(data.get("last_calculated")) or 0),
            calculated_thresholds=thresholds,
        )


def append_sample(
    data: StoredBaselineData, sample: BaselineSample, capacity: int
) -> StoredBaselineData:
    """Return a new envelope with ``sample`` appended, oldest evicted past capacity."""
    samples = (*data.samples, sample)
    if len(samples) > capacity:
        samples = samples[-capacity:]
    return StoredBaselineData(
        samples=samples,
        last_calculated=data.last_calculated,
        calculated_thresholds=data.calculated_thresholds,
    )
