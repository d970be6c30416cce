"""Percentile statistics that turn baseline samples into thresholds.

All formulas are deterministic. Zero samples yield the default bundle
with confidence 0, never NaN or infinity.
"""

from __future__ import annotations

import math
from typing import Sequence

from netinsight.domains.wireless.domain_logic.baseline_models import (
    BaselineSample,
    BaselineThresholds,
)

# Sample count at which confidence reaches 1.0
FULL_CONFIDENCE_SAMPLES = 100

RFQI_TARGET_FLOOR = 60
RFQI_TARGET_MEAN_MARGIN = 5
RFQI_POOR_FLOOR = 40
RFQI_POOR_MEAN_MARGIN = 15
CHANNEL_UTIL_CAP = 85
CHANNEL_UTIL_FLOOR = 50
CHANNEL_UTIL_P90_HEADROOM = 5
CHANNEL_UTIL_MEAN_HEADROOM = 10
CLIENT_DENSITY_FLOOR = 20
LATENCY_FLOOR_MS = 30
DEFAULT_LATENCY_MS = 75
RETRY_RATE_CAP = 30
RETRY_RATE_HEADROOM = 5
DEFAULT_RETRY_RATE = 15
NOISE_FLOOR_DBM = -85
INTERFERENCE_HIGH = 0.3


def percentile(values: Sequence[float], p: float) -> float:
    """Value below which ``p`` percent of the sorted values fall.

    Returns 0 for empty input.
    """
    if not values:
        return 0
    ordered = sorted(values)
    # Floor index: when p/100*n is whole this lands one rank above the
    # ceil(p/100*n)-1 convention, so learned thresholds can sit one rank higher
    index = math.floor(p / 100 * len(ordered))
    return ordered[max(0, min(len(ordered) - 1, index))]


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0
    return sum(values) / len(values)


def round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; thresholds round .5 upward
    return math.floor(value + 0.5)


def calculate_baseline(samples: Sequence[BaselineSample], *, now_ms: int) -> BaselineThresholds:
    """Derive a full threshold bundle from ``samples``."""
    if not samples:
        return BaselineThresholds.default(now_ms)

    rfqi = [s.rfqi for s in samples]
    channel = [s.channel_utilization or 0 for s in samples]
    densities = [s.client_count / max(1, s.ap_online_count or 1) for s in samples]
    retry = [s.retry_rate for s in samples if s.retry_rate is not None]
    latency = [s.latency_ms for s in samples if s.latency_ms is not None]

    rfqi_mean = mean(rfqi)
    rfqi_target = round_half_up(
        max(percentile(rfqi, 75), rfqi_mean + RFQI_TARGET_MEAN_MARGIN, RFQI_TARGET_FLOOR)
    )
    rfqi_poor = round_half_up(
        max(percentile(rfqi, 25), rfqi_mean - RFQI_POOR_MEAN_MARGIN, RFQI_POOR_FLOOR)
    )
    # A heavily skewed set can collapse P25 onto P75; keep poor strictly below target
    rfqi_poor = min(rfqi_poor, rfqi_target - 1)
    retry_p85 = percentile(retry, 85) if retry else DEFAULT_RETRY_RATE
    latency_p95 = percentile(latency, 95) if latency else DEFAULT_LATENCY_MS

    return BaselineThresholds(
        rfqi_target=rfqi_target,
        rfqi_poor=rfqi_poor,
        channel_utilization_pct=min(
            CHANNEL_UTIL_CAP,
            round_half_up(
                max(
                    percentile(channel, 90) + CHANNEL_UTIL_P90_HEADROOM,
                    mean(channel) + CHANNEL_UTIL_MEAN_HEADROOM,
                    CHANNEL_UTIL_FLOOR,
                )
            ),
        ),
        noise_floor_dbm=NOISE_FLOOR_DBM,
        client_density=round_half_up(max(percentile(densities, 80), CLIENT_DENSITY_FLOOR)),
        latency_p95_ms=round_half_up(max(latency_p95, LATENCY_FLOOR_MS)),
        retry_rate_pct=round_half_up(min(RETRY_RATE_CAP, retry_p85 + RETRY_RATE_HEADROOM)),
        interference_high=INTERFERENCE_HIGH,
        confidence=min(1.0, len(samples) / FULL_CONFIDENCE_SAMPLES),
        sample_size=len(samples),
        last_updated=now_ms,
    )
