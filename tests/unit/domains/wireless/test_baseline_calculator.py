"""Tests for percentile statistics and the baseline threshold formulas."""

from __future__ import annotations

import math

import pytest

from netinsight.domains.wireless.domain_logic.baseline_calculator import (
    calculate_baseline,
    mean,
    percentile,
    round_half_up,
)
from netinsight.domains.wireless.domain_logic.baseline_models import (
    BaselineSample,
    BaselineThresholds,
)

NOW = 1_768_478_400_000


def _samples(n: int, **fields) -> list[BaselineSample]:
    base = {"rfqi": 80, "client_count": 100, "channel_utilization": 40, "ap_online_count": 5}
    return [BaselineSample(timestamp=NOW + i, **{**base, **fields}) for i in range(n)]


class TestPercentile:
    def test_upper_quartile_example(self):
        assert percentile([10, 20, 30, 40], 75) == 40

    def test_unsorted_input(self):
        assert percentile([40, 10, 30, 20], 25) == 20

    def test_whole_rank_takes_upper_value(self):
        # 25% of 8 is rank 2 exactly; the floor index picks the third value
        assert percentile([10, 20, 30, 40, 50, 60, 70, 80], 25) == 30
        assert percentile([10, 20, 30, 40, 50], 25) == 20

    def test_empty_is_zero(self):
        assert percentile([], 50) == 0

    def test_bounds(self):
        assert percentile([5, 1, 9], 0) == 1
        assert percentile([5, 1, 9], 100) == 9

    def test_monotonic_in_p(self):
        values = [3, 17, 8, 8, 42, 0, 11, 25, 19, 6, 30]
        results = [percentile(values, p) for p in range(0, 101)]
        assert results == sorted(results)

    def test_does_not_mutate_input(self):
        values = [3, 1, 2]
        percentile(values, 50)
        assert values == [3, 1, 2]


class TestHelpers:
    def test_mean(self):
        assert mean([1, 2, 3, 4]) == 2.5
        assert mean([]) == 0

    @pytest.mark.parametrize("value,expected", [(2.5, 3), (3.5, 4), (2.4, 2), (-0.5, 0)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected


class TestCalculateBaseline:
    def test_no_samples_returns_defaults(self):
        result = calculate_baseline([], now_ms=NOW)
        assert result == BaselineThresholds.default(NOW)
        assert result.confidence == 0
        assert result.sample_size == 0
        assert (result.rfqi_target, result.rfqi_poor, result.channel_utilization_pct) == (75, 55, 65)
        assert (result.noise_floor_dbm, result.client_density, result.latency_p95_ms) == (-85, 50, 75)
        assert (result.retry_rate_pct, result.interference_high) == (15, 0.3)

    def test_full_confidence_at_100_samples(self):
        assert calculate_baseline(_samples(100), now_ms=NOW).confidence == 1
        assert calculate_baseline(_samples(250), now_ms=NOW).confidence == 1

    def test_partial_confidence(self):
        result = calculate_baseline(_samples(25), now_ms=NOW)
        assert result.confidence == 0.25
        assert result.sample_size == 25
        assert result.last_updated == NOW

    def test_constant_stream(self):
        result = calculate_baseline(_samples(20), now_ms=NOW)
        assert result.rfqi_target == 85          # mean + 5
        assert result.rfqi_poor == 80            # P25
        assert result.channel_utilization_pct == 50  # floor
        assert result.client_density == 20      # 100 clients / 5 APs, floor 20
        assert result.latency_p95_ms == 75       # no latency samples
        assert result.retry_rate_pct == 20       # no retry samples: P85 defaults to 15, + 5
        assert result.noise_floor_dbm == -85
        assert result.interference_high == 0.3

    def test_floors_apply_to_poor_networks(self):
        result = calculate_baseline(_samples(10, rfqi=20), now_ms=NOW)
        assert result.rfqi_target == 60
        assert result.rfqi_poor == 40

    def test_channel_utilization_capped(self):
        result = calculate_baseline(_samples(10, channel_utilization=95), now_ms=NOW)
        assert result.channel_utilization_pct == 85

    def test_client_density_uses_per_ap_ratio(self):
        result = calculate_baseline(_samples(10, client_count=300, ap_online_count=4), now_ms=NOW)
        assert result.client_density == 75

    def test_zero_online_aps_do_not_divide_by_zero(self):
        result = calculate_baseline(_samples(10, client_count=30, ap_online_count=0), now_ms=NOW)
        assert result.client_density == 30

    def test_latency_and_retry_percentiles(self):
        samples = [
            BaselineSample(timestamp=NOW + i, rfqi=80, client_count=50, latency_ms=10 + i, retry_rate=i)
            for i in range(20)
        ]
        result = calculate_baseline(samples, now_ms=NOW)
        assert result.latency_p95_ms == 30      # P95 = 29, floor 30
        assert result.retry_rate_pct == 22      # P85 = 17, + 5

    def test_retry_rate_capped(self):
        result = calculate_baseline(_samples(10, retry_rate=60), now_ms=NOW)
        assert result.retry_rate_pct == 30

    def test_skewed_set_keeps_poor_below_target(self):
        samples = _samples(1, rfqi=0) + _samples(3, rfqi=100)
        result = calculate_baseline(samples, now_ms=NOW)
        assert result.rfqi_poor < result.rfqi_target
        result.as_profile_thresholds()  # must not raise

    def test_results_are_finite(self):
        result = calculate_baseline(_samples(3, client_count=0, channel_utilization=0), now_ms=NOW)
        for value in result.to_dict().values():
            assert math.isfinite(value)
