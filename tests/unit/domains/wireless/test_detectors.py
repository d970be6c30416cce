"""Tests for the individual insight detectors against the campus profile."""

from __future__ import annotations

import pytest

from netinsight.domains.wireless.domain_logic.detectors import (
    DAY_MS,
    DETECTORS,
    DetectionContext,
    DetectorConstants,
)
from netinsight.domains.wireless.domain_logic.snapshot_models import MetricsSnapshot

NOW = 1_768_478_400_000
HOUR_MS = 60 * 60 * 1000


@pytest.fixture
def detect(campus):
    """Run one detector by id; returns None when it is skipped or silent."""

    def _detect(detector_id: str, snapshot: dict, constants: DetectorConstants | None = None):
        detector = next(d for d in DETECTORS if d.id == detector_id)
        snap = MetricsSnapshot.from_dict(snapshot)
        if not all(snap.has(path) for path in detector.required_fields):
            return None
        ctx = DetectionContext(snap, campus, NOW, constants or DetectorConstants())
        return detector.build(ctx)

    return _detect


def test_detector_ids_are_unique():
    ids = [d.id for d in DETECTORS]
    assert len(ids) == len(set(ids)) == 13


class TestRfqiLow:
    def test_scenario_a_critical(self, detect):
        card = detect("rfqi-low", {"rfqi": 30})
        assert card.severity == "critical"
        assert card.category == "rf_quality"
        assert card.group == "network_health"
        assert card.impact == pytest.approx(0.7)
        assert card.id == f"rfqi-low-{NOW}"
        assert card.created_at == NOW

    def test_warning_between_cutoffs(self, detect):
        assert detect("rfqi-low", {"rfqi": 50}).severity == "warning"

    def test_silent_at_or_above_poor(self, detect):
        assert detect("rfqi-low", {"rfqi": 55}) is None

    def test_evidence_mentions_profile(self, detect):
        card = detect("rfqi-low", {"rfqi": 50})
        labels = {e.label: e.value for e in card.evidence}
        assert labels["Profile"] == "Campus"
        assert labels["Target"] == 75


class TestNetworkHealth:
    def test_channel_utilization(self, detect):
        card = detect("channel-util-high", {"channel_utilization": 80})
        assert card.severity == "warning"
        assert card.impact == pytest.approx(15 / 35)
        assert detect("channel-util-high", {"channel_utilization": 65}) is None

    def test_interference(self, detect):
        card = detect("interference-high", {"interference": 0.45})
        assert card.impact == pytest.approx(0.5)
        assert card.category == "interference"
        assert detect("interference-high", {"interference": 0.3}) is None

    def test_interference_impact_capped(self, detect):
        assert detect("interference-high", {"interference": 0.9}).impact == 1.0

    def test_retry_rate_is_ap_scoped(self, detect):
        card = detect("retry-rate-high", {"retry_rate": 25})
        assert card.scope == "ap"
        assert card.impact == pytest.approx(0.5)

    def test_scenario_b_ap_offline_critical(self, detect):
        card = detect("ap-offline", {"ap_count": 10, "ap_online_count": 7})
        assert card.severity == "critical"
        assert card.category == "connectivity"
        assert card.confidence == 1.0
        assert card.title == "3 Access Points Offline"

    def test_ap_offline_warning(self, detect):
        card = detect("ap-offline", {"ap_count": 20, "ap_online_count": 18})
        assert card.severity == "warning"
        assert card.impact == pytest.approx(10 / 30)

    def test_ap_offline_below_minimum(self, detect):
        assert detect("ap-offline", {"ap_count": 100, "ap_online_count": 96}) is None

    def test_ap_offline_zero_aps(self, detect):
        assert detect("ap-offline", {"ap_count": 0, "ap_online_count": 0}) is None

    def test_weak_signal(self, detect):
        card = detect("rssi-low", {"avg_rssi": -82})
        assert card.severity == "warning"
        assert card.scope == "client"
        assert card.impact == pytest.approx(7 / 15)
        assert detect("rssi-low", {"avg_rssi": -77}).severity == "info"
        assert detect("rssi-low", {"avg_rssi": -70}) is None


class TestCapacity:
    def test_client_density(self, detect):
        card = detect("client-density", {"client_count": 1000, "ap_online_count": 10})
        assert card.severity == "info"
        assert card.group == "capacity_planning"
        assert card.impact == pytest.approx(25 / 75)

    def test_client_density_zero_online(self, detect):
        assert detect("client-density", {"client_count": 10, "ap_online_count": 0}) is None

    def test_client_density_multiplier_override(self, detect):
        snapshot = {"client_count": 800, "ap_online_count": 10}
        assert detect("client-density", snapshot) is None
        card = detect("client-density", snapshot, DetectorConstants(client_density_multiplier=1.0))
        assert card is not None

    def test_capacity_forecast_days(self, detect):
        card = detect(
            "capacity-forecast",
            {"client_count": 700, "ap_online_count": 10, "history": {"client_count_24h_ago": 600}},
        )
        assert card.severity == "warning"
        assert card.category == "predictive"
        assert card.prediction.timeframe == "1 days"
        assert card.prediction.likelihood == 0.7
        assert card.impact == pytest.approx(2 * 100 / 600)

    def test_capacity_forecast_imminent(self, detect):
        card = detect(
            "capacity-forecast",
            {"client_count": 800, "ap_online_count": 10, "history": {"client_count_24h_ago": 700}},
        )
        assert card.prediction.timeframe == "imminent"

    def test_capacity_forecast_needs_growth(self, detect):
        assert detect(
            "capacity-forecast",
            {"client_count": 700, "ap_online_count": 10, "history": {"client_count_24h_ago": 680}},
        ) is None

    def test_capacity_forecast_zero_history(self, detect):
        assert detect(
            "capacity-forecast",
            {"client_count": 700, "ap_online_count": 10, "history": {"client_count_24h_ago": 0}},
        ) is None


class TestTrends:
    def test_rfqi_degrading_warning(self, detect):
        card = detect("rfqi-trend-1h", {"rfqi": 60, "history": {"rfqi_1h_ago": 80}})
        assert card.severity == "warning"
        assert card.trend.direction == "degrading"
        assert card.trend.change_percent == pytest.approx(25)
        assert card.trend.compared_to == "1 hour ago"
        assert card.impact == pytest.approx(25 / 30)

    def test_rfqi_improving_info(self, detect):
        card = detect("rfqi-trend-1h", {"rfqi": 90, "history": {"rfqi_1h_ago": 80}})
        assert card.severity == "info"
        assert card.trend.direction == "improving"

    def test_small_change_is_silent(self, detect):
        assert detect("rfqi-trend-1h", {"rfqi": 88, "history": {"rfqi_1h_ago": 80}}) is None

    def test_zero_previous_disables(self, detect):
        assert detect("rfqi-trend-1h", {"rfqi": 60, "history": {"rfqi_1h_ago": 0}}) is None

    def test_missing_history_skips(self, detect):
        assert detect("rfqi-trend-1h", {"rfqi": 60}) is None

    def test_historical_24h(self, detect):
        card = detect("rfqi-historical-24h", {"rfqi": 60, "history": {"rfqi_24h_ago": 80}})
        assert card.severity == "info"
        assert card.category == "historical"
        assert card.trend.compared_to == "same time yesterday"
        assert detect("rfqi-historical-24h", {"rfqi": 70, "history": {"rfqi_24h_ago": 80}}) is None

    def test_scenario_c_client_spike_info(self, detect):
        card = detect("client-spike", {"client_count": 120, "history": {"client_count_1h_ago": 70}})
        assert card.severity == "info"
        assert card.category == "anomaly"
        assert card.group == "anomaly_detection"
        assert card.trend.direction == "degrading"

    def test_client_spike_warning(self, detect):
        card = detect("client-spike", {"client_count": 150, "history": {"client_count_1h_ago": 70}})
        assert card.severity == "warning"

    def test_client_spike_needs_absolute_change(self, detect):
        assert detect("client-spike", {"client_count": 18, "history": {"client_count_1h_ago": 8}}) is None


class TestPredictiveMaintenance:
    def test_restart_pattern(self, detect):
        card = detect("ap-restart-pattern", {"ap_metrics": [
            {"name": "Lobby", "restart_count": 4, "last_restart": NOW - HOUR_MS},
            {"name": "Gym", "restart_count": 1, "last_restart": NOW - HOUR_MS},
        ]})
        assert card.title == "1 AP(s) Showing Restart Patterns"
        assert card.prediction.timeframe == "next 48 hours"
        assert card.impact == pytest.approx(1 / 5)
        assert {e.label: e.value for e in card.evidence}["AP Names"] == "Lobby"

    def test_old_restarts_ignored(self, detect):
        assert detect("ap-restart-pattern", {"ap_metrics": [
            {"name": "Lobby", "restart_count": 9, "last_restart": NOW - DAY_MS - 1},
        ]}) is None

    def test_resource_stress(self, detect):
        card = detect("ap-resource-stress", {"ap_metrics": [
            {"name": "a", "memory_usage": 90},
            {"name": "b", "cpu_usage": 95},
            {"name": "c", "memory_usage": 80, "cpu_usage": 85},
        ]})
        assert card.title == "2 AP(s) Under Resource Stress"
        assert card.prediction.likelihood == 0.6
        assert card.impact == pytest.approx(2 / 3)

    def test_no_ap_metrics_skips(self, detect):
        assert detect("ap-resource-stress", {}) is None
