"""Insight detectors: one descriptor per rule family.

Each detector declares the snapshot fields it needs and a ``build`` function
that returns an :class:`InsightCard` when its condition holds, or ``None``.
The evaluator only calls ``build`` when every required field is present, so
builders may read those fields without ``None`` checks. Any zero
denominator makes the builder return ``None`` for that cycle.

All formulas are deterministic: no randomness and no wall-clock reads.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable

from netinsight.core.profiles.models import EnvironmentProfile, ProfileThresholds
from netinsight.domains.wireless.domain_logic.insight_models import (
    InsightCard,
    InsightEvidence,
    InsightPrediction,
    InsightTrend,
)
from netinsight.domains.wireless.domain_logic.snapshot_models import MetricsSnapshot

DAY_MS = 24 * 60 * 60 * 1000


@dataclass(frozen=True)
class DetectorConstants:
    """Heuristic tuning constants. Override per call when a site needs it."""

    rfqi_critical_fraction: float = 0.7      # critical below rfqi_poor * this
    interference_impact_span: float = 0.3
    retry_impact_span_pct: float = 20.0
    ap_offline_min_pct: float = 5.0
    ap_offline_critical_pct: float = 20.0
    ap_offline_impact_span_pct: float = 30.0
    client_density_multiplier: float = 1.2
    rssi_weak_dbm: float = -75.0
    rssi_very_weak_dbm: float = -80.0
    rssi_impact_span_db: float = 15.0
    trend_1h_min_pct: float = 10.0
    trend_1h_warning_pct: float = 20.0
    trend_impact_span_pct: float = 30.0
    historical_24h_drop_pct: float = 15.0
    client_spike_min_pct: float = 50.0
    client_spike_min_clients: int = 10
    client_spike_warning_pct: float = 100.0
    restart_min_count: int = 3
    restart_window_ms: int = DAY_MS
    restart_impact_span_aps: int = 5
    memory_stress_pct: float = 85.0
    cpu_stress_pct: float = 90.0
    stress_impact_span_aps: int = 3
    forecast_min_growth: float = 0.1
    forecast_load_fraction: float = 0.8
    forecast_warning_days: int = 3


DEFAULT_CONSTANTS = DetectorConstants()


@dataclass(frozen=True)
class DetectionContext:
    snapshot: MetricsSnapshot
    profile: EnvironmentProfile
    now_ms: int
    constants: DetectorConstants = DEFAULT_CONSTANTS

    @property
    def thresholds(self) -> ProfileThresholds:
        return self.profile.thresholds


@dataclass(frozen=True)
class Detector:
    """Descriptor for one independent rule."""

    id: str
    required_fields: tuple[str, ...]
    build: Callable[[DetectionContext], InsightCard | None]
    # Event types that count as a prior occurrence of this insight
    event_types: tuple[str, ...] = field(default_factory=tuple)


def _card(ctx: DetectionContext, key: str, **fields) -> InsightCard:
    return InsightCard(id=f"{key}-{ctx.now_ms}", created_at=ctx.now_ms, **fields)


def _pct_change(current: float, previous: float) -> float | None:
    if previous == 0:
        return None
    return (current - previous) / previous * 100


def _ap_names(aps) -> str:
    return ", ".join(ap.label for ap in aps[:3])


# ---------------------------------------------------------------------------
# Network health
# ---------------------------------------------------------------------------

def detect_rfqi_low(ctx: DetectionContext) -> InsightCard | None:
    s, t, c = ctx.snapshot, ctx.thresholds, ctx.constants
    if s.rfqi >= t.rfqi_poor:
        return None
    severity = "critical" if s.rfqi < t.rfqi_poor * c.rfqi_critical_fraction else "warning"
    return _card(
        ctx,
        "rfqi-low",
        title="RF Quality Below Threshold",
        why_it_matters=(
            f"In a {ctx.profile.name} environment, RF quality below {t.rfqi_poor:g}% "
            "impacts client connectivity and user experience."
        ),
        evidence=(
            InsightEvidence("Current RFQI", s.rfqi, "%", metric="rfqi", timestamp=s.timestamp),
            InsightEvidence("Target", t.rfqi_target, "%"),
            InsightEvidence("Profile", ctx.profile.name),
        ),
        recommended_action=(
            "Review RF environment for interference sources. "
            "Consider channel optimization or AP power adjustments."
        ),
        category="rf_quality",
        group="network_health",
        severity=severity,
        scope="site",
        impact=1 - s.rfqi / 100,
        confidence=0.9,
        recurrence=0.5,
    )


def detect_channel_utilization(ctx: DetectionContext) -> InsightCard | None:
    s, t = ctx.snapshot, ctx.thresholds
    ceiling = t.channel_utilization_pct
    if s.channel_utilization <= ceiling:
        return None
    return _card(
        ctx,
        "channel-util-high",
        title="High Channel Utilization Detected",
        why_it_matters=(
            f"Channel utilization above {ceiling:g}% in {ctx.profile.name} environments "
            "can cause client contention and reduced throughput."
        ),
        evidence=(
            InsightEvidence(
                "Channel Utilization", s.channel_utilization, "%",
                metric="channel_utilization", timestamp=s.timestamp,
            ),
            InsightEvidence("Threshold", ceiling, "%"),
        ),
        recommended_action=(
            "Consider load balancing clients across APs or adding capacity in high-density areas."
        ),
        category="channel_utilization",
        group="network_health",
        severity="warning",
        scope="site",
        impact=(s.channel_utilization - ceiling) / (100 - ceiling),
        confidence=0.85,
        recurrence=0.6,
    )


def detect_interference(ctx: DetectionContext) -> InsightCard | None:
    s, t, c = ctx.snapshot, ctx.thresholds, ctx.constants
    if s.interference <= t.interference_high:
        return None
    return _card(
        ctx,
        "interference-high",
        title="RF Interference Elevated",
        why_it_matters=(
            f"Interference above {t.interference_high * 100:.0f}% degrades signal quality "
            f"and increases retries in {ctx.profile.name} deployments."
        ),
        evidence=(
            InsightEvidence(
                "Interference Level", f"{s.interference * 100:.1f}%",
                metric="interference", timestamp=s.timestamp,
            ),
            InsightEvidence("Threshold", f"{t.interference_high * 100:.0f}%"),
        ),
        recommended_action=(
            "Identify interference sources (microwaves, Bluetooth, neighboring networks). "
            "Consider dynamic channel selection."
        ),
        category="interference",
        group="network_health",
        severity="warning",
        scope="site",
        impact=min(1.0, (s.interference - t.interference_high) / c.interference_impact_span),
        confidence=0.8,
        recurrence=0.4,
    )


def detect_retry_rate(ctx: DetectionContext) -> InsightCard | None:
    s, t, c = ctx.snapshot, ctx.thresholds, ctx.constants
    if s.retry_rate <= t.retry_rate_pct:
        return None
    return _card(
        ctx,
        "retry-rate-high",
        title="Elevated Wireless Retry Rate",
        why_it_matters=(
            f"Retry rates above {t.retry_rate_pct:g}% indicate RF issues or interference "
            f"affecting {ctx.profile.name} operations."
        ),
        evidence=(
            InsightEvidence("Retry Rate", s.retry_rate, "%", metric="retry_rate", timestamp=s.timestamp),
            InsightEvidence("Acceptable Limit", t.retry_rate_pct, "%"),
        ),
        recommended_action=(
            "Check for co-channel interference, adjust AP transmit power, or relocate affected clients."
        ),
        category="rf_quality",
        group="network_health",
        severity="warning",
        scope="ap",
        impact=min(1.0, (s.retry_rate - t.retry_rate_pct) / c.retry_impact_span_pct),
        confidence=0.75,
        recurrence=0.5,
    )


def detect_ap_offline(ctx: DetectionContext) -> InsightCard | None:
    s, c = ctx.snapshot, ctx.constants
    if s.ap_count <= 0:
        return None
    offline = s.ap_count - s.ap_online_count
    offline_pct = offline / s.ap_count * 100
    if offline <= 0 or offline_pct <= c.ap_offline_min_pct:
        return None
    return _card(
        ctx,
        "ap-offline",
        title=f"{offline} Access Points Offline",
        why_it_matters=(
            f"{offline_pct:.0f}% of APs offline creates coverage gaps in "
            f"{ctx.profile.name} deployment."
        ),
        evidence=(
            InsightEvidence("Offline APs", offline, timestamp=s.timestamp),
            InsightEvidence("Total APs", s.ap_count),
            InsightEvidence("Online", s.ap_online_count),
        ),
        recommended_action=(
            "Check network connectivity to offline APs. Verify power and physical connections."
        ),
        category="connectivity",
        group="network_health",
        severity="critical" if offline_pct > c.ap_offline_critical_pct else "warning",
        scope="site",
        impact=min(1.0, offline_pct / c.ap_offline_impact_span_pct),
        confidence=1.0,
        recurrence=0.3,
    )


def detect_weak_signal(ctx: DetectionContext) -> InsightCard | None:
    s, c = ctx.snapshot, ctx.constants
    if s.avg_rssi >= c.rssi_weak_dbm:
        return None
    return _card(
        ctx,
        "rssi-low",
        title="Clients Experiencing Weak Signal",
        why_it_matters=(
            f"Average RSSI of {s.avg_rssi:g} dBm is below {c.rssi_weak_dbm:g} dBm "
            "threshold for reliable connectivity."
        ),
        evidence=(
            InsightEvidence("Average RSSI", s.avg_rssi, "dBm", metric="rssi", timestamp=s.timestamp),
            InsightEvidence("Recommended", "-65 to -70", "dBm"),
        ),
        recommended_action=(
            "Review AP placement. Clients may be too far from access points "
            "or experiencing physical obstructions."
        ),
        category="client_performance",
        group="network_health",
        severity="warning" if s.avg_rssi < c.rssi_very_weak_dbm else "info",
        scope="client",
        impact=min(1.0, (c.rssi_weak_dbm - s.avg_rssi) / c.rssi_impact_span_db),
        confidence=0.7,
        recurrence=0.6,
    )


# ---------------------------------------------------------------------------
# Capacity planning
# ---------------------------------------------------------------------------

def detect_client_density(ctx: DetectionContext) -> InsightCard | None:
    s, t, c = ctx.snapshot, ctx.thresholds, ctx.constants
    if s.ap_online_count <= 0:
        return None
    clients_per_ap = s.client_count / s.ap_online_count
    if clients_per_ap <= t.client_density * c.client_density_multiplier:
        return None
    return _card(
        ctx,
        "client-density",
        title="High Client Density Per AP",
        why_it_matters=(
            f"{clients_per_ap:.0f} clients per AP exceeds {ctx.profile.name} capacity "
            f"planning threshold of {t.client_density:g}."
        ),
        evidence=(
            InsightEvidence("Clients/AP", f"{clients_per_ap:.1f}", timestamp=s.timestamp),
            InsightEvidence("Total Clients", s.client_count),
            InsightEvidence("Online APs", s.ap_online_count),
        ),
        recommended_action=(
            "Consider adding access points to high-density areas or enabling band steering."
        ),
        category="capacity",
        group="capacity_planning",
        severity="info",
        scope="site",
        impact=min(1.0, (clients_per_ap - t.client_density) / t.client_density),
        confidence=0.9,
        recurrence=0.7,
    )


def detect_capacity_forecast(ctx: DetectionContext) -> InsightCard | None:
    s, t, c = ctx.snapshot, ctx.thresholds, ctx.constants
    previous = s.history.client_count_24h_ago
    if s.ap_online_count <= 0 or previous <= 0:
        return None
    clients_per_ap = s.client_count / s.ap_online_count
    growth = (s.client_count - previous) / previous
    if growth <= c.forecast_min_growth or clients_per_ap <= t.client_density * c.forecast_load_fraction:
        return None

    projected = clients_per_ap * (1 + growth)
    if clients_per_ap < t.client_density:
        days_to_capacity = math.ceil((t.client_density - clients_per_ap) / (clients_per_ap * growth))
    else:
        days_to_capacity = 0
    when = f"in ~{days_to_capacity} days" if days_to_capacity > 0 else "very soon"

    return _card(
        ctx,
        "capacity-forecast",
        title="Network Approaching Capacity Limits",
        why_it_matters=(
            f"At current growth rate ({growth * 100:.0f}%/day), network will exceed "
            f"capacity thresholds {when}."
        ),
        evidence=(
            InsightEvidence("Current Load", f"{clients_per_ap:.1f} clients/AP", timestamp=s.timestamp),
            InsightEvidence("Threshold", f"{t.client_density:g} clients/AP"),
            InsightEvidence("Daily Growth", f"+{growth * 100:.0f}%"),
            InsightEvidence("Projected", f"{projected:.1f} clients/AP"),
        ),
        recommended_action=(
            "Plan for additional AP deployment. Review high-density areas "
            "and consider load balancing optimizations."
        ),
        category="predictive",
        group="capacity_planning",
        severity="warning" if days_to_capacity <= c.forecast_warning_days else "info",
        scope="site",
        impact=min(1.0, growth * 2),
        confidence=0.65,
        recurrence=0.8,
        prediction=InsightPrediction(
            likelihood=0.7,
            timeframe=f"{days_to_capacity} days" if days_to_capacity > 0 else "imminent",
            based_on="24-hour growth trend",
        ),
    )


# ---------------------------------------------------------------------------
# Trending / historical comparison
# ---------------------------------------------------------------------------

def detect_rfqi_trend_1h(ctx: DetectionContext) -> InsightCard | None:
    s, c = ctx.snapshot, ctx.constants
    previous = s.history.rfqi_1h_ago
    change_pct = _pct_change(s.rfqi, previous)
    if change_pct is None or abs(change_pct) <= c.trend_1h_min_pct:
        return None

    degrading = change_pct < 0
    if degrading:
        title = "RF Quality Degrading"
        why = (
            f"RFQI has dropped {abs(change_pct):.0f}% in the last hour, "
            "indicating emerging RF issues."
        )
        action = (
            "Investigate recent changes: new interference sources, increased client load, "
            "or environmental factors."
        )
    else:
        title = "RF Quality Improving"
        why = (
            f"RFQI has improved {change_pct:.0f}% in the last hour, "
            "showing positive network health trend."
        )
        action = (
            "Continue monitoring. Recent optimizations or reduced load may be "
            "contributing to improvement."
        )

    return _card(
        ctx,
        "rfqi-trend-1h",
        title=title,
        why_it_matters=why,
        evidence=(
            InsightEvidence("Current RFQI", f"{s.rfqi:.0f}", "%", timestamp=s.timestamp),
            InsightEvidence("1 Hour Ago", f"{previous:.0f}", "%"),
            InsightEvidence("Change", f"{'+' if change_pct > 0 else ''}{change_pct:.0f}%"),
        ),
        recommended_action=action,
        category="trending",
        group="anomaly_detection",
        severity="warning" if degrading and change_pct < -c.trend_1h_warning_pct else "info",
        scope="site",
        impact=min(1.0, abs(change_pct) / c.trend_impact_span_pct),
        confidence=0.85,
        recurrence=0.4,
        trend=InsightTrend(
            direction="degrading" if degrading else "improving",
            change_percent=abs(change_pct),
            compared_to="1 hour ago",
        ),
    )


def detect_rfqi_historical_24h(ctx: DetectionContext) -> InsightCard | None:
    s, c = ctx.snapshot, ctx.constants
    previous = s.history.rfqi_24h_ago
    change_pct = _pct_change(s.rfqi, previous)
    if change_pct is None or change_pct >= -c.historical_24h_drop_pct:
        return None
    return _card(
        ctx,
        "rfqi-historical-24h",
        title="RF Quality Lower Than Yesterday",
        why_it_matters=(
            f"RFQI is {abs(change_pct):.0f}% lower than the same time yesterday, "
            "suggesting a recurring or new issue."
        ),
        evidence=(
            InsightEvidence("Current RFQI", f"{s.rfqi:.0f}", "%", timestamp=s.timestamp),
            InsightEvidence("Yesterday", f"{previous:.0f}", "%"),
            InsightEvidence("Difference", f"{change_pct:.0f}%"),
        ),
        recommended_action=(
            "Compare environmental conditions. Check for patterns "
            "(e.g., peak hours, external interference)."
        ),
        category="historical",
        group="anomaly_detection",
        severity="info",
        scope="site",
        impact=min(1.0, abs(change_pct) / c.trend_impact_span_pct),
        confidence=0.7,
        recurrence=0.6,
        trend=InsightTrend(
            direction="degrading",
            change_percent=abs(change_pct),
            compared_to="same time yesterday",
        ),
    )


def detect_client_spike(ctx: DetectionContext) -> InsightCard | None:
    s, c = ctx.snapshot, ctx.constants
    previous = s.history.client_count_1h_ago
    change_pct = _pct_change(s.client_count, previous)
    change = s.client_count - previous
    if change_pct is None or change_pct <= c.client_spike_min_pct or change <= c.client_spike_min_clients:
        return None
    return _card(
        ctx,
        "client-spike",
        title="Unusual Client Surge Detected",
        why_it_matters=(
            f"Client count increased by {change_pct:.0f}% (+{change:g} clients) in the last hour, "
            "which may strain network capacity."
        ),
        evidence=(
            InsightEvidence("Current Clients", s.client_count, timestamp=s.timestamp),
            InsightEvidence("1 Hour Ago", previous),
            InsightEvidence("Increase", f"+{change:g} (+{change_pct:.0f}%)"),
        ),
        recommended_action=(
            "Monitor for capacity issues. Ensure load balancing is active "
            "and consider temporary capacity measures."
        ),
        category="anomaly",
        group="anomaly_detection",
        severity="warning" if change_pct > c.client_spike_warning_pct else "info",
        scope="site",
        impact=min(1.0, change_pct / 100),
        confidence=0.9,
        recurrence=0.3,
        trend=InsightTrend(direction="degrading", change_percent=change_pct, compared_to="1 hour ago"),
    )


# ---------------------------------------------------------------------------
# Predictive maintenance
# ---------------------------------------------------------------------------

def detect_ap_restart_pattern(ctx: DetectionContext) -> InsightCard | None:
    c = ctx.constants
    restarting = [
        ap
        for ap in ctx.snapshot.ap_metrics
        if (ap.restart_count or 0) >= c.restart_min_count
        and ap.last_restart
        and ctx.now_ms - ap.last_restart < c.restart_window_ms
    ]
    if not restarting:
        return None
    avg_restarts = sum(ap.restart_count or 0 for ap in restarting) / len(restarting)
    return _card(
        ctx,
        "ap-restart-pattern",
        title=f"{len(restarting)} AP(s) Showing Restart Patterns",
        why_it_matters=(
            "Multiple restarts in 24 hours indicate potential hardware issues or firmware instability."
        ),
        evidence=(
            InsightEvidence("Affected APs", len(restarting)),
            InsightEvidence("AP Names", _ap_names(restarting)),
            InsightEvidence("Avg Restarts", f"{avg_restarts:.1f}"),
        ),
        recommended_action=(
            "Schedule maintenance check. Consider firmware update or hardware replacement "
            "for persistently unstable APs."
        ),
        category="predictive",
        group="predictive_maintenance",
        severity="warning",
        scope="ap",
        impact=min(1.0, len(restarting) / c.restart_impact_span_aps),
        confidence=0.8,
        recurrence=0.7,
        prediction=InsightPrediction(
            likelihood=0.75, timeframe="next 48 hours", based_on="restart frequency pattern"
        ),
    )


def detect_ap_resource_stress(ctx: DetectionContext) -> InsightCard | None:
    c = ctx.constants
    stressed = [
        ap
        for ap in ctx.snapshot.ap_metrics
        if (ap.memory_usage is not None and ap.memory_usage > c.memory_stress_pct)
        or (ap.cpu_usage is not None and ap.cpu_usage > c.cpu_stress_pct)
    ]
    if not stressed:
        return None
    avg_memory = sum(ap.memory_usage or 0 for ap in stressed) / len(stressed)
    return _card(
        ctx,
        "ap-resource-stress",
        title=f"{len(stressed)} AP(s) Under Resource Stress",
        why_it_matters=(
            "High memory or CPU usage may lead to performance degradation or unexpected reboots."
        ),
        evidence=(
            InsightEvidence("Stressed APs", len(stressed)),
            InsightEvidence("AP Names", _ap_names(stressed)),
            InsightEvidence("Avg Memory", f"{avg_memory:.0f}%"),
        ),
        recommended_action=(
            "Review client distribution. Consider offloading clients to nearby APs "
            "or investigate memory leaks."
        ),
        category="predictive",
        group="predictive_maintenance",
        severity="warning",
        scope="ap",
        impact=min(1.0, len(stressed) / c.stress_impact_span_aps),
        confidence=0.85,
        recurrence=0.5,
        prediction=InsightPrediction(
            likelihood=0.6, timeframe="next 4 hours", based_on="resource utilization trend"
        ),
    )


# Evaluation order; ranking ties fall back to this order.
DETECTORS: tuple[Detector, ...] = (
    Detector("rfqi-low", ("rfqi",), detect_rfqi_low, ("rf_quality", "rfqi_low")),
    Detector(
        "channel-util-high", ("channel_utilization",), detect_channel_utilization,
        ("channel_utilization", "high_utilization"),
    ),
    Detector("interference-high", ("interference",), detect_interference, ("interference",)),
    Detector("retry-rate-high", ("retry_rate",), detect_retry_rate, ("retry_rate",)),
    Detector(
        "ap-offline", ("ap_count", "ap_online_count"), detect_ap_offline,
        ("ap_offline", "ap_disconnected"),
    ),
    Detector(
        "client-density", ("client_count", "ap_online_count"), detect_client_density,
        ("client_density",),
    ),
    Detector("rssi-low", ("avg_rssi",), detect_weak_signal, ("weak_signal", "low_rssi")),
    Detector("rfqi-trend-1h", ("rfqi", "history.rfqi_1h_ago"), detect_rfqi_trend_1h, ("rf_quality",)),
    Detector(
        "rfqi-historical-24h", ("rfqi", "history.rfqi_24h_ago"), detect_rfqi_historical_24h,
        ("rf_quality",),
    ),
    Detector(
        "client-spike", ("client_count", "history.client_count_1h_ago"), detect_client_spike,
        ("client_surge",),
    ),
    Detector("ap-restart-pattern", ("ap_metrics",), detect_ap_restart_pattern, ("ap_restart", "ap_reboot")),
    Detector("ap-resource-stress", ("ap_metrics",), detect_ap_resource_stress, ("ap_high_cpu", "ap_high_memory")),
    Detector(
        "capacity-forecast",
        ("client_count", "ap_online_count", "history.client_count_24h_ago"),
        detect_capacity_forecast,
        ("capacity",),
    ),
)
