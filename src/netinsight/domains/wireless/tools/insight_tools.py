"""MCP tools for generating, summarizing and grouping network insights."""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from netinsight.core.profiles.models import (
    ADAPTIVE_PROFILE_ID,
    EnvironmentProfile,
    ProfileError,
    evaluate_metric as evaluate_profile_metric,
)
from netinsight.domains.wireless.domain_logic.aggregation import (
    get_insights_by_group,
    get_insights_summary,
)
from netinsight.domains.wireless.domain_logic.insight_engine import (
    generate_insights as run_insight_engine,
)
from netinsight.domains.wireless.domain_logic.insight_models import INSIGHT_GROUP_META

if TYPE_CHECKING:
    from netinsight.core.profiles.registry import ProfileRegistry
    from netinsight.core.scheduling.debounce import Clock
    from netinsight.domains.wireless.domain_logic.adaptive_baseline import AdaptiveBaseline

logger = logging.getLogger(__name__)


def register_insight_tools(
    mcp: FastMCP,
    registry: ProfileRegistry,
    baseline: AdaptiveBaseline,
    *,
    default_profile: str,
    clock: Clock,
) -> None:
    """Register insight tools on the MCP server."""

    def resolve_profile(profile_id: str) -> EnvironmentProfile:
        profile_id = (profile_id or default_profile).lower()
        if profile_id == ADAPTIVE_PROFILE_ID:
            return baseline.adaptive_profile(registry)
        return registry.get_or_default(profile_id)

    def run(
        snapshot: dict[str, Any],
        profile_id: str,
        events: list[dict[str, Any]] | None,
        now_ms: int | None,
    ):
        profile = resolve_profile(profile_id)
        cards = run_insight_engine(
            snapshot, profile, events, now_ms=now_ms if now_ms is not None else clock()
        )
        return profile, cards

    @mcp.tool
    async def generate_insights(
        ctx: Context,
        snapshot: dict[str, Any],
        profile_id: str = "",
        events: list[dict[str, Any]] | None = None,
        now_ms: int | None = None,
    ) -> str:
        """Turn a network telemetry snapshot into ranked diagnostic insight cards.

        Every snapshot field is optional; missing fields simply disable the
        detectors that need them. Cards are ordered by rank score, highest first.

        Args:
            snapshot: Telemetry such as rfqi, channel_utilization, interference,
                retry_rate, client_count, ap_count, ap_online_count, avg_rssi,
                history (rfqi_1h_ago, client_count_24h_ago, ...) and ap_metrics.
            profile_id: Environment profile (retail, warehouse, distribution, hq,
                campus, custom, adaptive). Defaults to the configured profile.
            events: Optional recent network events ({type, timestamp, message}).
            now_ms: Evaluation time in epoch milliseconds (defaults to now).
        """
        start_time = time.monotonic()
        profile, cards = run(snapshot, profile_id, events, now_ms)
        elapsed_ms = (time.monotonic() - start_time) * 1000
        logger.info("Generated %d insights with profile %s", len(cards), profile.id)
        return json.dumps({
            "profile": profile.id,
            "count": len(cards),
            "insights": [c.to_dict() for c in cards],
            "duration_ms": round(elapsed_ms, 1),
        })

    @mcp.tool
    async def insights_summary(
        ctx: Context,
        snapshot: dict[str, Any],
        profile_id: str = "",
        events: list[dict[str, Any]] | None = None,
        now_ms: int | None = None,
    ) -> str:
        """Summarize insights for a snapshot: severity counts, top insight, per-group counts.

        Args:
            snapshot: Telemetry snapshot (same shape as generate_insights).
            profile_id: Environment profile id. Defaults to the configured profile.
            events: Optional recent network events.
            now_ms: Evaluation time in epoch milliseconds (defaults to now).
        """
        profile, cards = run(snapshot, profile_id, events, now_ms)
        summary = get_insights_summary(cards)
        top = summary["top_insight"]
        summary["top_insight"] = top.to_dict() if top is not None else None
        summary["profile"] = profile.id
        return json.dumps(summary)

    @mcp.tool
    async def insights_by_group(
        ctx: Context,
        snapshot: dict[str, Any],
        profile_id: str = "",
        events: list[dict[str, Any]] | None = None,
        now_ms: int | None = None,
    ) -> str:
        """Group insights into network health, capacity planning, anomaly
        detection and predictive maintenance.

        Args:
            snapshot: Telemetry snapshot (same shape as generate_insights).
            profile_id: Environment profile id. Defaults to the configured profile.
            events: Optional recent network events.
            now_ms: Evaluation time in epoch milliseconds (defaults to now).
        """
        profile, cards = run(snapshot, profile_id, events, now_ms)
        grouped = get_insights_by_group(cards)
        return json.dumps({
            "profile": profile.id,
            "groups": {
                group: {
                    **INSIGHT_GROUP_META[group],
                    "count": len(members),
                    "insights": [c.to_dict() for c in members],
                }
                for group, members in grouped.items()
            },
        })

    @mcp.tool
    async def list_environment_profiles(ctx: Context) -> str:
        """List the available environment profiles and their thresholds.

        The adaptive profile reports the thresholds currently learned from
        recorded telemetry.
        """
        profiles = [
            resolve_profile(p.id).to_dict() if p.adaptive else p.to_dict()
            for p in registry.all()
        ]
        return json.dumps({
            "default_profile": default_profile,
            "count": len(profiles),
            "profiles": profiles,
        })

    @mcp.tool
    async def evaluate_metric(
        ctx: Context,
        metric: str,
        value: float,
        profile_id: str = "",
    ) -> str:
        """Classify one metric value as good, warning or poor for a profile.

        Args:
            metric: One of rfqi, channel_utilization, noise_floor, latency,
                retry_rate, interference.
            value: The measured value.
            profile_id: Environment profile id. Defaults to the configured profile.
        """
        profile = resolve_profile(profile_id)
        try:
            status = evaluate_profile_metric(profile, metric, value)
        except ProfileError as exc:
            return json.dumps({"status": "error", "message": str(exc)})
        return json.dumps({
            "profile": profile.id,
            "metric": metric,
            "value": value,
            "status": status,
        })
