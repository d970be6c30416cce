"""MCP tools for the adaptive baseline: recording, inspection, reset."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from netinsight.domains.wireless.domain_logic.confidence import format_baseline_confidence

if TYPE_CHECKING:
    from netinsight.domains.wireless.domain_logic.adaptive_baseline import AdaptiveBaseline

logger = logging.getLogger(__name__)


def register_baseline_tools(
    mcp: FastMCP,
    baseline: AdaptiveBaseline,
    *,
    max_age_ms: int,
) -> None:
    """Register adaptive baseline tools on the MCP server."""
    store = baseline.store

    @mcp.tool
    async def record_snapshot(
        ctx: Context,
        rfqi: float,
        client_count: float,
        ap_online_count: float,
        channel_utilization: float | None = None,
        retry_rate: float | None = None,
        latency_ms: float | None = None,
        site_id: str | None = None,
    ) -> str:
        """Record a telemetry reading for adaptive baseline learning.

        Samples are kept in a bounded window (oldest evicted first) and
        persisted shortly after recording.

        Args:
            rfqi: RF quality index (0-100).
            client_count: Connected clients.
            ap_online_count: Access points currently online.
            channel_utilization: Channel utilization percent.
            retry_rate: Wireless retry rate percent.
            latency_ms: Observed latency in milliseconds.
            site_id: Optional site identifier.
        """
        accepted = store.record_snapshot({
            "rfqi": rfqi,
            "client_count": client_count,
            "ap_online_count": ap_online_count,
            "channel_utilization": channel_utilization,
            "retry_rate": retry_rate,
            "latency_ms": latency_ms,
            "site_id": site_id,
        })
        if not accepted:
            return json.dumps({
                "status": "rejected",
                "message": "rfqi and client_count must be numeric.",
            })
        return json.dumps({
            "status": "recorded",
            "sample_count": store.get_sample_count(),
            "capacity": store.capacity,
        })

    @mcp.tool
    async def baseline_summary(ctx: Context) -> str:
        """Summarize collected baseline data: sample count, confidence, averages."""
        return json.dumps(baseline.get_summary())

    @mcp.tool
    async def baseline_thresholds(ctx: Context, recalculate: bool = False) -> str:
        """Return the adaptive thresholds learned from recorded telemetry.

        Args:
            recalculate: Recompute now instead of serving a fresh cached bundle.
        """
        thresholds = (
            baseline.calculate_baseline() if recalculate else baseline.get_thresholds(max_age_ms)
        )
        return json.dumps({
            "thresholds": thresholds.to_dict(),
            "confidence_label": format_baseline_confidence(thresholds.confidence),
        })

    @mcp.tool
    async def clear_baseline_data(ctx: Context, confirm: str = "") -> str:
        """Permanently delete all recorded baseline samples and learned thresholds.

        Args:
            confirm: Must be exactly 'CLEAR_BASELINE' to proceed. Safety gate.
        """
        if confirm != "CLEAR_BASELINE":
            return json.dumps({
                "status": "cancelled",
                "message": (
                    "To clear baseline data, call this tool with "
                    "confirm='CLEAR_BASELINE'. This action cannot be undone."
                ),
            })

        count = store.get_sample_count()
        store.clear()
        logger.warning("Baseline data cleared: %d samples removed", count)
        return json.dumps({
            "status": "cleared",
            "samples_deleted": count,
        })
