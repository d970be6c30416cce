"""Insight rule evaluator: snapshot + profile -> ranked insight cards.

Never raises for bad telemetry. Detectors whose inputs are absent are
skipped; a detector that fails is logged and its card omitted.
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Any, Iterable

from netinsight.core.profiles.models import EnvironmentProfile
from netinsight.domains.wireless.domain_logic.detectors import (
    DAY_MS,
    DEFAULT_CONSTANTS,
    DETECTORS,
    DetectionContext,
    Detector,
    DetectorConstants,
)
from netinsight.domains.wireless.domain_logic.insight_models import InsightCard
from netinsight.domains.wireless.domain_logic.ranking import rank_insights
from netinsight.domains.wireless.domain_logic.snapshot_models import (
    MetricsSnapshot,
    NetworkEvent,
)

logger = logging.getLogger(__name__)

# Recurrence added per matching event seen in the last 24 hours
EVENT_RECURRENCE_STEP = 0.1


def _coerce_snapshot(snapshot: MetricsSnapshot | dict[str, Any]) -> MetricsSnapshot:
    if isinstance(snapshot, MetricsSnapshot):
        return snapshot
    return MetricsSnapshot.from_dict(snapshot)


def _coerce_events(events: Iterable[NetworkEvent | dict[str, Any]] | None) -> list[NetworkEvent]:
    result: list[NetworkEvent] = []
    for event in events or ():
        if isinstance(event, dict):
            event = NetworkEvent.from_dict(event)
        if isinstance(event, NetworkEvent):
            result.append(event)
    return result


def _recurrence_boost(detector: Detector, events: list[NetworkEvent], now_ms: int) -> float:
    if not detector.event_types:
        return 0.0
    matches = sum(
        1
        for e in events
        if e.type in detector.event_types and 0 <= now_ms - e.timestamp <= DAY_MS
    )
    return matches * EVENT_RECURRENCE_STEP


def generate_insights(
    snapshot: MetricsSnapshot | dict[str, Any],
    profile: EnvironmentProfile,
    events: Iterable[NetworkEvent | dict[str, Any]] | None = None,
    *,
    now_ms: int | None = None,
    constants: DetectorConstants | None = None,
    detectors: tuple[Detector, ...] = DETECTORS,
) -> list[InsightCard]:
    """Run every applicable detector and return cards ranked highest first.

    Args:
        snapshot: Latest telemetry, as a MetricsSnapshot or a raw dict.
        profile: Environment profile supplying the thresholds.
        events: Optional recent network events; matching events within
            24 hours raise the recurrence of the related card.
        now_ms: Evaluation time (epoch ms). Defaults to the wall clock.
        constants: Detector tuning overrides.
        detectors: Detector list to evaluate, in emission order.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    snap = _coerce_snapshot(snapshot)
    ctx = DetectionContext(
        snapshot=snap,
        profile=profile,
        now_ms=now_ms,
        constants=constants or DEFAULT_CONSTANTS,
    )
    recent_events = _coerce_events(events)

    cards: list[InsightCard] = []
    for detector in detectors:
        if not all(snap.has(path) for path in detector.required_fields):
            continue
        try:
            card = detector.build(ctx)
        except Exception:
            logger.exception("Insight detector %s failed", detector.id)
            continue
        if card is None:
            continue
        boost = _recurrence_boost(detector, recent_events, now_ms)
        if boost:
            card = replace(card, recurrence=card.recurrence + boost)
        cards.append(card)

    logger.debug(
        "Generated %d insights for profile %s (%d detectors)",
        len(cards), profile.id, len(detectors),
    )
    return rank_insights(cards)
