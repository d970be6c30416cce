"""Roll-ups over a ranked list of insight cards."""

from __future__ import annotations

from typing import Any

from netinsight.domains.wireless.domain_logic.insight_models import (
    INSIGHT_GROUPS,
    InsightCard,
)


def get_insights_by_group(cards: list[InsightCard]) -> dict[str, list[InsightCard]]:
    """Partition cards by group. All four groups are always present."""
    grouped: dict[str, list[InsightCard]] = {group: [] for group in INSIGHT_GROUPS}
    for card in cards:
        grouped.setdefault(card.group, []).append(card)
    return grouped


def get_insights_summary(cards: list[InsightCard]) -> dict[str, Any]:
    """Severity counts, the first (top-ranked) card, and per-group counts.

    ``cards`` is expected to be ranked already; the first card is reported
    as ``top_insight``.
    """
    return {
        "total": len(cards),
        "critical": sum(1 for c in cards if c.severity == "critical"),
        "warning": sum(1 for c in cards if c.severity == "warning"),
        "info": sum(1 for c in cards if c.severity == "info"),
        "top_insight": cards[0] if cards else None,
        "by_group": {
            group: len(members) for group, members in get_insights_by_group(cards).items()
        },
    }
