"""Deterministic composite ranking for insight cards."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from netinsight.domains.wireless.domain_logic.insight_models import InsightCard

# Weights of the four ranking inputs; they sum to 1.0
RANKING_WEIGHTS = {
    "impact": 0.40,
    "confidence": 0.25,
    "recurrence": 0.15,
    "scope": 0.20,
}

# Wider blast radius ranks higher
SCOPE_WEIGHTS = {
    "network": 1.0,
    "site": 0.75,
    "ap": 0.5,
    "client": 0.25,
}
DEFAULT_SCOPE_WEIGHT = 0.5


def scope_weight(scope: str) -> float:
    return SCOPE_WEIGHTS.get(scope, DEFAULT_SCOPE_WEIGHT)


def calculate_rank_score(card: InsightCard) -> float:
    """Weighted sum of impact, confidence, recurrence and scope weight."""
    return (
        RANKING_WEIGHTS["impact"] * card.impact
        + RANKING_WEIGHTS["confidence"] * card.confidence
        + RANKING_WEIGHTS["recurrence"] * card.recurrence
        + RANKING_WEIGHTS["scope"] * scope_weight(card.scope)
    )


def rank_insights(cards: list[InsightCard]) -> list[InsightCard]:
    """Return a new list ordered by rank score, highest first.

    ``sorted`` is stable, so equal scores keep detector emission order.
    """
    return sorted(cards, key=calculate_rank_score, reverse=True)
