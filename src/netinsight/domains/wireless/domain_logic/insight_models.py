"""Insight card models and domain constants.

An insight explains, ranks and correlates what the telemetry already shows;
it never invents data. Recommended actions are always non-destructive.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from netinsight.domains.wireless.domain_logic.ranking import calculate_rank_score

InsightScope = Literal["network", "site", "ap", "client"]
InsightSeverity = Literal["critical", "warning", "info"]
InsightGroup = Literal[
    "network_health",
    "capacity_planning",
    "anomaly_detection",
    "predictive_maintenance",
]
InsightCategory = Literal[
    "rf_quality",
    "interference",
    "channel_utilization",
    "client_performance",
    "connectivity",
    "capacity",
    "anomaly",
    "trending",
    "predictive",
    "historical",
]
TrendDirection = Literal["improving", "degrading", "stable"]

SEVERITIES: tuple[InsightSeverity, ...] = ("critical", "warning", "info")
INSIGHT_GROUPS: tuple[InsightGroup, ...] = (
    "network_health",
    "capacity_planning",
    "anomaly_detection",
    "predictive_maintenance",
)

INSIGHT_GROUP_META: dict[str, dict[str, str]] = {
    "network_health": {
        "name": "Network Health",
        "description": "RF quality, connectivity, and interference issues",
    },
    "capacity_planning": {
        "name": "Capacity Planning",
        "description": "Client density, throughput trends, and load forecasting",
    },
    "anomaly_detection": {
        "name": "Anomaly Detection",
        "description": "Unusual patterns, trend deviations, and spikes",
    },
    "predictive_maintenance": {
        "name": "Predictive Maintenance",
        "description": "AP health predictions and failure forecasting",
    },
}


def _clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    """Clamp a value to [lo, hi]."""
    return max(lo, min(hi, value))


@dataclass(frozen=True)
class InsightEvidence:
    """One supporting data point shown on a card."""

    label: str
    value: float | int | str | None = None
    unit: str = ""
    metric: str | None = None
    timestamp: int | None = None   # epoch ms of the originating sample
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"label": self.label, "value": self.value}
        if self.unit:
            data["unit"] = self.unit
        for key in ("metric", "timestamp", "source"):
            if getattr(self, key) is not None:
                data[key] = getattr(self, key)
        return data


@dataclass(frozen=True)
class InsightTrend:
    direction: TrendDirection
    change_percent: float
    compared_to: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "direction": self.direction,
            "change_percent": round(self.change_percent, 2),
            "compared_to": self.compared_to,
        }


@dataclass(frozen=True)
class InsightPrediction:
    likelihood: float  # 0-1
    timeframe: str
    based_on: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "likelihood": self.likelihood,
            "timeframe": self.timeframe,
            "based_on": self.based_on,
        }


@dataclass(frozen=True)
class InsightCard:
    """A single ranked diagnostic insight.

    ``rank_score`` is derived from impact, confidence, recurrence and scope
    every time it is read, so it can never drift from its inputs.
    """

    id: str
    title: str
    why_it_matters: str
    evidence: tuple[InsightEvidence, ...]
    recommended_action: str
    category: InsightCategory
    group: InsightGroup
    severity: InsightSeverity
    scope: InsightScope
    impact: float
    confidence: float
    recurrence: float
    created_at: int
    trend: InsightTrend | None = None
    prediction: InsightPrediction | None = None
    expires_at: int | None = None  # epoch ms

    def __post_init__(self) -> None:
        if not self.evidence:
            raise ValueError(f"Insight {self.id!r} must carry at least one piece of evidence")
        object.__setattr__(self, "evidence", tuple(self.evidence))
        for name in ("impact", "confidence", "recurrence"):
            object.__setattr__(self, name, _clamp(float(getattr(self, name))))

    @property
    def rank_score(self) -> float:
        return calculate_rank_score(self)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "why_it_matters": self.why_it_matters,
            "evidence": [e.to_dict() for e in self.evidence],
            "recommended_action": self.recommended_action,
            "category": self.category,
            "group": self.group,
            "severity": self.severity,
            "scope": self.scope,
            "impact": round(self.impact, 4),
            "confidence": round(self.confidence, 4),
            "recurrence": round(self.recurrence, 4),
            "rank_score": round(self.rank_score, 4),
            "created_at": self.created_at,
        }
        if self.trend is not None:
            data["trend"] = self.trend.to_dict()
        if self.prediction is not None:
            data["prediction"] = self.prediction.to_dict()
        if self.expires_at is not None:
            data["expires_at"] = self.expires_at
        return data
