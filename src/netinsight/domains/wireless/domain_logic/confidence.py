"""Sample-count confidence labels for the adaptive baseline."""

from __future__ import annotations

from typing import Literal

ConfidenceLevel = Literal["none", "low", "moderate", "high"]

LOW_SAMPLE_CEILING = 10
MODERATE_SAMPLE_CEILING = 50


def confidence_level(sample_count: int) -> ConfidenceLevel:
    if sample_count <= 0:
        return "none"
    if sample_count < LOW_SAMPLE_CEILING:
        return "low"
    if sample_count < MODERATE_SAMPLE_CEILING:
        return "moderate"
    return "high"


def confidence_description(sample_count: int) -> str:
    level = confidence_level(sample_count)
    if level == "none":
        return "No data collected yet"
    if level == "low":
        return f"Learning ({sample_count}/{LOW_SAMPLE_CEILING} samples)"
    if level == "moderate":
        return f"Building baseline ({sample_count}/{MODERATE_SAMPLE_CEILING} samples)"
    return f"High confidence ({sample_count} samples)"


def format_baseline_confidence(confidence: float) -> str:
    """Human label for a 0-1 baseline confidence score."""
    if confidence < 0.3:
        return "Learning (need more data)"
    if confidence < 0.7:
        return "Moderate confidence"
    return "High confidence"
