"""Score composer: weighted aggregate score and summary text."""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field

from codescore.models import MetricName, Metrics


class ScoreWeights(BaseModel):
    """Weight of each metric in the aggregate score."""

    model_config = ConfigDict(frozen=True)

    accuracy: float = Field(default=0.30, ge=0)
    readability: float = Field(default=0.20, ge=0)
    performance: float = Field(default=0.20, ge=0)
    best_practices: float = Field(default=0.15, ge=0)
    security: float = Field(default=0.15, ge=0)

    def weight(self, name: MetricName) -> float:
        return getattr(self, name.value)


# (minimum score, summary) from best to worst
SUMMARY_BRACKETS = (
    (85, "Your code is well-structured and follows good practices."),
    (60, "Your code is generally solid with some issues worth addressing."),
    (0, "Your code needs significant revision before it is ready."),
)

METRIC_LABELS = {
    MetricName.ACCURACY: "accuracy",
    MetricName.READABILITY: "readability",
    MetricName.PERFORMANCE: "performance",
    MetricName.BEST_PRACTICES: "best practices",
    MetricName.SECURITY: "security",
}


def weighted_sum(metrics: Metrics, weights: ScoreWeights) -> float:
    return sum(weights.weight(name) * metrics.get(name) for name in MetricName)


def compose_score(metrics: Metrics, weights: ScoreWeights | None = None) -> int:
    """round(weighted sum) with halves rounded up, clamped to [0, 100]."""
    weights = weights or ScoreWeights()
    total = weighted_sum(metrics, weights)
    return max(0, min(100, int(math.floor(total + 0.5))))


def focus_area(metrics: Metrics) -> MetricName | None:
    """Lowest metric; ties go to the earlier metric. None when all are perfect."""
    lowest = min(MetricName, key=metrics.get)
    if metrics.get(lowest) >= 100:
        return None
    return lowest


def compose_summary(score: int, metrics: Metrics) -> str:
    for minimum, text in SUMMARY_BRACKETS:
        if score >= minimum:
            summary = text
            break
    area = focus_area(metrics)
    if area is None:
        return f"{summary} No specific area needs improvement."
    return f"{summary} Focus area: {METRIC_LABELS[area]} ({metrics.get(area)}/100)."
