"""Metric aggregator: findings + structural stats -> five 0-100 metrics."""

from __future__ import annotations

import math
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from codescore.models import Finding, MetricName, Metrics, Severity
from codescore.normalizer import SourceMap, TokenKind


class SeverityPenalties(BaseModel):
    """Points removed per finding, before the detector's weight is applied."""

    model_config = ConfigDict(frozen=True)

    error: float = Field(default=15.0, ge=0)
    warning: float = Field(default=8.0, ge=0)
    suggestion: float = Field(default=3.0, ge=0)

    def for_severity(self, severity: Severity) -> float:
        return {
            Severity.ERROR: self.error,
            Severity.WARNING: self.warning,
            Severity.SUGGESTION: self.suggestion,
        }[severity]


class StructuralPolicy(BaseModel):
    """Thresholds for the structure-only parts of readability and best practices."""

    model_config = ConfigDict(frozen=True)

    avg_line_length_limit: float = Field(default=80.0, gt=0)
    avg_line_length_penalty: float = Field(default=1.0, ge=0)  # per char over the limit
    nesting_limit: int = Field(default=4, ge=1)
    nesting_penalty: float = Field(default=5.0, ge=0)  # per level over the limit
    max_structural_penalty: float = Field(default=20.0, ge=0)
    min_comment_ratio: float = Field(default=0.05, ge=0, le=1)
    comment_check_min_lines: int = Field(default=20, ge=1)
    missing_comments_penalty: float = Field(default=10.0, ge=0)


@dataclass(frozen=True)
class StructuralStats:
    line_count: int
    non_blank_lines: int
    average_line_length: float
    nesting_profile: tuple[int, ...]
    max_nesting: int
    comment_ratio: float


def compute_structure(source: SourceMap) -> StructuralStats:
    non_blank = [i for i, line in enumerate(source.lines, start=1) if line.strip()]
    if not non_blank:
        return StructuralStats(source.line_count, 0, 0.0, (0,) * source.line_count, 0, 0.0)

    avg_len = sum(len(source.line(i).rstrip()) for i in non_blank) / len(non_blank)
    profile = nesting_profile(source)
    comment_lines = sum(1 for i in non_blank if i in source.comment_lines)
    return StructuralStats(
        line_count=source.line_count,
        non_blank_lines=len(non_blank),
        average_line_length=avg_len,
        nesting_profile=profile,
        max_nesting=max(profile, default=0),
        comment_ratio=comment_lines / len(non_blank),
    )


def nesting_profile(source: SourceMap) -> tuple[int, ...]:
    """Nesting depth of every line (blank lines report 0)."""
    if source.language.block_style == "braces":
        return _brace_depths(source)
    return _indent_depths(source)


def _indent_width(line: str) -> int:
    return len(line.expandtabs(4)) - len(line.expandtabs(4).lstrip())


def _indent_depths(source: SourceMap) -> tuple[int, ...]:
    widths = [_indent_width(line) if line.strip() else 0 for line in source.lines]
    unit = min((w for w in widths if w > 0), default=0)
    if unit == 0:
        return tuple(0 for _ in widths)
    return tuple(w // unit for w in widths)


def _brace_depths(source: SourceMap) -> tuple[int, ...]:
    depths = [0] * source.line_count
    first_token_closes = {}
    opens_per_line: dict[int, int] = {}
    for tok in source.tokens:
        if tok.kind != TokenKind.OPERATOR or tok.text not in ("{", "}"):
            continue
        first_token_closes.setdefault(tok.line, tok.text == "}")
        opens_per_line[tok.line] = opens_per_line.get(tok.line, 0) + (1 if tok.text == "{" else -1)

    depth = 0
    for number in range(1, source.line_count + 1):
        current = depth - 1 if first_token_closes.get(number) else depth
        depths[number - 1] = max(0, current) if source.line(number).strip() else 0
        depth = max(0, depth + opens_per_line.get(number, 0))
    return tuple(depths)


# ============================================================
#  Aggregation
# ============================================================

def charged_metrics(finding: Finding) -> set[MetricName]:
    """Metrics a finding counts against. Every Error also counts against accuracy."""
    charged = set(finding.categories)
    if finding.kind == Severity.ERROR:
        charged.add(MetricName.ACCURACY)
    return charged


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def structural_penalties(stats: StructuralStats, policy: StructuralPolicy) -> dict[MetricName, float]:
    readability = 0.0
    if stats.average_line_length > policy.avg_line_length_limit:
        readability += (stats.average_line_length - policy.avg_line_length_limit) * policy.avg_line_length_penalty
    if stats.max_nesting > policy.nesting_limit:
        readability += (stats.max_nesting - policy.nesting_limit) * policy.nesting_penalty

    best_practices = 0.0
    if (
        stats.non_blank_lines >= policy.comment_check_min_lines
        and stats.comment_ratio < policy.min_comment_ratio
    ):
        best_practices += policy.missing_comments_penalty

    return {
        MetricName.READABILITY: min(readability, policy.max_structural_penalty),
        MetricName.BEST_PRACTICES: min(best_practices, policy.max_structural_penalty),
    }


def aggregate(
    findings: list[Finding],
    stats: StructuralStats,
    penalties: SeverityPenalties | None = None,
    policy: StructuralPolicy | None = None,
) -> Metrics:
    penalties = penalties or SeverityPenalties()
    policy = policy or StructuralPolicy()

    deductions = {name: 0.0 for name in MetricName}
    for finding in findings:
        points = penalties.for_severity(finding.kind) * finding.weight
        for name in charged_metrics(finding):
            deductions[name] += points
    for name, points in structural_penalties(stats, policy).items():
        deductions[name] += points

    values = {
        name.value: max(0, min(100, _round_half_up(100 - deductions[name])))
        for name in MetricName
    }
    return Metrics(**values)


def perfect_metrics() -> Metrics:
    return Metrics(accuracy=100, readability=100, performance=100, best_practices=100, security=100)
