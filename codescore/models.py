from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Severity(str, Enum):
    ERROR = "Error"
    WARNING = "Warning"
    SUGGESTION = "Suggestion"

    @property
    def rank(self) -> int:
        """0 is the most severe."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.ERROR: 0,
    Severity.WARNING: 1,
    Severity.SUGGESTION: 2,
}


class MetricName(str, Enum):
    ACCURACY = "accuracy"
    READABILITY = "readability"
    PERFORMANCE = "performance"
    BEST_PRACTICES = "best_practices"
    SECURITY = "security"


class ReviewType(str, Enum):
    FULL = "full"
    QUICK_SYNTAX = "quick_syntax"
    SECURITY_ONLY = "security_only"


# Labels used by the review form
_REVIEW_TYPE_LABELS = {
    "full review": ReviewType.FULL,
    "quick syntax check": ReviewType.QUICK_SYNTAX,
    "quick syntax": ReviewType.QUICK_SYNTAX,
    "syntax": ReviewType.QUICK_SYNTAX,
    "security only": ReviewType.SECURITY_ONLY,
    "security": ReviewType.SECURITY_ONLY,
}


class _Contract(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="forbid",
    )


class Submission(_Contract):
    source_text: str
    language: str
    review_type: ReviewType = ReviewType.FULL
    filename: str = "snippet"

    @field_validator("language")
    @classmethod
    def _validate_language(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("language must be non-empty")
        return cleaned

    @field_validator("review_type", mode="before")
    @classmethod
    def _parse_review_type(cls, value):
        if isinstance(value, str):
            key = value.strip().lower()
            if key in _REVIEW_TYPE_LABELS:
                return _REVIEW_TYPE_LABELS[key]
            return key.replace("-", "_").replace(" ", "_")
        return value


class Finding(_Contract):
    kind: Severity
    line: int = Field(ge=1)
    message: str
    rule_id: str
    auto_fixable: bool = False
    categories: tuple[MetricName, ...] = ()
    weight: float = Field(default=1.0, ge=0)
    symbols: tuple[str, ...] = ()
    fix_note: str | None = None

    def sort_key(self) -> tuple[int, int, str]:
        return (self.line, self.kind.rank, self.rule_id)


class Metrics(_Contract):
    accuracy: int = Field(ge=0, le=100)
    readability: int = Field(ge=0, le=100)
    performance: int = Field(ge=0, le=100)
    best_practices: int = Field(ge=0, le=100)
    security: int = Field(ge=0, le=100)

    def get(self, name: MetricName) -> int:
        return getattr(self, name.value)


class ReviewResult(_Contract):
    score: int = Field(ge=0, le=100)
    summary: str
    metrics: Metrics
    findings: tuple[Finding, ...] = ()
    improved_code: str


class Review(_Contract):
    id: str
    filename: str
    language: str
    score: int = Field(ge=0, le=100)
    timestamp: datetime
    result: ReviewResult
    degraded: bool = False
    failed_detectors: tuple[str, ...] = ()
