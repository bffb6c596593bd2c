"""codescore: deterministic code review engine with scoring and automatic fixes."""

from codescore.config import ReviewConfig
from codescore.engine import ReviewEngine, run_review
from codescore.models import Finding, Metrics, Review, ReviewResult, ReviewType, Severity, Submission

__version__ = "0.1.0"

__all__ = [
    "Finding",
    "Metrics",
    "Review",
    "ReviewConfig",
    "ReviewEngine",
    "ReviewResult",
    "ReviewType",
    "Severity",
    "Submission",
    "run_review",
]
