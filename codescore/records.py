"""Review record builder: packages results into the immutable contract models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable

from codescore.fixes import UnresolvedFix
from codescore.models import Finding, Metrics, Review, ReviewResult, Submission


def _new_id() -> str:
    return uuid.uuid4().hex


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_result(
    score: int,
    summary: str,
    metrics: Metrics,
    findings: list[Finding],
    improved_code: str,
    unresolved: list[UnresolvedFix] | tuple = (),
) -> ReviewResult:
    notes = {(u.rule_id, u.line): u.reason for u in unresolved}
    annotated = [
        f.model_copy(update={"fix_note": notes[(f.rule_id, f.line)]})
        if (f.rule_id, f.line) in notes else f
        for f in findings
    ]
    return ReviewResult(
        score=score,
        summary=summary,
        metrics=metrics,
        findings=tuple(sorted(annotated, key=Finding.sort_key)),
        improved_code=improved_code,
    )


def build_review(
    submission: Submission,
    result: ReviewResult,
    *,
    language: str | None = None,
    degraded: bool = False,
    failed_detectors: list[str] | tuple = (),
    id_factory: Callable[[], str] | None = None,
    clock: Callable[[], datetime] | None = None,
) -> Review:
    return Review(
        id=(id_factory or _new_id)(),
        filename=submission.filename,
        language=language or submission.language,
        score=result.score,
        timestamp=(clock or _utc_now)(),
        result=result,
        degraded=degraded,
        failed_detectors=tuple(failed_detectors),
    )
