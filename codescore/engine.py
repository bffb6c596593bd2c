"""Review orchestration: normalize, analyze, measure, score, fix and package."""

from __future__ import annotations

import logging
from datetime import datetime
from functools import lru_cache
from typing import Callable

from codescore.analyzer import analyze
from codescore.cancellation import CancellationToken, Deadline, checkpoint
from codescore.config import ReviewConfig
from codescore.detectors import DetectorRegistry, default_registry
from codescore.errors import PayloadTooLarge, UnsupportedLanguage
from codescore.fixes import PatchRegistry, default_patches, synthesize
from codescore.languages import GENERIC_LANGUAGE, LanguageConfig, get_languages, resolve_language
from codescore.metrics import aggregate, compute_structure, perfect_metrics
from codescore.models import Review, Submission
from codescore.normalizer import normalize
from codescore.records import build_result, build_review
from codescore.scoring import compose_score, compose_summary

logger = logging.getLogger(__name__)


class ReviewEngine:
    """Stateless between requests; registries are read-only once built."""

    def __init__(
        self,
        languages: dict[str, LanguageConfig] | None = None,
        detectors: DetectorRegistry | None = None,
        patches: PatchRegistry | None = None,
    ):
        self.languages = get_languages() if languages is None else languages
        self.detectors = default_registry(self.languages) if detectors is None else detectors
        self.patches = default_patches() if patches is None else patches

    def review(
        self,
        submission: Submission,
        config: ReviewConfig | None = None,
        *,
        cancel_token: CancellationToken | None = None,
        id_factory: Callable[[], str] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> Review:
        config = config or ReviewConfig()
        text = submission.source_text

        size = len(text.encode("utf-8", errors="surrogatepass"))
        if size > config.max_payload_bytes:
            raise PayloadTooLarge(size, config.max_payload_bytes)

        deadline = Deadline(config.timeout_ms)
        checkpoint(cancel_token, deadline)

        degraded = False
        try:
            language_key, language = resolve_language(submission.language, self.languages)
        except UnsupportedLanguage as e:
            logger.warning(f"{e}; reviewing {submission.filename} with generic rules only")
            language_key, language, degraded = None, GENERIC_LANGUAGE, True

        if not text:
            metrics = perfect_metrics()
            score = compose_score(metrics, config.weights)
            result = build_result(score, compose_summary(score, metrics), metrics, [], "")
            return build_review(
                submission, result, language=language.name if not degraded else None,
                degraded=degraded, id_factory=id_factory, clock=clock,
            )

        source = normalize(text, language, language_key)
        detectors = self.detectors.select(language_key, submission.review_type, config)
        logger.info(
            f"Reviewing {submission.filename} ({language.name}, {source.line_count} lines) "
            f"with {len(detectors)} detector(s)"
        )
        report = analyze(
            source, detectors,
            max_workers=config.max_workers, deadline=deadline, cancel_token=cancel_token,
        )

        stats = compute_structure(source)
        metrics = aggregate(report.findings, stats, config.severity_penalties, config.structure)
        score = compose_score(metrics, config.weights)
        summary = compose_summary(score, metrics)

        outcome = synthesize(
            source, text, report.findings, self.patches,
            max_fixes_per_line=config.max_auto_fixes_per_line,
            deadline=deadline, cancel_token=cancel_token,
        )

        result = build_result(
            score, summary, metrics, report.findings, outcome.improved_code, outcome.unresolved,
        )
        review = build_review(
            submission, result,
            language=language.name if not degraded else None,
            degraded=degraded,
            failed_detectors=report.failed_detectors,
            id_factory=id_factory,
            clock=clock,
        )
        logger.info(f"{submission.filename}: score {score}, {len(result.findings)} finding(s)")
        return review


@lru_cache(maxsize=1)
def default_engine() -> ReviewEngine:
    return ReviewEngine()


def run_review(
    submission: Submission,
    config: ReviewConfig | None = None,
    *,
    cancel_token: CancellationToken | None = None,
) -> Review:
    """Review one submission with the built-in languages, detectors and patches."""
    return default_engine().review(submission, config, cancel_token=cancel_token)
