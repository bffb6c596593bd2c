"""Error taxonomy for the review engine."""

from __future__ import annotations


class CodeScoreError(Exception):
    """Base class for every error raised by codescore."""


class UnsupportedLanguage(CodeScoreError):
    """No language definition is registered for the declared language.

    The engine catches this and continues in degraded mode.
    """

    def __init__(self, language: str):
        super().__init__(f"Unsupported language: {language!r}")
        self.language = language


class PayloadTooLarge(CodeScoreError):
    def __init__(self, size: int, limit: int):
        super().__init__(f"Submission is {size} bytes, limit is {limit} bytes")
        self.size = size
        self.limit = limit


class DetectorFailure(CodeScoreError):
    """A single detector raised; the analyzer logs it and moves on."""

    def __init__(self, rule_id: str, cause: BaseException):
        super().__init__(f"Detector {rule_id} failed: {cause}")
        self.rule_id = rule_id
        self.cause = cause


class ReviewTimeout(CodeScoreError):
    """The request exceeded its time budget.

    ``partial_findings`` holds what fully-completed detectors had committed,
    for diagnostics only. No Review is produced.
    """

    def __init__(self, timeout_ms: int, partial_findings: list | None = None):
        super().__init__(f"Review exceeded {timeout_ms} ms")
        self.timeout_ms = timeout_ms
        self.partial_findings = list(partial_findings or [])


class ReviewCancelled(CodeScoreError):
    pass


class FixConflict(CodeScoreError):
    """Two patches tried to rewrite the same original line."""

    def __init__(self, line: int):
        super().__init__(f"Line {line} was already rewritten by another fix")
        self.line = line
