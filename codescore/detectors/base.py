"""Detector interface and the regex detector built from YAML pattern rules."""

from __future__ import annotations

import logging
import re

from codescore.languages import PatternRule
from codescore.models import Finding, MetricName, Severity
from codescore.normalizer import SourceMap

logger = logging.getLogger(__name__)

SYNTAX = "syntax"
SECURITY = "security"


class Detector:
    """One rule. Subclasses implement ``inspect`` and must not keep state between calls."""

    rule_id: str = ""
    severity: Severity = Severity.WARNING
    categories: tuple[MetricName, ...] = ()
    tags: frozenset[str] = frozenset()
    languages: frozenset[str] = frozenset()  # empty = every language
    weight: float = 1.0
    auto_fixable: bool = False

    def inspect(self, source: SourceMap) -> list[Finding]:
        raise NotImplementedError

    def finding(
        self,
        line: int,
        message: str,
        *,
        severity: Severity | None = None,
        symbols: tuple[str, ...] = (),
        auto_fixable: bool | None = None,
    ) -> Finding:
        return Finding(
            kind=severity or self.severity,
            line=max(1, line),
            message=message,
            rule_id=self.rule_id,
            auto_fixable=self.auto_fixable if auto_fixable is None else auto_fixable,
            categories=self.categories,
            weight=self.weight,
            symbols=symbols,
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.rule_id}>"


class PatternDetector(Detector):
    """Flags every line matching a rule declared in a language skill file."""

    def __init__(self, rule: PatternRule, language_key: str):
        self.rule_id = rule.rule_id
        self.severity = Severity(rule.severity.strip().capitalize())
        self.categories = tuple(MetricName(c) for c in rule.categories)
        self.tags = frozenset(rule.tags)
        self.languages = frozenset({language_key})
        self.message = rule.message
        self.regex = re.compile(rule.pattern)

    def inspect(self, source: SourceMap) -> list[Finding]:
        findings = []
        for number, text in enumerate(source.lines, start=1):
            source.check()
            if self.regex.search(text):
                findings.append(self.finding(number, self.message))
        return findings


def pattern_detectors(language_key: str, rules: list[PatternRule]) -> list[PatternDetector]:
    """Build detectors for a language's pattern rules, skipping invalid ones."""
    detectors = []
    for rule in rules:
        try:
            detectors.append(PatternDetector(rule, language_key))
        except (re.error, ValueError) as e:
            logger.warning(f"Skipping pattern rule {rule.rule_id} ({language_key}): {e}")
    return detectors
