"""Language-independent detectors: layout, markers and textual security smells."""

from __future__ import annotations

import re

from codescore.detectors.base import SECURITY, SYNTAX, Detector
from codescore.metrics import nesting_profile
from codescore.models import Finding, MetricName, Severity
from codescore.normalizer import SourceMap, TokenKind


class LongLineDetector(Detector):
    rule_id = "GEN-LONG-LINE"
    severity = Severity.SUGGESTION
    categories = (MetricName.READABILITY,)

    def inspect(self, source: SourceMap) -> list[Finding]:
        limit = source.language.max_line_length
        findings = []
        for number, text in enumerate(source.lines, start=1):
            length = len(text.rstrip())
            if length > limit:
                findings.append(self.finding(number, f"Line is {length} characters long (limit {limit})."))
        return findings


class TrailingWhitespaceDetector(Detector):
    rule_id = "GEN-TRAILING-WHITESPACE"
    severity = Severity.SUGGESTION
    categories = (MetricName.READABILITY,)
    weight = 0.5
    auto_fixable = True

    def inspect(self, source: SourceMap) -> list[Finding]:
        inside_strings = source.lines_ending_in_string
        return [
            self.finding(number, "Trailing whitespace.")
            for number, text in enumerate(source.lines, start=1)
            if text != text.rstrip() and number not in inside_strings
        ]


_MARKER = re.compile(r"\b(TODO|FIXME|XXX|HACK)\b")


class TodoMarkerDetector(Detector):
    rule_id = "GEN-TODO-MARKER"
    severity = Severity.SUGGESTION
    categories = (MetricName.BEST_PRACTICES,)
    weight = 0.5

    def inspect(self, source: SourceMap) -> list[Finding]:
        if source.language.lexer == "whitespace":
            candidates = enumerate(source.lines, start=1)
        else:
            candidates = ((tok.line, tok.text) for tok in source.tokens if tok.kind == TokenKind.COMMENT)

        findings = []
        for number, text in candidates:
            match = _MARKER.search(text)
            if match:
                findings.append(self.finding(number, f"Unresolved {match.group(1)} comment."))
        return findings


class DeepNestingDetector(Detector):
    rule_id = "GEN-DEEP-NESTING"
    severity = Severity.WARNING
    categories = (MetricName.READABILITY,)

    def inspect(self, source: SourceMap) -> list[Finding]:
        limit = source.language.max_nesting
        findings = []
        run_start, run_depth = None, 0
        # Trailing 0 closes a run that reaches the last line
        for number, depth in enumerate((*nesting_profile(source), 0), start=1):
            if depth > limit:
                if run_start is None:
                    run_start = number
                run_depth = max(run_depth, depth)
            elif run_start is not None and source.line_count >= number and not source.line(number).strip():
                continue
            elif run_start is not None:
                findings.append(self.finding(
                    run_start, f"Code is nested {run_depth} levels deep (limit {limit})."
                ))
                run_start, run_depth = None, 0
        return findings


class MixedIndentDetector(Detector):
    rule_id = "GEN-MIXED-INDENT"
    severity = Severity.WARNING
    categories = (MetricName.READABILITY,)
    tags = frozenset({SYNTAX})

    def inspect(self, source: SourceMap) -> list[Finding]:
        skipped = set()
        for tok in source.tokens:
            if tok.end_line > tok.line and tok.kind in (TokenKind.STRING, TokenKind.COMMENT):
                skipped.update(range(tok.line + 1, tok.end_line + 1))

        findings = []
        file_style = None
        for number, text in enumerate(source.lines, start=1):
            if number in skipped or not text.strip():
                continue
            indent = text[: len(text) - len(text.lstrip())]
            if not indent:
                continue
            if "\t" in indent and " " in indent:
                findings.append(self.finding(number, "Indentation mixes tabs and spaces."))
                continue
            style = "tabs" if "\t" in indent else "spaces"
            if file_style is None:
                file_style = style
            elif style != file_style:
                findings.append(self.finding(
                    number, f"Line is indented with {style} but the file uses {file_style}."
                ))
        return findings


_SECRET = re.compile(
    r"(?i)(password|passwd|secret|api_?key|access_?key|auth_?token|private_?key)\w*[\"']?"
    r"\s*[:=]\s*([\"'])([^\"'\s]{4,})\2"
)


class HardcodedSecretDetector(Detector):
    rule_id = "SEC-HARDCODED-SECRET"
    severity = Severity.WARNING
    categories = (MetricName.SECURITY,)
    tags = frozenset({SECURITY})

    def inspect(self, source: SourceMap) -> list[Finding]:
        findings = []
        for number, text in enumerate(source.lines, start=1):
            match = _SECRET.search(text)
            if match:
                findings.append(self.finding(
                    number,
                    f"Possible hardcoded credential in '{match.group(1)}'; load it from configuration instead.",
                ))
        return findings


_SQL = re.compile(r"(?i)\b(select\s.+\sfrom|insert\s+into|update\s+\w+\s+set|delete\s+from)\b")
_INTERPOLATION = re.compile(
    r"""["'`]\s*\+|\+\s*["'`]|["']\s*%\s*[\w(]|\.format\(|\$\{|\bf["'][^"']*\{"""
)


class SqlInjectionDetector(Detector):
    rule_id = "SEC-SQL-INJECTION"
    severity = Severity.WARNING
    categories = (MetricName.SECURITY,)
    tags = frozenset({SECURITY})

    def inspect(self, source: SourceMap) -> list[Finding]:
        return [
            self.finding(number, "SQL query built from string interpolation; use bound parameters.")
            for number, text in enumerate(source.lines, start=1)
            if _SQL.search(text) and _INTERPOLATION.search(text)
        ]


GENERIC_DETECTORS = (
    LongLineDetector,
    TrailingWhitespaceDetector,
    TodoMarkerDetector,
    DeepNestingDetector,
    MixedIndentDetector,
    HardcodedSecretDetector,
    SqlInjectionDetector,
)
