import threading
import time

import pytest

from codescore.analyzer import analyze, merge_findings
from codescore.cancellation import CancellationToken, Deadline
from codescore.config import DetectorSelection, ReviewConfig
from codescore.detectors import SECURITY, SYNTAX, Detector, DetectorRegistry, default_registry
from codescore.errors import ReviewCancelled, ReviewTimeout
from codescore.languages import LANGUAGES
from codescore.models import Finding, MetricName, ReviewType, Severity
from codescore.normalizer import normalize

CODE = "x = 1\ny = 2\n"


class FlagDetector(Detector):
    rule_id = "TEST-FLAG"
    severity = Severity.WARNING
    categories = (MetricName.READABILITY,)

    def inspect(self, source):
        return [self.finding(2, "second line"), self.finding(1, "first line")]


class BoomDetector(Detector):
    rule_id = "TEST-BOOM"

    def inspect(self, source):
        raise RuntimeError("boom")


class DuplicateDetector(Detector):
    rule_id = "TEST-DUP"

    def inspect(self, source):
        return [
            self.finding(1, "mild", severity=Severity.SUGGESTION),
            self.finding(1, "serious", severity=Severity.ERROR),
        ]


class PastTheEndDetector(Detector):
    rule_id = "TEST-PAST-END"

    def inspect(self, source):
        return [self.finding(99, "beyond the last line")]


class SlowDetector(Detector):
    rule_id = "TEST-SLOW"

    def inspect(self, source):
        time.sleep(0.5)
        return [self.finding(1, "too late")]


def _source(code: str = CODE):
    return normalize(code, LANGUAGES["python"], "python")


def test_failing_detector_is_isolated() -> None:
    report = analyze(_source(), [BoomDetector(), FlagDetector()])

    assert report.failed_detectors == ["TEST-BOOM"]
    assert [f.rule_id for f in report.findings] == ["TEST-FLAG", "TEST-FLAG"]


def test_findings_are_sorted_by_line() -> None:
    report = analyze(_source(), [FlagDetector()])

    assert [f.line for f in report.findings] == [1, 2]


def test_duplicate_rule_and_line_keeps_most_severe() -> None:
    report = analyze(_source(), [DuplicateDetector()])

    assert len(report.findings) == 1
    assert report.findings[0].kind == Severity.ERROR
    assert report.findings[0].message == "serious"


def test_lines_are_clamped_to_the_last_line() -> None:
    report = analyze(_source(), [PastTheEndDetector()])

    assert [f.line for f in report.findings] == [2]


def test_merge_orders_by_line_then_severity_then_rule() -> None:
    findings = [
        Finding(kind=Severity.SUGGESTION, line=1, message="b", rule_id="B"),
        Finding(kind=Severity.ERROR, line=2, message="a", rule_id="A"),
        Finding(kind=Severity.ERROR, line=1, message="c", rule_id="C"),
        Finding(kind=Severity.SUGGESTION, line=1, message="a", rule_id="A"),
    ]
    merged = merge_findings([findings], line_count=2)

    assert [(f.line, f.rule_id) for f in merged] == [(1, "C"), (1, "A"), (1, "B"), (2, "A")]


def test_result_does_not_depend_on_worker_count() -> None:
    code = "def f(x):\n    if x == None:   \n        return eval(x)\n    return y\n"
    detectors = default_registry(LANGUAGES).for_language("python")

    serial = analyze(_source(code), detectors, max_workers=1)
    parallel = analyze(_source(code), detectors, max_workers=8)

    assert serial.findings == parallel.findings
    assert serial.findings


def test_cancelled_token_aborts() -> None:
    token = CancellationToken()
    token.cancel()

    with pytest.raises(ReviewCancelled):
        analyze(_source(), [FlagDetector()], cancel_token=token)


def test_timeout_keeps_partial_findings_for_diagnostics() -> None:
    with pytest.raises(ReviewTimeout) as exc:
        analyze(_source(), [FlagDetector(), SlowDetector()], max_workers=2, deadline=Deadline(100))

    assert exc.value.timeout_ms == 100
    assert all(f.rule_id == "TEST-FLAG" for f in exc.value.partial_findings)


class PollingDetector(Detector):
    rule_id = "TEST-POLLING"

    def __init__(self) -> None:
        self.stopped = threading.Event()

    def inspect(self, source):
        try:
            for _ in range(200):
                source.check()
                time.sleep(0.01)
        except ReviewCancelled:
            self.stopped.set()
            raise
        return []


def test_timeout_stops_detectors_that_check_the_source() -> None:
    detector = PollingDetector()
    source = _source()

    with pytest.raises(ReviewTimeout):
        analyze(source, [detector], deadline=Deadline(50))

    assert detector.stopped.wait(1.0)
    assert source.stop.cancelled


def test_check_is_a_no_op_outside_the_analyzer() -> None:
    _source().check()


def test_no_detectors_means_no_findings() -> None:
    report = analyze(_source(), [])

    assert report.findings == []
    assert report.failed_detectors == []


# ============================================================
#  Registry selection
# ============================================================

def test_review_type_filters_by_tag() -> None:
    registry = default_registry(LANGUAGES)
    config = ReviewConfig()

    syntax = registry.select("python", ReviewType.QUICK_SYNTAX, config)
    security = registry.select("python", ReviewType.SECURITY_ONLY, config)
    full = registry.select("python", ReviewType.FULL, config)

    assert syntax and all(SYNTAX in d.tags for d in syntax)
    assert "PY-SYNTAX-ERROR" in {d.rule_id for d in syntax}
    assert security and all(SECURITY in d.tags for d in security)
    assert len(full) > len(syntax) + len(security)


def test_config_narrows_selection() -> None:
    registry = default_registry(LANGUAGES)

    only_security = registry.select(
        "javascript", ReviewType.FULL, ReviewConfig(enabled_detectors=DetectorSelection.SECURITY)
    )
    without_long_lines = registry.select(
        "python", ReviewType.FULL, ReviewConfig(disabled_rules=frozenset({"GEN-LONG-LINE"}))
    )

    assert {d.rule_id for d in only_security} >= {"JS-EVAL", "JS-INNER-HTML"}
    assert all(SECURITY in d.tags for d in only_security)
    assert "GEN-LONG-LINE" not in {d.rule_id for d in without_long_lines}


def test_language_specific_detector_shadows_generic_one() -> None:
    class GenericRule(FlagDetector):
        rule_id = "TEST-RULE"

    class PythonRule(FlagDetector):
        rule_id = "TEST-RULE"
        languages = frozenset({"python"})

    registry = DetectorRegistry([GenericRule(), PythonRule()])

    assert [type(d) for d in registry.for_language("python")] == [PythonRule]
    assert [type(d) for d in registry.for_language("go")] == [GenericRule]
    assert [type(d) for d in registry.for_language(None)] == [GenericRule]


def test_detector_without_rule_id_is_rejected() -> None:
    with pytest.raises(ValueError):
        DetectorRegistry().register(Detector())
