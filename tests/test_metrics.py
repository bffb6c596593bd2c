from codescore.languages import GENERIC_LANGUAGE, LANGUAGES
from codescore.metrics import (
    SeverityPenalties,
    StructuralPolicy,
    aggregate,
    charged_metrics,
    compute_structure,
    nesting_profile,
)
from codescore.models import Finding, MetricName, Severity
from codescore.normalizer import normalize

SHORT = normalize("x = 1\ny = 2\n", LANGUAGES["python"], "python")


def _finding(kind: Severity, *categories: MetricName, weight: float = 1.0, line: int = 1) -> Finding:
    return Finding(
        kind=kind, line=line, message="m", rule_id=f"T-{kind.value}",
        categories=categories, weight=weight,
    )


def test_no_findings_is_perfect() -> None:
    metrics = aggregate([], compute_structure(SHORT))

    assert all(metrics.get(name) == 100 for name in MetricName)


def test_errors_always_count_against_accuracy() -> None:
    finding = _finding(Severity.ERROR, MetricName.SECURITY)

    assert charged_metrics(finding) == {MetricName.SECURITY, MetricName.ACCURACY}
    metrics = aggregate([finding], compute_structure(SHORT))
    assert metrics.security == 85
    assert metrics.accuracy == 85
    assert metrics.readability == 100


def test_weight_scales_the_penalty_and_halves_round_up() -> None:
    metrics = aggregate(
        [_finding(Severity.SUGGESTION, MetricName.READABILITY, weight=0.5)],
        compute_structure(SHORT),
    )

    # 100 - 3 * 0.5 = 98.5
    assert metrics.readability == 99


def test_metrics_never_drop_below_zero() -> None:
    findings = [_finding(Severity.ERROR, MetricName.SECURITY, line=n) for n in range(1, 20)]
    metrics = aggregate(findings, compute_structure(SHORT))

    assert metrics.security == 0
    assert metrics.accuracy == 0


def test_adding_a_finding_never_raises_a_metric() -> None:
    stats = compute_structure(SHORT)
    base = [_finding(Severity.WARNING, MetricName.READABILITY)]
    for extra in (
        _finding(Severity.ERROR),
        _finding(Severity.SUGGESTION, MetricName.PERFORMANCE, line=2),
        _finding(Severity.WARNING, MetricName.BEST_PRACTICES, MetricName.SECURITY, weight=2.0),
    ):
        before = aggregate(base, stats)
        after = aggregate([*base, extra], stats)
        assert all(after.get(name) <= before.get(name) for name in MetricName)


def test_custom_penalties() -> None:
    penalties = SeverityPenalties(error=50, warning=0, suggestion=0)
    metrics = aggregate(
        [_finding(Severity.ERROR), _finding(Severity.WARNING, MetricName.READABILITY)],
        compute_structure(SHORT),
        penalties,
    )

    assert metrics.accuracy == 50
    assert metrics.readability == 100


def test_long_average_line_length_costs_readability() -> None:
    source = normalize("\n".join(["x" * 90] * 3), GENERIC_LANGUAGE)
    stats = compute_structure(source)

    assert stats.average_line_length == 90
    assert aggregate([], stats).readability == 90


def test_structural_penalty_is_capped() -> None:
    source = normalize("x" * 500 + "\n", GENERIC_LANGUAGE)

    assert aggregate([], compute_structure(source)).readability == 80


def test_uncommented_file_costs_best_practices() -> None:
    code = "".join(f"v{n} = {n}\n" for n in range(25))
    source = normalize(code, LANGUAGES["python"], "python")

    assert aggregate([], compute_structure(source)).best_practices == 90

    commented = normalize("# values\n# more\n" + code, LANGUAGES["python"], "python")
    assert aggregate([], compute_structure(commented)).best_practices == 100


def test_comment_check_can_be_disabled() -> None:
    code = "".join(f"v{n} = {n}\n" for n in range(25))
    stats = compute_structure(normalize(code, LANGUAGES["python"], "python"))

    assert aggregate([], stats, policy=StructuralPolicy(missing_comments_penalty=0)).best_practices == 100


def test_brace_nesting_profile() -> None:
    code = "function f() {\n  if (x) {\n    y();\n  }\n}\n"
    source = normalize(code, LANGUAGES["javascript"], "javascript")

    assert nesting_profile(source) == (0, 1, 2, 1, 0)


def test_indent_nesting_profile_ignores_blank_lines() -> None:
    code = "def f():\n    if x:\n\n        return 1\n"
    source = normalize(code, LANGUAGES["python"], "python")

    assert nesting_profile(source) == (0, 1, 0, 2)
