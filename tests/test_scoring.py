import pytest
from pydantic import ValidationError

from codescore.models import MetricName, Metrics
from codescore.scoring import ScoreWeights, compose_score, compose_summary, focus_area


def _metrics(**values: int) -> Metrics:
    base = dict(accuracy=100, readability=100, performance=100, best_practices=100, security=100)
    base.update(values)
    return Metrics(**base)


def test_default_weighted_score() -> None:
    metrics = Metrics(accuracy=80, readability=70, performance=90, best_practices=60, security=100)

    # 0.30*80 + 0.20*70 + 0.20*90 + 0.15*60 + 0.15*100
    assert compose_score(metrics) == 80


def test_perfect_metrics_score_100() -> None:
    assert compose_score(_metrics()) == 100


def test_halves_round_up() -> None:
    weights = ScoreWeights(accuracy=0.5, readability=0.5, performance=0, best_practices=0, security=0)

    assert compose_score(_metrics(readability=99), weights) == 100
    assert compose_score(_metrics(accuracy=0, readability=1), weights) == 1


def test_score_is_clamped() -> None:
    heavy = ScoreWeights(accuracy=2, readability=2, performance=2, best_practices=2, security=2)
    nothing = ScoreWeights(accuracy=0, readability=0, performance=0, best_practices=0, security=0)

    assert compose_score(_metrics(), heavy) == 100
    assert compose_score(_metrics(), nothing) == 0


def test_negative_weight_is_rejected() -> None:
    with pytest.raises(ValidationError):
        ScoreWeights(accuracy=-0.1)


def test_focus_area_is_the_lowest_metric() -> None:
    assert focus_area(_metrics(security=70, readability=80)) == MetricName.SECURITY
    assert focus_area(_metrics()) is None


def test_focus_area_ties_go_to_the_earlier_metric() -> None:
    assert focus_area(_metrics(accuracy=90, readability=90)) == MetricName.ACCURACY
    assert focus_area(_metrics(performance=50, best_practices=50)) == MetricName.PERFORMANCE


def test_summary_brackets() -> None:
    assert compose_summary(100, _metrics()) == (
        "Your code is well-structured and follows good practices. No specific area needs improvement."
    )
    assert compose_summary(85, _metrics(best_practices=60)) == (
        "Your code is well-structured and follows good practices. Focus area: best practices (60/100)."
    )
    assert compose_summary(84, _metrics(readability=40)).startswith("Your code is generally solid")
    assert compose_summary(59, _metrics(security=0)).startswith("Your code needs significant revision")
