import pytest

from engines.performance import PerformanceAssessor, PerformanceBand


@pytest.fixture
def assessor():
    return PerformanceAssessor()


def test_short_window_is_on_track(assessor, make_attempt):
    assert assessor.assess([]) is PerformanceBand.ON_TRACK
    assert assessor.assess([make_attempt(correct=False), make_attempt(correct=False)]) is PerformanceBand.ON_TRACK


def test_fast_perfect_window_is_excelling(assessor, make_attempt):
    attempts = [make_attempt(time_spent_ms=4000) for _ in range(3)]
    assert assessor.assess(attempts) is PerformanceBand.EXCELLING


def test_slow_or_hinted_perfect_window_is_on_track(assessor, make_attempt):
    slow = [make_attempt(time_spent_ms=12_000) for _ in range(3)]
    assert assessor.assess(slow) is PerformanceBand.ON_TRACK

    hinted = [make_attempt(hints_used=1), make_attempt(), make_attempt()]
    assert assessor.assess(hinted) is PerformanceBand.ON_TRACK


def test_low_accuracy_or_many_hints_is_struggling(assessor, make_attempt):
    wrong = [make_attempt(correct=False), make_attempt(correct=False), make_attempt()]
    assert assessor.assess(wrong) is PerformanceBand.STRUGGLING

    hints = [make_attempt(hints_used=3) for _ in range(3)]
    assert assessor.assess(hints) is PerformanceBand.STRUGGLING


def test_only_last_three_attempts_count(assessor, make_attempt):
    attempts = [make_attempt(correct=False) for _ in range(5)] + [make_attempt() for _ in range(3)]
    assert assessor.assess(attempts) is PerformanceBand.EXCELLING

    stats = assessor.window_stats(attempts)
    assert stats.size == 3
    assert stats.correct_rate == 1.0
    assert stats.mean_time_ms == pytest.approx(5000)


def test_thresholds_are_configurable(make_attempt):
    assessor = PerformanceAssessor(fast_response_ms=3000)
    attempts = [make_attempt(time_spent_ms=5000) for _ in range(3)]
    assert assessor.assess(attempts) is PerformanceBand.ON_TRACK

    with pytest.raises(ValueError):
        PerformanceAssessor(window_size=0)
