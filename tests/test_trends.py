"""Tests for the trend and reporting engine."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from repo_pulse.models import Commit, HealthMetrics, RepoHealth, TrendPoint
from repo_pulse.trends import (
    commit_trend,
    compare_health,
    generate_report,
    health_band,
    linear_regression,
    moving_average,
    predict_trend,
    standard_deviation,
)
from repo_pulse.validation import ValidationError

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def _commits_per_week(counts: list[int]) -> list[Commit]:
    """Build commits so that week i (oldest first, 12 weeks) has counts[i] commits."""
    commits = []
    weeks = len(counts)
    for i, count in enumerate(counts):
        # middle of the bucket [now-(k+1)w, now-kw) with k = weeks-1-i
        mid = NOW - timedelta(days=7 * (weeks - 1 - i) + 3.5)
        for j in range(count):
            commits.append(Commit(sha=f"{i}-{j}", message="", author="a", date=mid))
    return commits


def _health(name: str, score: float, **metrics) -> RepoHealth:
    return RepoHealth(name=name, health_score=score, metrics=HealthMetrics(**metrics))


# --- linear_regression ---


def test_linear_regression_exact_line():
    result = linear_regression([(1, 10), (2, 20), (3, 30)])
    assert result.slope == pytest.approx(10)
    assert result.intercept == pytest.approx(0)


def test_linear_regression_with_intercept():
    result = linear_regression([(0, 5), (1, 7), (2, 9)])
    assert result.slope == pytest.approx(2)
    assert result.intercept == pytest.approx(5)


def test_linear_regression_single_point():
    result = linear_regression([(1, 10)])
    assert result.slope == 0
    assert result.intercept == 0


def test_linear_regression_empty():
    result = linear_regression([])
    assert (result.slope, result.intercept) == (0, 0)


def test_linear_regression_vertical_points():
    result = linear_regression([(2, 4), (2, 8)])
    assert result.slope == 0
    assert result.intercept == pytest.approx(6)


# --- predict_trend ---


def _history(values: list[float]) -> list[TrendPoint]:
    start = NOW - timedelta(days=len(values))
    return [TrendPoint(date=start + timedelta(days=i), value=v) for i, v in enumerate(values)]


def test_predict_trend_length_and_bounds():
    predictions = predict_trend(_history([70, 75, 80]), 7, now=NOW)
    assert len(predictions) == 7
    assert all(0 <= p.value <= 100 for p in predictions)


def test_predict_trend_extrapolates_and_clamps():
    predictions = predict_trend(_history([70, 75, 80]), 7, now=NOW)
    # next index 3 -> 85, index 4 -> 90, index 5 -> 95, then clamped at 100
    assert [p.value for p in predictions[:3]] == pytest.approx([85, 90, 95])
    assert predictions[-1].value == 100


def test_predict_trend_clamps_below_zero():
    predictions = predict_trend(_history([20, 10, 0]), 3, now=NOW)
    assert [p.value for p in predictions] == [0, 0, 0]


def test_predict_trend_dates_follow_now():
    predictions = predict_trend(_history([1, 2]), 3, now=NOW)
    assert [p.date for p in predictions] == [NOW + timedelta(days=i) for i in (1, 2, 3)]


def test_predict_trend_insufficient_history():
    assert predict_trend(_history([70]), 7, now=NOW) == []
    assert predict_trend([], 7, now=NOW) == []


# --- moving_average ---


def test_moving_average_window_three():
    result = moving_average([10, 20, 30, 40, 50, 60, 70], 3)
    assert len(result) == 7
    assert result[0] == 10
    assert result[1] == 20
    assert result[2] == pytest.approx(20)
    assert result[-1] == pytest.approx(60)


def test_moving_average_short_series_passthrough():
    assert moving_average([1, 2, 3], 7) == [1, 2, 3]


def test_moving_average_window_one_is_identity():
    assert moving_average([4, 8, 15], 1) == [4, 8, 15]


def test_moving_average_invalid_window():
    with pytest.raises(ValidationError):
        moving_average([1, 2, 3], 0)


# --- standard_deviation ---


def test_standard_deviation_empty():
    assert standard_deviation([]) == 0


def test_standard_deviation_population():
    assert standard_deviation([10, 20, 30, 40, 50]) == pytest.approx(14.1421356)


def test_standard_deviation_constant_series():
    assert standard_deviation([5, 5, 5]) == 0


# --- commit_trend ---


def test_commit_trend_thirty_daily_commits():
    commits = [
        Commit(sha=str(i), message="", author="a", date=NOW - timedelta(days=i))
        for i in range(30)
    ]
    result = commit_trend(commits, now=NOW)
    assert result.trend in ("increasing", "decreasing", "stable")
    assert len(result.weekly_commits) == 12
    # all activity is recent, so the later half dominates
    assert result.trend == "increasing"


def test_commit_trend_bucketing_oldest_first():
    counts = [1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12]
    result = commit_trend(_commits_per_week(counts), now=NOW)
    assert list(result.weekly_commits) == counts


def test_commit_trend_decreasing():
    result = commit_trend(_commits_per_week([10] * 6 + [2] * 6), now=NOW)
    assert result.trend == "decreasing"
    assert result.change_rate == pytest.approx(-80)


def test_commit_trend_stable_within_threshold():
    result = commit_trend(_commits_per_week([10] * 6 + [10] * 5 + [15]), now=NOW)
    assert result.trend == "stable"
    assert result.change_rate == pytest.approx(8.3333, rel=1e-3)


def test_commit_trend_no_commits_is_stable():
    result = commit_trend([], now=NOW)
    assert result.trend == "stable"
    assert result.change_rate == 0
    assert result.weekly_commits == (0,) * 12


def test_commit_trend_from_silence_is_increasing():
    result = commit_trend(_commits_per_week([0] * 6 + [1] * 6), now=NOW)
    assert result.trend == "increasing"
    assert result.change_rate == 100


def test_commit_trend_excludes_commit_at_now():
    commits = [Commit(sha="x", message="", author="a", date=NOW)]
    assert sum(commit_trend(commits, now=NOW).weekly_commits) == 0


def test_commit_trend_naive_dates_without_now():
    commits = [
        Commit(sha=str(i), message="", author="a", date=datetime.now() - timedelta(days=i))
        for i in range(1, 15)
    ]
    assert sum(commit_trend(commits).weekly_commits) == 14


def test_predict_trend_naive_history_without_now():
    start = datetime(2024, 6, 1)
    history = [TrendPoint(date=start + timedelta(days=i), value=v) for i, v in enumerate([1, 2])]
    predictions = predict_trend(history, 2)
    assert all(p.date.tzinfo is None for p in predictions)


# --- compare_health ---


def test_compare_health_overall():
    repo1 = _health("repo1", 80, commit_frequency=10, contributor_count=40)
    repo2 = _health("repo2", 70, commit_frequency=15, contributor_count=40)
    result = compare_health(repo1, repo2)
    assert result.overall.winner == "repo1"
    assert result.overall.difference == pytest.approx(10)
    assert result.metrics["commit_frequency"].winner == "repo2"
    assert result.metrics["commit_frequency"].difference == 5


def test_compare_health_ties_favor_first():
    repo1 = _health("repo1", 70)
    repo2 = _health("repo2", 70)
    result = compare_health(repo1, repo2)
    assert result.overall.winner == "repo1"
    assert result.overall.difference == 0
    assert all(m.winner == "repo1" for m in result.metrics.values())


def test_compare_health_excludes_response_time():
    result = compare_health(_health("a", 1), _health("b", 2))
    assert set(result.metrics) == {
        "commit_frequency",
        "contributor_count",
        "code_quality",
        "issue_resolution_rate",
        "pr_merge_rate",
    }


def test_compare_health_is_symmetric():
    a = _health("a", 55, pr_merge_rate=0.9)
    b = _health("b", 65, pr_merge_rate=0.3)
    forward = compare_health(a, b)
    backward = compare_health(b, a)
    assert forward.overall == backward.overall
    assert forward.metrics["pr_merge_rate"] == backward.metrics["pr_merge_rate"]


# --- generate_report ---


@pytest.mark.parametrize(
    "score,band",
    [(100, "excellent"), (80, "excellent"), (79.9, "good"), (60, "good"),
     (59, "moderate"), (40, "moderate"), (39.9, "needs_improvement"), (0, "needs_improvement")],
)
def test_health_band_thresholds(score, band):
    assert health_band(score) == band


def test_generate_report_strong_repo():
    repo = _health(
        "strong",
        85,
        commit_frequency=30,
        contributor_count=60,
        code_quality=90,
        issue_resolution_rate=0.9,
        pr_merge_rate=0.8,
    )
    report = generate_report(repo)
    assert report.overall == "excellent"
    assert len(report.strengths) == 5
    assert report.weaknesses == ()
    assert report.recommendations == ()


def test_generate_report_weak_repo():
    repo = _health(
        "weak",
        30,
        commit_frequency=1,
        contributor_count=2,
        code_quality=20,
        issue_resolution_rate=0.1,
        pr_merge_rate=0.1,
    )
    report = generate_report(repo)
    assert report.overall == "needs_improvement"
    assert len(report.weaknesses) == 5
    assert len(report.recommendations) == 5
    assert report.strengths == ()
    assert "Low commit frequency may indicate project stagnation" in report.weaknesses


def test_generate_report_middle_band_contributes_nothing():
    repo = _health(
        "middling",
        50,
        commit_frequency=10,
        contributor_count=5,
        code_quality=70,
        issue_resolution_rate=0.6,
        pr_merge_rate=0.5,
    )
    report = generate_report(repo)
    assert report.overall == "moderate"
    assert report.strengths == ()
    assert report.weaknesses == ()


def test_generate_report_thresholds_are_strict():
    repo = _health(
        "edge",
        60,
        commit_frequency=20,
        contributor_count=10,
        code_quality=80,
        issue_resolution_rate=0.8,
        pr_merge_rate=0.7,
    )
    report = generate_report(repo)
    assert report.strengths == ()
    assert report.weaknesses == ()
