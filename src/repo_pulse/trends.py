"""Trend and reporting engine: forecasts, statistics, comparisons and reports."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta

from .metrics import first_date, resolve_now
from .models import (
    COMPARED_METRICS,
    Commit,
    CommitTrend,
    ComparisonResult,
    HealthReport,
    MetricComparison,
    RegressionResult,
    RepoHealth,
    TrendPoint,
)
from .validation import ValidationError

logger = logging.getLogger(__name__)

TREND_WEEKS = 12
TREND_THRESHOLD = 10.0

# (metric, strength above, weakness below, strength, weakness, recommendation)
_REPORT_RULES: list[tuple[str, float, float, str, str, str]] = [
    (
        "commit_frequency",
        20,
        5,
        "High commit frequency indicating active development",
        "Low commit frequency may indicate project stagnation",
        "Increase development activity to maintain momentum",
    ),
    (
        "contributor_count",
        10,
        3,
        "Diverse contributor base promotes project health",
        "Limited contributor diversity creates dependency risk",
        "Encourage community contributions to diversify development",
    ),
    (
        "code_quality",
        80,
        60,
        "Excellent code quality standards",
        "Code quality issues need attention",
        "Implement stricter code review and quality gates",
    ),
    (
        "issue_resolution_rate",
        0.8,
        0.5,
        "High issue resolution rate shows good maintenance",
        "Low issue resolution rate indicates maintenance gaps",
        "Prioritize resolving open issues to improve community trust",
    ),
    (
        "pr_merge_rate",
        0.7,
        0.4,
        "Good PR merge rate shows efficient contribution workflow",
        "Low PR merge rate may discourage contributors",
        "Review and improve PR review process",
    ),
]


def linear_regression(points: Iterable[tuple[float, float]]) -> RegressionResult:
    """Ordinary least squares fit of ``y = slope * x + intercept``."""
    points = list(points)
    n = len(points)
    if n < 2:
        return RegressionResult(slope=0.0, intercept=0.0)

    sum_x = sum(x for x, _ in points)
    sum_y = sum(y for _, y in points)
    sum_xy = sum(x * y for x, y in points)
    sum_x2 = sum(x * x for x, _ in points)

    denominator = n * sum_x2 - sum_x * sum_x
    if denominator == 0:
        # every x identical: no defined slope
        return RegressionResult(slope=0.0, intercept=sum_y / n)

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n
    return RegressionResult(slope=slope, intercept=intercept)


def predict_trend(
    history: Sequence[TrendPoint],
    days_to_predict: int = 30,
    *,
    now: datetime | None = None,
) -> list[TrendPoint]:
    """Extrapolate ``history`` linearly, clamping each prediction to [0, 100]."""
    if len(history) < 2:
        return []

    now = resolve_now(now, history[0].date)
    fit = linear_regression((index, point.value) for index, point in enumerate(history))
    logger.debug("Forecast fit slope=%.4f intercept=%.4f", fit.slope, fit.intercept)

    predictions: list[TrendPoint] = []
    for i in range(1, days_to_predict + 1):
        value = fit.slope * (len(history) + i - 1) + fit.intercept
        predictions.append(
            TrendPoint(date=now + timedelta(days=i), value=max(0.0, min(100.0, value)))
        )
    return predictions


def moving_average(series: Sequence[float], window: int = 7) -> list[float]:
    """Trailing moving average; values before the first full window pass through."""
    if window < 1:
        raise ValidationError(f"Moving average window must be positive, got {window}")

    result: list[float] = []
    for i, value in enumerate(series):
        if i < window - 1:
            result.append(value)
        else:
            result.append(sum(series[i - window + 1 : i + 1]) / window)
    return result


def standard_deviation(series: Sequence[float]) -> float:
    """Population standard deviation; 0 for an empty series."""
    if not series:
        return 0.0
    mean = sum(series) / len(series)
    return math.sqrt(sum((v - mean) ** 2 for v in series) / len(series))


def _change_rate(first_mean: float, second_mean: float) -> float:
    if first_mean == 0:
        return 0.0 if second_mean == 0 else 100.0
    return (second_mean - first_mean) / first_mean * 100


def commit_trend(
    commits: Iterable[Commit],
    *,
    now: datetime | None = None,
    weeks: int = TREND_WEEKS,
) -> CommitTrend:
    """Classify commit volume over trailing weekly buckets.

    Buckets are ``[now - (i+1) weeks, now - i weeks)``, oldest first. The mean
    of the later half is compared with the mean of the earlier half. A silent
    earlier half counts as stable when the later half is silent too, and as a
    100% increase otherwise.
    """
    commits = tuple(commits)
    now = resolve_now(now, first_date(commits))
    week = timedelta(days=7)

    weekly: list[int] = []
    for i in range(weeks - 1, -1, -1):
        start = now - (i + 1) * week
        end = now - i * week
        weekly.append(sum(1 for c in commits if start <= c.date < end))

    if len(weekly) < 2:
        return CommitTrend(trend="stable", change_rate=0.0, weekly_commits=tuple(weekly))

    half = len(weekly) // 2
    first, second = weekly[:half], weekly[half:]
    rate = _change_rate(sum(first) / len(first), sum(second) / len(second))

    if rate > TREND_THRESHOLD:
        trend = "increasing"
    elif rate < -TREND_THRESHOLD:
        trend = "decreasing"
    else:
        trend = "stable"
    return CommitTrend(trend=trend, change_rate=rate, weekly_commits=tuple(weekly))


def _compare(a_name: str, a: float, b_name: str, b: float) -> MetricComparison:
    # ties go to the first repository
    if b > a:
        return MetricComparison(winner=b_name, difference=b - a)
    return MetricComparison(winner=a_name, difference=a - b)


def compare_health(a: RepoHealth, b: RepoHealth) -> ComparisonResult:
    """Compare overall score and component metrics (response time excluded)."""
    return ComparisonResult(
        overall=_compare(a.name, a.health_score, b.name, b.health_score),
        metrics={
            name: _compare(
                a.name, getattr(a.metrics, name), b.name, getattr(b.metrics, name)
            )
            for name in COMPARED_METRICS
        },
    )


def health_band(score: float) -> str:
    if score >= 80:
        return "excellent"
    if score >= 60:
        return "good"
    if score >= 40:
        return "moderate"
    return "needs_improvement"


def generate_report(repo: RepoHealth) -> HealthReport:
    """Qualitative report: overall band plus strengths, weaknesses and advice.

    ``contributor_count`` is judged against 10/3 even though it is a 0-100
    ratio, so nearly every repository with contributors lands on the strength
    side.
    """
    strengths: list[str] = []
    weaknesses: list[str] = []
    recommendations: list[str] = []

    for metric, high, low, strength, weakness, recommendation in _REPORT_RULES:
        value = getattr(repo.metrics, metric)
        if value > high:
            strengths.append(strength)
        elif value < low:
            weaknesses.append(weakness)
            recommendations.append(recommendation)

    return HealthReport(
        overall=health_band(repo.health_score),
        strengths=tuple(strengths),
        weaknesses=tuple(weaknesses),
        recommendations=tuple(recommendations),
    )
