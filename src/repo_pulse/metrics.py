"""Metrics engine: component health metrics, composite score and daily trend."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta

from .models import (
    AnalysisResult,
    Commit,
    Contributor,
    HealthMetrics,
    Issue,
    PullRequest,
    TrendPoint,
)

logger = logging.getLogger(__name__)

COMMIT_WINDOW = timedelta(days=7)
DEFAULT_TREND_DAYS = 30

SCORE_WEIGHTS = {
    "commit_frequency": 0.25,
    "contributor_count": 0.20,
    "code_quality": 0.20,
    "issue_resolution_rate": 0.20,
    "pr_merge_rate": 0.15,
}
NORMALIZATION_CAP = 50


def resolve_now(now: datetime | None, reference: datetime | None = None) -> datetime:
    """Return ``now`` or the current time.

    The clock reading is naive when ``reference`` is naive, so it compares
    with records that carry no timezone; otherwise it is aware local time.
    """
    if now is not None:
        return now
    if reference is not None and reference.utcoffset() is None:
        return datetime.now()
    return datetime.now().astimezone()


def first_date(commits: tuple[Commit, ...]) -> datetime | None:
    return commits[0].date if commits else None


def _closed_count(issues: tuple[Issue, ...]) -> int:
    return sum(1 for i in issues if i.state == "closed")


def _merged_count(prs: tuple[PullRequest, ...]) -> int:
    return sum(1 for pr in prs if pr.state == "merged")


def commit_frequency(commits: Iterable[Commit], *, now: datetime | None = None) -> int:
    """Number of commits in the trailing 7-day window ending at ``now``."""
    commits = tuple(commits)
    now = resolve_now(now, first_date(commits))
    window_start = now - COMMIT_WINDOW
    return sum(1 for c in commits if window_start <= c.date <= now)


def contributor_activity(contributors: Iterable[Contributor]) -> float:
    """Percentage of contributors at or above the mean contribution count."""
    contributors = tuple(contributors)
    if not contributors:
        return 0.0
    mean = sum(c.contributions for c in contributors) / len(contributors)
    active = sum(1 for c in contributors if c.contributions >= mean)
    return active / len(contributors) * 100


def code_quality(issues: Iterable[Issue], prs: Iterable[PullRequest]) -> float:
    """Blend of issue closure and PR merge rates, each worth up to 50 points.

    With no issues and no PRs the neutral midpoint 50 is returned. When only
    one collection is present, the other contributes nothing.
    """
    issues = tuple(issues)
    prs = tuple(prs)
    if not issues and not prs:
        return 50.0

    score = 0.0
    if issues:
        score += _closed_count(issues) / len(issues) * 50
    if prs:
        score += _merged_count(prs) / len(prs) * 50
    return score


def issue_resolution_rate(issues: Iterable[Issue]) -> float:
    issues = tuple(issues)
    if not issues:
        return 1.0
    return _closed_count(issues) / len(issues)


def pr_merge_rate(prs: Iterable[PullRequest]) -> float:
    prs = tuple(prs)
    if not prs:
        return 1.0
    return _merged_count(prs) / len(prs)


def response_time(issues: Iterable[Issue]) -> float:
    """Mean hours from creation to closure over closed issues with a closure time."""
    durations = [
        (i.closed_at - i.created_at).total_seconds() / 3600
        for i in issues
        if i.state == "closed" and i.closed_at is not None
    ]
    if not durations:
        return 0.0
    return sum(durations) / len(durations)


def _normalize(value: float) -> float:
    return min(value / NORMALIZATION_CAP, 1) * 100


def health_score(metrics: HealthMetrics) -> float:
    """Composite 0-100 score.

    ``contributor_count`` is already a 0-100 ratio but goes through the same
    ``/ 50`` normalization as ``commit_frequency``, so any ratio of 50 or more
    earns the full contributor weight.
    """
    return (
        _normalize(metrics.commit_frequency) * SCORE_WEIGHTS["commit_frequency"]
        + _normalize(metrics.contributor_count) * SCORE_WEIGHTS["contributor_count"]
        + metrics.code_quality * SCORE_WEIGHTS["code_quality"]
        + metrics.issue_resolution_rate * 100 * SCORE_WEIGHTS["issue_resolution_rate"]
        + metrics.pr_merge_rate * 100 * SCORE_WEIGHTS["pr_merge_rate"]
    )


def daily_trend(
    commits: Iterable[Commit],
    days: int = DEFAULT_TREND_DAYS,
    *,
    now: datetime | None = None,
) -> list[TrendPoint]:
    """Commits per calendar day over the trailing ``days`` days, oldest first."""
    commits = tuple(commits)
    now = resolve_now(now, first_date(commits))
    points: list[TrendPoint] = []
    for offset in range(days - 1, -1, -1):
        day_start = (now - timedelta(days=offset)).replace(
            hour=0, minute=0, second=0, microsecond=0
        )
        day_end = day_start + timedelta(days=1)
        count = sum(1 for c in commits if day_start <= c.date < day_end)
        points.append(TrendPoint(date=day_start, value=count))
    return points


def compute_metrics(
    commits: Iterable[Commit],
    contributors: Iterable[Contributor],
    issues: Iterable[Issue],
    prs: Iterable[PullRequest],
    *,
    now: datetime | None = None,
) -> HealthMetrics:
    commits = tuple(commits)
    now = resolve_now(now, first_date(commits))
    issues = tuple(issues)
    prs = tuple(prs)
    return HealthMetrics(
        commit_frequency=commit_frequency(commits, now=now),
        contributor_count=contributor_activity(contributors),
        code_quality=code_quality(issues, prs),
        issue_resolution_rate=issue_resolution_rate(issues),
        pr_merge_rate=pr_merge_rate(prs),
        response_time=response_time(issues),
    )


def analyze_repo(
    commits: Iterable[Commit],
    contributors: Iterable[Contributor],
    issues: Iterable[Issue],
    prs: Iterable[PullRequest],
    *,
    now: datetime | None = None,
    trend_days: int = DEFAULT_TREND_DAYS,
) -> AnalysisResult:
    """Compute metrics, the composite health score and the daily commit trend."""
    commits = tuple(commits)
    now = resolve_now(now, first_date(commits))
    metrics = compute_metrics(commits, contributors, issues, prs, now=now)
    score = health_score(metrics)
    logger.debug("Health score %.2f from %s", score, metrics)
    return AnalysisResult(
        metrics=metrics,
        health_score=score,
        trend_data=tuple(daily_trend(commits, trend_days, now=now)),
    )
