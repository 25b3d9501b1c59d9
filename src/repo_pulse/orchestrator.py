"""Orchestrator: wires together platform clients, the engines and the renderer."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta

from .cache import DEFAULT_TTL, BaseCache, FileCache
from .metrics import DEFAULT_TREND_DAYS, analyze_repo, first_date, resolve_now
from .models import RepoActivity, RepoAnalysis, RepoHealth, RepoInfo
from .platforms.base import PlatformClient
from .platforms.factory import client_for_url
from .renderer import (
    render_analysis,
    render_comparison,
    render_comparison_json,
    render_csv,
    render_json,
    render_markdown,
)
from .trends import (
    TREND_WEEKS,
    commit_trend,
    compare_health,
    generate_report,
    moving_average,
    predict_trend,
    standard_deviation,
)
from .validation import ValidationError, parse_repo_url, validate_activity

logger = logging.getLogger(__name__)

COMMIT_LOOKBACK_DAYS = TREND_WEEKS * 7
MOVING_AVERAGE_WINDOW = 7

_SOURCES = ("commits", "contributors", "issues", "pull requests")


async def collect_activity(
    client: PlatformClient,
    repo: RepoInfo,
    *,
    now: datetime,
    trend_days: int = DEFAULT_TREND_DAYS,
) -> tuple[RepoActivity, list[str]]:
    """Fetch everything the engines need for one repository.

    A failed snapshot fetch is fatal. Any other failed fetch is logged and
    replaced by an empty collection; its name is returned in the second item.
    """
    # midnight, so runs on the same day share the cached commit listing
    since = (now - timedelta(days=max(COMMIT_LOOKBACK_DAYS, trend_days))).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    results = await asyncio.gather(
        client.fetch_snapshot(repo),
        client.fetch_commits(repo, since=since),
        client.fetch_contributors(repo),
        client.fetch_issues(repo),
        client.fetch_pull_requests(repo),
        return_exceptions=True,
    )
    snapshot, *collections = results
    if isinstance(snapshot, BaseException):
        raise snapshot

    failed: list[str] = []
    resolved: list[tuple] = []
    for name, value in zip(_SOURCES, collections):
        if isinstance(value, BaseException):
            logger.warning("Error fetching %s for %s: %s", name, repo.full_name, value)
            failed.append(name)
            value = []
        resolved.append(tuple(value))

    commits, contributors, issues, prs = resolved
    logger.info(
        "%s: %d commits, %d contributors, %d issues, %d pull requests",
        repo.full_name,
        len(commits),
        len(contributors),
        len(issues),
        len(prs),
    )
    activity = RepoActivity(
        snapshot=snapshot,
        commits=commits,
        contributors=contributors,
        issues=issues,
        prs=prs,
    )
    return activity, failed


def build_analysis(
    activity: RepoActivity,
    *,
    now: datetime | None = None,
    trend_days: int = DEFAULT_TREND_DAYS,
    predict_days: int = 0,
    failed_sources: list[str] | None = None,
) -> RepoAnalysis:
    """Run both engines over fetched activity."""
    now = resolve_now(now, first_date(activity.commits))
    analysis = analyze_repo(
        activity.commits,
        activity.contributors,
        activity.issues,
        activity.prs,
        now=now,
        trend_days=trend_days,
    )
    health = RepoHealth.from_analysis(activity.snapshot.name, analysis)
    daily = [p.value for p in analysis.trend_data]
    forecast = predict_trend(analysis.trend_data, predict_days, now=now) if predict_days > 0 else []

    return RepoAnalysis(
        snapshot=activity.snapshot,
        analysis=analysis,
        commit_trend=commit_trend(activity.commits, now=now),
        report=generate_report(health),
        moving_average=tuple(moving_average(daily, MOVING_AVERAGE_WINDOW)),
        volatility=standard_deviation(daily),
        forecast=tuple(forecast),
        failed_sources=tuple(failed_sources or ()),
    )


async def analyze_url(
    url: str,
    *,
    tokens: dict[str, str | None] | None = None,
    cache: BaseCache | None = None,
    api_url: str | None = None,
    verify_ssl: bool = True,
    trend_days: int = DEFAULT_TREND_DAYS,
    predict_days: int = 0,
    now: datetime | None = None,
) -> RepoAnalysis:
    """Fetch, validate and analyse one repository URL."""
    now = resolve_now(now)
    client, repo = client_for_url(
        url, tokens, cache=cache, base_url=api_url, verify_ssl=verify_ssl
    )
    async with client:
        activity, failed = await collect_activity(
            client, repo, now=now, trend_days=trend_days
        )
    validate_activity(activity.commits, activity.contributors, activity.issues, activity.prs)
    return build_analysis(
        activity,
        now=now,
        trend_days=trend_days,
        predict_days=predict_days,
        failed_sources=failed,
    )


def make_cache(no_cache: bool = False, ttl: int = DEFAULT_TTL) -> BaseCache | None:
    if no_cache:
        return None
    cache = FileCache(ttl=ttl)
    removed = cache.cleanup()
    if removed:
        logger.debug("Removed %d expired cache entries", removed)
    return cache


async def run(
    url: str,
    tokens: dict[str, str | None] | None = None,
    output_format: str = "table",
    output_file: str | None = None,
    no_cache: bool = False,
    cache_ttl: int = DEFAULT_TTL,
    api_url: str | None = None,
    verify_ssl: bool = True,
    trend_days: int = DEFAULT_TREND_DAYS,
    predict_days: int = 0,
) -> RepoAnalysis:
    """Main pipeline: fetch data, analyse, render."""
    result = await analyze_url(
        url,
        tokens=tokens,
        cache=make_cache(no_cache, cache_ttl),
        api_url=api_url,
        verify_ssl=verify_ssl,
        trend_days=trend_days,
        predict_days=predict_days,
    )

    if output_format == "json":
        render_json(result, output_file=output_file)
    elif output_format == "csv":
        render_csv(result, output_file=output_file)
    elif output_format == "markdown":
        render_markdown(result, output_file=output_file)
    else:
        render_analysis(result, output_file=output_file)
    return result


async def run_compare(
    url_a: str,
    url_b: str,
    tokens: dict[str, str | None] | None = None,
    output_format: str = "table",
    output_file: str | None = None,
    no_cache: bool = False,
    cache_ttl: int = DEFAULT_TTL,
    api_url: str | None = None,
    verify_ssl: bool = True,
) -> None:
    """Analyse two repositories concurrently and render their comparison."""
    if api_url:
        platforms = {parse_repo_url(url).platform for url in (url_a, url_b)}
        if len(platforms) > 1:
            raise ValidationError(
                "--api-url applies to one platform; both URLs must be on the same platform"
            )
    cache = make_cache(no_cache, cache_ttl)
    now = resolve_now(None)
    left, right = await asyncio.gather(
        *(
            analyze_url(
                url,
                tokens=tokens,
                cache=cache,
                api_url=api_url,
                verify_ssl=verify_ssl,
                now=now,
            )
            for url in (url_a, url_b)
        )
    )
    comparison = compare_health(left.health, right.health)

    if output_format == "json":
        render_comparison_json(left, right, comparison, output_file=output_file)
    else:
        render_comparison(left, right, comparison, output_file=output_file)
