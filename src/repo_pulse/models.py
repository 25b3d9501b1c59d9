"""Data models for repo-pulse."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

ISSUE_STATES = frozenset({"open", "closed"})
PR_STATES = frozenset({"open", "closed", "merged"})
TREND_DIRECTIONS = ("increasing", "decreasing", "stable")
HEALTH_BANDS = ("excellent", "good", "moderate", "needs_improvement")
COMPARED_METRICS = (
    "commit_frequency",
    "contributor_count",
    "code_quality",
    "issue_resolution_rate",
    "pr_merge_rate",
)


@dataclass(frozen=True)
class Commit:
    sha: str
    message: str
    author: str
    date: datetime
    additions: int = 0
    deletions: int = 0


@dataclass(frozen=True)
class Contributor:
    id: str
    login: str
    contributions: int
    avatar_url: str = ""


@dataclass(frozen=True)
class Issue:
    id: str
    title: str
    number: int
    state: str
    created_at: datetime
    author: str
    closed_at: datetime | None = None


@dataclass(frozen=True)
class PullRequest:
    id: str
    title: str
    number: int
    state: str
    created_at: datetime
    author: str
    merged_at: datetime | None = None
    additions: int = 0
    deletions: int = 0


@dataclass(frozen=True)
class HealthMetrics:
    """Component health metrics.

    ``contributor_count`` holds the share (0-100) of contributors at or above
    the mean contribution count, not a headcount.
    """

    commit_frequency: int = 0
    contributor_count: float = 0.0
    code_quality: float = 50.0
    issue_resolution_rate: float = 1.0
    pr_merge_rate: float = 1.0
    response_time: float = 0.0


@dataclass(frozen=True)
class TrendPoint:
    date: datetime
    value: float


@dataclass(frozen=True)
class AnalysisResult:
    metrics: HealthMetrics
    health_score: float
    trend_data: tuple[TrendPoint, ...] = ()


@dataclass(frozen=True)
class RegressionResult:
    slope: float = 0.0
    intercept: float = 0.0


@dataclass(frozen=True)
class CommitTrend:
    """Weekly commit-volume classification over the trailing 12 weeks."""

    trend: str
    change_rate: float
    weekly_commits: tuple[int, ...] = ()


@dataclass(frozen=True)
class MetricComparison:
    winner: str
    difference: float


@dataclass(frozen=True)
class ComparisonResult:
    overall: MetricComparison
    metrics: dict[str, MetricComparison] = field(default_factory=dict)


@dataclass(frozen=True)
class RepoHealth:
    """A named health score, as compared and reported on."""

    name: str
    health_score: float
    metrics: HealthMetrics

    @classmethod
    def from_analysis(cls, name: str, analysis: AnalysisResult) -> RepoHealth:
        return cls(name=name, health_score=analysis.health_score, metrics=analysis.metrics)


@dataclass(frozen=True)
class HealthReport:
    overall: str
    strengths: tuple[str, ...] = ()
    weaknesses: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()


@dataclass(frozen=True)
class RepoInfo:
    platform: str
    owner: str
    repo: str
    url: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True)
class RepoSnapshot:
    id: str
    name: str
    description: str = ""
    stars: int = 0
    forks: int = 0
    watchers: int = 0
    language: str = "Unknown"
    created_at: datetime | None = None
    updated_at: datetime | None = None
    open_issues: int = 0
    open_prs: int = 0
    url: str = ""


@dataclass(frozen=True)
class RepoActivity:
    """Raw activity for one repository, as supplied by a platform client."""

    snapshot: RepoSnapshot
    commits: tuple[Commit, ...] = ()
    contributors: tuple[Contributor, ...] = ()
    issues: tuple[Issue, ...] = ()
    prs: tuple[PullRequest, ...] = ()


@dataclass(frozen=True)
class RepoAnalysis:
    """Everything derived for one repository in a single run."""

    snapshot: RepoSnapshot
    analysis: AnalysisResult
    commit_trend: CommitTrend
    report: HealthReport
    moving_average: tuple[float, ...] = ()
    volatility: float = 0.0
    forecast: tuple[TrendPoint, ...] = ()
    failed_sources: tuple[str, ...] = ()

    @property
    def health(self) -> RepoHealth:
        return RepoHealth.from_analysis(self.snapshot.name, self.analysis)
