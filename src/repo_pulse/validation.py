"""Input validation for repository URLs and activity records."""

from __future__ import annotations

import re
from collections.abc import Iterable

from .models import (
    ISSUE_STATES,
    PR_STATES,
    Commit,
    Contributor,
    Issue,
    PullRequest,
    RepoInfo,
)

_REPO_URL_PATTERNS = {
    "github": re.compile(
        r"^https?://(?:www\.)?github\.com/([^/\s]+)/([^/\s]+?)(?:\.git)?/?$",
        re.IGNORECASE,
    ),
    "gitlab": re.compile(
        r"^https?://(?:www\.)?gitlab\.com/([^/\s]+)/([^/\s]+?)(?:\.git)?/?$",
        re.IGNORECASE,
    ),
}


class ValidationError(ValueError):
    """Raised when a URL or activity record breaks the input contract."""


def match_repo_url(url: str, platform: str) -> RepoInfo | None:
    """Parse ``url`` for a single platform, returning None when it does not match."""
    pattern = _REPO_URL_PATTERNS.get(platform)
    if pattern is None:
        return None
    match = pattern.match(url.strip())
    if not match:
        return None
    return RepoInfo(
        platform=platform, owner=match.group(1), repo=match.group(2), url=url.strip()
    )


def is_github_url(url: str) -> bool:
    return match_repo_url(url, "github") is not None


def is_gitlab_url(url: str) -> bool:
    return match_repo_url(url, "gitlab") is not None


def is_valid_repo_url(url: str) -> bool:
    return is_github_url(url) or is_gitlab_url(url)


def parse_repo_url(url: str) -> RepoInfo:
    """Parse a GitHub or GitLab repository URL.

    Raises:
        ValidationError: if the URL does not point at a supported repository.
    """
    for platform in _REPO_URL_PATTERNS:
        info = match_repo_url(url, platform)
        if info is not None:
            return info
    raise ValidationError(
        f"Unsupported repository URL: {url!r} "
        "(expected https://github.com/<owner>/<repo> or https://gitlab.com/<group>/<project>)"
    )


def validate_activity(
    commits: Iterable[Commit],
    contributors: Iterable[Contributor],
    issues: Iterable[Issue],
    prs: Iterable[PullRequest],
) -> None:
    """Check activity records against the engine's input contract.

    Raises:
        ValidationError: on the first violation found.
    """
    aware: bool | None = None
    for c in commits:
        if c.additions < 0 or c.deletions < 0:
            raise ValidationError(f"Commit {c.sha}: negative line counts")
        has_offset = c.date.utcoffset() is not None
        if aware is None:
            aware = has_offset
        elif has_offset != aware:
            raise ValidationError(
                f"Commit {c.sha}: mixes naive and timezone-aware dates"
            )
    for contributor in contributors:
        if contributor.contributions < 0:
            raise ValidationError(
                f"Contributor {contributor.login}: negative contribution count"
            )
    for issue in issues:
        if issue.state not in ISSUE_STATES:
            raise ValidationError(f"Issue #{issue.number}: unknown state {issue.state!r}")
        if issue.closed_at is not None and issue.closed_at < issue.created_at:
            raise ValidationError(f"Issue #{issue.number}: closed before it was created")
    for pr in prs:
        if pr.state not in PR_STATES:
            raise ValidationError(f"Pull request #{pr.number}: unknown state {pr.state!r}")
        if pr.additions < 0 or pr.deletions < 0:
            raise ValidationError(f"Pull request #{pr.number}: negative line counts")
