"""GitHub REST API client."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import httpx

from ..models import Commit, Contributor, Issue, PullRequest, RepoInfo, RepoSnapshot
from .base import PlatformClient, first_line, parse_timestamp

logger = logging.getLogger(__name__)

BASE_URL = "https://api.github.com"


class GitHubClient(PlatformClient):
    """Async GitHub REST API client with pagination and rate limit support."""

    platform = "github"
    default_base_url = BASE_URL

    def _auth_headers(self, token: str | None) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def fetch_snapshot(self, repo: RepoInfo) -> RepoSnapshot:
        data = await self._cached_get_json(f"/repos/{repo.owner}/{repo.repo}")
        full_name = data.get("full_name") or repo.full_name
        return RepoSnapshot(
            id=str(data.get("id", "")),
            name=full_name,
            description=data.get("description") or "",
            stars=data.get("stargazers_count", 0),
            forks=data.get("forks_count", 0),
            watchers=data.get("watchers_count", 0),
            language=data.get("language") or "Unknown",
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
            # GitHub counts open pull requests as open issues
            open_issues=data.get("open_issues_count", 0),
            url=data.get("html_url") or f"https://github.com/{full_name}",
        )

    async def fetch_contributors(self, repo: RepoInfo) -> list[Contributor]:
        raw = await self._cached_paginate(
            f"/repos/{repo.owner}/{repo.repo}/contributors"
        )
        return [
            Contributor(
                id=str(c.get("id", c.get("login", ""))),
                login=c.get("login", "unknown"),
                contributions=c.get("contributions", 0),
                avatar_url=c.get("avatar_url") or "",
            )
            for c in raw
        ]

    async def fetch_commits(
        self, repo: RepoInfo, since: datetime | None = None
    ) -> list[Commit]:
        params: dict[str, Any] = {}
        if since:
            params["since"] = since.isoformat()
        try:
            raw = await self._cached_paginate(
                f"/repos/{repo.owner}/{repo.repo}/commits", params=params
            )
        except httpx.HTTPStatusError as exc:
            # 409: repository is empty
            if exc.response.status_code == 409:
                return []
            raise

        commits: list[Commit] = []
        for c in raw:
            detail = c.get("commit") or {}
            author = detail.get("author") or {}
            date = parse_timestamp(author.get("date"))
            if date is None:
                logger.debug("Skipping commit %s without a date", c.get("sha"))
                continue
            stats = c.get("stats") or {}
            commits.append(
                Commit(
                    sha=c.get("sha", ""),
                    message=first_line(detail.get("message")),
                    author=author.get("name", "unknown"),
                    date=date,
                    additions=stats.get("additions", 0),
                    deletions=stats.get("deletions", 0),
                )
            )
        return commits

    async def fetch_issues(self, repo: RepoInfo) -> list[Issue]:
        """List issues (excluding pull requests) in any state."""
        raw = await self._cached_paginate(
            f"/repos/{repo.owner}/{repo.repo}/issues",
            params={"state": "all", "sort": "created", "direction": "desc"},
        )
        # GitHub issues API includes PRs; filter them out
        return [
            Issue(
                id=str(i.get("id", "")),
                title=i.get("title", ""),
                number=i.get("number", 0),
                state=i.get("state", "open"),
                created_at=parse_timestamp(i["created_at"]),
                closed_at=parse_timestamp(i.get("closed_at")),
                author=(i.get("user") or {}).get("login", "unknown"),
            )
            for i in raw
            if "pull_request" not in i
        ]

    async def fetch_pull_requests(self, repo: RepoInfo) -> list[PullRequest]:
        raw = await self._cached_paginate(
            f"/repos/{repo.owner}/{repo.repo}/pulls",
            params={"state": "all", "sort": "created", "direction": "desc"},
        )
        return [
            PullRequest(
                id=str(pr.get("id", "")),
                title=pr.get("title", ""),
                number=pr.get("number", 0),
                state="merged" if pr.get("merged_at") else pr.get("state", "open"),
                created_at=parse_timestamp(pr["created_at"]),
                merged_at=parse_timestamp(pr.get("merged_at")),
                author=(pr.get("user") or {}).get("login", "unknown"),
                additions=pr.get("additions") or 0,
                deletions=pr.get("deletions") or 0,
            )
            for pr in raw
        ]
