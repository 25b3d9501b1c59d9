"""GitLab REST API (v4) client."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any
from urllib.parse import quote

from ..models import Commit, Contributor, Issue, PullRequest, RepoInfo, RepoSnapshot
from .base import PlatformClient, first_line, parse_timestamp

logger = logging.getLogger(__name__)

BASE_URL = "https://gitlab.com/api/v4"

_ISSUE_STATES = {"opened": "open", "closed": "closed"}
_MR_STATES = {"opened": "open", "merged": "merged", "closed": "closed", "locked": "closed"}


def _project_path(repo: RepoInfo) -> str:
    return "/projects/" + quote(repo.full_name, safe="")


class GitLabClient(PlatformClient):
    """Async GitLab API client; merge requests are reported as pull requests."""

    platform = "gitlab"
    default_base_url = BASE_URL

    def _auth_headers(self, token: str | None) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if token:
            headers["PRIVATE-TOKEN"] = token
        return headers

    async def fetch_snapshot(self, repo: RepoInfo) -> RepoSnapshot:
        data = await self._cached_get_json(_project_path(repo))
        path = data.get("path_with_namespace") or repo.full_name
        return RepoSnapshot(
            id=str(data.get("id", "")),
            name=path,
            description=data.get("description") or "",
            stars=data.get("star_count", 0),
            forks=data.get("forks_count", 0),
            # GitLab has no watcher count; stars are the closest signal
            watchers=data.get("star_count", 0),
            language=data.get("language") or "Unknown",
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("last_activity_at")),
            open_issues=data.get("open_issues_count", 0),
            url=data.get("web_url") or f"https://gitlab.com/{path}",
        )

    async def fetch_contributors(self, repo: RepoInfo) -> list[Contributor]:
        raw = await self._cached_paginate(
            f"{_project_path(repo)}/repository/contributors"
        )
        return [
            Contributor(
                id=c.get("email") or c.get("name", ""),
                login=c.get("name") or c.get("email") or "Unknown",
                contributions=c.get("commits", 0),
            )
            for c in raw
        ]

    async def fetch_commits(
        self, repo: RepoInfo, since: datetime | None = None
    ) -> list[Commit]:
        params: dict[str, Any] = {}
        if since:
            params["since"] = since.isoformat()
        raw = await self._cached_paginate(
            f"{_project_path(repo)}/repository/commits", params=params
        )

        commits: list[Commit] = []
        for c in raw:
            date = parse_timestamp(c.get("committed_date") or c.get("created_at"))
            if date is None:
                logger.debug("Skipping commit %s without a date", c.get("id"))
                continue
            stats = c.get("stats") or {}
            commits.append(
                Commit(
                    sha=c.get("id", ""),
                    message=c.get("title") or first_line(c.get("message")),
                    author=c.get("author_name", "unknown"),
                    date=date,
                    additions=stats.get("additions", 0),
                    deletions=stats.get("deletions", 0),
                )
            )
        return commits

    async def fetch_issues(self, repo: RepoInfo) -> list[Issue]:
        raw = await self._cached_paginate(
            f"{_project_path(repo)}/issues", params={"state": "all"}
        )
        return [
            Issue(
                id=str(i.get("id", "")),
                title=i.get("title", ""),
                number=i.get("iid", 0),
                state=_ISSUE_STATES.get(i.get("state", ""), "open"),
                created_at=parse_timestamp(i["created_at"]),
                closed_at=parse_timestamp(i.get("closed_at")),
                author=(i.get("author") or {}).get("username", "unknown"),
            )
            for i in raw
        ]

    async def fetch_pull_requests(self, repo: RepoInfo) -> list[PullRequest]:
        raw = await self._cached_paginate(
            f"{_project_path(repo)}/merge_requests", params={"state": "all"}
        )
        prs: list[PullRequest] = []
        for mr in raw:
            state = "merged" if mr.get("merged_at") else _MR_STATES.get(mr.get("state", ""), "open")
            prs.append(
                PullRequest(
                    id=str(mr.get("id", "")),
                    title=mr.get("title", ""),
                    number=mr.get("iid", 0),
                    state=state,
                    created_at=parse_timestamp(mr["created_at"]),
                    merged_at=parse_timestamp(mr.get("merged_at")),
                    author=(mr.get("author") or {}).get("username", "unknown"),
                )
            )
        return prs
