"""Shared machinery for hosting-platform API clients."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

import httpx

from ..cache import BaseCache
from ..models import Commit, Contributor, Issue, PullRequest, RepoInfo, RepoSnapshot
from ..validation import match_repo_url
from .rate_limit import RateLimitMonitor

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 10
PER_PAGE = 100


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp as returned by the platform APIs."""
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def first_line(message: str | None) -> str:
    return (message or "").split("\n", 1)[0]


class PlatformClient(ABC):
    """Async REST client for one hosting platform.

    Subclasses map platform payloads onto the repo-pulse records; this class
    owns concurrency limiting, rate-limit back-off, optional response caching
    and Link-header pagination.
    """

    platform: str = ""
    default_base_url: str = ""

    def __init__(
        self,
        token: str | None = None,
        concurrency: int = 5,
        cache: BaseCache | None = None,
        base_url: str | None = None,
        verify_ssl: bool = True,
        max_pages: int = DEFAULT_MAX_PAGES,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url or self.default_base_url,
            headers=self._auth_headers(token),
            timeout=30.0,
            verify=verify_ssl,
        )
        self._rate_limit = RateLimitMonitor()
        self._semaphore = asyncio.Semaphore(concurrency)
        self._cache = cache
        self._max_pages = max_pages

    @abstractmethod
    def _auth_headers(self, token: str | None) -> dict[str, str]: ...

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> PlatformClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    def parse_identity(self, url: str) -> RepoInfo | None:
        """Parse a repository URL for this platform; None when it is not one."""
        return match_repo_url(url, self.platform)

    async def _get(
        self, url: str, params: dict[str, Any] | None = None
    ) -> httpx.Response:
        async with self._semaphore:
            await self._rate_limit.wait_if_needed()
            response = await self._client.get(url, params=params)
            self._rate_limit.update(response)
            response.raise_for_status()
            return response

    async def _cached_get_json(
        self, url: str, params: dict[str, Any] | None = None
    ) -> Any:
        """GET with cache support. Returns parsed JSON."""
        if self._cache is not None:
            cached = self._cache.get(url, params)
            if cached is not None:
                return cached
        response = await self._get(url, params)
        data = response.json()
        if self._cache is not None:
            self._cache.set(url, params, data)
        return data

    async def _cached_paginate(
        self, url: str, params: dict[str, Any] | None = None
    ) -> list[Any]:
        """Paginate with cache support."""
        cache_params = dict(params or {})
        if self._cache is not None:
            cached = self._cache.get(url, cache_params)
            if cached is not None:
                return cached

        results = await self._paginate(url, params)
        if self._cache is not None:
            self._cache.set(url, cache_params, results)
        return results

    async def _paginate(
        self, url: str, params: dict[str, Any] | None = None
    ) -> list[Any]:
        results: list[Any] = []
        params = dict(params or {})
        params.setdefault("per_page", PER_PAGE)
        next_url: str | None = url
        pages = 0

        while next_url is not None:
            response = await self._get(next_url, params)
            pages += 1
            if response.status_code == 204:
                # empty repository
                break
            data = response.json()
            if isinstance(data, list):
                results.extend(data)
            else:
                results.append(data)

            if pages >= self._max_pages:
                logger.info("%s: stopped after %d pages", url, pages)
                break

            # Follow Link header for next page
            next_url = None
            link_header = response.headers.get("Link", "")
            for part in link_header.split(","):
                if 'rel="next"' in part:
                    next_url = part.split(";")[0].strip().strip("<>")
                    params = {}  # URL already contains params
                    break

        return results

    @abstractmethod
    async def fetch_snapshot(self, repo: RepoInfo) -> RepoSnapshot: ...

    @abstractmethod
    async def fetch_contributors(self, repo: RepoInfo) -> list[Contributor]: ...

    @abstractmethod
    async def fetch_commits(
        self, repo: RepoInfo, since: datetime | None = None
    ) -> list[Commit]: ...

    @abstractmethod
    async def fetch_issues(self, repo: RepoInfo) -> list[Issue]: ...

    @abstractmethod
    async def fetch_pull_requests(self, repo: RepoInfo) -> list[PullRequest]: ...
