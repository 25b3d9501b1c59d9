"""API rate limit monitoring for GitHub and GitLab."""

from __future__ import annotations

import asyncio
import logging
import time

import httpx

logger = logging.getLogger(__name__)

# GitHub sends X-RateLimit-*, GitLab sends RateLimit-*
_REMAINING_HEADERS = ("X-RateLimit-Remaining", "RateLimit-Remaining")
_RESET_HEADERS = ("X-RateLimit-Reset", "RateLimit-Reset")
MAX_WAIT_SECONDS = 3600


def _first_header(response: httpx.Response, names: tuple[str, ...]) -> str | None:
    for name in names:
        value = response.headers.get(name)
        if value is not None:
            return value
    return None


class RateLimitMonitor:
    """Monitors the API rate limit from response headers."""

    def __init__(self, threshold: int = 10) -> None:
        self._remaining: int | None = None
        self._reset_at: float | None = None
        self._threshold = threshold

    @property
    def remaining(self) -> int | None:
        return self._remaining

    def update(self, response: httpx.Response) -> None:
        remaining = _first_header(response, _REMAINING_HEADERS)
        reset_at = _first_header(response, _RESET_HEADERS)
        if remaining is not None:
            self._remaining = int(remaining)
        if reset_at is not None:
            self._reset_at = float(reset_at)

    async def wait_if_needed(self) -> None:
        if (
            self._remaining is not None
            and self._remaining <= self._threshold
            and self._reset_at is not None
        ):
            wait_seconds = min(max(0, self._reset_at - time.time()) + 1, MAX_WAIT_SECONDS)
            logger.info(
                "Rate limit nearly exhausted (%d left), sleeping %.0fs",
                self._remaining,
                wait_seconds,
            )
            await asyncio.sleep(wait_seconds)
