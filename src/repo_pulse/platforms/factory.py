"""Platform client construction."""

from __future__ import annotations

from typing import Any

from ..models import RepoInfo
from ..validation import ValidationError, parse_repo_url
from .base import PlatformClient
from .github import GitHubClient
from .gitlab import GitLabClient

CLIENTS: dict[str, type[PlatformClient]] = {
    "github": GitHubClient,
    "gitlab": GitLabClient,
}


def create_client(platform: str, token: str | None = None, **kwargs: Any) -> PlatformClient:
    """Create a client for ``platform`` ("github" or "gitlab")."""
    try:
        client_cls = CLIENTS[platform]
    except KeyError:
        raise ValidationError(f"Unsupported platform: {platform}") from None
    return client_cls(token=token, **kwargs)


def client_for_url(
    url: str, tokens: dict[str, str | None] | None = None, **kwargs: Any
) -> tuple[PlatformClient, RepoInfo]:
    """Detect the platform of a repository URL and create a matching client.

    ``tokens`` maps platform names to access tokens.
    """
    info = parse_repo_url(url)
    token = (tokens or {}).get(info.platform)
    return create_client(info.platform, token=token, **kwargs), info
