"""Hosting-platform API clients."""

from .base import PlatformClient
from .factory import client_for_url, create_client
from .github import GitHubClient
from .gitlab import GitLabClient

__all__ = [
    "GitHubClient",
    "GitLabClient",
    "PlatformClient",
    "client_for_url",
    "create_client",
]
