"""Tests for the GitLab client module."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from repo_pulse.models import RepoInfo
from repo_pulse.platforms.gitlab import GitLabClient

REPO = RepoInfo(platform="gitlab", owner="group", repo="project", url="https://gitlab.com/group/project")


def _make_mock_response(status_code: int = 200, json_data=None, headers: dict | None = None):
    resp = MagicMock(spec=httpx.Response)
    resp.status_code = status_code
    resp.json.return_value = json_data if json_data is not None else []
    resp.headers = headers or {"Link": ""}
    resp.raise_for_status = MagicMock()
    if status_code >= 400:
        resp.raise_for_status.side_effect = httpx.HTTPStatusError(
            "error", request=MagicMock(), response=resp
        )
    return resp


def _client_returning(resp) -> GitLabClient:
    client = GitLabClient(token="glpat-test")
    client._client.get = AsyncMock(return_value=resp)
    client._rate_limit.wait_if_needed = AsyncMock()
    client._rate_limit.update = MagicMock()
    return client


def test_client_uses_private_token_header():
    client = GitLabClient(token="glpat-test")
    assert client._client.headers["PRIVATE-TOKEN"] == "glpat-test"
    assert "Authorization" not in client._client.headers


def test_client_default_base_url():
    assert str(GitLabClient()._client.base_url).startswith("https://gitlab.com/api/v4")


def test_parse_identity():
    client = GitLabClient()
    info = client.parse_identity("https://gitlab.com/group/project.git")
    assert info is not None
    assert info.platform == "gitlab"
    assert info.repo == "project"
    assert client.parse_identity("https://github.com/a/b") is None


@pytest.mark.asyncio
async def test_fetch_snapshot_encodes_project_path():
    data = {
        "id": 7,
        "path_with_namespace": "group/project",
        "description": "A project",
        "star_count": 12,
        "forks_count": 3,
        "created_at": "2021-03-04T05:06:07.000Z",
        "last_activity_at": "2024-06-01T00:00:00.000Z",
        "open_issues_count": 4,
        "web_url": "https://gitlab.com/group/project",
    }
    client = _client_returning(_make_mock_response(200, json_data=data))

    snapshot = await client.fetch_snapshot(REPO)
    assert snapshot.name == "group/project"
    assert snapshot.stars == 12
    assert snapshot.watchers == 12
    assert snapshot.open_issues == 4
    assert snapshot.created_at == datetime(2021, 3, 4, 5, 6, 7, tzinfo=timezone.utc)
    assert snapshot.updated_at == datetime(2024, 6, 1, tzinfo=timezone.utc)
    assert client._client.get.call_args.args[0] == "/projects/group%2Fproject"


@pytest.mark.asyncio
async def test_fetch_contributors():
    data = [
        {"name": "Alice", "email": "alice@example.com", "commits": 30},
        {"name": None, "email": "bob@example.com", "commits": 2},
    ]
    client = _client_returning(_make_mock_response(200, json_data=data))

    contributors = await client.fetch_contributors(REPO)
    assert contributors[0].login == "Alice"
    assert contributors[0].contributions == 30
    assert contributors[1].login == "bob@example.com"


@pytest.mark.asyncio
async def test_fetch_commits():
    data = [
        {
            "id": "deadbeef",
            "title": "Fix parser",
            "message": "Fix parser\n\nDetails",
            "author_name": "Alice",
            "committed_date": "2024-06-03T10:30:00.000+02:00",
            "stats": {"additions": 5, "deletions": 1},
        }
    ]
    client = _client_returning(_make_mock_response(200, json_data=data))

    commits = await client.fetch_commits(REPO, since=datetime(2024, 1, 1, tzinfo=timezone.utc))
    assert commits[0].sha == "deadbeef"
    assert commits[0].message == "Fix parser"
    assert commits[0].date == datetime(2024, 6, 3, 8, 30, tzinfo=timezone.utc)
    assert commits[0].additions == 5
    assert client._client.get.call_args.kwargs["params"]["since"].startswith("2024-01-01")


@pytest.mark.asyncio
async def test_fetch_issues_normalizes_state():
    data = [
        {
            "id": 1, "iid": 5, "title": "Open one", "state": "opened",
            "created_at": "2024-06-01T00:00:00Z", "closed_at": None,
            "author": {"username": "alice"},
        },
        {
            "id": 2, "iid": 6, "title": "Closed one", "state": "closed",
            "created_at": "2024-06-01T00:00:00Z", "closed_at": "2024-06-01T06:00:00Z",
            "author": {"username": "bob"},
        },
    ]
    client = _client_returning(_make_mock_response(200, json_data=data))

    issues = await client.fetch_issues(REPO)
    assert [i.state for i in issues] == ["open", "closed"]
    assert [i.number for i in issues] == [5, 6]
    assert issues[1].author == "bob"


@pytest.mark.asyncio
async def test_fetch_merge_requests_as_pull_requests():
    base = {"created_at": "2024-06-01T00:00:00Z", "author": {"username": "alice"}, "title": "MR"}
    data = [
        {**base, "id": 1, "iid": 1, "state": "merged", "merged_at": "2024-06-02T00:00:00Z"},
        {**base, "id": 2, "iid": 2, "state": "opened", "merged_at": None},
        {**base, "id": 3, "iid": 3, "state": "closed", "merged_at": None},
        {**base, "id": 4, "iid": 4, "state": "locked", "merged_at": None},
    ]
    client = _client_returning(_make_mock_response(200, json_data=data))

    prs = await client.fetch_pull_requests(REPO)
    assert [pr.state for pr in prs] == ["merged", "open", "closed", "closed"]
    assert prs[0].merged_at == datetime(2024, 6, 2, tzinfo=timezone.utc)
    assert client._client.get.call_args.args[0] == "/projects/group%2Fproject/merge_requests"
