"""Tests for the GitHub remote source provider."""

from __future__ import annotations

import asyncio
import json
from typing import Callable

import httpx
import pytest

from linesplice.remotes.github import (
    GitHubRemoteSourceProvider,
    GitHubSettings,
    RemoteSourceError,
    parse_repository,
)
from linesplice.remotes.models import RecentRemoteSource

_REPO = {
    "full_name": "octo/widgets",
    "description": "Widget toolkit",
    "clone_url": "https://github.com/octo/widgets.git",
    "ssh_url": "git@github.com:octo/widgets.git",
}


def _provider(
    handler: Callable[[httpx.Request], httpx.Response],
    *,
    token: str = "",
    max_retries: int = 1,
    **kwargs,
) -> GitHubRemoteSourceProvider:
    settings = GitHubSettings(token=token, max_retries=max_retries, retry_min_seconds=0.0, retry_max_seconds=0.0)
    client = httpx.AsyncClient(base_url=settings.api_url, transport=httpx.MockTransport(handler))
    return GitHubRemoteSourceProvider(settings, client=client, **kwargs)


def test_query_searches_repositories():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"items": [_REPO]})

    sources = asyncio.run(_provider(handler).get_remote_sources("widgets"))

    assert seen[0].url.path == "/search/repositories"
    assert seen[0].url.params["q"] == "widgets"
    (source,) = sources
    assert source.name == "octo/widgets"
    assert source.description == "Widget toolkit"
    assert source.urls == (_REPO["clone_url"], _REPO["ssh_url"])


def test_no_query_lists_user_repositories_when_authenticated():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/user/repos"
        return httpx.Response(200, json=[_REPO])

    sources = asyncio.run(_provider(handler, token="secret").get_remote_sources())

    assert [source.name for source in sources] == ["octo/widgets"]


def test_no_query_without_token_makes_no_request():
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - must not be called
        raise AssertionError("unexpected request")

    assert asyncio.run(_provider(handler).get_remote_sources(None)) == []


def test_branches_are_listed_for_ssh_and_https_urls():
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(200, json=[{"name": "main"}, {"name": "release"}, {"commit": {}}])

    provider = _provider(handler)

    async def run():
        return await provider.get_branches(_REPO["clone_url"]), await provider.get_branches(_REPO["ssh_url"])

    https_branches, ssh_branches = asyncio.run(run())

    assert https_branches == ssh_branches == ["main", "release"]
    assert paths == ["/repos/octo/widgets/branches", "/repos/octo/widgets/branches"]
    assert provider.supports_branches


def test_server_errors_are_retried_then_reported():
    attempts: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        return httpx.Response(502, json={"message": "bad gateway"})

    with pytest.raises(RemoteSourceError) as excinfo:
        asyncio.run(_provider(handler, max_retries=3).get_remote_sources("x"))

    assert len(attempts) == 3
    assert excinfo.value.status_code == 502


def test_client_errors_are_not_retried():
    attempts: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        return httpx.Response(404, json={"message": "Not Found"})

    with pytest.raises(RemoteSourceError) as excinfo:
        asyncio.run(_provider(handler, max_retries=3).get_branches(_REPO["clone_url"]))

    assert len(attempts) == 1
    assert excinfo.value.details()["status_code"] == 404


def test_transport_errors_are_wrapped():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    with pytest.raises(RemoteSourceError):
        asyncio.run(_provider(handler, max_retries=2).get_remote_sources("x"))


def test_recent_sources_come_from_the_constructor():
    recent = [RecentRemoteSource(name="a", url="https://x/a.git", timestamp=2)]
    provider = _provider(lambda request: httpx.Response(200, json=[]), recent_sources=recent)

    assert asyncio.run(provider.get_recent_remote_sources()) == recent


def test_default_client_sends_auth_header():
    provider = GitHubRemoteSourceProvider(GitHubSettings(token="tok"))
    try:
        headers = provider._client.headers
        assert headers["Authorization"] == "Bearer tok"
        assert headers["Accept"] == "application/vnd.github+json"
        assert str(provider._client.base_url).startswith("https://api.github.com")
    finally:
        asyncio.run(provider.aclose())


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://github.com/octo/widgets.git", ("octo", "widgets")),
        ("https://github.com/octo/widgets", ("octo", "widgets")),
        ("git@github.com:octo/widgets.git", ("octo", "widgets")),
        ("ssh://git@github.com/octo/widgets/", ("octo", "widgets")),
        ("widgets", None),
    ],
)
def test_parse_repository(url: str, expected):
    assert parse_repository(url) == expected


def test_search_payload_is_json_decoded():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=json.dumps({"items": []}), headers={"content-type": "application/json"})

    assert asyncio.run(_provider(handler).get_remote_sources("none")) == []
