"""Remote source provider backed by the GitHub REST API."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Sequence

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from .models import RecentRemoteSource, RemoteSource, RemoteSourceProvider

LOGGER = logging.getLogger(__name__)

_REPOSITORY_RE = re.compile(r"[/:](?P<owner>[^/:]+)/(?P<repo>[^/]+?)(?:\.git)?/?$")
_API_VERSION = "2022-11-28"


class RemoteSourceError(RuntimeError):
    """Raised when the remote API cannot be reached or rejects a request."""

    def __init__(self, message: str, *, status_code: int | None = None, url: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url

    def details(self) -> dict[str, Any]:
        return {"status_code": self.status_code, "url": self.url}


@dataclass(slots=True)
class GitHubSettings:
    """Subset of settings required to talk to GitHub."""

    api_url: str = "https://api.github.com"
    token: str = ""
    request_timeout: float | None = 30.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    page_size: int = 30
    default_headers: Mapping[str, str] = field(default_factory=dict)


def parse_repository(url: str) -> tuple[str, str] | None:
    """Return ``(owner, repo)`` for an HTTPS or SSH repository URL."""

    match = _REPOSITORY_RE.search((url or "").strip())
    if not match:
        return None
    return match.group("owner"), match.group("repo")


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


class GitHubRemoteSourceProvider(RemoteSourceProvider):
    """Searches GitHub repositories and lists their branches."""

    name = "GitHub"
    icon = "github"
    supports_query = True
    placeholder = "Repository name (type to search)"

    def __init__(
        self,
        settings: GitHubSettings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        recent_sources: Iterable[RecentRemoteSource] = (),
    ) -> None:
        self._settings = settings or GitHubSettings()
        self._owns_client = client is None
        self._client = client or self._build_client(self._settings)
        self._recent: List[RecentRemoteSource] = list(recent_sources)

    @property
    def settings(self) -> GitHubSettings:
        return self._settings

    async def get_remote_sources(self, query: str | None = None) -> Sequence[RemoteSource]:
        per_page = max(1, self._settings.page_size)
        if query:
            payload = await self._get_json(
                "/search/repositories", params={"q": query, "sort": "stars", "per_page": per_page}
            )
            repositories = payload.get("items", []) if isinstance(payload, Mapping) else []
        elif self._settings.token:
            payload = await self._get_json("/user/repos", params={"sort": "updated", "per_page": per_page})
            repositories = payload if isinstance(payload, list) else []
        else:
            LOGGER.debug("No query and no GitHub token; nothing to list")
            return []
        return [self._to_remote_source(repository) for repository in repositories]

    async def get_branches(self, url: str) -> Sequence[str]:
        parsed = parse_repository(url)
        if parsed is None:
            LOGGER.debug("Cannot derive owner/repo from %s", url)
            return []
        owner, repo = parsed
        payload = await self._get_json(f"/repos/{owner}/{repo}/branches", params={"per_page": 100})
        if not isinstance(payload, list):
            return []
        return [str(branch["name"]) for branch in payload if isinstance(branch, Mapping) and branch.get("name")]

    async def get_recent_remote_sources(self) -> Sequence[RecentRemoteSource]:
        return list(self._recent)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _build_client(self, settings: GitHubSettings) -> httpx.AsyncClient:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": _API_VERSION,
        }
        headers.update(settings.default_headers or {})
        if settings.token:
            headers["Authorization"] = f"Bearer {settings.token}"
        return httpx.AsyncClient(
            base_url=settings.api_url,
            headers=headers,
            timeout=settings.request_timeout,
        )

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, self._settings.max_retries)),
            wait=wait_exponential(
                multiplier=self._settings.retry_min_seconds,
                max=self._settings.retry_max_seconds,
            ),
            retry=retry_if_exception(_is_retryable),
        )

    async def _get_json(self, path: str, *, params: Mapping[str, Any] | None = None) -> Any:
        LOGGER.debug("GET %s params=%s", path, dict(params or {}))
        try:
            async for attempt in self._retrying():
                with attempt:
                    response = await self._client.get(path, params=params)
                    response.raise_for_status()
                    return response.json()
        except httpx.HTTPStatusError as exc:
            raise RemoteSourceError(
                f"GitHub request failed with status {exc.response.status_code}",
                status_code=exc.response.status_code,
                url=str(exc.request.url),
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteSourceError(f"GitHub request failed: {exc}", url=path) from exc
        raise RemoteSourceError("GitHub request was not attempted", url=path)  # pragma: no cover

    @staticmethod
    def _to_remote_source(repository: Mapping[str, Any]) -> RemoteSource:
        urls = tuple(
            url for url in (repository.get("clone_url"), repository.get("ssh_url")) if isinstance(url, str) and url
        )
        return RemoteSource(
            name=str(repository.get("full_name") or repository.get("name") or ""),
            url=urls,
            description=repository.get("description") or None,
            icon="repo",
        )


__all__ = [
    "GitHubRemoteSourceProvider",
    "GitHubSettings",
    "RemoteSourceError",
    "parse_repository",
]
