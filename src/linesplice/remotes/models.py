"""Value types and the provider interface for remote repository sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Sequence


@dataclass(slots=True, frozen=True)
class RemoteSource:
    """A repository a provider can offer for cloning."""

    name: str
    url: str | tuple[str, ...]
    description: str | None = None
    detail: str | None = None
    icon: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.url, str):
            object.__setattr__(self, "url", tuple(self.url))

    @property
    def urls(self) -> tuple[str, ...]:
        return (self.url,) if isinstance(self.url, str) else self.url

    @property
    def primary_url(self) -> str | None:
        urls = self.urls
        return urls[0] if urls else None


@dataclass(slots=True, frozen=True)
class RecentRemoteSource(RemoteSource):
    """A remote source the user opened before; ``timestamp`` is epoch millis."""

    timestamp: float = 0.0


@dataclass(slots=True, frozen=True)
class PickRemoteSourceResult:
    """Chosen repository URL and, when requested, branch."""

    url: str
    branch: str | None = None


@dataclass(slots=True)
class PickRemoteSourceOptions:
    """Knobs for :func:`linesplice.remotes.picker.pick_remote_source`."""

    provider_label: Optional[Callable[["RemoteSourceProvider"], str]] = None
    url_label: str | Callable[[str], str] | None = None
    provider_name: str | None = None
    placeholder: str | None = None
    title: str | None = None
    branch: bool = False
    show_recent_sources: bool = False


class RemoteSourceProvider(ABC):
    """Interface every remote repository provider implements."""

    name: str = "unknown"
    icon: str | None = None
    supports_query: bool = False
    placeholder: str | None = None

    @abstractmethod
    async def get_remote_sources(self, query: str | None = None) -> Sequence[RemoteSource] | None:
        """Return the sources matching ``query`` (all sources when ``None``)."""

    async def get_branches(self, url: str) -> Sequence[str] | None:
        """Return branch names for ``url``; ``None`` when unsupported."""

        return None

    async def get_recent_remote_sources(self) -> Sequence[RecentRemoteSource] | None:
        return None

    async def aclose(self) -> None:
        """Release network clients or other resources held by the provider."""

    @property
    def supports_branches(self) -> bool:
        return type(self).get_branches is not RemoteSourceProvider.get_branches


__all__ = [
    "PickRemoteSourceOptions",
    "PickRemoteSourceResult",
    "RecentRemoteSource",
    "RemoteSource",
    "RemoteSourceProvider",
]
