"""Remote picking configured from the persisted settings."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Dict, List, Mapping

import httpx

from .github import GitHubRemoteSourceProvider, parse_repository
from .host import PickerHost
from .models import PickRemoteSourceOptions, PickRemoteSourceResult
from .picker import pick_remote_source
from .registry import RemoteProviderRegistry

if TYPE_CHECKING:
    from ..services.settings import Settings, SettingsStore

LOGGER = logging.getLogger(__name__)

MAX_RECENT_SOURCES = 20


def build_registry(settings: "Settings", *, client: httpx.AsyncClient | None = None) -> RemoteProviderRegistry:
    """Return a registry holding the GitHub provider configured from ``settings``."""

    provider = GitHubRemoteSourceProvider(
        settings.github_settings(),
        client=client,
        recent_sources=settings.recent_sources(),
    )
    return RemoteProviderRegistry([provider])


def picker_options(
    settings: "Settings",
    *,
    branch: bool = False,
    provider_name: str | None = None,
    title: str | None = None,
) -> PickRemoteSourceOptions:
    return PickRemoteSourceOptions(
        provider_name=provider_name,
        title=title,
        branch=branch,
        show_recent_sources=settings.show_recent_sources,
    )


async def pick_with_settings(
    settings: "Settings",
    host: PickerHost,
    *,
    registry: RemoteProviderRegistry | None = None,
    branch: bool = False,
    provider_name: str | None = None,
) -> str | PickRemoteSourceResult | None:
    """Run :func:`pick_remote_source` with providers, options and debounce from ``settings``.

    When no ``registry`` is given one is built with :func:`build_registry` and
    closed before returning.
    """

    owned = registry is None
    active = build_registry(settings) if registry is None else registry
    options = picker_options(settings, branch=branch, provider_name=provider_name)
    try:
        return await pick_remote_source(
            active,
            host,
            options,
            debounce_seconds=settings.remote_query_debounce_seconds,
        )
    finally:
        if owned:
            await active.aclose()


def remember_source(
    store: "SettingsStore",
    url: str,
    *,
    name: str | None = None,
    timestamp: float | None = None,
) -> "Settings":
    """Persist ``url`` as the most recently opened remote source.

    An older entry for the same URL is dropped and only the newest
    ``MAX_RECENT_SOURCES`` entries are kept. ``timestamp`` is epoch
    milliseconds (now by default).
    """

    if name is None:
        parsed = parse_repository(url)
        name = f"{parsed[0]}/{parsed[1]}" if parsed else url
    entry: Dict[str, Any] = {
        "name": name,
        "url": url,
        "timestamp": time.time() * 1000 if timestamp is None else timestamp,
    }
    entries: List[Dict[str, Any]] = [
        dict(item)
        for item in store.load().recent_remote_sources
        if isinstance(item, Mapping) and item.get("url") != url
    ]
    entries.append(entry)
    LOGGER.debug("Remembering remote source %s", url)
    return store.update(recent_remote_sources=entries[-MAX_RECENT_SOURCES:])


__all__ = ["MAX_RECENT_SOURCES", "build_registry", "pick_with_settings", "picker_options", "remember_source"]
