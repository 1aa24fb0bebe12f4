"""Interactive flow for choosing a remote repository URL and branch."""

from __future__ import annotations

import logging
from typing import List, Sequence

from .decorators import debounce, throttle
from .host import PickerHost, QuickPick, QuickPickItem, QuickPickItemKind
from .models import (
    PickRemoteSourceOptions,
    PickRemoteSourceResult,
    RemoteSource,
    RemoteSourceProvider,
)
from .registry import RemoteProviderRegistry

LOGGER = logging.getLogger(__name__)

DEFAULT_QUERY_DEBOUNCE_SECONDS = 0.3

_NONE_FOUND_LABEL = "No remote repositories found."
_QUERY_PLACEHOLDER = "Repository name (type to search)"
_FILTER_PLACEHOLDER = "Repository name"
_PROVIDE_URL_PLACEHOLDER = "Provide repository URL"
_PROVIDE_URL_OR_PICK_PLACEHOLDER = "Provide repository URL or pick a repository source."
_PICK_URL_PLACEHOLDER = "Choose a URL to clone from."
_BRANCH_PLACEHOLDER = "Branch name"


def _with_icon(label: str, icon: str | None) -> str:
    return f"$({icon}) {label}" if icon else label


def _source_item(source: RemoteSource) -> QuickPickItem:
    return QuickPickItem(
        label=_with_icon(source.name, source.icon),
        description=source.description or source.primary_url,
        detail=source.detail,
        remote_source=source,
        always_show=True,
    )


class ProviderQuickPick:
    """Quick pick listing the sources of a single provider.

    Query-capable providers are re-queried as the user types; re-queries are
    debounced and never overlap.
    """

    def __init__(
        self,
        provider: RemoteSourceProvider,
        host: PickerHost,
        *,
        debounce_seconds: float = DEFAULT_QUERY_DEBOUNCE_SECONDS,
    ) -> None:
        self._provider = provider
        self._host = host
        self._debounce_seconds = debounce_seconds
        self._quickpick: QuickPick | None = None

    @property
    def quickpick(self) -> QuickPick:
        return self._ensure_quickpick()

    def _ensure_quickpick(self) -> QuickPick:
        if self._quickpick is None:
            quickpick = self._host.create_quick_pick()
            quickpick.ignore_focus_out = True
            if self._provider.supports_query:
                quickpick.placeholder = self._provider.placeholder or _QUERY_PLACEHOLDER
                quickpick.on_did_change_value(self._on_did_change_value)
            else:
                quickpick.placeholder = self._provider.placeholder or _FILTER_PLACEHOLDER
            self._quickpick = quickpick
        return self._quickpick

    @debounce(lambda self: self._debounce_seconds)
    def _on_did_change_value(self, _value: str) -> object:
        return self.query()

    @throttle
    async def query(self) -> None:
        quickpick = self._ensure_quickpick()
        quickpick.busy = True
        quickpick.show()
        try:
            sources = await self._provider.get_remote_sources(quickpick.value or None) or []
            if not sources:
                quickpick.items = [QuickPickItem(label=_NONE_FOUND_LABEL, always_show=True)]
            else:
                quickpick.items = [_source_item(source) for source in sources]
        except Exception as exc:
            LOGGER.exception("Remote source provider %s query failed", self._provider.name)
            quickpick.items = [QuickPickItem(label=f"$(error) Error: {exc}", always_show=True)]
        finally:
            quickpick.busy = False

    async def pick(self) -> RemoteSource | None:
        await self.query()
        result = await self._ensure_quickpick().select()
        return result.remote_source if result is not None else None


async def pick_remote_source(
    registry: RemoteProviderRegistry,
    host: PickerHost,
    options: PickRemoteSourceOptions | None = None,
    *,
    debounce_seconds: float = DEFAULT_QUERY_DEBOUNCE_SECONDS,
) -> str | PickRemoteSourceResult | None:
    """Let the user type a URL or drill into a provider to choose one.

    Returns a URL string, a :class:`PickRemoteSourceResult` when
    ``options.branch`` is set and a provider was used, or ``None`` on cancel.
    """

    options = options or PickRemoteSourceOptions()

    if options.provider_name:
        provider = registry.get(options.provider_name)
        if provider is not None:
            return await pick_provider_source(provider, host, options, debounce_seconds=debounce_seconds)
        LOGGER.debug("Requested provider %s is not registered", options.provider_name)

    quickpick = host.create_quick_pick()
    quickpick.ignore_focus_out = True
    quickpick.title = options.title

    providers = registry.providers()
    provider_items = [
        QuickPickItem(
            label=_with_icon(
                options.provider_label(provider) if options.provider_label else provider.name,
                provider.icon,
            ),
            always_show=True,
            provider=provider,
        )
        for provider in providers
    ]

    recent_items: List[QuickPickItem] = []
    if options.show_recent_sources:
        for provider in providers:
            for source in await provider.get_recent_remote_sources() or []:
                recent_items.append(
                    QuickPickItem(
                        label=_with_icon(source.name, source.icon),
                        description=source.description,
                        detail=source.detail,
                        url=source.primary_url,
                        timestamp=source.timestamp,
                    )
                )
    recent_items.sort(key=lambda item: item.timestamp or 0.0, reverse=True)

    items: List[QuickPickItem] = [
        QuickPickItem(label="remote sources", kind=QuickPickItemKind.SEPARATOR),
        *provider_items,
        QuickPickItem(label="recently opened", kind=QuickPickItemKind.SEPARATOR),
        *recent_items,
    ]

    if options.placeholder is not None:
        quickpick.placeholder = options.placeholder
    else:
        quickpick.placeholder = _PROVIDE_URL_PLACEHOLDER if not providers else _PROVIDE_URL_OR_PICK_PLACEHOLDER

    def update_picks(value: str | None = None) -> None:
        if value:
            if callable(options.url_label):
                label = options.url_label(value)
            else:
                label = options.url_label
            quickpick.items = [
                QuickPickItem(label=label or "URL", description=value, always_show=True, url=value),
                *items,
            ]
        else:
            quickpick.items = list(items)

    quickpick.on_did_change_value(update_picks)
    update_picks()

    result = await quickpick.select()
    if result is not None:
        if result.url:
            return result.url
        if result.provider is not None:
            return await pick_provider_source(result.provider, host, options, debounce_seconds=debounce_seconds)
    return None


async def pick_provider_source(
    provider: RemoteSourceProvider,
    host: PickerHost,
    options: PickRemoteSourceOptions | None = None,
    *,
    debounce_seconds: float = DEFAULT_QUERY_DEBOUNCE_SECONDS,
) -> str | PickRemoteSourceResult | None:
    options = options or PickRemoteSourceOptions()
    remote = await ProviderQuickPick(provider, host, debounce_seconds=debounce_seconds).pick()

    url: str | None = None
    if remote is not None:
        if isinstance(remote.url, str):
            url = remote.url
        elif remote.urls:
            url = await host.show_quick_pick(
                list(remote.urls), placeholder=_PICK_URL_PLACEHOLDER, ignore_focus_out=True
            )

    if not url or not options.branch:
        return url

    if not provider.supports_branches:
        return PickRemoteSourceResult(url)

    branches: Sequence[str] | None = await provider.get_branches(url)
    if not branches:
        return PickRemoteSourceResult(url)

    branch = await host.show_quick_pick(list(branches), placeholder=_BRANCH_PLACEHOLDER)
    if not branch:
        return PickRemoteSourceResult(url)
    return PickRemoteSourceResult(url, branch)


__all__ = [
    "DEFAULT_QUERY_DEBOUNCE_SECONDS",
    "ProviderQuickPick",
    "pick_provider_source",
    "pick_remote_source",
]
