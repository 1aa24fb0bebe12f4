"""Remote repository source providers and the interactive picking flow."""

from .console import ConsoleHost
from .decorators import debounce, throttle
from .github import GitHubRemoteSourceProvider, GitHubSettings, RemoteSourceError
from .host import PickerHost, QuickPick, QuickPickItem, QuickPickItemKind
from .models import (
    PickRemoteSourceOptions,
    PickRemoteSourceResult,
    RecentRemoteSource,
    RemoteSource,
    RemoteSourceProvider,
)
from .picker import ProviderQuickPick, pick_provider_source, pick_remote_source
from .registry import RemoteProviderRegistry
from .session import build_registry, pick_with_settings, remember_source

__all__ = [
    "ConsoleHost",
    "GitHubRemoteSourceProvider",
    "GitHubSettings",
    "PickRemoteSourceOptions",
    "PickRemoteSourceResult",
    "PickerHost",
    "ProviderQuickPick",
    "QuickPick",
    "QuickPickItem",
    "QuickPickItemKind",
    "RecentRemoteSource",
    "RemoteProviderRegistry",
    "RemoteSource",
    "RemoteSourceError",
    "RemoteSourceProvider",
    "build_registry",
    "debounce",
    "pick_provider_source",
    "pick_remote_source",
    "pick_with_settings",
    "remember_source",
    "throttle",
]
