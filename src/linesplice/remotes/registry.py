"""Registry of remote source providers available to the picker."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from .models import RemoteSourceProvider

LOGGER = logging.getLogger(__name__)


class RemoteProviderRegistry:
    """Keeps providers in registration order, keyed by name."""

    def __init__(self, providers: Iterable[RemoteSourceProvider] = ()) -> None:
        self._providers: Dict[str, RemoteSourceProvider] = {}
        for provider in providers:
            self.register(provider)

    def register(self, provider: RemoteSourceProvider) -> None:
        name = (provider.name or "").strip()
        if not name:
            raise ValueError("Remote source providers require a name")
        if name in self._providers:
            LOGGER.debug("Replacing remote source provider %s", name)
        self._providers[name] = provider

    def unregister(self, name: str) -> None:
        if name in self._providers:
            self._providers.pop(name)

    def get(self, name: str | None) -> RemoteSourceProvider | None:
        if not name:
            return None
        return self._providers.get(name)

    def providers(self) -> List[RemoteSourceProvider]:
        return list(self._providers.values())

    def __len__(self) -> int:
        return len(self._providers)

    async def aclose(self) -> None:
        for provider in self._providers.values():
            await provider.aclose()


__all__ = ["RemoteProviderRegistry"]
