"""Shared test helpers and stub classes.

Import from here instead of duplicating these classes in individual test files.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, List, Sequence

from linesplice.editor.editing import CursorRestorer, EditOperation
from linesplice.remotes.host import QuickPick, QuickPickItem
from linesplice.remotes.models import RecentRemoteSource, RemoteSource, RemoteSourceProvider


class RecordingDocument:
    """Document stub that records every batch instead of mutating text."""

    def __init__(self, line_count: int) -> None:
        self.line_count = line_count
        self.batches: list[list[EditOperation]] = []
        self.restorers: list[CursorRestorer | None] = []
        self.line_count_calls = 0

    def get_line_count(self) -> int:
        self.line_count_calls += 1
        return self.line_count

    def apply_batch(
        self,
        operations: Sequence[EditOperation],
        cursor_restorer: CursorRestorer | None = None,
    ) -> None:
        self.batches.append(list(operations))
        self.restorers.append(cursor_restorer)


Script = Callable[["ScriptedQuickPick"], Awaitable[QuickPickItem | None]]


class ScriptedQuickPick(QuickPick):
    """Quick pick whose user interaction is an async script."""

    def __init__(self, script: Script | None = None) -> None:
        super().__init__()
        self.script = script
        self.show_count = 0
        self.snapshots: list[list[str]] = []

    def show(self) -> None:
        super().show()
        self.show_count += 1

    async def _wait_for_selection(self) -> QuickPickItem | None:
        if self.script is None:
            return None
        return await self.script(self)

    def labels(self) -> list[str]:
        return [item.label for item in self.items]

    def find(self, label: str) -> QuickPickItem:
        for item in self.items:
            if item.label == label:
                return item
        raise AssertionError(f"No item labelled {label!r} in {self.labels()}")


def accept(label: str) -> Script:
    """Script that accepts the item with ``label`` straight away."""

    async def script(quickpick: ScriptedQuickPick) -> QuickPickItem | None:
        return quickpick.find(label)

    return script


def dismiss() -> Script:
    async def script(_quickpick: ScriptedQuickPick) -> QuickPickItem | None:
        return None

    return script


class ScriptedHost:
    """Picker host handing out scripted quick picks in order."""

    def __init__(self, scripts: Sequence[Script] = (), choices: Sequence[str | None] = ()) -> None:
        self._scripts = list(scripts)
        self._choices = list(choices)
        self.quickpicks: List[ScriptedQuickPick] = []
        self.choice_requests: list[tuple[list[str], str | None]] = []

    def create_quick_pick(self) -> ScriptedQuickPick:
        script = self._scripts.pop(0) if self._scripts else None
        quickpick = ScriptedQuickPick(script)
        self.quickpicks.append(quickpick)
        return quickpick

    async def show_quick_pick(
        self,
        choices: Sequence[str],
        *,
        placeholder: str | None = None,
        ignore_focus_out: bool = False,
    ) -> str | None:
        self.choice_requests.append((list(choices), placeholder))
        return self._choices.pop(0) if self._choices else None


class StaticProvider(RemoteSourceProvider):
    """Provider serving canned sources, optionally filtered by the query."""

    def __init__(
        self,
        name: str = "static",
        sources: Sequence[RemoteSource] = (),
        *,
        supports_query: bool = False,
        icon: str | None = None,
        error: Exception | None = None,
        recent: Sequence[RecentRemoteSource] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.name = name
        self.icon = icon
        self.supports_query = supports_query
        self._sources = list(sources)
        self._error = error
        self._recent = recent
        self._delay = delay
        self.queries: list[str | None] = []

    async def get_remote_sources(self, query: str | None = None) -> Sequence[RemoteSource]:
        self.queries.append(query)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        if query:
            return [source for source in self._sources if query in source.name]
        return list(self._sources)

    async def get_recent_remote_sources(self) -> Sequence[RecentRemoteSource] | None:
        return self._recent


class BranchingProvider(StaticProvider):
    """Static provider that also knows branches per URL."""

    def __init__(self, *args: Any, branches: dict[str, list[str]] | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._branches = branches or {}
        self.branch_requests: list[str] = []

    async def get_branches(self, url: str) -> Sequence[str] | None:
        self.branch_requests.append(url)
        return self._branches.get(url)
