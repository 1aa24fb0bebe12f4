"""Terminal picker host: numbered lists on stderr, answers read from stdin."""

from __future__ import annotations

import asyncio
import logging
import re
import sys
from typing import Any, Callable, List, Optional, Sequence

from .host import QuickPick, QuickPickItem

LOGGER = logging.getLogger(__name__)

Reader = Callable[[], Optional[str]]
Writer = Callable[[str], Any]

_ICON_RE = re.compile(r"\$\([^)]*\)\s*")
_BUSY_POLL_SECONDS = 0.02


def _read_stdin() -> str | None:
    line = sys.stdin.readline()
    return line if line else None


def _write_stderr(text: str) -> None:
    sys.stderr.write(text)
    sys.stderr.flush()


def _plain(label: str) -> str:
    return _ICON_RE.sub("", label)


class ConsoleQuickPick(QuickPick):
    """Quick pick driven by line input.

    A number accepts that entry, any other text becomes the typed value and
    the list is shown again, and an empty line (or end of input) dismisses it.
    """

    def __init__(self, reader: Reader, writer: Writer, *, settle_seconds: float = 0.0) -> None:
        super().__init__()
        self._reader = reader
        self._writer = writer
        self._settle_seconds = settle_seconds

    async def _wait_for_selection(self) -> QuickPickItem | None:
        while True:
            entries = self._render()
            line = await asyncio.to_thread(self._reader)
            answer = (line or "").strip()
            if not answer:
                return None
            if answer.isdigit():
                index = int(answer)
                if 1 <= index <= len(entries):
                    return entries[index - 1]
                self._writer(f"No entry {index}.\n")
                continue
            self.change_value(answer)
            await self._settle()

    async def _settle(self) -> None:
        # Give debounced re-queries time to start, then wait for them to finish.
        if self._settle_seconds > 0:
            await asyncio.sleep(self._settle_seconds)
        while self.busy:
            await asyncio.sleep(_BUSY_POLL_SECONDS)

    def _render(self) -> List[QuickPickItem]:
        lines: List[str] = []
        if self.title:
            lines.append(self.title)
        entries: List[QuickPickItem] = []
        for item in self.items:
            if item.is_separator:
                lines.append(f"-- {item.label} --")
                continue
            entries.append(item)
            row = f"{len(entries):>3}. {_plain(item.label)}"
            if item.description:
                row += f"  ({item.description})"
            lines.append(row)
        prompt = self.placeholder or "Select an entry"
        lines.append(f"{prompt} [number / text / empty to cancel]: ")
        self._writer("\n".join(lines))
        return entries


class ConsoleHost:
    """:class:`~linesplice.remotes.host.PickerHost` for interactive terminals."""

    def __init__(
        self,
        reader: Reader | None = None,
        writer: Writer | None = None,
        *,
        settle_seconds: float = 0.0,
    ) -> None:
        self._reader = reader or _read_stdin
        self._writer = writer or _write_stderr
        self._settle_seconds = settle_seconds

    def create_quick_pick(self) -> ConsoleQuickPick:
        return ConsoleQuickPick(self._reader, self._writer, settle_seconds=self._settle_seconds)

    async def show_quick_pick(
        self,
        choices: Sequence[str],
        *,
        placeholder: str | None = None,
        ignore_focus_out: bool = False,
    ) -> str | None:
        quickpick = self.create_quick_pick()
        quickpick.placeholder = placeholder
        quickpick.ignore_focus_out = ignore_focus_out
        quickpick.items = [QuickPickItem(label=choice) for choice in choices]
        chosen = await quickpick.select()
        return chosen.label if chosen is not None else None


__all__ = ["ConsoleHost", "ConsoleQuickPick"]
