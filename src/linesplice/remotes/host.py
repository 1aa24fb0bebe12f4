"""Selection-widget abstraction the remote source picker drives.

A host (terminal UI, desktop shell, test double) subclasses :class:`QuickPick`
and implements :class:`PickerHost`; the picking flow only ever talks to these.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Protocol, Sequence

ValueListener = Callable[[str], Any]


class QuickPickItemKind(Enum):
    ITEM = "item"
    SEPARATOR = "separator"


@dataclass(slots=True)
class QuickPickItem:
    """One row of a quick pick list.

    ``remote_source``, ``provider`` and ``url`` carry the payload the flow
    needs back when the row is accepted.
    """

    label: str
    description: str | None = None
    detail: str | None = None
    always_show: bool = False
    kind: QuickPickItemKind = QuickPickItemKind.ITEM
    remote_source: Any | None = None
    provider: Any | None = None
    url: str | None = None
    timestamp: float | None = None

    @property
    def is_separator(self) -> bool:
        return self.kind is QuickPickItemKind.SEPARATOR


class QuickPick(ABC):
    """Stateful selection list whose value the user edits."""

    def __init__(self) -> None:
        self.title: str | None = None
        self.placeholder: str | None = None
        self.items: List[QuickPickItem] = []
        self.value: str = ""
        self.busy = False
        self.ignore_focus_out = False
        self.visible = False
        self._value_listeners: List[ValueListener] = []

    def on_did_change_value(self, listener: ValueListener) -> None:
        self._value_listeners.append(listener)

    def change_value(self, value: str) -> None:
        """Update the typed value and notify listeners (called by the host)."""

        self.value = value
        for listener in list(self._value_listeners):
            listener(value)

    def show(self) -> None:
        self.visible = True

    def hide(self) -> None:
        self.visible = False

    async def select(self) -> QuickPickItem | None:
        """Show the list, wait for accept or dismissal, then hide it."""

        self.show()
        try:
            return await self._wait_for_selection()
        finally:
            self.hide()

    @abstractmethod
    async def _wait_for_selection(self) -> QuickPickItem | None:
        """Return the accepted item, or ``None`` when the list is dismissed."""


class PickerHost(Protocol):
    """Factory for selection widgets provided by the embedding application."""

    def create_quick_pick(self) -> QuickPick:  # pragma: no cover - Protocol placeholder
        ...

    async def show_quick_pick(
        self,
        choices: Sequence[str],
        *,
        placeholder: str | None = None,
        ignore_focus_out: bool = False,
    ) -> str | None:  # pragma: no cover - Protocol placeholder
        ...


__all__ = [
    "PickerHost",
    "QuickPick",
    "QuickPickItem",
    "QuickPickItemKind",
    "ValueListener",
]
