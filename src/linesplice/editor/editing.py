"""Whole-line edits and their translation into character-range splices."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Protocol, Sequence, runtime_checkable

from ..core.ranges import MAX_COLUMN, LineRange, Range

LOGGER = logging.getLogger(__name__)

CursorRestorer = Callable[[Sequence[Range]], Optional[Any]]


@dataclass(slots=True, frozen=True)
class EditOperation:
    """Single splice handed to a document's batch mutation primitive."""

    range: Range
    text: str


@runtime_checkable
class SupportsLineEdits(Protocol):
    """Minimal document capability required to apply :class:`LineEdits`."""

    def get_line_count(self) -> int:  # pragma: no cover - Protocol placeholder
        ...

    def apply_batch(
        self,
        operations: Sequence[EditOperation],
        cursor_restorer: CursorRestorer | None = None,
    ) -> None:  # pragma: no cover - Protocol placeholder
        ...


class LineEditOrderError(ValueError):
    """Raised when a batch of line edits is unsorted or overlapping."""

    def __init__(self, message: str, *, index: int, previous: LineRange, current: LineRange) -> None:
        super().__init__(message)
        self.index = index
        self.previous = previous
        self.current = current

    def details(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "previous": self.previous.to_tuple(),
            "current": self.current.to_tuple(),
        }


@dataclass(slots=True, frozen=True)
class RangeEdit:
    """Replace an arbitrary character range with ``new_text``."""

    range: Range
    new_text: str

    def equals(self, other: RangeEdit) -> bool:
        return Range.equals_range(self.range, other.range) and self.new_text == other.new_text

    def to_operation(self) -> EditOperation:
        return EditOperation(range=self.range, text=self.new_text)


@dataclass(slots=True, frozen=True)
class LineRangeEdit:
    """Represents an edit expressed in whole lines.

    Before ``range.start_line_number``, delete ``range.line_count`` lines and
    insert ``new_lines`` in their place.
    """

    range: LineRange
    new_lines: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.range, LineRange):
            object.__setattr__(self, "range", LineRange.from_value(self.range))
        if isinstance(self.new_lines, str):
            raise TypeError("new_lines must be a sequence of strings, not a string")
        lines = tuple(self.new_lines)
        for line in lines:
            if not isinstance(line, str):
                raise TypeError("new_lines entries must be strings")
            if "\n" in line or "\r" in line:
                raise ValueError("new_lines entries must not contain line terminators")
        object.__setattr__(self, "new_lines", lines)

    def equals(self, other: LineRangeEdit) -> bool:
        return self.range.equals(other.range) and self.new_lines == other.new_lines

    def apply(self, document: SupportsLineEdits) -> None:
        LineEdits([self]).apply(document)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> LineRangeEdit:
        """Build an edit from a ``{"range": ..., "new_lines": [...]}`` mapping."""

        if not isinstance(payload, Mapping):
            raise TypeError("Line edit payloads must be mappings")
        if "range" not in payload:
            raise ValueError("Line edit payload is missing 'range'")
        lines = payload.get("new_lines", ())
        if lines is None:
            lines = ()
        return cls(LineRange.from_value(payload["range"]), tuple(lines))

    def to_payload(self) -> dict[str, Any]:
        return {"range": list(self.range.to_tuple()), "new_lines": list(self.new_lines)}


class LineEdits:
    """Ordered batch of :class:`LineRangeEdit` values applied as one change."""

    __slots__ = ("_edits",)

    def __init__(self, edits: Iterable[LineRangeEdit] = ()) -> None:
        self._edits: tuple[LineRangeEdit, ...] = tuple(edits)

    @property
    def edits(self) -> tuple[LineRangeEdit, ...]:
        return self._edits

    def __len__(self) -> int:
        return len(self._edits)

    def __iter__(self):
        return iter(self._edits)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LineEdits):
            return NotImplemented
        return self._edits == other._edits

    def __hash__(self) -> int:
        return hash(self._edits)

    def __repr__(self) -> str:
        return f"LineEdits({list(self._edits)!r})"

    def validate(self) -> None:
        """Ensure edits are sorted by line and do not overlap."""

        for index in range(1, len(self._edits)):
            previous = self._edits[index - 1].range
            current = self._edits[index].range
            if not previous.is_before(current):
                raise LineEditOrderError(
                    f"Line edit #{index} {current!r} overlaps or precedes edit #{index - 1} {previous!r}",
                    index=index,
                    previous=previous,
                    current=current,
                )

    def to_operations(self, line_count: int) -> list[EditOperation]:
        """Translate every edit against a document of ``line_count`` lines."""

        return [_to_operation(edit, line_count) for edit in self._edits]

    def apply(self, document: SupportsLineEdits) -> None:
        if not self._edits:
            return
        self.validate()
        line_count = document.get_line_count()
        merged = _merge_touching(self._edits)
        operations = [_to_operation(edit, line_count) for edit in merged]
        LOGGER.debug(
            "Applying %d line edit(s) as %d splice(s) to a %d-line document",
            len(self._edits),
            len(operations),
            line_count,
        )
        document.apply_batch(operations, _no_selection)


def _merge_touching(edits: Sequence[LineRangeEdit]) -> list[LineRangeEdit]:
    """Fold each edit into its predecessor when the predecessor ends where it starts.

    A splice running to the end of the document begins at the end of the line
    before its range, which lies inside a touching predecessor's splice.
    """

    merged: list[LineRangeEdit] = []
    for edit in edits:
        if merged and merged[-1].range.end_line_number_exclusive == edit.range.start_line_number:
            previous = merged.pop()
            edit = LineRangeEdit(
                LineRange.from_exclusive(previous.range.start_line_number, edit.range.end_line_number_exclusive),
                previous.new_lines + edit.new_lines,
            )
        merged.append(edit)
    return merged


def _to_operation(edit: LineRangeEdit, line_count: int) -> EditOperation:
    start = edit.range.start_line_number
    end_exclusive = edit.range.end_line_number_exclusive

    if end_exclusive <= line_count:
        LOGGER.debug("Edit %r is interior", edit.range)
        return EditOperation(
            range=Range(start, 1, end_exclusive, 1),
            text="".join(line + "\n" for line in edit.new_lines),
        )

    # The last line has no terminator, so edits reaching it must not append one.
    if start == 1:
        LOGGER.debug("Edit %r replaces the whole document", edit.range)
        return EditOperation(
            range=Range(1, 1, line_count, MAX_COLUMN),
            text="\n".join(edit.new_lines),
        )

    LOGGER.debug("Edit %r runs to the end of the document", edit.range)
    return EditOperation(
        range=Range(start - 1, MAX_COLUMN, line_count, MAX_COLUMN),
        text="".join("\n" + line for line in edit.new_lines),
    )


def _no_selection(_inverse_ranges: Sequence[Range]) -> None:
    return None


__all__ = [
    "CursorRestorer",
    "EditOperation",
    "LineEditOrderError",
    "LineEdits",
    "LineRangeEdit",
    "RangeEdit",
    "SupportsLineEdits",
]
