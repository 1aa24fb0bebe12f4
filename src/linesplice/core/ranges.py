"""Structured helpers for representing line spans and character ranges."""

from __future__ import annotations

import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Iterator

MAX_COLUMN = sys.maxsize
"""Column sentinel meaning "end of line"; documents clamp it to the real line end."""


def _coerce_int(value: Any, owner: str, label: str, *, minimum: int) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{owner} {label} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{owner} {label} must be an integer") from exc
    if number != value and not isinstance(value, str):
        raise ValueError(f"{owner} {label} must be an integer")
    if number < minimum:
        raise ValueError(f"{owner} {label} must be >= {minimum} (got {number})")
    return number


@dataclass(slots=True, frozen=True)
class LineRange:
    """Half-open span of 1-based line numbers ``[start, start + line_count)``.

    A ``line_count`` of zero describes a pure insertion point before
    ``start_line_number``.
    """

    start_line_number: int
    line_count: int = 0

    def __post_init__(self) -> None:
        start = _coerce_int(self.start_line_number, "LineRange", "start_line_number", minimum=1)
        count = _coerce_int(self.line_count, "LineRange", "line_count", minimum=0)
        object.__setattr__(self, "start_line_number", start)
        object.__setattr__(self, "line_count", count)

    @property
    def end_line_number_exclusive(self) -> int:
        return self.start_line_number + self.line_count

    @property
    def is_empty(self) -> bool:
        """Return ``True`` when the span covers no lines."""

        return self.line_count == 0

    def contains(self, line_number: int) -> bool:
        return self.start_line_number <= line_number < self.end_line_number_exclusive

    def is_before(self, other: LineRange) -> bool:
        """Return ``True`` when this span ends at or before ``other`` starts."""

        return self.end_line_number_exclusive <= other.start_line_number

    def equals(self, other: LineRange) -> bool:
        return self == other

    def to_tuple(self) -> tuple[int, int]:
        """Return the span as a ``(start, end_exclusive)`` tuple."""

        return (self.start_line_number, self.end_line_number_exclusive)

    def to_dict(self) -> dict[str, int]:
        return {
            "start_line_number": self.start_line_number,
            "end_line_number_exclusive": self.end_line_number_exclusive,
        }

    @classmethod
    def from_exclusive(cls, start_line_number: int, end_line_number_exclusive: int) -> LineRange:
        """Build a span from its start and exclusive end line numbers."""

        start = _coerce_int(start_line_number, "LineRange", "start_line_number", minimum=1)
        end = _coerce_int(end_line_number_exclusive, "LineRange", "end_line_number_exclusive", minimum=1)
        if end < start:
            raise ValueError(
                f"LineRange end_line_number_exclusive ({end}) precedes start_line_number ({start})"
            )
        return cls(start, end - start)

    @classmethod
    def from_value(cls, value: Any) -> LineRange:
        """Coerce ``value`` into a :class:`LineRange`.

        Accepts an existing span, a ``[start, end_exclusive]`` pair, or a
        mapping carrying ``start_line_number`` plus either
        ``end_line_number_exclusive`` or ``line_count``.
        """

        if isinstance(value, LineRange):
            return value
        if value is None:
            raise ValueError("LineRange value is required")
        if isinstance(value, Mapping):
            start = value.get("start_line_number")
            if start is None:
                raise ValueError("LineRange mappings require start_line_number")
            if value.get("end_line_number_exclusive") is not None:
                return cls.from_exclusive(start, value["end_line_number_exclusive"])
            if value.get("line_count") is not None:
                return cls(start, value["line_count"])
            raise ValueError("LineRange mappings require end_line_number_exclusive or line_count")
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            seq = list(value)
            if len(seq) != 2:
                raise ValueError("LineRange sequences must have exactly two entries")
            return cls.from_exclusive(seq[0], seq[1])
        raise TypeError("Unsupported LineRange input")

    def __repr__(self) -> str:
        return f"LineRange[{self.start_line_number}, {self.end_line_number_exclusive})"


@dataclass(slots=True, frozen=True, order=True)
class Position:
    """A 1-based ``(line_number, column)`` location inside a document."""

    line_number: int
    column: int

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "line_number", _coerce_int(self.line_number, "Position", "line_number", minimum=1)
        )
        object.__setattr__(self, "column", _coerce_int(self.column, "Position", "column", minimum=1))

    def __iter__(self) -> Iterator[int]:
        yield self.line_number
        yield self.column


@dataclass(slots=True, frozen=True)
class Range:
    """Character span between two positions; the end position is exclusive."""

    start_line_number: int
    start_column: int
    end_line_number: int
    end_column: int

    def __post_init__(self) -> None:
        start = Position(self.start_line_number, self.start_column)
        end = Position(self.end_line_number, self.end_column)
        if end < start:
            start, end = end, start
        object.__setattr__(self, "start_line_number", start.line_number)
        object.__setattr__(self, "start_column", start.column)
        object.__setattr__(self, "end_line_number", end.line_number)
        object.__setattr__(self, "end_column", end.column)

    @property
    def start(self) -> Position:
        return Position(self.start_line_number, self.start_column)

    @property
    def end(self) -> Position:
        return Position(self.end_line_number, self.end_column)

    @property
    def is_empty(self) -> bool:
        """Return ``True`` when the range collapses to a caret."""

        return self.start == self.end

    @classmethod
    def from_positions(cls, start: Position, end: Position | None = None) -> Range:
        end = end or start
        return cls(start.line_number, start.column, end.line_number, end.column)

    @staticmethod
    def equals_range(a: Range | None, b: Range | None) -> bool:
        """Structural comparison tolerant of ``None`` on either side."""

        if a is None or b is None:
            return a is b
        return a == b


__all__ = ["MAX_COLUMN", "LineRange", "Position", "Range"]
