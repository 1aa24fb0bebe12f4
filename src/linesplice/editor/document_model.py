"""In-memory line-addressed text document used as the edit target."""

from __future__ import annotations

import bisect
import hashlib
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Sequence

from ..core.ranges import LineRange, Position, Range
from .editing import CursorRestorer, EditOperation

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""

    return datetime.now(timezone.utc)


def _hash_text(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


def detect_eol(text: str) -> str:
    """Return the dominant line terminator of ``text`` (``"\\n"`` when none)."""

    if "\r\n" in text:
        return "\r\n"
    if "\n" in text:
        return "\n"
    if "\r" in text:
        return "\r"
    return "\n"


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


class EditConflictError(RuntimeError):
    """Raised when a batch of splices cannot be applied as one change."""

    def __init__(
        self,
        message: str,
        *,
        reason: str = "range_overlap",
        first: Range | None = None,
        second: Range | None = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.first = first
        self.second = second

    def details(self) -> dict[str, Any]:
        return {"reason": self.reason, "first": self.first, "second": self.second}


@dataclass(slots=True)
class DocumentVersion:
    """Lightweight metadata describing a document snapshot."""

    document_id: str
    version_id: int
    content_hash: str
    edited_ranges: tuple[tuple[int, int], ...] = ()


@dataclass(slots=True)
class DocumentMetadata:
    """Metadata describing where a document came from."""

    path: Optional[Path] = None
    encoding: str = "utf-8"
    disk_hash: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


@dataclass(slots=True)
class _ResolvedOperation:
    start: int
    end: int
    text: str
    order: int
    source: Range


class TextDocument:
    """Line-addressed buffer with an atomic batch-splice primitive.

    Text is held with ``"\\n"`` terminators internally; :meth:`get_value`
    renders it with the document's own EOL. The last line never carries a
    terminator, so a document always has at least one (possibly empty) line.
    """

    def __init__(
        self,
        text: str = "",
        *,
        eol: str | None = None,
        path: Path | str | None = None,
        document_id: str | None = None,
    ) -> None:
        if eol is not None and eol not in ("\n", "\r\n", "\r"):
            raise ValueError(f"Unsupported line terminator {eol!r}")
        self.eol = eol or detect_eol(text)
        self.document_id = document_id or uuid.uuid4().hex
        self.metadata = DocumentMetadata(path=Path(path) if path else None)
        self.version_id = 1
        self.dirty = False
        self.selection: Any | None = None
        self._edited_ranges: tuple[tuple[int, int], ...] = ()
        self._set_text(normalize_newlines(text))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def text(self) -> str:
        return self._text

    @property
    def content_hash(self) -> str:
        return self._content_hash

    def get_line_count(self) -> int:
        return len(self._line_starts)

    def get_lines(self) -> list[str]:
        return self._text.split("\n")

    def get_line_content(self, line_number: int) -> str:
        self._check_line(line_number)
        start = self._line_starts[line_number - 1]
        return self._text[start : start + self._line_length(line_number)]

    def get_line_max_column(self, line_number: int) -> int:
        self._check_line(line_number)
        return self._line_length(line_number) + 1

    def get_value(self, eol: str | None = None) -> str:
        terminator = eol or self.eol
        if terminator == "\n":
            return self._text
        return self._text.replace("\n", terminator)

    def validate_position(self, position: Position) -> Position:
        """Clamp ``position`` onto an existing line and column."""

        line_number = min(position.line_number, self.get_line_count())
        column = min(position.column, self._line_length(line_number) + 1)
        return Position(line_number, column)

    def offset_at(self, position: Position) -> int:
        valid = self.validate_position(position)
        return self._line_starts[valid.line_number - 1] + valid.column - 1

    def position_at(self, offset: int) -> Position:
        offset = max(0, min(offset, len(self._text)))
        index = bisect.bisect_right(self._line_starts, offset) - 1
        return Position(index + 1, offset - self._line_starts[index] + 1)

    def line_range_text(self, line_range: LineRange) -> list[str]:
        """Return the contents of the lines covered by ``line_range``."""

        lines = self.get_lines()
        return lines[line_range.start_line_number - 1 : line_range.end_line_number_exclusive - 1]

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def apply_batch(
        self,
        operations: Sequence[EditOperation],
        cursor_restorer: CursorRestorer | None = None,
    ) -> None:
        """Apply ``operations`` against the current text as one change.

        Every range is resolved against the pre-edit text. Ranges may touch
        but must not overlap. ``cursor_restorer`` receives the ranges the
        inserted text occupies afterwards; a non-``None`` return value becomes
        the new selection.
        """

        resolved = sorted(
            (self._resolve(op, order) for order, op in enumerate(operations)),
            key=lambda item: (item.start, item.end, item.order),
        )
        if not resolved:
            return
        _ensure_non_overlapping(resolved)

        pieces: list[str] = []
        spans: list[tuple[int, int]] = []
        cursor = 0
        delta = 0
        for entry in resolved:
            pieces.append(self._text[cursor : entry.start])
            pieces.append(entry.text)
            new_start = entry.start + delta
            spans.append((new_start, new_start + len(entry.text)))
            delta += len(entry.text) - (entry.end - entry.start)
            cursor = entry.end
        pieces.append(self._text[cursor:])

        self._set_text("".join(pieces))
        self.version_id += 1
        self.dirty = True
        self.metadata.updated_at = _utcnow()
        self._edited_ranges = tuple(spans)
        LOGGER.debug(
            "Document %s applied %d operation(s); now version %d with %d line(s)",
            self.document_id,
            len(resolved),
            self.version_id,
            self.get_line_count(),
        )

        if cursor_restorer is not None:
            inverse = [Range.from_positions(self.position_at(a), self.position_at(b)) for a, b in spans]
            selection = cursor_restorer(inverse)
            if selection is not None:
                self.selection = selection

    def set_value(self, text: str) -> None:
        """Replace the whole document as a single change."""

        last = self.get_line_count()
        self.apply_batch(
            [EditOperation(Range(1, 1, last, self.get_line_max_column(last)), text)]
        )

    def version_info(self) -> DocumentVersion:
        return DocumentVersion(
            document_id=self.document_id,
            version_id=self.version_id,
            content_hash=self._content_hash,
            edited_ranges=self._edited_ranges,
        )

    def version_signature(self) -> str:
        info = self.version_info()
        return f"{info.document_id}:{info.version_id}:{info.content_hash}"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _set_text(self, text: str) -> None:
        self._text = text
        starts = [0]
        index = text.find("\n")
        while index != -1:
            starts.append(index + 1)
            index = text.find("\n", index + 1)
        self._line_starts = starts
        self._content_hash = _hash_text(text)

    def _line_length(self, line_number: int) -> int:
        start = self._line_starts[line_number - 1]
        if line_number < len(self._line_starts):
            return self._line_starts[line_number] - 1 - start
        return len(self._text) - start

    def _check_line(self, line_number: int) -> None:
        if not 1 <= line_number <= self.get_line_count():
            raise ValueError(
                f"Line number {line_number} is outside 1..{self.get_line_count()}"
            )

    def _resolve(self, operation: EditOperation, order: int) -> _ResolvedOperation:
        start = self.offset_at(operation.range.start)
        end = self.offset_at(operation.range.end)
        return _ResolvedOperation(
            start=start,
            end=end,
            text=normalize_newlines(operation.text),
            order=order,
            source=operation.range,
        )

    def __repr__(self) -> str:
        return (
            f"TextDocument(id={self.document_id!r}, version={self.version_id}, "
            f"lines={self.get_line_count()})"
        )


def _ensure_non_overlapping(operations: Sequence[_ResolvedOperation]) -> None:
    previous: _ResolvedOperation | None = None
    for entry in operations:
        if previous is not None and entry.start < previous.end:
            raise EditConflictError(
                "Edit operations may not overlap",
                reason="range_overlap",
                first=previous.source,
                second=entry.source,
            )
        if previous is None or entry.end >= previous.end:
            previous = entry


__all__ = [
    "DocumentMetadata",
    "DocumentVersion",
    "EditConflictError",
    "TextDocument",
    "detect_eol",
    "normalize_newlines",
]
