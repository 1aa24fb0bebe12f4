"""Editor package containing line edits and the in-memory document model."""

from .document_model import DocumentVersion, EditConflictError, TextDocument
from .editing import (
    EditOperation,
    LineEditOrderError,
    LineEdits,
    LineRangeEdit,
    RangeEdit,
    SupportsLineEdits,
)
from .patches import PatchResult, apply_line_edits, parse_line_edits

__all__ = [
    "DocumentVersion",
    "EditConflictError",
    "EditOperation",
    "LineEditOrderError",
    "LineEdits",
    "LineRangeEdit",
    "PatchResult",
    "RangeEdit",
    "SupportsLineEdits",
    "TextDocument",
    "apply_line_edits",
    "parse_line_edits",
]
