"""Apply line edits to plain strings and summarize the resulting change."""

from __future__ import annotations

from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import Any, Iterable, Mapping, Sequence, Tuple

from .document_model import TextDocument
from .editing import LineEdits, LineRangeEdit


@dataclass(slots=True)
class PatchResult:
    """Result of applying a batch of line edits to a string."""

    text: str
    spans: Tuple[Tuple[int, int], ...]
    summary: str


def apply_line_edits(original_text: str, edits: LineEdits | Iterable[LineRangeEdit]) -> PatchResult:
    """Apply ``edits`` to ``original_text`` and return the patched text.

    The text's own line terminator style is preserved.
    """

    batch = edits if isinstance(edits, LineEdits) else LineEdits(edits)
    document = TextDocument(original_text)
    batch.apply(document)
    patched_text = document.get_value()
    spans = _compute_spans(original_text, patched_text)
    summary = _summarize_patch(original_text, patched_text)
    return PatchResult(text=patched_text, spans=spans, summary=summary)


def parse_line_edits(payload: Sequence[Mapping[str, Any]] | Mapping[str, Any]) -> LineEdits:
    """Build a batch from decoded JSON.

    Accepts either a list of edit objects or ``{"edits": [...]}``.
    """

    if isinstance(payload, Mapping):
        entries = payload.get("edits")
        if entries is None:
            raise ValueError("Edit payload mappings require an 'edits' list")
    else:
        entries = payload
    if isinstance(entries, (str, bytes)) or not isinstance(entries, Sequence):
        raise ValueError("Edits must be provided as a list")
    return LineEdits(LineRangeEdit.from_payload(entry) for entry in entries)


def _compute_spans(before: str, after: str) -> Tuple[Tuple[int, int], ...]:
    matcher = SequenceMatcher(a=before, b=after, autojunk=False)
    spans: list[tuple[int, int]] = []
    for tag, _i1, _i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal" or j1 == j2:
            continue
        spans.append((j1, j2))
    return tuple(spans)


def _summarize_patch(before: str, after: str) -> str:
    delta = len(after) - len(before)
    if delta == 0:
        return "patch: Δ0"
    sign = "+" if delta > 0 else "-"
    return f"patch: {sign}{abs(delta)} chars"


__all__ = ["PatchResult", "apply_line_edits", "parse_line_edits"]
