"""Reading and writing :class:`TextDocument` files on disk."""

from __future__ import annotations

import codecs
import contextlib
import logging
import os
import tempfile
from pathlib import Path

from ..editor.document_model import TextDocument, detect_eol

__all__ = [
    "decode_bytes",
    "read_text",
    "load_document",
    "save_document",
    "has_changed_on_disk",
]

LOGGER = logging.getLogger(__name__)

# UTF-32 first: its little-endian BOM begins with the UTF-16 one.
_BOMS: tuple[tuple[bytes, str], ...] = (
    (codecs.BOM_UTF32_LE, "utf-32"),
    (codecs.BOM_UTF32_BE, "utf-32"),
    (codecs.BOM_UTF8, "utf-8-sig"),
    (codecs.BOM_UTF16_LE, "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16"),
)


def decode_bytes(raw: bytes) -> tuple[str, str]:
    """Return ``(text, encoding)`` for ``raw``.

    A byte-order mark selects its codec (the BOM is consumed); otherwise the
    bytes are read as UTF-8 and, failing that, as Latin-1.
    """

    for bom, encoding in _BOMS:
        if raw.startswith(bom):
            return raw.decode(encoding), encoding
    try:
        return raw.decode("utf-8"), "utf-8"
    except UnicodeDecodeError:
        LOGGER.debug("Input is not valid UTF-8; decoding as latin-1")
        return raw.decode("latin-1"), "latin-1"


def read_text(path: Path | str) -> str:
    """Decode ``path`` with :func:`decode_bytes`, keeping its line terminators."""

    text, _encoding = decode_bytes(Path(path).read_bytes())
    return text


def load_document(path: Path | str, *, default_eol: str = "\n") -> TextDocument:
    """Read ``path`` into a :class:`TextDocument`.

    The document keeps the file's EOL style (``default_eol`` when the file has
    no terminator at all), its encoding, and the content hash used by
    :func:`has_changed_on_disk`.
    """

    target = Path(path)
    text, encoding = decode_bytes(target.read_bytes())
    eol = detect_eol(text) if ("\n" in text or "\r" in text) else default_eol
    document = TextDocument(text, eol=eol, path=target)
    document.metadata.encoding = encoding
    document.metadata.disk_hash = document.content_hash
    LOGGER.debug("Loaded %s (%s, eol=%r, %d line(s))", target, encoding, eol, document.get_line_count())
    return document


def save_document(document: TextDocument, path: Path | str | None = None) -> Path:
    """Atomically write ``document`` to ``path`` (default: its own path).

    Text is rendered with the document's EOL and encoded with the encoding it
    was loaded with. Saving to the document's own path marks it clean.
    """

    target = Path(path) if path is not None else document.metadata.path
    if target is None:
        raise ValueError("Document has no path; pass one explicitly")
    _write_atomic(target, document.get_value().encode(document.metadata.encoding))
    if document.metadata.path in (None, target):
        document.metadata.path = target
        document.metadata.disk_hash = document.content_hash
        document.dirty = False
    LOGGER.debug("Saved document %s to %s", document.document_id, target)
    return target


def has_changed_on_disk(document: TextDocument) -> bool:
    """Return ``True`` if the file behind ``document`` no longer holds the loaded text.

    Line terminators are ignored; a missing file counts as changed. Documents
    that were never loaded from disk never report a change.
    """

    path = document.metadata.path
    if path is None or document.metadata.disk_hash is None:
        return False
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        return True
    text, _encoding = decode_bytes(raw)
    return TextDocument(text).content_hash != document.metadata.disk_hash


def _write_atomic(target: Path, data: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    descriptor, tmp_name = tempfile.mkstemp(dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(descriptor, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, target)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise
