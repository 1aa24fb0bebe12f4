"""Unit tests for applying line edits to plain text."""

from __future__ import annotations

import pytest

from linesplice.core.ranges import LineRange
from linesplice.editor.editing import LineEditOrderError, LineEdits, LineRangeEdit
from linesplice.editor.patches import apply_line_edits, parse_line_edits


def test_apply_line_edits_reports_spans_and_summary():
    original = "alpha\nbeta\ngamma"
    edits = [LineRangeEdit(LineRange(2, 1), ["BETA", "delta"])]

    result = apply_line_edits(original, edits)

    assert result.text == "alpha\nBETA\ndelta\ngamma"
    assert result.spans, "expected spans to be tracked"
    assert result.summary == "patch: +6 chars"


def test_apply_line_edits_preserves_crlf():
    result = apply_line_edits("one\r\ntwo\r\nthree", LineEdits([LineRangeEdit(LineRange(3, 1), ["3"])]))

    assert result.text == "one\r\ntwo\r\n3"


def test_apply_line_edits_with_no_edits_is_identity():
    result = apply_line_edits("same\ntext", [])

    assert result.text == "same\ntext"
    assert result.spans == ()
    assert result.summary == "patch: Δ0"


def test_apply_line_edits_propagates_ordering_errors():
    edits = [LineRangeEdit(LineRange(3, 1), ["c"]), LineRangeEdit(LineRange(1, 1), ["a"])]

    with pytest.raises(LineEditOrderError):
        apply_line_edits("a\nb\nc", edits)


def test_parse_line_edits_accepts_list_and_wrapped_payloads():
    entries = [{"range": [1, 2], "new_lines": ["x"]}, {"range": [3, 3], "new_lines": []}]

    assert parse_line_edits(entries) == parse_line_edits({"edits": entries})
    batch = parse_line_edits(entries)
    assert len(batch) == 2
    assert batch.edits[1].range == LineRange(3, 0)


@pytest.mark.parametrize(
    "payload",
    [
        {"changes": []},
        "[]",
        [{"new_lines": ["x"]}],
        [{"range": [2, 1], "new_lines": []}],
    ],
)
def test_parse_line_edits_rejects_malformed_payloads(payload):
    with pytest.raises(ValueError):
        parse_line_edits(payload)


def test_parse_line_edits_rejects_non_mapping_entries():
    with pytest.raises(TypeError):
        parse_line_edits([["range", [1, 2]]])
