"""Tests for translating whole-line edits into document splices."""

from __future__ import annotations

import pytest

from linesplice.core.ranges import MAX_COLUMN, LineRange, Range
from linesplice.editor.document_model import TextDocument
from linesplice.editor.editing import (
    EditOperation,
    LineEditOrderError,
    LineEdits,
    LineRangeEdit,
    RangeEdit,
    SupportsLineEdits,
)
from tests.helpers import RecordingDocument


def _edit(start: int, end_exclusive: int, *lines: str) -> LineRangeEdit:
    return LineRangeEdit(LineRange.from_exclusive(start, end_exclusive), list(lines))


def test_interior_edit_splices_from_column_one_to_column_one():
    document = RecordingDocument(line_count=5)

    _edit(2, 4, "x", "y", "z").apply(document)

    (operation,) = document.batches[0]
    assert operation == EditOperation(Range(2, 1, 4, 1), "x\ny\nz\n")


def test_edit_reaching_last_line_from_first_line_replaces_to_document_end():
    document = RecordingDocument(line_count=3)

    _edit(1, 4, "a", "b").apply(document)

    (operation,) = document.batches[0]
    assert operation.range == Range(1, 1, 3, MAX_COLUMN)
    assert operation.text == "a\nb"


def test_edit_reaching_last_line_after_first_line_starts_at_previous_line_end():
    document = RecordingDocument(line_count=3)

    _edit(2, 4, "a", "b").apply(document)

    (operation,) = document.batches[0]
    assert operation.range == Range(1, MAX_COLUMN, 3, MAX_COLUMN)
    assert operation.text == "\na\nb"


def test_case_selection_uses_the_original_line_count_for_every_edit():
    edits = LineEdits([_edit(1, 2, "one", "two", "three"), _edit(3, 4, "tail")])

    operations = edits.to_operations(3)

    assert operations[0].range == Range(1, 1, 2, 1)
    assert operations[1].range == Range(2, MAX_COLUMN, 3, MAX_COLUMN)
    assert operations[1].text == "\ntail"


def test_batch_is_applied_with_a_single_call_and_no_selection():
    document = RecordingDocument(line_count=10)
    edits = LineEdits([_edit(1, 2, "a"), _edit(4, 4, "b"), _edit(6, 8)])

    edits.apply(document)

    assert len(document.batches) == 1
    assert len(document.batches[0]) == 3
    assert document.line_count_calls == 1
    restorer = document.restorers[0]
    assert restorer is not None
    assert restorer([Range(1, 1, 1, 2)]) is None


def test_empty_batch_does_not_touch_the_document():
    document = RecordingDocument(line_count=3)

    LineEdits([]).apply(document)

    assert document.batches == []


def test_unsorted_batch_is_rejected_before_touching_the_document():
    document = RecordingDocument(line_count=10)
    edits = LineEdits([_edit(5, 6, "late"), _edit(1, 2, "early")])

    with pytest.raises(LineEditOrderError) as excinfo:
        edits.apply(document)

    assert document.batches == []
    assert excinfo.value.index == 1
    assert excinfo.value.details()["previous"] == (5, 6)


def test_overlapping_batch_is_rejected():
    edits = LineEdits([_edit(1, 4, "a"), _edit(3, 5, "b")])

    with pytest.raises(LineEditOrderError):
        edits.validate()


def test_adjacent_edits_and_shared_insertion_points_are_accepted():
    LineEdits([_edit(1, 3, "a"), _edit(3, 4, "b")]).validate()
    LineEdits([_edit(2, 2, "a"), _edit(2, 2, "b")]).validate()


def test_line_range_edit_equality_is_structural():
    first = _edit(2, 3, "a", "b")
    second = LineRangeEdit(LineRange(2, 1), ("a", "b"))

    assert first.equals(second)
    assert first == second
    assert not first.equals(_edit(2, 3, "b", "a"))
    assert not first.equals(_edit(2, 4, "a", "b"))
    assert not first.equals(_edit(2, 3, "a"))


def test_range_edit_equality_compares_range_and_text():
    edit = RangeEdit(Range(1, 1, 2, 5), "text")

    assert edit.equals(RangeEdit(Range(1, 1, 2, 5), "text"))
    assert not edit.equals(RangeEdit(Range(1, 1, 2, 6), "text"))
    assert not edit.equals(RangeEdit(Range(1, 1, 2, 5), "other"))
    assert edit.to_operation() == EditOperation(Range(1, 1, 2, 5), "text")


def test_line_range_edit_rejects_embedded_terminators():
    with pytest.raises(ValueError):
        _edit(1, 2, "bad\nline")
    with pytest.raises(TypeError):
        LineRangeEdit(LineRange(1, 1), "not-a-list")  # type: ignore[arg-type]


def test_payload_roundtrip_accepts_mapping_ranges():
    edit = LineRangeEdit.from_payload({"range": {"start_line_number": 3, "line_count": 2}, "new_lines": ["x"]})

    assert edit == _edit(3, 5, "x")
    assert edit.to_payload() == {"range": [3, 5], "new_lines": ["x"]}


def test_text_document_satisfies_the_document_protocol():
    assert isinstance(TextDocument("a"), SupportsLineEdits)
    assert isinstance(RecordingDocument(1), SupportsLineEdits)


# Behaviour against a real document -------------------------------------------


def test_replacing_an_interior_line_with_two_lines():
    document = TextDocument("A\nB\nC")

    _edit(2, 3, "X", "Y").apply(document)

    assert document.get_lines() == ["A", "X", "Y", "C"]


def test_replacing_the_whole_document_leaves_no_trailing_terminator():
    document = TextDocument("A\nB\nC")

    _edit(1, 4, "Z").apply(document)

    assert document.get_value() == "Z"


def test_replacing_whole_document_with_two_lines():
    document = TextDocument("one\ntwo\nthree\nfour")

    _edit(1, 5, "a", "b").apply(document)

    assert document.get_value() == "a\nb"


@pytest.mark.parametrize("start", [2, 3, 4])
def test_replacing_through_the_end_keeps_the_previous_line(start: int):
    lines = ["l1", "l2", "l3", "l4"]
    document = TextDocument("\n".join(lines))

    _edit(start, len(lines) + 1, "x").apply(document)

    expected = "\n".join(lines[: start - 1]) + "\nx"
    assert document.get_value() == expected
    assert document.get_line_content(start - 1) == lines[start - 2]


def test_interior_batch_preserves_untouched_lines_and_line_count():
    lines = [f"line {n}" for n in range(1, 11)]
    document = TextDocument("\n".join(lines))
    edits = LineEdits(
        [
            _edit(2, 4, "two-three"),
            _edit(5, 5, "inserted a", "inserted b"),
            _edit(7, 8, "seven", "seven bis", "seven ter"),
        ]
    )
    removed = sum(edit.range.line_count for edit in edits)
    inserted = sum(len(edit.new_lines) for edit in edits)

    edits.apply(document)

    assert document.get_line_count() == len(lines) - removed + inserted
    assert document.get_lines() == [
        "line 1",
        "two-three",
        "line 4",
        "inserted a",
        "inserted b",
        "line 5",
        "line 6",
        "seven",
        "seven bis",
        "seven ter",
        "line 8",
        "line 9",
        "line 10",
    ]


def test_same_batch_on_equal_documents_gives_equal_results():
    edits = LineEdits([_edit(1, 2, "first"), _edit(3, 5, "tail", "end")])
    left = TextDocument("a\nb\nc\nd")
    right = TextDocument("a\nb\nc\nd")

    edits.apply(left)
    edits.apply(right)

    assert left.get_value() == right.get_value() == "first\nb\ntail\nend"


def test_empty_batch_leaves_document_unchanged():
    document = TextDocument("a\nb")

    LineEdits([]).apply(document)

    assert document.get_value() == "a\nb"
    assert document.version_id == 1


def test_deleting_trailing_lines_does_not_leave_a_blank_line():
    document = TextDocument("keep\ndrop1\ndrop2")

    _edit(2, 4).apply(document)

    assert document.get_value() == "keep"


def test_interior_and_boundary_edits_in_one_batch():
    document = TextDocument("a\nb\nc\nd")

    LineEdits([_edit(1, 2, "A"), _edit(3, 5, "C")]).apply(document)

    assert document.get_value() == "A\nb\nC"
    assert document.version_id == 2


def test_inserting_at_end_of_document_past_last_line():
    document = TextDocument("a\nb")

    _edit(3, 3, "c").apply(document)

    assert document.get_value() == "a\nb\nc"


def test_crlf_documents_keep_their_terminator():
    document = TextDocument("a\r\nb\r\nc")

    _edit(2, 3, "x", "y").apply(document)

    assert document.get_value() == "a\r\nx\r\ny\r\nc"


def test_touching_edits_that_reach_the_last_line_are_applied_together():
    document = TextDocument("A\nB\nC")

    LineEdits([_edit(2, 3, "X"), _edit(3, 4, "Y")]).apply(document)

    assert document.get_value() == "A\nX\nY"
    assert document.version_id == 2


def test_touching_edits_are_sent_as_one_splice():
    document = RecordingDocument(line_count=3)

    LineEdits([_edit(1, 2, "a"), _edit(2, 2, "b"), _edit(2, 4, "c")]).apply(document)

    (operation,) = document.batches[0]
    assert operation == EditOperation(Range(1, 1, 3, MAX_COLUMN), "a\nb\nc")


def test_insertion_before_a_tail_edit_at_the_same_line():
    document = TextDocument("one\ntwo\nthree")

    LineEdits([_edit(3, 3, "inserted"), _edit(3, 4, "last")]).apply(document)

    assert document.get_lines() == ["one", "two", "inserted", "last"]
