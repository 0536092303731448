"""Cursor index tests."""

from __future__ import annotations

import pytest

from inlineref.editor.cursor_index import CursorIndex, NodePosition
from inlineref.editor.document_model import Document, ResourceToken, TextRun


@pytest.fixture
def index() -> CursorIndex:
    return CursorIndex(Document([TextRun("ab"), ResourceToken("r1"), TextRun("cd")]))


@pytest.mark.parametrize(
    ("offset", "expected"),
    [
        (0, NodePosition(0, 0)),
        (1, NodePosition(0, 1)),
        (2, NodePosition(0, 2)),
        (3, NodePosition(2, 0)),
        (5, NodePosition(2, 2)),
    ],
)
def test_position_for_prefers_text_runs(index, offset, expected):
    assert index.position_for(offset) == expected


def test_position_for_clamps_out_of_range(index):
    assert index.position_for(-4) == NodePosition(0, 0)
    assert index.position_for(42) == NodePosition(2, 2)


def test_token_only_document_uses_token_edges():
    index = CursorIndex(Document([ResourceToken("a"), ResourceToken("b")]))
    assert index.position_for(0) == NodePosition(0, 0)
    assert index.position_for(1) == NodePosition(1, 0)
    assert index.position_for(2) == NodePosition(1, 1)


def test_offset_for_is_inverse_of_position_for(index):
    for offset in range(6):
        assert index.offset_for(index.position_for(offset)) == offset


def test_offset_for_clamps_token_interior(index):
    assert index.offset_for(NodePosition(1, 5)) == 3
    assert index.offset_for(NodePosition(9, 0)) == 3


def test_offset_after_token(index):
    assert index.offset_after_token("r1") == 3
    assert index.offset_after_token("missing") is None


def test_measurement_text_renders_tokens_by_id(index):
    assert index.measurement_text() == "ab@r1cd"
