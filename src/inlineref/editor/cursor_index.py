"""Conversions between linear caret offsets and structural node positions."""

from __future__ import annotations

from dataclasses import dataclass

from .document_model import Document, ResourceToken, TextRun, node_length


@dataclass(slots=True, frozen=True)
class NodePosition:
    """Caret location expressed as ``(node_index, offset_within_node)``.

    For a token node the offset is either ``0`` (left edge) or ``1`` (right
    edge); the inside of a token is never a caret position.
    """

    node_index: int
    offset: int


class CursorIndex:
    """Maps caret offsets onto the nodes of a :class:`Document`.

    Tokens count as a single unit. Requests past either end of the document
    clamp to the nearest valid position.
    """

    __slots__ = ("_document",)

    def __init__(self, document: Document) -> None:
        self._document = document

    def position_for(self, offset: int) -> NodePosition:
        nodes = self._document.nodes
        offset = max(0, min(int(offset), self._document.length))

        # Prefer text runs so the caret rests inside editable content.
        cursor = 0
        for index, node in enumerate(nodes):
            size = node_length(node)
            if isinstance(node, TextRun) and cursor <= offset <= cursor + size:
                return NodePosition(index, offset - cursor)
            cursor += size

        cursor = 0
        for index, node in enumerate(nodes):
            if offset == cursor:
                return NodePosition(index, 0)
            cursor += node_length(node)
        last = len(nodes) - 1
        return NodePosition(last, node_length(nodes[last]))

    def offset_for(self, position: NodePosition) -> int:
        nodes = self._document.nodes
        index = max(0, min(position.node_index, len(nodes) - 1))
        before = sum(node_length(node) for node in nodes[:index])
        inner = max(0, min(position.offset, node_length(nodes[index])))
        return before + inner

    def offset_after_token(self, resource_id: str) -> int | None:
        """Return the caret offset immediately right of a token."""

        start = self._document.token_offset(resource_id)
        if start is None:
            return None
        return start + 1

    def measurement_text(self) -> str:
        """Render tokens as ``@resource_id`` for width measurement only."""

        return "".join(
            f"@{node.resource_id}" if isinstance(node, ResourceToken) else node.text
            for node in self._document.nodes
        )


__all__ = ["CursorIndex", "NodePosition"]
