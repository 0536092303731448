"""Ordered text + resource-token content model backing one input instance.

Offsets used throughout this module are *linear*: every character of a
:class:`TextRun` counts as one unit and every :class:`ResourceToken` counts as
exactly one unit as well. The model keeps three invariants after every
mutation:

* no two adjacent text runs (they are merged),
* each resource id appears in at most one token,
* tokens are inserted or removed whole, never split.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Union

LOGGER = logging.getLogger(__name__)

#: Character used for tokens when the document is flattened to a string.
TOKEN_PLACEHOLDER = "\ufffc"


@dataclass(slots=True)
class TextRun:
    """A run of plain text."""

    text: str = ""


@dataclass(slots=True)
class ResourceToken:
    """Opaque inline reference to a host resource."""

    resource_id: str


ContentNode = Union[TextRun, ResourceToken]


def node_length(node: ContentNode) -> int:
    """Return the linear width of ``node``."""

    if isinstance(node, ResourceToken):
        return 1
    return len(node.text)


class TokenSequence:
    """Lazy, restartable view over the tokens of a document."""

    __slots__ = ("_document",)

    def __init__(self, document: Document) -> None:
        self._document = document

    def __iter__(self) -> Iterator[tuple[str, ResourceToken]]:
        for node in self._document.nodes:
            if isinstance(node, ResourceToken):
                yield node.resource_id, node

    def __len__(self) -> int:
        return self._document.token_count

    def ids(self) -> list[str]:
        return [resource_id for resource_id, _node in self]


class Document:
    """Mutable sequence of :class:`TextRun` and :class:`ResourceToken` nodes."""

    __slots__ = ("_nodes", "_token_ids")

    def __init__(self, nodes: Iterable[ContentNode] | None = None) -> None:
        self._nodes: list[ContentNode] = []
        self._token_ids: set[str] = set()
        for node in nodes or ():
            if isinstance(node, ResourceToken):
                if node.resource_id in self._token_ids:
                    LOGGER.debug("Dropping duplicate token %s while building document", node.resource_id)
                    continue
                self._token_ids.add(node.resource_id)
                self._nodes.append(ResourceToken(node.resource_id))
            else:
                self._nodes.append(TextRun(node.text))
        self._normalize()

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------
    @property
    def nodes(self) -> tuple[ContentNode, ...]:
        return tuple(self._nodes)

    @property
    def length(self) -> int:
        """Linear length of the document (tokens count as one)."""

        return sum(node_length(node) for node in self._nodes)

    @property
    def token_count(self) -> int:
        return len(self._token_ids)

    @property
    def is_empty(self) -> bool:
        """Return ``True`` when the document holds neither text nor tokens."""

        return self.length == 0

    def tokens(self) -> TokenSequence:
        """Return the tokens in document order as ``(resource_id, node)`` pairs."""

        return TokenSequence(self)

    def has_token(self, resource_id: str) -> bool:
        return resource_id in self._token_ids

    def token_offset(self, resource_id: str) -> int | None:
        """Return the linear offset of the token for ``resource_id``."""

        cursor = 0
        for node in self._nodes:
            if isinstance(node, ResourceToken) and node.resource_id == resource_id:
                return cursor
            cursor += node_length(node)
        return None

    def text_content(self) -> str:
        """Concatenate the text runs, ignoring tokens."""

        return "".join(node.text for node in self._nodes if isinstance(node, TextRun))

    def flattened_text(self) -> str:
        """Return the document as text with tokens rendered as a placeholder."""

        return "".join(
            TOKEN_PLACEHOLDER if isinstance(node, ResourceToken) else node.text for node in self._nodes
        )

    def node_before(self, offset: int) -> ContentNode | None:
        """Return the node covering the unit immediately left of ``offset``."""

        offset = self._clamp(offset)
        if offset == 0:
            return None
        return self._node_at(offset - 1)

    def node_after(self, offset: int) -> ContentNode | None:
        """Return the node covering the unit immediately right of ``offset``."""

        offset = self._clamp(offset)
        if offset >= self.length:
            return None
        return self._node_at(offset)

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------
    def insert_text(self, text: str, offset: int) -> int:
        """Insert ``text`` at ``offset`` and return the offset after it."""

        offset = self._clamp(offset)
        if not text:
            return offset
        index = self._split_at(offset)
        self._nodes.insert(index, TextRun(text))
        self._normalize()
        return offset + len(text)

    def insert_token(self, resource_id: str, offset: int) -> bool:
        """Insert a token at ``offset``; returns ``False`` if the id already exists."""

        if resource_id in self._token_ids:
            LOGGER.debug("Token %s already present; insert skipped", resource_id)
            return False
        index = self._split_at(self._clamp(offset))
        self._nodes.insert(index, ResourceToken(resource_id))
        self._token_ids.add(resource_id)
        self._normalize()
        return True

    def append_token(self, resource_id: str) -> bool:
        return self.insert_token(resource_id, self.length)

    def remove_token(self, resource_id: str) -> int | None:
        """Remove the token for ``resource_id`` and return the offset it occupied."""

        cursor = 0
        for index, node in enumerate(self._nodes):
            if isinstance(node, ResourceToken) and node.resource_id == resource_id:
                del self._nodes[index]
                self._token_ids.discard(resource_id)
                self._normalize()
                return cursor
            cursor += node_length(node)
        return None

    def delete_range(self, start: int, end: int) -> list[str]:
        """Delete ``[start, end)`` and return the ids of tokens removed with it."""

        start, end = sorted((self._clamp(start), self._clamp(end)))
        if start == end:
            return []
        first = self._split_at(start)
        last = self._split_at(end)
        removed = [node.resource_id for node in self._nodes[first:last] if isinstance(node, ResourceToken)]
        del self._nodes[first:last]
        self._token_ids.difference_update(removed)
        self._normalize()
        return removed

    def rekey_token(self, old_id: str, new_id: str) -> bool:
        """Point the token for ``old_id`` at ``new_id`` without moving it."""

        if old_id not in self._token_ids or new_id in self._token_ids:
            return False
        for node in self._nodes:
            if isinstance(node, ResourceToken) and node.resource_id == old_id:
                node.resource_id = new_id
                break
        self._token_ids.discard(old_id)
        self._token_ids.add(new_id)
        return True

    def reset(self) -> None:
        """Return to the canonical empty state (a single empty text run)."""

        self._nodes = [TextRun("")]
        self._token_ids.clear()

    def replace_with(self, other: Document) -> None:
        """Adopt the content of ``other`` in place."""

        self._nodes = [TextRun(n.text) if isinstance(n, TextRun) else ResourceToken(n.resource_id) for n in other._nodes]
        self._token_ids = set(other._token_ids)

    def copy(self) -> Document:
        return Document(self._nodes)

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Document):
            return NotImplemented
        return self._nodes == other._nodes

    def __iter__(self) -> Iterator[ContentNode]:
        return iter(tuple(self._nodes))

    def __repr__(self) -> str:
        return f"Document({self._nodes!r})"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _clamp(self, offset: int) -> int:
        return max(0, min(int(offset), self.length))

    def _node_at(self, position: int) -> ContentNode | None:
        cursor = 0
        for node in self._nodes:
            size = node_length(node)
            if cursor <= position < cursor + size:
                return node
            cursor += size
        return None

    def _split_at(self, offset: int) -> int:
        """Ensure a node boundary exists at ``offset`` and return its index."""

        cursor = 0
        for index, node in enumerate(self._nodes):
            if offset == cursor:
                return index
            size = node_length(node)
            if offset < cursor + size:
                # Only text runs are wider than one unit, so only they split.
                assert isinstance(node, TextRun)
                inner = offset - cursor
                self._nodes[index : index + 1] = [TextRun(node.text[:inner]), TextRun(node.text[inner:])]
                return index + 1
            cursor += size
        return len(self._nodes)

    def _normalize(self) -> None:
        merged: list[ContentNode] = []
        for node in self._nodes:
            if isinstance(node, TextRun):
                if not node.text:
                    continue
                previous = merged[-1] if merged else None
                if isinstance(previous, TextRun):
                    previous.text += node.text
                    continue
            merged.append(node)
        if not merged:
            merged.append(TextRun(""))
        self._nodes = merged


__all__ = [
    "ContentNode",
    "Document",
    "ResourceToken",
    "TOKEN_PLACEHOLDER",
    "TextRun",
    "TokenSequence",
    "node_length",
]
