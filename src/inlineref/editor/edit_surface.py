"""Headless editing state machine for the resource-aware input.

``EditSurface`` turns user interaction (keys, typed text, paste, input-method
composition) into :class:`~inlineref.editor.document_model.Document`
mutations. Tokens are atomic: they are never a caret-rest position inside
themselves and can only be removed whole.

The Qt widget forwards its events here, so everything below can be exercised
without a ``QApplication``.
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Protocol

from ..core.resources import Resource
from .document_model import Document, ResourceToken
from .serializer import RESOURCE_MARKER, chip_label, describe_resource

LOGGER = logging.getLogger(__name__)

_TAG_PATTERN = re.compile(r"<[^>]+>")
_HIDDEN_MARKUP_PATTERN = re.compile(
    r"<!--.*?-->|<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL
)
_BLOCK_BREAK_PATTERN = re.compile(r"<\s*(br|/p|/div|/li)\b[^>]*>", re.IGNORECASE)


class SurfaceState(str, Enum):
    IDLE = "idle"
    COMPOSING = "composing"


class Key(str, Enum):
    """Non-character keys the surface reacts to."""

    ENTER = "Enter"
    BACKSPACE = "Backspace"
    DELETE = "Delete"
    ARROW_UP = "ArrowUp"
    ARROW_DOWN = "ArrowDown"
    ARROW_LEFT = "ArrowLeft"
    ARROW_RIGHT = "ArrowRight"
    HOME = "Home"
    END = "End"


class SurfaceSignal(str, Enum):
    CONTENT_CHANGED = "content-changed"
    RESOURCE_REMOVED = "resource-removed"
    SUBMIT = "submit"
    NEWLINE_REQUESTED = "newline-requested"
    RECALL_PREVIOUS = "recall-previous"


@dataclass(slots=True, frozen=True)
class KeyEvent:
    """Toolkit-neutral key press.

    ``key`` is ``None`` for plain character input, in which case ``text``
    carries the typed characters.
    """

    key: Key | None = None
    text: str = ""
    ctrl: bool = False
    meta: bool = False
    shift: bool = False
    alt: bool = False

    @property
    def command(self) -> bool:
        """Return ``True`` for Ctrl (or Cmd on macOS)."""

        return self.ctrl or self.meta

    @property
    def has_modifier(self) -> bool:
        return self.ctrl or self.meta or self.shift or self.alt


@dataclass(slots=True, frozen=True)
class ClipboardData:
    """Clipboard payload keyed by MIME type."""

    formats: Mapping[str, Any] = field(default_factory=dict)

    def plain_text(self) -> str | None:
        """Return the payload as unformatted text, or ``None`` if it has none."""

        value = self.formats.get("text/plain")
        if isinstance(value, str):
            return value
        markup = self.formats.get("text/html")
        if isinstance(markup, str):
            return _strip_markup(markup)
        return None


@dataclass(slots=True)
class TokenChip:
    """Rendered handle for one token, keyed by resource id."""

    resource_id: str
    label: str
    tooltip: str
    revision: int = 0


@dataclass(slots=True)
class ProjectionPatch:
    """Chips that changed since the previous projection refresh."""

    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    relabelled: list[str] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (self.added or self.removed or self.relabelled)


class SurfaceListener(Protocol):
    """Callback receiving signals raised by the surface."""

    def __call__(self, signal: SurfaceSignal, payload: Any = None) -> None:
        ...


class EditSurface:
    """Applies user edits to a document while keeping tokens atomic."""

    def __init__(self, document: Document, *, listener: SurfaceListener | None = None) -> None:
        self._document = document
        self._listener = listener
        self._state = SurfaceState.IDLE
        self._caret = document.length
        self._anchor = self._caret
        self._chips: dict[str, TokenChip] = {}

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------
    @property
    def document(self) -> Document:
        return self._document

    @property
    def state(self) -> SurfaceState:
        return self._state

    @property
    def caret(self) -> int:
        return self._caret

    @property
    def chips(self) -> Mapping[str, TokenChip]:
        return dict(self._chips)

    def selection_span(self) -> tuple[int, int]:
        return (min(self._anchor, self._caret), max(self._anchor, self._caret))

    def has_selection(self) -> bool:
        return self._anchor != self._caret

    def set_caret(self, offset: int, *, anchor: int | None = None) -> int:
        """Place the caret (optionally extending a selection from ``anchor``)."""

        length = self._document.length
        self._caret = max(0, min(int(offset), length))
        self._anchor = self._caret if anchor is None else max(0, min(int(anchor), length))
        return self._caret

    def clamp_caret(self) -> None:
        """Re-clamp the caret after the document changed underneath it."""

        self.set_caret(self._caret, anchor=self._anchor)

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------
    def handle_key(self, event: KeyEvent) -> bool:
        """Process a key press; returns ``True`` when the event was consumed."""

        if self._state is SurfaceState.COMPOSING:
            return False
        if event.key is None:
            if event.command or event.alt or not event.text:
                return False
            return self.insert_text(event.text)
        if event.key is Key.ENTER:
            return self._handle_enter(event)
        if event.key is Key.ARROW_UP:
            if self._document.is_empty:
                self._emit(SurfaceSignal.RECALL_PREVIOUS)
                return True
            return False
        if event.key is Key.BACKSPACE:
            return self._delete(backward=True)
        if event.key is Key.DELETE:
            return self._delete(backward=False)
        if event.key in (Key.ARROW_LEFT, Key.ARROW_RIGHT, Key.HOME, Key.END):
            return self._move(event)
        return False

    def insert_text(self, text: str) -> bool:
        if self._state is SurfaceState.COMPOSING or not text:
            return False
        # The storage marker is reserved for tokens.
        text = text.replace(RESOURCE_MARKER, "")
        if not text:
            return False
        self._delete_selection()
        self._caret = self._document.insert_text(text, self._caret)
        self._anchor = self._caret
        self._emit(SurfaceSignal.CONTENT_CHANGED)
        return True

    def handle_paste(self, data: ClipboardData) -> bool:
        text = data.plain_text()
        if not text:
            return False
        return self.insert_text(text.replace("\r\n", "\n").replace("\r", "\n"))

    def begin_composition(self) -> None:
        self._state = SurfaceState.COMPOSING

    def end_composition(self, committed: str = "") -> bool:
        self._state = SurfaceState.IDLE
        return self.insert_text(committed)

    def remove_token(self, resource_id: str) -> bool:
        """Remove a token on explicit request (e.g. its delete affordance)."""

        offset = self._document.remove_token(resource_id)
        if offset is None:
            return False
        if self._caret > offset:
            self._caret -= 1
        if self._anchor > offset:
            self._anchor -= 1
        self._emit(SurfaceSignal.RESOURCE_REMOVED, resource_id)
        self._emit(SurfaceSignal.CONTENT_CHANGED)
        return True

    # ------------------------------------------------------------------
    # Projection index
    # ------------------------------------------------------------------
    def refresh_projection(self, resources: Mapping[str, Resource]) -> ProjectionPatch:
        """Bring the chip index in line with the document's tokens."""

        patch = ProjectionPatch()
        ids = self._document.tokens().ids()
        current = set(ids)
        for resource_id in list(self._chips):
            if resource_id not in current:
                del self._chips[resource_id]
                patch.removed.append(resource_id)
        for resource_id in ids:
            resource = resources.get(resource_id)
            label = chip_label(resource, resource_id)
            tooltip = describe_resource(resource) if resource is not None else f"[ref] {resource_id}"
            chip = self._chips.get(resource_id)
            if chip is None:
                self._chips[resource_id] = TokenChip(resource_id, label, tooltip)
                patch.added.append(resource_id)
            elif chip.label != label or chip.tooltip != tooltip:
                chip.label = label
                chip.tooltip = tooltip
                chip.revision += 1
                patch.relabelled.append(resource_id)
        return patch

    def reset_projection(self) -> None:
        self._chips.clear()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _handle_enter(self, event: KeyEvent) -> bool:
        if event.command or event.shift:
            self.insert_text("\n")
            self._emit(SurfaceSignal.NEWLINE_REQUESTED)
            return True
        if event.has_modifier:
            return False
        self._emit(SurfaceSignal.SUBMIT)
        return True

    def _delete(self, *, backward: bool) -> bool:
        if self._delete_selection():
            self._emit(SurfaceSignal.CONTENT_CHANGED)
            return True
        caret = self._caret
        neighbour = self._document.node_before(caret) if backward else self._document.node_after(caret)
        if neighbour is None:
            return True
        if isinstance(neighbour, ResourceToken):
            offset = self._document.remove_token(neighbour.resource_id)
            self._caret = self._anchor = offset if offset is not None else caret
            self._emit(SurfaceSignal.RESOURCE_REMOVED, neighbour.resource_id)
            self._emit(SurfaceSignal.CONTENT_CHANGED)
            return True
        start = caret - 1 if backward else caret
        self._document.delete_range(start, start + 1)
        self._caret = self._anchor = start
        self._emit(SurfaceSignal.CONTENT_CHANGED)
        return True

    def _delete_selection(self) -> bool:
        start, end = self.selection_span()
        if start == end:
            return False
        removed = self._document.delete_range(start, end)
        self._caret = self._anchor = start
        for resource_id in removed:
            self._emit(SurfaceSignal.RESOURCE_REMOVED, resource_id)
        return True

    def _move(self, event: KeyEvent) -> bool:
        length = self._document.length
        if event.key is Key.HOME:
            target = 0
        elif event.key is Key.END:
            target = length
        elif self.has_selection() and not event.shift:
            start, end = self.selection_span()
            target = start if event.key is Key.ARROW_LEFT else end
        else:
            step = -1 if event.key is Key.ARROW_LEFT else 1
            target = self._caret + step
        anchor = self._anchor if event.shift else None
        self.set_caret(target, anchor=anchor)
        return True

    def _emit(self, signal: SurfaceSignal, payload: Any = None) -> None:
        if self._listener is None:
            return
        self._listener(signal, payload)


def _strip_markup(markup: str) -> str:
    text = _HIDDEN_MARKUP_PATTERN.sub("", markup)
    text = _BLOCK_BREAK_PATTERN.sub("\n", text)
    text = _TAG_PATTERN.sub("", text)
    return html.unescape(text)


__all__ = [
    "ClipboardData",
    "EditSurface",
    "Key",
    "KeyEvent",
    "ProjectionPatch",
    "SurfaceListener",
    "SurfaceSignal",
    "SurfaceState",
    "TokenChip",
]
