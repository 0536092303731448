"""Composition root tying the document, sync engine and edit surface together.

``ResourceInput`` is the object a host talks to. It owns the document for the
lifetime of a mount, serializes every mutation through a
:class:`MutationQueue`, and reports what happened on an :class:`EventBus`.
It has no Qt dependency; :mod:`inlineref.editor.input_widget` renders it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Callable, Protocol, TypeVar

from ..core.resources import Resource, coerce_resources, index_resources
from ..ui.events import (
    ContentChanged,
    Event,
    EventBus,
    FocusChanged,
    Handler,
    NewlineRequested,
    RecallPreviousRequested,
    ResourceRemoved,
    SubmitRequested,
)
from .cursor_index import CursorIndex, NodePosition
from .document_model import Document
from .edit_surface import (
    ClipboardData,
    EditSurface,
    KeyEvent,
    ProjectionPatch,
    SurfaceSignal,
    TokenChip,
)
from .mutation_queue import MutationQueue
from .serializer import from_storage, to_display, to_storage
from .sync_engine import ResourceSync

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
E = TypeVar("E", bound=Event)


class RenderListener(Protocol):
    """Callback invoked after an edit so a view can patch its rendering."""

    def __call__(self, patch: ProjectionPatch) -> None:
        ...


class ResourceInput:
    """Host-facing controller for one resource-aware text input."""

    def __init__(self, *, bus: EventBus[Event] | None = None, sync: ResourceSync | None = None) -> None:
        self._bus: EventBus[Event] = bus or EventBus()
        self._sync = sync or ResourceSync()
        self._queue = MutationQueue("resource-input")
        self._document: Document | None = None
        self._surface: EditSurface | None = None
        self._resources: list[Resource] = []
        self._lookup: dict[str, Resource] = {}
        self._content = ""
        self._focused = False
        self._outbox: list[Event] = []
        self._content_dirty = False
        self._render_listeners: list[RenderListener] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def mounted(self) -> bool:
        return self._document is not None

    def mount(self) -> None:
        """Create the document and apply the latest host content and resources."""

        if self.mounted:
            return
        document = Document()
        self._document = document
        self._surface = EditSurface(document, listener=self._on_surface_signal)
        initial = self._content
        self._run(lambda: self._apply_mount(initial))
        LOGGER.debug("Resource input mounted with %d resource(s)", len(self._resources))

    def unmount(self) -> None:
        if not self.mounted:
            return
        self._queue.clear()
        self._document = None
        self._surface = None
        self._focused = False
        self._sync.forget()
        LOGGER.debug("Resource input unmounted")

    # ------------------------------------------------------------------
    # Event subscription
    # ------------------------------------------------------------------
    @property
    def bus(self) -> EventBus[Event]:
        return self._bus

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        self._bus.subscribe(event_type, handler)

    def add_render_listener(self, listener: RenderListener) -> None:
        self._render_listeners.append(listener)

    # ------------------------------------------------------------------
    # Host inputs
    # ------------------------------------------------------------------
    @property
    def resources(self) -> list[Resource]:
        return list(self._resources)

    @property
    def resource_lookup(self) -> Mapping[str, Resource]:
        return dict(self._lookup)

    def set_resources(self, resources: Iterable[Resource | Mapping[str, Any]]) -> None:
        """Replace the authoritative resource list and reconcile the tokens."""

        incoming = coerce_resources(resources)
        self._resources = incoming
        if not self.mounted:
            self._lookup = index_resources(incoming)
            return
        self._run(lambda: self._apply_resources(incoming))

    def set_content(self, storage: str) -> None:
        """Load external storage-format content unless it matches the current value."""

        storage = storage or ""
        self._content = storage
        if not self.mounted or storage == self.get_storage_content():
            return
        self._run(lambda: self._apply_content(storage))

    def restore_content(self, storage: str, *, caret: int | None = None) -> None:
        """Load ``storage`` (e.g. a recalled message) and place the caret."""

        storage = storage or ""
        self._content = storage
        if not self.mounted:
            return

        def _mutation() -> None:
            self._apply_content(storage)
            document = self._require_document()
            index = CursorIndex(document)
            target = document.length if caret is None else caret
            self._require_surface().set_caret(index.offset_for(index.position_for(target)))

        self._run(_mutation)

    # ------------------------------------------------------------------
    # Host operations
    # ------------------------------------------------------------------
    @property
    def document(self) -> Document | None:
        return self._document

    @property
    def has_focus(self) -> bool:
        return self._focused

    @property
    def caret(self) -> int:
        return self._surface.caret if self._surface is not None else 0

    def selection_span(self) -> tuple[int, int]:
        if self._surface is None:
            return (0, 0)
        return self._surface.selection_span()

    @property
    def chips(self) -> Mapping[str, TokenChip]:
        return self._surface.chips if self._surface is not None else {}

    def focus(self) -> None:
        if not self.mounted or self._focused:
            return
        self._focused = True
        self._bus.publish(FocusChanged(focused=True))

    def blur(self) -> None:
        if not self.mounted or not self._focused:
            return
        self._focused = False
        self._bus.publish(FocusChanged(focused=False))

    def set_cursor_position(self, offset: int, *, anchor: int | None = None) -> NodePosition | None:
        """Place the caret at a linear offset, clamped to the document."""

        document, surface = self._document, self._surface
        if document is None or surface is None:
            return None
        index = CursorIndex(document)
        position = index.position_for(offset)
        surface.set_caret(index.offset_for(position), anchor=anchor)
        self._notify_render(ProjectionPatch())
        return position

    def get_storage_content(self) -> str:
        if self._document is None:
            return ""
        return to_storage(self._document)

    def get_display_content(self) -> str:
        if self._document is None:
            return ""
        return to_display(self._document, self._lookup)

    def clear(self) -> None:
        """Empty the input (tokens included) without reporting removals."""

        document = self._document
        if document is None:
            return

        def _mutation() -> None:
            if document.is_empty:
                return
            document.reset()
            self._content_dirty = True

        self._run(_mutation)

    # ------------------------------------------------------------------
    # User interaction
    # ------------------------------------------------------------------
    def handle_key(self, event: KeyEvent) -> bool:
        surface = self._surface
        if surface is None:
            return False
        return bool(self._run(lambda: surface.handle_key(event)))

    def insert_text(self, text: str) -> bool:
        surface = self._surface
        if surface is None:
            return False
        return bool(self._run(lambda: surface.insert_text(text)))

    def handle_paste(self, data: ClipboardData) -> bool:
        surface = self._surface
        if surface is None:
            return False
        return bool(self._run(lambda: surface.handle_paste(data)))

    def begin_composition(self) -> None:
        if self._surface is not None:
            self._surface.begin_composition()

    def end_composition(self, committed: str = "") -> bool:
        surface = self._surface
        if surface is None:
            return False
        return bool(self._run(lambda: surface.end_composition(committed)))

    def remove_resource(self, resource_id: str) -> bool:
        """Remove a token as a unit, as requested by its delete affordance."""

        surface = self._surface
        if surface is None:
            return False
        return bool(self._run(lambda: surface.remove_token(resource_id)))

    # ------------------------------------------------------------------
    # Mutations (always run through the queue)
    # ------------------------------------------------------------------
    def _apply_mount(self, initial: str) -> None:
        document = self._require_document()
        self._lookup = index_resources(self._resources)
        if initial:
            document.replace_with(from_storage(initial, self._lookup))
        self._sync.reconcile(document, self._resources)
        surface = self._require_surface()
        surface.set_caret(document.length)
        if to_storage(document) != initial:
            self._content_dirty = True

    def _apply_resources(self, resources: list[Resource]) -> None:
        document = self._require_document()
        surface = self._require_surface()
        caret = surface.caret if self._focused else None
        result = self._sync.reconcile(document, resources, caret=caret)
        self._lookup = index_resources(resources)
        if result.inserted and self._focused:
            placed = CursorIndex(document).offset_after_token(result.inserted[-1])
            surface.set_caret(placed if placed is not None else surface.caret)
        elif result.removed:
            surface.clamp_caret()
        if result.changed:
            self._content_dirty = True

    def _apply_content(self, storage: str) -> None:
        document = self._require_document()
        document.replace_with(from_storage(storage, self._lookup))
        self._require_surface().set_caret(document.length)
        self._content_dirty = True

    def _run(self, mutation: Callable[[], T]) -> T | None:
        box: list[T] = []

        def _apply() -> None:
            box.append(mutation())
            self._flush()

        self._queue.submit(_apply)
        return box[0] if box else None

    def _flush(self) -> None:
        surface = self._surface
        patch = surface.refresh_projection(self._lookup) if surface is not None else ProjectionPatch()
        events, self._outbox = self._outbox, []
        if self._content_dirty:
            self._content_dirty = False
            storage = self.get_storage_content()
            self._content = storage
            events.append(ContentChanged(storage=storage))
        self._notify_render(patch)
        for event in events:
            self._bus.publish(event)

    def _notify_render(self, patch: ProjectionPatch) -> None:
        for listener in list(self._render_listeners):
            listener(patch)

    def _on_surface_signal(self, signal: SurfaceSignal, payload: Any = None) -> None:
        if signal is SurfaceSignal.CONTENT_CHANGED:
            self._content_dirty = True
        elif signal is SurfaceSignal.RESOURCE_REMOVED:
            self._outbox.append(ResourceRemoved(resource_id=str(payload)))
        elif signal is SurfaceSignal.SUBMIT:
            self._outbox.append(
                SubmitRequested(storage=self.get_storage_content(), display=self.get_display_content())
            )
        elif signal is SurfaceSignal.NEWLINE_REQUESTED:
            self._outbox.append(NewlineRequested())
        elif signal is SurfaceSignal.RECALL_PREVIOUS:
            self._outbox.append(RecallPreviousRequested())

    def _require_document(self) -> Document:
        if self._document is None:
            raise RuntimeError("Resource input is not mounted")
        return self._document

    def _require_surface(self) -> EditSurface:
        if self._surface is None:
            raise RuntimeError("Resource input is not mounted")
        return self._surface


__all__ = ["RenderListener", "ResourceInput"]
