"""Qt projection of a :class:`ResourceInput`.

The widget never lets ``QTextEdit`` edit its own document: key, paste and
input-method events are routed to the headless controller, and the rendered
text is patched from the model afterwards. Tokens are drawn as chips by a
``QTextObjectInterface`` handler and occupy exactly one position in the Qt
document, so Qt cursor positions and model offsets are interchangeable.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence, Union

from PySide6.QtCore import QMimeData, QObject, QPointF, QRectF, QSizeF, Qt, QTimer
from PySide6.QtGui import (
    QColor,
    QFont,
    QFontMetricsF,
    QFocusEvent,
    QInputMethodEvent,
    QKeyEvent,
    QKeySequence,
    QMouseEvent,
    QPainter,
    QTextCharFormat,
    QTextCursor,
    QTextDocument,
    QTextDocumentFragment,
    QTextFormat,
    QTextObjectInterface,
)
from PySide6.QtWidgets import QTextEdit, QVBoxLayout, QWidget

from ..core.resources import Resource
from ..services.settings import InputSettings
from ..ui.events import Event, Handler
from .cursor_index import NodePosition
from .document_model import TOKEN_PLACEHOLDER, Document, ResourceToken
from .edit_surface import ClipboardData, Key, KeyEvent, ProjectionPatch
from .resource_input import ResourceInput

LOGGER = logging.getLogger(__name__)

CHIP_OBJECT_TYPE = QTextFormat.ObjectTypes.UserObject.value + 1
CHIP_ID_PROPERTY = QTextFormat.Property.UserProperty.value + 1
_CHIP_PADDING = 6.0
_CLOSE_WIDTH = 14.0

_KEY_MAP: dict[int, Key] = {
    Qt.Key.Key_Return.value: Key.ENTER,
    Qt.Key.Key_Enter.value: Key.ENTER,
    Qt.Key.Key_Backspace.value: Key.BACKSPACE,
    Qt.Key.Key_Delete.value: Key.DELETE,
    Qt.Key.Key_Up.value: Key.ARROW_UP,
    Qt.Key.Key_Down.value: Key.ARROW_DOWN,
    Qt.Key.Key_Left.value: Key.ARROW_LEFT,
    Qt.Key.Key_Right.value: Key.ARROW_RIGHT,
    Qt.Key.Key_Home.value: Key.HOME,
    Qt.Key.Key_End.value: Key.END,
}
# Keys Qt may still handle itself when the model leaves them alone.
_QT_NAVIGATION_KEYS = {
    Qt.Key.Key_Up.value,
    Qt.Key.Key_Down.value,
    Qt.Key.Key_PageUp.value,
    Qt.Key.Key_PageDown.value,
    Qt.Key.Key_Tab.value,
    Qt.Key.Key_Backtab.value,
}

# Shortcuts that only read or select; Qt handles them against the rendered text.
_QT_SELECTION_SHORTCUTS = (QKeySequence.StandardKey.Copy, QKeySequence.StandardKey.SelectAll)

_Unit = Union[str, tuple[str, str]]


def key_event_from_qt(event: QKeyEvent) -> KeyEvent:
    """Translate a ``QKeyEvent`` into the toolkit-neutral :class:`KeyEvent`."""

    modifiers = event.modifiers()
    key = _KEY_MAP.get(int(event.key()))
    text = "" if key is not None else event.text()
    if text and not text.isprintable():
        text = ""
    return KeyEvent(
        key=key,
        text=text,
        ctrl=bool(modifiers & Qt.KeyboardModifier.ControlModifier),
        meta=bool(modifiers & Qt.KeyboardModifier.MetaModifier),
        shift=bool(modifiers & Qt.KeyboardModifier.ShiftModifier),
        alt=bool(modifiers & Qt.KeyboardModifier.AltModifier),
    )


def render_units(document: Document) -> list[_Unit]:
    """Flatten a document into per-position render units."""

    units: list[_Unit] = []
    for node in document:
        if isinstance(node, ResourceToken):
            units.append(("chip", node.resource_id))
        else:
            units.extend(node.text)
    return units


class ChipObjectHandler(QObject, QTextObjectInterface):
    """Draws token chips inline and remembers where their close boxes are."""

    def __init__(self, widget: ResourceInputWidget) -> None:
        super().__init__(widget)
        self._widget = widget
        self._close_rects: dict[str, QRectF] = {}

    def intrinsicSize(self, doc: QTextDocument, posInDocument: int, format: QTextFormat) -> QSizeF:  # noqa: N802
        label = self._widget.chip_label(_chip_id(format))
        metrics = QFontMetricsF(doc.defaultFont())
        width = metrics.horizontalAdvance(label) + _CHIP_PADDING * 2 + _CLOSE_WIDTH
        return QSizeF(width, metrics.height() + 2)

    def drawObject(  # noqa: N802
        self,
        painter: QPainter,
        rect: QRectF,
        doc: QTextDocument,
        posInDocument: int,
        format: QTextFormat,
    ) -> None:
        resource_id = _chip_id(format)
        label = self._widget.chip_label(resource_id)
        body = rect.adjusted(1, 1, -1, -1)
        close_rect = QRectF(body.right() - _CLOSE_WIDTH, body.top(), _CLOSE_WIDTH, body.height())
        painter.save()
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QColor(56, 99, 163, 60))
        painter.drawRoundedRect(body, 4, 4)
        painter.setPen(QColor(32, 33, 36))
        text_rect = QRectF(body.left() + _CHIP_PADDING, body.top(), body.width() - _CHIP_PADDING - _CLOSE_WIDTH, body.height())
        painter.drawText(text_rect, Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignVCenter, label)
        painter.drawText(close_rect, Qt.AlignmentFlag.AlignCenter, "×")
        painter.restore()
        self._close_rects[resource_id] = close_rect

    def chip_at(self, point: QPointF) -> str | None:
        """Return the resource id whose close box contains ``point`` (document coordinates)."""

        for resource_id, rect in self._close_rects.items():
            if rect.contains(point):
                return resource_id
        return None

    def forget(self, resource_ids: Sequence[str]) -> None:
        for resource_id in resource_ids:
            self._close_rects.pop(resource_id, None)


class _InputTextEdit(QTextEdit):
    """``QTextEdit`` that defers every edit to the owning widget."""

    def __init__(self, owner: ResourceInputWidget) -> None:
        super().__init__(owner)
        self._owner = owner
        self.setAcceptRichText(False)
        self.setUndoRedoEnabled(False)
        self.setAcceptDrops(False)
        self.setTabChangesFocus(True)
        self.setContextMenuPolicy(Qt.ContextMenuPolicy.NoContextMenu)
        self.setAttribute(Qt.WidgetAttribute.WA_InputMethodEnabled, True)

    def keyPressEvent(self, event: QKeyEvent) -> None:  # noqa: N802
        if event.matches(QKeySequence.StandardKey.Paste):
            # Goes through insertFromMimeData, which hands the data to the model.
            self.paste()
            event.accept()
            return
        if event.matches(QKeySequence.StandardKey.Cut):
            self._owner.handle_cut()
            event.accept()
            return
        if self._owner.handle_key_press(event):
            event.accept()
            return
        if int(event.key()) in _QT_NAVIGATION_KEYS or any(event.matches(key) for key in _QT_SELECTION_SHORTCUTS):
            super().keyPressEvent(event)
            return
        event.accept()

    def canInsertFromMimeData(self, source: QMimeData) -> bool:  # noqa: N802
        return source.hasText() or source.hasHtml()

    def insertFromMimeData(self, source: QMimeData) -> None:  # noqa: N802
        self._owner.handle_mime_paste(source)

    def inputMethodEvent(self, event: QInputMethodEvent) -> None:  # noqa: N802
        self._owner.handle_input_method(event.preeditString(), event.commitString())
        event.accept()

    def mousePressEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        if self._owner.handle_chip_click(event.position()):
            event.accept()
            return
        super().mousePressEvent(event)

    def focusInEvent(self, event: QFocusEvent) -> None:  # noqa: N802
        super().focusInEvent(event)
        self._owner.handle_focus_in()

    def focusOutEvent(self, event: QFocusEvent) -> None:  # noqa: N802
        super().focusOutEvent(event)
        self._owner.handle_focus_out()


class ResourceInputWidget(QWidget):
    """Text input that renders resource tokens as atomic inline chips."""

    def __init__(
        self,
        parent: QWidget | None = None,
        *,
        settings: InputSettings | None = None,
        resource_input: ResourceInput | None = None,
    ) -> None:
        super().__init__(parent)
        self._settings = settings or InputSettings()
        self._input = resource_input or ResourceInput()
        self._rendered: list[_Unit] = []
        self._updating = False
        self._composing = False

        self._editor = _InputTextEdit(self)
        self._editor.setPlaceholderText(self._settings.placeholder)
        self._editor.document().setDefaultFont(QFont(self._settings.font_family, self._settings.font_size))
        self._chip_handler = ChipObjectHandler(self)
        self._editor.document().documentLayout().registerHandler(CHIP_OBJECT_TYPE, self._chip_handler)
        self._editor.cursorPositionChanged.connect(self._handle_cursor_moved)
        self._editor.selectionChanged.connect(self._handle_cursor_moved)

        self._blur_timer = QTimer(self)
        self._blur_timer.setSingleShot(True)
        self._blur_timer.setInterval(max(0, int(self._settings.blur_debounce_ms)))
        self._blur_timer.timeout.connect(self._input.blur)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._editor)

        self._input.add_render_listener(self._render)
        self._input.mount()
        self._render(ProjectionPatch())
        self._schedule_remeasure()

    # ------------------------------------------------------------------
    # Host operations
    # ------------------------------------------------------------------
    @property
    def resource_input(self) -> ResourceInput:
        return self._input

    @property
    def editor(self) -> QTextEdit:
        return self._editor

    def subscribe(self, event_type: type[Event], handler: Handler[Any]) -> None:
        self._input.subscribe(event_type, handler)

    def set_resources(self, resources: Sequence[Resource | dict[str, Any]]) -> None:
        self._input.set_resources(resources)

    def set_content(self, storage: str) -> None:
        self._input.set_content(storage)

    def focus(self) -> None:
        self._blur_timer.stop()
        self._editor.setFocus(Qt.FocusReason.OtherFocusReason)
        self._input.focus()

    def blur(self) -> None:
        self._blur_timer.stop()
        self._editor.clearFocus()
        self._input.blur()

    def set_cursor_position(self, offset: int) -> NodePosition | None:
        return self._input.set_cursor_position(offset)

    def get_storage_content(self) -> str:
        return self._input.get_storage_content()

    def get_display_content(self) -> str:
        return self._input.get_display_content()

    def unmount(self) -> None:
        self._blur_timer.stop()
        self._input.unmount()

    def chip_label(self, resource_id: str) -> str:
        chip = self._input.chips.get(resource_id)
        return chip.label if chip is not None else resource_id

    # ------------------------------------------------------------------
    # Event routing (called by the inner text edit)
    # ------------------------------------------------------------------
    def handle_key_press(self, event: QKeyEvent) -> bool:
        if self._composing:
            return False
        return self._input.handle_key(key_event_from_qt(event))

    def handle_mime_paste(self, source: QMimeData) -> None:
        formats: dict[str, Any] = {}
        if source.hasText():
            formats["text/plain"] = source.text()
        elif source.hasHtml():
            formats["text/plain"] = QTextDocumentFragment.fromHtml(source.html()).toPlainText()
        self._input.handle_paste(ClipboardData(formats))

    def handle_cut(self) -> None:
        start, end = self._input.selection_span()
        if start == end:
            return
        self._editor.copy()
        self._input.handle_key(KeyEvent(key=Key.BACKSPACE))

    def handle_input_method(self, preedit: str, commit: str) -> None:
        if preedit and not self._composing:
            self._composing = True
            self._input.begin_composition()
            return
        if self._composing and (commit or not preedit):
            self._composing = False
            self._input.end_composition(commit)
            return
        if commit:
            self._input.insert_text(commit)

    def handle_chip_click(self, position: QPointF) -> bool:
        point = QPointF(
            position.x() + self._editor.horizontalScrollBar().value(),
            position.y() + self._editor.verticalScrollBar().value(),
        )
        resource_id = self._chip_handler.chip_at(point)
        if resource_id is None:
            return False
        return self._input.remove_resource(resource_id)

    def handle_focus_in(self) -> None:
        self._blur_timer.stop()
        self._input.focus()

    def handle_focus_out(self) -> None:
        # A click on a chip's close box briefly steals focus; wait before blurring.
        self._blur_timer.start()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def _render(self, patch: ProjectionPatch) -> None:
        document = self._input.document
        if document is None:
            return
        units = render_units(document)
        previous = self._rendered
        prefix = 0
        limit = min(len(previous), len(units))
        while prefix < limit and previous[prefix] == units[prefix]:
            prefix += 1
        suffix = 0
        while suffix < limit - prefix and previous[-1 - suffix] == units[-1 - suffix]:
            suffix += 1

        self._updating = True
        try:
            cursor = QTextCursor(self._editor.document())
            structural = prefix != len(previous) - suffix or prefix != len(units) - suffix
            if structural:
                cursor.setPosition(prefix)
                cursor.setPosition(len(previous) - suffix, QTextCursor.MoveMode.KeepAnchor)
                cursor.removeSelectedText()
                self._insert_units(cursor, units[prefix : len(units) - suffix])
            for resource_id in patch.relabelled:
                self._restyle_chip(cursor, units, resource_id)
            self._chip_handler.forget(patch.removed)
            self._rendered = units
            self._sync_cursor()
        finally:
            self._updating = False
        if structural or patch.relabelled:
            self._schedule_remeasure()

    def _insert_units(self, cursor: QTextCursor, units: Sequence[_Unit]) -> None:
        buffer: list[str] = []
        plain = QTextCharFormat()
        for unit in units:
            if isinstance(unit, str):
                buffer.append(unit)
                continue
            if buffer:
                cursor.insertText("".join(buffer), plain)
                buffer.clear()
            cursor.insertText(TOKEN_PLACEHOLDER, self._chip_format(unit[1]))
        if buffer:
            cursor.insertText("".join(buffer), plain)

    def _restyle_chip(self, cursor: QTextCursor, units: Sequence[_Unit], resource_id: str) -> None:
        try:
            position = units.index(("chip", resource_id))
        except ValueError:
            return
        cursor.setPosition(position)
        cursor.setPosition(position + 1, QTextCursor.MoveMode.KeepAnchor)
        cursor.setCharFormat(self._chip_format(resource_id))

    def _chip_format(self, resource_id: str) -> QTextCharFormat:
        chip_format = QTextCharFormat()
        chip_format.setObjectType(CHIP_OBJECT_TYPE)
        chip_format.setProperty(CHIP_ID_PROPERTY, resource_id)
        chip = self._input.chips.get(resource_id)
        if chip is not None:
            chip_format.setToolTip(chip.tooltip)
        return chip_format

    def _sync_cursor(self) -> None:
        start, end = self._input.selection_span()
        caret = self._input.caret
        anchor = start if caret == end else end
        cursor = self._editor.textCursor()
        cursor.setPosition(anchor)
        cursor.setPosition(caret, QTextCursor.MoveMode.KeepAnchor)
        self._editor.setTextCursor(cursor)

    def _handle_cursor_moved(self) -> None:
        if self._updating:
            return
        cursor = self._editor.textCursor()
        self._input.set_cursor_position(cursor.position(), anchor=cursor.anchor())

    def _schedule_remeasure(self) -> None:
        # Geometry is only valid after Qt has laid out the patched document.
        QTimer.singleShot(0, self._remeasure)

    def _remeasure(self) -> None:
        document = self._editor.document()
        metrics = QFontMetricsF(document.defaultFont())
        content_height = document.documentLayout().documentSize().height()
        max_height = metrics.lineSpacing() * max(1, self._settings.max_visible_lines) + document.documentMargin() * 2
        frame = self._editor.frameWidth() * 2
        target = int(min(content_height, max_height) + frame)
        if target != self._editor.height():
            self._editor.setFixedHeight(max(target, int(metrics.lineSpacing()) + frame))


def _chip_id(text_format: QTextFormat) -> str:
    value = text_format.property(CHIP_ID_PROPERTY)
    return str(value) if value is not None else ""


__all__ = [
    "CHIP_OBJECT_TYPE",
    "ChipObjectHandler",
    "ResourceInputWidget",
    "key_event_from_qt",
    "render_units",
]
