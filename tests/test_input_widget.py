"""Qt input widget tests (headless via pytest-qt)."""

from __future__ import annotations

import pytest
from PySide6.QtCore import QEvent, QMimeData, Qt
from PySide6.QtGui import QKeyEvent, QTextCursor
from PySide6.QtWidgets import QApplication

from inlineref.editor.document_model import Document, ResourceToken, TextRun
from inlineref.editor.edit_surface import Key, KeyEvent
from inlineref.editor.input_widget import (
    CHIP_ID_PROPERTY,
    CHIP_OBJECT_TYPE,
    ResourceInputWidget,
    key_event_from_qt,
    render_units,
)
from inlineref.editor.serializer import RESOURCE_MARKER
from inlineref.services.settings import InputSettings
from inlineref.ui.events import ResourceRemoved, SubmitRequested

M = RESOURCE_MARKER


@pytest.fixture(autouse=True)
def _ensure_qapp(qapp):  # pragma: no cover - pytest-qt provides the fixture
    """Guarantee a running QApplication when PySide6 is installed."""

    return qapp


@pytest.fixture
def widget(qtbot) -> ResourceInputWidget:
    instance = ResourceInputWidget(settings=InputSettings(blur_debounce_ms=0))
    qtbot.addWidget(instance)
    return instance


def _qt_text(widget: ResourceInputWidget) -> str:
    return widget.editor.toPlainText()


def test_render_units_flatten_tokens():
    doc = Document([TextRun("ab"), ResourceToken("r1")])
    assert render_units(doc) == ["a", "b", ("chip", "r1")]


def test_key_event_translation():
    enter = QKeyEvent(QEvent.Type.KeyPress, Qt.Key.Key_Return, Qt.KeyboardModifier.ControlModifier, "\r")
    assert key_event_from_qt(enter) == KeyEvent(key=Key.ENTER, ctrl=True)

    letter = QKeyEvent(QEvent.Type.KeyPress, Qt.Key.Key_A, Qt.KeyboardModifier.NoModifier, "a")
    assert key_event_from_qt(letter) == KeyEvent(text="a")


def test_resources_render_as_single_position_chips(widget):
    widget.set_content("see ")
    widget.set_resources([{"id": "r1", "type": "file", "filePath": "docs/a.md"}])

    document = widget.resource_input.document
    assert widget.get_storage_content() == f"see {M}r1{M}"
    assert _qt_text(widget) == document.flattened_text()

    cursor = QTextCursor(widget.editor.document())
    cursor.setPosition(document.length)
    chip_format = cursor.charFormat()
    assert chip_format.objectType() == CHIP_OBJECT_TYPE
    assert chip_format.property(CHIP_ID_PROPERTY) == "r1"
    assert widget.chip_label("r1") == "a.md"


def test_typing_updates_model_and_view(widget, qtbot):
    qtbot.keyClicks(widget.editor, "hi")
    assert widget.get_storage_content() == "hi"
    assert _qt_text(widget) == "hi"


def test_enter_requests_submit(widget, qtbot):
    submitted: list[SubmitRequested] = []
    widget.subscribe(SubmitRequested, submitted.append)
    qtbot.keyClicks(widget.editor, "why")
    qtbot.keyClick(widget.editor, Qt.Key.Key_Return)
    assert submitted == [SubmitRequested(storage="why", display="why")]
    assert widget.get_storage_content() == "why"


def test_ctrl_enter_inserts_newline(widget, qtbot):
    qtbot.keyClicks(widget.editor, "a")
    qtbot.keyClick(widget.editor, Qt.Key.Key_Return, Qt.KeyboardModifier.ControlModifier)
    assert widget.get_storage_content() == "a\n"
    assert _qt_text(widget) == "a\n"


def test_backspace_removes_chip_whole(widget, qtbot):
    removed: list[ResourceRemoved] = []
    widget.subscribe(ResourceRemoved, removed.append)
    widget.set_content("x")
    widget.set_resources([{"id": "r1", "type": "image"}])
    widget.set_cursor_position(2)

    qtbot.keyClick(widget.editor, Qt.Key.Key_Backspace)

    assert removed == [ResourceRemoved(resource_id="r1")]
    assert _qt_text(widget) == "x"
    assert widget.editor.textCursor().position() == 1


def test_view_tracks_rekey_without_changing_length(widget):
    widget.set_resources([{"id": "r1", "type": "code", "filePath": "a.ts", "startLine": 1, "endLine": 2}])
    widget.set_resources([{"id": "r2", "type": "code", "filePath": "A.TS", "startLine": 5, "endLine": 6}])
    assert widget.get_storage_content() == f"{M}r2{M}"
    assert len(_qt_text(widget)) == 1
    assert widget.chip_label("r2") == "A.TS(5-6)"


def test_blur_is_debounced_until_timer_fires(widget, qtbot):
    widget.focus()
    assert widget.resource_input.has_focus
    widget.handle_focus_out()
    qtbot.waitUntil(lambda: not widget.resource_input.has_focus, timeout=1000)


def test_focus_in_cancels_pending_blur(qtbot):
    instance = ResourceInputWidget(settings=InputSettings(blur_debounce_ms=50))
    qtbot.addWidget(instance)
    instance.focus()
    instance.handle_focus_out()
    instance.handle_focus_in()
    qtbot.wait(100)
    assert instance.resource_input.has_focus


def test_unmount_stops_rendering(widget, qtbot):
    widget.unmount()
    assert widget.get_storage_content() == ""
    qtbot.keyClicks(widget.editor, "ignored")
    assert widget.get_storage_content() == ""


def test_ctrl_v_pastes_clipboard_text(widget, qtbot):
    QApplication.clipboard().setText("pasted")
    qtbot.keyClick(widget.editor, Qt.Key.Key_V, Qt.KeyboardModifier.ControlModifier)
    assert widget.get_storage_content() == "pasted"
    assert _qt_text(widget) == "pasted"


def test_ctrl_v_drops_storage_markers(widget, qtbot):
    widget.set_resources([{"id": "r1", "type": "image"}])
    widget.resource_input.clear()
    QApplication.clipboard().setText(f"see {M}r1{M}")
    qtbot.keyClick(widget.editor, Qt.Key.Key_V, Qt.KeyboardModifier.ControlModifier)
    assert widget.get_storage_content() == "see r1"
    assert widget.resource_input.document.tokens().ids() == []


def test_select_all_then_cut_empties_input(widget, qtbot):
    qtbot.keyClicks(widget.editor, "hello")
    qtbot.keyClick(widget.editor, Qt.Key.Key_A, Qt.KeyboardModifier.ControlModifier)
    assert widget.resource_input.selection_span() == (0, 5)

    qtbot.keyClick(widget.editor, Qt.Key.Key_X, Qt.KeyboardModifier.ControlModifier)
    assert widget.get_storage_content() == ""
    assert _qt_text(widget) == ""
    assert QApplication.clipboard().text() == "hello"


def test_cut_without_selection_changes_nothing(widget, qtbot):
    qtbot.keyClicks(widget.editor, "keep")
    qtbot.keyClick(widget.editor, Qt.Key.Key_X, Qt.KeyboardModifier.ControlModifier)
    assert widget.get_storage_content() == "keep"


def test_html_only_paste_is_converted_by_qt(widget):
    source = QMimeData()
    source.setHtml("<style>p { color: red; }</style><p>a &amp; b</p><script>x()</script>")
    widget.handle_mime_paste(source)
    storage = widget.get_storage_content()
    assert storage.strip() == "a & b"
    assert "color" not in storage and "x()" not in storage


def test_editor_package_exposes_widget_module_lazily():
    import inlineref.editor as editor_package
    from inlineref.editor import input_widget

    assert editor_package.input_widget is input_widget
    with pytest.raises(AttributeError):
        editor_package.missing_module
