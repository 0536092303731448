"""Logging setup tests."""

from __future__ import annotations

import logging
import logging.handlers

import pytest

from inlineref.services.settings import InputSettings
from inlineref.utils import logging as logging_utils


@pytest.fixture(autouse=True)
def _restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    for name in logging_utils._NOISY_LOGGERS + logging_utils._HOST_MESSAGE_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)


def _flush_root() -> None:
    for handler in logging.getLogger().handlers:
        handler.flush()


def test_setup_logging_writes_to_log_dir(tmp_path):
    path = logging_utils.setup_logging(InputSettings(debug_logging=True), log_dir=tmp_path, console=False)
    assert path == tmp_path / "inlineref.log"
    assert logging.getLogger().level == logging.DEBUG

    logging.getLogger("inlineref.test").debug("hello from test")
    _flush_root()
    assert "hello from test" in path.read_text(encoding="utf-8")


def test_setup_logging_defaults_to_info(tmp_path):
    path = logging_utils.setup_logging(log_dir=tmp_path, console=False)
    assert logging.getLogger().level == logging.INFO

    logging.getLogger("inlineref.test").debug("hidden detail")
    _flush_root()
    assert "hidden detail" not in path.read_text(encoding="utf-8")


def test_debug_flag_overrides_settings(tmp_path):
    logging_utils.setup_logging(InputSettings(debug_logging=False), debug=True, log_dir=tmp_path, console=False)
    assert logging.getLogger().level == logging.DEBUG


def test_setup_logging_honours_env_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("INLINEREF_LOG_DIR", str(tmp_path / "env"))
    path = logging_utils.setup_logging(console=False)
    assert path.parent == tmp_path / "env"


def test_second_call_replaces_handlers(tmp_path):
    logging_utils.setup_logging(log_dir=tmp_path / "a", console=False)
    second = logging_utils.setup_logging(log_dir=tmp_path / "b", console=False)

    file_handlers = [
        handler
        for handler in logging.getLogger().handlers
        if isinstance(handler, logging.handlers.RotatingFileHandler)
    ]
    assert [handler.baseFilename for handler in file_handlers] == [str(second)]


def test_host_messages_traced_at_info_level(tmp_path):
    path = logging_utils.setup_logging(InputSettings(log_host_messages=True), log_dir=tmp_path, console=False)
    assert logging.getLogger().level == logging.INFO
    assert logging.getLogger("inlineref.services.bridge").level == logging.DEBUG
    assert logging.getLogger("inlineref.services.transport").level == logging.DEBUG

    logging.getLogger("inlineref.services.bridge").debug("Received host message: %r", {"type": "clear"})
    _flush_root()
    assert "Received host message" in path.read_text(encoding="utf-8")


def test_host_message_loggers_follow_root_when_disabled(tmp_path):
    logging_utils.setup_logging(InputSettings(log_host_messages=True), log_dir=tmp_path, console=False)
    logging_utils.setup_logging(InputSettings(log_host_messages=False), log_dir=tmp_path, console=False)
    assert logging.getLogger("inlineref.services.bridge").level == logging.NOTSET
    assert not logging.getLogger("inlineref.services.bridge").isEnabledFor(logging.DEBUG)


def test_event_bus_logger_is_quietened(tmp_path):
    logging_utils.setup_logging(debug=True, log_dir=tmp_path, console=False)
    assert logging.getLogger("inlineref.ui.events").level == logging.WARNING
