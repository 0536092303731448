"""Application entry point tests."""

from __future__ import annotations

import json

import pytest

from inlineref import app
from inlineref.services.settings import InputSettings, SettingsStore


def test_parse_cli_args():
    args = app._parse_cli_args(["--debug", "--settings", "s.json", "--resources", "r.json", "--content", "hi"])
    assert args.debug is True
    assert args.settings_path == "s.json"
    assert args.resources == "r.json"
    assert args.content == "hi"


def test_load_resources_accepts_list_or_wrapped_object(tmp_path):
    listing = tmp_path / "list.json"
    listing.write_text(json.dumps([{"id": "a", "type": "file"}]), encoding="utf-8")
    wrapped = tmp_path / "wrapped.json"
    wrapped.write_text(json.dumps({"resources": [{"id": "b", "type": "image"}]}), encoding="utf-8")
    assert app.load_resources(listing)[0]["id"] == "a"
    assert app.load_resources(wrapped)[0]["id"] == "b"


def test_load_resources_rejects_scalars(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("42", encoding="utf-8")
    with pytest.raises(ValueError):
        app.load_resources(path)


def test_load_settings_uses_store(isolated_settings):
    SettingsStore(isolated_settings).save(InputSettings(font_size=18))
    assert app.load_settings(isolated_settings).font_size == 18


def test_env_flag(monkeypatch):
    monkeypatch.setenv("INLINEREF_DEBUG", "On")
    assert app._env_flag("INLINEREF_DEBUG")
    monkeypatch.delenv("INLINEREF_DEBUG")
    assert not app._env_flag("INLINEREF_DEBUG")
    assert app._env_flag("INLINEREF_DEBUG", default=True)


def test_main_reports_unreadable_resources(tmp_path, isolated_settings, monkeypatch, capsys):
    monkeypatch.setattr(app, "setup_logging", lambda *args, **kwargs: None)
    missing = tmp_path / "missing.json"
    exit_code = app.main(["--settings", str(isolated_settings), "--resources", str(missing)])
    assert exit_code == 2
    assert "Unable to load resources" in capsys.readouterr().err
