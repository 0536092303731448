"""Settings persistence tests."""

from __future__ import annotations

import json

from inlineref.services.settings import InputSettings, SettingsStore


def test_missing_file_yields_defaults(isolated_settings):
    settings = SettingsStore(isolated_settings).load()
    assert settings == InputSettings()
    assert settings.blur_debounce_ms == 200


def test_save_then_load_roundtrip(isolated_settings):
    store = SettingsStore(isolated_settings)
    store.save(InputSettings(placeholder="Type here", max_visible_lines=4))
    payload = json.loads(isolated_settings.read_text(encoding="utf-8"))
    assert payload["version"] == 1
    loaded = store.load()
    assert loaded.placeholder == "Type here"
    assert loaded.max_visible_lines == 4


def test_unknown_keys_are_ignored_and_file_migrated(isolated_settings):
    isolated_settings.write_text(json.dumps({"font_size": 20, "theme": "dark"}), encoding="utf-8")
    settings = SettingsStore(isolated_settings).load()
    assert settings.font_size == 20
    migrated = json.loads(isolated_settings.read_text(encoding="utf-8"))
    assert migrated["version"] == 1
    assert "theme" not in migrated


def test_invalid_json_falls_back_to_defaults(isolated_settings, caplog):
    isolated_settings.write_text("{not json", encoding="utf-8")
    assert SettingsStore(isolated_settings).load() == InputSettings()
    assert "not valid JSON" in caplog.text


def test_non_object_payload_falls_back_to_defaults(isolated_settings):
    isolated_settings.write_text("[1, 2]", encoding="utf-8")
    assert SettingsStore(isolated_settings).load() == InputSettings()


def test_runtime_overrides_apply_before_environment(isolated_settings, monkeypatch):
    monkeypatch.setenv("INLINEREF_FONT_SIZE", "16")
    monkeypatch.setenv("INLINEREF_DEBUG_LOGGING", "yes")
    settings = SettingsStore(isolated_settings).load(overrides={"font_size": 11, "placeholder": "cli", "bogus": 1})
    assert settings.placeholder == "cli"
    assert settings.font_size == 16
    assert settings.debug_logging is True


def test_invalid_integer_override_is_skipped(isolated_settings, monkeypatch, caplog):
    monkeypatch.setenv("INLINEREF_BLUR_DEBOUNCE_MS", "soon")
    settings = SettingsStore(isolated_settings).load()
    assert settings.blur_debounce_ms == 200
    assert "INLINEREF_BLUR_DEBOUNCE_MS" in caplog.text
