"""Settings dataclass and JSON persistence for the resource input."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

__all__ = ["InputSettings", "SettingsStore"]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".inlineref"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_ENV_OVERRIDES: Mapping[str, str] = {
    "INLINEREF_PLACEHOLDER": "placeholder",
    "INLINEREF_FONT_FAMILY": "font_family",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "INLINEREF_DEBUG_LOGGING": "debug_logging",
    "INLINEREF_LOG_HOST_MESSAGES": "log_host_messages",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "INLINEREF_BLUR_DEBOUNCE_MS": "blur_debounce_ms",
    "INLINEREF_MAX_VISIBLE_LINES": "max_visible_lines",
    "INLINEREF_FONT_SIZE": "font_size",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}


@dataclass(slots=True)
class InputSettings:
    """User-configurable behaviour of the resource input."""

    placeholder: str = "Ask a question, Ctrl+Enter for a new line"
    blur_debounce_ms: int = 200
    max_visible_lines: int = 8
    font_family: str = "JetBrains Mono"
    font_size: int = 13
    debug_logging: bool = False
    log_host_messages: bool = False


class SettingsStore:
    """Persistence adapter for :class:`InputSettings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> InputSettings:
        """Load settings from disk, then apply runtime and environment overrides."""

        payload = self._read_payload()
        settings = InputSettings()
        if payload:
            data = _filter_fields(payload)
            try:
                settings = InputSettings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = InputSettings()
            if payload.get("version") != _SETTINGS_VERSION:
                try:
                    self.save(settings)
                except OSError as exc:  # pragma: no cover - depends on filesystem
                    LOGGER.warning("Failed to migrate settings payload: %s", exc)

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")
        return self._apply_env_overrides(settings)

    def save(self, settings: InputSettings) -> Path:
        """Persist settings to disk with atomic file writes."""

        data = asdict(settings)
        data["version"] = _SETTINGS_VERSION
        body = json.dumps(data, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not contain an object", self._path)
            return {}
        return payload

    def _apply_overrides(
        self,
        settings: InputSettings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> InputSettings:
        allowed = {field.name for field in fields(InputSettings)}
        filtered = {key: value for key, value in overrides.items() if key in allowed and value is not None}
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: InputSettings) -> InputSettings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        for env_name, field_name in _INT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = int(value, 10)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid integer", env_name, value)
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {field.name for field in fields(InputSettings)}
    return {key: value for key, value in payload.items() if key in allowed}
