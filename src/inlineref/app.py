"""Standalone launcher showing the resource input in a window."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from .services.settings import InputSettings, SettingsStore
from .utils.logging import setup_logging

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_LOGGER = logging.getLogger(__name__)


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> InputSettings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        return active_store.load(overrides=overrides)
    except OSError as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        return InputSettings()


def load_resources(path: Path) -> list[dict[str, Any]]:
    """Read a JSON array of resource payloads (host format)."""

    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("resources", [])
    if not isinstance(payload, list):
        raise ValueError(f"{path} must contain a JSON array of resources")
    return payload


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the ``inlineref`` console script."""

    args = _parse_cli_args(argv)
    settings_path = args.settings_path or os.environ.get("INLINEREF_SETTINGS_PATH")
    store = SettingsStore(Path(settings_path).expanduser() if settings_path else None)
    settings = load_settings(store=store)
    setup_logging(settings, debug=args.debug or _env_flag("INLINEREF_DEBUG"))

    resources: list[dict[str, Any]] = []
    if args.resources:
        try:
            resources = load_resources(Path(args.resources).expanduser())
        except (OSError, ValueError) as exc:
            print(f"Unable to load resources: {exc}", file=sys.stderr)
            return 2

    from PySide6.QtWidgets import QApplication

    from .editor.input_widget import ResourceInputWidget
    from .editor.resource_input import ResourceInput
    from .services.bridge import ResourceInputBridge
    from .services.transport import resolve_transport

    app = QApplication.instance() or QApplication(sys.argv[:1])
    app.setApplicationName("inlineref")

    resource_input = ResourceInput()
    bridge = ResourceInputBridge(resource_input, resolve_transport(None))
    widget = ResourceInputWidget(settings=settings, resource_input=resource_input)
    widget.setWindowTitle("inlineref")
    widget.resize(560, 120)
    if args.content:
        widget.set_content(args.content)
    widget.set_resources(resources)
    widget.show()
    widget.focus()

    _LOGGER.info("Using %s transport", bridge.transport.name)
    exit_code = app.exec()
    widget.unmount()
    return int(exit_code)


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="inlineref", description="Resource-aware text input")
    parser.add_argument("--settings", dest="settings_path", help="Path to the settings JSON file")
    parser.add_argument("--resources", help="JSON file with the initial resource list")
    parser.add_argument("--content", help="Initial storage-format content")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser.parse_args(list(argv) if argv is not None else None)


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


if __name__ == "__main__":  # pragma: no cover - manual launch
    raise SystemExit(main())
