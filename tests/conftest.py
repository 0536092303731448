"""Shared pytest fixtures."""

from __future__ import annotations

import os

import pytest

# Run Qt headless when no display is available.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from inlineref.core.resources import Resource, ResourceType


@pytest.fixture
def code_resource() -> Resource:
    return Resource(
        id="r1",
        type=ResourceType.CODE,
        file_path="src/app/main.ts",
        language="typescript",
        start_line=10,
        end_line=20,
    )


@pytest.fixture
def file_resource() -> Resource:
    return Resource(id="f1", type=ResourceType.FILE, file_path="docs/readme.md")


@pytest.fixture
def image_resource() -> Resource:
    return Resource(id="img1", type=ResourceType.IMAGE, name="screenshot.png")


@pytest.fixture
def folder_resource() -> Resource:
    return Resource(id="dir1", type=ResourceType.FOLDER, file_path="src/app")


@pytest.fixture
def isolated_settings(tmp_path, monkeypatch):
    """Point settings and logs at a temp dir and clear env overrides."""

    for name in (
        "INLINEREF_PLACEHOLDER",
        "INLINEREF_FONT_FAMILY",
        "INLINEREF_DEBUG_LOGGING",
        "INLINEREF_LOG_HOST_MESSAGES",
        "INLINEREF_BLUR_DEBOUNCE_MS",
        "INLINEREF_MAX_VISIBLE_LINES",
        "INLINEREF_FONT_SIZE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("INLINEREF_LOG_DIR", str(tmp_path / "logs"))
    return tmp_path / "settings.json"
