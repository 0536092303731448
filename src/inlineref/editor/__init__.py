"""Editor package: document model, serialization, sync and editing."""

from importlib import import_module
from typing import Any

from . import cursor_index, document_model, edit_surface, resource_input, serializer, sync_engine

__all__ = [
    "cursor_index",
    "document_model",
    "edit_surface",
    "resource_input",
    "serializer",
    "sync_engine",
]


def __getattr__(name: str) -> Any:
    # The Qt widget is imported lazily so headless users never load PySide6.
    if name == "input_widget":
        module = import_module(f"{__name__}.{name}")
        globals()[name] = module
        return module
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
