"""Storage and display renderings of a :class:`Document`.

The storage format interleaves literal text with marker-wrapped resource
ids::

    hello <MARKER>r1<MARKER> world

Marker format: ``RESOURCE_MARKER{resource_id}RESOURCE_MARKER``. Resource ids are
generated by the host, so the marker (U+2063 INVISIBLE SEPARATOR) never occurs
inside one.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from ..core.resources import Resource, ResourceType, index_resources
from .document_model import ContentNode, Document, ResourceToken, TextRun

LOGGER = logging.getLogger(__name__)

RESOURCE_MARKER = "\u2063"

ResourceLookup = Mapping[str, Resource] | Iterable[Resource]


def storage_marker(resource_id: str, *, marker: str = RESOURCE_MARKER) -> str:
    """Return the storage form of a single token."""

    return f"{marker}{resource_id}{marker}"


def to_storage(document: Document, *, marker: str = RESOURCE_MARKER) -> str:
    """Serialize ``document`` into the canonical storage string."""

    parts: list[str] = []
    for node in document:
        if isinstance(node, ResourceToken):
            parts.append(storage_marker(node.resource_id, marker=marker))
        else:
            parts.append(node.text)
    return "".join(parts)


def from_storage(text: str, resources: ResourceLookup, *, marker: str = RESOURCE_MARKER) -> Document:
    """Parse a storage string back into a :class:`Document`.

    Marker spans naming an unknown (or already used) resource id are kept as
    literal text. Scanning then resumes at the closing marker, which may open
    a valid span of its own.
    """

    lookup = _as_lookup(resources)
    nodes: list[ContentNode] = []
    pending: list[str] = []
    seen: set[str] = set()
    width = len(marker)
    cursor = 0
    text = text or ""

    while True:
        start = text.find(marker, cursor)
        if start == -1:
            break
        end = text.find(marker, start + width)
        if end == -1:
            break
        resource_id = text[start + width : end]
        if resource_id and resource_id in lookup and resource_id not in seen:
            pending.append(text[cursor:start])
            nodes.append(TextRun("".join(pending)))
            pending.clear()
            nodes.append(ResourceToken(resource_id))
            seen.add(resource_id)
            cursor = end + width
            continue
        _log_unresolved(resource_id, duplicate=resource_id in seen)
        pending.append(text[cursor : start + width])
        cursor = start + width

    pending.append(text[cursor:])
    nodes.append(TextRun("".join(pending)))
    return Document(nodes)


def to_display(document: Document, resources: ResourceLookup) -> str:
    """Render ``document`` with each token replaced by a readable description."""

    lookup = _as_lookup(resources)
    parts: list[str] = []
    for node in document:
        if isinstance(node, TextRun):
            parts.append(node.text)
            continue
        resource = lookup.get(node.resource_id)
        if resource is None:
            parts.append(f"[ref] {node.resource_id}")
        else:
            parts.append(describe_resource(resource))
    return "".join(parts)


def describe_resource(resource: Resource) -> str:
    """Return the display description of a single resource."""

    if resource.type is ResourceType.IMAGE:
        return "[image-ref]"
    if resource.type is ResourceType.CODE:
        path = resource.file_path or resource.name or resource.id
        return f"[code-ref] {path}{_line_suffix(resource)}"
    label = resource.file_path or resource.name or resource.id
    if resource.type is ResourceType.FOLDER:
        return f"[folder-ref] {label}"
    return f"[file-ref] {label}"


def chip_label(resource: Resource | None, resource_id: str) -> str:
    """Return the short label rendered inside an inline chip."""

    if resource is None:
        return resource_id
    if resource.type is ResourceType.IMAGE:
        return resource.name or "image"
    source = resource.name or resource.file_path or resource.id
    label = source.replace("\\", "/").rsplit("/", 1)[-1] or source
    if resource.type is ResourceType.CODE:
        return f"{label}{_line_suffix(resource)}"
    return label


def _line_suffix(resource: Resource) -> str:
    if resource.start_line is None:
        return ""
    if resource.end_line is None:
        return f"({resource.start_line})"
    return f"({resource.start_line}-{resource.end_line})"


def _as_lookup(resources: ResourceLookup) -> Mapping[str, Resource]:
    if isinstance(resources, Mapping):
        return resources
    return index_resources(resources)


def _log_unresolved(resource_id: str, *, duplicate: bool) -> None:
    if not resource_id or any(char.isspace() for char in resource_id):
        # Text between a closing marker and the next opening one.
        LOGGER.debug("Skipping non-id marker span of %d chars", len(resource_id))
        return
    if duplicate:
        LOGGER.warning("Resource %s referenced twice in storage text; keeping literal marker", resource_id)
    else:
        LOGGER.warning("Unknown resource %s in storage text; keeping literal marker", resource_id)


__all__ = [
    "RESOURCE_MARKER",
    "chip_label",
    "describe_resource",
    "from_storage",
    "storage_marker",
    "to_display",
    "to_storage",
]
