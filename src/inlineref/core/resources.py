"""Resource records referenced by inline tokens."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

LOGGER = logging.getLogger(__name__)

# Host payload keys (camelCase) mapped onto dataclass fields.
_FIELD_ALIASES: Mapping[str, str] = {
    "filePath": "file_path",
    "languageId": "language_id",
    "startLine": "start_line",
    "endLine": "end_line",
}


class ResourceType(str, Enum):
    """Kinds of resources that can be referenced inline."""

    CODE = "code"
    FILE = "file"
    IMAGE = "image"
    FOLDER = "folder"


@dataclass(slots=True, frozen=True)
class Resource:
    """External entity owned by the host and referenced by id."""

    id: str
    type: ResourceType
    file_path: str | None = None
    language: str | None = None
    language_id: str | None = None
    start_line: int | None = None
    end_line: int | None = None
    name: str | None = None

    @property
    def normalized_path(self) -> str | None:
        """Return :attr:`file_path` normalized for comparisons."""

        if not self.file_path:
            return None
        return normalize_path(self.file_path)

    def to_payload(self) -> dict[str, Any]:
        """Serialize the resource using the host's camelCase keys."""

        payload: dict[str, Any] = {"id": self.id, "type": self.type.value}
        optional = {
            "filePath": self.file_path,
            "language": self.language,
            "languageId": self.language_id,
            "startLine": self.start_line,
            "endLine": self.end_line,
            "name": self.name,
        }
        payload.update({key: value for key, value in optional.items() if value is not None})
        return payload

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> Resource:
        """Build a resource from a host payload.

        Raises ``ValueError`` when the id is missing or the type is unknown.
        """

        data: dict[str, Any] = {}
        for key, value in payload.items():
            data[_FIELD_ALIASES.get(key, key)] = value
        resource_id = data.get("id")
        if not resource_id:
            raise ValueError("Resource payloads require a non-empty id")
        try:
            resource_type = ResourceType(str(data.get("type", "")).lower())
        except ValueError as exc:
            raise ValueError(f"Unsupported resource type: {data.get('type')!r}") from exc
        return cls(
            id=str(resource_id),
            type=resource_type,
            file_path=_optional_str(data.get("file_path")),
            language=_optional_str(data.get("language")),
            language_id=_optional_str(data.get("language_id")),
            start_line=_optional_int(data.get("start_line")),
            end_line=_optional_int(data.get("end_line")),
            name=_optional_str(data.get("name")),
        )


def normalize_path(path: str) -> str:
    """Unify path separators and case so equal paths compare equal."""

    return path.replace("\\", "/").lower()


def coerce_resources(items: Iterable[Resource | Mapping[str, Any]] | None) -> list[Resource]:
    """Coerce host-supplied entries into :class:`Resource` objects.

    Invalid entries are skipped with a warning so one bad payload does not
    drop the whole list.
    """

    resources: list[Resource] = []
    for item in items or ():
        if isinstance(item, Resource):
            resources.append(item)
            continue
        if not isinstance(item, Mapping):
            LOGGER.warning("Ignoring resource entry of type %s", type(item).__name__)
            continue
        try:
            resources.append(Resource.from_mapping(item))
        except ValueError as exc:
            LOGGER.warning("Ignoring invalid resource payload: %s", exc)
    return resources


def index_resources(resources: Iterable[Resource]) -> dict[str, Resource]:
    """Return a lookup keyed by resource id; the first occurrence wins."""

    lookup: dict[str, Resource] = {}
    for resource in resources:
        lookup.setdefault(resource.id, resource)
    return lookup


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text or None


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        LOGGER.debug("Dropping non-integer line number %r", value)
        return None


__all__ = [
    "Resource",
    "ResourceType",
    "coerce_resources",
    "index_resources",
    "normalize_path",
]
