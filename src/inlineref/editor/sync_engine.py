"""Reconciles the host's resource list with the tokens of a document."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..core.resources import Resource, ResourceType, coerce_resources, index_resources
from .document_model import Document

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class SyncResult:
    """Summary of the structural changes made by one reconcile pass."""

    removed: list[str] = field(default_factory=list)
    rekeyed: dict[str, str] = field(default_factory=dict)
    inserted: list[str] = field(default_factory=list)
    caret: int | None = None

    @property
    def changed(self) -> bool:
        return bool(self.removed or self.rekeyed or self.inserted)


class ResourceSync:
    """Keeps tokens aligned with the authoritative resource list.

    Tokens that survive an update keep their position. A ``code`` resource
    that replaces one with the same (normalized) file path takes over the
    existing token instead of appending a duplicate; when several stale
    tokens share that path the earliest one in document order wins.
    """

    def __init__(self, previous: Iterable[Resource] | None = None) -> None:
        self._previous: dict[str, Resource] = index_resources(previous or ())

    @property
    def previous(self) -> Mapping[str, Resource]:
        """Resources applied by the last reconcile pass, keyed by id."""

        return dict(self._previous)

    def reconcile(
        self,
        document: Document,
        resources: Iterable[Resource | Mapping[str, Any]],
        *,
        caret: int | None = None,
    ) -> SyncResult:
        incoming = self._dedupe(coerce_resources(resources))
        incoming_ids = {resource.id for resource in incoming}
        result = SyncResult()

        stale = [resource_id for resource_id, _node in document.tokens() if resource_id not in incoming_ids]

        # Stale tokens are offered for re-keying before the prune removes them.
        for resource in incoming:
            if document.has_token(resource.id):
                continue
            match = self._match_stale_code(resource, stale)
            if match is None:
                continue
            if document.rekey_token(match, resource.id):
                stale.remove(match)
                result.rekeyed[match] = resource.id

        for resource_id in stale:
            offset = document.remove_token(resource_id)
            if offset is None:
                continue
            result.removed.append(resource_id)
            if caret is not None and offset < caret:
                caret -= 1

        insert_at = caret
        for resource in incoming:
            if document.has_token(resource.id):
                continue
            if insert_at is None:
                document.append_token(resource.id)
            else:
                document.insert_token(resource.id, insert_at)
                insert_at += 1
            result.inserted.append(resource.id)

        if result.inserted:
            result.caret = insert_at
        if document.is_empty:
            document.reset()

        self._previous = index_resources(incoming)
        if result.changed:
            LOGGER.debug(
                "Reconciled %d resource(s): removed=%s rekeyed=%s inserted=%s",
                len(incoming),
                result.removed,
                result.rekeyed,
                result.inserted,
            )
        return result

    def forget(self) -> None:
        """Drop the remembered resource list (used when the surface unmounts)."""

        self._previous = {}

    def _match_stale_code(self, resource: Resource, stale: list[str]) -> str | None:
        if resource.type is not ResourceType.CODE or not resource.file_path:
            return None
        target = resource.normalized_path
        for resource_id in stale:
            previous = self._previous.get(resource_id)
            if previous is None or previous.type is not ResourceType.CODE:
                continue
            if previous.normalized_path == target:
                return resource_id
        return None

    @staticmethod
    def _dedupe(resources: list[Resource]) -> list[Resource]:
        unique: list[Resource] = []
        seen: set[str] = set()
        for resource in resources:
            if resource.id in seen:
                LOGGER.warning("Ignoring duplicate resource id %s in update", resource.id)
                continue
            seen.add(resource.id)
            unique.append(resource)
        return unique


__all__ = ["ResourceSync", "SyncResult"]
