"""Routes host messages into a :class:`ResourceInput` and input events back out."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable

from ..editor.resource_input import ResourceInput
from ..ui.events import RecallPreviousRequested, ResourceRemoved, SubmitRequested
from . import message_types
from .transport import Transport

LOGGER = logging.getLogger(__name__)

MessageHandler = Callable[[Any], None]


class ResourceInputBridge:
    """Connects one input instance to the host through a :class:`Transport`."""

    def __init__(self, resource_input: ResourceInput, transport: Transport) -> None:
        self._input = resource_input
        self._transport = transport
        self._handlers: dict[str, MessageHandler] = {
            message_types.SELECTION_CHANGE: self._on_selection_change,
            message_types.SET_CONTENT_B2F: self._on_set_content,
            message_types.FOCUS_INPUT_B2F: self._on_focus,
            message_types.NEW_CONVERSATION: self._on_new_conversation,
            message_types.ERROR_B2F: self._on_host_error,
        }
        resource_input.subscribe(SubmitRequested, self._on_submit)
        resource_input.subscribe(ResourceRemoved, self._on_resource_removed)
        resource_input.subscribe(RecallPreviousRequested, self._on_recall_previous)

    @property
    def transport(self) -> Transport:
        return self._transport

    def register(self, message_type: str, handler: MessageHandler) -> None:
        """Add or replace the handler for ``message_type``."""

        self._handlers[message_type] = handler

    def handle_message(self, payload: Mapping[str, Any]) -> bool:
        """Dispatch one host message; returns ``True`` if a handler ran.

        Handler failures are logged and never propagate into the host loop.
        """

        LOGGER.debug("Received host message: %r", payload)
        if not isinstance(payload, Mapping):
            LOGGER.debug("Ignoring non-mapping host message %r", payload)
            return False
        message_type = payload.get("message") or payload.get("command")
        handler = self._handlers.get(str(message_type)) if message_type else None
        if handler is None:
            LOGGER.debug("No handler for host message %s", message_type)
            return False
        try:
            handler(payload.get("data"))
        except Exception:
            LOGGER.exception("Failed to handle host message %s", message_type)
            return False
        return True

    # ------------------------------------------------------------------
    # Host -> input
    # ------------------------------------------------------------------
    def _on_selection_change(self, data: Any) -> None:
        if isinstance(data, Mapping):
            data = data.get("resources", [])
        if not isinstance(data, list):
            raise TypeError(f"Selection change expects a resource list, got {type(data).__name__}")
        self._input.set_resources(data)

    def _on_set_content(self, data: Any) -> None:
        if isinstance(data, Mapping):
            self._input.restore_content(str(data.get("content") or ""), caret=data.get("caret"))
            return
        self._input.set_content(str(data or ""))

    def _on_focus(self, _data: Any) -> None:
        self._input.focus()

    def _on_new_conversation(self, _data: Any) -> None:
        self._input.clear()

    def _on_host_error(self, data: Any) -> None:
        message = data.get("message") if isinstance(data, Mapping) else data
        LOGGER.warning("Host reported an error: %s", message)

    # ------------------------------------------------------------------
    # Input -> host
    # ------------------------------------------------------------------
    def _on_submit(self, event: SubmitRequested) -> None:
        if not event.storage.strip():
            LOGGER.debug("Ignoring submit of empty content")
            return
        self._transport.post_message(
            message_types.ASK_QUESTION_F2B_REQ,
            {"question": event.storage, "display_question": event.display},
        )

    def _on_resource_removed(self, event: ResourceRemoved) -> None:
        self._transport.post_message(message_types.CLEAR_SELECTION, {"id": event.resource_id})

    def _on_recall_previous(self, _event: RecallPreviousRequested) -> None:
        self._transport.post_message(message_types.OPEN_HISTORY)


__all__ = ["MessageHandler", "ResourceInputBridge"]
