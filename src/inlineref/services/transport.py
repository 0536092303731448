"""Transport capability used to ship messages to the embedding host.

The concrete transport is probed once at startup and passed explicitly to
whatever needs it; there is no module-level singleton.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, runtime_checkable

LOGGER = logging.getLogger(__name__)

MessageSink = Callable[[dict[str, Any]], Any]


@dataclass(slots=True, frozen=True)
class MessageEnvelope:
    """Payload posted to the host for a single message."""

    message: str
    data: Any = None
    token: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_payload(self) -> dict[str, Any]:
        # ``command`` mirrors ``message`` for hosts that predate the rename.
        return {
            "token": self.token,
            "message": self.message,
            "command": self.message,
            "data": self.data,
        }


@runtime_checkable
class Transport(Protocol):
    """Capability for posting fire-and-forget messages to the host."""

    name: str

    def post_message(self, message_type: str, data: Any = None) -> MessageEnvelope | None:
        ...


class CallableTransport:
    """Transport delivering envelopes to a host-provided callable."""

    def __init__(self, sink: MessageSink, *, name: str = "host") -> None:
        self._sink = sink
        self.name = name

    def post_message(self, message_type: str, data: Any = None) -> MessageEnvelope | None:
        envelope = MessageEnvelope(message=message_type, data=data)
        try:
            self._sink(envelope.to_payload())
        except Exception:
            LOGGER.exception("Failed to post %s via %s transport", message_type, self.name)
            return None
        LOGGER.debug("Posted %s via %s transport (token=%s)", message_type, self.name, envelope.token)
        return envelope


class LoggingTransport:
    """Fallback transport for standalone/debug runs; messages are logged and kept."""

    name = "standalone"

    def __init__(self) -> None:
        self.sent: list[MessageEnvelope] = []

    def post_message(self, message_type: str, data: Any = None) -> MessageEnvelope | None:
        envelope = MessageEnvelope(message=message_type, data=data)
        self.sent.append(envelope)
        LOGGER.info("Host message %s: %r", message_type, data)
        return envelope


def resolve_transport(host: Any = None) -> Transport:
    """Probe ``host`` for a message capability and wrap it.

    Probes, in order: an existing :class:`Transport`, a ``post_message`` or
    ``postMessage`` attribute, and finally ``host`` itself being callable.
    Anything else resolves to :class:`LoggingTransport`.
    """

    if host is None:
        return LoggingTransport()
    if isinstance(host, (CallableTransport, LoggingTransport)):
        return host
    for attribute in ("post_message", "postMessage"):
        candidate = getattr(host, attribute, None)
        if callable(candidate):
            name = type(host).__name__
            LOGGER.debug("Resolved host transport via %s.%s", name, attribute)
            return CallableTransport(candidate, name=name)
    if callable(host):
        return CallableTransport(host, name=getattr(host, "__name__", "callable"))
    LOGGER.warning("Host %r exposes no message capability; using standalone transport", host)
    return LoggingTransport()


__all__ = [
    "CallableTransport",
    "LoggingTransport",
    "MessageEnvelope",
    "MessageSink",
    "Transport",
    "resolve_transport",
]
