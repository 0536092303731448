"""Event bus used by the resource input to signal its host.

Components publish typed events (content changes, submit requests, removed
resources) without holding direct references to their consumers.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import (
    Callable,
    Generic,
    TypeVar,
    TYPE_CHECKING,
)
from weakref import WeakMethod, ref

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from typing import DefaultDict

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all events published on the :class:`EventBus`."""

    pass


# Fired on every keystroke; publishing them is not logged.
_QUIET_EVENT_TYPES: set[type] = set()


@dataclass(slots=True)
class ContentChanged(Event):
    """Emitted after every mutation of the document.

    Attributes:
        storage: The storage-format serialization of the new content.
    """

    storage: str


@dataclass(slots=True)
class ResourceRemoved(Event):
    """Emitted when the user deletes a token.

    Attributes:
        resource_id: Id of the resource whose token was removed.
    """

    resource_id: str


@dataclass(slots=True)
class SubmitRequested(Event):
    """Emitted when Enter is pressed without modifiers.

    The document is left untouched; the host decides what to send.

    Attributes:
        storage: Storage-format content at the time of the request.
        display: Display-format content at the time of the request.
    """

    storage: str
    display: str


@dataclass(slots=True)
class NewlineRequested(Event):
    """Emitted after Ctrl/Cmd+Enter inserted a newline."""

    pass


@dataclass(slots=True)
class RecallPreviousRequested(Event):
    """Emitted when ArrowUp is pressed on an empty input."""

    pass


@dataclass(slots=True)
class FocusChanged(Event):
    """Emitted when the input gains or (after debouncing) loses focus."""

    focused: bool


_QUIET_EVENT_TYPES.add(ContentChanged)


class EventBus(Generic[E]):
    """A typed publish-subscribe event bus.

    Handlers are stored as weak references where possible (bound methods) so
    subscribers do not outlive their owners.

    This implementation is NOT thread-safe. All operations should be performed
    from the thread that owns the input.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: DefaultDict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Register ``handler`` for events of ``event_type``.

        Subscribing the same handler twice results in two invocations.
        """
        self._handlers[event_type].append(_HandlerRef.create(handler))
        logger.debug("Subscribed handler %s to event type %s", _handler_name(handler), event_type.__name__)

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""
        handlers = self._handlers.get(event_type)
        if handlers is None:
            return
        for i, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(i)
                logger.debug(
                    "Unsubscribed handler %s from event type %s",
                    _handler_name(handler),
                    event_type.__name__,
                )
                return

    def publish(self, event: E) -> None:
        """Invoke every handler registered for the event's type, in order.

        A handler raising an exception is logged and the remaining handlers
        still run.
        """
        event_type = type(event)
        handlers = self._handlers.get(event_type)
        is_quiet = event_type in _QUIET_EVENT_TYPES

        if handlers is None:
            if not is_quiet:
                logger.debug("No handlers for event type %s", event_type.__name__)
            return

        if not is_quiet:
            logger.debug("Publishing %s to %d handler(s)", event_type.__name__, len(handlers))

        dead_refs: list[_HandlerRef] = []
        for handler_ref in list(handlers):
            handler = handler_ref.resolve()
            if handler is None:
                dead_refs.append(handler_ref)
                continue
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised exception for event %s",
                    _handler_name(handler),
                    event_type.__name__,
                )

        for handler_ref in dead_refs:
            if handler_ref in handlers:
                handlers.remove(handler_ref)

    def clear(self) -> None:
        self._handlers.clear()
        logger.debug("Cleared all event handlers")

    def handler_count(self, event_type: type[E] | None = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    """Weak reference for bound methods, strong reference for plain callables."""

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: WeakMethod | ref | Handler, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> _HandlerRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                pass
        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        if not self._is_weak:
            return self._ref  # type: ignore[return-value]
        return self._ref()  # type: ignore[operator]

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        if resolved is None:
            return False
        return resolved == handler


def _handler_name(handler: Handler) -> str:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    if hasattr(handler, "__name__"):
        return handler.__name__
    return repr(handler)


__all__ = [
    "ContentChanged",
    "Event",
    "EventBus",
    "FocusChanged",
    "Handler",
    "NewlineRequested",
    "RecallPreviousRequested",
    "ResourceRemoved",
    "SubmitRequested",
]
