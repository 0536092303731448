"""FIFO queue that applies document mutations one at a time."""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable

LOGGER = logging.getLogger(__name__)

Mutation = Callable[[], None]


class MutationQueue:
    """Serializes mutations against a single document.

    A mutation submitted while another one is being applied (for example from
    a listener reacting to ``content-changed``) is queued and runs after the
    current one completes, so observers never see a half-applied edit.
    """

    __slots__ = ("_name", "_pending", "_applying")

    def __init__(self, name: str = "document") -> None:
        self._name = name
        self._pending: deque[Mutation] = deque()
        self._applying = False

    @property
    def applying(self) -> bool:
        return self._applying

    @property
    def pending(self) -> int:
        return len(self._pending)

    def submit(self, mutation: Mutation) -> None:
        self._pending.append(mutation)
        if self._applying:
            LOGGER.debug("Queued mutation for %s (%d pending)", self._name, len(self._pending))
            return
        self._drain()

    def clear(self) -> None:
        self._pending.clear()

    def _drain(self) -> None:
        self._applying = True
        try:
            while self._pending:
                mutation = self._pending.popleft()
                mutation()
        except Exception:
            dropped = len(self._pending)
            self._pending.clear()
            LOGGER.error("Mutation on %s failed; dropped %d queued mutation(s)", self._name, dropped)
            raise
        finally:
            self._applying = False


__all__ = ["Mutation", "MutationQueue"]
