"""Deferred updates.

Work that must not block the request that produced it (e.g. CDN purges
after a delete) is wrapped in a DeferredUpdate and handed to a scheduler.
The host owns the scheduler and decides when pending updates run.
"""

import logging
from abc import ABC, abstractmethod
from typing import Protocol

logger = logging.getLogger(__name__)


class DeferredUpdate(ABC):
    """A unit of work executed after the triggering operation returned."""

    @abstractmethod
    def do_update(self) -> None:
        """Perform the update."""
        ...


class DeferredScheduler(Protocol):
    """Anything that accepts deferred updates."""

    def add_update(self, update: DeferredUpdate) -> None: ...


class DeferredUpdateQueue:
    """In-process FIFO of pending deferred updates.

    Usage:
        queue = DeferredUpdateQueue()
        backend = QCloudFileBackend(..., scheduler=queue)
        backend.delete(...)
        queue.do_updates()  # e.g. after the response was sent
    """

    def __init__(self) -> None:
        self._pending: list[DeferredUpdate] = []

    def add_update(self, update: DeferredUpdate) -> None:
        """Enqueue an update for a later do_updates() call."""
        self._pending.append(update)

    def pending_count(self) -> int:
        return len(self._pending)

    def do_updates(self) -> int:
        """Run and drain all pending updates.

        A failing update is logged and does not stop the rest.

        Returns:
            Number of updates that completed without error
        """
        completed = 0
        while self._pending:
            update = self._pending.pop(0)
            try:
                update.do_update()
                completed += 1
            except Exception:
                logger.exception(
                    "Deferred update failed",
                    extra={"update": update.__class__.__name__},
                )
        return completed
