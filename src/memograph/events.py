"""Typed index events and the injectable event bus.

The hosting layer (tree views, graph panels) subscribes to an
:class:`EventBus` and is told when memos are created, modified, deleted or
renamed, and when a full build finishes::

    bus = EventBus()
    bus.subscribe(lambda event: print(event.kind, event.path))
    index = MemoIndex(store, config_provider, events=bus)
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

log = logging.getLogger(__name__)


class EventKind(enum.Enum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"
    INDEX_BUILT = "index_built"


@dataclass(frozen=True)
class IndexEvent:
    kind: EventKind
    path: Path | None = None
    #: Destination of a rename
    new_path: Path | None = None


@runtime_checkable
class EventSink(Protocol):
    def publish(self, event: IndexEvent) -> None: ...


Subscriber = Callable[[IndexEvent], None]


class EventBus:
    """Fans each published event out to every subscriber."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register *callback*; returns a function that unsubscribes it."""
        self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def publish(self, event: IndexEvent) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:  # noqa: BLE001
                # Log but keep notifying the remaining subscribers
                log.exception("Event subscriber failed for %s", event.kind.value)
