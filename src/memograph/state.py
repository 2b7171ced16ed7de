"""Idle/Building state machine guarding full index rebuilds.

A rebuild spans many ``await`` points.  While it runs:

* a second rebuild is rejected (``begin()`` returns ``False``);
* incremental updates are queued with ``defer()`` and handed back by
  ``finish()`` for replay, newest action per document, in arrival order.

If the rebuild raises, the queue survives until the next rebuild.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from pathlib import Path

from memograph.resolver import path_key

log = logging.getLogger(__name__)


class BuildState(enum.Enum):
    IDLE = "idle"
    BUILDING = "building"


class PendingAction(enum.Enum):
    UPDATE = "update"
    REMOVE = "remove"


@dataclass(frozen=True)
class PendingUpdate:
    action: PendingAction
    path: Path


class BuildGuard:
    def __init__(self, name: str) -> None:
        self.name = name
        self.state = BuildState.IDLE
        self._pending: dict[str, PendingUpdate] = {}

    @property
    def building(self) -> bool:
        return self.state is BuildState.BUILDING

    def begin(self) -> bool:
        if self.building:
            log.warning("%s build already in progress; request ignored", self.name)
            return False
        self.state = BuildState.BUILDING
        return True

    def defer(self, action: PendingAction, path: Path) -> None:
        key = path_key(path)
        # Re-insert so the latest action moves to the end of the queue.
        self._pending.pop(key, None)
        self._pending[key] = PendingUpdate(action, Path(path))
        log.debug("%s building; queued %s for %s", self.name, action.value, path)

    def discard(self, path: Path) -> None:
        """Drop a queued action superseded by one applied directly."""
        self._pending.pop(path_key(path), None)

    def finish(self, *, failed: bool = False) -> list[PendingUpdate]:
        """Return to Idle and hand back the queue for replay.

        After a failed build the queue is kept for the next successful one
        and nothing is returned.
        """
        self.state = BuildState.IDLE
        if failed:
            if self._pending:
                log.warning(
                    "%s build failed; %d queued updates kept for the next build",
                    self.name,
                    len(self._pending),
                )
            return []
        pending = list(self._pending.values())
        self._pending.clear()
        return pending

    @property
    def pending(self) -> list[PendingUpdate]:
        return list(self._pending.values())
