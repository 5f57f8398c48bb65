"""
Position watching - cancellable subscriptions to GPS updates.

The platform collaborator (browser bridge, GPS daemon, test) pushes fixes
in with publish(). Consumers subscribe with start_watching(callback) and
get a handle back; once stop(handle) returns, that callback is never
called again.
"""

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .models import Position

logger = logging.getLogger(__name__)

PositionCallback = Callable[[Position], None]


@dataclass(frozen=True)
class SubscriptionHandle:
    """Opaque token returned by start_watching()."""
    id: int


class PositionWatcher:
    """Fan-out of position updates to subscribed callbacks."""

    def __init__(self):
        self._subscribers: Dict[int, PositionCallback] = {}
        self._ids = itertools.count(1)
        # Held across delivery so stop() cannot return while a callback for
        # the same subscription is still being entered
        self._lock = threading.RLock()
        self._last_position: Optional[Position] = None

    @property
    def last_position(self) -> Optional[Position]:
        return self._last_position

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def start_watching(self, callback: PositionCallback) -> SubscriptionHandle:
        if not callable(callback):
            raise TypeError("callback must be callable")
        with self._lock:
            handle = SubscriptionHandle(next(self._ids))
            self._subscribers[handle.id] = callback
        logger.debug("Started position subscription %d", handle.id)
        return handle

    def stop(self, handle: SubscriptionHandle) -> bool:
        """Cancel a subscription. Returns False if it was not active."""
        with self._lock:
            removed = self._subscribers.pop(handle.id, None) is not None
        if removed:
            logger.debug("Stopped position subscription %d", handle.id)
        return removed

    def stop_all(self) -> None:
        with self._lock:
            self._subscribers.clear()

    def publish(self, position: Position) -> int:
        """
        Deliver a fix to every active subscriber.

        Returns the number of callbacks that ran without raising.
        """
        delivered = 0
        with self._lock:
            self._last_position = position
            for sub_id in list(self._subscribers):
                callback = self._subscribers.get(sub_id)
                if callback is None:
                    # Stopped by an earlier callback in this same round
                    continue
                try:
                    callback(position)
                    delivered += 1
                except Exception as e:
                    logger.error("Error in position listener %d: %s", sub_id, e)
        return delivered
