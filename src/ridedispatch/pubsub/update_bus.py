"""Per-ride subscription registry and snapshot fan-out.

Producers (dispatch, the simulation scheduler) publish ride snapshots by ride
id; transports adapt their connections into observers and subscribe them.
The set of ride ids with live observers is also what the scheduler advances.
"""

import logging
import threading
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Observer(Protocol):
    """A live consumer of ride snapshots.

    ``deliver`` must not block; transports hand the snapshot off to their own
    send loop. A handle reporting ``is_open`` False is dropped on the next
    publish.
    """

    @property
    def is_open(self) -> bool: ...

    def deliver(self, snapshot: dict[str, Any]) -> None: ...


class UpdateBus:
    """Thread-safe ride id -> observers mapping with fire-and-forget publish.

    A handle is subscribed to at most one ride; subscribing it to another
    ride moves it. Ride entries disappear as soon as their last observer
    leaves.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[str, set[Observer]] = {}
        self._ride_by_handle: dict[Observer, str] = {}

    def subscribe(self, ride_id: str, handle: Observer) -> None:
        with self._lock:
            current = self._ride_by_handle.get(handle)
            if current == ride_id:
                return
            if current is not None:
                self._discard(current, handle)
            self._subscribers.setdefault(ride_id, set()).add(handle)
            self._ride_by_handle[handle] = ride_id
        logger.debug("Observer subscribed to ride %s", ride_id)

    def unsubscribe(self, handle: Observer) -> str | None:
        """Remove ``handle``; returns the ride id it was subscribed to, if any."""
        with self._lock:
            ride_id = self._ride_by_handle.pop(handle, None)
            if ride_id is not None:
                self._discard(ride_id, handle)
        if ride_id is not None:
            logger.debug("Observer unsubscribed from ride %s", ride_id)
        return ride_id

    def publish(self, ride_id: str, snapshot: dict[str, Any]) -> int:
        """Deliver ``snapshot`` to every observer of ``ride_id``.

        Closed observers and observers whose delivery raises are dropped;
        the rest still receive the snapshot. Returns the delivered count.
        """
        with self._lock:
            handles = list(self._subscribers.get(ride_id, ()))

        delivered = 0
        dropped: list[Observer] = []
        for handle in handles:
            try:
                if not handle.is_open:
                    dropped.append(handle)
                    continue
                handle.deliver(snapshot)
            except Exception as e:
                logger.warning(
                    "Dropping observer of ride %s after delivery failure: %s", ride_id, e
                )
                dropped.append(handle)
                continue
            delivered += 1

        for handle in dropped:
            self.unsubscribe(handle)
        return delivered

    def active_ride_ids(self) -> list[str]:
        """Ride ids that currently have at least one observer."""
        with self._lock:
            return list(self._subscribers)

    def subscriber_count(self, ride_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(ride_id, ()))

    def _discard(self, ride_id: str, handle: Observer) -> None:
        handles = self._subscribers.get(ride_id)
        if handles is None:
            return
        handles.discard(handle)
        if not handles:
            del self._subscribers[ride_id]
