"""
Order Change Feed
=================

In-process publish/subscribe channel that pushes updated OrderRecords to
every subscribed observer.

Delivery Guarantees:
--------------------
- Updates for one order are delivered to each connected subscriber in the
  order they were published.
- Nothing is buffered for a disconnected subscriber. A subscriber that comes
  back must refetch the current record from the order store rather than
  expect the events it missed.
- A subscriber callback that raises is logged and skipped; the remaining
  subscribers still receive the update.

Thread Safety:
--------------
The subscription table is guarded by a threading.Lock. Callbacks run on the
publishing thread, outside the lock, so a callback may subscribe or
unsubscribe without deadlocking.

Usage:
------
    feed = ChangeFeed()
    handle = feed.subscribe(1001, lambda record: print(record.status))
    feed.publish(record)
    feed.unsubscribe(handle)
"""

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

OnChange = Callable[[object], None]


@dataclass
class Subscription:
    """Handle returned by subscribe(); pass it back to unsubscribe()."""
    id: int
    order_number: Optional[int]  # None means every order
    callback: OnChange
    connected: bool = True


class ChangeFeed:
    """Pushes order records to subscribers."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions: Dict[int, Subscription] = {}
        self._ids = itertools.count(1)

    def subscribe(self, order_number: int, on_change: OnChange) -> Subscription:
        """Receive every update for one order."""
        return self._add(order_number, on_change)

    def subscribe_all(self, on_change: OnChange) -> Subscription:
        """Receive updates for every order (staff dashboard)."""
        return self._add(None, on_change)

    def _add(self, order_number: Optional[int], on_change: OnChange) -> Subscription:
        with self._lock:
            handle = Subscription(id=next(self._ids), order_number=order_number, callback=on_change)
            self._subscriptions[handle.id] = handle
        logger.debug("Subscription %d added for order %s", handle.id, order_number or "*")
        return handle

    def unsubscribe(self, handle: Subscription) -> None:
        with self._lock:
            self._subscriptions.pop(handle.id, None)
        handle.connected = False
        logger.debug("Subscription %d removed", handle.id)

    def set_connected(self, handle: Subscription, connected: bool) -> None:
        """
        Mark a subscriber online or offline.

        Offline subscribers silently miss publishes.
        """
        with self._lock:
            if handle.id in self._subscriptions:
                handle.connected = connected

    def subscriber_count(self, order_number: Optional[int] = None) -> int:
        with self._lock:
            return sum(
                1 for sub in self._subscriptions.values()
                if order_number is None or sub.order_number in (None, order_number)
            )

    def publish(self, record) -> int:
        """
        Deliver a record to every connected subscriber of its order.

        Returns:
            Number of subscribers the record was delivered to
        """
        with self._lock:
            targets: List[Subscription] = [
                sub for sub in self._subscriptions.values()
                if sub.connected and sub.order_number in (None, record.order_number)
            ]

        delivered = 0
        for sub in targets:
            try:
                sub.callback(record)
                delivered += 1
            except Exception:
                logger.exception(
                    "Change feed subscriber %d failed for order %s",
                    sub.id,
                    record.order_number,
                )
        return delivered
