"""
Order observers.

An OrderObserver is one view of one order: the customer's progress screen or
a row on the staff dashboard. Each observer

- keeps the latest record it has seen and never moves backwards to an older
  status, even if a stale update arrives late,
- arms its own timer at the record's status deadline and, when it fires,
  attempts the auto-advance itself (the engine makes that write idempotent),
- cancels its timer as soon as any update for the order arrives and
  re-arms it from the new record,
- refetches the record from the store on reconnect instead of trusting the
  state it had before going offline.

The completion effect (e.g. a celebration banner) goes through a shared
CompletionGate so it fires at most once per order however many observers
see the order complete.
"""

import logging
import threading
from datetime import datetime
from typing import Callable, List, Optional, Set

from ..errors import SyncFailedError
from ..schemas.orders import OrderRecord
from .engine import LifecycleEngine, LifecycleSnapshot
from .scheduler import CancelToken, Scheduler
from .states import OrderStatus, is_terminal, status_rank

logger = logging.getLogger(__name__)


class CompletionGate:
    """Remembers which orders have already had their completion effect."""

    def __init__(self):
        self._lock = threading.Lock()
        self._fired: Set[int] = set()

    def fire_once(self, order_number: int, effect: Callable[[], None]) -> bool:
        """Run effect unless it already ran for this order. Returns True if it ran."""
        with self._lock:
            if order_number in self._fired:
                return False
            self._fired.add(order_number)
        effect()
        return True

    def has_fired(self, order_number: int) -> bool:
        with self._lock:
            return order_number in self._fired


class OrderObserver:
    """
    Local view of one order kept in sync with the order store.

    Args:
        name: Used in log messages ("customer", "staff", ...)
        order_number: Order being watched
        store: OrderStore to read from and subscribe to
        engine: LifecycleEngine used for due auto-advances
        scheduler: Where the deadline timer is armed
        gate: Shared completion gate; a private one is created if omitted
        on_complete: Completion effect, called with the completed record
        on_update: Called with every record this observer accepts
    """

    def __init__(
        self,
        name: str,
        order_number: int,
        store,
        engine: LifecycleEngine,
        scheduler: Scheduler,
        gate: Optional[CompletionGate] = None,
        on_complete: Optional[Callable[[OrderRecord], None]] = None,
        on_update: Optional[Callable[[OrderRecord], None]] = None,
    ):
        self.name = name
        self.order_number = order_number
        self.store = store
        self.engine = engine
        self.scheduler = scheduler
        self.gate = gate or CompletionGate()
        self.on_complete = on_complete
        self.on_update = on_update

        self.record: Optional[OrderRecord] = None
        self.observed_statuses: List[OrderStatus] = []
        self.connected = False
        self._subscription = None
        self._timer: Optional[CancelToken] = None
        self._lock = threading.RLock()

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------

    def start(self) -> "OrderObserver":
        """Subscribe to the change feed and load the current record."""
        self._subscription = self.store.subscribe(self.order_number, self._on_change)
        self.connected = True
        self.refresh()
        return self

    def refresh(self) -> OrderRecord:
        """Refetch the record from the store and apply it."""
        record = self.store.require_order(self.order_number)
        self._apply(record)
        return self.record

    def disconnect(self) -> None:
        """Go offline. Updates published meanwhile are missed, and the timer stops."""
        with self._lock:
            self.connected = False
            self._cancel_timer()
        if self._subscription is not None:
            self.store.feed.set_connected(self._subscription, False)
        logger.debug("%s observer for order #%d disconnected", self.name, self.order_number)

    def reconnect(self) -> OrderRecord:
        """Come back online and re-sync from the store."""
        if self._subscription is not None:
            self.store.feed.set_connected(self._subscription, True)
        self.connected = True
        logger.debug("%s observer for order #%d reconnected, refetching", self.name, self.order_number)
        return self.refresh()

    def close(self) -> None:
        with self._lock:
            self._cancel_timer()
            self.connected = False
        if self._subscription is not None:
            self.store.unsubscribe(self._subscription)
            self._subscription = None

    # -------------------------------------------------------------------------
    # Display
    # -------------------------------------------------------------------------

    def snapshot(self, now: Optional[datetime] = None) -> Optional[LifecycleSnapshot]:
        if self.record is None:
            return None
        return self.engine.snapshot(self.record, now)

    def countdown_seconds(self, now: Optional[datetime] = None) -> Optional[float]:
        snap = self.snapshot(now)
        return snap.remaining_seconds if snap else None

    @property
    def has_timer(self) -> bool:
        return self._timer is not None and not self._timer.cancelled

    # -------------------------------------------------------------------------
    # Updates
    # -------------------------------------------------------------------------

    def _on_change(self, record: OrderRecord) -> None:
        self._apply(record)

    def _apply(self, record: OrderRecord) -> None:
        with self._lock:
            current = self.record
            if current is not None and status_rank(record.status) < status_rank(current.status):
                logger.debug(
                    "%s observer ignoring stale %s for order #%d (already %s)",
                    self.name, record.status.value, self.order_number, current.status.value,
                )
                return

            self._cancel_timer()
            self.record = record
            if not self.observed_statuses or self.observed_statuses[-1] != record.status:
                self.observed_statuses.append(record.status)

            completed = is_terminal(record.status)
            if not completed and self.connected and not record.paused and record.status_deadline is not None:
                self._timer = self.scheduler.schedule(record.status_deadline, self._on_deadline)

        if self.on_update is not None:
            self.on_update(record)
        if completed and self.on_complete is not None:
            self.gate.fire_once(self.order_number, lambda: self.on_complete(record))

    def _on_deadline(self) -> None:
        record = self.record
        if record is None or not self.connected:
            return
        try:
            updated = self.engine.advance_if_due(record)
        except SyncFailedError as exc:
            logger.warning("%s observer could not advance order #%d: %s",
                           self.name, self.order_number, exc)
            return
        self._apply(updated)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
