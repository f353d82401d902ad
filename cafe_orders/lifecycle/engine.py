"""
Order Lifecycle Engine
======================

Timed state machine that moves an order from Placed through InPreparation to
Completed, with staff pause/resume, prep-time and status overrides.

State lives entirely in the persisted order record:

    status            current lifecycle status
    paused            auto-advance suspended (only while InPreparation)
    status_deadline   when the current status auto-advances (None while paused
                      and once Completed)
    remaining_seconds time left in the status, only while paused
    prep_time_minutes staff-set preparation time

Any observer can rebuild the countdown from those fields and its own clock,
and any observer may attempt a due auto-advance. Every write is a
compare-and-set on the fields it depends on, so two observers racing to
advance the same order produce exactly one transition and never an error.

Write Failures:
---------------
Writes are retried with exponential backoff (RetryPolicy). When every attempt
fails, the failure is recorded in the SyncMonitor (the staff list shows it as
out of sync) and SyncFailedError is raised. The next successful write for
the order clears the warning.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..errors import InvalidTransitionError, OrderValidationError, SyncFailedError
from ..schemas.orders import OrderRecord
from ..services.retry import RetryPolicy, call_with_retry
from .states import (
    STATUS_LABELS,
    OrderStatus,
    format_countdown,
    is_terminal,
    next_status,
    status_duration_seconds,
    status_rank,
    utcnow,
)
from .sync import SyncMonitor

logger = logging.getLogger(__name__)

# Database errors worth retrying. Anything else is a bug and propagates.
TRANSIENT_ERRORS = (SQLAlchemyError, OSError)

# Due orders fetched per page while sweeping
SWEEP_BATCH_SIZE = 200


@dataclass(frozen=True)
class LifecycleSnapshot:
    """What an observer displays for an order at a given instant."""

    status: OrderStatus
    paused: bool
    status_deadline: Optional[datetime]
    remaining_seconds: Optional[float]

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.status)

    @property
    def label(self) -> str:
        return STATUS_LABELS[self.status]

    @property
    def countdown(self) -> str:
        if self.is_terminal:
            return "00:00"
        return format_countdown(self.remaining_seconds)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "status_label": self.label,
            "paused": self.paused,
            "is_terminal": self.is_terminal,
            "status_deadline": self.status_deadline,
            "remaining_seconds": self.remaining_seconds,
            "countdown": self.countdown,
        }


class LifecycleEngine:
    """
    Applies lifecycle transitions to orders through the order store.

    Args:
        store: OrderStore (or anything with the same get/update_order_if API)
        clock: Returns the current UTC time
        retry_policy: Backoff for failed writes
        sync_monitor: Where exhausted write failures are recorded
        sleep: Used between retries; tests pass a no-op
    """

    def __init__(
        self,
        store,
        clock: Callable[[], datetime] = utcnow,
        retry_policy: Optional[RetryPolicy] = None,
        sync_monitor: Optional[SyncMonitor] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.clock = clock
        self.retry_policy = retry_policy or RetryPolicy.from_config()
        self.sync_monitor = sync_monitor or SyncMonitor()
        self._sleep = sleep

    # -------------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------------

    def initial_fields(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Lifecycle fields for a freshly created order."""
        now = now or self.clock()
        return {
            "status": OrderStatus.PLACED.value,
            "status_deadline": now + timedelta(seconds=status_duration_seconds(OrderStatus.PLACED)),
            "status_changed_at": now,
        }

    def snapshot(self, record: OrderRecord, now: Optional[datetime] = None) -> LifecycleSnapshot:
        """Rebuild the countdown for a record from its fields and the clock."""
        now = now or self.clock()
        if is_terminal(record.status):
            remaining = None
        elif record.paused:
            remaining = record.remaining_seconds
        elif record.status_deadline is not None:
            remaining = max(0.0, (record.status_deadline - now).total_seconds())
        else:
            remaining = None
        return LifecycleSnapshot(
            status=OrderStatus(record.status),
            paused=record.paused,
            status_deadline=record.status_deadline,
            remaining_seconds=remaining,
        )

    def is_due(self, record: OrderRecord, now: Optional[datetime] = None) -> bool:
        """True when the record's auto-advance deadline has passed and it is not paused."""
        if is_terminal(record.status) or record.paused or record.status_deadline is None:
            return False
        now = now or self.clock()
        return now >= record.status_deadline

    # -------------------------------------------------------------------------
    # Automatic transitions
    # -------------------------------------------------------------------------

    def advance_if_due(self, record: OrderRecord, now: Optional[datetime] = None) -> OrderRecord:
        """
        Advance an order one status if its deadline has passed.

        Safe to call from any number of observers: the write only applies if
        the order still holds the status, pause flag and deadline this record
        shows. A resume or prep time change in between moves the deadline, so
        a stale record leaves the order alone and the current one is returned.

        Raises:
            SyncFailedError: If the write kept failing
        """
        now = now or self.clock()
        if not self.is_due(record, now):
            return record

        target = next_status(record.status)
        fields = self._entry_fields(target, record.prep_time_minutes, now)
        expected = {
            "status": record.status.value,
            "paused": False,
            "status_deadline": record.status_deadline,
        }

        updated, applied = self._write(
            record.order_number,
            "auto-advance",
            lambda: self.store.update_order_if(record.id, expected, fields),
        )
        if applied:
            logger.info("Order #%d auto-advanced %s -> %s",
                        record.order_number, record.status.value, target.value)
        return updated

    def sweep_due(self, now: Optional[datetime] = None) -> List[OrderRecord]:
        """
        Advance every order whose deadline has passed.

        Used by the staff list so orders progress even when no customer is
        watching. Due orders are read in pages, oldest first, so none is left
        behind however many are waiting. A write that fails is logged and left
        for the next sweep.
        """
        now = now or self.clock()
        advanced = []
        last_id = 0
        while True:
            batch = self.store.list_due_orders(now, after_id=last_id, limit=SWEEP_BATCH_SIZE)
            for record in batch:
                if not self.is_due(record, now):
                    continue
                try:
                    updated = self.advance_if_due(record, now)
                except SyncFailedError:
                    continue
                if updated.status != record.status:
                    advanced.append(updated)
            if len(batch) < SWEEP_BATCH_SIZE:
                return advanced
            last_id = batch[-1].id

    # -------------------------------------------------------------------------
    # Staff commands
    # -------------------------------------------------------------------------

    def override_status(self, order_number: int, target, now: Optional[datetime] = None) -> OrderRecord:
        """
        Move an order directly to a strictly later status.

        Cancels any pending auto-advance for the old status and clears the
        pause. Raises InvalidTransitionError when the target is not later than
        the current status.
        """
        target = OrderStatus(target)
        now = now or self.clock()

        while True:
            record = self.store.require_order(order_number)
            if status_rank(target) <= status_rank(record.status):
                raise InvalidTransitionError(
                    f"Order #{order_number} is {record.status.value}; "
                    f"cannot move it to {target.value}"
                )
            fields = self._entry_fields(target, record.prep_time_minutes, now)
            updated, applied = self._write(
                order_number,
                "status override",
                lambda: self.store.update_order_if(
                    record.id, {"status": record.status.value}, fields
                ),
            )
            if applied:
                logger.info("Order #%d moved by staff %s -> %s",
                            order_number, record.status.value, target.value)
                return updated

    def pause(self, order_number: int, now: Optional[datetime] = None) -> OrderRecord:
        """
        Suspend auto-advance, keeping the time left in the current status.

        Only allowed while InPreparation. Pausing an already paused order
        returns it unchanged.
        """
        now = now or self.clock()
        record = self.store.require_order(order_number)
        if record.status != OrderStatus.IN_PREPARATION:
            raise InvalidTransitionError(
                f"Order #{order_number} can only be paused while in preparation"
            )
        if record.paused:
            return record

        if record.status_deadline is not None:
            remaining = max(0.0, (record.status_deadline - now).total_seconds())
        else:
            remaining = status_duration_seconds(record.status, record.prep_time_minutes)

        updated, applied = self._write(
            order_number,
            "pause",
            lambda: self.store.update_order_if(
                record.id,
                {"status": OrderStatus.IN_PREPARATION.value, "paused": False},
                {"paused": True, "remaining_seconds": remaining, "status_deadline": None},
            ),
        )
        if not applied:
            return self.pause(order_number, now)
        logger.info("Order #%d paused with %.1fs remaining", order_number, remaining)
        return updated

    def resume(self, order_number: int, now: Optional[datetime] = None) -> OrderRecord:
        """
        Restart auto-advance from exactly where pause() left off.

        The new deadline is now + remaining time, so time spent paused never
        counts against the order. Resuming an order that is not paused
        returns it unchanged.
        """
        now = now or self.clock()
        record = self.store.require_order(order_number)
        if not record.paused:
            return record

        remaining = record.remaining_seconds
        if remaining is None:
            remaining = status_duration_seconds(record.status, record.prep_time_minutes)

        updated, applied = self._write(
            order_number,
            "resume",
            lambda: self.store.update_order_if(
                record.id,
                {"status": record.status.value, "paused": True},
                {
                    "paused": False,
                    "remaining_seconds": None,
                    "status_deadline": now + timedelta(seconds=remaining),
                },
            ),
        )
        if not applied:
            return self.resume(order_number, now)
        logger.info("Order #%d resumed, %.1fs to go", order_number, remaining)
        return updated

    def set_prep_time(self, order_number: int, minutes: int, now: Optional[datetime] = None) -> OrderRecord:
        """
        Set the preparation time in minutes.

        - Placed: stored, used as the InPreparation duration once it starts.
        - InPreparation: replaces the remaining time from this moment, i.e.
          the deadline becomes now + minutes (or remaining time while paused).
        - Completed: rejected.

        Setting it again later replaces the previous value the same way.
        """
        if minutes is None or int(minutes) < 1:
            raise OrderValidationError("prep time must be at least 1 minute")
        minutes = int(minutes)
        now = now or self.clock()
        record = self.store.require_order(order_number)

        if is_terminal(record.status):
            raise InvalidTransitionError(f"Order #{order_number} is already completed")

        fields: Dict[str, Any] = {"prep_time_minutes": minutes}
        expected: Dict[str, Any] = {"status": record.status.value}
        if record.status == OrderStatus.IN_PREPARATION:
            expected["paused"] = record.paused
            if record.paused:
                fields["remaining_seconds"] = float(minutes * 60)
            else:
                fields["status_deadline"] = now + timedelta(minutes=minutes)

        updated, applied = self._write(
            order_number,
            "prep time",
            lambda: self.store.update_order_if(record.id, expected, fields),
        )
        if not applied:
            return self.set_prep_time(order_number, minutes, now)
        logger.info("Order #%d prep time set to %d min", order_number, minutes)
        return updated

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _entry_fields(target: OrderStatus, prep_time_minutes: Optional[int], now: datetime) -> Dict[str, Any]:
        """Fields written when an order enters `target`."""
        duration = status_duration_seconds(target, prep_time_minutes)
        return {
            "status": target.value,
            "paused": False,
            "remaining_seconds": None,
            "status_deadline": now + timedelta(seconds=duration) if duration is not None else None,
            "status_changed_at": now,
        }

    def _write(self, order_number: int, action: str, fn):
        try:
            result = call_with_retry(
                fn,
                self.retry_policy,
                retry_on=TRANSIENT_ERRORS,
                description=f"{action} for order #{order_number}",
                sleep=self._sleep,
            )
        except TRANSIENT_ERRORS as exc:
            self.sync_monitor.record_failure(order_number, action, str(exc), self.clock())
            logger.error(
                "Order #%d out of sync: %s failed after %d attempts: %s",
                order_number,
                action,
                self.retry_policy.attempts,
                exc,
            )
            raise SyncFailedError(order_number, f"{action} could not be saved") from exc

        self.sync_monitor.clear(order_number)
        return result
