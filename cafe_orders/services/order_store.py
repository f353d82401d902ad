"""
Order Store for Cafe Orders
===========================

The single writable source of truth for orders. Checkout creates orders
through it; the lifecycle engine and staff commands patch them through it;
observers read from it and subscribe to its change feed.

Key Operations:
---------------
- create_order: Validate and insert an order with its items, assigning the
  next order number. All or nothing.
- update_order / update_order_if: Patch lifecycle fields, optionally only if
  the current row still matches an expected state (compare-and-set).
- get_order / get_order_by_id / list_orders / list_due_orders: Read snapshots.
- subscribe / unsubscribe: Change feed for one order.

Order Numbers:
--------------
Numbers come from the order_sequences table. The sequence row is read with
SELECT ... FOR UPDATE and incremented inside the same transaction as the
order insert, so a number is assigned exactly once and never reused.

Idempotent Writes:
------------------
update_order_if() compares the expected fields first. When another writer
already moved the order on, the patch is skipped and the current record is
returned unchanged, without an error and without a change-feed publish.
Issuing the same auto-advance twice therefore produces one transition.

Records:
--------
Every method returns OrderRecord snapshots, never live ORM objects. A record
is published to the change feed after each committed write.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from .. import config
from ..errors import OrderNotFoundError, OrderValidationError
from ..lifecycle.states import OrderStatus, as_utc, utcnow
from ..models import Order, OrderItem, OrderSequence
from ..schemas.orders import OrderRecord
from .billing import round_money
from .change_feed import ChangeFeed, OnChange, Subscription


logger = logging.getLogger(__name__)

ORDER_SEQUENCE_NAME = "orders"

# Fields a patch may touch. Bill fields are fixed once the order exists.
PATCHABLE_FIELDS = frozenset({
    "status",
    "paused",
    "prep_time_minutes",
    "status_deadline",
    "remaining_seconds",
    "status_changed_at",
})


@dataclass
class NewOrder:
    """Everything needed to insert an order. Built by checkout on confirmation."""

    customer_id: str
    items: List[Any]  # lines exposing item_id, name, unit_price, quantity
    subtotal: float
    sgst: float
    cgst: float
    discount: float
    tip: float
    total: float
    per_person: float
    payment_method: str
    split_count: int
    customer_name: Optional[str] = None
    status: str = OrderStatus.PLACED.value
    paused: bool = False
    prep_time_minutes: Optional[int] = None
    status_deadline: Optional[datetime] = None
    status_changed_at: Optional[datetime] = None


def _validate_new_order(data: NewOrder) -> None:
    """Reject bad order data before anything touches the database."""
    problems = []

    if not (data.customer_id or "").strip():
        problems.append("customer_id is required")
    if not data.items:
        problems.append("order has no items")
    for line in data.items or []:
        if int(line.quantity) < 1:
            problems.append(f"quantity for {line.name!r} must be >= 1")
        if float(line.unit_price) < 0:
            problems.append(f"unit price for {line.name!r} must be >= 0")
    if data.payment_method not in config.PAYMENT_METHODS:
        problems.append(f"unknown payment method {data.payment_method!r}")
    if data.split_count is None or data.split_count < 1:
        problems.append("split_count must be >= 1")
    for name in ("subtotal", "sgst", "cgst", "discount", "tip", "total", "per_person"):
        value = getattr(data, name)
        if value is None or value != value or value < 0:
            problems.append(f"{name} must be a non-negative number")
    if not problems:
        if data.discount > data.subtotal:
            problems.append("discount exceeds subtotal")
        expected_total = max(0.0, data.subtotal + data.sgst + data.cgst + data.tip - data.discount)
        if abs(expected_total - data.total) > 0.01:
            problems.append(
                f"total {data.total:.2f} does not match components ({expected_total:.2f})"
            )
    if data.status != OrderStatus.PLACED.value:
        problems.append("new orders must start as placed")
    if data.paused:
        problems.append("new orders cannot be paused")

    if problems:
        raise OrderValidationError("; ".join(problems))


class OrderStore:
    """
    Persistence collaborator backed by SQLAlchemy.

    Args:
        session_factory: sessionmaker producing Sessions bound to the order database
        feed: Change feed records are published to after each commit
        clock: Source of created_at timestamps
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        feed: Optional[ChangeFeed] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self.feed = feed or ChangeFeed()
        self._clock = clock

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    def create_order(self, data: NewOrder) -> OrderRecord:
        """
        Insert an order and its items, assigning the next order number.

        Raises:
            OrderValidationError: If the data is rejected (nothing is written)
            sqlalchemy.exc.SQLAlchemyError: If the database write fails
                (the transaction is rolled back)
        """
        _validate_new_order(data)

        db = self._session_factory()
        try:
            order_number = self._next_order_number(db)
            order = Order(
                order_number=order_number,
                customer_id=data.customer_id.strip(),
                customer_name=data.customer_name,
                subtotal=data.subtotal,
                sgst=data.sgst,
                cgst=data.cgst,
                discount=data.discount,
                tip=data.tip,
                total=data.total,
                per_person=data.per_person,
                payment_method=data.payment_method,
                split_count=data.split_count,
                status=data.status,
                paused=False,
                prep_time_minutes=data.prep_time_minutes,
                status_deadline=data.status_deadline,
                remaining_seconds=None,
                status_changed_at=data.status_changed_at,
                created_at=self._clock(),
            )
            for line in data.items:
                order.items.append(OrderItem(
                    item_id=str(line.item_id),
                    name=line.name,
                    quantity=int(line.quantity),
                    unit_price=float(line.unit_price),
                    line_total=round_money(float(line.unit_price) * int(line.quantity)),
                ))
            db.add(order)
            db.commit()
            record = self._load(db, order.id)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        logger.info("Order #%d created for customer %s (total %.2f)",
                    record.order_number, record.customer_id, record.total)
        self.feed.publish(record)
        return record

    def _next_order_number(self, db: Session) -> int:
        seq = db.get(OrderSequence, ORDER_SEQUENCE_NAME, with_for_update=True)
        if seq is None:
            seq = OrderSequence(name=ORDER_SEQUENCE_NAME, next_value=config.ORDER_NUMBER_START)
            db.add(seq)
            db.flush()
        number = seq.next_value
        seq.next_value = number + 1
        return number

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    def update_order(self, order_id: int, fields: Dict[str, Any]) -> OrderRecord:
        """Patch the given fields unconditionally and return the full record."""
        record, _applied = self.update_order_if(order_id, {}, fields)
        return record

    def update_order_if(
        self,
        order_id: int,
        expected: Dict[str, Any],
        fields: Dict[str, Any],
    ) -> Tuple[OrderRecord, bool]:
        """
        Patch fields only if the row still matches `expected`.

        Args:
            order_id: Primary key of the order
            expected: Field values the row must currently hold
            fields: Field values to write

        Returns:
            (record, applied). When the precondition does not hold, the current
            record is returned with applied=False and nothing is written.

        Raises:
            OrderValidationError: If a field is not patchable
            OrderNotFoundError: If the order does not exist
        """
        unknown = set(fields) - PATCHABLE_FIELDS
        if unknown:
            raise OrderValidationError(f"fields not patchable: {', '.join(sorted(unknown))}")

        db = self._session_factory()
        try:
            order = (
                db.query(Order)
                .filter(Order.id == order_id)
                .with_for_update()
                .first()
            )
            if order is None:
                raise OrderNotFoundError(f"Order id {order_id} not found")

            mismatched = [
                name for name, value in expected.items()
                if not _same_value(getattr(order, name), value)
            ]
            if mismatched:
                logger.debug("Order #%d patch skipped, precondition changed: %s",
                             order.order_number, ", ".join(mismatched))
                record = self._load(db, order.id)
                db.rollback()
                return record, False

            for name, value in fields.items():
                setattr(order, name, _column_value(value))
            db.commit()
            record = self._load(db, order.id)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        self.feed.publish(record)
        return record, True

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    def get_order(self, order_number: int) -> Optional[OrderRecord]:
        """Return the order with this order number, or None."""
        db = self._session_factory()
        try:
            order = (
                db.query(Order)
                .options(selectinload(Order.items))
                .filter(Order.order_number == order_number)
                .first()
            )
            return OrderRecord.model_validate(order) if order else None
        finally:
            db.close()

    def require_order(self, order_number: int) -> OrderRecord:
        record = self.get_order(order_number)
        if record is None:
            raise OrderNotFoundError(f"Order #{order_number} not found")
        return record

    def get_order_by_id(self, order_id: int) -> Optional[OrderRecord]:
        db = self._session_factory()
        try:
            order = db.get(Order, order_id)
            return OrderRecord.model_validate(order) if order else None
        finally:
            db.close()

    def list_orders(
        self,
        customer_id: Optional[str] = None,
        statuses: Optional[Iterable[str]] = None,
        limit: int = 100,
    ) -> List[OrderRecord]:
        """Orders newest first, optionally filtered by customer and status."""
        db = self._session_factory()
        try:
            query = db.query(Order).options(selectinload(Order.items))
            if customer_id:
                query = query.filter(Order.customer_id == customer_id)
            if statuses is not None:
                query = query.filter(Order.status.in_([_column_value(s) for s in statuses]))
            orders = (
                query.order_by(Order.created_at.desc(), Order.id.desc())
                .limit(limit)
                .all()
            )
            return [OrderRecord.model_validate(o) for o in orders]
        finally:
            db.close()

    def list_due_orders(self, now: datetime, after_id: int = 0, limit: int = 200) -> List[OrderRecord]:
        """
        Un-paused active orders whose deadline is at or before `now`.

        Ordered by id (oldest first) and starting after `after_id`, so callers
        can page through every due order.
        """
        db = self._session_factory()
        try:
            orders = (
                db.query(Order)
                .options(selectinload(Order.items))
                .filter(
                    Order.status.in_([OrderStatus.PLACED.value, OrderStatus.IN_PREPARATION.value]),
                    Order.paused.is_(False),
                    Order.status_deadline.isnot(None),
                    Order.status_deadline <= now,
                    Order.id > after_id,
                )
                .order_by(Order.id.asc())
                .limit(limit)
                .all()
            )
            return [OrderRecord.model_validate(o) for o in orders]
        finally:
            db.close()

    # -------------------------------------------------------------------------
    # Change feed
    # -------------------------------------------------------------------------

    def subscribe(self, order_number: int, on_change: OnChange) -> Subscription:
        return self.feed.subscribe(order_number, on_change)

    def unsubscribe(self, handle: Subscription) -> None:
        self.feed.unsubscribe(handle)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _load(db: Session, order_id: int) -> OrderRecord:
        order = (
            db.query(Order)
            .options(selectinload(Order.items))
            .filter(Order.id == order_id)
            .populate_existing()
            .one()
        )
        return OrderRecord.model_validate(order)


def _column_value(value: Any) -> Any:
    """Store enum members by value."""
    if isinstance(value, OrderStatus):
        return value.value
    return value


def _same_value(current: Any, expected: Any) -> bool:
    """Compare a column against an expected value. Datetimes compare in UTC."""
    if isinstance(current, datetime) or isinstance(expected, datetime):
        return as_utc(current) == as_utc(expected)
    return current == _column_value(expected)
