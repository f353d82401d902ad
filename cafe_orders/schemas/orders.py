"""
Order Schemas for Cafe Orders
=============================

Pydantic models for order records and the customer/staff order endpoints.

OrderRecord is the immutable snapshot the order store hands out. Observers,
the lifecycle engine and the routers all work with OrderRecord rather than
live ORM rows, so a record can be passed between threads and compared
across change-feed deliveries.

Timestamps:
-----------
SQLite returns naive datetimes even for timezone-aware columns. All stored
timestamps are UTC, so naive values are tagged as UTC on the way in.

Endpoint Coverage:
------------------
- GET /orders/{order_number}: OrderOut (customer progress view)
- GET /orders?customer_id=: OrderListResponse
- GET /staff/orders: StaffOrderListResponse
- POST /staff/orders/{order_number}/status: StatusOverrideRequest
- POST /staff/orders/{order_number}/prep-time: PrepTimeRequest
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..lifecycle.states import OrderStatus, as_utc


class OrderItemRecord(BaseModel):
    """One persisted order line."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    item_id: str
    name: str
    quantity: int
    unit_price: float
    line_total: float


class OrderRecord(BaseModel):
    """
    Immutable snapshot of a persisted order.

    Attributes:
        id: Database primary key
        order_number: Human-facing order number, assigned once at creation
        status: Current lifecycle status
        paused: Auto-advance suspended by staff (only while in preparation)
        prep_time_minutes: Staff-set preparation time, if any
        status_deadline: When the current status auto-advances (None while
            paused and in the terminal status)
        remaining_seconds: Time left in the current status, only while paused
    """
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    order_number: int
    customer_id: str
    customer_name: Optional[str] = None
    items: List[OrderItemRecord] = Field(default_factory=list)
    subtotal: float
    sgst: float
    cgst: float
    discount: float
    tip: float
    total: float
    per_person: float
    payment_method: str
    split_count: int
    status: OrderStatus
    paused: bool = False
    prep_time_minutes: Optional[int] = None
    status_deadline: Optional[datetime] = None
    remaining_seconds: Optional[float] = None
    status_changed_at: Optional[datetime] = None
    created_at: datetime

    @field_validator("status_deadline", "status_changed_at", "created_at", mode="after")
    @classmethod
    def tag_utc(cls, v):
        return as_utc(v)


class LifecycleOut(BaseModel):
    """What an observer shows: status, pause flag and a local countdown."""
    status: OrderStatus
    status_label: str
    paused: bool
    is_terminal: bool
    status_deadline: Optional[datetime] = None
    remaining_seconds: Optional[float] = None
    countdown: str


class OrderOut(BaseModel):
    """Customer-facing order view with rounded money values."""
    order_number: int
    customer_id: str
    customer_name: Optional[str] = None
    items: List[OrderItemRecord]
    subtotal: float
    sgst: float
    cgst: float
    discount: float
    tip: float
    total: float
    per_person: float
    payment_method: str
    split_count: int
    prep_time_minutes: Optional[int] = None
    created_at: datetime
    lifecycle: LifecycleOut


class OrderListResponse(BaseModel):
    items: List[OrderOut]
    total: int


class SyncWarningOut(BaseModel):
    """Shown to staff when a lifecycle write could not be persisted."""
    action: str
    error: str
    failed_at: datetime


class StaffOrderOut(OrderOut):
    sync_warning: Optional[SyncWarningOut] = None


class StaffOrderListResponse(BaseModel):
    items: List[StaffOrderOut]
    total: int


class StatusOverrideRequest(BaseModel):
    """Staff moves an order directly to a later status."""
    status: OrderStatus


class PrepTimeRequest(BaseModel):
    """Staff sets the preparation time in whole minutes."""
    minutes: int = Field(..., ge=1, le=240)
