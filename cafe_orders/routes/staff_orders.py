"""
Staff Order Routes for Cafe Orders
==================================

The staff management surface: every order with its live countdown, plus the
commands that change an order's lifecycle.

Endpoints:
----------
- GET /staff/orders: All orders, newest first (optionally by status)
- POST /staff/orders/{order_number}/pause: Pause auto-advance (in preparation only)
- POST /staff/orders/{order_number}/resume: Resume where the pause left off
- POST /staff/orders/{order_number}/status: Move to a strictly later status
- POST /staff/orders/{order_number}/prep-time: Set preparation minutes

Authentication:
---------------
All endpoints require staff authentication via HTTP Basic Auth.

Out of Sync:
------------
Listing orders also sweeps due auto-advances. Any order whose last lifecycle
write failed after every retry carries a sync_warning until a later write
succeeds. Commands that cannot be saved return 503.

Error Handling:
---------------
- 404: Unknown order number
- 409: Transition not allowed (earlier status, pause outside preparation,
  prep time on a completed order)
- 503: Write could not be saved, or staff auth not configured
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..auth import verify_staff_credentials
from ..errors import OrderError
from ..lifecycle.states import OrderStatus
from ..schemas.orders import (
    PrepTimeRequest,
    StaffOrderListResponse,
    StaffOrderOut,
    StatusOverrideRequest,
)
from ..services.container import AppServices, get_services
from .helpers import http_error, staff_order_to_out


logger = logging.getLogger(__name__)

staff_orders_router = APIRouter(prefix="/staff/orders", tags=["Staff - Orders"])


@staff_orders_router.get("", response_model=StaffOrderListResponse)
def list_staff_orders(
    status: Optional[OrderStatus] = Query(None, description="Filter by lifecycle status"),
    limit: int = Query(100, ge=1, le=500),
    staff: str = Depends(verify_staff_credentials),
    services: AppServices = Depends(get_services),
) -> StaffOrderListResponse:
    """List orders for the staff dashboard, advancing any that are due."""
    advanced = services.engine.sweep_due()
    if advanced:
        logger.debug("Staff list advanced %d due orders", len(advanced))

    statuses = [status.value] if status else None
    records = services.store.list_orders(statuses=statuses, limit=limit)
    items = [staff_order_to_out(r, services.engine, services.sync_monitor) for r in records]
    return StaffOrderListResponse(items=items, total=len(items))


@staff_orders_router.post("/{order_number}/pause", response_model=StaffOrderOut)
def pause_order(
    order_number: int,
    staff: str = Depends(verify_staff_credentials),
    services: AppServices = Depends(get_services),
) -> StaffOrderOut:
    try:
        record = services.engine.pause(order_number)
    except OrderError as exc:
        raise http_error(exc)
    logger.info("Staff %s paused order #%d", staff, order_number)
    return staff_order_to_out(record, services.engine, services.sync_monitor)


@staff_orders_router.post("/{order_number}/resume", response_model=StaffOrderOut)
def resume_order(
    order_number: int,
    staff: str = Depends(verify_staff_credentials),
    services: AppServices = Depends(get_services),
) -> StaffOrderOut:
    try:
        record = services.engine.resume(order_number)
    except OrderError as exc:
        raise http_error(exc)
    logger.info("Staff %s resumed order #%d", staff, order_number)
    return staff_order_to_out(record, services.engine, services.sync_monitor)


@staff_orders_router.post("/{order_number}/status", response_model=StaffOrderOut)
def override_order_status(
    order_number: int,
    req: StatusOverrideRequest,
    staff: str = Depends(verify_staff_credentials),
    services: AppServices = Depends(get_services),
) -> StaffOrderOut:
    try:
        record = services.engine.override_status(order_number, req.status)
    except OrderError as exc:
        raise http_error(exc)
    logger.info("Staff %s set order #%d to %s", staff, order_number, req.status.value)
    return staff_order_to_out(record, services.engine, services.sync_monitor)


@staff_orders_router.post("/{order_number}/prep-time", response_model=StaffOrderOut)
def set_order_prep_time(
    order_number: int,
    req: PrepTimeRequest,
    staff: str = Depends(verify_staff_credentials),
    services: AppServices = Depends(get_services),
) -> StaffOrderOut:
    try:
        record = services.engine.set_prep_time(order_number, req.minutes)
    except OrderError as exc:
        raise http_error(exc)
    logger.info("Staff %s set prep time of order #%d to %d min", staff, order_number, req.minutes)
    return staff_order_to_out(record, services.engine, services.sync_monitor)
