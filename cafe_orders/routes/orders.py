"""
Customer Order Routes for Cafe Orders
=====================================

Endpoints:
----------
- GET /orders/{order_number}: One order with its live lifecycle state
- GET /orders?customer_id=...: A customer's order history, newest first

Polling:
--------
A customer progress view that polls GET /orders/{order_number} acts as an
observer: before answering, the route attempts the auto-advance if the
order's deadline has passed. The write is idempotent, so any number of
pollers can do this at once.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from ..errors import SyncFailedError
from ..schemas.orders import OrderListResponse, OrderOut
from ..services.container import AppServices, get_services
from .helpers import order_to_out


logger = logging.getLogger(__name__)

orders_router = APIRouter(prefix="/orders", tags=["Orders"])


@orders_router.get("", response_model=OrderListResponse)
def list_customer_orders(
    customer_id: str = Query(..., min_length=1, description="Customer whose orders to list"),
    limit: int = Query(50, ge=1, le=200),
    services: AppServices = Depends(get_services),
) -> OrderListResponse:
    """List a customer's orders, newest first."""
    records = services.store.list_orders(customer_id=customer_id, limit=limit)
    items = [order_to_out(record, services.engine) for record in records]
    return OrderListResponse(items=items, total=len(items))


@orders_router.get("/{order_number}", response_model=OrderOut)
def get_order(
    order_number: int,
    services: AppServices = Depends(get_services),
) -> OrderOut:
    """Return one order, advancing it first if its deadline has passed."""
    record = services.store.get_order(order_number)
    if record is None:
        raise HTTPException(status_code=404, detail="Order not found")

    try:
        record = services.engine.advance_if_due(record)
    except SyncFailedError:
        # Serve the last saved state; staff see the out-of-sync warning
        logger.warning("Serving stale order #%d after failed auto-advance", order_number)

    return order_to_out(record, services.engine)
