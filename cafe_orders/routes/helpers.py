"""
Shared helpers for the order and checkout routes: building response models
from records and bills, and translating order errors into HTTP errors.
"""

from typing import List, Optional

from fastapi import HTTPException, status

from ..errors import (
    CheckoutPreconditionError,
    InvalidTransitionError,
    OrderError,
    OrderNotFoundError,
    OrderValidationError,
    SyncFailedError,
)
from ..lifecycle.engine import LifecycleEngine
from ..lifecycle.sync import SyncMonitor
from ..schemas.checkout import BillOut, CheckoutCustomerIn
from ..schemas.orders import LifecycleOut, OrderOut, OrderRecord, StaffOrderOut, SyncWarningOut
from ..services.billing import BillBreakdown, CartLine, calculate_subtotal, clamp_discount, round_money


ERROR_STATUS = {
    OrderValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    OrderNotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    CheckoutPreconditionError: status.HTTP_400_BAD_REQUEST,
    SyncFailedError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def http_error(exc: OrderError) -> HTTPException:
    for exc_type, code in ERROR_STATUS.items():
        if isinstance(exc, exc_type):
            return HTTPException(status_code=code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def cart_from_request(req: CheckoutCustomerIn) -> List[CartLine]:
    return [
        CartLine(item_id=line.item_id, name=line.name, unit_price=line.unit_price, quantity=line.quantity)
        for line in req.cart
    ]


def discount_from_request(req: CheckoutCustomerIn, cart: List[CartLine]) -> float:
    """Loyalty discount: never more than the points held or the subtotal."""
    return clamp_discount(req.redeem_points, req.loyalty_points, calculate_subtotal(cart))


def bill_to_out(bill: BillBreakdown) -> BillOut:
    return BillOut(**bill.rounded())


def order_to_out(record: OrderRecord, engine: LifecycleEngine) -> OrderOut:
    return OrderOut(**_order_fields(record, engine))


def staff_order_to_out(record: OrderRecord, engine: LifecycleEngine, sync_monitor: SyncMonitor) -> StaffOrderOut:
    warning = sync_monitor.warning_for(record.order_number)
    sync_warning: Optional[SyncWarningOut] = None
    if warning is not None:
        sync_warning = SyncWarningOut(action=warning.action, error=warning.error, failed_at=warning.failed_at)
    return StaffOrderOut(**_order_fields(record, engine), sync_warning=sync_warning)


def _order_fields(record: OrderRecord, engine: LifecycleEngine) -> dict:
    snapshot = engine.snapshot(record)
    return {
        "order_number": record.order_number,
        "customer_id": record.customer_id,
        "customer_name": record.customer_name,
        "items": record.items,
        "subtotal": round_money(record.subtotal),
        "sgst": round_money(record.sgst),
        "cgst": round_money(record.cgst),
        "discount": round_money(record.discount),
        "tip": round_money(record.tip),
        "total": round_money(record.total),
        "per_person": round_money(record.per_person),
        "payment_method": record.payment_method,
        "split_count": record.split_count,
        "prep_time_minutes": record.prep_time_minutes,
        "created_at": record.created_at,
        "lifecycle": LifecycleOut(**snapshot.as_dict()),
    }
