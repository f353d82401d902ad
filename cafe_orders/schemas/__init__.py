"""
Schemas Package for Cafe Orders
===============================

Pydantic models used for API request validation and response serialization.

Schema Organization:
--------------------
- **orders.py**: Order records, customer/staff order views, staff commands
- **checkout.py**: Form and chat checkout requests and responses

Naming Conventions:
-------------------
- *Out: Response models (e.g., OrderOut) - what API returns
- *Request: Request bodies (e.g., ChatMessageRequest)
- *Response: Complex response structures (e.g., ChatMessageResponse)
- *Record: Immutable snapshots handed out by the order store

Usage:
------
    from cafe_orders.schemas import OrderOut, ChatMessageRequest
"""

# Order schemas
from .orders import (
    OrderItemRecord,
    OrderRecord,
    LifecycleOut,
    OrderOut,
    OrderListResponse,
    SyncWarningOut,
    StaffOrderOut,
    StaffOrderListResponse,
    StatusOverrideRequest,
    PrepTimeRequest,
)

# Checkout schemas
from .checkout import (
    CartItemIn,
    CheckoutCustomerIn,
    CheckoutFormRequest,
    BillOut,
    QuoteResponse,
    CheckoutFormResponse,
    ChatStartRequest,
    ChatStartResponse,
    ChatMessageRequest,
    ChatMessageResponse,
)

__all__ = [
    # Orders
    "OrderItemRecord",
    "OrderRecord",
    "LifecycleOut",
    "OrderOut",
    "OrderListResponse",
    "SyncWarningOut",
    "StaffOrderOut",
    "StaffOrderListResponse",
    "StatusOverrideRequest",
    "PrepTimeRequest",
    # Checkout
    "CartItemIn",
    "CheckoutCustomerIn",
    "CheckoutFormRequest",
    "BillOut",
    "QuoteResponse",
    "CheckoutFormResponse",
    "ChatStartRequest",
    "ChatStartResponse",
    "ChatMessageRequest",
    "ChatMessageResponse",
]
