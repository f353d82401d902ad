"""
Checkout Schemas for Cafe Orders
================================

Request/response models for the two checkout surfaces.

Endpoint Coverage:
------------------
- POST /checkout/quote: CheckoutFormRequest -> QuoteResponse
- POST /checkout/form: CheckoutFormRequest -> CheckoutFormResponse
- POST /checkout/chat/start: ChatStartRequest -> ChatStartResponse
- POST /checkout/chat/message: ChatMessageRequest -> ChatMessageResponse

Validation:
-----------
- Cart lines need quantity >= 1 and a non-negative unit price.
- Chat messages are limited to MAX_MESSAGE_LENGTH characters.
- split_count is NOT range-checked here: the form surface clamps it to 1.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from ..config import MAX_MESSAGE_LENGTH
from .orders import OrderOut


class CartItemIn(BaseModel):
    item_id: str
    name: str
    unit_price: float = Field(..., ge=0)
    quantity: int = Field(1, ge=1)


class CheckoutCustomerIn(BaseModel):
    """
    Who is checking out and what they are buying.

    Attributes:
        customer_id: Signed-in customer; checkout is refused without one
        loyalty_points: Points balance the customer holds
        redeem_points: Points the customer wants to redeem (1 point = ₹1)
    """
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    cart: List[CartItemIn] = Field(default_factory=list)
    loyalty_points: float = Field(0, ge=0)
    redeem_points: float = Field(0, ge=0)


class CheckoutFormRequest(CheckoutCustomerIn):
    payment_method: str
    tip: float = 0
    split_count: int = 1
    confirm: bool = True


class BillOut(BaseModel):
    """Rounded bill, as shown to the customer."""
    subtotal: float
    sgst: float
    cgst: float
    taxed_subtotal: float
    discount: float
    tip: float
    grand_total: float
    per_person: float
    split_count: int


class QuoteResponse(BaseModel):
    bill: BillOut
    message: str


class CheckoutFormResponse(BaseModel):
    bill: BillOut
    message: str
    order: Optional[OrderOut] = None


class ChatStartRequest(CheckoutCustomerIn):
    pass


class ChatStartResponse(BaseModel):
    session_id: str
    reply: str
    step: str


class ChatMessageRequest(BaseModel):
    session_id: str
    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)


class ChatMessageResponse(BaseModel):
    """
    One conversational turn.

    Attributes:
        reply: Text to show the customer
        step: Checkout step after this message
        accepted: False when the message was not understood (re-prompt)
        bill: Quote, once the split count is known
        order: The placed order, once confirmed
    """
    reply: str
    step: str
    accepted: bool = True
    bill: Optional[BillOut] = None
    order: Optional[OrderOut] = None
