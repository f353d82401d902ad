"""
Checkout state models.

CheckoutSession is the state one customer carries through a checkout
attempt. It is shared by both surfaces: the form fills the whole selection
in one call, the conversation fills it one step at a time.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..schemas.orders import OrderRecord
from ..services.billing import BillBreakdown, CartLine, TipSpec
from .steps import CheckoutStep


class PaymentMethod(str, Enum):
    UPI = "upi"
    CARD = "card"
    WALLET = "wallet"
    CASH = "cash"


PAYMENT_METHOD_LABELS = {
    PaymentMethod.UPI: "UPI",
    PaymentMethod.CARD: "Card",
    PaymentMethod.WALLET: "Wallet",
    PaymentMethod.CASH: "Cash",
}


class CheckoutSelection(BaseModel):
    """Choices collected so far. Discarded if checkout is abandoned."""

    payment_method: PaymentMethod | None = None
    tip: TipSpec | None = None
    split_count: int | None = None


class CheckoutSession(BaseModel):
    """One customer's checkout attempt."""

    session_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    customer_id: str | None = None
    customer_name: str | None = None
    cart: List[CartLine] = Field(default_factory=list)
    discount: float = 0.0

    step: CheckoutStep = CheckoutStep.IDLE
    selection: CheckoutSelection = Field(default_factory=CheckoutSelection)
    order_number: int | None = None

    history: List[Dict[str, str]] = Field(default_factory=list)

    def add_message(self, role: str, content: str) -> None:
        self.history.append({"role": role, "content": content})

    def reset_selection(self) -> None:
        self.selection = CheckoutSelection()


@dataclass
class CheckoutResult:
    """Outcome of one checkout call on either surface."""
    message: str
    step: CheckoutStep
    accepted: bool = True  # False when the input was not understood and nothing changed
    bill: Optional[BillBreakdown] = None
    order: Optional[OrderRecord] = None
    error: Optional[str] = None
