"""
Checkout step state.

Checkout moves strictly forward through:

    IDLE -> AWAITING_METHOD -> AWAITING_TIP -> AWAITING_SPLIT
         -> AWAITING_CONFIRMATION -> FINALIZED

ABANDONED (customer said no at confirmation) and ABORTED (order creation
failed) end the attempt without an order. A new attempt starts from IDLE
with the cart untouched.
"""

from enum import Enum


class CheckoutStep(str, Enum):
    IDLE = "idle"
    AWAITING_METHOD = "awaiting_method"
    AWAITING_TIP = "awaiting_tip"
    AWAITING_SPLIT = "awaiting_split"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    FINALIZED = "finalized"
    ABANDONED = "abandoned"
    ABORTED = "aborted"


# Steps that are waiting on customer input
ACTIVE_STEPS = frozenset({
    CheckoutStep.AWAITING_METHOD,
    CheckoutStep.AWAITING_TIP,
    CheckoutStep.AWAITING_SPLIT,
    CheckoutStep.AWAITING_CONFIRMATION,
})
