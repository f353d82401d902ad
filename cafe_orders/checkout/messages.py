"""
Checkout flow messages - single source of truth.

Canned copy for both checkout surfaces. The conversational surface may ask
the text generator to rephrase these, but the canned version is always the
fallback and is what tests assert against.
"""

from .. import config
from ..services.billing import BillBreakdown, TipSpec
from .models import PAYMENT_METHOD_LABELS, CheckoutSelection


class CheckoutMessages:
    """Standard messages for the checkout flow."""

    # Step prompts
    PAYMENT_METHOD = "Got your cart! How would you like to pay? (UPI, Card, Wallet, Cash)"
    TIP = "Would you like to add a tip? (No, 5%, 10% or enter an amount)"
    SPLIT = "How many people are splitting the bill?"
    CONFIRM = "Shall I place the order? (yes/no)"

    # Re-prompts
    PAYMENT_METHOD_RETRY = "Please choose one of: UPI, Card, Wallet, or Cash."
    TIP_RETRY = "Please answer no, 5%, 10%, or a tip amount."
    SPLIT_RETRY = "Please enter a valid number of people (1 or more)."
    CONFIRM_RETRY = "Please answer yes to place the order or no to cancel."

    # Outcomes
    ABANDONED = "Order canceled. You can restart by saying 'checkout'."
    ABORTED = "Sorry, we couldn't place your order. Your cart is still saved, so you can try again."
    NOT_SIGNED_IN = "Please sign in to place an order."
    EMPTY_CART = "Your cart is empty. Add something before checking out."
    NOT_IN_CHECKOUT = "Say 'checkout' when you're ready to order."


def method_chosen(selection: CheckoutSelection) -> str:
    label = PAYMENT_METHOD_LABELS[selection.payment_method]
    return f"Got it! Payment by {label}. {CheckoutMessages.TIP}"


def tip_chosen(tip: TipSpec) -> str:
    return f"Tip set to {tip.describe()}. {CheckoutMessages.SPLIT}"


def format_quote(bill: BillBreakdown, selection: CheckoutSelection) -> str:
    """
    Bill summary shown before confirmation.

    The per-person line only appears when the bill is actually split.
    """
    values = bill.rounded()
    lines = [
        f"Subtotal: ₹{values['subtotal']:.2f}",
        f"SGST ({config.SGST_RATE * 100:g}%): ₹{values['sgst']:.2f}",
        f"CGST ({config.CGST_RATE * 100:g}%): ₹{values['cgst']:.2f}",
    ]
    if values["discount"] > 0:
        lines.append(f"Discount: -₹{values['discount']:.2f}")
    if values["tip"] > 0:
        lines.append(f"Tip ({selection.tip.describe()}): ₹{values['tip']:.2f}")
    lines.append(f"Grand Total: ₹{values['grand_total']:.2f}")
    if bill.split_count > 1:
        lines.append(f"Per Person ({bill.split_count} people): ₹{values['per_person']:.2f}")
    lines.append(f"Payment: {PAYMENT_METHOD_LABELS[selection.payment_method]}")
    return "\n".join(lines)


def order_placed(order_number: int, total: float) -> str:
    return f"Order confirmed! Your order number is #{order_number}. Total paid: ₹{total:.2f}."
