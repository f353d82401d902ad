"""
Bill calculation.

This module is the single implementation of checkout arithmetic. Both the
checkout form and the conversational checkout call calculate_bill(), so the
two surfaces cannot drift apart.

Order of operations (all in the cart's currency, unrounded until display):
1. subtotal = sum(unit_price * quantity)
2. sgst = subtotal * SGST_RATE, cgst = subtotal * CGST_RATE
3. taxed_subtotal = subtotal + sgst + cgst
4. tip = taxed_subtotal * value / 100 for a percent tip, else value
5. grand_total = taxed_subtotal + tip - discount, floored at 0
6. per_person = grand_total / split_count

Components that would come out negative or NaN are clamped to zero and
named in BillBreakdown.defects. That list is for the caller and the logs;
it is never meant for the customer.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Tuple

from .. import config

logger = logging.getLogger(__name__)

TIP_PERCENT = "percent"
TIP_FIXED = "fixed"


def round_money(amount: float) -> float:
    """Round to 2 decimal places for currency."""
    return round(amount, 2)


@dataclass(frozen=True)
class CartLine:
    """One cart entry as checkout sees it."""

    item_id: str
    name: str
    unit_price: float
    quantity: int = 1


@dataclass(frozen=True)
class TipSpec:
    """A tip choice: a percentage of the taxed subtotal or a fixed amount."""

    kind: str
    value: float

    @classmethod
    def none(cls) -> "TipSpec":
        return cls(kind=TIP_PERCENT, value=0.0)

    @classmethod
    def from_value(cls, value: float) -> "TipSpec":
        """
        Interpret a bare tip number.

        Values at or below TIP_PERCENT_THRESHOLD are percentages, larger
        values are absolute amounts. This means "10" is always 10%, and a
        flat tip of 10 or less cannot be expressed. Both checkout surfaces
        go through this rule so they always agree.
        """
        value = float(value)
        if value <= config.TIP_PERCENT_THRESHOLD:
            return cls(kind=TIP_PERCENT, value=value)
        return cls(kind=TIP_FIXED, value=value)

    def describe(self) -> str:
        if self.value == 0:
            return "no tip"
        if self.kind == TIP_PERCENT:
            return f"{self.value:g}%"
        return f"₹{self.value:g}"


@dataclass(frozen=True)
class BillBreakdown:
    """
    Derived, immutable bill. Always recomputed from the inputs that
    produced it; nothing here is ever stored on its own.
    """

    subtotal: float
    sgst: float
    cgst: float
    discount: float
    tip: float
    grand_total: float
    per_person: float
    split_count: int
    defects: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def taxed_subtotal(self) -> float:
        return self.subtotal + self.sgst + self.cgst

    def rounded(self) -> Dict[str, Any]:
        """Presentation values, rounded to 2 decimals."""
        return {
            "subtotal": round_money(self.subtotal),
            "sgst": round_money(self.sgst),
            "cgst": round_money(self.cgst),
            "taxed_subtotal": round_money(self.taxed_subtotal),
            "discount": round_money(self.discount),
            "tip": round_money(self.tip),
            "grand_total": round_money(self.grand_total),
            "per_person": round_money(self.per_person),
            "split_count": self.split_count,
        }


def _clamped(name: str, value: float, defects: list) -> float:
    if value is None or math.isnan(value) or value < 0:
        logger.warning("Bill component %s out of range (%r), clamping to 0", name, value)
        defects.append(name)
        return 0.0
    return value


def clamp_discount(requested_points: float, points_balance: float, subtotal: float) -> float:
    """
    Discount from redeemed loyalty points.

    A customer can never redeem more than they hold, and never more than the
    subtotal being paid for.
    """
    return max(0.0, min(requested_points or 0.0, points_balance or 0.0, subtotal or 0.0))


def calculate_subtotal(cart: Iterable[Any]) -> float:
    """Sum of unit_price * quantity over the cart."""
    return sum(float(line.unit_price) * int(line.quantity) for line in cart)


def calculate_bill(
    cart: Iterable[Any],
    discount: float = 0.0,
    tip: TipSpec = None,
    split_count: int = 1,
) -> BillBreakdown:
    """
    Compute the full bill for a cart.

    Args:
        cart: Lines exposing unit_price and quantity (CartLine or a schema model)
        discount: Already-validated discount amount
        tip: Tip choice; defaults to no tip
        split_count: Number of people sharing the bill, must be >= 1

    Returns:
        BillBreakdown with unrounded components

    Raises:
        ValueError: If split_count is below 1. Callers clamp before calling.
    """
    if split_count is None or int(split_count) < 1:
        raise ValueError(f"split_count must be >= 1, got {split_count!r}")
    split_count = int(split_count)
    tip = tip or TipSpec.none()
    defects: list = []

    subtotal = _clamped("subtotal", calculate_subtotal(cart), defects)
    sgst = subtotal * config.SGST_RATE
    cgst = subtotal * config.CGST_RATE
    taxed_subtotal = subtotal + sgst + cgst

    if tip.kind == TIP_PERCENT:
        tip_amount = taxed_subtotal * tip.value / 100
    else:
        tip_amount = tip.value
    tip_amount = _clamped("tip", tip_amount, defects)

    discount = _clamped("discount", discount, defects)
    if discount > subtotal:
        logger.warning("Discount %.2f exceeds subtotal %.2f, capping", discount, subtotal)
        defects.append("discount")
        discount = subtotal

    grand_total = taxed_subtotal + tip_amount - discount
    if grand_total < 0:
        defects.append("grand_total")
        grand_total = 0.0

    return BillBreakdown(
        subtotal=subtotal,
        sgst=sgst,
        cgst=cgst,
        discount=discount,
        tip=tip_amount,
        grand_total=grand_total,
        per_person=grand_total / split_count,
        split_count=split_count,
        defects=tuple(defects),
    )
