"""
Deterministic parsers for conversational checkout input.

Each parser pulls one constrained token out of free text and returns None
when the text does not clearly contain one. The conversation re-prompts on
None; nothing here ever guesses.
"""

import re

from ..services.billing import TIP_FIXED, TIP_PERCENT, TipSpec
from .models import PaymentMethod


# =============================================================================
# Patterns and Constants
# =============================================================================

CHECKOUT_TRIGGER_PATTERN = re.compile(r"\b(checkout|check out|place (?:my |the )?order|buy)\b", re.IGNORECASE)

# Aliases that identify a payment method. Checked as whole words.
PAYMENT_METHOD_ALIASES = {
    PaymentMethod.UPI: r"upi|gpay|google pay|phonepe|bhim",
    PaymentMethod.CARD: r"card|credit|debit|visa|mastercard|rupay",
    PaymentMethod.WALLET: r"wallet|paytm",
    PaymentMethod.CASH: r"cash",
}

NO_TIP_PATTERN = re.compile(r"^(no|nope|nah|none|skip|no tip|zero|0)\W*$", re.IGNORECASE)

# Optional currency marker, a number, optional percent/currency suffix
TIP_NUMBER_PATTERN = re.compile(
    r"^(rs\.?|inr|₹)?\s*(\d+(?:\.\d+)?)\s*(%|percent|rs\.?|rupees|inr|₹)?\W*$",
    re.IGNORECASE,
)

PERCENT_SUFFIXES = ("%", "percent")

WORD_TO_NUM = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12,
}

SOLO_PATTERN = re.compile(r"\b(just me|only me|myself|no split|don'?t split|alone)\b", re.IGNORECASE)


# =============================================================================
# Parsers
# =============================================================================

def is_checkout_trigger(user_input: str) -> bool:
    """True if the text asks to start checkout ("checkout", "place order", "buy")."""
    if not user_input:
        return False
    return CHECKOUT_TRIGGER_PATTERN.search(user_input) is not None


def parse_payment_method(user_input: str) -> PaymentMethod | None:
    """
    Find the one payment method named in the text.

    Returns None when no method is named, or when more than one is
    ("card or cash?") since that is not a choice.
    """
    if not user_input:
        return None
    text = user_input.lower()
    found = [
        method for method, aliases in PAYMENT_METHOD_ALIASES.items()
        if re.search(rf"\b({aliases})\b", text)
    ]
    if len(found) == 1:
        return found[0]
    return None


def parse_tip(user_input: str) -> TipSpec | None:
    """
    Parse a tip answer.

    "no", "none", "skip" and "0" mean no tip. A number goes through
    TipSpec.from_value, the same threshold rule the form uses, so "10" and
    "10%" mean 10% and "50" means ₹50. When the customer typed a unit the
    rule would contradict ("15%", "₹5") the answer is not taken and None is
    returned, as it is for anything else.
    """
    if not user_input:
        return None
    text = user_input.strip()

    if NO_TIP_PATTERN.match(text):
        return TipSpec.none()

    match = TIP_NUMBER_PATTERN.match(text)
    if match:
        prefix, number, suffix = match.groups()
        value = float(number)
        if value == 0:
            return TipSpec.none()

        said_percent = (suffix or "").lower() in PERCENT_SUFFIXES
        said_amount = prefix is not None or (suffix is not None and not said_percent)
        if said_percent and prefix is not None:
            return None

        tip = TipSpec.from_value(value)
        if said_percent and tip.kind != TIP_PERCENT:
            return None
        if said_amount and tip.kind != TIP_FIXED:
            return None
        return tip

    return None


def parse_split_count(user_input: str) -> int | None:
    """Parse how many people share the bill. Must be a whole number >= 1."""
    if not user_input:
        return None
    text = user_input.strip().lower()

    if SOLO_PATTERN.search(text):
        return 1

    match = re.fullmatch(r"(\d+)\s*(?:people|persons?|ways?|of us)?\W*", text)
    if match:
        count = int(match.group(1))
        return count if count >= 1 else None

    match = re.fullmatch(r"([a-z]+)\s*(?:people|persons?|ways?|of us)?\W*", text)
    if match:
        return WORD_TO_NUM.get(match.group(1))

    return None


def parse_confirmation(user_input: str) -> bool | None:
    """
    Parse a yes/no confirmation.

    Checks NO patterns first so "no, not yet" is never read as yes.

    Returns:
        True to confirm, False to abandon, None if unclear
    """
    if not user_input:
        return None
    text = user_input.lower().strip()

    if re.search(r"\b(no|nope|nah|not|cancel|don'?t|stop)\b", text):
        return False
    if re.search(r"\b(yes|yeah|yep|yup|sure|ok|okay|confirm|go ahead|place it)\b", text):
        return True
    return None
