"""
Tests for the conversational checkout parsers.

Each parser must return None rather than guess when the text does not
clearly answer the step's question.
"""

import pytest

from cafe_orders.checkout.models import PaymentMethod
from cafe_orders.checkout.parsers import (
    is_checkout_trigger,
    parse_confirmation,
    parse_payment_method,
    parse_split_count,
    parse_tip,
)
from cafe_orders.services.billing import TIP_FIXED, TIP_PERCENT, TipSpec


class TestCheckoutTrigger:
    @pytest.mark.parametrize("text", ["checkout", "I want to check out", "Place order", "place my order", "buy"])
    def test_triggers(self, text):
        assert is_checkout_trigger(text) is True

    @pytest.mark.parametrize("text", ["", "what's on the menu?", "add a latte", "buying power"])
    def test_non_triggers(self, text):
        assert is_checkout_trigger(text) is False


class TestParsePaymentMethod:
    @pytest.mark.parametrize("text,expected", [
        ("UPI", PaymentMethod.UPI),
        ("I'll use gpay", PaymentMethod.UPI),
        ("card please", PaymentMethod.CARD),
        ("debit", PaymentMethod.CARD),
        ("paytm wallet", PaymentMethod.WALLET),
        ("Cash.", PaymentMethod.CASH),
    ])
    def test_single_method(self, text, expected):
        assert parse_payment_method(text) == expected

    @pytest.mark.parametrize("text", ["", "bitcoin", "card or cash?", "whatever"])
    def test_unclear(self, text):
        assert parse_payment_method(text) is None


class TestParseTip:
    @pytest.mark.parametrize("text", ["no", "None", "skip", "no tip", "0", "nope"])
    def test_no_tip(self, text):
        assert parse_tip(text) == TipSpec.none()

    @pytest.mark.parametrize("text", ["10", "10%", "10 percent"])
    def test_ten_is_ten_percent(self, text):
        tip = parse_tip(text)
        assert tip.kind == TIP_PERCENT
        assert tip.value == 10

    def test_five_percent(self):
        assert parse_tip("5%") == TipSpec(kind=TIP_PERCENT, value=5.0)

    def test_large_value_is_fixed(self):
        tip = parse_tip("₹50")
        assert tip.kind == TIP_FIXED
        assert tip.value == 50

    @pytest.mark.parametrize("text", ["50", "50 rupees", "rs. 50", "50₹"])
    def test_amounts_above_threshold_are_fixed(self, text):
        assert parse_tip(text) == TipSpec(kind=TIP_FIXED, value=50.0)

    @pytest.mark.parametrize("text", ["15%", "15 percent", "₹5", "rs 10", "10 rupees", "₹10%"])
    def test_typed_unit_the_threshold_would_flip_is_refused(self, text):
        """A typed unit is never silently swapped for the other kind."""
        assert parse_tip(text) is None

    @pytest.mark.parametrize("text", ["", "maybe", "a little", "10 or 20"])
    def test_unclear(self, text):
        assert parse_tip(text) is None


class TestParseSplitCount:
    @pytest.mark.parametrize("text,expected", [
        ("1", 1),
        ("3", 3),
        ("4 people", 4),
        ("two", 2),
        ("three ways", 3),
        ("just me", 1),
        ("no split", 1),
    ])
    def test_valid(self, text, expected):
        assert parse_split_count(text) == expected

    @pytest.mark.parametrize("text", ["", "0", "-2", "a few", "lots of people"])
    def test_invalid(self, text):
        assert parse_split_count(text) is None


class TestParseConfirmation:
    @pytest.mark.parametrize("text", ["yes", "Yeah!", "sure", "ok", "go ahead", "confirm"])
    def test_yes(self, text):
        assert parse_confirmation(text) is True

    @pytest.mark.parametrize("text", ["no", "nope", "cancel", "don't"])
    def test_no(self, text):
        assert parse_confirmation(text) is False

    def test_no_wins_over_yes(self):
        assert parse_confirmation("yes, no wait, not yet") is False

    @pytest.mark.parametrize("text", ["", "hmm", "what's the total again?"])
    def test_unclear(self, text):
        assert parse_confirmation(text) is None
