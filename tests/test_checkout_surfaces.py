"""
Shared checkout suite run against both surfaces.

The form and the conversation must agree on the bill and on the order they
create for the same choices. Each surface is driven through a small adapter
so the same assertions run against both.
"""

import pytest
from sqlalchemy.exc import OperationalError

from cafe_orders.checkout.messages import CheckoutMessages
from cafe_orders.checkout.steps import CheckoutStep
from cafe_orders.errors import CheckoutPreconditionError, OrderValidationError
from cafe_orders.lifecycle.states import OrderStatus
from cafe_orders.services.billing import CartLine


class FormDriver:
    name = "form"

    def __init__(self, services):
        self.services = services

    def place(self, session, method, tip, split):
        return self.services.form.submit(session, method, tip, split)

    def decline(self, session, method, tip, split):
        return self.services.form.submit(session, method, tip, split, confirm=False)


class ChatDriver:
    name = "conversation"

    def __init__(self, services):
        self.services = services

    def _answer_all(self, session, method, tip, split):
        conv = self.services.conversation
        conv.start(session)
        conv.handle(session, method)
        conv.handle(session, str(tip))
        return conv.handle(session, str(split))

    def place(self, session, method, tip, split):
        self._answer_all(session, method, tip, split)
        return self.services.conversation.handle(session, "yes")

    def decline(self, session, method, tip, split):
        self._answer_all(session, method, tip, split)
        return self.services.conversation.handle(session, "no")


@pytest.fixture(params=[FormDriver, ChatDriver], ids=["form", "conversation"])
def surface(request, services):
    return request.param(services)


class TestBothSurfaces:
    """Same choices, same outcome, whichever surface is used."""

    def test_places_order_with_expected_bill(self, surface, services, cart):
        session = services.orchestrator.new_session("cust-1", cart, discount=50)

        result = surface.place(session, "upi", 10, 2)

        assert result.step == CheckoutStep.FINALIZED
        assert result.bill.grand_total == pytest.approx(527.5)
        assert result.bill.per_person == pytest.approx(263.75)
        order = result.order
        assert order.order_number == 1001
        assert order.total == pytest.approx(527.5)
        assert order.payment_method == "upi"
        assert order.split_count == 2
        assert order.status == OrderStatus.PLACED
        assert sorted(i.item_id for i in order.items) == ["cappuccino", "club-sandwich"]
        assert f"#{order.order_number}" in result.message

    def test_declining_creates_nothing(self, surface, services, cart):
        session = services.orchestrator.new_session("cust-1", cart)

        result = surface.decline(session, "cash", 0, 1)

        assert result.step == CheckoutStep.ABANDONED
        assert result.order is None
        assert result.message == CheckoutMessages.ABANDONED
        assert services.store.list_orders() == []
        assert session.selection.payment_method is None
        assert len(session.cart) == 2

    def test_fixed_tip(self, surface, services, cart):
        session = services.orchestrator.new_session("cust-1", cart)
        result = surface.place(session, "card", 50, 1)
        assert result.order.tip == pytest.approx(50)
        assert result.order.total == pytest.approx(575)

    def test_store_failure_aborts_and_keeps_cart(self, surface, services, cart, monkeypatch):
        def broken_create(data):
            raise OperationalError("INSERT", {}, Exception("database is locked"))

        monkeypatch.setattr(services.store, "create_order", broken_create)
        session = services.orchestrator.new_session("cust-1", cart)

        if surface.name == "form":
            with pytest.raises(OperationalError):
                surface.place(session, "upi", 0, 1)
        else:
            result = surface.place(session, "upi", 0, 1)
            assert result.order is None
            assert result.message == CheckoutMessages.ABORTED
            assert "database is locked" in result.error

        assert session.step == CheckoutStep.ABORTED
        assert session.order_number is None
        assert len(session.cart) == 2


def test_surfaces_produce_identical_orders(services, cart):
    form_session = services.orchestrator.new_session("cust-1", cart, discount=20)
    chat_session = services.orchestrator.new_session("cust-1", cart, discount=20)

    form_order = FormDriver(services).place(form_session, "wallet", 5, 3).order
    chat_order = ChatDriver(services).place(chat_session, "wallet", 5, 3).order

    for name in ("subtotal", "sgst", "cgst", "discount", "tip", "total", "per_person"):
        assert getattr(form_order, name) == pytest.approx(getattr(chat_order, name))
    assert form_order.split_count == chat_order.split_count == 3
    assert chat_order.order_number == form_order.order_number + 1


class TestOrchestrator:
    def test_begin_requires_sign_in(self, services, cart):
        session = services.orchestrator.new_session(None, cart)
        with pytest.raises(CheckoutPreconditionError, match="sign in"):
            services.orchestrator.begin(session)
        assert session.step == CheckoutStep.IDLE

    def test_begin_requires_items(self, services):
        session = services.orchestrator.new_session("cust-1", [])
        with pytest.raises(CheckoutPreconditionError, match="empty"):
            services.orchestrator.begin(session)

    def test_steps_must_run_in_order(self, services, cart):
        session = services.orchestrator.new_session("cust-1", cart)
        services.orchestrator.begin(session)
        with pytest.raises(CheckoutPreconditionError):
            services.orchestrator.choose_split(session, 2)

    def test_unknown_payment_method(self, services, cart):
        session = services.orchestrator.new_session("cust-1", cart)
        services.orchestrator.begin(session)
        with pytest.raises(OrderValidationError):
            services.orchestrator.choose_payment_method(session, "bitcoin")
        assert session.step == CheckoutStep.AWAITING_METHOD

    def test_restart_after_abandon(self, services, cart):
        orch = services.orchestrator
        session = orch.new_session("cust-1", cart)
        services.form.submit(session, "cash", 0, 1, confirm=False)

        result = services.form.submit(session, "cash", 0, 1)

        assert result.step == CheckoutStep.FINALIZED
        assert result.order.payment_method == "cash"


class TestFormSurface:
    def test_preview_does_not_create(self, services, cart):
        session = services.orchestrator.new_session("cust-1", cart)
        result = services.form.preview(session, "upi", 5, 2)

        assert result.step == CheckoutStep.AWAITING_CONFIRMATION
        assert result.order is None
        assert "Per Person (2 people)" in result.message
        assert services.store.list_orders() == []

    def test_split_below_one_is_clamped(self, services, cart):
        session = services.orchestrator.new_session("cust-1", cart)
        result = services.form.submit(session, "upi", 0, 0)
        assert result.order.split_count == 1

    def test_single_person_quote_has_no_per_person_line(self, services, cart):
        session = services.orchestrator.new_session("cust-1", cart)
        result = services.form.preview(session, "upi", 0, 1)
        assert "Per Person" not in result.message


class TestConversationalSurface:
    def test_ignores_chatter_outside_checkout(self, services, cart):
        session = services.orchestrator.new_session("cust-1", cart)
        result = services.conversation.handle(session, "hello there")
        assert result.accepted is False
        assert result.step == CheckoutStep.IDLE
        assert result.message == CheckoutMessages.NOT_IN_CHECKOUT

    def test_trigger_starts_checkout(self, services, cart):
        session = services.orchestrator.new_session("cust-1", cart)
        result = services.conversation.handle(session, "checkout please")
        assert result.step == CheckoutStep.AWAITING_METHOD
        assert result.message == CheckoutMessages.PAYMENT_METHOD

    def test_trigger_with_empty_cart_is_refused(self, services):
        session = services.orchestrator.new_session("cust-1", [])
        result = services.conversation.handle(session, "checkout")
        assert result.accepted is False
        assert result.error == CheckoutMessages.EMPTY_CART
        assert session.step == CheckoutStep.IDLE

    def test_unrecognized_answers_reprompt_without_moving(self, services, cart):
        conv = services.conversation
        session = services.orchestrator.new_session("cust-1", cart)
        conv.start(session)

        result = conv.handle(session, "bitcoin")
        assert result.accepted is False
        assert result.message == CheckoutMessages.PAYMENT_METHOD_RETRY
        assert session.step == CheckoutStep.AWAITING_METHOD

        conv.handle(session, "card")
        result = conv.handle(session, "a little")
        assert result.message == CheckoutMessages.TIP_RETRY
        assert session.step == CheckoutStep.AWAITING_TIP

        result = conv.handle(session, "15%")
        assert result.accepted is False
        assert result.message == CheckoutMessages.TIP_RETRY
        assert session.selection.tip is None

        conv.handle(session, "no")
        result = conv.handle(session, "0")
        assert result.message == CheckoutMessages.SPLIT_RETRY
        assert session.step == CheckoutStep.AWAITING_SPLIT

        conv.handle(session, "just me")
        result = conv.handle(session, "hmm")
        assert result.message == CheckoutMessages.CONFIRM_RETRY
        assert session.step == CheckoutStep.AWAITING_CONFIRMATION

    def test_quote_shown_before_confirmation(self, services, cart):
        conv = services.conversation
        session = services.orchestrator.new_session("cust-1", cart)
        conv.start(session)
        conv.handle(session, "upi")
        conv.handle(session, "10%")
        result = conv.handle(session, "2")

        assert result.bill.grand_total == pytest.approx(577.5)
        assert "Grand Total: ₹577.50" in result.message
        assert result.message.endswith(CheckoutMessages.CONFIRM)

    def test_generated_copy_never_replaces_order_number(self, services, cart):
        class ChattyCopy:
            def generate(self, context):
                return "Lovely! " + context["default_text"]

        services.conversation.generator = ChattyCopy()
        session = services.orchestrator.new_session("cust-1", cart)
        result = ChatDriver(services).place(session, "upi", 0, 1)

        assert result.message.startswith("Order confirmed! Your order number is #1001.")

    def test_history_is_recorded(self, services, cart):
        session = services.orchestrator.new_session("cust-1", cart)
        services.conversation.handle(session, "checkout")
        assert session.history[0] == {"role": "user", "content": "checkout"}
        assert session.history[1]["role"] == "assistant"

    def test_restart_after_abandon(self, services):
        lines = [CartLine(item_id="tea", name="Masala Chai", unit_price=60.0, quantity=1)]
        session = services.orchestrator.new_session("cust-1", lines)
        ChatDriver(services).decline(session, "cash", 0, 1)

        result = services.conversation.handle(session, "checkout")

        assert result.step == CheckoutStep.AWAITING_METHOD
