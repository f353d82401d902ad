"""
API tests for the checkout endpoints (form and chat) and the customer order
endpoints.
"""

import pytest

from cafe_orders.checkout.messages import CheckoutMessages


def _form(cart_payload, **overrides):
    body = {
        "customer_id": "cust-1",
        "customer_name": "Asha",
        "cart": cart_payload,
        "payment_method": "upi",
        "tip": 0,
        "split_count": 1,
    }
    body.update(overrides)
    return body


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_request_id_header(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "abc-123"})
        assert resp.headers["X-Request-ID"] == "abc-123"
        assert client.get("/health").headers["X-Request-ID"]


class TestFormCheckout:
    def test_quote_creates_nothing(self, client, cart_payload):
        resp = client.post("/checkout/quote", json=_form(cart_payload, tip=10, split_count=2))
        assert resp.status_code == 200
        bill = resp.json()["bill"]
        assert bill["taxed_subtotal"] == 525.0
        assert bill["tip"] == 52.5
        assert bill["grand_total"] == 577.5
        assert bill["per_person"] == 288.75
        assert "Shall I place the order?" in resp.json()["message"]

        assert client.get("/orders", params={"customer_id": "cust-1"}).json()["total"] == 0

    def test_submit_places_order(self, client, cart_payload):
        resp = client.post("/checkout/form", json=_form(cart_payload, payment_method="card", tip=50))
        assert resp.status_code == 201
        data = resp.json()
        assert data["order"]["order_number"] == 1001
        assert data["order"]["total"] == 575.0
        assert data["order"]["payment_method"] == "card"
        assert data["order"]["lifecycle"]["status"] == "placed"
        assert data["order"]["lifecycle"]["countdown"] == "00:30"
        assert "#1001" in data["message"]

    def test_loyalty_discount_is_clamped(self, client, cart_payload):
        resp = client.post(
            "/checkout/form",
            json=_form(cart_payload, loyalty_points=80, redeem_points=200),
        )
        assert resp.status_code == 201
        assert resp.json()["order"]["discount"] == 80.0
        assert resp.json()["order"]["total"] == 445.0

    def test_declined_submit_creates_nothing(self, client, cart_payload):
        resp = client.post("/checkout/form", json=_form(cart_payload, confirm=False))
        assert resp.status_code == 201
        assert resp.json()["order"] is None
        assert resp.json()["message"] == CheckoutMessages.ABANDONED

    def test_not_signed_in(self, client, cart_payload):
        resp = client.post("/checkout/form", json=_form(cart_payload, customer_id=None))
        assert resp.status_code == 400
        assert resp.json()["detail"] == CheckoutMessages.NOT_SIGNED_IN

    def test_empty_cart(self, client):
        resp = client.post("/checkout/form", json=_form([]))
        assert resp.status_code == 400

    def test_unknown_payment_method(self, client, cart_payload):
        resp = client.post("/checkout/form", json=_form(cart_payload, payment_method="cheque"))
        assert resp.status_code == 422

    def test_invalid_cart_line(self, client, cart_payload):
        cart_payload[0]["quantity"] = 0
        resp = client.post("/checkout/form", json=_form(cart_payload))
        assert resp.status_code == 422


class TestChatCheckout:
    def _start(self, client, cart_payload):
        resp = client.post("/checkout/chat/start", json={"customer_id": "cust-1", "cart": cart_payload})
        assert resp.status_code == 200
        return resp.json()

    def _say(self, client, session_id, message):
        resp = client.post("/checkout/chat/message", json={"session_id": session_id, "message": message})
        assert resp.status_code == 200
        return resp.json()

    def test_full_conversation(self, client, cart_payload):
        started = self._start(client, cart_payload)
        assert started["step"] == "awaiting_method"
        assert started["reply"] == CheckoutMessages.PAYMENT_METHOD
        sid = started["session_id"]

        assert self._say(client, sid, "gpay")["step"] == "awaiting_tip"
        assert self._say(client, sid, "5%")["step"] == "awaiting_split"
        quoted = self._say(client, sid, "two")
        assert quoted["step"] == "awaiting_confirmation"
        assert quoted["bill"]["grand_total"] == pytest.approx(551.25)
        assert quoted["bill"]["per_person"] == pytest.approx(275.625, abs=0.01)

        placed = self._say(client, sid, "yes please")
        assert placed["step"] == "finalized"
        assert placed["order"]["order_number"] == 1001
        assert placed["order"]["split_count"] == 2

    def test_unclear_answer_is_not_accepted(self, client, cart_payload):
        sid = self._start(client, cart_payload)["session_id"]
        reply = self._say(client, sid, "bitcoin")
        assert reply["accepted"] is False
        assert reply["step"] == "awaiting_method"

    def test_saying_no_abandons(self, client, cart_payload):
        sid = self._start(client, cart_payload)["session_id"]
        for message in ("cash", "no", "1"):
            self._say(client, sid, message)
        reply = self._say(client, sid, "no")
        assert reply["step"] == "abandoned"
        assert reply["reply"] == CheckoutMessages.ABANDONED
        assert reply["order"] is None

        assert self._say(client, sid, "checkout")["step"] == "awaiting_method"

    def test_start_with_empty_cart(self, client):
        resp = client.post("/checkout/chat/start", json={"customer_id": "cust-1", "cart": []})
        assert resp.status_code == 400

    def test_unknown_session(self, client):
        resp = client.post("/checkout/chat/message", json={"session_id": "nope", "message": "cash"})
        assert resp.status_code == 404

    def test_message_too_long(self, client, cart_payload):
        sid = self._start(client, cart_payload)["session_id"]
        resp = client.post("/checkout/chat/message", json={"session_id": sid, "message": "x" * 501})
        assert resp.status_code == 422


class TestCustomerOrders:
    def test_poll_advances_due_order(self, client, cart_payload, clock):
        number = client.post("/checkout/form", json=_form(cart_payload)).json()["order"]["order_number"]

        clock.at(29)
        lifecycle = client.get(f"/orders/{number}").json()["lifecycle"]
        assert lifecycle["status"] == "placed"
        assert lifecycle["countdown"] == "00:01"

        clock.at(30)
        lifecycle = client.get(f"/orders/{number}").json()["lifecycle"]
        assert lifecycle["status"] == "in_preparation"
        assert lifecycle["status_label"] == "In Preparation"
        assert lifecycle["countdown"] == "04:00"

        clock.at(270)
        lifecycle = client.get(f"/orders/{number}").json()["lifecycle"]
        assert lifecycle["status"] == "completed"
        assert lifecycle["is_terminal"] is True

    def test_unknown_order(self, client):
        assert client.get("/orders/4242").status_code == 404

    def test_history_newest_first(self, client, cart_payload, clock):
        client.post("/checkout/form", json=_form(cart_payload))
        clock.advance(60)
        client.post("/checkout/form", json=_form(cart_payload))
        client.post("/checkout/form", json=_form(cart_payload, customer_id="someone-else"))

        data = client.get("/orders", params={"customer_id": "cust-1"}).json()
        assert data["total"] == 2
        assert [o["order_number"] for o in data["items"]] == [1002, 1001]

    def test_history_requires_customer(self, client):
        assert client.get("/orders").status_code == 422
