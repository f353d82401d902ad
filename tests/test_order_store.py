"""
Tests for the order store: creation, numbering, validation, conditional
patches and change-feed publishing.
"""

from datetime import timedelta

import pytest

from cafe_orders.errors import OrderNotFoundError, OrderValidationError
from cafe_orders.lifecycle.states import OrderStatus
from cafe_orders.models import Order, OrderSequence
from cafe_orders.services.billing import calculate_bill
from cafe_orders.services.order_store import NewOrder


def _new_order(cart, clock, **overrides):
    bill = calculate_bill(cart)
    fields = dict(
        customer_id="cust-1",
        items=cart,
        subtotal=bill.subtotal,
        sgst=bill.sgst,
        cgst=bill.cgst,
        discount=bill.discount,
        tip=bill.tip,
        total=bill.grand_total,
        per_person=bill.per_person,
        payment_method="upi",
        split_count=1,
        status_deadline=clock() + timedelta(seconds=30),
        status_changed_at=clock(),
    )
    fields.update(overrides)
    return NewOrder(**fields)


class TestCreateOrder:
    def test_assigns_sequential_numbers_from_1001(self, store, cart, clock):
        first = store.create_order(_new_order(cart, clock))
        second = store.create_order(_new_order(cart, clock))

        assert first.order_number == 1001
        assert second.order_number == 1002

    def test_persists_items_and_bill(self, store, cart, clock):
        record = store.create_order(_new_order(cart, clock, customer_name="Asha"))

        assert record.customer_name == "Asha"
        assert record.total == pytest.approx(525)
        assert record.status == OrderStatus.PLACED
        assert record.paused is False
        assert record.created_at == clock()
        lines = {item.item_id: item for item in record.items}
        assert lines["cappuccino"].quantity == 2
        assert lines["cappuccino"].line_total == pytest.approx(300)

    def test_numbers_are_never_reused(self, store, cart, clock, session_factory):
        record = store.create_order(_new_order(cart, clock))

        db = session_factory()
        db.delete(db.get(Order, record.id))
        db.commit()
        db.close()

        assert store.create_order(_new_order(cart, clock)).order_number == 1002

    @pytest.mark.parametrize("overrides,problem", [
        ({"customer_id": ""}, "customer_id"),
        ({"items": []}, "no items"),
        ({"payment_method": "cheque"}, "payment method"),
        ({"split_count": 0}, "split_count"),
        ({"tip": -1.0}, "tip"),
        ({"total": 999.0}, "does not match"),
        ({"status": "completed"}, "placed"),
    ])
    def test_rejects_invalid_data(self, store, cart, clock, session_factory, overrides, problem):
        with pytest.raises(OrderValidationError, match=problem):
            store.create_order(_new_order(cart, clock, **overrides))

        db = session_factory()
        assert db.query(Order).count() == 0
        assert db.query(OrderSequence).count() == 0
        db.close()

    def test_publishes_created_record(self, store, cart, clock):
        seen = []
        store.feed.subscribe(1001, seen.append)
        record = store.create_order(_new_order(cart, clock))
        assert seen == [record]


class TestUpdateOrder:
    def test_unconditional_patch(self, store, cart, clock):
        record = store.create_order(_new_order(cart, clock))
        updated = store.update_order(record.id, {"prep_time_minutes": 7})
        assert updated.prep_time_minutes == 7
        assert store.get_order(record.order_number).prep_time_minutes == 7

    def test_conditional_patch_applies_when_expected_matches(self, store, cart, clock):
        record = store.create_order(_new_order(cart, clock))
        updated, applied = store.update_order_if(
            record.id, {"status": "placed"}, {"status": OrderStatus.IN_PREPARATION},
        )
        assert applied is True
        assert updated.status == OrderStatus.IN_PREPARATION

    def test_conditional_patch_is_skipped_when_state_moved_on(self, store, cart, clock):
        record = store.create_order(_new_order(cart, clock))
        store.update_order(record.id, {"status": "completed"})
        seen = []
        store.feed.subscribe(record.order_number, seen.append)

        current, applied = store.update_order_if(
            record.id, {"status": "placed"}, {"status": "in_preparation"},
        )

        assert applied is False
        assert current.status == OrderStatus.COMPLETED
        assert seen == []

    def test_conditional_patch_compares_deadlines_in_utc(self, store, cart, clock):
        record = store.create_order(_new_order(cart, clock))

        _, applied = store.update_order_if(
            record.id,
            {"status_deadline": record.status_deadline + timedelta(seconds=1)},
            {"paused": True},
        )
        assert applied is False

        updated, applied = store.update_order_if(
            record.id, {"status_deadline": record.status_deadline}, {"paused": True},
        )
        assert applied is True
        assert updated.paused is True

    def test_bill_fields_are_not_patchable(self, store, cart, clock):
        record = store.create_order(_new_order(cart, clock))
        with pytest.raises(OrderValidationError, match="total"):
            store.update_order(record.id, {"total": 1.0})

    def test_unknown_order(self, store):
        with pytest.raises(OrderNotFoundError):
            store.update_order(9999, {"paused": True})


class TestReadOrders:
    def test_get_order_missing(self, store):
        assert store.get_order(4242) is None
        with pytest.raises(OrderNotFoundError):
            store.require_order(4242)

    def test_get_by_id(self, store, cart, clock):
        record = store.create_order(_new_order(cart, clock))
        assert store.get_order_by_id(record.id).order_number == record.order_number

    def test_list_newest_first_with_filters(self, store, cart, clock):
        a = store.create_order(_new_order(cart, clock, customer_id="alice"))
        clock.advance(5)
        b = store.create_order(_new_order(cart, clock, customer_id="bob"))
        clock.advance(5)
        c = store.create_order(_new_order(cart, clock, customer_id="alice"))
        store.update_order(c.id, {"status": "completed"})

        assert [r.order_number for r in store.list_orders()] == [c.order_number, b.order_number, a.order_number]
        assert [r.order_number for r in store.list_orders(customer_id="alice")] == [c.order_number, a.order_number]
        assert [r.order_number for r in store.list_orders(statuses=["placed"])] == [b.order_number, a.order_number]

    def test_list_due_orders_pages_oldest_first(self, store, cart, clock):
        first = store.create_order(_new_order(cart, clock))
        second = store.create_order(_new_order(cart, clock))
        paused = store.create_order(_new_order(cart, clock))
        store.update_order(paused.id, {"status": "in_preparation", "paused": True})
        done = store.create_order(_new_order(cart, clock))
        store.update_order(done.id, {"status": "completed"})
        clock.advance(10)
        later = store.create_order(_new_order(cart, clock))

        now = clock.start + timedelta(seconds=30)
        assert [r.order_number for r in store.list_due_orders(now)] == [first.order_number, second.order_number]
        assert [r.order_number for r in store.list_due_orders(now, limit=1)] == [first.order_number]
        assert [r.order_number for r in store.list_due_orders(now, after_id=first.id)] == [second.order_number]
        assert later.order_number not in [r.order_number for r in store.list_due_orders(now)]

    def test_records_are_timezone_aware(self, store, cart, clock):
        record = store.create_order(_new_order(cart, clock))
        fetched = store.get_order(record.order_number)
        assert fetched.status_deadline == clock() + timedelta(seconds=30)
        assert fetched.status_deadline.tzinfo is not None
