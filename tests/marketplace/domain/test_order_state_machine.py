"""Tests for the Order state machine — adjacency map, guards and terminal states."""

import pytest
from marketplace.errors import InvalidTransition
from marketplace.order.events import OrderStatusChanged
from marketplace.order.order import (
    TERMINAL_STATES,
    Order,
    OrderStatus,
    can_transition,
)
from protean.exceptions import ValidationError

ADDRESS = {
    "full_name": "Maria Santos",
    "street": "12 Mabini St",
    "city": "Quezon City",
    "province": "Metro Manila",
    "postal_code": "1100",
    "phone": "+63 917 555 0101",
}


def _place(payment_type="card"):
    order = Order.place(
        buyer_id="buyer-001",
        buyer_name="Maria Santos",
        items=[
            {
                "product_id": "prod-001",
                "name": "Rattan Bag",
                "unit_price": 100.0,
                "quantity": 2,
                "seller_id": "seller-001",
                "seller_name": "Ilocos Weaves",
            }
        ],
        shipping_address=ADDRESS,
        payment_method={"type": payment_type, "masked_details": "**** 4242"},
    )
    order._events.clear()
    return order


def _order_at(status):
    order = _place()
    path = {
        "pending": [],
        "confirmed": ["confirmed"],
        "shipped": ["confirmed", "shipped"],
        "delivered": ["confirmed", "shipped", "delivered"],
    }[status]
    for step in path:
        order.transition_to(step)
    order._events.clear()
    return order


class TestAdjacencyMap:
    @pytest.mark.parametrize(
        "current,target",
        [
            ("pending", "confirmed"),
            ("pending", "cancelled"),
            ("confirmed", "shipped"),
            ("confirmed", "cancelled"),
            ("shipped", "delivered"),
            ("shipped", "cancelled"),
            ("delivered", "returned"),
            ("delivered", "reviewed"),
        ],
    )
    def test_edges_exist(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            ("pending", "shipped"),
            ("pending", "delivered"),
            ("confirmed", "pending"),
            ("shipped", "confirmed"),
            ("delivered", "cancelled"),
            ("delivered", "shipped"),
        ],
    )
    def test_edges_missing(self, current, target):
        assert not can_transition(current, target)

    def test_terminal_states_have_no_exits(self):
        assert TERMINAL_STATES == {OrderStatus.CANCELLED, OrderStatus.RETURNED, OrderStatus.REVIEWED}
        for terminal in TERMINAL_STATES:
            for target in OrderStatus:
                assert not can_transition(terminal.value, target.value)

    def test_every_state_is_reachable_from_pending(self):
        reachable = {"pending"}
        frontier = ["pending"]
        while frontier:
            current = frontier.pop()
            for target in OrderStatus:
                if can_transition(current, target.value) and target.value not in reachable:
                    reachable.add(target.value)
                    frontier.append(target.value)
        assert reachable == {s.value for s in OrderStatus}


class TestTransitions:
    def test_happy_path(self):
        order = _place()
        order.transition_to("confirmed")
        order.transition_to("shipped")
        order.transition_to("delivered")
        assert order.status == OrderStatus.DELIVERED.value
        assert order.delivered_at is not None

    def test_transition_raises_status_changed_event(self):
        order = _place()
        order.transition_to("confirmed", actor_id="seller-001", actor_role="seller")

        events = [e for e in order._events if isinstance(e, OrderStatusChanged)]
        assert len(events) == 1
        assert events[0].previous_status == "pending"
        assert events[0].new_status == "confirmed"
        assert events[0].actor_role == "seller"

    def test_invalid_transition_leaves_order_untouched(self):
        order = _place()
        with pytest.raises(InvalidTransition) as exc:
            order.transition_to("delivered")

        assert "Cannot transition order from pending to delivered" in str(exc.value.messages)
        assert order.status == OrderStatus.PENDING.value
        assert order._events == []

    def test_cancelled_is_terminal(self):
        order = _place()
        order.cancel("Changed my mind")
        with pytest.raises(InvalidTransition):
            order.transition_to("confirmed")
        assert order.status == OrderStatus.CANCELLED.value

    def test_cancel_requires_reason(self):
        order = _place()
        with pytest.raises(ValidationError) as exc:
            order.cancel("   ")
        assert "Cancellation reason is required" in str(exc.value.messages)
        assert order.status == OrderStatus.PENDING.value

    def test_cancel_records_reason_and_actor(self):
        order = _order_at("confirmed")
        order.cancel("Found it cheaper", actor_id="buyer-001")
        assert order.cancellation_reason == "Found it cheaper"
        assert order.cancelled_by == "buyer-001"

    def test_shipped_order_can_only_be_cancelled_by_admin(self):
        order = _order_at("shipped")
        with pytest.raises(InvalidTransition):
            order.cancel("Lost parcel", actor_role="buyer")

        order.cancel("Lost parcel", actor_id="admin-1", actor_role="admin")
        assert order.status == OrderStatus.CANCELLED.value

    @pytest.mark.parametrize("target", ["returned", "reviewed"])
    def test_workflow_states_need_their_workflow(self, target):
        order = _order_at("delivered")
        with pytest.raises(ValidationError):
            order.transition_to(target)
        assert order.status == OrderStatus.DELIVERED.value

    def test_delivered_order_cannot_be_cancelled(self):
        order = _order_at("delivered")
        with pytest.raises(InvalidTransition):
            order.cancel("Too late", actor_role="admin")
