import pytest
from commerce.exceptions import InvalidTransition, NotFound
from commerce.order.cancellation import CancelOrder
from commerce.order.order import Order, OrderStatus, PaymentStatus
from commerce.order.payment import UpdatePaymentStatus
from protean import current_domain
from protean.exceptions import ValidationError


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


class TestCashOnDelivery:
    def test_paid_after_delivery(self, make_variant, place_order, advance_order):
        order_id = place_order({make_variant(): 1})
        advance_order(order_id, "Packed", "Shipped", "Delivered")

        _process(UpdatePaymentStatus(order_id=order_id, payment_status="Paid", acted_by="courier-7"))

        assert _order(order_id).payment_status == PaymentStatus.PAID.value

    def test_not_paid_before_delivery(self, make_variant, place_order, advance_order):
        order_id = place_order({make_variant(): 1})
        advance_order(order_id, "Packed", "Shipped")
        with pytest.raises(InvalidTransition):
            _process(UpdatePaymentStatus(order_id=order_id, payment_status="Paid"))

    def test_failed(self, make_variant, place_order, advance_order):
        order_id = place_order({make_variant(): 1})
        advance_order(order_id, "Packed", "Shipped", "Cancelled", reason="Refused at door")

        _process(UpdatePaymentStatus(order_id=order_id, payment_status="Failed", reason="Refused at door"))

        assert _order(order_id).payment_status == PaymentStatus.FAILED.value

    def test_only_paid_or_failed(self, make_variant, place_order):
        order_id = place_order({make_variant(): 1})
        with pytest.raises(ValidationError):
            _process(UpdatePaymentStatus(order_id=order_id, payment_status="Pending"))


class TestCustomerCancellation:
    def test_cancel_pending_order(self, make_variant, place_order):
        order_id = place_order({make_variant(): 1})

        _process(CancelOrder(order_id=order_id, customer_id="cust-001", reason="Ordered by mistake"))

        order = _order(order_id)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancelled_by == "customer"

    def test_cannot_cancel_once_packed(self, make_variant, place_order, advance_order):
        order_id = place_order({make_variant(): 1})
        advance_order(order_id, "Packed")
        with pytest.raises(InvalidTransition):
            _process(CancelOrder(order_id=order_id, customer_id="cust-001", reason="Too slow"))

    def test_other_customers_order_is_not_found(self, make_variant, place_order):
        order_id = place_order({make_variant(): 1})
        with pytest.raises(NotFound):
            _process(CancelOrder(order_id=order_id, customer_id="cust-002", reason="Not mine"))
        assert _order(order_id).status == OrderStatus.PENDING_CONFIRMATION.value

    def test_reason_required(self, make_variant, place_order):
        order_id = place_order({make_variant(): 1})
        with pytest.raises(ValidationError):
            _process(CancelOrder(order_id=order_id, customer_id="cust-001"))
