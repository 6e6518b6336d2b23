import json

import pytest
from commerce.catalog.variant import Variant
from commerce.exceptions import InvalidTransition, NotFound
from commerce.order.order import Order, OrderStatus
from commerce.order.returns import ReturnStock, parse_return_lines
from protean import current_domain
from protean.exceptions import ValidationError


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _stock(variant_id):
    return current_domain.repository_for(Variant).get(variant_id).stock_quantity


def _return(order_id, lines, request_id=None):
    return _process(
        ReturnStock(
            order_id=order_id,
            lines=json.dumps([{"variant_id": v, "quantity": q} for v, q in lines.items()]),
            request_id=request_id,
            acted_by="warehouse-01",
        )
    )


@pytest.fixture
def delivered(make_variant, place_order, advance_order):
    """A delivered order for 3 kanduras and 1 ghutra, with 10 of each stocked beforehand."""
    kandura = make_variant(stock=10)
    ghutra = make_variant(stock=10)
    order_id = place_order({kandura: 3, ghutra: 1})
    advance_order(order_id, "Packed", "Shipped", "Delivered")
    return order_id, kandura, ghutra


class TestParseReturnLines:
    def test_zero_lines_dropped_and_duplicates_summed(self):
        lines = parse_return_lines(
            '[{"variant_id": "a", "quantity": 1}, {"variant_id": "b", "quantity": 0}, {"variant_id": "a", "quantity": 2}]'
        )
        assert lines == {"a": 3}

    @pytest.mark.parametrize(
        "raw",
        [
            '[{"variant_id": "a", "quantity": -1}]',
            '[{"variant_id": "a", "quantity": 1.5}]',
            '[{"variant_id": "a", "quantity": "2"}]',
            '[{"quantity": 1}]',
            '[{"variant_id": "a", "quantity": 0}]',
            "[]",
            "{}",
            "oops",
        ],
    )
    def test_rejects_malformed(self, raw):
        with pytest.raises(ValidationError):
            parse_return_lines(raw)


class TestStockReturns:
    def test_return_credits_stock(self, delivered):
        order_id, kandura, ghutra = delivered
        assert _stock(kandura) == 7

        summary = _return(order_id, {kandura: 2}, request_id="rma-1")

        assert _stock(kandura) == 9
        assert _stock(ghutra) == 9
        kandura_line = next(line for line in summary["lines"] if line["variant_id"] == kandura)
        assert kandura_line["returned_now"] == 2
        assert kandura_line["returned_quantity"] == 2
        assert kandura_line["remaining_quantity"] == 1
        assert kandura_line["stock_quantity"] == 9
        assert summary["replayed"] is False

    def test_status_and_prices_untouched(self, delivered):
        order_id, kandura, _ = delivered
        before = current_domain.repository_for(Order).get(order_id)

        _return(order_id, {kandura: 1})

        after = current_domain.repository_for(Order).get(order_id)
        assert after.status == OrderStatus.DELIVERED.value
        assert after.pricing.payable_price == before.pricing.payable_price

    def test_cumulative_bound(self, delivered):
        order_id, kandura, _ = delivered
        _return(order_id, {kandura: 2})

        with pytest.raises(ValidationError):
            _return(order_id, {kandura: 2})
        assert _stock(kandura) == 9

        _return(order_id, {kandura: 1})
        assert _stock(kandura) == 10

    def test_one_bad_line_rejects_request(self, delivered):
        order_id, kandura, ghutra = delivered
        with pytest.raises(ValidationError):
            _return(order_id, {kandura: 1, ghutra: 2})
        assert _stock(kandura) == 7
        assert _stock(ghutra) == 9

    def test_variant_not_on_order(self, delivered, make_variant):
        order_id, _, _ = delivered
        stranger = make_variant(stock=4)
        with pytest.raises(ValidationError):
            _return(order_id, {stranger: 1})
        assert _stock(stranger) == 4

    def test_replayed_request_is_a_no_op(self, delivered):
        order_id, kandura, _ = delivered
        _return(order_id, {kandura: 1}, request_id="rma-7")

        summary = _return(order_id, {kandura: 1}, request_id="rma-7")

        assert summary["replayed"] is True
        assert _stock(kandura) == 8

    def test_reused_request_id_with_other_lines(self, delivered):
        order_id, kandura, _ = delivered
        _return(order_id, {kandura: 1}, request_id="rma-8")
        with pytest.raises(ValidationError):
            _return(order_id, {kandura: 2}, request_id="rma-8")
        assert _stock(kandura) == 8

    def test_unknown_order(self):
        with pytest.raises(NotFound):
            _return("order-404", {"var-001": 1})


class TestReturnableOrders:
    def test_pending_order_rejects_returns(self, make_variant, place_order):
        kandura = make_variant(stock=10)
        order_id = place_order({kandura: 2})
        with pytest.raises(InvalidTransition):
            _return(order_id, {kandura: 1})
        assert _stock(kandura) == 10

    def test_cancelled_before_shipping_rejects_returns(self, make_variant, place_order, advance_order):
        kandura = make_variant(stock=10)
        order_id = place_order({kandura: 2})
        advance_order(order_id, "Cancelled", reason="Duplicate")

        with pytest.raises(InvalidTransition):
            _return(order_id, {kandura: 1})
        assert _stock(kandura) == 10

    def test_restocked_cancellation_leaves_nothing_to_return(self, make_variant, place_order, advance_order):
        kandura = make_variant(stock=10)
        order_id = place_order({kandura: 2})
        advance_order(order_id, "Packed", "Shipped", "Cancelled", reason="Refused")
        assert _stock(kandura) == 10

        with pytest.raises(ValidationError):
            _return(order_id, {kandura: 1})
        assert _stock(kandura) == 10
