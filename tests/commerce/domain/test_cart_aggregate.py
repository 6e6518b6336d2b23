import pytest
from commerce.cart.cart import ShoppingCart
from commerce.cart.events import CartCleared, CartLineAdded, CartLineQuantityChanged, CartOfferChanged
from commerce.exceptions import NotFound
from protean.exceptions import ValidationError


@pytest.fixture
def cart():
    return ShoppingCart.create("cust-001")


class TestCartIdentity:
    def test_cart_id_is_customer_id(self, cart):
        assert cart.id == "cust-001"
        assert cart.customer_id == "cust-001"
        assert cart.is_empty
        assert cart.offer_id is None


class TestCartLines:
    def test_add_line(self, cart):
        cart.add_line("var-001", 2)
        assert cart.quantity_of("var-001") == 2
        assert isinstance(cart._events[-1], CartLineAdded)

    def test_adding_same_variant_merges(self, cart):
        cart.add_line("var-001", 2)
        cart.add_line("var-001", 3)
        assert len(cart.lines) == 1
        assert cart.quantity_of("var-001") == 5
        assert cart._events[-1].new_quantity == 5

    @pytest.mark.parametrize("quantity", [0, -1, None])
    def test_add_needs_positive_quantity(self, cart, quantity):
        with pytest.raises(ValidationError):
            cart.add_line("var-001", quantity)
        assert cart.is_empty

    def test_set_quantity(self, cart):
        cart.add_line("var-001", 2)
        cart.set_quantity("var-001", 7)
        assert cart.quantity_of("var-001") == 7
        event = cart._events[-1]
        assert isinstance(event, CartLineQuantityChanged)
        assert event.previous_quantity == 2

    def test_set_quantity_zero_removes_line(self, cart):
        cart.add_line("var-001", 2)
        cart.set_quantity("var-001", 0)
        assert cart.line_for("var-001") is None

    def test_set_quantity_negative_rejected(self, cart):
        cart.add_line("var-001", 2)
        with pytest.raises(ValidationError):
            cart.set_quantity("var-001", -3)
        assert cart.quantity_of("var-001") == 2

    def test_set_quantity_unknown_line(self, cart):
        with pytest.raises(NotFound):
            cart.set_quantity("var-404", 1)

    def test_remove_unknown_line(self, cart):
        with pytest.raises(NotFound):
            cart.remove_line("var-404")


class TestCartOffer:
    def test_single_offer_replaced(self, cart):
        cart.apply_offer("offer-001")
        cart.apply_offer("offer-002")
        assert cart.offer_id == "offer-002"
        assert cart._events[-1].previous_offer_id == "offer-001"

    def test_reapplying_same_offer_is_silent(self, cart):
        cart.apply_offer("offer-001")
        cart._events.clear()
        cart.apply_offer("offer-001")
        assert cart._events == []

    def test_remove_offer(self, cart):
        cart.apply_offer("offer-001")
        cart.remove_offer()
        assert cart.offer_id is None
        assert isinstance(cart._events[-1], CartOfferChanged)


class TestCartCheckout:
    def test_check_out_clears_lines_and_offer(self, cart):
        cart.add_line("var-001", 1)
        cart.apply_offer("offer-001")
        cart.check_out("order-001")
        assert cart.is_empty
        assert cart.offer_id is None
        event = cart._events[-1]
        assert isinstance(event, CartCleared)
        assert event.reason == "checked_out"
        assert event.order_id == "order-001"

    def test_empty_cart_cannot_check_out(self, cart):
        with pytest.raises(ValidationError):
            cart.check_out("order-001")
