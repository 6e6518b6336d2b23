import pytest
from commerce.order.order import Order, OrderStatus

ADDRESS = {
    "address_id": "addr-001",
    "recipient": "Aisha Rahman",
    "phone": "+971500000000",
    "street": "12 Al Wasl Road",
    "city": "Dubai",
    "state": "Dubai",
    "country": "AE",
}

PRICING = {
    "actual_price": "250.00",
    "discount_price": "20.00",
    "shipping_price": "0.00",
    "payable_price": "230.00",
    "currency": "AED",
}

ITEMS = [
    {
        "variant_id": "var-001",
        "sku": "KND-S",
        "title": "Kandura S",
        "quantity": 2,
        "actual_price": "100.00",
        "offer_price": "90.00",
        "line_discount": "20.00",
        "offer_id": "offer-001",
    },
    {
        "variant_id": "var-002",
        "sku": "GHT-1",
        "title": "Ghutra",
        "quantity": 1,
        "actual_price": "50.00",
        "offer_price": None,
        "line_discount": "0.00",
        "offer_id": None,
    },
]


def _place():
    return Order.place(
        customer_id="cust-001",
        address_id="addr-001",
        shipping_address=ADDRESS,
        items_data=ITEMS,
        pricing=PRICING,
        offer_id="offer-001",
    )


@pytest.fixture
def new_order():
    """An order just placed, not yet persisted."""
    return _place


@pytest.fixture
def order_at_state():
    """Build an in-memory order advanced to ``target``, with its events cleared."""

    def _build(target):
        order = _place()
        if target in (OrderStatus.PACKED, OrderStatus.SHIPPED, OrderStatus.DELIVERED):
            order.pack()
        if target in (OrderStatus.SHIPPED, OrderStatus.DELIVERED):
            order.ship(stock_token=order.dispatch_token())
        if target == OrderStatus.DELIVERED:
            order.deliver()
        if target == OrderStatus.CANCELLED:
            order.cancel("Customer changed their mind", cancelled_by="customer")
        order._events.clear()
        return order

    return _build
