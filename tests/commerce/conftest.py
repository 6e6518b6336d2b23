"""Factories shared by the commerce test suites.

Each factory goes through the same commands the service uses, so the
aggregates they create are persisted exactly as in production.
"""

import json
from uuid import uuid4

import pytest
from protean import current_domain

from commerce.addresses.management import RegisterAddress
from commerce.cart.lines import AddToCart, ApplyCartOffer
from commerce.catalog.management import RegisterOffer, RegisterVariant, SetVariantAvailability
from commerce.order.checkout import PlaceOrder
from commerce.order.status import UpdateOrderStatus


def _process(command):
    return current_domain.process(command, asynchronous=False)


@pytest.fixture
def make_variant():
    def _make(base_price="100.00", stock=10, offer_price=None, active=True, sku=None):
        variant_id = _process(
            RegisterVariant(
                product_id="prod-001",
                sku=sku or f"SKU-{uuid4().hex[:8]}",
                title="Cotton Kandura",
                base_price=base_price,
                offer_price=offer_price,
                stock_quantity=stock,
            )
        )
        if not active:
            _process(SetVariantAvailability(variant_id=variant_id, is_active=False))
        return variant_id

    return _make


@pytest.fixture
def make_offer():
    def _make(kind, eligible=None, **fields):
        return _process(
            RegisterOffer(
                name=f"{kind} promo",
                kind=kind,
                eligible_variant_ids=json.dumps(eligible or []),
                **fields,
            )
        )

    return _make


@pytest.fixture
def make_address():
    def _make(customer_id="cust-001"):
        return _process(
            RegisterAddress(
                customer_id=customer_id,
                recipient="Aisha Rahman",
                phone="+971500000000",
                street="12 Al Wasl Road",
                city="Dubai",
                state="Dubai",
                country="AE",
            )
        )

    return _make


@pytest.fixture
def place_order(make_address):
    """Fill the customer's cart with ``lines`` ({variant_id: qty}) and check out."""

    def _place(lines, customer_id="cust-001", offer_id=None):
        for variant_id, quantity in lines.items():
            _process(AddToCart(customer_id=customer_id, variant_id=variant_id, quantity=quantity))
        if offer_id:
            _process(ApplyCartOffer(customer_id=customer_id, offer_id=offer_id))
        address_id = make_address(customer_id)
        return _process(PlaceOrder(customer_id=customer_id, address_id=address_id))

    return _place


@pytest.fixture
def advance_order():
    """Drive an order through the given statuses with the admin command."""

    def _advance(order_id, *statuses, reason=None):
        for status in statuses:
            _process(UpdateOrderStatus(order_id=order_id, status=status, reason=reason, acted_by="admin-001"))

    return _advance
