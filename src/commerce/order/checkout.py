"""Checkout: turn the customer's priced cart into an order.

The order and the emptied cart are persisted in the same unit of work, so a
failed checkout leaves the cart as it was.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from commerce.addresses.address import Address
from commerce.cart.cart import ShoppingCart
from commerce.cart.quote import quote_cart
from commerce.domain import commerce
from commerce.exceptions import NotFound
from commerce.order.order import Order
from commerce.shared.money import ZERO, format_amount
from commerce.shared.repository import fetch, find

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    address_id = Identifier(required=True)


def _line_snapshots(quote):
    snapshots = []
    for line in quote.totals.lines:
        variant = quote.variants[line.variant_id]
        discounted = line.line_discount > 0
        snapshots.append(
            {
                "variant_id": line.variant_id,
                "sku": variant.sku,
                "title": variant.title,
                "quantity": line.quantity,
                "actual_price": format_amount(line.base_price),
                "offer_price": format_amount(line.unit_price) if discounted else None,
                "line_discount": format_amount(line.line_discount),
                "offer_id": line.offer_id,
            }
        )
    return snapshots


def _assert_orderable(quote):
    errors = []
    for line in quote.totals.lines:
        variant = quote.variants[line.variant_id]
        if not variant.is_active:
            errors.append(f"{variant.sku} is no longer available")
        elif line.quantity > variant.stock_quantity:
            errors.append(f"Only {variant.stock_quantity} units of {variant.sku} are in stock")
    if errors:
        raise ValidationError({"cart": errors})


@commerce.command_handler(part_of=Order)
class CheckoutHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        cart = find(ShoppingCart, command.customer_id)
        if cart is None or cart.is_empty:
            raise ValidationError({"cart": ["Cart is empty"]})

        address = fetch(Address, command.address_id)
        if not address.belongs_to(command.customer_id):
            # Someone else's address is reported exactly like a missing one
            raise NotFound("Address", command.address_id)

        quote = quote_cart(cart)
        _assert_orderable(quote)

        totals = quote.totals.as_strings()
        if quote.totals.payable <= ZERO or totals["payable"] == "0.00":
            raise ValidationError({"cart": ["Payable amount must be greater than zero"]})

        order = Order.place(
            customer_id=command.customer_id,
            address_id=command.address_id,
            shipping_address=address.to_snapshot(),
            items_data=_line_snapshots(quote),
            pricing={
                "actual_price": totals["subtotal"],
                "discount_price": totals["discount"],
                "shipping_price": totals["shipping"],
                "payable_price": totals["payable"],
                "currency": quote.currency,
            },
            offer_id=quote.totals.offer_id,
        )
        current_domain.repository_for(Order).add(order)

        cart.check_out(str(order.id))
        current_domain.repository_for(ShoppingCart).add(cart)

        logger.info(
            "order_placed",
            order_id=str(order.id),
            customer_id=str(command.customer_id),
            payable=totals["payable"],
            lines=len(order.items),
        )
        return str(order.id)
