"""Cart commands and handler: line editing, offer selection and guest merge."""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, Text
from protean.utils.globals import current_domain

from commerce.cart.cart import ShoppingCart
from commerce.catalog.offer import Offer
from commerce.catalog.variant import Variant
from commerce.domain import commerce
from commerce.shared.repository import fetch, find

logger = structlog.get_logger(__name__)


@commerce.command(part_of="ShoppingCart")
class AddToCart:
    customer_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@commerce.command(part_of="ShoppingCart")
class SetCartQuantity:
    customer_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=0)


@commerce.command(part_of="ShoppingCart")
class RemoveFromCart:
    customer_id = Identifier(required=True)
    variant_id = Identifier(required=True)


@commerce.command(part_of="ShoppingCart")
class ApplyCartOffer:
    customer_id = Identifier(required=True)
    offer_id = Identifier(required=True)


@commerce.command(part_of="ShoppingCart")
class RemoveCartOffer:
    customer_id = Identifier(required=True)


@commerce.command(part_of="ShoppingCart")
class ClearCart:
    customer_id = Identifier(required=True)


@commerce.command(part_of="ShoppingCart")
class MergeGuestCart:
    """Fold the lines a shopper collected before signing in into their cart."""

    customer_id = Identifier(required=True)
    lines = Text(required=True)  # JSON: list of {variant_id, quantity}


def _cart_for(customer_id):
    return find(ShoppingCart, customer_id) or ShoppingCart.create(customer_id)


def _purchasable_variant(variant_id):
    variant = fetch(Variant, variant_id)
    if not variant.is_active:
        raise ValidationError({"variant_id": [f"Variant {variant_id} is not available for sale"]})
    return variant


def _check_stock(variant, quantity):
    if quantity > variant.stock_quantity:
        raise ValidationError(
            {"quantity": [f"Only {variant.stock_quantity} units of {variant.sku} are in stock, requested {quantity}"]}
        )


@commerce.command_handler(part_of=ShoppingCart)
class CartLinesHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        cart = _cart_for(command.customer_id)
        variant = _purchasable_variant(command.variant_id)
        _check_stock(variant, cart.quantity_of(command.variant_id) + command.quantity)

        cart.add_line(command.variant_id, command.quantity)
        current_domain.repository_for(ShoppingCart).add(cart)

    @handle(SetCartQuantity)
    def set_quantity(self, command):
        cart = fetch(ShoppingCart, command.customer_id, kind="Cart")
        if command.quantity > 0:
            _check_stock(_purchasable_variant(command.variant_id), command.quantity)

        cart.set_quantity(command.variant_id, command.quantity)
        current_domain.repository_for(ShoppingCart).add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        cart = fetch(ShoppingCart, command.customer_id, kind="Cart")
        cart.remove_line(command.variant_id)
        current_domain.repository_for(ShoppingCart).add(cart)

    @handle(ApplyCartOffer)
    def apply_offer(self, command):
        offer = fetch(Offer, command.offer_id)
        if not offer.is_active:
            raise ValidationError({"offer_id": [f"Offer {command.offer_id} is no longer active"]})

        cart = _cart_for(command.customer_id)
        cart.apply_offer(command.offer_id)
        current_domain.repository_for(ShoppingCart).add(cart)

    @handle(RemoveCartOffer)
    def remove_offer(self, command):
        cart = fetch(ShoppingCart, command.customer_id, kind="Cart")
        cart.remove_offer()
        current_domain.repository_for(ShoppingCart).add(cart)

    @handle(ClearCart)
    def clear_cart(self, command):
        cart = find(ShoppingCart, command.customer_id)
        if cart is None or (cart.is_empty and not cart.offer_id):
            return
        cart.clear()
        current_domain.repository_for(ShoppingCart).add(cart)

    @handle(MergeGuestCart)
    def merge_guest_cart(self, command):
        """Merge guest lines, dropping unknown, inactive or sold-out variants.

        Quantities are capped at what is in stock. Returns the variant ids
        that were skipped so the caller can tell the shopper.
        """
        try:
            guest_lines = json.loads(command.lines)
        except (json.JSONDecodeError, TypeError):
            raise ValidationError({"lines": ["Guest cart lines must be a JSON list"]}) from None
        if not isinstance(guest_lines, list) or not all(isinstance(entry, dict) for entry in guest_lines):
            raise ValidationError({"lines": ["Guest cart lines must be a JSON list"]})

        cart = _cart_for(command.customer_id)
        skipped = []
        for entry in guest_lines:
            variant_id = str(entry.get("variant_id", ""))
            quantity = int(entry.get("quantity") or 0)
            variant = find(Variant, variant_id) if variant_id else None
            if variant is None or not variant.is_purchasable or quantity < 1:
                skipped.append(variant_id)
                continue

            allowed = min(quantity, variant.stock_quantity - cart.quantity_of(variant_id))
            if allowed < 1:
                skipped.append(variant_id)
                continue
            cart.add_line(variant_id, allowed)

        current_domain.repository_for(ShoppingCart).add(cart)
        if skipped:
            logger.info("guest_cart_lines_skipped", customer_id=str(command.customer_id), variant_ids=skipped)
        return skipped
