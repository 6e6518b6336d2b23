"""Price a cart against the live catalog and its attached offer."""

from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from commerce.cart.cart import ShoppingCart
from commerce.catalog.offer import Offer
from commerce.catalog.variant import Variant
from commerce.pricing.totals import CartLineInput, CartTotals, compute_totals
from commerce.shared.money import format_amount
from commerce.shared.repository import fetch, find
from commerce.utils import settings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CartQuote:
    customer_id: str
    offer_id: str | None
    totals: CartTotals
    variants: dict
    currency: str

    @property
    def is_empty(self) -> bool:
        return self.totals.is_empty

    def to_dict(self) -> dict:
        lines = []
        for line in self.totals.lines:
            variant = self.variants[line.variant_id]
            lines.append(
                {
                    "variant_id": line.variant_id,
                    "sku": variant.sku,
                    "title": variant.title,
                    "quantity": line.quantity,
                    "base_price": format_amount(line.base_price),
                    "unit_price": format_amount(line.unit_price),
                    "unit_discount": format_amount(line.unit_discount),
                    "line_discount": format_amount(line.line_discount),
                    "line_total": format_amount(line.line_total),
                }
            )
        return {
            "customer_id": self.customer_id,
            "offer_id": self.offer_id,
            "applied_offer_id": self.totals.offer_id,
            "lines": lines,
            "currency": self.currency,
            **self.totals.as_strings(),
        }


def _offer_terms(cart):
    if not cart.offer_id:
        return None
    offer = find(Offer, cart.offer_id)
    if offer is None:
        # Offers are maintained elsewhere; a vanished one prices as no offer
        logger.warning("cart_offer_missing", cart_id=str(cart.id), offer_id=str(cart.offer_id))
        return None
    return offer.terms()


def quote_cart(cart: ShoppingCart, as_of: datetime | None = None) -> CartQuote:
    variants = {str(line.variant_id): fetch(Variant, line.variant_id) for line in cart.lines}
    lines = [CartLineInput(str(line.variant_id), variants[str(line.variant_id)].price, line.quantity) for line in cart.lines]
    totals = compute_totals(
        lines,
        offer=_offer_terms(cart),
        shipping=settings.shipping_fee(),
        as_of=as_of or datetime.now(UTC),
    )
    return CartQuote(
        customer_id=str(cart.customer_id),
        offer_id=str(cart.offer_id) if cart.offer_id else None,
        totals=totals,
        variants=variants,
        currency=settings.currency(),
    )


def quote_for_customer(customer_id, as_of: datetime | None = None) -> CartQuote:
    """Quote the customer's cart; a customer without one gets an empty quote."""
    cart = find(ShoppingCart, customer_id) or ShoppingCart.create(customer_id)
    return quote_cart(cart, as_of=as_of)
