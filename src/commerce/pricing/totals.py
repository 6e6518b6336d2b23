"""Cart Total Calculator: fold line pricing into cart totals."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from commerce.pricing.engine import HUNDRED, ZERO, ItemPricing, OfferKind, OfferTerms, VariantPrice, price_item
from commerce.shared.money import quantize


@dataclass(frozen=True)
class CartLineInput:
    variant_id: str
    base_price: Decimal
    quantity: int


@dataclass(frozen=True)
class CartTotals:
    lines: tuple[ItemPricing, ...]
    subtotal: Decimal
    item_discount: Decimal
    cart_discount: Decimal
    discount: Decimal
    shipping: Decimal
    payable: Decimal
    offer_id: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def as_strings(self) -> dict:
        """Two-place amounts. Payable is derived from the rounded parts so they always add up."""
        subtotal = quantize(self.subtotal)
        discount = quantize(self.discount)
        shipping = quantize(self.shipping)
        payable = quantize(max(ZERO, subtotal - discount + shipping))
        return {
            "subtotal": str(subtotal),
            "discount": str(discount),
            "shipping": str(shipping),
            "payable": str(payable),
        }


def cart_level_discount(subtotal: Decimal, offer: OfferTerms | None, as_of: datetime | None = None) -> Decimal:
    """Discount granted by a cart-level offer, zero when below its threshold."""
    if offer is None or not offer.is_cart_level or not offer.is_live(as_of):
        return ZERO
    if offer.min_cart_amount is not None and subtotal < offer.min_cart_amount:
        return ZERO

    value = offer.discount_value if offer.discount_value is not None else ZERO
    if value <= 0:
        return ZERO
    if offer.parsed_kind is OfferKind.CART_PERCENTAGE_OFF:
        return subtotal * min(value, HUNDRED) / HUNDRED
    return value


def compute_totals(
    lines,
    offer: OfferTerms | None = None,
    shipping: Decimal = ZERO,
    as_of: datetime | None = None,
) -> CartTotals:
    """Price every line and total the cart.

    The combined discount is capped so the payable amount never drops below
    zero. An empty cart totals to zero, shipping included.
    """
    priced = tuple(
        price_item(VariantPrice(line.variant_id, line.base_price), offer, line.quantity, as_of) for line in lines
    )
    if not priced:
        return CartTotals(
            lines=(),
            subtotal=ZERO,
            item_discount=ZERO,
            cart_discount=ZERO,
            discount=ZERO,
            shipping=ZERO,
            payable=ZERO,
        )

    subtotal = sum((line.line_subtotal for line in priced), ZERO)
    item_discount = sum((line.line_discount for line in priced), ZERO)
    cart_discount = cart_level_discount(subtotal, offer, as_of)

    shipping = shipping or ZERO
    ceiling = subtotal + shipping
    discount = min(item_discount + cart_discount, ceiling)
    # Whatever the cap removed comes off the cart-level share
    cart_discount = discount - min(item_discount, discount)
    payable = max(ZERO, subtotal - discount + shipping)

    applied = None
    if discount > 0 and offer is not None:
        applied = offer.offer_id

    return CartTotals(
        lines=priced,
        subtotal=subtotal,
        item_discount=min(item_discount, discount),
        cart_discount=cart_discount,
        discount=discount,
        shipping=shipping,
        payable=payable,
        offer_id=applied,
    )
