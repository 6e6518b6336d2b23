"""Offer Engine: price one catalog line under a promotional offer.

Everything here is pure. Inputs are frozen dataclasses holding ``Decimal``
amounts; nothing is rounded, so line results can be summed without
accumulating rounding error. Rounding happens when totals are rendered.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

ZERO = Decimal("0")
HUNDRED = Decimal("100")


class OfferKind(Enum):
    PERCENTAGE_OFF = "PercentageOff"
    FIXED_AMOUNT_OFF = "FixedAmountOff"
    BUY_X_GET_Y_FREE = "BuyXGetYFree"
    CART_PERCENTAGE_OFF = "CartPercentageOff"
    CART_FIXED_OFF = "CartFixedOff"

    @classmethod
    def parse(cls, value):
        """Return the kind for ``value`` or None when it is not one we price."""
        try:
            return cls(value)
        except ValueError:
            return None


ITEM_LEVEL_KINDS = frozenset({OfferKind.PERCENTAGE_OFF, OfferKind.FIXED_AMOUNT_OFF, OfferKind.BUY_X_GET_Y_FREE})
CART_LEVEL_KINDS = frozenset({OfferKind.CART_PERCENTAGE_OFF, OfferKind.CART_FIXED_OFF})


@dataclass(frozen=True)
class VariantPrice:
    variant_id: str
    base_price: Decimal


@dataclass(frozen=True)
class OfferTerms:
    """Read-only view of an offer as the pricing functions need it."""

    offer_id: str
    kind: str
    discount_value: Decimal | None = None
    buy_quantity: int | None = None
    free_quantity: int | None = None
    min_cart_amount: Decimal | None = None
    eligible_variant_ids: frozenset = field(default_factory=frozenset)
    is_active: bool = True
    starts_at: datetime | None = None
    ends_at: datetime | None = None

    @property
    def parsed_kind(self):
        return OfferKind.parse(self.kind)

    @property
    def is_cart_level(self) -> bool:
        return self.parsed_kind in CART_LEVEL_KINDS

    def is_live(self, as_of: datetime | None = None) -> bool:
        """Active and inside its validity window. A missing bound is open."""
        if not self.is_active:
            return False
        if as_of is None:
            return True
        if self.starts_at is not None and as_of < self.starts_at:
            return False
        if self.ends_at is not None and as_of > self.ends_at:
            return False
        return True

    def covers(self, variant_id) -> bool:
        return str(variant_id) in self.eligible_variant_ids


@dataclass(frozen=True)
class ItemPricing:
    """Pricing of one line.

    ``unit_price + unit_discount == base_price`` always holds. For
    buy-X-get-Y offers the discount is decided per line, so ``unit_discount``
    is the line discount spread evenly over the units.
    """

    variant_id: str
    quantity: int
    base_price: Decimal
    unit_price: Decimal
    unit_discount: Decimal
    line_discount: Decimal
    offer_id: str | None = None

    @property
    def line_subtotal(self) -> Decimal:
        return self.base_price * self.quantity

    @property
    def line_total(self) -> Decimal:
        return self.line_subtotal - self.line_discount


def _undiscounted(variant: VariantPrice, quantity: int) -> ItemPricing:
    return ItemPricing(
        variant_id=str(variant.variant_id),
        quantity=quantity,
        base_price=variant.base_price,
        unit_price=variant.base_price,
        unit_discount=ZERO,
        line_discount=ZERO,
    )


def applicable_item_offer(variant: VariantPrice, offer: OfferTerms | None, as_of: datetime | None = None):
    """Return ``offer`` if it discounts this variant on its own, else None."""
    if offer is None or not offer.is_live(as_of):
        return None
    if offer.parsed_kind not in ITEM_LEVEL_KINDS:
        return None
    if not offer.covers(variant.variant_id):
        return None
    return offer


def free_units(quantity: int, buy_quantity: int, free_quantity: int) -> int:
    """Free units in a buy-X-get-Y line: whole qualifying groups only."""
    if not buy_quantity or not free_quantity or buy_quantity < 0 or free_quantity < 0:
        return 0
    return (quantity // (buy_quantity + free_quantity)) * free_quantity


def price_item(
    variant: VariantPrice,
    offer: OfferTerms | None,
    quantity: int = 1,
    as_of: datetime | None = None,
) -> ItemPricing:
    """Effective unit price and discount of ``quantity`` units of ``variant``.

    Cart-level, unknown, inactive or expired offers and offers that do not
    list the variant leave the base price untouched.
    """
    offer = applicable_item_offer(variant, offer, as_of)
    if offer is None:
        return _undiscounted(variant, quantity)

    base = variant.base_price
    kind = offer.parsed_kind
    value = offer.discount_value if offer.discount_value is not None else ZERO

    if kind is OfferKind.BUY_X_GET_Y_FREE:
        line_discount = free_units(quantity, offer.buy_quantity, offer.free_quantity) * base
        unit_discount = line_discount / quantity if quantity else ZERO
        unit_price = base - unit_discount
    else:
        if kind is OfferKind.PERCENTAGE_OFF:
            unit_price = max(ZERO, base * (1 - value / HUNDRED))
        else:
            unit_price = max(ZERO, base - value)
        unit_price = min(unit_price, base)
        unit_discount = base - unit_price
        line_discount = unit_discount * quantity

    return ItemPricing(
        variant_id=str(variant.variant_id),
        quantity=quantity,
        base_price=base,
        unit_price=unit_price,
        unit_discount=unit_discount,
        line_discount=line_discount,
        offer_id=offer.offer_id if line_discount > 0 else None,
    )
