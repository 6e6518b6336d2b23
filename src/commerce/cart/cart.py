"""ShoppingCart aggregate (CQRS): one open cart per customer.

The cart only records what the shopper picked: variant ids, quantities and at
most one offer. Prices are never stored here; every quote reprices the cart
against the current catalog.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer

from commerce.cart.events import (
    CartCleared,
    CartLineAdded,
    CartLineQuantityChanged,
    CartLineRemoved,
    CartOfferChanged,
)
from commerce.domain import commerce
from commerce.exceptions import NotFound


@commerce.entity(part_of="ShoppingCart")
class CartLine:
    variant_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()


@commerce.aggregate
class ShoppingCart:
    customer_id = Identifier(required=True)
    lines = HasMany(CartLine)
    offer_id = Identifier()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def variants_must_be_unique(self):
        variant_ids = [str(line.variant_id) for line in self.lines or []]
        if len(variant_ids) != len(set(variant_ids)):
            raise ValidationError({"lines": ["A variant may appear only once in a cart"]})

    @classmethod
    def create(cls, customer_id):
        """The cart shares its identity with the customer who owns it."""
        now = datetime.now(UTC)
        return cls(id=str(customer_id), customer_id=customer_id, created_at=now, updated_at=now)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def line_for(self, variant_id):
        return next((line for line in self.lines if str(line.variant_id) == str(variant_id)), None)

    def quantity_of(self, variant_id) -> int:
        line = self.line_for(variant_id)
        return line.quantity if line else 0

    def add_line(self, variant_id, quantity):
        """Add units of a variant, merging into an existing line."""
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        now = datetime.now(UTC)
        line = self.line_for(variant_id)
        if line:
            line.quantity += quantity
        else:
            line = CartLine(variant_id=variant_id, quantity=quantity, added_at=now)
            self.add_lines(line)
        self.updated_at = now

        self.raise_(
            CartLineAdded(
                cart_id=str(self.id),
                variant_id=str(variant_id),
                quantity=quantity,
                new_quantity=line.quantity,
            )
        )

    def set_quantity(self, variant_id, quantity):
        """Set the absolute quantity of a line. Zero removes it."""
        if quantity is None or quantity < 0:
            raise ValidationError({"quantity": ["Quantity cannot be negative"]})
        if quantity == 0:
            self.remove_line(variant_id)
            return

        line = self.line_for(variant_id)
        if line is None:
            raise NotFound("Cart line", variant_id)

        previous = line.quantity
        line.quantity = quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(
            CartLineQuantityChanged(
                cart_id=str(self.id),
                variant_id=str(variant_id),
                previous_quantity=previous,
                new_quantity=quantity,
            )
        )

    def remove_line(self, variant_id):
        line = self.line_for(variant_id)
        if line is None:
            raise NotFound("Cart line", variant_id)

        self.remove_lines(line)
        self.updated_at = datetime.now(UTC)
        self.raise_(CartLineRemoved(cart_id=str(self.id), variant_id=str(variant_id)))

    def apply_offer(self, offer_id):
        """Attach an offer, replacing any previous one. A cart carries at most one."""
        previous = self.offer_id
        if previous and str(previous) == str(offer_id):
            return
        self.offer_id = offer_id
        self.updated_at = datetime.now(UTC)
        self.raise_(CartOfferChanged(cart_id=str(self.id), previous_offer_id=previous, offer_id=str(offer_id)))

    def remove_offer(self):
        previous = self.offer_id
        if not previous:
            return
        self.offer_id = None
        self.updated_at = datetime.now(UTC)
        self.raise_(CartOfferChanged(cart_id=str(self.id), previous_offer_id=previous))

    def clear(self, reason="cleared", order_id=None):
        for line in list(self.lines):
            self.remove_lines(line)
        self.offer_id = None
        self.updated_at = datetime.now(UTC)
        self.raise_(CartCleared(cart_id=str(self.id), reason=reason, order_id=order_id))

    def check_out(self, order_id):
        """Empty the cart once its contents became ``order_id``."""
        if self.is_empty:
            raise ValidationError({"cart": ["Cannot check out an empty cart"]})
        self.clear(reason="checked_out", order_id=order_id)
