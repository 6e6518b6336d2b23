"""Offer aggregate: a promotion maintained by the admin side of the shop.

The pricing core only reads offers. Which fields an offer carries depends on
its kind; offers of a kind the engine does not know are stored as they are
and price as no discount.
"""

import json
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Integer, String, Text

from commerce.catalog.events import OfferDeactivated, OfferRegistered
from commerce.domain import commerce
from commerce.pricing.engine import CART_LEVEL_KINDS, OfferKind, OfferTerms
from commerce.shared.money import to_decimal


def _aware(moment):
    if moment is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


@commerce.aggregate
class Offer:
    name = String(required=True, max_length=255)
    kind = String(required=True, max_length=50)
    discount_value = String(max_length=20)
    buy_quantity = Integer()
    free_quantity = Integer()
    min_cart_amount = String(max_length=20)
    eligible_variant_ids = Text()  # JSON list of variant ids
    is_active = Boolean(default=True)
    starts_at = DateTime()
    ends_at = DateTime()
    created_at = DateTime()

    @invariant.post
    def fields_must_match_kind(self):
        kind = OfferKind.parse(self.kind)
        if kind is None:
            return

        errors = {}
        value = to_decimal(self.discount_value, field="discount_value")
        minimum = to_decimal(self.min_cart_amount, field="min_cart_amount")
        eligible = self.eligible_ids

        if kind is OfferKind.BUY_X_GET_Y_FREE:
            if not self.buy_quantity or self.buy_quantity < 1:
                errors["buy_quantity"] = ["Buy quantity must be a positive integer"]
            if not self.free_quantity or self.free_quantity < 1:
                errors["free_quantity"] = ["Free quantity must be a positive integer"]
            if value is not None:
                errors["discount_value"] = ["Buy-X-get-Y offers do not take a discount value"]
        else:
            if self.buy_quantity is not None or self.free_quantity is not None:
                errors["buy_quantity"] = ["Buy and free quantities only apply to BuyXGetYFree offers"]
            if value is None:
                errors["discount_value"] = ["Discount value is required"]
            elif kind in (OfferKind.PERCENTAGE_OFF, OfferKind.CART_PERCENTAGE_OFF):
                if not 1 <= value <= 100:
                    errors["discount_value"] = ["Percentage must be between 1 and 100"]
            elif value <= 0:
                errors["discount_value"] = ["Discount amount must be greater than zero"]

        if kind in CART_LEVEL_KINDS:
            if minimum is None or minimum <= 0:
                errors["min_cart_amount"] = ["Cart-level offers need a positive minimum cart amount"]
            if eligible:
                errors["eligible_variant_ids"] = ["Cart-level offers apply to the whole cart, not to variants"]
        else:
            if minimum is not None:
                errors["min_cart_amount"] = ["Minimum cart amount only applies to cart-level offers"]
            if not eligible:
                errors["eligible_variant_ids"] = ["Item-level offers need at least one eligible variant"]

        if self.starts_at and self.ends_at and _aware(self.ends_at) <= _aware(self.starts_at):
            errors["ends_at"] = ["Offer must end after it starts"]

        if errors:
            raise ValidationError(errors)

    @classmethod
    def create(
        cls,
        name,
        kind,
        discount_value=None,
        buy_quantity=None,
        free_quantity=None,
        min_cart_amount=None,
        eligible_variant_ids=None,
        starts_at=None,
        ends_at=None,
        offer_id=None,
    ):
        value = to_decimal(discount_value, field="discount_value")
        minimum = to_decimal(min_cart_amount, field="min_cart_amount")
        values = dict(
            name=name,
            kind=kind,
            discount_value=str(value) if value is not None else None,
            buy_quantity=buy_quantity,
            free_quantity=free_quantity,
            min_cart_amount=str(minimum) if minimum is not None else None,
            eligible_variant_ids=json.dumps(sorted(str(v) for v in eligible_variant_ids or [])),
            starts_at=_aware(starts_at),
            ends_at=_aware(ends_at),
            created_at=datetime.now(UTC),
        )
        if offer_id:
            values["id"] = offer_id
        offer = cls(**values)
        offer.raise_(OfferRegistered(offer_id=str(offer.id), name=name, kind=kind))
        return offer

    @property
    def eligible_ids(self) -> list:
        if not self.eligible_variant_ids:
            return []
        return json.loads(self.eligible_variant_ids)

    def deactivate(self):
        if not self.is_active:
            return
        self.is_active = False
        self.raise_(OfferDeactivated(offer_id=str(self.id), deactivated_at=datetime.now(UTC)))

    def terms(self) -> OfferTerms:
        """Snapshot this offer for the pricing functions."""
        return OfferTerms(
            offer_id=str(self.id),
            kind=self.kind,
            discount_value=to_decimal(self.discount_value),
            buy_quantity=self.buy_quantity,
            free_quantity=self.free_quantity,
            min_cart_amount=to_decimal(self.min_cart_amount),
            eligible_variant_ids=frozenset(self.eligible_ids),
            is_active=bool(self.is_active),
            starts_at=_aware(self.starts_at),
            ends_at=_aware(self.ends_at),
        )
