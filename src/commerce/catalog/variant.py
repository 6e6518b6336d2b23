"""Variant aggregate: a purchasable SKU with its price and on-hand stock.

Stock moves only through ``remove_stock``/``add_stock``, which the inventory
ledger calls with an idempotency token. Prices are decimal strings.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, Integer, String

from commerce.catalog.events import (
    StockDecremented,
    StockIncremented,
    VariantAvailabilityChanged,
    VariantPriceChanged,
    VariantRegistered,
)
from commerce.domain import commerce
from commerce.shared.money import to_decimal


def _normalize_price(value, field):
    amount = to_decimal(value, field=field)
    if amount is None:
        return None
    return str(amount)


@commerce.aggregate
class Variant:
    product_id: Identifier(required=True)
    sku: String(required=True, max_length=50)
    title: String(max_length=255)
    base_price: String(required=True, max_length=20)
    offer_price: String(max_length=20)
    stock_quantity: Integer(default=0, min_value=0)
    is_active: Boolean(default=True)
    created_at: DateTime()
    updated_at: DateTime()

    @invariant.post
    def prices_must_be_non_negative(self):
        for field in ("base_price", "offer_price"):
            amount = to_decimal(getattr(self, field), field=field)
            if amount is not None and amount < 0:
                raise ValidationError({field: ["Price cannot be negative"]})

    @classmethod
    def create(cls, product_id, sku, base_price, stock_quantity=0, offer_price=None, title=None, variant_id=None):
        now = datetime.now(UTC)
        values = dict(
            product_id=product_id,
            sku=sku,
            title=title,
            base_price=_normalize_price(base_price, "base_price"),
            offer_price=_normalize_price(offer_price, "offer_price"),
            stock_quantity=stock_quantity,
            created_at=now,
            updated_at=now,
        )
        if variant_id:
            values["id"] = variant_id
        variant = cls(**values)
        variant.raise_(
            VariantRegistered(
                variant_id=str(variant.id),
                product_id=str(product_id),
                sku=sku,
                base_price=variant.base_price,
                offer_price=variant.offer_price,
                stock_quantity=variant.stock_quantity,
            )
        )
        return variant

    @property
    def price(self):
        return to_decimal(self.base_price)

    @property
    def is_purchasable(self) -> bool:
        return bool(self.is_active) and self.stock_quantity > 0

    def change_price(self, base_price, offer_price=None):
        previous = self.base_price
        self.base_price = _normalize_price(base_price, "base_price")
        self.offer_price = _normalize_price(offer_price, "offer_price")
        self.updated_at = datetime.now(UTC)
        self.raise_(
            VariantPriceChanged(
                variant_id=str(self.id),
                previous_base_price=previous,
                new_base_price=self.base_price,
                offer_price=self.offer_price,
            )
        )

    def set_active(self, is_active):
        if bool(self.is_active) == bool(is_active):
            return
        self.is_active = bool(is_active)
        self.updated_at = datetime.now(UTC)
        self.raise_(VariantAvailabilityChanged(variant_id=str(self.id), is_active=self.is_active))

    def remove_stock(self, quantity, token, reference=None):
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        if quantity > self.stock_quantity:
            raise ValidationError(
                {"stock_quantity": [f"Cannot remove {quantity} units, only {self.stock_quantity} on hand"]}
            )

        previous = self.stock_quantity
        now = datetime.now(UTC)
        self.stock_quantity = previous - quantity
        self.updated_at = now
        self.raise_(
            StockDecremented(
                variant_id=str(self.id),
                quantity=quantity,
                previous_quantity=previous,
                new_quantity=self.stock_quantity,
                token=token,
                reference=reference,
                occurred_at=now,
            )
        )

    def add_stock(self, quantity, token, reference=None):
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        previous = self.stock_quantity
        now = datetime.now(UTC)
        self.stock_quantity = previous + quantity
        self.updated_at = now
        self.raise_(
            StockIncremented(
                variant_id=str(self.id),
                quantity=quantity,
                previous_quantity=previous,
                new_quantity=self.stock_quantity,
                token=token,
                reference=reference,
                occurred_at=now,
            )
        )
