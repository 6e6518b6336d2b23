"""Catalog commands: variant and offer registration and maintenance."""

import json

from protean import handle
from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from commerce.catalog.offer import Offer
from commerce.catalog.variant import Variant
from commerce.domain import commerce
from commerce.inventory.ledger import InventoryLedger, StockLine


@commerce.command(part_of="Variant")
class RegisterVariant:
    variant_id = Identifier()
    product_id = Identifier(required=True)
    sku = String(required=True, max_length=50)
    title = String(max_length=255)
    base_price = String(required=True, max_length=20)
    offer_price = String(max_length=20)
    stock_quantity = Integer(default=0, min_value=0)


@commerce.command(part_of="Variant")
class ChangeVariantPrice:
    variant_id = Identifier(required=True)
    base_price = String(required=True, max_length=20)
    offer_price = String(max_length=20)


@commerce.command(part_of="Variant")
class SetVariantAvailability:
    variant_id = Identifier(required=True)
    is_active = Boolean(required=True)


@commerce.command(part_of="Variant")
class ReceiveStock:
    """Goods arrived from a supplier. ``receipt_id`` makes the receipt idempotent."""

    variant_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    receipt_id = Identifier(required=True)


@commerce.command_handler(part_of=Variant)
class ManageVariantsHandler:
    @handle(RegisterVariant)
    def register_variant(self, command):
        variant = Variant.create(
            product_id=command.product_id,
            sku=command.sku,
            title=command.title,
            base_price=command.base_price,
            offer_price=command.offer_price,
            stock_quantity=command.stock_quantity or 0,
            variant_id=command.variant_id,
        )
        current_domain.repository_for(Variant).add(variant)
        return str(variant.id)

    @handle(ChangeVariantPrice)
    def change_price(self, command):
        repo = current_domain.repository_for(Variant)
        variant = repo.get(command.variant_id)
        variant.change_price(command.base_price, command.offer_price)
        repo.add(variant)

    @handle(SetVariantAvailability)
    def set_availability(self, command):
        repo = current_domain.repository_for(Variant)
        variant = repo.get(command.variant_id)
        variant.set_active(command.is_active)
        repo.add(variant)

    @handle(ReceiveStock)
    def receive_stock(self, command):
        InventoryLedger().increment(
            [StockLine(command.variant_id, command.quantity)],
            token=f"receipt-{command.receipt_id}",
            reference=f"receipt:{command.receipt_id}",
        )


@commerce.command(part_of="Offer")
class RegisterOffer:
    offer_id = Identifier()
    name = String(required=True, max_length=255)
    kind = String(required=True, max_length=50)
    discount_value = String(max_length=20)
    buy_quantity = Integer()
    free_quantity = Integer()
    min_cart_amount = String(max_length=20)
    eligible_variant_ids = Text()  # JSON list
    starts_at = DateTime()
    ends_at = DateTime()


@commerce.command(part_of="Offer")
class DeactivateOffer:
    offer_id = Identifier(required=True)


@commerce.command_handler(part_of=Offer)
class ManageOffersHandler:
    @handle(RegisterOffer)
    def register_offer(self, command):
        eligible = json.loads(command.eligible_variant_ids) if command.eligible_variant_ids else []
        offer = Offer.create(
            name=command.name,
            kind=command.kind,
            discount_value=command.discount_value,
            buy_quantity=command.buy_quantity,
            free_quantity=command.free_quantity,
            min_cart_amount=command.min_cart_amount,
            eligible_variant_ids=eligible,
            starts_at=command.starts_at,
            ends_at=command.ends_at,
            offer_id=command.offer_id,
        )
        current_domain.repository_for(Offer).add(offer)
        return str(offer.id)

    @handle(DeactivateOffer)
    def deactivate_offer(self, command):
        repo = current_domain.repository_for(Offer)
        offer = repo.get(command.offer_id)
        offer.deactivate()
        repo.add(offer)
