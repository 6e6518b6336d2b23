"""Domain events for catalog variants and offers."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="Variant")
class VariantRegistered:
    """A purchasable variant was added to the catalog."""

    __version__ = 1

    variant_id = Identifier(required=True)
    product_id = Identifier(required=True)
    sku = String(required=True)
    base_price = String(required=True)
    offer_price = String()
    stock_quantity = Integer(required=True)


@commerce.event(part_of="Variant")
class VariantPriceChanged:
    """The base or offer price of a variant changed. Placed orders keep their snapshot."""

    __version__ = 1

    variant_id = Identifier(required=True)
    previous_base_price = String(required=True)
    new_base_price = String(required=True)
    offer_price = String()


@commerce.event(part_of="Variant")
class VariantAvailabilityChanged:
    __version__ = 1

    variant_id = Identifier(required=True)
    is_active = Boolean(required=True)


@commerce.event(part_of="Variant")
class StockDecremented:
    """Stock left the warehouse under a ledger token."""

    __version__ = 1

    variant_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    token = String(required=True)
    reference = String()
    occurred_at = DateTime(required=True)


@commerce.event(part_of="Variant")
class StockIncremented:
    """Stock re-entered inventory (restock, cancellation or return)."""

    __version__ = 1

    variant_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    token = String(required=True)
    reference = String()
    occurred_at = DateTime(required=True)


@commerce.event(part_of="Offer")
class OfferRegistered:
    __version__ = 1

    offer_id = Identifier(required=True)
    name = String(required=True)
    kind = String(required=True)


@commerce.event(part_of="Offer")
class OfferDeactivated:
    __version__ = 1

    offer_id = Identifier(required=True)
    deactivated_at = DateTime(required=True)
