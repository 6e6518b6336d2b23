"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="ShoppingCart")
class CartLineAdded:
    """Units of a variant were added to the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@commerce.event(part_of="ShoppingCart")
class CartLineQuantityChanged:
    __version__ = 1

    cart_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@commerce.event(part_of="ShoppingCart")
class CartLineRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    variant_id = Identifier(required=True)


@commerce.event(part_of="ShoppingCart")
class CartOfferChanged:
    """The cart's offer was attached, replaced or detached (``offer_id`` empty)."""

    __version__ = 1

    cart_id = Identifier(required=True)
    previous_offer_id = Identifier()
    offer_id = Identifier()


@commerce.event(part_of="ShoppingCart")
class CartCleared:
    """All lines were dropped, explicitly or because the cart became an order."""

    __version__ = 1

    cart_id = Identifier(required=True)
    reason = String(required=True, max_length=50)
    order_id = Identifier()
