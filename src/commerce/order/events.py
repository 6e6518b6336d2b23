"""Domain events for the Order aggregate.

Orders are event sourced: these events are the order's only persisted state
and the audit trail of every transition. Monetary amounts are two-place
decimal strings.
"""

from protean.fields import Boolean, DateTime, Identifier, String, Text

from commerce.domain import commerce


@commerce.event(part_of="Order")
class OrderPlaced:
    """A priced cart and a chosen address became an order."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    address_id = Identifier(required=True)
    shipping_address = Text(required=True)  # JSON: address snapshot
    items = Text(required=True)  # JSON: list of line snapshots
    actual_price = String(required=True)
    discount_price = String(required=True)
    shipping_price = String(required=True)
    payable_price = String(required=True)
    currency = String(required=True)
    offer_id = Identifier()
    payment_mode = String(required=True)
    placed_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderPacked:
    __version__ = 1

    order_id = Identifier(required=True)
    acted_by = String()
    packed_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderShipped:
    """The order left the warehouse; its stock was deducted under ``stock_token``."""

    __version__ = 1

    order_id = Identifier(required=True)
    stock_token = String(required=True)
    acted_by = String()
    shipped_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderDelivered:
    __version__ = 1

    order_id = Identifier(required=True)
    acted_by = String()
    delivered_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled. ``restocked`` is set when shipped goods went back to stock."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = String(required=True)
    cancelled_by = String(required=True)
    restocked = Boolean(default=False)
    restock_token = String()
    cancelled_at = DateTime(required=True)


@commerce.event(part_of="Order")
class PaymentReceived:
    """Cash on delivery was collected."""

    __version__ = 1

    order_id = Identifier(required=True)
    amount = String(required=True)
    acted_by = String()
    received_at = DateTime(required=True)


@commerce.event(part_of="Order")
class PaymentFailed:
    __version__ = 1

    order_id = Identifier(required=True)
    reason = String()
    acted_by = String()
    failed_at = DateTime(required=True)


@commerce.event(part_of="Order")
class StockReturnRecorded:
    """Physically returned units were credited back to inventory."""

    __version__ = 1

    order_id = Identifier(required=True)
    request_id = String(required=True)
    lines = Text(required=True)  # JSON: {variant_id: quantity}
    stock_token = String(required=True)
    acted_by = String()
    returned_at = DateTime(required=True)
