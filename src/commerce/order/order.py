"""Order aggregate (Event Sourced): the fulfillment state machine.

State machine:
    PENDING CONFIRMATION -> PACKED -> SHIPPED -> DELIVERED
    CANCELLED from any non-terminal state
    DELIVERED and CANCELLED are terminal

Stock is deducted when the order ships, not when it is placed, so unconfirmed
orders never hold inventory. Cancelling a shipped order puts its goods back.
Line prices and order totals are frozen at placement and never recomputed.
"""

import json
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean import apply
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, HasMany, Identifier, Integer, String, Text, ValueObject

from commerce.domain import commerce
from commerce.exceptions import InvalidTransition
from commerce.order.events import (
    OrderCancelled,
    OrderDelivered,
    OrderPacked,
    OrderPlaced,
    OrderShipped,
    PaymentFailed,
    PaymentReceived,
    StockReturnRecorded,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING_CONFIRMATION = "Pending Confirmation"
    PACKED = "Packed"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"

    @classmethod
    def parse(cls, value):
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise ValidationError({"status": [f"Unknown order status '{value}'. Expected one of: {allowed}"]}) from None


class PaymentStatus(Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"


class PaymentMode(Enum):
    COD = "COD"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING_CONFIRMATION: {OrderStatus.PACKED, OrderStatus.CANCELLED},
    OrderStatus.PACKED: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

TERMINAL_STATES = frozenset(status for status, targets in _VALID_TRANSITIONS.items() if not targets)

# Goods may physically come back only once they left the warehouse; cancelled orders qualify only if they shipped
RETURNABLE_STATES = frozenset({OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED})


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@commerce.value_object(part_of="Order")
class ShippingAddress:
    """The destination as it was when the order was placed."""

    address_id = Identifier()
    recipient = String(required=True, max_length=255)
    phone = String(max_length=30)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    country = String(required=True, max_length=100)


@commerce.value_object(part_of="Order")
class OrderPricing:
    actual_price = String(required=True, max_length=20)
    discount_price = String(default="0.00", max_length=20)
    shipping_price = String(default="0.00", max_length=20)
    payable_price = String(required=True, max_length=20)
    currency = String(max_length=3, default="AED")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@commerce.entity(part_of="Order")
class OrderLine:
    """Price snapshot of one variant on the order.

    ``returned_quantity`` counts units already credited back to stock, by
    stock returns or by cancelling after shipment. It never exceeds
    ``quantity``.
    """

    variant_id = Identifier(required=True)
    sku = String(max_length=50)
    title = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    actual_price = String(required=True, max_length=20)
    offer_price = String(max_length=20)
    line_discount = String(default="0.00", max_length=20)
    offer_id = Identifier()
    returned_quantity = Integer(default=0, min_value=0)

    @property
    def returnable_quantity(self) -> int:
        return self.quantity - (self.returned_quantity or 0)


# ---------------------------------------------------------------------------
# Aggregate Root (Event Sourced)
# ---------------------------------------------------------------------------
@commerce.aggregate(is_event_sourced=True)
class Order:
    customer_id = Identifier(required=True)
    address_id = Identifier(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING_CONFIRMATION.value)
    items = HasMany(OrderLine)
    shipping_address = ValueObject(ShippingAddress)
    pricing = ValueObject(OrderPricing)
    offer_id = Identifier()
    payment_mode = String(choices=PaymentMode, default=PaymentMode.COD.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    stock_deducted = Boolean(default=False)
    cancel_reason = String(max_length=500)
    cancelled_by = String(max_length=100)
    return_requests = Text()  # JSON: {request_id: {variant_id: quantity}}
    revision = Integer(default=0)
    placed_at = DateTime()
    packed_at = DateTime()
    shipped_at = DateTime()
    delivered_at = DateTime()
    cancelled_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, customer_id, address_id, shipping_address, items_data, pricing, offer_id=None):
        """Create an order from a priced cart.

        Args:
            customer_id: The customer placing the order.
            address_id: The chosen address book entry.
            shipping_address: Dict snapshot of that address.
            items_data: List of dicts with variant_id, sku, title, quantity,
                        actual_price, offer_price, line_discount, offer_id.
            pricing: Dict with actual_price, discount_price, shipping_price,
                     payable_price and currency as decimal strings.
        """
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one line"]})

        items_with_ids = [{**item, "id": str(uuid4())} for item in items_data]

        order = cls._create_new()
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(customer_id),
                address_id=str(address_id),
                shipping_address=json.dumps(shipping_address),
                items=json.dumps(items_with_ids),
                actual_price=pricing["actual_price"],
                discount_price=pricing["discount_price"],
                shipping_price=pricing["shipping_price"],
                payable_price=pricing["payable_price"],
                currency=pricing["currency"],
                offer_id=offer_id,
                payment_mode=PaymentMode.COD.value,
                placed_at=datetime.now(UTC),
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.current_status in TERMINAL_STATES

    def line_for(self, variant_id):
        return next((line for line in self.items if str(line.variant_id) == str(variant_id)), None)

    def stock_lines(self) -> list[tuple[str, int]]:
        return [(str(line.variant_id), line.quantity) for line in self.items]

    def outstanding_lines(self) -> list[tuple[str, int]]:
        """Units that left the warehouse and have not come back yet."""
        return [
            (str(line.variant_id), line.returnable_quantity) for line in self.items if line.returnable_quantity > 0
        ]

    def recorded_returns(self) -> dict:
        return json.loads(self.return_requests) if self.return_requests else {}

    def dispatch_token(self) -> str:
        return f"order-{self.id}-shipped"

    def restock_token(self) -> str:
        return f"order-{self.id}-cancel-restock"

    def return_token(self, request_id) -> str:
        return f"order-{self.id}-return-{request_id}"

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def assert_can_transition(self, target: OrderStatus):
        """Raise ``InvalidTransition`` unless ``target`` is a legal next state."""
        current = self.current_status
        if current in TERMINAL_STATES:
            raise InvalidTransition(
                current.value,
                target.value,
                f"Order is {current.value}, a terminal state; it cannot move to {target.value}",
            )
        if target not in _VALID_TRANSITIONS[current]:
            raise InvalidTransition(current.value, target.value)

    def assert_can_cancel(self, reason):
        self.assert_can_transition(OrderStatus.CANCELLED)
        if not reason or not reason.strip():
            raise ValidationError({"reason": ["A reason is required to cancel an order"]})

    def requires_restock_on_cancel(self) -> bool:
        return bool(self.stock_deducted) and self.current_status == OrderStatus.SHIPPED

    # -------------------------------------------------------------------
    # Lifecycle transitions
    # -------------------------------------------------------------------
    def pack(self, acted_by=None):
        self.assert_can_transition(OrderStatus.PACKED)
        self.raise_(OrderPacked(order_id=str(self.id), acted_by=acted_by, packed_at=datetime.now(UTC)))

    def ship(self, stock_token, acted_by=None):
        """Mark as shipped. The caller has deducted stock under ``stock_token``."""
        self.assert_can_transition(OrderStatus.SHIPPED)
        self.raise_(
            OrderShipped(
                order_id=str(self.id),
                stock_token=stock_token,
                acted_by=acted_by,
                shipped_at=datetime.now(UTC),
            )
        )

    def deliver(self, acted_by=None):
        self.assert_can_transition(OrderStatus.DELIVERED)
        self.raise_(OrderDelivered(order_id=str(self.id), acted_by=acted_by, delivered_at=datetime.now(UTC)))

    def cancel(self, reason, cancelled_by, restock_token=None):
        """Cancel the order.

        When the order had shipped, the caller must already have put its goods
        back in stock under ``restock_token``; every line then counts as fully
        returned.
        """
        self.assert_can_cancel(reason)

        restocked = self.requires_restock_on_cancel()
        if restocked and not restock_token:
            raise ValidationError({"restock_token": ["Shipped orders must be restocked when cancelled"]})

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                previous_status=self.status,
                reason=reason.strip(),
                cancelled_by=cancelled_by or "admin",
                restocked=restocked,
                restock_token=restock_token if restocked else None,
                cancelled_at=datetime.now(UTC),
            )
        )

    # -------------------------------------------------------------------
    # Payment (cash on delivery)
    # -------------------------------------------------------------------
    def mark_paid(self, acted_by=None):
        if self.current_status != OrderStatus.DELIVERED:
            raise InvalidTransition(
                self.payment_status,
                PaymentStatus.PAID.value,
                "Cash on delivery can only be marked Paid once the order is Delivered",
            )
        if self.payment_status == PaymentStatus.PAID.value:
            raise InvalidTransition(self.payment_status, PaymentStatus.PAID.value, "Payment is already recorded")

        self.raise_(
            PaymentReceived(
                order_id=str(self.id),
                amount=self.pricing.payable_price,
                acted_by=acted_by,
                received_at=datetime.now(UTC),
            )
        )

    def mark_payment_failed(self, reason=None, acted_by=None):
        if self.payment_status != PaymentStatus.PENDING.value:
            raise InvalidTransition(
                self.payment_status,
                PaymentStatus.FAILED.value,
                f"Payment is already {self.payment_status}",
            )

        self.raise_(
            PaymentFailed(order_id=str(self.id), reason=reason, acted_by=acted_by, failed_at=datetime.now(UTC))
        )

    # -------------------------------------------------------------------
    # Stock returns
    # -------------------------------------------------------------------
    def validate_return(self, lines: dict):
        """Check a whole return request, raising on the first bad request.

        All lines are checked before anything is recorded; a single bad line
        rejects the request.
        """
        current = self.current_status
        if current not in RETURNABLE_STATES:
            allowed = ", ".join(sorted(s.value for s in RETURNABLE_STATES))
            raise InvalidTransition(
                current.value,
                current.value,
                f"Stock can only be returned for orders that are {allowed}; this order is {current.value}",
            )
        if self.shipped_at is None:
            raise InvalidTransition(
                current.value,
                current.value,
                "Stock can only be returned for orders that were shipped; this order never left the warehouse",
            )
        if not lines:
            raise ValidationError({"lines": ["At least one line is required"]})

        errors = []
        for variant_id, quantity in lines.items():
            line = self.line_for(variant_id)
            if line is None:
                errors.append(f"Variant {variant_id} is not part of this order")
            elif quantity is None or quantity < 1:
                errors.append(f"Return quantity for variant {variant_id} must be at least 1")
            elif quantity > line.returnable_quantity:
                errors.append(
                    f"Cannot return {quantity} of variant {variant_id}: ordered {line.quantity}, "
                    f"already returned {line.returned_quantity}, remaining {line.returnable_quantity}"
                )
        if errors:
            raise ValidationError({"lines": errors})

    def record_stock_return(self, request_id, lines: dict, stock_token, acted_by=None):
        """Record units returned to stock under ``stock_token``."""
        if request_id in self.recorded_returns():
            raise ValidationError({"request_id": [f"Return request {request_id} is already recorded"]})
        self.validate_return(lines)

        self.raise_(
            StockReturnRecorded(
                order_id=str(self.id),
                request_id=request_id,
                lines=json.dumps({str(k): v for k, v in sorted(lines.items())}),
                stock_token=stock_token,
                acted_by=acted_by,
                returned_at=datetime.now(UTC),
            )
        )

    # -------------------------------------------------------------------
    # @apply methods: rebuild state during event replay
    # -------------------------------------------------------------------
    def _touch(self, moment):
        self.revision = (self.revision or 0) + 1
        self.updated_at = moment

    @apply
    def _on_order_placed(self, event: OrderPlaced):
        self.id = event.order_id
        self.customer_id = event.customer_id
        self.address_id = event.address_id
        self.status = OrderStatus.PENDING_CONFIRMATION.value
        self.offer_id = event.offer_id
        self.payment_mode = event.payment_mode
        self.payment_status = PaymentStatus.PENDING.value
        self.stock_deducted = False
        self.return_requests = json.dumps({})
        self.placed_at = event.placed_at

        items_data = json.loads(event.items) if isinstance(event.items, str) else []
        self.items = [OrderLine(**item_data) for item_data in items_data]

        address_data = json.loads(event.shipping_address) if isinstance(event.shipping_address, str) else {}
        if address_data:
            self.shipping_address = ShippingAddress(**address_data)

        self.pricing = OrderPricing(
            actual_price=event.actual_price,
            discount_price=event.discount_price,
            shipping_price=event.shipping_price,
            payable_price=event.payable_price,
            currency=event.currency,
        )
        self.revision = 0
        self._touch(event.placed_at)

    @apply
    def _on_order_packed(self, event: OrderPacked):
        self.status = OrderStatus.PACKED.value
        self.packed_at = event.packed_at
        self._touch(event.packed_at)

    @apply
    def _on_order_shipped(self, event: OrderShipped):
        self.status = OrderStatus.SHIPPED.value
        self.stock_deducted = True
        self.shipped_at = event.shipped_at
        self._touch(event.shipped_at)

    @apply
    def _on_order_delivered(self, event: OrderDelivered):
        self.status = OrderStatus.DELIVERED.value
        self.delivered_at = event.delivered_at
        self._touch(event.delivered_at)

    @apply
    def _on_order_cancelled(self, event: OrderCancelled):
        self.status = OrderStatus.CANCELLED.value
        self.cancel_reason = event.reason
        self.cancelled_by = event.cancelled_by
        self.cancelled_at = event.cancelled_at
        if event.restocked:
            self.stock_deducted = False
            for line in self.items:
                line.returned_quantity = line.quantity
        self._touch(event.cancelled_at)

    @apply
    def _on_payment_received(self, event: PaymentReceived):
        self.payment_status = PaymentStatus.PAID.value
        self._touch(event.received_at)

    @apply
    def _on_payment_failed(self, event: PaymentFailed):
        self.payment_status = PaymentStatus.FAILED.value
        self._touch(event.failed_at)

    @apply
    def _on_stock_return_recorded(self, event: StockReturnRecorded):
        returned = json.loads(event.lines)
        for variant_id, quantity in returned.items():
            line = self.line_for(variant_id)
            if line:
                line.returned_quantity = (line.returned_quantity or 0) + quantity

        requests = self.recorded_returns()
        requests[event.request_id] = returned
        self.return_requests = json.dumps(requests)
        self._touch(event.returned_at)
