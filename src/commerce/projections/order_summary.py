"""Order summary: the listing view behind customer order history and the admin order board."""

import json

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
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
from commerce.order.order import Order


@commerce.projection
class OrderSummary:
    order_id = Identifier(identifier=True, required=True)
    customer_id = Identifier(required=True)
    status = String(required=True)
    payment_status = String(default="Pending")
    item_count = Integer(default=0)
    unit_count = Integer(default=0)
    returned_units = Integer(default=0)
    payable_price = String()
    currency = String(default="AED")
    placed_at = DateTime()
    updated_at = DateTime()


@commerce.projector(projector_for=OrderSummary, aggregates=[Order])
class OrderSummaryProjector:
    @on(OrderPlaced)
    def on_order_placed(self, event):
        items = json.loads(event.items) if isinstance(event.items, str) else []
        current_domain.repository_for(OrderSummary).add(
            OrderSummary(
                order_id=event.order_id,
                customer_id=event.customer_id,
                status="Pending Confirmation",
                item_count=len(items),
                unit_count=sum(item["quantity"] for item in items),
                payable_price=event.payable_price,
                currency=event.currency,
                placed_at=event.placed_at,
                updated_at=event.placed_at,
            )
        )

    def _update(self, order_id, updated_at=None, **changes):
        repo = current_domain.repository_for(OrderSummary)
        summary = repo.get(order_id)
        for name, value in changes.items():
            setattr(summary, name, value)
        if updated_at:
            summary.updated_at = updated_at
        repo.add(summary)
        return summary

    @on(OrderPacked)
    def on_order_packed(self, event):
        self._update(event.order_id, event.packed_at, status="Packed")

    @on(OrderShipped)
    def on_order_shipped(self, event):
        self._update(event.order_id, event.shipped_at, status="Shipped")

    @on(OrderDelivered)
    def on_order_delivered(self, event):
        self._update(event.order_id, event.delivered_at, status="Delivered")

    @on(OrderCancelled)
    def on_order_cancelled(self, event):
        summary = self._update(event.order_id, event.cancelled_at, status="Cancelled")
        if event.restocked:
            # Cancelling after shipment puts every unit back
            self._update(event.order_id, returned_units=summary.unit_count)

    @on(PaymentReceived)
    def on_payment_received(self, event):
        self._update(event.order_id, event.received_at, payment_status="Paid")

    @on(PaymentFailed)
    def on_payment_failed(self, event):
        self._update(event.order_id, event.failed_at, payment_status="Failed")

    @on(StockReturnRecorded)
    def on_stock_return_recorded(self, event):
        returned = sum(json.loads(event.lines).values())
        repo = current_domain.repository_for(OrderSummary)
        summary = repo.get(event.order_id)
        summary.returned_units = (summary.returned_units or 0) + returned
        summary.updated_at = event.returned_at
        repo.add(summary)


def orders_for_customer(customer_id, limit=100) -> list:
    repo = current_domain.repository_for(OrderSummary)
    summaries = repo._dao.query.filter(customer_id=str(customer_id)).order_by("-placed_at").limit(limit).all().items
    return list(summaries)


def all_orders(status=None, limit=100) -> list:
    repo = current_domain.repository_for(OrderSummary)
    query = repo._dao.query
    if status:
        query = query.filter(status=status)
    return list(query.order_by("-placed_at").limit(limit).all().items)
