"""Customer-initiated cancellation.

Customers may cancel their own order only while it awaits confirmation.
Anything later goes through the administrative status update.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.exceptions import InvalidTransition, NotFound
from commerce.order.order import Order, OrderStatus
from commerce.shared.repository import fetch

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    reason = String(max_length=500)


@commerce.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        order = fetch(Order, command.order_id)
        if str(order.customer_id) != str(command.customer_id):
            raise NotFound("Order", command.order_id)

        if order.current_status != OrderStatus.PENDING_CONFIRMATION:
            raise InvalidTransition(
                order.status,
                OrderStatus.CANCELLED.value,
                f"Orders can only be cancelled before they are packed; this order is {order.status}",
            )

        order.cancel(command.reason, cancelled_by="customer")
        current_domain.repository_for(Order).add(order)

        logger.info("order_cancelled_by_customer", order_id=str(order.id), customer_id=str(command.customer_id))
        return str(order.id)
