"""Administrative status updates: the order state machine with its stock side effects.

Shipping deducts every line from the inventory ledger and cancelling a
shipped order credits it back. The ledger movement and the order event are
written in the same unit of work; if the movement fails the status stays
where it was.
"""

import structlog
from protean import handle
from protean.exceptions import InvalidOperationError, ValidationError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.exceptions import ConflictingUpdate
from commerce.inventory.ledger import InventoryLedger, StockLine
from commerce.order.order import Order, OrderStatus
from commerce.shared.repository import fetch, find
from commerce.utils.locks import order_key, variant_key

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=50)
    reason = String(max_length=500)
    acted_by = String(max_length=100)
    expected_revision = Integer()


def lock_keys_for_order(order_id) -> list[str]:
    """Keys an order-changing request must hold: the order and all its variants."""
    keys = [order_key(order_id)]
    order = find(Order, order_id)
    if order is not None:
        keys.extend(variant_key(variant_id) for variant_id, _ in order.stock_lines())
    return keys


def assert_revision(order, expected_revision):
    if expected_revision is not None and order.revision != expected_revision:
        raise ConflictingUpdate(
            f"Order {order.id} changed since it was read (revision {order.revision}, expected {expected_revision})"
        )


def _stock_lines(pairs):
    return [StockLine(variant_id, quantity) for variant_id, quantity in pairs]


def transition(order, target: OrderStatus, reason=None, acted_by=None):
    """Move ``order`` to ``target``, applying the inventory side effect of the edge."""
    order.assert_can_transition(target)
    ledger = InventoryLedger()
    reference = f"order:{order.id}"

    if target is OrderStatus.PACKED:
        order.pack(acted_by=acted_by)
    elif target is OrderStatus.SHIPPED:
        token = order.dispatch_token()
        ledger.decrement(_stock_lines(order.stock_lines()), token=token, reference=reference)
        order.ship(stock_token=token, acted_by=acted_by)
    elif target is OrderStatus.DELIVERED:
        order.deliver(acted_by=acted_by)
    elif target is OrderStatus.CANCELLED:
        order.assert_can_cancel(reason)
        restock_token = None
        if order.requires_restock_on_cancel():
            restock_token = order.restock_token()
            # Units already credited by stock returns are not restocked again
            outstanding = order.outstanding_lines()
            if outstanding:
                ledger.increment(_stock_lines(outstanding), token=restock_token, reference=reference)
        order.cancel(reason, cancelled_by=acted_by or "admin", restock_token=restock_token)


@commerce.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        target = OrderStatus.parse(command.status)
        repo = current_domain.repository_for(Order)
        order = fetch(Order, command.order_id)
        assert_revision(order, command.expected_revision)
        if order.current_status is target:
            # Another request moved the order here first
            raise ConflictingUpdate(f"Order {order.id} is already {target.value}")

        previous = order.status
        try:
            transition(order, target, reason=command.reason, acted_by=command.acted_by)
        except (ValidationError, InvalidOperationError) as exc:
            logger.warning(
                "order_transition_rejected",
                order_id=str(order.id),
                from_status=previous,
                to_status=target.value,
                error=type(exc).__name__,
            )
            raise

        repo.add(order)
        logger.info(
            "order_status_changed",
            order_id=str(order.id),
            from_status=previous,
            to_status=order.status,
            acted_by=command.acted_by,
            revision=order.revision,
        )
        return str(order.id)
