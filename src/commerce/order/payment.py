"""Cash-on-delivery payment status."""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.order.order import Order, PaymentStatus
from commerce.order.status import assert_revision
from commerce.shared.repository import fetch

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Order")
class UpdatePaymentStatus:
    order_id = Identifier(required=True)
    payment_status = String(required=True, max_length=20)
    reason = String(max_length=500)
    acted_by = String(max_length=100)
    expected_revision = Integer()


@commerce.command_handler(part_of=Order)
class PaymentStatusHandler:
    @handle(UpdatePaymentStatus)
    def update_payment_status(self, command):
        order = fetch(Order, command.order_id)
        assert_revision(order, command.expected_revision)

        if command.payment_status == PaymentStatus.PAID.value:
            order.mark_paid(acted_by=command.acted_by)
        elif command.payment_status == PaymentStatus.FAILED.value:
            order.mark_payment_failed(reason=command.reason, acted_by=command.acted_by)
        else:
            raise ValidationError({"payment_status": ["Payment status can only be set to Paid or Failed"]})

        current_domain.repository_for(Order).add(order)
        logger.info("order_payment_updated", order_id=str(order.id), payment_status=order.payment_status)
        return str(order.id)
