"""Stock return workflow: credit physically returned units back to inventory.

A return request names per-variant quantities for one order. The whole
request is checked before anything is credited; cumulative returns per line
never exceed what was ordered. Each request carries an id, and resubmitting
an id that was already recorded changes nothing and reports the original
outcome. The order's status and prices are never touched.
"""

import json
from uuid import uuid4

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from commerce.catalog.variant import Variant
from commerce.domain import commerce
from commerce.inventory.ledger import InventoryLedger, StockLine
from commerce.order.order import Order
from commerce.shared.repository import fetch, find

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Order")
class ReturnStock:
    order_id = Identifier(required=True)
    lines = Text(required=True)  # JSON: list of {variant_id, quantity}
    request_id = String(max_length=100)
    acted_by = String(max_length=100)


def parse_return_lines(raw) -> dict:
    """Parse request lines into ``{variant_id: quantity}``.

    Zero quantities are dropped (a return form lists every line of the
    order); negative or non-integer quantities reject the request.
    """
    try:
        entries = json.loads(raw) if isinstance(raw, str) else raw
    except json.JSONDecodeError:
        raise ValidationError({"lines": ["Return lines must be a JSON list"]}) from None
    if not isinstance(entries, list):
        raise ValidationError({"lines": ["Return lines must be a JSON list"]})

    lines: dict[str, int] = {}
    errors = []
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("variant_id"):
            errors.append("Every line needs a variant_id and a quantity")
            continue
        variant_id = str(entry["variant_id"])
        quantity = entry.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            errors.append(f"Return quantity for variant {variant_id} must be a whole number")
        elif quantity < 0:
            errors.append(f"Return quantity for variant {variant_id} cannot be negative")
        elif quantity > 0:
            lines[variant_id] = lines.get(variant_id, 0) + quantity
    if errors:
        raise ValidationError({"lines": errors})
    if not lines:
        raise ValidationError({"lines": ["Return at least one unit"]})
    return lines


def return_summary(order, request_id, lines, stock_levels, replayed=False) -> dict:
    summary_lines = []
    for line in order.items:
        variant_id = str(line.variant_id)
        summary_lines.append(
            {
                "variant_id": variant_id,
                "ordered_quantity": line.quantity,
                "returned_quantity": line.returned_quantity or 0,
                "remaining_quantity": line.returnable_quantity,
                "returned_now": lines.get(variant_id, 0),
                "stock_quantity": stock_levels.get(variant_id),
            }
        )
    return {
        "order_id": str(order.id),
        "request_id": request_id,
        "replayed": replayed,
        "status": order.status,
        "lines": summary_lines,
    }


def _current_stock(variant_ids) -> dict:
    levels = {}
    for variant_id in variant_ids:
        variant = find(Variant, variant_id)
        levels[variant_id] = variant.stock_quantity if variant is not None else None
    return levels


@commerce.command_handler(part_of=Order)
class ReturnStockHandler:
    @handle(ReturnStock)
    def return_stock(self, command):
        lines = parse_return_lines(command.lines)
        order = fetch(Order, command.order_id)
        request_id = command.request_id or str(uuid4())
        variant_ids = [str(line.variant_id) for line in order.items]

        recorded = order.recorded_returns().get(request_id)
        if recorded is not None:
            if recorded != lines:
                raise ValidationError(
                    {"request_id": [f"Return request {request_id} was already recorded with different lines"]}
                )
            logger.info("stock_return_replayed", order_id=str(order.id), request_id=request_id)
            return return_summary(order, request_id, recorded, _current_stock(variant_ids), replayed=True)

        order.validate_return(lines)

        token = order.return_token(request_id)
        outcome = InventoryLedger().increment(
            [StockLine(variant_id, quantity) for variant_id, quantity in lines.items()],
            token=token,
            reference=f"order:{order.id}",
        )
        order.record_stock_return(request_id, lines, stock_token=token, acted_by=command.acted_by)
        current_domain.repository_for(Order).add(order)

        logger.info(
            "stock_returned",
            order_id=str(order.id),
            request_id=request_id,
            lines=lines,
            status=order.status,
        )
        stock_levels = {**_current_stock(variant_ids), **outcome.stock_levels}
        return return_summary(order, request_id, lines, stock_levels)
