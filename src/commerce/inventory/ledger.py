"""Inventory Ledger: atomic, idempotent stock movements across variants.

A movement is a batch of ``(variant_id, quantity)`` lines applied under one
token. Either every line is applied or none is. Applying a token a second
time with the same lines is a no-op; applying it with different lines means
some caller reused a token and is reported as ``LedgerInconsistency``.
"""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from commerce.catalog.variant import Variant
from commerce.exceptions import InsufficientStock, LedgerInconsistency, NotFound
from commerce.inventory.entry import LedgerDirection, LedgerEntry
from commerce.shared.repository import find
from commerce.utils.locks import locked, variant_key

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StockLine:
    variant_id: str
    quantity: int


@dataclass(frozen=True)
class LedgerOutcome:
    token: str
    direction: LedgerDirection
    applied: bool
    stock_levels: dict = field(default_factory=dict)


def normalize_lines(lines) -> tuple:
    """Merge duplicate variants and sort, rejecting non-positive quantities."""
    merged: dict[str, int] = {}
    errors = []
    for line in lines:
        if line.quantity is None or line.quantity < 1:
            errors.append(f"Quantity for variant {line.variant_id} must be at least 1")
            continue
        key = str(line.variant_id)
        merged[key] = merged.get(key, 0) + line.quantity
    if errors:
        raise ValidationError({"lines": errors})
    if not merged:
        raise ValidationError({"lines": ["At least one line is required"]})
    return tuple(sorted(merged.items()))


class InventoryLedger:
    def decrement(self, lines, token, reference=None) -> LedgerOutcome:
        """Remove stock for every line, or fail with ``InsufficientStock`` changing nothing."""
        return self._apply(LedgerDirection.DECREMENT, lines, token, reference)

    def increment(self, lines, token, reference=None) -> LedgerOutcome:
        """Return stock for every line. Only unknown variants can make it fail."""
        return self._apply(LedgerDirection.INCREMENT, lines, token, reference)

    def _apply(self, direction, lines, token, reference):
        if not token:
            raise ValidationError({"token": ["A ledger token is required"]})
        movement = normalize_lines(lines)

        with locked(*(variant_key(variant_id) for variant_id, _ in movement)):
            entry = find(LedgerEntry, token)
            if entry is not None:
                return self._replay(entry, direction, movement, token)

            variants = {}
            for variant_id, _ in movement:
                variant = find(Variant, variant_id)
                if variant is None:
                    raise NotFound("Variant", variant_id)
                variants[variant_id] = variant

            if direction is LedgerDirection.DECREMENT:
                shortages = {
                    variant_id: {"requested": quantity, "available": variants[variant_id].stock_quantity}
                    for variant_id, quantity in movement
                    if variants[variant_id].stock_quantity < quantity
                }
                if shortages:
                    logger.warning("insufficient_stock", token=token, shortages=shortages)
                    raise InsufficientStock(shortages)

            variant_repo = current_domain.repository_for(Variant)
            for variant_id, quantity in movement:
                variant = variants[variant_id]
                if direction is LedgerDirection.DECREMENT:
                    variant.remove_stock(quantity, token=token, reference=reference)
                else:
                    variant.add_stock(quantity, token=token, reference=reference)
                variant_repo.add(variant)

            current_domain.repository_for(LedgerEntry).add(
                LedgerEntry(
                    token=token,
                    direction=direction.value,
                    lines=json.dumps([list(line) for line in movement]),
                    reference=reference,
                    recorded_at=datetime.now(UTC),
                )
            )

            levels = {variant_id: variants[variant_id].stock_quantity for variant_id, _ in movement}
            logger.info(
                "stock_moved",
                token=token,
                direction=direction.value,
                lines=dict(movement),
                reference=reference,
                stock_levels=levels,
            )
            return LedgerOutcome(token=token, direction=direction, applied=True, stock_levels=levels)

    def _replay(self, entry, direction, movement, token):
        if not entry.matches(direction, movement):
            logger.error(
                "ledger_inconsistency",
                token=token,
                recorded_direction=entry.direction,
                recorded_lines=entry.movement,
                attempted_direction=direction.value,
                attempted_lines=movement,
            )
            raise LedgerInconsistency(token, (entry.direction, entry.movement), (direction.value, movement))

        levels = {}
        for variant_id, _ in movement:
            variant = find(Variant, variant_id)
            levels[variant_id] = variant.stock_quantity if variant is not None else None
        logger.info("ledger_replay_ignored", token=token, direction=direction.value)
        return LedgerOutcome(token=token, direction=direction, applied=False, stock_levels=levels)

    def has_applied(self, token) -> bool:
        return find(LedgerEntry, token) is not None
