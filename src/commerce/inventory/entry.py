"""LedgerEntry aggregate: one applied stock movement, keyed by its token."""

import json
from enum import Enum

from protean.fields import DateTime, String, Text

from commerce.domain import commerce


class LedgerDirection(Enum):
    DECREMENT = "Decrement"
    INCREMENT = "Increment"


@commerce.aggregate
class LedgerEntry:
    token = String(identifier=True, max_length=255)
    direction = String(choices=LedgerDirection, required=True)
    lines = Text(required=True)  # JSON: [[variant_id, quantity], ...] sorted by variant
    reference = String(max_length=255)
    recorded_at = DateTime()

    @property
    def movement(self) -> tuple:
        return tuple((variant_id, quantity) for variant_id, quantity in json.loads(self.lines))

    def matches(self, direction, movement) -> bool:
        return self.direction == direction.value and self.movement == tuple(movement)
