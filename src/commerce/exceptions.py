"""Error taxonomy of the commerce core.

Every user-facing failure derives from a Protean exception so that the
framework's FastAPI integration and the service's own handlers can map it to
an HTTP status. ``LedgerInconsistency`` is deliberately outside that family:
it signals a bug, not bad input.
"""

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError


class NotFound(ObjectNotFoundError):
    """An unknown variant, offer, address, cart line or order was referenced."""

    def __init__(self, kind, identifier):
        self.kind = kind
        self.identifier = identifier
        super().__init__({"_entity": f"{kind} with identifier {identifier} does not exist"})


class InsufficientStock(ValidationError):
    """A decrement would drive one or more variants below zero.

    ``shortages`` maps variant id to ``{"requested": int, "available": int}``.
    """

    def __init__(self, shortages):
        self.shortages = shortages
        super().__init__(
            {
                "stock": [
                    f"Insufficient stock for variant {variant_id}: "
                    f"requested {detail['requested']}, available {detail['available']}"
                    for variant_id, detail in sorted(shortages.items())
                ]
            }
        )


class InvalidTransition(InvalidOperationError):
    """An illegal order state-machine edge or a mutation of a terminal order."""

    def __init__(self, current, target, reason=None):
        self.current = current
        self.target = target
        message = reason or f"Cannot transition from {current} to {target}"
        super().__init__(message)


class ConflictingUpdate(InvalidOperationError):
    """A concurrent request touching the same order or variants won the race."""


class LedgerInconsistency(Exception):
    """An idempotency token was replayed with different contents."""

    def __init__(self, token, recorded, attempted):
        self.token = token
        self.recorded = recorded
        self.attempted = attempted
        super().__init__(f"Ledger token {token} replayed with different movement")
