"""Commerce bounded context: pricing and fulfillment core.

Prices carts under promotional offers, converts priced carts into
event-sourced orders, drives the order lifecycle and keeps the per-variant
stock ledger consistent with it.
"""

import structlog
from protean.domain import Domain

commerce = Domain(name="commerce")

logger = structlog.get_logger(__name__)
