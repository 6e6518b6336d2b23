"""Runtime settings read from the environment."""

import os

from commerce.shared.money import to_decimal


def currency() -> str:
    return os.getenv("COMMERCE_CURRENCY", "AED")


def shipping_fee():
    """Flat shipping charge added to every quote. Zero unless configured."""
    return to_decimal(os.getenv("COMMERCE_SHIPPING_FEE", "0.00"), field="COMMERCE_SHIPPING_FEE")


def lock_timeout() -> float:
    """Seconds a request may wait for an order or variant lock."""
    return float(os.getenv("COMMERCE_LOCK_TIMEOUT", "5"))
