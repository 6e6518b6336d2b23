"""Decimal money helpers.

Amounts travel as strings on the wire and in storage and as ``Decimal`` in
memory. Rounding to two places happens only at those boundaries.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from protean.exceptions import ValidationError

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal(value, field="amount"):
    """Parse a string, int or Decimal into a Decimal.

    Floats are refused: they have already lost precision.
    """
    if value is None or value == "":
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        raise ValidationError({field: ["Monetary amounts must be decimal strings, not floats"]})
    try:
        parsed = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError({field: [f"'{value}' is not a valid decimal amount"]}) from None
    if not parsed.is_finite():
        raise ValidationError({field: [f"'{value}' is not a valid decimal amount"]})
    return parsed


def quantize(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(amount) -> str | None:
    """Render an amount as a two-place decimal string."""
    if amount is None:
        return None
    return str(quantize(to_decimal(amount)))
