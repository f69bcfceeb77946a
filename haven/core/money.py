"""
Money helpers shared by every brief section.

All amounts coming out of the data source pass through ``safe_decimal`` so the
parse-or-zero behaviour for malformed values lives in exactly one place.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from haven.core.logging import get_logger

logger = get_logger(__name__)

ZERO = Decimal("0")
CENTS = Decimal("0.01")


def safe_decimal(value: Any, field: str = "amount") -> Decimal:
    """
    Parse a monetary value into a Decimal.

    Args:
        value: Raw value from the data source (Decimal, str, int or float)
        field: Field name, used only for the debug log

    Returns:
        Decimal: The parsed value, or zero when the value is missing or malformed
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    try:
        # str() first so floats keep their shortest repr instead of binary noise
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        logger.debug(f"Malformed {field} value {value!r} treated as zero")
        return ZERO
    if not parsed.is_finite():
        logger.debug(f"Non-finite {field} value {value!r} treated as zero")
        return ZERO
    return parsed


def round_half_up(value: Decimal) -> int:
    """Round to the nearest whole number, halves away from zero."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_cents(value: Decimal) -> Decimal:
    """Quantize to two decimal places."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def percentage(numerator: Decimal, denominator: Decimal) -> Optional[Decimal]:
    """Return numerator / denominator * 100, or None when the denominator is zero."""
    if not denominator:
        return None
    return numerator / denominator * Decimal("100")
