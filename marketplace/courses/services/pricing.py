"""
Pricing helpers: major units (dollars) as entered by teachers, minor units
(cents) as stored and sent to the payment processor.
"""

import logging
import re
from decimal import Decimal
from typing import Any

from ...exceptions import InvalidPrice

logger = logging.getLogger(__name__)

MINOR_UNITS_PER_MAJOR = 100

_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


def to_minor_units(value: Any) -> int:
    """
    Convert a whole major-unit price into integer minor units.

    Args:
        value: Base-10 integer as str or int (e.g. "49" or 49)

    Returns:
        Price in minor units (e.g. 4900)

    Raises:
        InvalidPrice: For non-integer input (e.g. "abc", "49.99", "") or
            negative prices. Input is never coerced.
    """
    if isinstance(value, bool):
        raise InvalidPrice(
            "Price must be a whole number", details={"price": value}
        )

    if isinstance(value, int):
        whole = value
    else:
        text = "" if value is None else str(value).strip()
        if not _INTEGER_PATTERN.fullmatch(text):
            raise InvalidPrice(
                "Price must be a whole number", details={"price": value}
            )
        whole = int(text, 10)

    if whole < 0:
        raise InvalidPrice("Price cannot be negative", details={"price": value})

    return whole * MINOR_UNITS_PER_MAJOR


def to_major_units(minor: int) -> Decimal:
    """Inverse of `to_minor_units` for display, e.g. 4950 -> Decimal("49.50")."""
    return (Decimal(minor) / MINOR_UNITS_PER_MAJOR).quantize(Decimal("0.01"))
