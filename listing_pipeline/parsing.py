"""Tolerant field parsing shared by the geo validator and the finalizer."""
import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

import numpy as np

_SINGLE_COMMA = re.compile(r"^[+-]?\d*,\d+$")


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (float, np.floating)) and np.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def parse_decimal(
    value: Any,
    places: Optional[int] = None,
    lower: Optional[float] = None,
    upper: Optional[float] = None,
) -> Optional[Decimal]:
    """
    Parse a scraped numeric field, returning None instead of raising.

    Accepts a single comma as decimal separator ("4,5"). Values that are not
    finite, or fall outside [lower, upper], are None.

    Args:
        value: Raw field value, usually text.
        places: Decimal places to round to (half-up), if given.
        lower: Inclusive lower bound.
        upper: Inclusive upper bound.

    Returns:
        Optional[Decimal]: The parsed value or None.
    """
    if is_blank(value):
        return None
    text = str(value).strip()
    if _SINGLE_COMMA.match(text):
        text = text.replace(",", ".")
    try:
        number = Decimal(text)
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    if lower is not None and number < Decimal(str(lower)):
        return None
    if upper is not None and number > Decimal(str(upper)):
        return None
    if places is not None:
        try:
            number = number.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
        except InvalidOperation:
            return None
    return number


def parse_float(value: Any) -> Optional[float]:
    number = parse_decimal(value)
    if number is None:
        return None
    result = float(number)
    return result if math.isfinite(result) else None


def bounded_text(value: Any, max_length: Optional[int]) -> Optional[str]:
    """Blank text becomes None; text longer than max_length is truncated."""
    if is_blank(value):
        return None
    text = str(value)
    if max_length is not None and len(text) > max_length:
        return text[:max_length]
    return text
