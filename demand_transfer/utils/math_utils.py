# demand_transfer/utils/math_utils.py
import math
import numbers
import logging
from typing import Any

logger = logging.getLogger(__name__)

def to_quantity(value: Any) -> float:
    """Coerce a spreadsheet cell to a demand quantity.

    Values that cannot be parsed as a number are treated as zero.

    Args:
        value: Raw cell value (number, numeric string, blank or None)

    Returns:
        Quantity as float
    """
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, numbers.Real):
        quantity = float(value)
    else:
        text = str(value).strip().replace(',', '')
        if not text:
            return 0.0
        try:
            quantity = float(text)
        except ValueError:
            logger.debug(f"Treating non-numeric quantity {value!r} as zero")
            return 0.0

    if math.isnan(quantity) or math.isinf(quantity):
        return 0.0

    return quantity

def normalize_identifier(value: Any) -> str:
    """Return the canonical string form of an identifier cell.

    Spreadsheet readers hand back 7, 7.0 or "7" for the same part number;
    all of them normalise to "7". Missing values become an empty string.

    Args:
        value: Raw cell value

    Returns:
        Canonical identifier string
    """
    if value is None or isinstance(value, bool):
        return ''

    if isinstance(value, numbers.Integral):
        return str(int(value))

    if isinstance(value, numbers.Real):
        number = float(value)
        if math.isnan(number):
            return ''
        if number.is_integer():
            return str(int(number))
        return repr(number)

    return str(value).strip()

def format_quantity(value: float) -> str:
    """Render a quantity for audit history text (150, not 150.0)."""
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(round(number, 6))

def quantities_equal(a: float, b: float) -> bool:
    """Compare two quantities with a tolerance for float noise."""
    return math.isclose(a, b, rel_tol=1e-9, abs_tol=1e-9)
