"""
boosterball/numeric.py - Narrowing of chain integers for JSON consumers.

Contract calls return arbitrary-width unsigned integers (Python ints). The
front-end parses JSON numbers as IEEE doubles, so anything above 2**53 - 1
has to travel as a decimal string or it silently loses precision.
"""

from decimal import Decimal, InvalidOperation

from .errors import NumericRangeError

# Largest integer a JSON/JavaScript number represents exactly.
MAX_SAFE_INTEGER = 2**53 - 1

# XFI uses 18 decimals like ether.
XFI_DECIMALS = 18


def _check_uint(value, field: str) -> int:
    # bool is an int subclass; a flag is never a quantity
    if isinstance(value, bool) or not isinstance(value, int):
        raise NumericRangeError(field, value)
    if value < 0:
        raise NumericRangeError(field, value)
    return value


def to_safe_int(value, field: str = "value") -> int:
    """Narrow a chain integer to a JSON-safe int.

    Raises NumericRangeError instead of truncating when the value is
    negative, not an integer, or larger than MAX_SAFE_INTEGER.
    """
    value = _check_uint(value, field)
    if value > MAX_SAFE_INTEGER:
        raise NumericRangeError(field, value)
    return value


def to_json_number(value, field: str = "value") -> int | str:
    """Return an int when it is exactly representable, else its decimal string."""
    value = _check_uint(value, field)
    if value > MAX_SAFE_INTEGER:
        return str(value)
    return value


def to_decimal_string(value, field: str = "value") -> str:
    """Decimal string form. Currency amounts always use this."""
    return str(_check_uint(value, field))


def units_to_wei(units, decimals: int = XFI_DECIMALS) -> int:
    """Convert whole currency units to the smallest unit with exact arithmetic.

    Accepts an int or a decimal string ("10", "0.5"). Floats are refused:
    a float price has already been rounded before it gets here.

    Raises:
        TypeError: units is a float or another non-integer type.
        ValueError: units is negative, unparseable, or finer than 10**-decimals.
    """
    if isinstance(units, bool) or isinstance(units, float):
        raise TypeError(f"units must be an int or decimal string, got {type(units).__name__}")
    if isinstance(units, int):
        if units < 0:
            raise ValueError(f"units must be non-negative: {units}")
        return units * 10**decimals
    if not isinstance(units, str):
        raise TypeError(f"units must be an int or decimal string, got {type(units).__name__}")

    try:
        amount = Decimal(units.strip())
    except InvalidOperation:
        raise ValueError(f"units is not a decimal number: {units!r}") from None

    if not amount.is_finite() or amount < 0:
        raise ValueError(f"units must be a non-negative finite number: {units!r}")

    wei = amount.scaleb(decimals)
    if wei != wei.to_integral_value():
        raise ValueError(f"units {units!r} has more than {decimals} decimal places")
    return int(wei)
