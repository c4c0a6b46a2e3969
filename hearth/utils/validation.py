"""
Validation utilities for amounts and rates coming from request bodies
"""
import re
from decimal import Decimal, InvalidOperation


def normalize_decimal_input(value: str) -> str:
    """
    Accept a comma as the decimal separator

    Example:
        >>> normalize_decimal_input("100,50")
        "100.50"
    """
    return value.strip().replace(",", ".")


def validate_and_normalize_amount(value: str, max_decimal_places: int = 2) -> str:
    """
    Validate a money string and return it normalized

    Raises:
        ValueError: not a number, or more than `max_decimal_places` decimals

    Example:
        >>> validate_and_normalize_amount("100,50")
        "100.50"
        >>> validate_and_normalize_amount("100.505")
        ValueError: At most 2 decimal places
    """
    normalized = normalize_decimal_input(value)
    try:
        Decimal(normalized)
    except (InvalidOperation, ValueError):
        raise ValueError("Invalid amount")

    pattern = rf"^-?\d+(\.\d{{1,{max_decimal_places}}})?$"
    if not re.match(pattern, normalized):
        raise ValueError(f"At most {max_decimal_places} decimal places")
    return normalized


def validate_rate(value) -> Decimal:
    """
    Parse a non-negative rate fraction ("0.09", 0.1, Decimal)

    Raises:
        ValueError: not a number or negative
    """
    try:
        rate = Decimal(normalize_decimal_input(str(value)))
    except (InvalidOperation, ValueError):
        raise ValueError("Invalid rate")
    if not rate.is_finite() or rate < 0:
        raise ValueError("Rate must be a non-negative number")
    return rate
