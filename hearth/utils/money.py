"""
Money helpers shared by the whole project.

Usage:
    from hearth.utils.money import quantize_money, format_money

    quantize_money(Decimal("3.335"))   -> Decimal("3.34")
    quantize_money(Decimal("3.345"))   -> Decimal("3.34")   (half-even)
    format_money(Decimal("1200.5"))    -> "1,200.50"
"""
from decimal import Decimal, ROUND_HALF_EVEN

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value) -> Decimal:
    """
    Coerce int / str / Decimal / float to Decimal.

    Floats go through str() so 0.1 stays 0.1 instead of its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def quantize_money(amount: Decimal) -> Decimal:
    """Round to cents with banker's rounding (ROUND_HALF_EVEN)."""
    return amount.quantize(CENT, rounding=ROUND_HALF_EVEN)


def format_money(amount, decimals: int = 2) -> str:
    """
    Format an amount with thousands separators.

    Args:
        amount: int / float / Decimal / str
        decimals: digits after the decimal point

    Returns:
        "1,200.50"
    """
    if isinstance(amount, str):
        amount = Decimal(amount)
    fmt = f"{{:,.{decimals}f}}"
    return fmt.format(amount)
