"""
Money amount rules shared by allocations and balance top-ups.
"""
import math
from decimal import Decimal, InvalidOperation


def format_money(value: float) -> str:
    """Format an amount as $1,234.56 for user-facing messages."""
    return f"${value:,.2f}"


def has_at_most_two_decimals(amount: float) -> bool:
    """True when the amount has no more than two decimal places."""
    try:
        exponent = Decimal(str(amount)).normalize().as_tuple().exponent
    except InvalidOperation:
        return False
    return isinstance(exponent, int) and exponent >= -2


def validate_amount(amount: float, max_amount: float) -> float:
    """
    Check a user supplied money amount.

    Raises:
        ValueError: with a message suitable for the client
    """
    if amount is None or math.isnan(amount) or math.isinf(amount):
        raise ValueError("Please enter a valid amount.")
    if amount <= 0:
        raise ValueError("Please enter an amount greater than 0.")
    if not has_at_most_two_decimals(amount):
        raise ValueError("Please limit amounts to 2 decimal places.")
    if amount > max_amount:
        raise ValueError(f"Please enter an amount under {format_money(max_amount)}.")
    return round(amount, 2)
