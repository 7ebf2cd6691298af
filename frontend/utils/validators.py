"""
Client-side checks for amount inputs. The backend repeats every check;
these only give faster feedback in the forms.
"""
import re
from typing import Optional, Tuple

from utils.formatters import format_currency

MAX_AMOUNT = 1_000_000_000


def sanitize_amount_input(value) -> str:
    """
    Keep digits and the first decimal point of a typed amount.

    A leading minus sign and any other characters are dropped:
    "-1,2a50.5.0" -> "1250.50"
    """
    text = value if isinstance(value, str) else str(value if value is not None else "")
    if text.startswith("-"):
        text = text[1:]
    text = re.sub(r"[^\d.]", "", text)

    integer, dot, rest = text.partition(".")
    if not dot:
        return integer
    decimal = rest.replace(".", "")
    return f"{integer}.{decimal}" if decimal else integer


def validate_allocation_amount(
    raw: str,
    remaining_capacity: Optional[float] = None,
    max_amount: float = MAX_AMOUNT,
) -> Tuple[Optional[float], Optional[str]]:
    """
    Validate a sanitized amount string.

    Returns:
        (amount, None) when valid, (None, error message) otherwise
    """
    if not raw:
        return None, "Please enter an amount to allocate."

    try:
        amount = float(raw)
    except ValueError:
        return None, "Please enter a valid amount to allocate."
    if amount != amount or amount <= 0:
        return None, "Please enter a valid amount to allocate."

    decimals = len(raw.split(".", 1)[1]) if "." in raw else 0
    if decimals > 2:
        return None, "Please limit amounts to 2 decimal places."

    if remaining_capacity is not None and amount > remaining_capacity:
        return None, f"Amount exceeds remaining capacity of {format_currency(remaining_capacity)}."

    if amount > max_amount:
        return None, f"Please enter an amount under {format_currency(max_amount)}."

    return amount, None
