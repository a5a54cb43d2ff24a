"""Decimal money helpers shared by the engine, entry layer and CLI.

All amounts are ``Decimal`` in the group's base currency. Rounding to cents
uses ROUND_HALF_UP everywhere so the planner, the entry form and the
rendered output agree on the same cent.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .exceptions import ExpenseValidationError

CENT = Decimal("0.01")

# Remaining amounts at or below this are treated as settled.
SETTLE_EPSILON = Decimal("0.01")

_NON_NUMERIC = re.compile(r"[^0-9.]")


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Coerce a number to Decimal without picking up float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_to_cents(value: Decimal | int | float | str) -> Decimal:
    """
    Round an amount to whole cents.

    Args:
        value: Amount in base currency

    Returns:
        Amount quantized to 0.01 using ROUND_HALF_UP
    """
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(text: str | Decimal | int | float | None) -> Decimal:
    """
    Parse a user-typed amount such as "$1,234.50".

    Everything except digits and the decimal point is discarded. Input that
    still doesn't parse (e.g. "1.2.3" or "") yields zero rather than an
    error; callers reject non-positive amounts themselves.
    """
    if text is None:
        return Decimal("0")
    if not isinstance(text, str):
        return to_decimal(text)

    normalized = _NON_NUMERIC.sub("", text)
    if not normalized:
        return Decimal("0")
    try:
        return Decimal(normalized)
    except InvalidOperation:
        return Decimal("0")


def format_money(value: Decimal | int | float) -> str:
    """Format an amount with exactly two decimals, no symbol."""
    return f"{round_to_cents(value):.2f}"


def format_signed_money(value: Decimal | int | float, symbol: str = "$") -> str:
    """Format a balance for display: ``+$60.00`` or ``-$30.00``."""
    rounded = round_to_cents(value)
    if rounded >= 0:
        return f"+{symbol}{abs(rounded):.2f}"
    return f"-{symbol}{abs(rounded):.2f}"


def split_evenly(member_ids: list[str], total: Decimal) -> dict[str, Decimal]:
    """
    Pre-fill per-member amounts for a custom split.

    Every member gets the rounded equal share except the last one, who
    absorbs the remainder so the amounts add up to the rounded total.

    Args:
        member_ids: Members in split order
        total: Expense amount

    Returns:
        Mapping of member id to cent amount, empty if there is nothing to split
    """
    total = to_decimal(total)
    if not member_ids or total <= 0:
        return {}

    share = round_to_cents(total / len(member_ids))
    remaining = round_to_cents(total)
    amounts: dict[str, Decimal] = {}

    for index, member_id in enumerate(member_ids):
        is_last = index == len(member_ids) - 1
        amounts[member_id] = remaining if is_last else share
        remaining = round_to_cents(remaining - share)

    return amounts


def convert_to_base(amount: Decimal, rate: Decimal) -> Decimal:
    """
    Convert a foreign-currency amount into the base currency.

    The rate is entered by the user at entry time (base units per foreign
    unit); no lookup happens here.

    Raises:
        ExpenseValidationError: If the rate is not positive
    """
    rate = to_decimal(rate)
    if rate <= 0:
        raise ExpenseValidationError(
            "fx_rate", f"Exchange rate must be positive, got {rate}"
        )
    return round_to_cents(to_decimal(amount) * rate)
