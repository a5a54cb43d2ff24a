"""Expense entry: validate raw form input and turn it into an Expense.

This is the layer that keeps malformed data away from the balance engine.
The engine itself never validates.
"""

import logging
import time
import uuid
from datetime import UTC, datetime
from decimal import Decimal

from .exceptions import ExpenseValidationError
from .models import CustomSplit, EqualSplit, Expense, ExpenseDraft
from .money import CENT, convert_to_base, format_money, parse_amount, round_to_cents

logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(number: int) -> str:
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits)) or "0"


def new_id() -> str:
    """Generate an opaque id: base-36 milliseconds plus a random suffix."""
    return f"{_to_base36(time.time_ns() // 1_000_000)}-{uuid.uuid4().hex[:6]}"


def _clean_ids(member_ids: list[str]) -> list[str]:
    """Strip blanks and duplicates, keeping first-seen order."""
    return list(dict.fromkeys(mid.strip() for mid in member_ids if mid.strip()))


def custom_total_matches(
    split_between: list[str],
    custom_amounts: dict[str, str | Decimal],
    amount: str | Decimal,
) -> bool:
    """
    Check that custom split amounts add up to the expense amount.

    Only amounts for members in ``split_between`` count. The totals must
    agree to within one cent after rounding.
    """
    if not split_between:
        return False

    total = sum(
        (parse_amount(custom_amounts.get(mid, "0")) for mid in split_between),
        Decimal("0"),
    )
    return abs(round_to_cents(total) - round_to_cents(parse_amount(amount))) <= CENT


def _absorb_residual(
    amounts: dict[str, Decimal], total: Decimal
) -> dict[str, Decimal]:
    """
    Make custom amounts add up to the total exactly.

    The tolerated difference goes to the last member whose share stays
    positive after the adjustment, or to the last member when nobody qualifies.
    """
    residual = total - sum(amounts.values(), Decimal("0"))
    if not residual or not amounts:
        return amounts

    payers = [
        mid for mid, value in amounts.items() if value + residual > 0
    ] or list(amounts)
    adjusted = dict(amounts)
    adjusted[payers[-1]] += residual
    logger.debug(f"Custom split residual {residual} added to {payers[-1]}")
    return adjusted


def build_expense(
    draft: ExpenseDraft,
    expense_id: str | None = None,
    created_at: datetime | None = None,
) -> Expense:
    """
    Validate a draft and build the Expense to store.

    Rules:
    - title and payer are required, amount must parse to a positive number
    - with an exchange rate, the amount is converted to the base currency and
      the entered amount is kept as ``original_amount``
    - an empty split falls back to the payer alone
    - custom amounts are in the base currency, must add up to the (converted)
      amount within a cent, and only positive cent-rounded values are kept;
      the tolerated difference is added to the last share so the stored
      amounts sum to the amount exactly

    Args:
        draft: Raw form input
        expense_id: Existing id when editing, otherwise a new one is generated
        created_at: Existing timestamp when editing, otherwise now

    Returns:
        A validated Expense

    Raises:
        ExpenseValidationError: If any rule is violated
    """
    title = draft.title.strip()
    if not title:
        raise ExpenseValidationError("title", "Expense title is required")

    entered = parse_amount(draft.amount)
    if entered <= 0:
        raise ExpenseValidationError(
            "amount", f"Expense amount must be positive, got '{draft.amount}'"
        )

    paid_by = draft.paid_by.strip()
    if not paid_by:
        raise ExpenseValidationError("paid_by", "Expense needs a payer")

    amount = entered
    original_amount = None
    original_currency = None
    fx_rate = None
    if draft.fx_rate not in (None, ""):
        fx_rate = parse_amount(draft.fx_rate)
        amount = convert_to_base(entered, fx_rate)
        original_amount = entered
        original_currency = draft.currency
        logger.debug(
            f"Converted {entered} {draft.currency or ''} at {fx_rate} -> {amount}"
        )
    elif draft.currency:
        raise ExpenseValidationError(
            "fx_rate", f"An exchange rate is required for amounts in {draft.currency}"
        )

    requested = _clean_ids(draft.split_between)
    split_between = requested or [paid_by]

    split: EqualSplit | CustomSplit
    if draft.mode == "custom":
        if not requested:
            raise ExpenseValidationError(
                "split_between", "Select at least one person to split with"
            )
        if not custom_total_matches(requested, draft.custom_amounts, amount):
            raise ExpenseValidationError(
                "custom_amounts",
                f"Custom split must add up to the expense total "
                f"({format_money(amount)})",
            )
        amounts = {
            mid: round_to_cents(parse_amount(draft.custom_amounts.get(mid, "0")))
            for mid in split_between
        }
        split = CustomSplit(amounts=_absorb_residual(amounts, amount))
    else:
        split = EqualSplit()

    return Expense(
        id=expense_id or new_id(),
        title=title,
        amount=amount,
        paid_by=paid_by,
        split_between=split_between,
        split=split,
        created_at=created_at or datetime.now(UTC),
        original_amount=original_amount,
        original_currency=original_currency,
        fx_rate=fx_rate,
    )


def draft_from_expense(expense: Expense) -> ExpenseDraft:
    """
    Turn a stored expense back into form input for editing.

    The split set falls back to the custom amount keys, then to the payer.
    Custom amounts are formatted as money strings, with "0.00" for members
    that have no amount.
    """
    paid_by = expense.paid_by or ""
    split_ids = (
        list(expense.split_between)
        or list(expense.custom_amounts)
        or ([paid_by] if paid_by else [])
    )

    custom_amounts: dict[str, str | Decimal] = {}
    if expense.split_mode == "custom":
        custom_amounts = {
            mid: format_money(expense.custom_amounts.get(mid, Decimal("0")))
            for mid in split_ids
        }

    if expense.original_amount is not None and expense.fx_rate is not None:
        amount = format_money(expense.original_amount)
        fx_rate: str | None = str(expense.fx_rate)
    else:
        amount = format_money(expense.amount)
        fx_rate = None

    return ExpenseDraft(
        title=expense.title,
        amount=amount,
        paid_by=paid_by,
        split_between=split_ids,
        mode="custom" if expense.split_mode == "custom" else "equal",
        custom_amounts=custom_amounts,
        currency=expense.original_currency if fx_rate else None,
        fx_rate=fx_rate,
    )
