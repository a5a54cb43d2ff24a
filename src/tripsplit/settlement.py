"""Settlement planning: greedy matching of debtors to creditors.

This is a fast heuristic, not a minimum-transaction solver. Debtors and
creditors are matched pairwise with two cursors; each step pays off as much
as the smaller side allows. The result has at most
``creditors + debtors - 1`` payments.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Literal

from .models import BalanceRow, Member, Settlement
from .money import SETTLE_EPSILON, round_to_cents

logger = logging.getLogger(__name__)

SettlementOrder = Literal["original", "largest_first"]


@dataclass
class _Position:
    """Working copy of one side of a match; ``remaining`` is always positive."""

    member: Member
    remaining: Decimal


def _partition(
    rows: list[BalanceRow], order: SettlementOrder
) -> tuple[list[_Position], list[_Position]]:
    """
    Split balance rows into creditors and debtors.

    When every rounded balance is within SETTLE_EPSILON of zero the group is
    settled and both lists are empty. Otherwise every non-zero row takes
    part, including one-cent entries.

    Returns:
        Tuple of (creditors, debtors)
    """
    if all(abs(round_to_cents(row.balance)) <= SETTLE_EPSILON for row in rows):
        return [], []

    creditors = [
        _Position(row.member, round_to_cents(row.balance))
        for row in rows
        if row.balance > 0
    ]
    debtors = [
        _Position(row.member, round_to_cents(abs(row.balance)))
        for row in rows
        if row.balance < 0
    ]

    if order == "largest_first":
        # sort() is stable, so equal amounts keep input order
        creditors.sort(key=lambda pos: pos.remaining, reverse=True)
        debtors.sort(key=lambda pos: pos.remaining, reverse=True)

    return creditors, debtors


def plan_settlements(
    rows: list[BalanceRow], order: SettlementOrder = "original"
) -> list[Settlement]:
    """
    Plan the payments that bring every balance back to zero.

    Steps:
    1. Partition rows into creditors and debtors (amounts rounded to cents);
       nothing is planned if every balance is within 0.01 of zero
    2. Match the current debtor with the current creditor
    3. Pay min(debtor remaining, creditor remaining), re-round both sides
    4. Move past any side whose remaining amount is <= 0.01
    5. Stop when either side runs out; leftovers are dropped

    Args:
        rows: Balance rows in any order (not modified)
        order: "original" keeps input order, "largest_first" sorts each side
               by amount, largest first

    Returns:
        Ordered list of settlements, each with a positive amount
    """
    creditors, debtors = _partition(rows, order)

    settlements: list[Settlement] = []
    debtor_idx = 0
    creditor_idx = 0

    while debtor_idx < len(debtors) and creditor_idx < len(creditors):
        debtor = debtors[debtor_idx]
        creditor = creditors[creditor_idx]
        payment = min(debtor.remaining, creditor.remaining)

        if payment > 0:
            settlements.append(
                Settlement(
                    from_member=debtor.member,
                    to_member=creditor.member,
                    amount=payment,
                )
            )

        debtor.remaining = round_to_cents(debtor.remaining - payment)
        creditor.remaining = round_to_cents(creditor.remaining - payment)

        if debtor.remaining <= SETTLE_EPSILON:
            debtor_idx += 1
        if creditor.remaining <= SETTLE_EPSILON:
            creditor_idx += 1

    leftover = debtors[debtor_idx:] + creditors[creditor_idx:]
    if leftover:
        logger.debug(
            "Dropping unmatched residual: "
            + ", ".join(f"{pos.member.name}={pos.remaining}" for pos in leftover)
        )

    return settlements
