"""Balance calculation: turn a group's expenses into per-member net balances."""

import logging
from decimal import Decimal

from .models import BalanceRow, CustomSplit, Expense, Group

logger = logging.getLogger(__name__)


def _split_targets(expense: Expense) -> dict[str, Decimal]:
    """
    Work out how much each participant owes for one expense.

    Custom splits with amounts are used as-is. Everything else is an equal
    split over ``split_between``, or over the payer alone when nobody was
    recorded, so the expense is always fully debited.
    """
    if isinstance(expense.split, CustomSplit) and expense.split.amounts:
        return dict(expense.split.amounts)

    split_set = expense.split_between or [expense.paid_by]
    share = expense.amount / len(split_set)

    shares: dict[str, Decimal] = {}
    for member_id in split_set:
        # Repeated ids in split_between are charged once per occurrence
        shares[member_id] = shares.get(member_id, Decimal("0")) + share
    return shares


def compute_net_positions(group: Group) -> dict[str, Decimal]:
    """
    Compute the net position of every id referenced by the group.

    Ids that are not (or no longer) group members are tracked with their own
    zero-initialized balance, so the result always sums to zero.

    Args:
        group: Group snapshot (not modified)

    Returns:
        Mapping of member id to signed balance
    """
    positions: dict[str, Decimal] = {
        member.id: Decimal("0") for member in group.members
    }

    for expense in group.expenses:
        payer = expense.paid_by
        if not payer:
            logger.debug(f"Skipping expense {expense.id} with no payer")
            continue

        positions[payer] = positions.get(payer, Decimal("0")) + expense.amount

        for member_id, owed in _split_targets(expense).items():
            positions[member_id] = positions.get(member_id, Decimal("0")) - owed

    unknown = [
        member_id for member_id in positions if group.member_by_id(member_id) is None
    ]
    if unknown:
        logger.debug(f"Group {group.id} references non-member ids: {unknown}")

    return positions


def compute_balances(group: Group) -> list[BalanceRow]:
    """
    Compute one balance row per group member, in member order.

    Members never touched by an expense get a zero balance. Ids outside the
    member list still take part in the arithmetic but get no row.

    Args:
        group: Group snapshot (not modified)

    Returns:
        Balance rows aligned with ``group.members``
    """
    positions = compute_net_positions(group)
    return [
        BalanceRow(member=member, balance=positions.get(member.id, Decimal("0")))
        for member in group.members
    ]
