"""Group document transforms and totals.

Every function here returns a new Group and leaves its input untouched, so
callers can hand the result straight to the store as a full-document
replace.
"""

from datetime import UTC, datetime
from decimal import Decimal

from .entry import new_id
from .exceptions import ExpenseNotFoundError, ExpenseValidationError
from .models import Expense, Group, GroupSummary, LedgerSummary, Member


def create_group(name: str) -> Group:
    """Create an empty group with a fresh id."""
    trimmed = name.strip()
    if not trimmed:
        raise ExpenseValidationError("name", "Group name is required")
    return Group(id=new_id(), name=trimmed)


def add_member(group: Group, name: str) -> tuple[Group, Member]:
    """
    Append a new member to the group.

    Names are unique within a group, ignoring case.

    Returns:
        Tuple of (updated group, new member)
    """
    trimmed = name.strip()
    if not trimmed:
        raise ExpenseValidationError("name", "Member name is required")
    if any(m.name.lower() == trimmed.lower() for m in group.members):
        raise ExpenseValidationError(
            "name", f"'{trimmed}' is already a member of '{group.name}'"
        )

    member = Member(id=new_id(), name=trimmed)
    updated = group.model_copy(update={"members": [*group.members, member]})
    return updated, member


def find_expense(group: Group, expense_id: str) -> Expense:
    """
    Look up an expense by id.

    Raises:
        ExpenseNotFoundError: If the group has no such expense
    """
    for expense in group.expenses:
        if expense.id == expense_id:
            return expense
    raise ExpenseNotFoundError(expense_id)


def add_expense(group: Group, expense: Expense) -> Group:
    """Add an expense at the front (newest first)."""
    return group.model_copy(update={"expenses": [expense, *group.expenses]})


def replace_expense(group: Group, expense: Expense) -> Group:
    """
    Replace the expense with the same id, keeping its position.

    The stored ``created_at`` wins over the replacement's.

    Raises:
        ExpenseNotFoundError: If the group has no expense with that id
    """
    existing = find_expense(group, expense.id)
    if existing.created_at is not None:
        expense = expense.model_copy(update={"created_at": existing.created_at})

    expenses = [expense if item.id == expense.id else item for item in group.expenses]
    return group.model_copy(update={"expenses": expenses})


def delete_expense(group: Group, expense_id: str) -> Group:
    """
    Remove an expense.

    Raises:
        ExpenseNotFoundError: If the group has no expense with that id
    """
    find_expense(group, expense_id)
    expenses = [item for item in group.expenses if item.id != expense_id]
    return group.model_copy(update={"expenses": expenses})


def summarize_group(group: Group) -> GroupSummary:
    """Totals for one group."""
    return GroupSummary(
        group_id=group.id,
        name=group.name,
        member_count=len(group.members),
        expense_count=len(group.expenses),
        total_spent=sum((exp.amount for exp in group.expenses), Decimal("0")),
    )


def summarize_groups(groups: list[Group]) -> LedgerSummary:
    """Totals across all groups, with per-group rows largest first."""
    summaries = [summarize_group(group) for group in groups]
    summaries.sort(key=lambda s: s.total_spent, reverse=True)

    return LedgerSummary(
        total_groups=len(groups),
        total_members=sum(s.member_count for s in summaries),
        total_expenses=sum(s.expense_count for s in summaries),
        total_spent=sum((s.total_spent for s in summaries), Decimal("0")),
        groups=summaries,
    )


def all_expenses(groups: list[Group]) -> list[tuple[Group, Expense]]:
    """
    Flatten every group's expenses, newest first by ``created_at``.

    Expenses without a timestamp sort last.
    """
    oldest = datetime.min.replace(tzinfo=UTC)

    def sort_key(pair: tuple[Group, Expense]) -> datetime:
        created = pair[1].created_at
        if created is None:
            return oldest
        # Naive timestamps from old documents are taken as UTC
        return created if created.tzinfo else created.replace(tzinfo=UTC)

    pairs = [(group, expense) for group in groups for expense in group.expenses]
    return sorted(pairs, key=sort_key, reverse=True)
