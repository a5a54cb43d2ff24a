"""Service layer that composes the store, the ledger and the engine.

Every read goes back to the stored snapshot and recomputes balances and
settlements from scratch; nothing derived is cached or stored.
"""

import logging

from . import ledger
from .balances import compute_balances
from .config import Settings
from .db import Database
from .entry import build_expense
from .exceptions import GroupNotFoundError
from .models import (
    BalanceRow,
    Expense,
    ExpenseDraft,
    Group,
    LedgerSummary,
    Member,
    Settlement,
)
from .settlement import plan_settlements

logger = logging.getLogger(__name__)


class LedgerService:
    """Service for managing groups and computing who owes whom."""

    def __init__(self, settings: Settings, database: Database):
        """Initialize the ledger service."""
        self.settings = settings
        self.db = database

    # ========================================================================
    # Groups
    # ========================================================================

    def create_group(self, name: str) -> Group:
        """Create a group and make it the active one."""
        group = ledger.create_group(name)
        self.db.save_group(group)
        self.db.set_active_group_id(group.id)
        logger.info(f"Created group '{group.name}' ({group.id})")
        return group

    def list_groups(self) -> list[Group]:
        """All stored groups."""
        return self.db.list_groups()

    def select_group(self, group_id: str) -> Group:
        """Make an existing group the active one."""
        group = self.db.get_group(group_id)
        self.db.set_active_group_id(group.id)
        logger.info(f"Active group is now '{group.name}'")
        return group

    def get_group(self, group_id: str | None = None) -> Group:
        """
        Load a group, defaulting to the active one.

        Raises:
            GroupNotFoundError: If no id is given and no group is active,
                                or the id doesn't exist
        """
        group_id = group_id or self.db.get_active_group_id()
        if not group_id:
            raise GroupNotFoundError(
                "<active>", "No active group. Create one or select one first."
            )
        return self.db.get_group(group_id)

    def delete_group(self, group_id: str) -> None:
        """Delete a group; clears the active group if it was this one."""
        self.db.delete_group(group_id)
        logger.info(f"Deleted group {group_id}")

    # ========================================================================
    # Mutations
    # ========================================================================

    def add_member(self, name: str, group_id: str | None = None) -> Member:
        """Add a member to a group."""
        group, member = ledger.add_member(self.get_group(group_id), name)
        self.db.save_group(group)
        logger.info(f"Added member '{member.name}' to '{group.name}'")
        return member

    def _resolve_draft(self, group: Group, draft: ExpenseDraft) -> ExpenseDraft:
        """Map member names in a draft to ids, rejecting unknown members."""
        paid_by = group.resolve_member(draft.paid_by).id if draft.paid_by else ""
        split_between = [group.resolve_member(ref).id for ref in draft.split_between]
        custom_amounts = {
            group.resolve_member(ref).id: value
            for ref, value in draft.custom_amounts.items()
        }
        return draft.model_copy(
            update={
                "paid_by": paid_by,
                "split_between": split_between,
                "custom_amounts": custom_amounts,
            }
        )

    def add_expense(self, draft: ExpenseDraft, group_id: str | None = None) -> Expense:
        """
        Validate a draft and add it to a group.

        Members in the draft may be given by id or by name.

        Raises:
            ExpenseValidationError: If the draft is rejected
            MemberNotFoundError: If the draft names someone outside the group
        """
        group = self.get_group(group_id)
        expense = build_expense(self._resolve_draft(group, draft))

        self.db.save_group(ledger.add_expense(group, expense))
        logger.info(
            f"Added expense '{expense.title}' ({expense.amount}) to '{group.name}'"
        )
        return expense

    def edit_expense(
        self, expense_id: str, draft: ExpenseDraft, group_id: str | None = None
    ) -> Expense:
        """
        Replace an expense with a re-validated draft, keeping id and position.

        Raises:
            ExpenseNotFoundError: If the group has no such expense
            ExpenseValidationError: If the draft is rejected
        """
        group = self.get_group(group_id)
        existing = ledger.find_expense(group, expense_id)
        expense = build_expense(
            self._resolve_draft(group, draft),
            expense_id=existing.id,
            created_at=existing.created_at,
        )

        self.db.save_group(ledger.replace_expense(group, expense))
        logger.info(f"Updated expense '{expense.title}' in '{group.name}'")
        return expense

    def delete_expense(self, expense_id: str, group_id: str | None = None) -> None:
        """Remove an expense from a group."""
        group = self.get_group(group_id)
        self.db.save_group(ledger.delete_expense(group, expense_id))
        logger.info(f"Deleted expense {expense_id} from '{group.name}'")

    # ========================================================================
    # Queries
    # ========================================================================

    def get_balances(self, group_id: str | None = None) -> list[BalanceRow]:
        """Current balance per member, recomputed from the stored group."""
        return compute_balances(self.get_group(group_id))

    def get_settlements(self, group_id: str | None = None) -> list[Settlement]:
        """Suggested payments for the group, using the configured order."""
        rows = self.get_balances(group_id)
        settlements = plan_settlements(rows, order=self.settings.settlement_order)
        logger.debug(f"Planned {len(settlements)} settlements for {len(rows)} members")
        return settlements

    def list_all_expenses(self) -> list[tuple[Group, Expense]]:
        """Every expense in every group, newest first."""
        return ledger.all_expenses(self.db.list_groups())

    def get_summary(self) -> LedgerSummary:
        """Totals across all groups."""
        return ledger.summarize_groups(self.db.list_groups())
