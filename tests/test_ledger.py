"""Tests for group document transforms and totals."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from tripsplit.exceptions import ExpenseNotFoundError, ExpenseValidationError
from tripsplit.ledger import (
    add_expense,
    add_member,
    all_expenses,
    create_group,
    delete_expense,
    find_expense,
    replace_expense,
    summarize_group,
    summarize_groups,
)
from tripsplit.models import Expense, Group, Member


def make_expense(id: str, amount: str = "10", created_at=None) -> Expense:
    return Expense(
        id=id,
        title=f"Expense {id}",
        amount=Decimal(amount),
        paid_by="a",
        split_between=["a"],
        created_at=created_at,
    )


@pytest.fixture
def group():
    return Group(
        id="g1",
        name="Trip",
        members=[Member(id="a", name="Alice")],
        expenses=[make_expense("e2"), make_expense("e1")],
    )


class TestGroupsAndMembers:
    def test_create_group(self):
        group = create_group("  Lisbon  ")

        assert group.name == "Lisbon"
        assert group.id
        assert group.members == []
        assert group.expenses == []

    def test_create_group_needs_name(self):
        with pytest.raises(ExpenseValidationError):
            create_group(" ")

    def test_add_member_appends(self, group):
        updated, member = add_member(group, "Bob")

        assert member.name == "Bob"
        assert [m.name for m in updated.members] == ["Alice", "Bob"]
        assert [m.name for m in group.members] == ["Alice"]

    def test_add_member_needs_name(self, group):
        with pytest.raises(ExpenseValidationError) as exc:
            add_member(group, "")

        assert exc.value.field == "name"

    @pytest.mark.parametrize("name", ["Alice", " alice ", "ALICE"])
    def test_add_member_rejects_taken_name(self, group, name):
        """Names must resolve to one member, so repeats are refused."""
        with pytest.raises(ExpenseValidationError, match="already a member") as exc:
            add_member(group, name)

        assert exc.value.field == "name"


class TestExpenseTransforms:
    """Transforms return a new group and leave the input alone."""

    def test_find_expense(self, group):
        assert find_expense(group, "e1").title == "Expense e1"

    def test_find_missing(self, group):
        with pytest.raises(ExpenseNotFoundError, match="Expense 'nope' not found"):
            find_expense(group, "nope")

    def test_add_prepends(self, group):
        updated = add_expense(group, make_expense("e3"))

        assert [e.id for e in updated.expenses] == ["e3", "e2", "e1"]
        assert [e.id for e in group.expenses] == ["e2", "e1"]

    def test_replace_keeps_position(self, group):
        updated = replace_expense(group, make_expense("e1", amount="99"))

        assert [e.id for e in updated.expenses] == ["e2", "e1"]
        assert updated.expenses[1].amount == Decimal("99")
        assert group.expenses[1].amount == Decimal("10")

    def test_replace_keeps_created_at(self):
        created = datetime(2024, 3, 1, tzinfo=UTC)
        group = Group(
            id="g", name="G", expenses=[make_expense("e1", created_at=created)]
        )

        replacement = make_expense("e1", created_at=datetime(2025, 1, 1, tzinfo=UTC))
        updated = replace_expense(group, replacement)

        assert updated.expenses[0].created_at == created

    def test_replace_missing(self, group):
        with pytest.raises(ExpenseNotFoundError):
            replace_expense(group, make_expense("nope"))

    def test_delete(self, group):
        updated = delete_expense(group, "e2")

        assert [e.id for e in updated.expenses] == ["e1"]
        assert len(group.expenses) == 2

    def test_delete_missing(self, group):
        with pytest.raises(ExpenseNotFoundError):
            delete_expense(group, "nope")


class TestSummaries:
    def test_summarize_group(self, group):
        summary = summarize_group(group)

        assert summary.group_id == "g1"
        assert summary.member_count == 1
        assert summary.expense_count == 2
        assert summary.total_spent == Decimal("20")

    def test_summarize_groups_sorted_by_total(self, group):
        big = Group(id="g2", name="Big", expenses=[make_expense("x", amount="500")])
        empty = Group(id="g3", name="Empty")

        totals = summarize_groups([group, empty, big])

        assert [row.name for row in totals.groups] == ["Big", "Trip", "Empty"]
        assert totals.total_groups == 3
        assert totals.total_members == 1
        assert totals.total_expenses == 3
        assert totals.total_spent == Decimal("520")

    def test_summarize_nothing(self):
        totals = summarize_groups([])

        assert totals.total_groups == 0
        assert totals.total_spent == 0
        assert totals.groups == []


class TestAllExpenses:
    def test_newest_first_across_groups(self):
        g1 = Group(
            id="g1",
            name="One",
            expenses=[
                make_expense("old", created_at=datetime(2024, 1, 1, tzinfo=UTC)),
                make_expense("undated"),
            ],
        )
        g2 = Group(
            id="g2",
            name="Two",
            expenses=[
                # Naive timestamps are read as UTC
                make_expense("naive", created_at=datetime(2024, 6, 1)),
                make_expense("new", created_at=datetime(2025, 1, 1, tzinfo=UTC)),
            ],
        )

        pairs = all_expenses([g1, g2])

        assert [expense.id for _, expense in pairs] == [
            "new",
            "naive",
            "old",
            "undated",
        ]
        assert pairs[0][0].id == "g2"
