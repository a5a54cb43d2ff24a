"""Tests for the greedy settlement planner."""

import random
from collections import defaultdict
from decimal import Decimal

import pytest

from tripsplit.balances import compute_balances
from tripsplit.models import BalanceRow, CustomSplit, Expense, Group, Member
from tripsplit.settlement import plan_settlements


def make_rows(*balances: tuple[str, str]) -> list[BalanceRow]:
    """Create balance rows from (name, amount) pairs; the name doubles as id."""
    return [
        BalanceRow(member=Member(id=name, name=name), balance=Decimal(amount))
        for name, amount in balances
    ]


def as_tuples(settlements) -> list[tuple[str, str, Decimal]]:
    return [(s.from_member.id, s.to_member.id, s.amount) for s in settlements]


class TestBasicMatching:
    """Simple debtor/creditor pairings."""

    def test_one_creditor_two_debtors(self):
        """A owes 10, B owes 5, C is owed 15."""
        rows = make_rows(("A", "-10"), ("B", "-5"), ("C", "15"))

        settlements = plan_settlements(rows)

        assert as_tuples(settlements) == [
            ("A", "C", Decimal("10")),
            ("B", "C", Decimal("5")),
        ]

    def test_single_payment_resolves_both(self):
        """Two members with opposite balances settle in one payment."""
        rows = make_rows(("A", "60"), ("B", "0"), ("C", "-60"))

        assert as_tuples(plan_settlements(rows)) == [("C", "A", Decimal("60"))]

    def test_two_creditors_one_debtor(self):
        """A debtor pays creditors in input order."""
        rows = make_rows(("A", "-30"), ("B", "20"), ("C", "10"))

        assert as_tuples(plan_settlements(rows)) == [
            ("A", "B", Decimal("20")),
            ("A", "C", Decimal("10")),
        ]

    def test_debt_split_across_creditors(self):
        """Partial payments carry the remainder to the next creditor."""
        rows = make_rows(("A", "25"), ("B", "-40"), ("C", "15"), ("D", "-0"))

        assert as_tuples(plan_settlements(rows)) == [
            ("B", "A", Decimal("25")),
            ("B", "C", Decimal("15")),
        ]

    def test_zero_members_take_no_part(self):
        """Settled members appear in no settlement."""
        rows = make_rows(("A", "0"), ("B", "-5"), ("C", "0"), ("D", "5"))

        settlements = plan_settlements(rows)

        ids = {s.from_member.id for s in settlements} | {
            s.to_member.id for s in settlements
        }
        assert ids == {"B", "D"}

    def test_amounts_rounded_to_cents(self):
        """Fractional balances are paid in whole cents."""
        third = Decimal("100") / 3
        rows = make_rows(("A", str(2 * third)), ("B", str(-third)), ("C", str(-third)))

        assert as_tuples(plan_settlements(rows)) == [
            ("B", "A", Decimal("33.33")),
            ("C", "A", Decimal("33.33")),
        ]

    def test_input_not_mutated(self):
        """Balance rows are left untouched."""
        rows = make_rows(("A", "-10"), ("B", "10"))
        before = [row.model_dump() for row in rows]

        plan_settlements(rows)

        assert [row.model_dump() for row in rows] == before


class TestEmptyResults:
    """Cases that need no payments."""

    def test_no_rows(self):
        assert plan_settlements([]) == []

    def test_all_zero(self):
        rows = make_rows(("A", "0"), ("B", "0"))

        assert plan_settlements(rows) == []

    def test_all_within_a_cent(self):
        """Sub-cent and one-cent residue counts as settled."""
        rows = make_rows(("A", "0.01"), ("B", "-0.006"), ("C", "-0.004"))

        assert plan_settlements(rows) == []

    def test_only_creditors(self):
        """Unbalanced input is not an error; the residue is dropped."""
        rows = make_rows(("A", "10"), ("B", "5"))

        assert plan_settlements(rows) == []

    def test_only_debtors(self):
        rows = make_rows(("A", "-10"))

        assert plan_settlements(rows) == []


class TestResidualDrift:
    """Rounding residue is absorbed by the one-cent epsilon."""

    def test_residual_cent_dropped(self):
        """Debtors round to a cent less than the creditor is owed."""
        rows = make_rows(
            ("A", "10.00"), ("B", "-3.334"), ("C", "-3.333"), ("D", "-3.333")
        )

        settlements = plan_settlements(rows)

        assert sum(s.amount for s in settlements) == Decimal("9.99")
        assert len(settlements) == 3

    def test_unbalanced_input_stops_quietly(self):
        """More debt than credit leaves the excess unpaid."""
        rows = make_rows(("A", "-50"), ("B", "-50"), ("C", "60"))

        assert as_tuples(plan_settlements(rows)) == [
            ("A", "C", Decimal("50")),
            ("B", "C", Decimal("10")),
        ]


class TestOrdering:
    """Original order versus largest-first."""

    def test_original_order_is_default(self):
        """Without sorting, the smaller creditor is paid first."""
        rows = make_rows(("A", "5"), ("B", "20"), ("C", "-25"))

        assert as_tuples(plan_settlements(rows)) == [
            ("C", "A", Decimal("5")),
            ("C", "B", Decimal("20")),
        ]

    def test_largest_first(self):
        """Sorting by amount pays the larger creditor first."""
        rows = make_rows(("A", "5"), ("B", "20"), ("C", "-25"))

        settlements = plan_settlements(rows, order="largest_first")

        assert as_tuples(settlements) == [
            ("C", "B", Decimal("20")),
            ("C", "A", Decimal("5")),
        ]

    def test_largest_first_can_save_a_payment(self):
        """Sorting matches equal amounts that original order splits up."""
        rows = make_rows(("A", "-10"), ("B", "-30"), ("C", "30"), ("D", "10"))

        assert len(plan_settlements(rows)) == 3
        assert len(plan_settlements(rows, order="largest_first")) == 2

    def test_largest_first_is_stable(self):
        """Equal amounts keep input order."""
        rows = make_rows(("A", "10"), ("B", "10"), ("C", "-20"))

        settlements = plan_settlements(rows, order="largest_first")

        assert [s.to_member.id for s in settlements] == ["A", "B"]


class TestConservation:
    """Every debtor pays, and every creditor receives, what they're due."""

    @pytest.mark.parametrize("order", ["original", "largest_first"])
    @pytest.mark.parametrize("seed", range(20))
    def test_random_cent_balances(self, seed, order):
        """Random zero-sum balances in whole cents settle exactly."""
        rng = random.Random(seed)
        cents = [rng.randint(-50_000, 50_000) for _ in range(rng.randint(2, 12))]
        cents.append(-sum(cents))
        rows = make_rows(
            *[(f"m{i}", str(Decimal(c) / 100)) for i, c in enumerate(cents)]
        )

        settlements = plan_settlements(rows, order=order)

        paid: dict[str, Decimal] = defaultdict(Decimal)
        received: dict[str, Decimal] = defaultdict(Decimal)
        for s in settlements:
            assert s.amount > 0
            paid[s.from_member.id] += s.amount
            received[s.to_member.id] += s.amount

        for row in rows:
            if row.balance < 0:
                assert abs(paid[row.member.id] - abs(row.balance)) <= Decimal("0.01")
                assert received[row.member.id] == 0
            elif row.balance > 0:
                assert abs(received[row.member.id] - row.balance) <= Decimal("0.01")
                assert paid[row.member.id] == 0

        creditors = sum(1 for row in rows if row.balance > 0)
        debtors = sum(1 for row in rows if row.balance < 0)
        assert len(settlements) <= max(creditors + debtors - 1, 0)

    @pytest.mark.parametrize("order", ["original", "largest_first"])
    def test_debtor_pays_one_cent_creditors(self, order):
        """One-cent creditors are still paid when the debtor owes more."""
        rows = make_rows(("D", "-0.05"), *[(f"c{i}", "0.01") for i in range(5)])

        settlements = plan_settlements(rows, order=order)

        paid = sum(s.amount for s in settlements)
        assert abs(paid - Decimal("0.05")) <= Decimal("0.01")
        assert all(s.from_member.id == "D" for s in settlements)
        assert all(s.amount == Decimal("0.01") for s in settlements)

    def test_two_cent_debt_to_one_cent_creditors(self):
        """A debt just above the epsilon is not treated as settled."""
        rows = make_rows(("D", "-0.02"), ("A", "0.01"), ("B", "0.01"))

        assert as_tuples(plan_settlements(rows)) == [("D", "A", Decimal("0.01"))]


class TestWithCalculator:
    """Balances straight from the calculator."""

    def test_group_scenario(self):
        """Dinner split three ways plus a custom taxi leaves one payment."""
        alice = Member(id="a", name="Alice")
        bob = Member(id="b", name="Bob")
        caro = Member(id="c", name="Caro")
        group = Group(
            id="g1",
            name="Trip",
            members=[alice, bob, caro],
            expenses=[
                Expense(
                    id="e2",
                    title="Taxi",
                    amount=Decimal("30"),
                    paid_by="b",
                    split_between=["c"],
                    split=CustomSplit(amounts={"c": Decimal("30")}),
                ),
                Expense(
                    id="e1",
                    title="Dinner",
                    amount=Decimal("90"),
                    paid_by="a",
                    split_between=["a", "b", "c"],
                ),
            ],
        )

        settlements = plan_settlements(compute_balances(group))

        assert len(settlements) == 1
        assert settlements[0].from_member == caro
        assert settlements[0].to_member == alice
        assert settlements[0].amount == Decimal("60")

    def test_serializes_with_from_and_to(self):
        """Settlements dump with from/to keys for the presentation layer."""
        settlement = plan_settlements(make_rows(("A", "-1"), ("B", "1")))[0]

        data = settlement.model_dump(by_alias=True)

        assert data["from"]["id"] == "A"
        assert data["to"]["id"] == "B"
