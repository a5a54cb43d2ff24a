"""Pydantic domain models for TripSplit."""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .exceptions import MemberNotFoundError

# ============================================================================
# Group Document Models
# ============================================================================


class Member(BaseModel):
    """A participant in a group. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str


class EqualSplit(BaseModel):
    """Split the expense evenly across ``split_between``."""

    mode: Literal["equal"] = "equal"


class CustomSplit(BaseModel):
    """Split the expense by explicit per-member amounts.

    Only positive amounts are kept. An empty mapping behaves like an
    equal split over ``split_between``.
    """

    mode: Literal["custom"] = "custom"
    amounts: dict[str, Decimal] = Field(default_factory=dict)

    @field_validator("amounts")
    @classmethod
    def drop_non_positive(cls, v: dict[str, Decimal]) -> dict[str, Decimal]:
        """Keep the mapping sparse."""
        return {member_id: amount for member_id, amount in v.items() if amount > 0}


Split = Annotated[EqualSplit | CustomSplit, Field(discriminator="mode")]


class Expense(BaseModel):
    """A single expense in the group's base currency.

    Accepts both the native shape (``split``) and the stored document shape
    (``paidBy``, ``splitBetween``, ``splitMode``, ``splitAmounts``).
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str = ""
    amount: Decimal
    paid_by: str | None = Field(default=None, alias="paidBy")
    split_between: list[str] = Field(default_factory=list, alias="splitBetween")
    split: Split = Field(default_factory=EqualSplit)
    created_at: datetime | None = Field(default=None, alias="createdAt")

    # Set when the amount was entered in another currency
    original_amount: Decimal | None = Field(default=None, alias="originalAmount")
    original_currency: str | None = Field(default=None, alias="originalCurrency")
    fx_rate: Decimal | None = Field(default=None, alias="fxRate")

    @model_validator(mode="before")
    @classmethod
    def split_from_document(cls, data: Any) -> Any:
        """Fold the flat ``splitMode``/``splitAmounts`` fields into ``split``."""
        if not isinstance(data, dict) or "split" in data:
            return data

        data = dict(data)
        mode = data.pop("splitMode", data.pop("split_mode", None))
        amounts = data.pop("splitAmounts", data.pop("split_amounts", None))

        # Older documents carry amounts without a mode
        if mode is None:
            mode = "custom" if amounts is not None else "equal"

        if mode == "custom":
            data["split"] = {"mode": "custom", "amounts": amounts or {}}
        else:
            data["split"] = {"mode": "equal"}
        return data

    @property
    def split_mode(self) -> str:
        """The split discriminator, ``equal`` or ``custom``."""
        return self.split.mode

    @property
    def custom_amounts(self) -> dict[str, Decimal]:
        """Custom split amounts, empty for equal splits."""
        if isinstance(self.split, CustomSplit):
            return self.split.amounts
        return {}


class Group(BaseModel):
    """A trip or workspace. Expenses are stored newest first."""

    id: str
    name: str
    members: list[Member] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)

    def member_by_id(self, member_id: str) -> Member | None:
        """Look up a member by id."""
        for member in self.members:
            if member.id == member_id:
                return member
        return None

    def resolve_member(self, ref: str) -> Member:
        """
        Resolve a member from an id or a (case-insensitive) name.

        Raises:
            MemberNotFoundError: If nothing matches
        """
        member = self.member_by_id(ref)
        if member:
            return member

        wanted = ref.strip().lower()
        for member in self.members:
            if member.name.lower() == wanted:
                return member
        raise MemberNotFoundError(ref, f"No member '{ref}' in group '{self.name}'")


# ============================================================================
# Engine Output Models
# ============================================================================


class BalanceRow(BaseModel):
    """A member's net position: positive is owed money, negative owes."""

    member: Member
    balance: Decimal


class Settlement(BaseModel):
    """A suggested payment from a debtor to a creditor."""

    model_config = ConfigDict(populate_by_name=True)

    from_member: Member = Field(alias="from")
    to_member: Member = Field(alias="to")
    amount: Decimal


# ============================================================================
# Entry Models
# ============================================================================


class ExpenseDraft(BaseModel):
    """Raw expense form input, before validation.

    ``amount`` and ``custom_amounts`` may be typed strings such as "12.50".
    """

    title: str = ""
    amount: str | Decimal = ""
    paid_by: str = ""
    split_between: list[str] = Field(default_factory=list)
    mode: Literal["equal", "custom"] = "equal"
    custom_amounts: dict[str, str | Decimal] = Field(default_factory=dict)
    currency: str | None = None  # None = base currency
    fx_rate: str | Decimal | None = None


# ============================================================================
# Summary Models
# ============================================================================


class GroupSummary(BaseModel):
    """Totals for a single group."""

    group_id: str
    name: str
    member_count: int
    expense_count: int
    total_spent: Decimal


class LedgerSummary(BaseModel):
    """Totals across every group in the store."""

    total_groups: int
    total_members: int
    total_expenses: int
    total_spent: Decimal
    groups: list[GroupSummary]  # sorted by total_spent, largest first
