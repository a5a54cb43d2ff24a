"""TripSplit - Split shared trip expenses and work out who owes whom."""

__version__ = "0.1.0"

from .balances import compute_balances, compute_net_positions
from .config import Settings, load_settings
from .db import Database
from .models import (
    BalanceRow,
    CustomSplit,
    EqualSplit,
    Expense,
    ExpenseDraft,
    Group,
    Member,
    Settlement,
)
from .service import LedgerService
from .settlement import plan_settlements

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "BalanceRow",
    "CustomSplit",
    "EqualSplit",
    "Expense",
    "ExpenseDraft",
    "Group",
    "Member",
    "Settlement",
    "compute_balances",
    "compute_net_positions",
    "plan_settlements",
    "LedgerService",
]
