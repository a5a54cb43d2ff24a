"""CLI for TripSplit."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import typer
from rich.console import Console
from rich.table import Table

from .config import Settings, load_settings
from .db import Database
from .entry import draft_from_expense
from .exceptions import TripSplitError
from .ledger import find_expense
from .models import BalanceRow, Expense, ExpenseDraft, Group, Settlement
from .money import format_money, format_signed_money
from .service import LedgerService
from .ui import prompt_expense_interactive

app = typer.Typer(
    name="tripsplit",
    help="Track shared trip expenses and settle up fast",
)
group_app = typer.Typer(help="Create, list and switch groups")
member_app = typer.Typer(help="Manage group members")
expense_app = typer.Typer(help="Add, edit and delete expenses")

app.add_typer(group_app, name="group")
app.add_typer(member_app, name="member")
app.add_typer(expense_app, name="expense")

console = Console()

GROUP_OPTION = typer.Option(
    None, "--group", "-g", help="Group id (defaults to the active group)"
)
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Verbose output")


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@contextmanager
def open_service(verbose: bool = False) -> Iterator[tuple[LedgerService, Settings]]:
    """
    Load settings, open the database and yield a ready service.

    TripSplit errors are printed and turned into exit code 1.
    """
    setup_logging(verbose)
    db = None
    try:
        settings = load_settings()
        db = Database(settings.database_path)
        yield LedgerService(settings, db), settings
    except TripSplitError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if db is not None:
            db.close()


def _parse_custom(pairs: list[str]) -> dict[str, str]:
    """Parse repeated NAME=AMOUNT options."""
    amounts: dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Expected NAME=AMOUNT, got '{pair}'")
        amounts[name.strip()] = value.strip()
    return amounts


def _member_name(group: Group, member_id: str | None) -> str:
    member = group.member_by_id(member_id) if member_id else None
    return member.name if member else f"[dim]{member_id or '?'}[/dim]"


# ============================================================================
# Display
# ============================================================================


def display_balances(rows: list[BalanceRow], symbol: str):
    """Display member balances."""
    table = Table(title="Balances", show_header=True, header_style="bold magenta")
    table.add_column("Member", style="cyan")
    table.add_column("Balance", justify="right")

    for row in rows:
        text = format_signed_money(row.balance, symbol)
        style = "green" if row.balance >= 0 else "red"
        table.add_row(row.member.name, f"[{style}]{text}[/{style}]")

    console.print(table)


def display_settlements(settlements: list[Settlement], symbol: str):
    """Display suggested payments."""
    if not settlements:
        console.print("[green]Everyone is settled up.[/green]")
        return

    table = Table(title="Settle Up", show_header=True, header_style="bold magenta")
    table.add_column("From", style="red")
    table.add_column("To", style="green")
    table.add_column("Amount", justify="right")

    for settlement in settlements:
        table.add_row(
            settlement.from_member.name,
            settlement.to_member.name,
            f"{symbol}{format_money(settlement.amount)}",
        )

    console.print(table)


def display_expenses(group: Group, symbol: str):
    """Display a group's expenses, newest first."""
    if not group.expenses:
        console.print("[yellow]No expenses yet.[/yellow]")
        return

    table = Table(
        title=f"Expenses: {group.name}", show_header=True, header_style="bold magenta"
    )
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Amount", justify="right")
    table.add_column("Paid by")
    table.add_column("Split")

    for expense in group.expenses:
        if expense.split_mode == "custom":
            split = "Custom split"
        else:
            split = f"Split {len(expense.split_between)} ways"

        amount = f"{symbol}{format_money(expense.amount)}"
        if expense.original_amount is not None:
            amount += (
                f" [dim]({format_money(expense.original_amount)} "
                f"{expense.original_currency or ''})[/dim]"
            )

        table.add_row(
            expense.id,
            expense.title,
            amount,
            _member_name(group, expense.paid_by),
            split,
        )

    console.print(table)


def display_all_expenses(pairs: list[tuple[Group, Expense]], symbol: str):
    """Display expenses across groups."""
    if not pairs:
        console.print("[yellow]No expenses yet.[/yellow]")
        return

    table = Table(title="All expenses", show_header=True, header_style="bold magenta")
    table.add_column("Date", style="dim")
    table.add_column("Group", style="magenta")
    table.add_column("Title", style="cyan")
    table.add_column("Amount", justify="right")
    table.add_column("Paid by")

    for group, expense in pairs:
        date = expense.created_at.strftime("%Y-%m-%d") if expense.created_at else ""
        table.add_row(
            date,
            group.name,
            expense.title,
            f"{symbol}{format_money(expense.amount)}",
            _member_name(group, expense.paid_by),
        )

    console.print(table)


# ============================================================================
# Group commands
# ============================================================================


@group_app.command("create")
def group_create(
    name: str = typer.Argument(..., help="Group name"),
    verbose: bool = VERBOSE_OPTION,
):
    """Create a group and make it active."""
    with open_service(verbose) as (service, _settings):
        group = service.create_group(name)
        console.print(
            f"[green]✓ Created group {group.name}[/green] [dim]{group.id}[/dim]"
        )


@group_app.command("list")
def group_list(verbose: bool = VERBOSE_OPTION):
    """List all groups."""
    with open_service(verbose) as (service, _settings):
        groups = service.list_groups()
        if not groups:
            console.print("[yellow]No groups yet.[/yellow]")
            return

        active_id = service.db.get_active_group_id()
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("", width=1)
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Members", justify="right")
        table.add_column("Expenses", justify="right")

        for group in groups:
            table.add_row(
                "*" if group.id == active_id else "",
                group.id,
                group.name,
                str(len(group.members)),
                str(len(group.expenses)),
            )
        console.print(table)


@group_app.command("use")
def group_use(
    group_id: str = typer.Argument(..., help="Group id"),
    verbose: bool = VERBOSE_OPTION,
):
    """Switch the active group."""
    with open_service(verbose) as (service, _settings):
        group = service.select_group(group_id)
        console.print(f"[green]✓ Active group: {group.name}[/green]")


@group_app.command("delete")
def group_delete(
    group_id: str = typer.Argument(..., help="Group id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    verbose: bool = VERBOSE_OPTION,
):
    """Delete a group and all of its expenses."""
    with open_service(verbose) as (service, _settings):
        group = service.get_group(group_id)

        if not yes and not typer.confirm(
            f"Delete '{group.name}' and its {len(group.expenses)} expenses?"
        ):
            console.print("[yellow]Cancelled.[/yellow]")
            return

        service.delete_group(group.id)
        console.print(f"[green]✓ Deleted group {group.name}[/green]")


# ============================================================================
# Member commands
# ============================================================================


@member_app.command("add")
def member_add(
    name: str = typer.Argument(..., help="Member name"),
    group_id: str | None = GROUP_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Add a member to the group."""
    with open_service(verbose) as (service, _settings):
        member = service.add_member(name, group_id)
        console.print(f"[green]✓ Added {member.name}[/green] [dim]{member.id}[/dim]")


@member_app.command("list")
def member_list(
    group_id: str | None = GROUP_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """List the group's members."""
    with open_service(verbose) as (service, _settings):
        group = service.get_group(group_id)
        if not group.members:
            console.print("[yellow]Add members to start splitting.[/yellow]")
            return
        for member in group.members:
            console.print(f"  {member.name} [dim]{member.id}[/dim]")


# ============================================================================
# Expense commands
# ============================================================================


@expense_app.command("add")
def expense_add(
    title: str | None = typer.Option(None, "--title", "-t", help="What it was for"),
    amount: str | None = typer.Option(None, "--amount", "-a", help="Amount paid"),
    paid_by: str | None = typer.Option(None, "--paid-by", "-p", help="Payer name"),
    split: list[str] = typer.Option(
        [], "--split", "-s", help="Member to split with (repeatable, default: all)"
    ),
    custom: list[str] = typer.Option(
        [], "--custom", help="Custom share as NAME=AMOUNT (repeatable)"
    ),
    currency: str | None = typer.Option(
        None, "--currency", help="Currency the amount was paid in"
    ),
    rate: str | None = typer.Option(
        None, "--rate", help="Base-currency units per unit of --currency"
    ),
    group_id: str | None = GROUP_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    Add an expense.

    Without --title and --amount the expense is entered interactively.
    Use --custom to give explicit shares; they must add up to the amount.
    """
    with open_service(verbose) as (service, settings):
        group = service.get_group(group_id)

        if title is None or amount is None:
            draft = prompt_expense_interactive(group)
            if draft is None:
                return
        else:
            custom_amounts = _parse_custom(custom)
            everyone = [m.id for m in group.members]
            split_between = split or list(custom_amounts) or everyone
            draft = ExpenseDraft(
                title=title,
                amount=amount,
                paid_by=paid_by or (group.members[0].id if group.members else ""),
                split_between=split_between,
                mode="custom" if custom_amounts else "equal",
                custom_amounts=custom_amounts,
                currency=currency,
                fx_rate=rate,
            )

        expense = service.add_expense(draft, group.id)
        console.print(
            f"[green]✓ Added {expense.title}[/green] "
            f"{settings.currency_symbol}{format_money(expense.amount)} "
            f"[dim]{expense.id}[/dim]"
        )


@expense_app.command("edit")
def expense_edit(
    expense_id: str = typer.Argument(..., help="Expense id"),
    group_id: str | None = GROUP_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Edit an expense interactively."""
    with open_service(verbose) as (service, _settings):
        group = service.get_group(group_id)
        existing = find_expense(group, expense_id)

        draft = prompt_expense_interactive(group, draft_from_expense(existing))
        if draft is None:
            return

        expense = service.edit_expense(expense_id, draft, group.id)
        console.print(f"[green]✓ Updated {expense.title}[/green]")


@expense_app.command("delete")
def expense_delete(
    expense_id: str = typer.Argument(..., help="Expense id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    group_id: str | None = GROUP_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Delete an expense."""
    with open_service(verbose) as (service, _settings):
        group = service.get_group(group_id)
        expense = find_expense(group, expense_id)

        if not yes and not typer.confirm(f"Delete '{expense.title}'?"):
            console.print("[yellow]Cancelled.[/yellow]")
            return

        service.delete_expense(expense_id, group.id)
        console.print(f"[green]✓ Deleted {expense.title}[/green]")


@expense_app.command("list")
def expense_list(
    all_groups: bool = typer.Option(
        False, "--all", help="List expenses from every group, newest first"
    ),
    group_id: str | None = GROUP_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """List the group's expenses."""
    with open_service(verbose) as (service, settings):
        if all_groups:
            display_all_expenses(service.list_all_expenses(), settings.currency_symbol)
        else:
            display_expenses(service.get_group(group_id), settings.currency_symbol)


# ============================================================================
# Balance commands
# ============================================================================


@app.command()
def balances(
    group_id: str | None = GROUP_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Show who is owed and who owes."""
    with open_service(verbose) as (service, settings):
        rows = service.get_balances(group_id)
        if not rows:
            console.print("[yellow]Add members to start splitting.[/yellow]")
            return
        display_balances(rows, settings.currency_symbol)


@app.command()
def settle(
    group_id: str | None = GROUP_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Show the payments that settle the group."""
    with open_service(verbose) as (service, settings):
        display_settlements(service.get_settlements(group_id), settings.currency_symbol)


@app.command()
def summary(verbose: bool = VERBOSE_OPTION):
    """Show totals across all groups."""
    with open_service(verbose) as (service, settings):
        totals = service.get_summary()
        symbol = settings.currency_symbol

        console.print(
            f"\n[bold]{totals.total_groups}[/bold] groups, "
            f"[bold]{totals.total_members}[/bold] members, "
            f"[bold]{totals.total_expenses}[/bold] expenses, "
            f"[bold]{symbol}{format_money(totals.total_spent)}[/bold] "
            f"spent ({settings.base_currency})\n"
        )

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Group", style="cyan")
        table.add_column("Expenses", justify="right")
        table.add_column("Total", justify="right")
        for row in totals.groups:
            table.add_row(
                row.name,
                str(row.expense_count),
                f"{symbol}{format_money(row.total_spent)}",
            )
        console.print(table)


if __name__ == "__main__":
    app()
