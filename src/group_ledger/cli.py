"""CLI for group-ledger using Typer."""

import asyncio
import logging
import sys
from decimal import Decimal

import typer
from rich.console import Console
from rich.table import Table

from .allocator import parse_amount, preview_equal_shares
from .clients.store import ExpenseStoreClient
from .config import Settings, load_settings
from .draft import (
    new_draft,
    set_amount,
    set_payer,
    set_share,
    set_split_type,
    set_title,
)
from .exceptions import InvalidAmount
from .models import Group, SplitType
from .service import GroupView
from .settlement import SettlementCoordinator
from .ui import compose_expense_interactive

app = typer.Typer(
    name="group-ledger",
    help="Split group expenses and settle who owes whom",
)

console = Console()


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def format_money(amount: float | Decimal, symbol: str = "Rs") -> str:
    """Format an amount as '<symbol> 1,234.50'."""
    return f"{symbol} {float(amount):,.2f}"


def parse_share_option(value: str) -> tuple[str, str]:
    """Split a '--share EMAIL=AMOUNT' option into its two parts."""
    member, sep, amount = value.partition("=")
    if not sep or not member.strip():
        raise typer.BadParameter(f"Expected EMAIL=AMOUNT, got '{value}'")
    return member.strip(), amount.strip()


def display_groups(groups: list[Group]):
    """Display the user's groups in a table."""
    table = Table(title="Your Groups", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Members", justify="right")

    for group in groups:
        table.add_row(group.id, group.name, str(len(group.members)))

    console.print(table)


def display_expenses(view: GroupView, symbol: str):
    """Display the group's expenses."""
    if not view.expenses:
        console.print("[dim]No expenses recorded yet.[/dim]")
        return

    table = Table(title="Expenses", show_header=True, header_style="bold magenta")
    table.add_column("Title", style="cyan", width=30)
    table.add_column("Paid by", style="yellow")
    table.add_column("Amount", justify="right", width=14)
    table.add_column("Split", justify="center")
    table.add_column("Participants", justify="right")

    for expense in view.expenses:
        title = expense.title
        table.add_row(
            title[:30] + "..." if len(title) > 30 else title,
            expense.paid_by.display_name,
            format_money(expense.amount, symbol),
            expense.split_type,
            str(len(expense.participants)),
        )

    console.print(table)


def display_balances(view: GroupView, symbol: str):
    """Display who owes and who gets back."""
    if not view.summary:
        console.print("[dim]No summary available yet.[/dim]")
        return

    table = Table(title="Balances", show_header=True, header_style="bold magenta")
    table.add_column("Member", style="cyan")
    table.add_column("Status")
    table.add_column("Amount", justify="right", width=14)

    for entry in view.balances:
        color = "yellow" if entry.label == "Owes" else "green"
        table.add_row(
            entry.name,
            f"[{color}]{entry.label}[/{color}]",
            f"[{color}]{format_money(entry.magnitude, symbol)}[/{color}]",
        )

    console.print(table)


def display_group(view: GroupView, symbol: str):
    """Display a loaded group: header, expenses and balances."""
    name = view.group.name if view.group else "Group"
    console.print(f"\n[bold]{name}[/bold] [dim]({view.group_id})[/dim]")
    console.print("[dim]Track expenses, split bills, and settle balances.[/dim]\n")
    display_expenses(view, symbol)
    console.print()
    display_balances(view, symbol)


def display_equal_preview(view: GroupView, symbol: str):
    """Show how an equal split is expected to divide the draft amount."""
    draft = view.draft
    try:
        amount = parse_amount(draft.amount)
    except InvalidAmount:
        return
    if not draft.participants:
        return

    console.print("\n[bold]Equal split preview:[/bold]")
    for share in preview_equal_shares(amount, draft.participants, draft.paid_by):
        marker = " (payer)" if share.participant == draft.paid_by else ""
        console.print(
            f"  {view.display_name(share.participant)}{marker}: "
            f"{format_money(share.amount, symbol)}"
        )


async def _load_view(store: ExpenseStoreClient, group_id: str) -> GroupView:
    view = GroupView(store, group_id)
    result = await view.load()
    if not result.ok:
        console.print(f"\n[bold red]Error:[/bold red] {result.error}")
        sys.exit(1)
    return view


@app.command()
def groups(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List the groups you belong to."""
    setup_logging(verbose)

    async def run(settings: Settings):
        async with ExpenseStoreClient.from_settings(settings) as store:
            my_groups = await store.get_my_groups()

        if not my_groups:
            console.print("[yellow]You are not a member of any group.[/yellow]")
            return
        display_groups(my_groups)

    try:
        asyncio.run(run(load_settings()))
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)


@app.command()
def show(
    group_id: str = typer.Argument(..., help="Group ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show a group's expenses and balances."""
    setup_logging(verbose)

    async def run(settings: Settings):
        async with ExpenseStoreClient.from_settings(settings) as store:
            view = await _load_view(store, group_id)

        if view.group is None:
            console.print(
                f"[yellow]⚠️  Group {group_id} is not among your groups.[/yellow]"
            )
        display_group(view, settings.currency_symbol)

    try:
        asyncio.run(run(load_settings()))
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)


@app.command()
def add(
    group_id: str = typer.Argument(..., help="Group ID"),
    title: str = typer.Option("", "--title", "-t", help="What the expense was for"),
    amount: str = typer.Option("", "--amount", "-a", help="Total amount paid"),
    paid_by: str = typer.Option("", "--paid-by", "-p", help="Email of the payer"),
    split: str = typer.Option(
        "equal", "--split", "-s", help="Split type: equal or unequal"
    ),
    participant: list[str] = typer.Option(
        [],
        "--participant",
        help="Participant email (repeatable, defaults to every member)",
    ),
    share: list[str] = typer.Option(
        [], "--share", help="Unequal share as EMAIL=AMOUNT (repeatable)"
    ),
    interactive: bool = typer.Option(
        False, "--interactive", "-i", help="Compose the expense interactively"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Add an expense to a group.

    Every member takes part by default; use --participant to narrow it down.
    The payer is always included. For --split unequal, give one --share per
    participant; shares must add up to the amount.
    """
    setup_logging(verbose)

    if split not in ("equal", "unequal"):
        raise typer.BadParameter("Split type must be 'equal' or 'unequal'")
    split_type: SplitType = "unequal" if split == "unequal" else "equal"
    shares = [parse_share_option(value) for value in share]

    async def run(settings: Settings):
        async with ExpenseStoreClient.from_settings(settings) as store:
            view = await _load_view(store, group_id)
            group = view.require_group()

            if paid_by and paid_by not in group.members:
                console.print(
                    f"[bold red]Error:[/bold red] {paid_by} is not a member of "
                    f"{group.name}"
                )
                sys.exit(1)

            draft = new_draft(participant or group.members)
            draft = set_title(draft, title)
            draft = set_amount(draft, amount)
            draft = set_split_type(draft, split_type)
            draft = set_payer(draft, paid_by)
            for member, value in shares:
                draft = set_share(draft, member, value)

            if interactive:
                composed = compose_expense_interactive(
                    draft, group.members, view.names
                )
                if composed is None:
                    console.print("[yellow]Cancelled.[/yellow]")
                    return
                draft = composed

            view.draft = draft
            if draft.split_type == "equal":
                display_equal_preview(view, settings.currency_symbol)

            console.print("\n[bold blue]Adding expense...[/bold blue]")
            result = await view.submit_expense()

        if not result.ok:
            console.print(f"\n[bold yellow]⚠️  {result.error}[/bold yellow]\n")
            sys.exit(1)

        console.print("\n[bold green]✓ Expense added![/bold green]\n")
        display_balances(view, settings.currency_symbol)

    try:
        asyncio.run(run(load_settings()))
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)


@app.command()
def settle(
    group_id: str = typer.Argument(..., help="Group ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Settle a group, clearing every member's balance.

    Shows the current balances, asks for confirmation, then settles and
    reloads the group.
    """
    setup_logging(verbose)

    async def run(settings: Settings):
        async with ExpenseStoreClient.from_settings(settings) as store:
            view = await _load_view(store, group_id)
            display_balances(view, settings.currency_symbol)

            if not yes:
                console.print(
                    "\n[bold yellow]⚠️  Ready to settle every balance in this group"
                    "[/bold yellow]"
                )
                confirm = input("Continue? [y/N] ").strip().lower()
                if confirm not in ("y", "yes"):
                    console.print("[yellow]Cancelled.[/yellow]")
                    return

            console.print("\n[bold blue]Settling group...[/bold blue]")
            result = await SettlementCoordinator(store, view).settle()

        if not result.ok:
            console.print(f"\n[bold red]Error:[/bold red] {result.error}")
            sys.exit(1)

        console.print("\n[bold green]✓ Group settled![/bold green]\n")
        display_balances(view, settings.currency_symbol)

    try:
        asyncio.run(run(load_settings()))
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)


if __name__ == "__main__":
    app()
