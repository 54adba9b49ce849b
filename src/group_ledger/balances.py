"""Interpretation of group balance snapshots."""

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from .allocator import CENT
from .models import BalanceEntry, DisplayEntry, Expense, resolve_name

# Rounding tolerance for the zero-sum check
CONSERVATION_TOLERANCE = Decimal("0.01")


def classify_entry(entry: BalanceEntry) -> DisplayEntry:
    """
    Label a single balance entry.

    Positive balances owe money; zero and negative balances get money back.
    """
    return DisplayEntry(
        user_id=entry.user_id,
        name=resolve_name(entry.user_id, entry.name),
        label="Owes" if entry.balance > 0 else "Gets back",
        magnitude=abs(entry.balance),
    )


def classify(entries: Iterable[BalanceEntry]) -> list[DisplayEntry]:
    """Label every entry of a balance snapshot, preserving order."""
    return [classify_entry(entry) for entry in entries]


def signed_magnitude(entry: DisplayEntry) -> float:
    """Re-sign a display entry: owing is positive, getting back is negative."""
    return entry.magnitude if entry.label == "Owes" else -entry.magnitude


def _cents(value: float) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def net_total(entries: Iterable[BalanceEntry]) -> Decimal:
    """Sum a snapshot's balances to the cent."""
    return sum((_cents(entry.balance) for entry in entries), Decimal("0"))


def is_conserved(
    entries: Iterable[BalanceEntry], tolerance: Decimal = CONSERVATION_TOLERANCE
) -> bool:
    """Check that a snapshot sums to zero within the rounding tolerance."""
    return abs(net_total(entries)) <= tolerance


def is_settled(entries: Iterable[BalanceEntry]) -> bool:
    """True when every member's balance is zero (within tolerance)."""
    return all(abs(_cents(entry.balance)) <= CONSERVATION_TOLERANCE for entry in entries)


def build_name_directory(
    expenses: Iterable[Expense], summary: Iterable[BalanceEntry]
) -> dict[str, str]:
    """
    Map member emails to display names.

    Names are collected from expense payers, expense participants, then
    the balance summary; later sources override earlier ones.

    Args:
        expenses: Expenses of the group
        summary: Balance entries of the group

    Returns:
        Dict of email -> display name
    """
    names: dict[str, str] = {}

    for expense in expenses:
        names[expense.paid_by.email] = expense.paid_by.display_name
        for participant in expense.participants:
            names[participant.member.email] = participant.member.display_name

    for entry in summary:
        if entry.email:
            names[entry.email] = resolve_name(entry.email, entry.name)

    return names
