"""Pure state transitions for an expense draft.

Each function takes a draft and returns a new one; nothing is mutated. The
payer-participation invariant (a set payer is always a participant) holds
after every transition.
"""

from collections.abc import Iterable
from decimal import Decimal

from .models import ExpenseDraft, SplitType


def new_draft(members: Iterable[str]) -> ExpenseDraft:
    """Start a draft with every group member selected as a participant."""
    return ExpenseDraft(participants=tuple(dict.fromkeys(members)))


def reset_draft(members: Iterable[str]) -> ExpenseDraft:
    """Blank draft used after a successful submission."""
    return new_draft(members)


def set_title(draft: ExpenseDraft, title: str) -> ExpenseDraft:
    return draft.model_copy(update={"title": title})


def set_amount(draft: ExpenseDraft, amount: str | Decimal | float) -> ExpenseDraft:
    return draft.model_copy(update={"amount": str(amount)})


def set_split_type(draft: ExpenseDraft, split_type: SplitType) -> ExpenseDraft:
    return draft.model_copy(update={"split_type": split_type})


def set_payer(draft: ExpenseDraft, payer: str) -> ExpenseDraft:
    """
    Change who paid, appending the payer to the participants if absent.

    Args:
        draft: Current draft
        payer: Identifier of the paying member (empty string clears it)

    Returns:
        New draft whose participants include the payer
    """
    participants = draft.participants
    if payer and payer not in participants:
        participants = (*participants, payer)
    return draft.model_copy(update={"paid_by": payer, "participants": participants})


def toggle_participant(draft: ExpenseDraft, member: str) -> ExpenseDraft:
    """
    Include or exclude a member from the expense.

    The current payer cannot be toggled off; attempting it returns the draft
    unchanged.
    """
    if member == draft.paid_by:
        return draft

    if member in draft.participants:
        participants = tuple(p for p in draft.participants if p != member)
    else:
        participants = (*draft.participants, member)
    return draft.model_copy(update={"participants": participants})


def set_share(draft: ExpenseDraft, member: str, value: str | Decimal | float) -> ExpenseDraft:
    """Record the raw share entered for a member (unequal splits only)."""
    shares = {**draft.shares, member: str(value)}
    return draft.model_copy(update={"shares": shares})
