"""Split validation and share allocation for expense drafts."""

import logging
from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .exceptions import (
    EmptyParticipants,
    EmptyTitle,
    InvalidAmount,
    InvalidShare,
    NoPayerSelected,
    ShareMismatch,
)
from .models import Allocation, ExpenseDraft, Share

logger = logging.getLogger(__name__)

# Absolute tolerance between the sum of unequal shares and the amount
SHARE_TOLERANCE = Decimal("0.01")

CENT = Decimal("0.01")


def to_cents(amount: Decimal) -> int:
    """
    Convert a Decimal amount to integer cents.
    Uses ROUND_HALF_UP for consistency.

    Args:
        amount: Monetary amount as Decimal

    Returns:
        Amount in cents (integer)
    """
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _parse_decimal(value: str) -> Decimal | None:
    """Parse user input into a finite Decimal, or None if it isn't one."""
    try:
        parsed = Decimal(value.strip())
    except InvalidOperation:
        return None
    if not parsed.is_finite():
        return None
    return parsed


def parse_amount(value: str) -> Decimal:
    """
    Interpret the amount typed into a draft.

    Raises:
        InvalidAmount: If the value is not a positive number with at most
            two decimal places
    """
    amount = _parse_decimal(value)
    if amount is None or amount <= 0:
        raise InvalidAmount(value)

    # Trailing zeros ("12.500") don't add precision
    exponent = amount.normalize().as_tuple().exponent
    if isinstance(exponent, int) and exponent < -2:
        raise InvalidAmount(
            value, f"Amount can have at most two decimal places, got '{value}'."
        )
    return amount


def parse_share(participant: str, value: str | None) -> Decimal:
    """
    Interpret a share typed for a participant. Blank input counts as zero.

    Raises:
        InvalidShare: If the value is negative or not a number
    """
    if value is None or not value.strip():
        return Decimal("0")

    share = _parse_decimal(value)
    if share is None or share < 0:
        raise InvalidShare(participant, value)
    return share


def build_unequal_shares(draft: ExpenseDraft) -> list[Share]:
    """One explicit share per participant, in participant order."""
    return [
        Share(participant=p, amount=parse_share(p, draft.shares.get(p)))
        for p in draft.participants
    ]


def validate_and_build_shares(draft: ExpenseDraft) -> Allocation:
    """
    Validate a draft and produce its allocation.

    The payer check runs first regardless of split mode, then title and
    amount, then the mode-specific rules:

    - equal: at least one participant; shares are left to the store
    - unequal: shares must add up to the amount within SHARE_TOLERANCE

    Args:
        draft: The expense draft to validate

    Returns:
        Allocation with explicit shares for unequal splits

    Raises:
        ValidationError: One of its subclasses describing the first problem found
    """
    if not draft.paid_by:
        raise NoPayerSelected()

    if not draft.title.strip():
        raise EmptyTitle()

    amount = parse_amount(draft.amount)
    participants = list(draft.participants)

    if draft.split_type == "equal":
        if not participants:
            raise EmptyParticipants()
        return Allocation(
            split_type="equal",
            amount=amount,
            payer=draft.paid_by,
            participants=participants,
        )

    shares = build_unequal_shares(draft)
    total = sum((share.amount for share in shares), Decimal("0"))

    if abs(total - amount) > SHARE_TOLERANCE:
        logger.debug(f"Share mismatch: total {total} vs amount {amount}")
        raise ShareMismatch(total=total, target=amount)

    return Allocation(
        split_type="unequal",
        amount=amount,
        payer=draft.paid_by,
        participants=participants,
        shares=shares,
    )


def preview_equal_shares(
    amount: Decimal, participants: Sequence[str], payer: str
) -> list[Share]:
    """
    Preview how an equal split divides the amount, to the cent.

    The store computes the authoritative split; this is only shown to the
    user. Every participant gets the floored even share and any leftover
    cents go to the payer (or the first participant if the payer is not
    among them).

    Args:
        amount: Expense amount
        participants: Participant identifiers
        payer: Identifier of the paying member

    Returns:
        One share per participant, summing exactly to the amount
    """
    if not participants:
        raise EmptyParticipants()

    total_cents = to_cents(amount)
    base, remainder = divmod(total_cents, len(participants))
    cents = {p: base for p in participants}

    if remainder:
        receiver = payer if payer in cents else participants[0]
        cents[receiver] += remainder
        logger.debug(f"Assigned {remainder} leftover cent(s) to {receiver}")

    return [
        Share(participant=p, amount=(Decimal(cents[p]) * CENT).quantize(CENT))
        for p in participants
    ]
