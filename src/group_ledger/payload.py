"""Build store requests from validated expense drafts."""

from .models import Allocation, ExpenseDraft, ExpenseRequest, UnequalParticipant


def build_payload(
    group_id: str, draft: ExpenseDraft, allocation: Allocation
) -> ExpenseRequest:
    """
    Build the ``POST /expense`` request for a draft.

    Only call this with the allocation ``validate_and_build_shares`` returned
    for the same draft; nothing is re-validated here.

    Args:
        group_id: Group the expense belongs to
        draft: The validated draft
        allocation: Allocation computed from the draft

    Returns:
        Request in the equal (flat identifier list) or unequal
        (``userId``/``share`` pairs) shape
    """
    participants: list[str | UnequalParticipant]
    if allocation.split_type == "equal":
        participants = list(allocation.participants)
    else:
        participants = [
            UnequalParticipant(user_id=share.participant, share=float(share.amount))
            for share in allocation.shares
        ]

    return ExpenseRequest(
        group_id=group_id,
        title=draft.title.strip(),
        amount=float(allocation.amount),
        paid_by=allocation.payer,
        participants=participants,
        split_type=allocation.split_type,
    )
