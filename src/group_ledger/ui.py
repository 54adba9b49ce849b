"""Interactive UI components for composing an expense."""

import logging
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .draft import (
    set_amount,
    set_payer,
    set_share,
    set_split_type,
    set_title,
    toggle_participant,
)
from .models import ExpenseDraft

logger = logging.getLogger(__name__)


def member_label(email: str, names: dict[str, str]) -> str:
    """Label shown for a member: 'Name <email>', or just the email."""
    name = names.get(email, email)
    return email if name == email else f"{name} <{email}>"


class MemberCompleter(Completer):
    """Fuzzy search completer for group members."""

    def __init__(self, members: list[str], names: dict[str, str]):
        """Initialize the completer with the group's members."""
        self.members = members

        # Build searchable labels and label-to-email mapping
        self.searchable = []
        self.label_to_email = {}
        for email in members:
            label = member_label(email, names)
            self.searchable.append((email, label))
            self.label_to_email[label] = email
            self.label_to_email[email] = email

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions."""
        query = document.text.lower()

        if not query:
            # Show everyone when no query
            for _email, label in self.searchable:
                yield Completion(text=label, start_position=0, display=label)
            return

        for _email, label in self.searchable:
            if self._fuzzy_match(query, label.lower()):
                yield Completion(
                    text=label,
                    start_position=-len(document.text),
                    display=label,
                )

    def resolve(self, text: str) -> str | None:
        """Map an entered label or raw email back to a member email."""
        return self.label_to_email.get(text.strip())

    def _fuzzy_match(self, query: str, text: str) -> bool:
        """
        Fuzzy match: all characters in query must appear in order in text.

        Example:
            query="ali" matches "Alice <alice@example.com>"
        """
        query_idx = 0
        for char in text:
            if query_idx < len(query) and char == query[query_idx]:
                query_idx += 1
        return query_idx == len(query)


def select_member_interactive(
    members: list[str], names: dict[str, str], prompt: str = "Paid by: "
) -> str | None:
    """
    Interactive member selection with fuzzy search.

    Args:
        members: Member emails to choose from
        names: Email -> display name
        prompt: Prompt text

    Returns:
        Selected member email, or None to cancel
    """
    completer = MemberCompleter(members, names)
    session: PromptSession[str] = PromptSession(completer=completer)

    print("   Type to search, press Enter to confirm, Ctrl+C to cancel\n")

    try:
        while True:
            result = session.prompt(prompt, complete_while_typing=True)

            if not result:
                return None

            email = completer.resolve(result)
            if email:
                logger.debug(f"User selected member: {email}")
                return email

            print(
                "❌ Unknown member. Please select from the list or press Tab to complete."
            )

    except (KeyboardInterrupt, EOFError):
        print("\n⏭️  Cancelled")
        return None


def compose_expense_interactive(
    draft: ExpenseDraft, members: list[str], names: dict[str, str]
) -> ExpenseDraft | None:
    """
    Walk the user through filling in an expense draft.

    Every answer goes through the draft transitions, so the payer stays a
    participant and cannot be excluded.

    Args:
        draft: Starting draft (usually every member selected)
        members: Group member emails
        names: Email -> display name

    Returns:
        The composed draft, or None if the user cancelled
    """
    session: PromptSession[str] = PromptSession()

    try:
        draft = set_title(draft, session.prompt("Title: ", default=draft.title))
        draft = set_amount(draft, session.prompt("Amount: ", default=draft.amount))

        payer = select_member_interactive(members, names)
        if payer is None:
            return None
        draft = set_payer(draft, payer)

        split = session.prompt("Split [equal/unequal]: ", default=draft.split_type)
        split_type = "unequal" if split.strip().lower() == "unequal" else "equal"
        draft = set_split_type(draft, split_type)

        print("\n👥 Participants (the payer is always included)")
        for email in members:
            if email == draft.paid_by:
                print(f"   ✓ {member_label(email, names)} (payer)")
                continue
            included = email in draft.participants
            hint = "Y/n" if included else "y/N"
            answer = (
                session.prompt(f"   Include {member_label(email, names)}? [{hint}] ")
                .strip()
                .lower()
            )
            wants = included if answer == "" else answer in ("y", "yes")
            if wants != included:
                draft = toggle_participant(draft, email)

        if draft.split_type == "unequal":
            print("\n💰 Custom amounts")
            for email in draft.participants:
                value = session.prompt(
                    f"   {member_label(email, names)}: ",
                    default=draft.shares.get(email, ""),
                )
                draft = set_share(draft, email, value)

    except (KeyboardInterrupt, EOFError):
        print("\n⏭️  Cancelled")
        return None

    return draft
