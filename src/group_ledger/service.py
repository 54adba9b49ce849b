"""Group view service: loads a group's ledger and submits expenses.

The view holds the state shown for one group (membership, expenses,
balances, the expense draft being composed and the single error message)
and talks to the store through an injected client. Operations return
``OperationResult`` values instead of raising on store failures.
"""

import logging
from collections.abc import Callable
from typing import Any, Protocol

from .allocator import validate_and_build_shares
from .balances import build_name_directory, classify
from .draft import new_draft, reset_draft
from .exceptions import GroupNotFoundError, StoreAPIError, ValidationError
from .models import (
    BalanceEntry,
    DisplayEntry,
    Expense,
    ExpenseDraft,
    ExpenseRequest,
    Group,
    OperationResult,
)
from .payload import build_payload

logger = logging.getLogger(__name__)

LOAD_FAILED_MESSAGE = "Unable to load group expenses. Please try again."
SUBMIT_FAILED_MESSAGE = "Failed to add expense. Please check the form."


class ExpenseStore(Protocol):
    """The store operations the core depends on."""

    async def get_group(self, group_id: str) -> Group | None: ...

    async def get_group_expenses(self, group_id: str) -> list[Expense]: ...

    async def get_group_summary(self, group_id: str) -> list[BalanceEntry]: ...

    async def create_expense(self, request: ExpenseRequest) -> None: ...

    async def settle_group(self, group_id: str) -> None: ...


class GroupView:
    """State and store operations for the group currently being viewed."""

    def __init__(self, store: ExpenseStore, group_id: str):
        """Initialize the view for a group. Nothing is fetched until load()."""
        self.store = store
        self.group_id = group_id
        self.group: Group | None = None
        self.expenses: list[Expense] = []
        self.summary: list[BalanceEntry] = []
        self.draft: ExpenseDraft = new_draft([])
        self.error: str | None = None
        self.loading = False
        self.submitting = False
        self._load_generation = 0

    @property
    def members(self) -> list[str]:
        return list(self.group.members) if self.group else []

    @property
    def names(self) -> dict[str, str]:
        """Email -> display name for everyone seen in the current snapshot."""
        return build_name_directory(self.expenses, self.summary)

    @property
    def balances(self) -> list[DisplayEntry]:
        return classify(self.summary)

    def display_name(self, email: str) -> str:
        return self.names.get(email, email)

    def require_group(self) -> Group:
        """Return the loaded group, raising if the store didn't list it."""
        if self.group is None:
            raise GroupNotFoundError(self.group_id)
        return self.group

    def switch_group(self, group_id: str):
        """
        Point the view at another group.

        Clears the snapshot and draft; any load still running for the
        previous group is discarded when it completes.
        """
        self.group_id = group_id
        self.group = None
        self.expenses = []
        self.summary = []
        self.draft = new_draft([])
        self.error = None
        self.loading = False
        self._load_generation += 1

    def apply(self, transition: Callable[..., ExpenseDraft], *args: Any) -> ExpenseDraft:
        """
        Apply a draft transition (see ``group_ledger.draft``).

        Example:
            view.apply(set_payer, "alice@example.com")
        """
        self.draft = transition(self.draft, *args)
        return self.draft

    def _is_current(self, generation: int, group_id: str) -> bool:
        return generation == self._load_generation and group_id == self.group_id

    async def load(self) -> OperationResult:
        """
        Fetch group membership, expenses and balances, in that order.

        The snapshot is only published once all three reads have completed
        for the group still being viewed; a load superseded by a newer load
        or a group switch is dropped.

        Returns:
            ok, failed (with the load error message) or skipped if stale
        """
        self._load_generation += 1
        generation = self._load_generation
        group_id = self.group_id

        self.loading = True
        self.error = None

        try:
            group = await self.store.get_group(group_id)
            expenses = await self.store.get_group_expenses(group_id)
            summary = await self.store.get_group_summary(group_id)
        except StoreAPIError as e:
            if not self._is_current(generation, group_id):
                return OperationResult.skipped()
            logger.error(f"Failed to load group {group_id}: {e}")
            self.error = LOAD_FAILED_MESSAGE
            self.loading = False
            return OperationResult.failed(LOAD_FAILED_MESSAGE)

        if not self._is_current(generation, group_id):
            logger.debug(f"Discarding stale load of group {group_id}")
            return OperationResult.skipped()

        if group is None:
            logger.warning(f"Group {group_id} is not among the user's groups")

        self.group = group
        self.expenses = expenses
        self.summary = summary
        self.loading = False

        if not self.draft.participants and self.members:
            self.draft = new_draft(self.members)

        logger.info(
            f"Loaded group {group_id}: {len(expenses)} expenses, "
            f"{len(summary)} balance entries"
        )
        return OperationResult.success()

    async def refresh(self) -> OperationResult:
        """Refetch the whole snapshot (same as load)."""
        return await self.load()

    async def submit_expense(self) -> OperationResult:
        """
        Validate the current draft and record it in the store.

        Validation failures leave the draft untouched and nothing is sent.
        On success the draft is reset and the group is refetched.

        Returns:
            ok, failed (with a user-facing message) or skipped if a
            submission is already in flight
        """
        if self.submitting:
            logger.info("Expense submission already in flight, ignoring request")
            return OperationResult.skipped()

        try:
            allocation = validate_and_build_shares(self.draft)
        except ValidationError as e:
            self.error = str(e)
            return OperationResult.failed(str(e))

        self.submitting = True
        self.error = None
        try:
            payload = build_payload(self.group_id, self.draft, allocation)
            await self.store.create_expense(payload)
        except StoreAPIError as e:
            logger.error(f"Failed to add expense to group {self.group_id}: {e}")
            self.error = SUBMIT_FAILED_MESSAGE
            return OperationResult.failed(SUBMIT_FAILED_MESSAGE)
        finally:
            self.submitting = False

        self.draft = reset_draft(self.members)
        return await self.refresh()
