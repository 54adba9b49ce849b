"""Settlement of a group's balances."""

import logging
from typing import Literal

from .exceptions import StoreAPIError
from .models import OperationResult
from .service import ExpenseStore, GroupView

logger = logging.getLogger(__name__)

SETTLE_FAILED_MESSAGE = "Failed to settle the group. Please try again."


class SettlementCoordinator:
    """
    Issues the settle request for a group and resynchronizes the view.

    States: idle -> settling -> idle. A settle request made while one is
    still in flight is suppressed, so each user action sends at most one
    request. How balances get zeroed is up to the store.
    """

    def __init__(self, store: ExpenseStore, view: GroupView):
        """Initialize the coordinator for the view's group."""
        self.store = store
        self.view = view
        self.settling = False

    @property
    def state(self) -> Literal["idle", "settling"]:
        return "settling" if self.settling else "idle"

    async def settle(self) -> OperationResult:
        """
        Settle the group, then refetch expenses and balances.

        Returns:
            ok once the refreshed (zeroed) snapshot is loaded, skipped if a
            settlement is already running, failed otherwise
        """
        if self.settling:
            logger.info("Settlement already in flight, ignoring request")
            return OperationResult.skipped()

        group_id = self.view.group_id
        self.settling = True
        self.view.error = None

        try:
            await self.store.settle_group(group_id)
        except StoreAPIError as e:
            logger.error(f"Failed to settle group {group_id}: {e}")
            self.view.error = SETTLE_FAILED_MESSAGE
            self.settling = False
            return OperationResult.failed(SETTLE_FAILED_MESSAGE)

        try:
            return await self.view.refresh()
        finally:
            self.settling = False
