"""Tests for the settlement coordinator."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from group_ledger.balances import is_settled
from group_ledger.exceptions import StoreAPIError
from group_ledger.models import BalanceEntry, Group
from group_ledger.service import LOAD_FAILED_MESSAGE, GroupView
from group_ledger.settlement import SETTLE_FAILED_MESSAGE, SettlementCoordinator

OPEN_BALANCES = [
    BalanceEntry(user_id="u1", name="Alice", balance=-150),
    BalanceEntry(user_id="u2", name="Bob", balance=100),
    BalanceEntry(user_id="u3", name="Carol", balance=50),
]
ZEROED_BALANCES = [
    BalanceEntry(user_id="u1", name="Alice", balance=0),
    BalanceEntry(user_id="u2", name="Bob", balance=0),
    BalanceEntry(user_id="u3", name="Carol", balance=0),
]


@pytest.fixture
def mock_store():
    """Store double whose summary is zeroed once the group is settled."""
    store = AsyncMock()
    store.get_group.return_value = Group(id="g1", name="Trip", members=["a", "b", "c"])
    store.get_group_expenses.return_value = []

    settled = {"done": False}

    async def settle_group(group_id):
        settled["done"] = True

    async def summary(group_id):
        return ZEROED_BALANCES if settled["done"] else OPEN_BALANCES

    store.settle_group.side_effect = settle_group
    store.get_group_summary.side_effect = summary
    return store


@pytest.fixture
def view(mock_store):
    view = GroupView(mock_store, "g1")
    asyncio.run(view.load())
    return view


@pytest.fixture
def coordinator(mock_store, view):
    return SettlementCoordinator(mock_store, view)


class TestSettle:
    """Tests for the settle action."""

    def test_settles_and_refreshes_to_zeroed_ledger(self, coordinator, mock_store, view):
        assert not is_settled(view.summary)

        result = asyncio.run(coordinator.settle())

        assert result.ok
        mock_store.settle_group.assert_awaited_once_with("g1")
        assert is_settled(view.summary)
        assert all(b.magnitude == 0 for b in view.balances)
        assert coordinator.state == "idle"

    def test_refresh_reads_everything_again(self, coordinator, mock_store):
        asyncio.run(coordinator.settle())

        assert mock_store.get_group.await_count == 2
        assert mock_store.get_group_expenses.await_count == 2
        assert mock_store.get_group_summary.await_count == 2

    def test_duplicate_settle_is_suppressed(self, coordinator, mock_store):
        """A second settle while one is in flight sends no request."""
        gate = asyncio.Event()

        async def slow_settle(group_id):
            await gate.wait()

        mock_store.settle_group.side_effect = slow_settle

        async def scenario():
            first = asyncio.create_task(coordinator.settle())
            await asyncio.sleep(0)
            assert coordinator.state == "settling"
            second = await coordinator.settle()
            gate.set()
            return await first, second

        first, second = asyncio.run(scenario())

        assert first.ok
        assert second.status == "skipped"
        assert mock_store.settle_group.await_count == 1

    def test_clears_previous_error_on_entry(self, coordinator, mock_store, view):
        view.error = "Failed to add expense. Please check the form."
        seen = {}

        async def settle_group(group_id):
            seen["error"] = view.error

        mock_store.settle_group.side_effect = settle_group

        asyncio.run(coordinator.settle())

        assert seen["error"] is None

    def test_failure_surfaces_message_without_retry(self, coordinator, mock_store, view):
        mock_store.settle_group.side_effect = StoreAPIError("boom", 500)

        result = asyncio.run(coordinator.settle())

        assert result.status == "failed"
        assert result.error == SETTLE_FAILED_MESSAGE
        assert view.error == SETTLE_FAILED_MESSAGE
        assert coordinator.state == "idle"
        assert mock_store.settle_group.await_count == 1
        assert mock_store.get_group_summary.await_count == 1

    def test_can_settle_again_after_failure(self, coordinator, mock_store):
        mock_store.settle_group.side_effect = [StoreAPIError("boom"), None]

        first = asyncio.run(coordinator.settle())
        second = asyncio.run(coordinator.settle())

        assert first.status == "failed"
        assert second.ok
        assert mock_store.settle_group.await_count == 2

    def test_refresh_failure_is_reported(self, coordinator, mock_store, view):
        """The settle succeeded but the follow-up reload did not."""
        mock_store.get_group_expenses.side_effect = StoreAPIError("boom")

        result = asyncio.run(coordinator.settle())

        assert result.error == LOAD_FAILED_MESSAGE
        assert view.error == LOAD_FAILED_MESSAGE
        assert coordinator.state == "idle"
