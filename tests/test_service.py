"""Tests for the GroupView service layer."""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from group_ledger.draft import (
    set_amount,
    set_payer,
    set_share,
    set_split_type,
    set_title,
)
from group_ledger.exceptions import GroupNotFoundError, StoreAPIError
from group_ledger.models import BalanceEntry, Expense, ExpenseRequest, Group, Member
from group_ledger.service import (
    LOAD_FAILED_MESSAGE,
    SUBMIT_FAILED_MESSAGE,
    GroupView,
)

ALICE = "alice@example.com"
BOB = "bob@example.com"
CAROL = "carol@example.com"


@pytest.fixture
def sample_group():
    return Group(id="g1", name="Flat", members=[ALICE, BOB, CAROL])


@pytest.fixture
def sample_expenses():
    return [
        Expense(
            id="e1",
            title="Groceries",
            amount=Decimal("90"),
            paid_by=Member(email=ALICE, name="Alice"),
        )
    ]


@pytest.fixture
def sample_summary():
    return [
        BalanceEntry(user_id="u1", email=ALICE, name="Alice", balance=-60),
        BalanceEntry(user_id="u2", email=BOB, name="Bob", balance=30),
        BalanceEntry(user_id="u3", email=CAROL, balance=30),
    ]


@pytest.fixture
def mock_store(sample_group, sample_expenses, sample_summary):
    """Store double returning the sample snapshot."""
    store = AsyncMock()
    store.get_group.return_value = sample_group
    store.get_group_expenses.return_value = sample_expenses
    store.get_group_summary.return_value = sample_summary
    return store


@pytest.fixture
def view(mock_store):
    return GroupView(mock_store, "g1")


def fill_draft(view: GroupView):
    """Give the view a valid equal-split draft."""
    view.apply(set_title, "Pizza")
    view.apply(set_amount, "45")
    view.apply(set_payer, BOB)


class TestLoad:
    """Tests for loading a group snapshot."""

    def test_reads_in_declared_order(self, view, mock_store):
        """Group, expenses and summary are fetched one after another."""
        calls = []
        mock_store.get_group.side_effect = lambda gid: calls.append(("group", gid))
        mock_store.get_group_expenses.side_effect = lambda gid: calls.append(
            ("expenses", gid)
        ) or []
        mock_store.get_group_summary.side_effect = lambda gid: calls.append(
            ("summary", gid)
        ) or []

        asyncio.run(view.load())

        assert calls == [("group", "g1"), ("expenses", "g1"), ("summary", "g1")]

    def test_publishes_snapshot(
        self, view, sample_group, sample_expenses, sample_summary
    ):
        result = asyncio.run(view.load())

        assert result.ok
        assert view.group == sample_group
        assert view.expenses == sample_expenses
        assert view.summary == sample_summary
        assert view.loading is False
        assert view.error is None

    def test_initial_draft_selects_all_members(self, view):
        asyncio.run(view.load())

        assert view.draft.participants == (ALICE, BOB, CAROL)

    def test_reload_keeps_draft_in_progress(self, view):
        asyncio.run(view.load())
        view.apply(set_title, "Half-typed")

        asyncio.run(view.load())

        assert view.draft.title == "Half-typed"

    def test_missing_group_is_not_an_error(self, view, mock_store):
        """A group missing from my-groups still loads expenses and balances."""
        mock_store.get_group.return_value = None

        result = asyncio.run(view.load())

        assert result.ok
        assert view.group is None
        assert view.members == []
        with pytest.raises(GroupNotFoundError):
            view.require_group()

    def test_failure_surfaces_load_message(self, view, mock_store):
        mock_store.get_group_summary.side_effect = StoreAPIError("boom", 500)

        result = asyncio.run(view.load())

        assert result.status == "failed"
        assert result.error == LOAD_FAILED_MESSAGE
        assert view.error == LOAD_FAILED_MESSAGE
        assert view.loading is False
        assert view.expenses == []

    def test_failure_keeps_previous_snapshot(self, view, mock_store, sample_expenses):
        asyncio.run(view.load())
        mock_store.get_group_expenses.side_effect = StoreAPIError("boom")

        asyncio.run(view.load())

        assert view.expenses == sample_expenses

    def test_new_attempt_clears_error(self, view, mock_store):
        mock_store.get_group.side_effect = StoreAPIError("boom")
        asyncio.run(view.load())
        mock_store.get_group.side_effect = None

        asyncio.run(view.load())

        assert view.error is None

    def test_stale_load_is_discarded_after_group_switch(self, view, mock_store):
        """A load for the previous group never publishes into the new one."""
        gate = asyncio.Event()

        async def slow_group(group_id):
            await gate.wait()
            return Group(id=group_id, name="Old")

        mock_store.get_group.side_effect = slow_group

        async def scenario():
            task = asyncio.create_task(view.load())
            await asyncio.sleep(0)
            view.switch_group("g2")
            gate.set()
            return await task

        result = asyncio.run(scenario())

        assert result.status == "skipped"
        assert view.group_id == "g2"
        assert view.group is None
        assert view.expenses == []
        assert view.summary == []

    def test_switch_group_clears_loading_flag(self, view, mock_store):
        gate = asyncio.Event()

        async def slow_group(group_id):
            await gate.wait()
            return Group(id=group_id, name="Old")

        mock_store.get_group.side_effect = slow_group

        async def scenario():
            task = asyncio.create_task(view.load())
            await asyncio.sleep(0)
            assert view.loading
            view.switch_group("g2")
            loading_after_switch = view.loading
            gate.set()
            await task
            return loading_after_switch

        assert asyncio.run(scenario()) is False
        assert view.loading is False

    def test_superseded_load_is_discarded(self, view, mock_store):
        """When two loads overlap, only the newest one publishes."""
        gate = asyncio.Event()
        snapshots = [
            [BalanceEntry(user_id="old", balance=5)],
            [BalanceEntry(user_id="new", balance=0)],
        ]

        async def summary(group_id):
            current = snapshots.pop(0)
            if current[0].user_id == "old":
                await gate.wait()
            return current

        mock_store.get_group_summary.side_effect = summary

        async def scenario():
            first = asyncio.create_task(view.load())
            for _ in range(5):
                await asyncio.sleep(0)
            second = await view.load()
            gate.set()
            return await first, second

        first, second = asyncio.run(scenario())

        assert first.status == "skipped"
        assert second.ok
        assert [e.user_id for e in view.summary] == ["new"]


class TestDerivedState:
    """Tests for names and balances derived from the snapshot."""

    def test_names(self, view):
        asyncio.run(view.load())

        assert view.display_name(ALICE) == "Alice"
        assert view.display_name(BOB) == "Bob"
        assert view.display_name(CAROL) == CAROL
        assert view.display_name("stranger@example.com") == "stranger@example.com"

    def test_balances(self, view):
        asyncio.run(view.load())

        assert [(b.name, b.label, b.magnitude) for b in view.balances] == [
            ("Alice", "Gets back", 60),
            ("Bob", "Owes", 30),
            ("u3", "Owes", 30),
        ]


class TestSubmitExpense:
    """Tests for submitting the draft."""

    def test_submits_equal_expense_and_refreshes(self, view, mock_store):
        asyncio.run(view.load())
        fill_draft(view)

        result = asyncio.run(view.submit_expense())

        assert result.ok
        mock_store.create_expense.assert_awaited_once()
        request = mock_store.create_expense.await_args.args[0]
        assert isinstance(request, ExpenseRequest)
        assert request.to_wire() == {
            "groupId": "g1",
            "title": "Pizza",
            "amount": 45.0,
            "paidBy": BOB,
            "participants": [ALICE, BOB, CAROL],
            "splitType": "equal",
        }
        assert mock_store.get_group_summary.await_count == 2

    def test_draft_reset_after_success(self, view):
        asyncio.run(view.load())
        fill_draft(view)

        asyncio.run(view.submit_expense())

        assert view.draft.title == ""
        assert view.draft.paid_by == ""
        assert view.draft.participants == (ALICE, BOB, CAROL)

    def test_validation_error_sends_nothing(self, view, mock_store):
        """Share mismatches are reported locally and the draft is kept."""
        asyncio.run(view.load())
        fill_draft(view)
        view.apply(set_split_type, "unequal")
        view.apply(set_share, ALICE, "10")
        draft_before = view.draft

        result = asyncio.run(view.submit_expense())

        assert result.status == "failed"
        assert "must match" in result.error
        assert view.error == result.error
        assert view.draft == draft_before
        mock_store.create_expense.assert_not_awaited()

    def test_missing_payer_reported(self, view, mock_store):
        asyncio.run(view.load())
        view.apply(set_title, "Pizza")
        view.apply(set_amount, "45")

        result = asyncio.run(view.submit_expense())

        assert result.error == "Please select who paid the expense."
        mock_store.create_expense.assert_not_awaited()

    def test_store_failure_surfaces_submit_message(self, view, mock_store):
        asyncio.run(view.load())
        fill_draft(view)
        mock_store.create_expense.side_effect = StoreAPIError("boom", 400)
        draft_before = view.draft

        result = asyncio.run(view.submit_expense())

        assert result.error == SUBMIT_FAILED_MESSAGE
        assert view.error == SUBMIT_FAILED_MESSAGE
        assert view.submitting is False
        assert view.draft == draft_before

    def test_concurrent_submission_suppressed(self, view, mock_store):
        """A second submit while one is in flight sends nothing."""
        gate = asyncio.Event()

        async def slow_create(request):
            await gate.wait()

        mock_store.create_expense.side_effect = slow_create

        async def scenario():
            await view.load()
            fill_draft(view)
            first = asyncio.create_task(view.submit_expense())
            await asyncio.sleep(0)
            assert view.submitting is True
            second = await view.submit_expense()
            gate.set()
            return await first, second

        first, second = asyncio.run(scenario())

        assert first.ok
        assert second.status == "skipped"
        assert mock_store.create_expense.await_count == 1
