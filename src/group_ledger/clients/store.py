"""Expense store API client."""

import logging
import math
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..exceptions import StoreAPIError
from ..models import (
    BalanceEntry,
    Expense,
    ExpenseParticipant,
    ExpenseRequest,
    Group,
    Member,
)

logger = logging.getLogger(__name__)


class ExpenseStoreClient:
    """Async client for the group expense store."""

    def __init__(
        self,
        base_url: str,
        session_token: str | None = None,
        session_cookie_name: str = "token",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the store client.

        Args:
            base_url: Address of the store API
            session_token: Session credential, sent as a cookie on every call
            session_cookie_name: Name of the session cookie
            timeout: Request timeout in seconds
            transport: Optional transport override (used by tests)
        """
        self.base_url = base_url
        cookies = {session_cookie_name: session_token} if session_token else None
        self.client = httpx.AsyncClient(
            base_url=base_url,
            cookies=cookies,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> "ExpenseStoreClient":
        """Build a client from application settings."""
        return cls(
            base_url=settings.store_base_url,
            session_token=settings.session_token,
            session_cookie_name=settings.session_cookie_name,
            timeout=settings.request_timeout,
            transport=transport,
        )

    async def aclose(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request, turning transport and status failures into StoreAPIError."""
        try:
            response = await self.client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            raise StoreAPIError(
                f"{method} {path} failed with status {status_code}",
                status_code=status_code,
            ) from e
        except httpx.HTTPError as e:
            raise StoreAPIError(f"{method} {path} failed: {e}") from e

        logger.debug(f"{method} {path} -> {response.status_code}")
        return response

    async def _get_json(self, path: str) -> Any:
        response = await self._request("GET", path)
        try:
            return response.json()
        except ValueError as e:
            raise StoreAPIError(f"GET {path} returned invalid JSON") from e

    async def get_my_groups(self) -> list[Group]:
        """
        Get the groups the session user belongs to.

        Returns:
            List of groups, in the order the store lists them
        """
        data = await self._get_json("/groups/my-groups")
        if isinstance(data, dict):
            data = data.get("data")
        if not isinstance(data, list):
            return []

        groups = []
        for group_data in data:
            group = _parse_group(group_data)
            if group is None:
                logger.warning(f"Skipping malformed group: {group_data!r}")
                continue
            groups.append(group)

        return groups

    async def get_group(self, group_id: str) -> Group | None:
        """Find one of the user's groups by id, or None if it isn't listed."""
        for group in await self.get_my_groups():
            if group.id == group_id:
                return group
        return None

    async def get_group_expenses(self, group_id: str) -> list[Expense]:
        """
        Get the expenses recorded in a group.

        A response without a ``data`` list is treated as no expenses.
        """
        data = _data_list(await self._get_json(f"/expense/group/{group_id}/expenses"))

        expenses = []
        for exp_data in data:
            expense = _parse_expense(exp_data)
            if expense is None:
                logger.warning(f"Skipping malformed expense in group {group_id}")
                continue
            expenses.append(expense)

        return expenses

    async def get_group_summary(self, group_id: str) -> list[BalanceEntry]:
        """
        Get the net balance of every member of a group.

        A response without a ``data`` list is treated as an empty summary.
        """
        data = _data_list(await self._get_json(f"/expense/group/{group_id}/summary"))

        entries = []
        for item in data:
            entry = _parse_balance_entry(item)
            if entry is None:
                logger.warning(f"Skipping malformed balance entry in group {group_id}")
                continue
            entries.append(entry)

        return entries

    async def create_expense(self, request: ExpenseRequest) -> None:
        """Record a new expense. Any 2xx response counts as success."""
        await self._request("POST", "/expense", json=request.to_wire())
        logger.info(f"Created expense '{request.title}' in group {request.group_id}")

    async def settle_group(self, group_id: str) -> None:
        """Ask the store to zero every balance in a group."""
        await self._request("PUT", f"/expense/group/{group_id}/settle", json={})
        logger.info(f"Settled group {group_id}")


# ============================================================================
# Response parsing
# ============================================================================


def _data_list(payload: Any) -> list:
    """Extract ``payload["data"]``, falling back to an empty list."""
    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        return payload["data"]
    return []


def _record_id(record: Any) -> str | None:
    if not isinstance(record, dict):
        return None
    value = record.get("_id", record.get("id"))
    return str(value) if value is not None else None


def _to_decimal(value: Any) -> Decimal:
    try:
        parsed = Decimal(str(value)) if value not in (None, "") else Decimal("0")
    except InvalidOperation:
        return Decimal("0")
    return parsed if parsed.is_finite() else Decimal("0")


def _parse_group(group_data: Any) -> Group | None:
    group_id = _record_id(group_data)
    if group_id is None:
        return None

    members = group_data.get("membersEmail")
    try:
        return Group(
            id=group_id,
            name=group_data.get("name") or "Group",
            members=[m for m in members if isinstance(m, str)]
            if isinstance(members, list)
            else [],
        )
    except ValidationError as e:
        logger.debug(f"Invalid group {group_id}: {e}")
        return None


def _parse_member(value: Any) -> Member | None:
    """Members arrive either populated ({email, name}) or as a bare identifier."""
    if isinstance(value, str) and value:
        return Member(email=value)
    if isinstance(value, dict):
        email = value.get("email") or _record_id(value)
        if email:
            try:
                return Member(email=email, name=value.get("name"))
            except ValidationError as e:
                logger.debug(f"Invalid member {email!r}: {e}")
    return None


def _parse_expense(exp_data: Any) -> Expense | None:
    expense_id = _record_id(exp_data)
    if expense_id is None:
        return None

    paid_by = _parse_member(exp_data.get("paidBy"))
    if paid_by is None:
        return None

    participants = []
    raw_participants = exp_data.get("participants")
    if not isinstance(raw_participants, list):
        raw_participants = []
    for p_data in raw_participants:
        if isinstance(p_data, dict) and "userId" in p_data:
            member = _parse_member(p_data["userId"])
            share = p_data.get("share")
        else:
            member = _parse_member(p_data)
            share = None
        if member is None:
            continue
        participants.append(
            ExpenseParticipant(
                member=member,
                share=_to_decimal(share) if share is not None else None,
            )
        )

    split_type = exp_data.get("splitType")
    if split_type not in ("equal", "unequal"):
        split_type = "equal"

    try:
        return Expense(
            id=expense_id,
            title=exp_data.get("title") or "",
            amount=_to_decimal(exp_data.get("amount")),
            paid_by=paid_by,
            split_type=split_type,
            participants=participants,
        )
    except ValidationError as e:
        logger.debug(f"Invalid expense {expense_id}: {e}")
        return None


def _parse_balance_entry(item: Any) -> BalanceEntry | None:
    if not isinstance(item, dict):
        return None

    user = item.get("userId")
    if isinstance(user, dict):
        user_id = _record_id(user) or user.get("email")
    else:
        user_id = user
    email = item.get("email")
    user_id = user_id or email
    if not user_id:
        return None

    try:
        balance = float(item.get("balance") or 0)
    except (TypeError, ValueError):
        balance = 0.0
    if not math.isfinite(balance):
        return None

    try:
        return BalanceEntry(
            user_id=str(user_id),
            email=email,
            name=item.get("name"),
            balance=balance,
        )
    except ValidationError as e:
        logger.debug(f"Invalid balance entry for {user_id}: {e}")
        return None
