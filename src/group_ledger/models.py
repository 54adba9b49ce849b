"""Pydantic domain models for group-ledger."""

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

SplitType = Literal["equal", "unequal"]
BalanceLabel = Literal["Owes", "Gets back"]


def resolve_name(identifier: str, name: str | None) -> str:
    """Return the display name for a member, falling back to its identifier."""
    if name and name.strip():
        return name.strip()
    return identifier


# ============================================================================
# Store Models
# ============================================================================


class Member(BaseModel):
    """A group member, identified by email."""

    email: str
    name: str | None = None

    @property
    def display_name(self) -> str:
        return resolve_name(self.email, self.name)


class Group(BaseModel):
    """A group as listed by the store."""

    id: str
    name: str
    members: list[str] = Field(default_factory=list)  # member emails


class ExpenseParticipant(BaseModel):
    """One participant of a stored expense."""

    member: Member
    share: Decimal | None = None


class Expense(BaseModel):
    """An expense as returned by the store."""

    id: str
    title: str
    amount: Decimal
    paid_by: Member
    split_type: SplitType = "equal"
    participants: list[ExpenseParticipant] = Field(default_factory=list)


class BalanceEntry(BaseModel):
    """A member's net position in a group.

    Sign convention: positive = owes money, negative = is owed money.
    """

    user_id: str
    email: str | None = None
    name: str | None = None
    balance: float = 0.0


# ============================================================================
# Draft & Allocation Models
# ============================================================================


class ExpenseDraft(BaseModel):
    """An expense being composed by the user.

    Amount and shares hold the raw text the user typed; they are only
    interpreted by the allocator. Drafts are immutable: every user action
    produces a new draft (see ``group_ledger.draft``).
    """

    model_config = ConfigDict(frozen=True)

    title: str = ""
    amount: str = ""
    paid_by: str = ""
    participants: tuple[str, ...] = ()
    split_type: SplitType = "equal"
    shares: dict[str, str] = Field(default_factory=dict)


class Share(BaseModel):
    """An explicit participant share of an unequal expense."""

    participant: str
    amount: Decimal


class Allocation(BaseModel):
    """A validated split, ready to be turned into a store request."""

    split_type: SplitType
    amount: Decimal
    payer: str
    participants: list[str]
    shares: list[Share] = Field(default_factory=list)  # empty for equal splits


# ============================================================================
# Wire Models
# ============================================================================


class UnequalParticipant(BaseModel):
    """Participant entry of an unequal expense request."""

    user_id: str = Field(serialization_alias="userId")
    share: float


class ExpenseRequest(BaseModel):
    """Body of ``POST /expense``."""

    group_id: str = Field(serialization_alias="groupId")
    title: str
    amount: float
    paid_by: str = Field(serialization_alias="paidBy")
    participants: list[str | UnequalParticipant]
    split_type: SplitType = Field(serialization_alias="splitType")

    def to_wire(self) -> dict:
        """Serialize with the store's field names."""
        return self.model_dump(by_alias=True, mode="json")


# ============================================================================
# View Models
# ============================================================================


class DisplayEntry(BaseModel):
    """A balance entry classified for display."""

    user_id: str
    name: str
    label: BalanceLabel
    magnitude: float = Field(ge=0.0)


class OperationResult(BaseModel):
    """Outcome of a user-initiated operation against the store."""

    status: Literal["ok", "skipped", "failed"]
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @classmethod
    def success(cls) -> "OperationResult":
        return cls(status="ok")

    @classmethod
    def skipped(cls) -> "OperationResult":
        return cls(status="skipped")

    @classmethod
    def failed(cls, error: str) -> "OperationResult":
        return cls(status="failed", error=error)
