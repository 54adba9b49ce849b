"""group-ledger - Split group expenses and settle who owes whom."""

__version__ = "0.1.0"

from .allocator import preview_equal_shares, validate_and_build_shares
from .balances import build_name_directory, classify, is_conserved
from .clients.store import ExpenseStoreClient
from .config import Settings, load_settings
from .models import (
    Allocation,
    BalanceEntry,
    DisplayEntry,
    Expense,
    ExpenseDraft,
    ExpenseRequest,
    Group,
    Member,
    OperationResult,
    Share,
)
from .payload import build_payload
from .service import GroupView
from .settlement import SettlementCoordinator

__all__ = [
    "Settings",
    "load_settings",
    "Allocation",
    "BalanceEntry",
    "DisplayEntry",
    "Expense",
    "ExpenseDraft",
    "ExpenseRequest",
    "Group",
    "Member",
    "OperationResult",
    "Share",
    "validate_and_build_shares",
    "preview_equal_shares",
    "build_payload",
    "classify",
    "is_conserved",
    "build_name_directory",
    "ExpenseStoreClient",
    "GroupView",
    "SettlementCoordinator",
]
