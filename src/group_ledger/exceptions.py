"""Custom exceptions for group-ledger."""

from decimal import Decimal


class GroupLedgerError(Exception):
    """Base exception for all group-ledger errors."""

    pass


class ConfigurationError(GroupLedgerError):
    """Raised when configuration is invalid or missing."""

    pass


class ValidationError(GroupLedgerError):
    """Base class for expense draft validation failures.

    Raised before any request reaches the store; the draft is left untouched
    so the user can correct it.
    """

    pass


class NoPayerSelected(ValidationError):
    """Raised when no payer has been chosen for the expense."""

    def __init__(self, message: str | None = None):
        super().__init__(message or "Please select who paid the expense.")


class EmptyTitle(ValidationError):
    """Raised when the expense title is blank after trimming."""

    def __init__(self, message: str | None = None):
        super().__init__(message or "Please enter a title for the expense.")


class InvalidAmount(ValidationError):
    """Raised when the expense amount is not a positive two-decimal number."""

    def __init__(self, value: str, message: str | None = None):
        self.value = value
        super().__init__(message or f"Amount must be a positive number, got '{value}'.")


class EmptyParticipants(ValidationError):
    """Raised when an equal split has nobody to split between."""

    def __init__(self, message: str | None = None):
        super().__init__(message or "Please select at least one participant.")


class InvalidShare(ValidationError):
    """Raised when an unequal share is negative or not a number."""

    def __init__(self, participant: str, value: str, message: str | None = None):
        self.participant = participant
        self.value = value
        super().__init__(
            message
            or f"Share for {participant} must be a non-negative number, got '{value}'."
        )


class ShareMismatch(ValidationError):
    """Raised when unequal shares don't add up to the expense amount."""

    def __init__(self, total: Decimal, target: Decimal, message: str | None = None):
        self.total = total
        self.target = target
        super().__init__(
            message
            or f"Unequal split total must match the amount "
            f"(shares total {total:.2f}, amount {target:.2f})."
        )


class APIError(GroupLedgerError):
    """Base class for API-related errors."""

    pass


class StoreAPIError(APIError):
    """Raised when a request to the expense store fails."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class GroupNotFoundError(GroupLedgerError):
    """Raised when the active group is not among the user's groups."""

    def __init__(self, group_id: str, message: str | None = None):
        self.group_id = group_id
        super().__init__(message or f"Group {group_id} was not found")
