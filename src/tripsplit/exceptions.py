"""Custom exceptions for TripSplit."""


class TripSplitError(Exception):
    """Base exception for all TripSplit errors."""

    pass


class ConfigurationError(TripSplitError):
    """Raised when configuration is invalid or missing."""

    pass


class ExpenseValidationError(TripSplitError):
    """Raised when user-entered expense or group data is rejected."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class NotFoundError(TripSplitError):
    """Base class for lookups of ids that don't exist."""

    kind = "Record"

    def __init__(self, record_id: str, message: str | None = None):
        self.record_id = record_id
        super().__init__(message or f"{self.kind} '{record_id}' not found")


class GroupNotFoundError(NotFoundError):
    """Raised when a group id is not in the store."""

    kind = "Group"


class ExpenseNotFoundError(NotFoundError):
    """Raised when an expense id is not part of the group."""

    kind = "Expense"


class MemberNotFoundError(NotFoundError):
    """Raised when a member id or name can't be resolved in the group."""

    kind = "Member"


class StorageError(TripSplitError):
    """Raised when a stored group document can't be read back."""

    pass
