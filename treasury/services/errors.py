"""Domain errors raised by the ledger engine.

The API layer maps each error to an HTTP status; bulk operations record them
as per-item failures instead of aborting the batch.
"""


class LedgerError(Exception):
    """Base ledger engine error."""

    code = "ledger_error"

    def __init__(self, message: str, field: str | None = None):
        """Initialize error.

        Args:
            message: Human-readable reason
            field: Offending input field, when the error is about one
        """
        self.message = message
        self.field = field
        super().__init__(message)


class ValidationError(LedgerError):
    """Malformed input: missing field, non-positive amount, bad month/year."""

    code = "validation_error"


class NotFoundError(LedgerError):
    """Referenced dues, member or organization does not exist."""

    code = "not_found"


class ConflictError(LedgerError):
    """Operation conflicts with stored state (duplicate dues, paid dues)."""

    code = "conflict"


class ForbiddenError(LedgerError):
    """Principal may not act on this organization or resource."""

    code = "forbidden"


__all__ = [
    "LedgerError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "ForbiddenError",
]
