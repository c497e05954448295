"""
Failure taxonomy for lending operations.

Every terminal failure carries a stable machine-readable code and a
human message. The HTTP layer maps status_code onto the response.
"""

from typing import Optional


class LendingError(Exception):
    """Base exception for LendShelf errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        detail: Optional[str] = None,
        retryable: bool = False,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.detail = detail
        self.retryable = retryable
        super().__init__(message)


class NotFoundError(LendingError):
    """Book or user absent."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found",
            code=f"{resource.upper()}_NOT_FOUND",
            status_code=404,
            detail=f"No {resource.lower()} with identifier '{identifier}' exists",
        )
        self.resource = resource
        self.identifier = identifier


class BookNotFoundError(NotFoundError):
    def __init__(self, book_id: str):
        super().__init__("Book", book_id)


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str):
        super().__init__("User", user_id)


class InvalidInputError(LendingError):
    """Malformed input or a request that can never be valid."""

    def __init__(self, message: str, detail: Optional[str] = None, code: str = "INVALID_INPUT"):
        super().__init__(
            message=message,
            code=code,
            status_code=400,
            detail=detail,
        )


class GuardViolationError(LendingError):
    """
    The transition is not legal in the book's current state.

    The code tells "already handled" (e.g. REQUEST_NOT_PENDING after an
    approval) apart from "never valid".
    """

    def __init__(self, message: str, code: str, detail: Optional[str] = None):
        super().__init__(
            message=message,
            code=code,
            status_code=409,
            detail=detail,
        )


class ConflictError(LendingError):
    """Concurrent writers kept winning until the retry budget ran out."""

    def __init__(self, attempts: int):
        super().__init__(
            message="The book was modified concurrently, please retry",
            code="CONCURRENT_MODIFICATION",
            status_code=503,
            retryable=True,
        )
        self.attempts = attempts


class LedgerPartialFailure(LendingError):
    """
    A book transition committed but a point award did not.

    Recorded for reconciliation; never raised to the caller of a
    lending operation.
    """

    def __init__(self, user_id: str, event: str, reason: str, book_id: Optional[str] = None):
        super().__init__(
            message=f"Ledger update for user {user_id} failed after {event}",
            code="LEDGER_PARTIAL_FAILURE",
            status_code=500,
            detail=reason,
        )
        self.user_id = user_id
        self.event = event
        self.book_id = book_id


# Guard violation codes
ALREADY_REQUESTED = "ALREADY_REQUESTED"
BOOK_UNAVAILABLE = "BOOK_UNAVAILABLE"
REQUEST_NOT_PENDING = "REQUEST_NOT_PENDING"
NOT_BORROWED = "NOT_BORROWED"
BOOK_ON_LOAN = "BOOK_ON_LOAN"

# Invalid input codes
SELF_REQUEST = "SELF_REQUEST"
