"""
Lending core for LendShelf.

- state_machine: legal transitions of a book's lending state
- request_queue: pending requesters embedded in a book
- ledger: point and counter awards
- service: orchestration with compare-and-swap retry
"""

from lendshelf.lending.errors import (
    LendingError,
    NotFoundError,
    BookNotFoundError,
    UserNotFoundError,
    InvalidInputError,
    GuardViolationError,
    ConflictError,
    LedgerPartialFailure,
)
from lendshelf.lending.request_queue import RequestQueue
from lendshelf.lending.state_machine import LendingState, LOAN_PERIOD, lending_state
from lendshelf.lending.ledger import PointsLedger, PointsDelta
from lendshelf.lending.service import LendingService, PendingRequest, LoanView

__all__ = [
    # Errors
    "LendingError",
    "NotFoundError",
    "BookNotFoundError",
    "UserNotFoundError",
    "InvalidInputError",
    "GuardViolationError",
    "ConflictError",
    "LedgerPartialFailure",
    # State
    "RequestQueue",
    "LendingState",
    "LOAN_PERIOD",
    "lending_state",
    # Ledger
    "PointsLedger",
    "PointsDelta",
    # Service
    "LendingService",
    "PendingRequest",
    "LoanView",
]
