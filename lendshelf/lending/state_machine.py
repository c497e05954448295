"""
Lending State Machine

Pure transition functions over StoredBook snapshots. Each function
checks its guards against the snapshot it is given and returns a new
snapshot; nothing here touches storage. The service persists the result
with a compare-and-swap against the version the snapshot was read at.

States:
    AVAILABLE  - available, empty queue
    REQUESTED  - available, one or more pending requesters (derived)
    BORROWED   - lent to exactly one borrower

Transitions:
    request(r)   AVAILABLE/REQUESTED -> REQUESTED       queue += r
    approve(r)   AVAILABLE/REQUESTED -> BORROWED        queue cleared, due in 14 days
    reject(r)    AVAILABLE/REQUESTED -> same or AVAILABLE  queue -= r
    return       BORROWED -> AVAILABLE
"""

from datetime import datetime, timedelta
from dataclasses import replace
from enum import Enum
from typing import Optional

from lendshelf.storage.book_repository import StoredBook
from lendshelf.lending.request_queue import RequestQueue, AlreadyPresent, NotPresent
from lendshelf.lending.errors import (
    GuardViolationError,
    InvalidInputError,
    ALREADY_REQUESTED,
    BOOK_UNAVAILABLE,
    REQUEST_NOT_PENDING,
    NOT_BORROWED,
    BOOK_ON_LOAN,
    SELF_REQUEST,
)


LOAN_PERIOD = timedelta(days=14)


class LendingState(str, Enum):
    """Derived lending state of a book."""
    AVAILABLE = "available"
    REQUESTED = "requested"
    BORROWED = "borrowed"


def lending_state(book: StoredBook) -> LendingState:
    if not book.available:
        return LendingState.BORROWED
    if book.requests:
        return LendingState.REQUESTED
    return LendingState.AVAILABLE


def invariant_violations(book: StoredBook) -> list[str]:
    """List every book invariant the snapshot breaks (empty when consistent)."""
    problems = []
    if book.available:
        if book.borrower_id is not None:
            problems.append("available book has a borrower")
        if book.return_due_at is not None:
            problems.append("available book has a return date")
    elif book.borrower_id is None:
        problems.append("unavailable book has no borrower")
    if book.owner_id in book.requests:
        problems.append("owner is queued on their own book")
    if len(set(book.requests)) != len(book.requests):
        problems.append("requester queued more than once")
    return problems


def new_book(
    book_id: str,
    owner_id: str,
    title: str,
    author: str,
    genre: str,
    description: Optional[str] = None,
    cover_ref: Optional[str] = None,
) -> StoredBook:
    """A freshly uploaded book: available, nobody queued."""
    return StoredBook(
        id=book_id,
        title=title,
        author=author,
        genre=genre,
        owner_id=owner_id,
        description=description,
        cover_ref=cover_ref,
        available=True,
        borrower_id=None,
        return_due_at=None,
        requests=[],
    )


def request(book: StoredBook, requester_id: str) -> StoredBook:
    """
    Queue a requester on an available book.

    Raises:
        InvalidInputError: The owner asked for their own book
        GuardViolationError: Book is lent out, or requester already queued
    """
    if requester_id == book.owner_id:
        raise InvalidInputError(
            "Cannot request your own book",
            detail=f"User {requester_id} owns book {book.id}",
            code=SELF_REQUEST,
        )
    if not book.available:
        raise GuardViolationError(
            "Book is not available",
            code=BOOK_UNAVAILABLE,
            detail=f"Book {book.id} is currently on loan",
        )

    queue = RequestQueue(book.requests)
    try:
        queue.add(requester_id)
    except AlreadyPresent:
        raise GuardViolationError(
            "Already requested",
            code=ALREADY_REQUESTED,
            detail=f"User {requester_id} already has a pending request for book {book.id}",
        ) from None

    return replace(book, requests=queue.to_list())


def approve(book: StoredBook, requester_id: str, now: datetime) -> StoredBook:
    """
    Lend the book to a queued requester.

    Every other pending request is discarded; those users have to ask
    again once the book comes back.

    Raises:
        GuardViolationError: Book already lent out, or requester not queued
    """
    if not book.available:
        raise GuardViolationError(
            "Book no longer available",
            code=BOOK_UNAVAILABLE,
            detail=f"Book {book.id} is already lent to another user",
        )

    queue = RequestQueue(book.requests)
    if requester_id not in queue:
        raise GuardViolationError(
            "Request no longer pending",
            code=REQUEST_NOT_PENDING,
            detail=f"User {requester_id} has no pending request for book {book.id}",
        )
    queue.clear()

    return replace(
        book,
        available=False,
        borrower_id=requester_id,
        return_due_at=now + LOAN_PERIOD,
        requests=queue.to_list(),
    )


def reject(book: StoredBook, requester_id: str) -> StoredBook:
    """
    Drop a pending request; availability is untouched.

    Raises:
        GuardViolationError: Requester not queued (never was, or already handled)
    """
    queue = RequestQueue(book.requests)
    try:
        queue.remove(requester_id)
    except NotPresent:
        raise GuardViolationError(
            "Request no longer pending",
            code=REQUEST_NOT_PENDING,
            detail=f"User {requester_id} has no pending request for book {book.id}",
        ) from None

    return replace(book, requests=queue.to_list())


def mark_returned(book: StoredBook) -> StoredBook:
    """
    Bring a lent book back into circulation.

    Raises:
        GuardViolationError: Book is not currently borrowed
    """
    if book.borrower_id is None:
        raise GuardViolationError(
            "This book is not currently borrowed",
            code=NOT_BORROWED,
            detail=f"Book {book.id} has no borrower",
        )

    return replace(
        book,
        available=True,
        borrower_id=None,
        return_due_at=None,
        requests=list(book.requests),
    )


def check_deletable(book: StoredBook) -> None:
    """
    Raises:
        GuardViolationError: Book is on loan
    """
    if not book.available:
        raise GuardViolationError(
            "Book is on loan",
            code=BOOK_ON_LOAN,
            detail=f"Book {book.id} must be returned before it can be deleted",
        )
