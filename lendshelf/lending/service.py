"""
Lending Service

The externally callable API of the lending core. Each operation
validates its input, reads the current book record, runs the state
machine, and commits the result with a compare-and-swap. A lost race
is retried from a fresh read a bounded number of times; a guard that
fails on the fresh read is reported to the caller as-is.

Point awards run after the book transition has committed. A failed
award is logged and recorded, and the operation still succeeds.
"""

import uuid
from datetime import datetime
from dataclasses import dataclass
from typing import Callable, Optional
from loguru import logger

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from lendshelf.storage.book_repository import BookRepository, StoredBook, VersionConflict
from lendshelf.storage.user_repository import UserRepository, StoredUser
from lendshelf.lending import state_machine
from lendshelf.lending.commands import (
    parse,
    UploadBook,
    BookAction,
    RequestAction,
    UserLookup,
)
from lendshelf.lending.errors import (
    BookNotFoundError,
    UserNotFoundError,
    ConflictError,
    InvalidInputError,
    GuardViolationError,
    LedgerPartialFailure,
)
from lendshelf.lending.ledger import (
    PointsLedger,
    PointsDelta,
    UPLOAD_AWARD,
    LENDER_AWARD,
    BORROWER_AWARD,
)


DEFAULT_MAX_ATTEMPTS = 3


@dataclass
class PendingRequest:
    """One queued requester on a book the owner holds."""

    book_id: str
    book_title: str
    requester_id: str
    cover_ref: Optional[str] = None


@dataclass
class LoanView:
    """A current loan seen from one side; counterparty is the other side."""

    book_id: str
    book_title: str
    return_due_at: Optional[datetime]
    counterparty_id: str
    cover_ref: Optional[str] = None


def _new_id() -> str:
    return uuid.uuid4().hex


class LendingService:
    """
    Orchestrates lending transitions and their ledger side effects.

    Usage:
        service = LendingService(BookRepository(engine=engine), UserRepository(engine=engine))

        book = service.upload_book("owner1", "Dune", "Frank Herbert", "Science Fiction")
        service.request_book(book.id, "reader1")
        service.approve_request(book.id, "reader1")
    """

    def __init__(
        self,
        book_repository: BookRepository,
        user_repository: UserRepository,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        clock: Callable[[], datetime] = datetime.utcnow,
        id_factory: Callable[[], str] = _new_id,
    ):
        """
        Initialize service.

        Args:
            book_repository: Book Record Store
            user_repository: Ledger account store
            max_attempts: Compare-and-swap attempts per operation
            clock: Source of "now" for due dates
            id_factory: Generator for new book and account ids
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.books = book_repository
        self.users = user_repository
        self.ledger = PointsLedger(user_repository)
        self.max_attempts = max_attempts
        self.clock = clock
        self.id_factory = id_factory

    # =========================================================================
    # Transitions
    # =========================================================================

    def upload_book(
        self,
        owner_id: str,
        title: str,
        author: str,
        genre: str,
        description: Optional[str] = None,
        cover_ref: Optional[str] = None,
    ) -> StoredBook:
        """
        List a new book for lending and award the owner an upload point.

        Raises:
            InvalidInputError: Missing or malformed fields
        """
        cmd = parse(
            UploadBook,
            owner_id=owner_id,
            title=title,
            author=author,
            genre=genre,
            description=description,
            cover_ref=cover_ref,
        )

        book = self.books.create(state_machine.new_book(
            book_id=self.id_factory(),
            owner_id=cmd.owner_id,
            title=cmd.title,
            author=cmd.author,
            genre=cmd.genre,
            description=cmd.description,
            cover_ref=cmd.cover_ref,
        ))
        logger.info(f"Book {book.id} uploaded by {book.owner_id}: {book.title}")

        self._award(book.owner_id, UPLOAD_AWARD, event="upload", book_id=book.id)
        return book

    def request_book(self, book_id: str, requester_id: str) -> StoredBook:
        """
        Queue a borrow request.

        Raises:
            BookNotFoundError: No such book
            InvalidInputError: Malformed ids, or the owner asked for their own book
            GuardViolationError: Book on loan, or already requested
        """
        cmd = parse(RequestAction, book_id=book_id, requester_id=requester_id)

        book = self._transition(
            cmd.book_id,
            lambda current: state_machine.request(current, cmd.requester_id),
        )
        logger.info(f"Book {book.id} requested by {cmd.requester_id} (queue={len(book.requests)})")
        return book

    def approve_request(self, book_id: str, requester_id: str) -> StoredBook:
        """
        Lend the book to a queued requester and award both parties.

        Raises:
            BookNotFoundError: No such book
            GuardViolationError: Book already lent, or request not pending
            ConflictError: Retry budget exhausted
        """
        cmd = parse(RequestAction, book_id=book_id, requester_id=requester_id)

        book = self._transition(
            cmd.book_id,
            lambda current: state_machine.approve(current, cmd.requester_id, self.clock()),
        )
        logger.info(
            f"Book {book.id} lent by {book.owner_id} to {book.borrower_id}, "
            f"due {book.return_due_at.isoformat()}"
        )

        self._award(book.owner_id, LENDER_AWARD, event="approve", book_id=book.id)
        self._award(book.borrower_id, BORROWER_AWARD, event="approve", book_id=book.id)
        return book

    def reject_request(self, book_id: str, requester_id: str) -> StoredBook:
        """
        Drop a pending request.

        Raises:
            BookNotFoundError: No such book
            GuardViolationError: Request not pending
            ConflictError: Retry budget exhausted
        """
        cmd = parse(RequestAction, book_id=book_id, requester_id=requester_id)

        book = self._transition(
            cmd.book_id,
            lambda current: state_machine.reject(current, cmd.requester_id),
        )
        logger.info(f"Request by {cmd.requester_id} for book {book.id} rejected")
        return book

    def return_book(self, book_id: str) -> StoredBook:
        """
        Mark a lent book as returned.

        Raises:
            BookNotFoundError: No such book
            GuardViolationError: Book not borrowed
            ConflictError: Retry budget exhausted
        """
        cmd = parse(BookAction, book_id=book_id)

        book = self._transition(cmd.book_id, state_machine.mark_returned)
        logger.info(f"Book {book.id} returned")
        return book

    def delete_book(self, book_id: str) -> None:
        """
        Hard-delete a book that is not on loan. Pending requests go with it.

        Raises:
            BookNotFoundError: No such book
            GuardViolationError: Book on loan
            ConflictError: Retry budget exhausted
        """
        cmd = parse(BookAction, book_id=book_id)

        for attempt in range(1, self.max_attempts + 1):
            book = self._load(cmd.book_id)
            state_machine.check_deletable(book)

            try:
                deleted = self.books.delete(book.id, expected_version=book.version)
            except VersionConflict:
                logger.warning(f"Delete of book {book.id} lost a race (attempt {attempt}/{self.max_attempts})")
                continue

            if not deleted:
                raise BookNotFoundError(book.id)

            logger.info(f"Book {book.id} deleted (dropped {len(book.requests)} pending requests)")
            return

        raise ConflictError(self.max_attempts)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_book(self, book_id: str) -> StoredBook:
        cmd = parse(BookAction, book_id=book_id)
        return self._load(cmd.book_id)

    def list_books(self, available_only: bool = False, limit: int = 100, offset: int = 0) -> list[StoredBook]:
        if available_only:
            return self.books.list_available(limit=limit, offset=offset)
        return self.books.list_all(limit=limit, offset=offset)

    def list_owned(self, owner_id: str) -> list[StoredBook]:
        cmd = parse(UserLookup, user_id=owner_id)
        return self.books.list_by_owner(cmd.user_id)

    def list_requests_for_owner(self, owner_id: str) -> list[PendingRequest]:
        """Every pending request across the owner's books, in queue order."""
        cmd = parse(UserLookup, user_id=owner_id)

        return [
            PendingRequest(
                book_id=book.id,
                book_title=book.title,
                requester_id=requester_id,
                cover_ref=book.cover_ref,
            )
            for book in self.books.list_by_owner(cmd.user_id)
            for requester_id in book.requests
        ]

    def list_on_loan(self, owner_id: str) -> list[LoanView]:
        """Books the owner has lent out; counterparty is the borrower."""
        cmd = parse(UserLookup, user_id=owner_id)

        return [
            LoanView(
                book_id=book.id,
                book_title=book.title,
                return_due_at=book.return_due_at,
                counterparty_id=book.borrower_id,
                cover_ref=book.cover_ref,
            )
            for book in self.books.list_by_owner(cmd.user_id)
            if not book.available
        ]

    def list_borrowed(self, borrower_id: str) -> list[LoanView]:
        """Books the user currently holds; counterparty is the owner."""
        cmd = parse(UserLookup, user_id=borrower_id)

        return [
            LoanView(
                book_id=book.id,
                book_title=book.title,
                return_due_at=book.return_due_at,
                counterparty_id=book.owner_id,
                cover_ref=book.cover_ref,
            )
            for book in self.books.list_by_borrower(cmd.user_id)
        ]

    # =========================================================================
    # Ledger accounts
    # =========================================================================

    def create_account(self, name: str, user_id: Optional[str] = None) -> StoredUser:
        """
        Open a ledger account with zeroed counters.

        Raises:
            InvalidInputError: Bad id or name, or the id is taken
        """
        cmd = parse(UserLookup, user_id=user_id or self.id_factory())
        name = (name or "").strip()
        if not name:
            raise InvalidInputError("Invalid account input", detail="name: must not be empty")

        if self.users.get(cmd.user_id) is not None:
            raise InvalidInputError("Account already exists", detail=f"User {cmd.user_id} is already registered")

        try:
            user = self.users.create(cmd.user_id, name)
        except IntegrityError:
            raise InvalidInputError("Account already exists", detail=f"User {cmd.user_id} is already registered") from None
        logger.info(f"Ledger account opened for {user.id}")
        return user

    def get_account(self, user_id: str) -> StoredUser:
        cmd = parse(UserLookup, user_id=user_id)

        user = self.users.get(cmd.user_id)
        if user is None:
            raise UserNotFoundError(cmd.user_id)
        return user

    # =========================================================================
    # Internals
    # =========================================================================

    def _load(self, book_id: str) -> StoredBook:
        book = self.books.get(book_id)
        if book is None:
            raise BookNotFoundError(book_id)
        return book

    def _transition(
        self,
        book_id: str,
        transition: Callable[[StoredBook], StoredBook],
    ) -> StoredBook:
        """
        Read, apply, compare-and-swap; re-read and re-check guards on conflict.

        Raises:
            BookNotFoundError: Book missing (or deleted mid-flight)
            GuardViolationError: Guard failed on the latest read
            ConflictError: Every attempt lost its race
        """
        for attempt in range(1, self.max_attempts + 1):
            current = self._load(book_id)

            try:
                updated = transition(current)
            except GuardViolationError as e:
                logger.info(f"Guard violation on book {book_id}: {e.code}")
                raise

            try:
                stored = self.books.compare_and_swap(book_id, current.version, updated)
            except VersionConflict:
                logger.warning(
                    f"Book {book_id} changed under us at v{current.version} "
                    f"(attempt {attempt}/{self.max_attempts})"
                )
                continue

            if stored is None:
                raise BookNotFoundError(book_id)
            return stored

        logger.warning(f"Giving up on book {book_id} after {self.max_attempts} conflicting attempts")
        raise ConflictError(self.max_attempts)

    def _award(self, user_id: str, delta: PointsDelta, event: str, book_id: str) -> None:
        """Apply an award; a failure is logged and recorded, never raised."""
        try:
            self.ledger.apply_delta(user_id, delta)
            return
        except (UserNotFoundError, SQLAlchemyError) as e:
            failure = LedgerPartialFailure(user_id, event, reason=str(e), book_id=book_id)

        logger.error(f"{failure.message} on book {book_id}: {failure.detail}")
        try:
            self.ledger.record_failure(
                user_id=user_id,
                event=event,
                delta=delta,
                reason=failure.detail,
                book_id=book_id,
            )
        except SQLAlchemyError as e:
            logger.error(f"Could not record ledger failure for {user_id}: {e}")
