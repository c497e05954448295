"""
Points Ledger

Increment-only reward counters tied to lending transitions. Awards are
applied after the book transition commits; they are never recomputed
or reversed here.
"""

from dataclasses import dataclass, asdict
from loguru import logger

from lendshelf.storage.user_repository import UserRepository
from lendshelf.lending.errors import InvalidInputError, UserNotFoundError


# Award sizes
UPLOAD_POINTS = 1
LEND_POINTS = 5


@dataclass(frozen=True)
class PointsDelta:
    """Counter increments for one user."""

    points: int = 0
    books_shared: int = 0
    books_borrowed: int = 0

    def __post_init__(self):
        if self.points < 0 or self.books_shared < 0 or self.books_borrowed < 0:
            raise InvalidInputError(
                "Ledger deltas must not be negative",
                detail=f"Got {asdict(self)}",
            )

    def is_empty(self) -> bool:
        return not (self.points or self.books_shared or self.books_borrowed)

    def to_dict(self) -> dict:
        return asdict(self)


# Awards per transition
UPLOAD_AWARD = PointsDelta(points=UPLOAD_POINTS)
LENDER_AWARD = PointsDelta(points=LEND_POINTS, books_shared=1)
BORROWER_AWARD = PointsDelta(books_borrowed=1)


class PointsLedger:
    """Applies counter deltas to user accounts."""

    def __init__(self, user_repository: UserRepository):
        """
        Initialize ledger.

        Args:
            user_repository: Store holding the account counters
        """
        self.users = user_repository

    def apply_delta(self, user_id: str, delta: PointsDelta) -> None:
        """
        Add a delta to one user's counters in a single atomic update.

        Args:
            user_id: User to credit
            delta: Increments to apply

        Raises:
            UserNotFoundError: No account for user_id
        """
        if delta.is_empty():
            return

        if not self.users.increment(
            user_id,
            points=delta.points,
            books_shared=delta.books_shared,
            books_borrowed=delta.books_borrowed,
        ):
            raise UserNotFoundError(user_id)

        logger.debug(f"Ledger: {user_id} += {delta.to_dict()}")

    def record_failure(
        self,
        user_id: str,
        event: str,
        delta: PointsDelta,
        reason: str,
        book_id: str = None,
    ) -> None:
        """Persist an award that was not applied, for later reconciliation."""
        self.users.add_ledger_failure(
            user_id=user_id,
            event=event,
            delta=delta.to_dict(),
            book_id=book_id,
            reason=reason,
        )
