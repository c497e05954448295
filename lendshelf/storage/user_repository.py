"""
User Repository for LendShelf

Ledger accounts: the point and counter fields of a user. Identity and
credentials live elsewhere; this store only knows ids and counters.
"""

from datetime import datetime
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from .models import UserModel, LedgerFailureModel
from .database import create_database_engine


@dataclass
class StoredUser:
    """Data class for ledger account transfer."""

    id: str
    name: str
    points: int = 0
    books_shared: int = 0
    books_borrowed: int = 0
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: UserModel) -> "StoredUser":
        """Create from SQLAlchemy model."""
        return cls(
            id=model.id,
            name=model.name,
            points=model.points,
            books_shared=model.books_shared,
            books_borrowed=model.books_borrowed,
            created_at=model.created_at,
        )


@dataclass
class LedgerFailure:
    """A recorded point award that never reached the user's account."""

    id: int
    user_id: str
    book_id: Optional[str]
    event: str
    delta: dict
    reason: Optional[str]
    created_at: datetime


class UserRepository:
    """
    Repository for user ledger accounts.

    Counter updates are single UPDATE statements with in-database
    arithmetic, so each one is atomic per user without a prior read.
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        engine: Optional[Engine] = None,
    ):
        """
        Initialize repository.

        Args:
            database_url: SQLAlchemy database URL
            engine: Existing engine to share with other repositories
        """
        self.engine = engine or create_database_engine(database_url)
        self.SessionLocal = sessionmaker(bind=self.engine)

    def get_session(self) -> Session:
        """Get database session."""
        return self.SessionLocal()

    def create(self, user_id: str, name: str) -> StoredUser:
        """Create an account with zeroed counters."""
        with self.get_session() as session:
            user = UserModel(
                id=user_id,
                name=name,
                points=0,
                books_shared=0,
                books_borrowed=0,
                created_at=datetime.utcnow(),
            )
            session.add(user)
            session.commit()
            session.refresh(user)

            return StoredUser.from_model(user)

    def get(self, user_id: str) -> Optional[StoredUser]:
        """Get account by ID."""
        with self.get_session() as session:
            user = session.get(UserModel, user_id)

            if user:
                return StoredUser.from_model(user)
            return None

    def increment(
        self,
        user_id: str,
        points: int = 0,
        books_shared: int = 0,
        books_borrowed: int = 0,
    ) -> bool:
        """
        Add to a user's counters.

        Args:
            user_id: User ID
            points: Points to add
            books_shared: Shared-book count to add
            books_borrowed: Borrowed-book count to add

        Returns:
            True if the user exists and was updated
        """
        with self.get_session() as session:
            updated = session.query(UserModel).filter(
                UserModel.id == user_id,
            ).update(
                {
                    UserModel.points: UserModel.points + points,
                    UserModel.books_shared: UserModel.books_shared + books_shared,
                    UserModel.books_borrowed: UserModel.books_borrowed + books_borrowed,
                },
                synchronize_session=False,
            )
            session.commit()

            return updated > 0

    def add_ledger_failure(
        self,
        user_id: str,
        event: str,
        delta: dict,
        book_id: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        """Record an award that could not be applied."""
        with self.get_session() as session:
            session.add(LedgerFailureModel(
                user_id=user_id,
                book_id=book_id,
                event=event,
                delta=delta,
                reason=reason,
                created_at=datetime.utcnow(),
            ))
            session.commit()

    def list_ledger_failures(self, limit: int = 100) -> list[LedgerFailure]:
        """List recorded ledger failures, oldest first."""
        with self.get_session() as session:
            rows = session.query(LedgerFailureModel).order_by(
                LedgerFailureModel.id.asc(),
            ).limit(limit).all()

            return [
                LedgerFailure(
                    id=row.id,
                    user_id=row.user_id,
                    book_id=row.book_id,
                    event=row.event,
                    delta=dict(row.delta or {}),
                    reason=row.reason,
                    created_at=row.created_at,
                )
                for row in rows
            ]
