"""
Book Repository for LendShelf

Book Record Store: the single source of truth for book entities and
their current lending state.

Design Decisions:
1. SQLAlchemy ORM: Portable across databases
2. Hard deletes: A removed book leaves no record behind
3. Version column: Every lending mutation is a compare-and-swap on it,
   so a transition computed from a stale read is rejected instead of
   overwriting a concurrent one
4. Pending requests stored inline as an ordered JSON array
"""

from datetime import datetime
from dataclasses import dataclass, field, replace
from typing import Optional
from loguru import logger

from sqlalchemy import (
    Column,
    String,
    Integer,
    Text,
    DateTime,
    Boolean,
    JSON,
    Index,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from .models import Base
from .database import create_database_engine


class BookModel(Base):
    """SQLAlchemy model for books."""

    __tablename__ = "books"

    # Primary key
    id = Column(String(64), primary_key=True)

    # Catalogue fields (fixed at upload)
    title = Column(String(500), nullable=False, index=True)
    author = Column(String(500), nullable=False)
    genre = Column(String(100), nullable=False)
    description = Column(Text)
    cover_ref = Column(String(500))  # Opaque, owned by file storage

    # Lending state
    owner_id = Column(String(64), nullable=False, index=True)
    available = Column(Boolean, nullable=False, default=True)
    borrower_id = Column(String(64), index=True)
    return_due_at = Column(DateTime)
    requests = Column(JSON, nullable=False, default=list)

    # Revision stamp for compare-and-swap
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_books_owner_available", "owner_id", "available"),
    )


@dataclass
class StoredBook:
    """Data class for book data transfer."""

    id: str
    title: str
    author: str
    genre: str
    owner_id: str

    description: Optional[str] = None
    cover_ref: Optional[str] = None

    available: bool = True
    borrower_id: Optional[str] = None
    return_due_at: Optional[datetime] = None
    requests: list[str] = field(default_factory=list)

    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: BookModel) -> "StoredBook":
        """Create from SQLAlchemy model."""
        return cls(
            id=model.id,
            title=model.title,
            author=model.author,
            genre=model.genre,
            owner_id=model.owner_id,
            description=model.description,
            cover_ref=model.cover_ref,
            available=model.available,
            borrower_id=model.borrower_id,
            return_due_at=model.return_due_at,
            requests=list(model.requests or []),
            version=model.version,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


class VersionConflict(Exception):
    """The stored version no longer matches the one the caller read."""

    def __init__(self, book_id: str, expected_version: int):
        self.book_id = book_id
        self.expected_version = expected_version
        super().__init__(f"Book {book_id} changed since version {expected_version}")


class BookRepository:
    """
    Repository for book records.

    Reads return detached StoredBook snapshots; writes to lending state
    go through compare_and_swap only.

    Usage:
        repo = BookRepository("sqlite:///./lendshelf.db")

        book = repo.create(StoredBook(id="b1", title="Dune", author="Frank Herbert",
                                      genre="Science Fiction", owner_id="u1"))

        changed = replace(book, requests=["u2"])
        book = repo.compare_and_swap(book.id, book.version, changed)
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

        # Session factory
        self.SessionLocal = sessionmaker(bind=self.engine)

    def get_session(self) -> Session:
        """Get database session."""
        return self.SessionLocal()

    def create(self, book: StoredBook) -> StoredBook:
        """
        Insert a new book.

        Args:
            book: Book to persist (its version is reset to 1)

        Returns:
            Created StoredBook
        """
        now = datetime.utcnow()

        with self.get_session() as session:
            model = BookModel(
                id=book.id,
                title=book.title,
                author=book.author,
                genre=book.genre,
                description=book.description,
                cover_ref=book.cover_ref,
                owner_id=book.owner_id,
                available=book.available,
                borrower_id=book.borrower_id,
                return_due_at=book.return_due_at,
                requests=list(book.requests),
                version=1,
                created_at=now,
                updated_at=now,
            )
            session.add(model)
            session.commit()
            session.refresh(model)

            return StoredBook.from_model(model)

    def get(self, book_id: str) -> Optional[StoredBook]:
        """
        Get book by ID.

        Args:
            book_id: Book ID

        Returns:
            StoredBook or None
        """
        with self.get_session() as session:
            book = session.get(BookModel, book_id)

            if book:
                return StoredBook.from_model(book)
            return None

    def compare_and_swap(
        self,
        book_id: str,
        expected_version: int,
        new_book: StoredBook,
    ) -> Optional[StoredBook]:
        """
        Write new lending state if the stored version still matches.

        Args:
            book_id: Book ID
            expected_version: Version the caller's transition was computed from
            new_book: Book carrying the new lending state

        Returns:
            Stored book with its bumped version, or None if the book does not exist

        Raises:
            VersionConflict: The book was modified since expected_version
        """
        now = datetime.utcnow()

        with self.get_session() as session:
            updated = session.query(BookModel).filter(
                BookModel.id == book_id,
                BookModel.version == expected_version,
            ).update(
                {
                    BookModel.available: new_book.available,
                    BookModel.borrower_id: new_book.borrower_id,
                    BookModel.return_due_at: new_book.return_due_at,
                    BookModel.requests: list(new_book.requests),
                    BookModel.version: expected_version + 1,
                    BookModel.updated_at: now,
                },
                synchronize_session=False,
            )
            session.commit()

            if updated == 0:
                if session.get(BookModel, book_id) is None:
                    return None
                logger.debug(f"Version conflict on book {book_id} (expected v{expected_version})")
                raise VersionConflict(book_id, expected_version)

        return replace(
            new_book,
            requests=list(new_book.requests),
            version=expected_version + 1,
            updated_at=now,
        )

    def delete(self, book_id: str, expected_version: Optional[int] = None) -> bool:
        """
        Hard-delete a book.

        Args:
            book_id: Book ID
            expected_version: Only delete if the stored version matches

        Returns:
            True if deleted, False if the book does not exist

        Raises:
            VersionConflict: expected_version was given and is stale
        """
        with self.get_session() as session:
            query = session.query(BookModel).filter(BookModel.id == book_id)
            if expected_version is not None:
                query = query.filter(BookModel.version == expected_version)

            deleted = query.delete(synchronize_session=False)
            session.commit()

            if deleted == 0:
                if expected_version is not None and session.get(BookModel, book_id) is not None:
                    raise VersionConflict(book_id, expected_version)
                return False
            return True

    def list_by_owner(self, owner_id: str) -> list[StoredBook]:
        """List books owned by a user, oldest first."""
        with self.get_session() as session:
            books = session.query(BookModel).filter(
                BookModel.owner_id == owner_id,
            ).order_by(BookModel.created_at.asc(), BookModel.id.asc()).all()

            return [StoredBook.from_model(b) for b in books]

    def list_by_borrower(self, borrower_id: str) -> list[StoredBook]:
        """List books currently lent to a user."""
        with self.get_session() as session:
            books = session.query(BookModel).filter(
                BookModel.borrower_id == borrower_id,
            ).order_by(BookModel.return_due_at.asc()).all()

            return [StoredBook.from_model(b) for b in books]

    def list_available(self, limit: int = 100, offset: int = 0) -> list[StoredBook]:
        """List books that can currently be requested, newest first."""
        with self.get_session() as session:
            books = session.query(BookModel).filter(
                BookModel.available == True,
            ).order_by(
                BookModel.created_at.desc(),
                BookModel.id.desc(),
            ).offset(offset).limit(limit).all()

            return [StoredBook.from_model(b) for b in books]

    def list_all(self, limit: int = 100, offset: int = 0) -> list[StoredBook]:
        """
        List all books with pagination.

        Args:
            limit: Max results
            offset: Skip count

        Returns:
            List of StoredBooks, newest first
        """
        with self.get_session() as session:
            books = session.query(BookModel).order_by(
                BookModel.created_at.desc(),
                BookModel.id.desc(),
            ).offset(offset).limit(limit).all()

            return [StoredBook.from_model(b) for b in books]
