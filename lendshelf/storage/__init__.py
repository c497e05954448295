"""
Storage Module for LendShelf

Persistent storage for books and ledger accounts:
- Book Record Store with versioned compare-and-swap
- User ledger accounts with atomic counter increments
- Ledger failure log for reconciliation
"""

from lendshelf.storage.database import create_database_engine
from lendshelf.storage.book_repository import (
    BookRepository,
    StoredBook,
    VersionConflict,
)
from lendshelf.storage.user_repository import (
    UserRepository,
    StoredUser,
    LedgerFailure,
)

__all__ = [
    "create_database_engine",
    # Book Repository
    "BookRepository",
    "StoredBook",
    "VersionConflict",
    # User Repository
    "UserRepository",
    "StoredUser",
    "LedgerFailure",
]
