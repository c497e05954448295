"""
API Routes for LendShelf

Route modules:
- books: Upload, browse, delete, and lending transitions
- users: Ledger accounts and per-user lending views
"""

from lendshelf.api.routes.books import router as books_router
from lendshelf.api.routes.users import router as users_router

__all__ = [
    "books_router",
    "users_router",
]
