"""
Book API Routes

Upload, browse and delete books, and drive the lending transitions:
request, approve, reject, return.
"""

from fastapi import APIRouter, Query, Depends, status
from loguru import logger

from lendshelf.api.schemas import (
    BookCreate,
    BookResponse,
    BookListResponse,
    ErrorResponse,
)
from lendshelf.api.dependencies import (
    get_lending_service,
    get_current_user_id,
)


router = APIRouter(prefix="/books", tags=["books"])


NOT_FOUND = {404: {"model": ErrorResponse, "description": "Book not found"}}
GUARDED = {
    **NOT_FOUND,
    409: {"model": ErrorResponse, "description": "Transition not allowed in the book's current state"},
    503: {"model": ErrorResponse, "description": "Concurrent modification, retry"},
}


# =============================================================================
# CRUD Endpoints
# =============================================================================

@router.post(
    "",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid book data"},
    },
)
def upload_book(
    book: BookCreate,
    user_id: str = Depends(get_current_user_id),
    service = Depends(get_lending_service),
):
    """
    List a new book for lending. The acting user becomes its owner
    and earns an upload point.
    """
    logger.info(f"Uploading book: {book.title} by {book.author} for {user_id}")

    created = service.upload_book(
        owner_id=user_id,
        title=book.title,
        author=book.author,
        genre=book.genre,
        description=book.description,
        cover_ref=book.cover_ref,
    )
    return BookResponse.from_book(created)


@router.get(
    "",
    response_model=BookListResponse,
)
def list_books(
    available: bool = Query(False, description="Only books that can be requested"),
    limit: int = Query(50, ge=1, le=200, description="Items per page"),
    offset: int = Query(0, ge=0, description="Items to skip"),
    service = Depends(get_lending_service),
):
    """List books, newest first."""
    books = service.list_books(available_only=available, limit=limit, offset=offset)

    return BookListResponse(
        books=[BookResponse.from_book(b) for b in books],
        count=len(books),
        limit=limit,
        offset=offset,
    )


@router.get(
    "/{book_id}",
    response_model=BookResponse,
    responses=NOT_FOUND,
)
def get_book(
    book_id: str,
    service = Depends(get_lending_service),
):
    """Get a book with its current lending state."""
    return BookResponse.from_book(service.get_book(book_id))


@router.delete(
    "/{book_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=GUARDED,
)
def delete_book(
    book_id: str,
    service = Depends(get_lending_service),
):
    """
    Delete a book permanently.

    Refused while the book is on loan. Pending requests are discarded.
    """
    logger.info(f"Deleting book: {book_id}")

    service.delete_book(book_id)
    return None


# =============================================================================
# Lending Transitions
# =============================================================================

@router.post(
    "/{book_id}/requests",
    response_model=BookResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Own book or malformed id"},
        **GUARDED,
    },
)
def request_book(
    book_id: str,
    user_id: str = Depends(get_current_user_id),
    service = Depends(get_lending_service),
):
    """Ask to borrow a book on behalf of the acting user."""
    return BookResponse.from_book(service.request_book(book_id, user_id))


@router.post(
    "/{book_id}/requests/{requester_id}/approve",
    response_model=BookResponse,
    responses=GUARDED,
)
def approve_request(
    book_id: str,
    requester_id: str,
    service = Depends(get_lending_service),
):
    """
    Lend the book to a pending requester.

    All other pending requests on the book are discarded. The book is
    due back 14 days from now.
    """
    return BookResponse.from_book(service.approve_request(book_id, requester_id))


@router.post(
    "/{book_id}/requests/{requester_id}/reject",
    response_model=BookResponse,
    responses=GUARDED,
)
def reject_request(
    book_id: str,
    requester_id: str,
    service = Depends(get_lending_service),
):
    """Turn down a pending request."""
    return BookResponse.from_book(service.reject_request(book_id, requester_id))


@router.post(
    "/{book_id}/return",
    response_model=BookResponse,
    responses=GUARDED,
)
def return_book(
    book_id: str,
    service = Depends(get_lending_service),
):
    """Mark a lent book as returned and available again."""
    return BookResponse.from_book(service.return_book(book_id))
