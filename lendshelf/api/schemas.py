"""
API Schemas for LendShelf

Pydantic models for request validation and response serialization:
- Book models
- Lending views (requests, loans)
- Ledger account models
- Error and health models

Design Decisions:
1. Strict validation: Unknown fields in request bodies are rejected
2. Separate Request/Response: Clear distinction between inputs and outputs
3. from_attributes: Responses are built straight from storage dataclasses
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict

from lendshelf.lending.state_machine import LendingState, lending_state


# =============================================================================
# Book Schemas
# =============================================================================

class BookBase(BaseModel):
    """Base book fields."""

    title: str = Field(..., min_length=1, max_length=500)
    author: str = Field(..., min_length=1, max_length=500)
    genre: str = Field(..., min_length=1, max_length=100)

    description: Optional[str] = Field(None, max_length=5000)
    cover_ref: Optional[str] = Field(None, max_length=500)


class BookCreate(BookBase):
    """Book upload request. The owner is the acting user."""

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "title": "Dune",
                "author": "Frank Herbert",
                "genre": "Science Fiction",
                "description": "Paperback, slightly worn spine.",
                "cover_ref": "/uploads/3f2a9c.jpg",
            }
        },
    )


class BookResponse(BookBase):
    """Book response model."""

    id: str
    owner_id: str

    available: bool
    state: LendingState
    borrower_id: Optional[str] = None
    return_due_at: Optional[datetime] = None
    requests: list[str] = Field(default_factory=list)

    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_book(cls, book) -> "BookResponse":
        return cls.model_validate({**book.__dict__, "state": lending_state(book)})


class BookListResponse(BaseModel):
    """Paginated book list response."""

    books: list[BookResponse]
    count: int
    limit: int
    offset: int


# =============================================================================
# Lending Views
# =============================================================================

class PendingRequestResponse(BaseModel):
    """A queued request on one of the owner's books."""

    book_id: str
    book_title: str
    requester_id: str
    cover_ref: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class LoanResponse(BaseModel):
    """A current loan; counterparty is the borrower or the owner depending on the view."""

    book_id: str
    book_title: str
    return_due_at: Optional[datetime] = None
    counterparty_id: str
    cover_ref: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Ledger Account Schemas
# =============================================================================

class AccountCreate(BaseModel):
    """Ledger account creation request."""

    name: str = Field(..., min_length=1, max_length=255)
    id: Optional[str] = Field(None, description="Identity-layer user id; generated when omitted")

    model_config = ConfigDict(extra="forbid")


class AccountResponse(BaseModel):
    """Ledger account with its counters."""

    id: str
    name: str
    points: int
    books_shared: int
    books_borrowed: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Error Schemas
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    detail: Optional[str] = None
    code: str
    retryable: bool = False
    request_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Book no longer available",
                "detail": "Book 9b1c... is already lent to another user",
                "code": "BOOK_UNAVAILABLE",
                "retryable": False,
                "timestamp": "2025-01-20T12:00:00Z",
            }
        }
    )


# =============================================================================
# Health Check
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
