"""
User API Routes

Ledger accounts and the per-user lending views: owned books, incoming
requests, books on loan, books borrowed.
"""

from fastapi import APIRouter, Depends, status
from loguru import logger

from lendshelf.api.schemas import (
    AccountCreate,
    AccountResponse,
    BookResponse,
    PendingRequestResponse,
    LoanResponse,
    ErrorResponse,
)
from lendshelf.api.dependencies import get_lending_service


router = APIRouter(prefix="/users", tags=["users"])


@router.post(
    "",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or duplicate account"},
    },
)
def create_account(
    account: AccountCreate,
    service = Depends(get_lending_service),
):
    """Open a ledger account for a user known to the identity layer."""
    logger.info(f"Opening ledger account: {account.id or '(generated id)'}")

    return service.create_account(name=account.name, user_id=account.id)


@router.get(
    "/{user_id}",
    response_model=AccountResponse,
    responses={
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)
def get_account(
    user_id: str,
    service = Depends(get_lending_service),
):
    """Get a user's points and lending counters."""
    return service.get_account(user_id)


@router.get("/{user_id}/books", response_model=list[BookResponse])
def list_owned_books(
    user_id: str,
    service = Depends(get_lending_service),
):
    """Books the user has uploaded."""
    return [BookResponse.from_book(b) for b in service.list_owned(user_id)]


@router.get("/{user_id}/requests", response_model=list[PendingRequestResponse])
def list_incoming_requests(
    user_id: str,
    service = Depends(get_lending_service),
):
    """Pending requests on the user's books."""
    return service.list_requests_for_owner(user_id)


@router.get("/{user_id}/on-loan", response_model=list[LoanResponse])
def list_on_loan(
    user_id: str,
    service = Depends(get_lending_service),
):
    """The user's books currently lent out; counterparty is the borrower."""
    return service.list_on_loan(user_id)


@router.get("/{user_id}/borrowed", response_model=list[LoanResponse])
def list_borrowed(
    user_id: str,
    service = Depends(get_lending_service),
):
    """Books the user currently holds; counterparty is the owner."""
    return service.list_borrowed(user_id)
