"""
LendShelf - FastAPI Backend.

HTTP surface over the lending service.
"""

from .main import app, create_app, main
from .dependencies import (
    ConfigurationError,
    Settings,
    get_settings,
    get_service_container,
    get_lending_service,
    ServiceContainer,
)
from .schemas import (
    BookCreate,
    BookResponse,
    BookListResponse,
    PendingRequestResponse,
    LoanResponse,
    AccountCreate,
    AccountResponse,
    HealthResponse,
    ErrorResponse,
)

__all__ = [
    # Application
    "app",
    "create_app",
    "main",
    # Dependencies
    "ConfigurationError",
    "Settings",
    "get_settings",
    "get_service_container",
    "get_lending_service",
    "ServiceContainer",
    # Schemas
    "BookCreate",
    "BookResponse",
    "BookListResponse",
    "PendingRequestResponse",
    "LoanResponse",
    "AccountCreate",
    "AccountResponse",
    "HealthResponse",
    "ErrorResponse",
]
